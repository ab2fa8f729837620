"""
Shared fixtures for the DOA resolver test suite.

Layers:
    - Logging: structured JSON logging configured once per session, the
      LogContext cleared around each test, and ``captured_logs`` for
      asserting on emitted events.
    - Reference data: the default YAML reference set, served in memory.
    - Database: an in-memory SQLite engine with the reference tables,
      optionally seeded with the default set.
"""

import json
import logging
from io import StringIO

import pytest

from doa_config import get_reference_set
from doa_config.bridges import reference_source_from_set, seed_reference_set
from doa_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
    session_scope,
)
from doa_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from doa_kernel.services.calculator_service import CalculatorService
from doa_kernel.services.reference_source import SqlReferenceSource

SQLITE_MEMORY_URL = "sqlite://"


# =============================================================================
# Logging
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture doa_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, calculator):
            calculator.evaluate(...)
            logs = captured_logs()
            assert any(r["message"] == "contract_evaluated" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("doa_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Reference data
# =============================================================================


@pytest.fixture(scope="session")
def default_reference_set():
    return get_reference_set()


@pytest.fixture
def reference_source(default_reference_set):
    """Fresh in-memory source per test (fetch counters start at zero)."""
    return reference_source_from_set(default_reference_set)


@pytest.fixture
def calculator(reference_source):
    return CalculatorService.from_source(reference_source)


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def db_engine():
    """In-memory SQLite engine with the reference tables created."""
    engine = init_engine_from_url(SQLITE_MEMORY_URL)
    create_tables()
    yield engine
    drop_tables()
    reset_engine()


@pytest.fixture
def session_factory(db_engine):
    return get_session_factory()


@pytest.fixture
def session(session_factory):
    with session_factory() as s:
        yield s


@pytest.fixture
def seeded_session_factory(session_factory, default_reference_set):
    """Session factory over tables seeded with the default reference set."""
    with session_scope() as s:
        seed_reference_set(s, default_reference_set)
    return session_factory


@pytest.fixture
def sql_source(seeded_session_factory):
    return SqlReferenceSource(seeded_session_factory)
