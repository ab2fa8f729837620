"""
doa_config -- single public entrypoint for DOA reference data sets.

Responsibility:
    Provides the way to obtain a validated ``ReferenceSet`` (thresholds
    with approver chains, country classifications, settings) through
    ``get_reference_set()``.  The set is then bridged into a kernel
    reference source or seeded into the database (``doa_config.bridges``).

Architecture position:
    Configuration -- YAML-driven reference data, load-time validation.
    This package sits above ``doa_kernel`` and ``doa_engines``.  The
    kernel MUST NEVER import from ``doa_config``.

Invariants enforced:
    - A set is returned only after ``validate_reference_set`` reports no
      errors.
    - Deterministic loading: the same YAML fragments always produce the
      same checksum.

Failure modes:
    - ``FileNotFoundError`` -- no set directory with the requested name,
      or a fragment file is missing.
    - ``InvalidReferenceDataError`` -- shape or validation failures.

Audit relevance:
    Every successful ``get_reference_set()`` call emits a
    ``DOA_CONFIG_TRACE`` log entry with the set name, checksum and
    counts, tying evaluations back to the data version that was loaded.
"""

from __future__ import annotations

import logging
from pathlib import Path

from doa_config.loader import load_reference_set
from doa_config.schema import ReferenceSet
from doa_config.validator import validate_reference_set
from doa_kernel.exceptions import InvalidReferenceDataError

_logger = logging.getLogger("doa_kernel.config")

# Default reference sets directory
_DEFAULT_SETS_DIR = Path(__file__).parent / "sets"


def get_reference_set(name: str = "default", sets_dir: Path | None = None) -> ReferenceSet:
    """Load and validate a named reference set.

    Args:
        name: Subdirectory of the sets directory.
        sets_dir: Override path to the sets directory.  Defaults to
            doa_config/sets/.

    Returns:
        A validated, frozen ReferenceSet.

    Raises:
        FileNotFoundError: If the set directory does not exist.
        InvalidReferenceDataError: If the set fails validation.
    """
    set_dir = (sets_dir or _DEFAULT_SETS_DIR) / name
    if not set_dir.is_dir():
        raise FileNotFoundError(f"Reference set not found: {set_dir}")

    ref_set = load_reference_set(set_dir)

    validation = validate_reference_set(ref_set)
    if not validation.is_valid:
        raise InvalidReferenceDataError(str(set_dir), validation.errors)
    for warning in validation.warnings:
        _logger.warning("reference_set_warning", extra={"reference_set": name, "warning": warning})

    _logger.info(
        "DOA_CONFIG_TRACE",
        extra={
            "trace_type": "DOA_CONFIG_TRACE",
            "reference_set": ref_set.name,
            "checksum": ref_set.checksum,
            "threshold_count": len(ref_set.thresholds),
            "country_count": len(ref_set.countries),
            "setting_count": len(ref_set.settings),
        },
    )
    return ref_set


__all__ = [
    "ReferenceSet",
    "get_reference_set",
    "load_reference_set",
    "validate_reference_set",
]
