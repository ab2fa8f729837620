"""
doa_kernel.services.threshold_store -- Read-through reference cache.

Responsibility:
    Memoize the threshold table (keyed by threshold key) and the country
    table (keyed by country name) loaded from a ``ReferenceSource``, and
    discard both whenever reference data is edited.

Architecture position:
    Kernel > Services.  May import from domain/.  Knows nothing about
    SQLAlchemy; the source decides where rows come from.

Invariants enforced:
    - A map is built completely before it is installed; readers see either
      no map or a whole one.
    - ``invalidate()`` bumps the generation and clears both maps in one
      locked step.  A load that started in an older generation is handed to
      its caller but never installed, so the first read after
      ``invalidate()`` always re-fetches.
    - Installed maps are read-only views over frozen value objects.
    - Nothing is cached when the source raises.

Failure modes:
    - Any exception raised by the source propagates unchanged.
    - ``DuplicateThresholdKeyError`` if the source returns two thresholds
      with the same key.

Concurrency:
    Concurrent cold reads may fetch more than once; the first completed
    load of the current generation wins and later ones return the
    installed map.
"""

from __future__ import annotations

import threading
from collections.abc import Mapping
from types import MappingProxyType

from doa_kernel.domain.reference import Country, Threshold
from doa_kernel.domain.source import ReferenceSource
from doa_kernel.exceptions import DuplicateThresholdKeyError
from doa_kernel.logging_config import get_logger

logger = get_logger("services.threshold_store")


def build_threshold_table(thresholds: list[Threshold]) -> Mapping[str, Threshold]:
    table: dict[str, Threshold] = {}
    for threshold in thresholds:
        if threshold.key in table:
            raise DuplicateThresholdKeyError(threshold.key)
        table[threshold.key] = threshold
    return MappingProxyType(table)


def build_country_table(countries: list[Country]) -> Mapping[str, Country]:
    return MappingProxyType({country.name: country for country in countries})


class ThresholdStore:
    """
    Generation-guarded cache of thresholds and countries.

    Usage:
        store = ThresholdStore(SqlReferenceSource(get_session_factory()))
        thresholds = store.load_thresholds()   # fetches once
        store.invalidate()                     # after an admin write
    """

    def __init__(self, source: ReferenceSource) -> None:
        self._source = source
        self._lock = threading.Lock()
        self._generation = 0
        self._thresholds: Mapping[str, Threshold] | None = None
        self._countries: Mapping[str, Country] | None = None

    @property
    def source(self) -> ReferenceSource:
        return self._source

    @property
    def generation(self) -> int:
        return self._generation

    def load_thresholds(self) -> Mapping[str, Threshold]:
        """Return the threshold table, fetching it on a cold cache."""
        cached = self._thresholds
        if cached is not None:
            return cached

        generation = self._generation
        table = build_threshold_table(self._source.fetch_thresholds_with_approvers())

        with self._lock:
            installed = self._generation == generation
            if installed:
                if self._thresholds is None:
                    self._thresholds = table
                else:
                    table = self._thresholds

        logger.info(
            "threshold_cache_loaded",
            extra={
                "threshold_count": len(table),
                "generation": generation,
                "installed": installed,
            },
        )
        return table

    def load_countries(self) -> Mapping[str, Country]:
        """Return the country table, fetching it on a cold cache."""
        cached = self._countries
        if cached is not None:
            return cached

        generation = self._generation
        table = build_country_table(self._source.fetch_countries())

        with self._lock:
            installed = self._generation == generation
            if installed:
                if self._countries is None:
                    self._countries = table
                else:
                    table = self._countries

        logger.info(
            "country_cache_loaded",
            extra={
                "country_count": len(table),
                "generation": generation,
                "installed": installed,
            },
        )
        return table

    def invalidate(self) -> None:
        """Discard both tables; the next read goes back to the source."""
        with self._lock:
            self._generation += 1
            self._thresholds = None
            self._countries = None
            generation = self._generation

        logger.info("threshold_cache_invalidated", extra={"generation": generation})
