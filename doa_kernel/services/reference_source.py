"""
doa_kernel.services.reference_source -- Reference data sources.

Responsibility:
    Implementations of ``ReferenceSource``: the SQLAlchemy-backed source
    that reads the reference tables, and an in-memory source for tests
    and tooling.

Architecture position:
    Kernel > Services.  May import from domain/, models/, db/.

Invariants enforced:
    - Read-only: no source method writes, flushes or commits.
    - Each fetch uses its own short-lived session, so a fetch never sees a
      half-applied admin transaction.
    - Approver rows are grouped per threshold in ``sort_order``; a missing
      label reads as ``Approve``.

Failure modes:
    - ``sqlalchemy.exc.SQLAlchemyError`` propagates unchanged.
    - ``UnknownRiskLevelError`` for a country row outside the enum.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable, Iterable, Mapping
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from doa_kernel.domain.approvers import DEFAULT_LABEL, ApproverEntry
from doa_kernel.domain.reference import Country, RiskLevel, Threshold
from doa_kernel.exceptions import UnknownRiskLevelError
from doa_kernel.logging_config import get_logger
from doa_kernel.models.reference import (
    AppSettingModel,
    CountryModel,
    RoleModel,
    ThresholdApproverModel,
    ThresholdModel,
)

logger = get_logger("services.reference_source")


def parse_risk_level(country: str, value: str) -> RiskLevel:
    try:
        return RiskLevel(value)
    except ValueError:
        raise UnknownRiskLevelError(country, value) from None


def setting_enabled(value: Any) -> bool:
    """Interpret a stored setting document as a boolean toggle.

    ``{"enabled": true}`` is on; a bare JSON boolean is accepted as-is;
    anything else (missing row, missing key) is off.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, Mapping):
        return bool(value.get("enabled", False))
    return False


class SqlReferenceSource:
    """Reads thresholds, countries and settings through SQLAlchemy."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def fetch_thresholds_with_approvers(self) -> list[Threshold]:
        with self._session_factory() as session:
            rows = session.execute(
                select(ThresholdModel).order_by(ThresholdModel.sort_order)
            ).scalars().all()

            approver_rows = session.execute(
                select(
                    ThresholdApproverModel.threshold_id,
                    RoleModel.name,
                    ThresholdApproverModel.action,
                    ThresholdApproverModel.label,
                )
                .join(RoleModel, RoleModel.id == ThresholdApproverModel.role_id)
                .order_by(
                    ThresholdApproverModel.threshold_id,
                    ThresholdApproverModel.sort_order,
                )
            ).all()

            by_threshold: dict[UUID, list[ApproverEntry]] = defaultdict(list)
            for threshold_id, role_name, action, label in approver_rows:
                by_threshold[threshold_id].append(
                    ApproverEntry(role=role_name, action=action, label=label or DEFAULT_LABEL)
                )

            thresholds = [
                Threshold(
                    key=row.threshold_key,
                    type=row.type,
                    name=row.name,
                    code=row.code,
                    notes=row.notes,
                    approvers=tuple(by_threshold.get(row.id, ())),
                )
                for row in rows
            ]

        logger.debug(
            "thresholds_fetched",
            extra={"threshold_count": len(thresholds), "approver_count": len(approver_rows)},
        )
        return thresholds

    def fetch_countries(self) -> list[Country]:
        with self._session_factory() as session:
            rows = session.execute(
                select(CountryModel.name, CountryModel.risk_level).order_by(CountryModel.name)
            ).all()

        countries = [Country(name, parse_risk_level(name, risk)) for name, risk in rows]
        logger.debug("countries_fetched", extra={"country_count": len(countries)})
        return countries

    def fetch_boolean_setting(self, key: str) -> bool:
        with self._session_factory() as session:
            value = session.execute(
                select(AppSettingModel.value).where(AppSettingModel.key == key)
            ).scalar_one_or_none()
        return setting_enabled(value)


class InMemoryReferenceSource:
    """Reference source over Python objects.

    Used by tests and tooling.  Counts fetches so cache behaviour can be
    observed, and lets callers replace data to simulate admin writes.
    """

    def __init__(
        self,
        thresholds: Iterable[Threshold] = (),
        countries: Iterable[Country] = (),
        settings: Mapping[str, bool] | None = None,
    ) -> None:
        self._thresholds = list(thresholds)
        self._countries = list(countries)
        self._settings = dict(settings or {})
        self.threshold_fetches = 0
        self.country_fetches = 0
        self.setting_fetches = 0

    def fetch_thresholds_with_approvers(self) -> list[Threshold]:
        self.threshold_fetches += 1
        return list(self._thresholds)

    def fetch_countries(self) -> list[Country]:
        self.country_fetches += 1
        return list(self._countries)

    def fetch_boolean_setting(self, key: str) -> bool:
        self.setting_fetches += 1
        return bool(self._settings.get(key, False))

    def replace_thresholds(self, thresholds: Iterable[Threshold]) -> None:
        self._thresholds = list(thresholds)

    def set_country(self, country: Country) -> None:
        self._countries = [c for c in self._countries if c.name != country.name]
        self._countries.append(country)

    def set_setting(self, key: str, enabled: bool) -> None:
        self._settings[key] = enabled
