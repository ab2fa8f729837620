"""
Reference set schema (``doa_config.schema``).

Responsibility
--------------
Frozen dataclasses mirroring the YAML fragments of a reference set:
thresholds with their approver chains, country classifications and
application settings.

Architecture position
---------------------
**Config layer** -- pure data definitions.  Converts into kernel domain
objects through ``to_threshold`` / ``to_country``; the kernel never
imports this module.

Invariants enforced
-------------------
* All definitions are frozen after parsing.
* ``CountryDef.risk_level`` keeps the raw string so the validator can
  report unknown levels instead of failing during parsing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from doa_kernel.domain.approvers import DEFAULT_LABEL, ApproverEntry
from doa_kernel.domain.reference import Country, RiskLevel, Threshold


@dataclass(frozen=True)
class ApproverDef:
    """One step of a threshold's approver chain, as written in YAML."""

    role: str
    action: str
    label: str | None = None

    def to_entry(self) -> ApproverEntry:
        return ApproverEntry(
            role=self.role,
            action=self.action,
            label=self.label or DEFAULT_LABEL,
        )


@dataclass(frozen=True)
class ThresholdDef:
    """A threshold definition.

    ``min_value``, ``max_value`` and ``condition`` are descriptive columns
    for browse screens; the decision engine never reads them.
    """

    key: str
    type: str
    name: str
    code: str
    notes: str | None = None
    min_value: Decimal | None = None
    max_value: Decimal | None = None
    condition: str | None = None
    approvers: tuple[ApproverDef, ...] = field(default_factory=tuple)

    def to_threshold(self) -> Threshold:
        return Threshold(
            key=self.key,
            type=self.type,
            name=self.name,
            code=self.code,
            notes=self.notes,
            approvers=tuple(a.to_entry() for a in self.approvers),
        )


@dataclass(frozen=True)
class CountryDef:
    name: str
    risk_level: str

    def to_country(self) -> Country:
        return Country(name=self.name, risk_level=RiskLevel(self.risk_level))


@dataclass(frozen=True)
class SettingDef:
    key: str
    value: Any


@dataclass(frozen=True)
class ReferenceSet:
    """
    A complete, parsed reference set.

    Contract
    --------
    * ``checksum`` is the SHA-256 of the canonical JSON of the raw
      fragments; identical YAML always yields the same checksum.
    * Threshold order is the order of the YAML file and becomes the
      ``sort_order`` when seeded.
    """

    name: str
    thresholds: tuple[ThresholdDef, ...]
    countries: tuple[CountryDef, ...]
    settings: tuple[SettingDef, ...]
    checksum: str

    def setting(self, key: str, default: Any = None) -> Any:
        for setting in self.settings:
            if setting.key == key:
                return setting.value
        return default
