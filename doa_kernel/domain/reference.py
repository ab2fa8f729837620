"""
Reference data value objects (``doa_kernel.domain.reference``).

Responsibility
--------------
Thresholds (named approval rules with a fixed approver chain) and country
risk classifications, exactly as the decision engine consumes them.  Both
are loaded once per cache generation and treated as immutable until an
administrator edits them.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* Threshold keys are internal identifiers; only ``name`` and ``code`` are
  shown to users.
* ``Threshold.approvers`` is a tuple, so cached chains cannot be mutated
  in place by callers.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from doa_kernel.domain.approvers import ApproverEntry

COUNT_BARE_X_SETTING = "count_x_without_number"


class RiskLevel(str, Enum):
    """Country risk classification."""

    SAFE = "safe"
    SPECIAL = "special"
    HIGH_RISK = "high_risk"


class ThresholdType:
    """Category tags used by the threshold table."""

    CONTRACT_VALUE = "contract_value"
    CAPEX = "capex"
    DIRECT_SALES = "direct_sales"
    EPF = "epf"
    NON_BINDING_RFQ = "non_binding_rfq"
    HIGH_RISK_MARKET = "high_risk_market"
    # Synthesized escalation chains
    COMMERCIAL = "commercial"

    ALL: frozenset[str] = frozenset({
        CONTRACT_VALUE,
        CAPEX,
        DIRECT_SALES,
        EPF,
        NON_BINDING_RFQ,
        HIGH_RISK_MARKET,
        COMMERCIAL,
    })


class ThresholdKey:
    """Stable threshold keys referenced by the decision tree."""

    NB_OVER_50M = "nb-over-50m"
    NB_18M_50M = "nb-18m-50m"
    NB_UNDER_18M = "nb-under-18m"
    HIGH_RISK = "high-risk"
    EPF_50M = "epf-50m"
    CAPEX_OVER_10M = "capex-over-10m"
    BAND_50M_200M = "50m-200m"
    OVER_200M = "over-200m"
    BAND_30M_50M = "30m-50m"
    BAND_5M_30M = "5m-30m"
    UNDER_5M = "under-5m"
    DS_MARKUP_LOW = "ds-markup-low"
    DS_MARKUP_HIGH = "ds-markup-high"
    DS_LOW_MARGIN = "ds-low-margin"
    DS_30M_50M = "ds-30m-50m"
    DS_18M_30M = "ds-18m-30m"
    DS_1M_18M = "ds-1m-18m"
    DS_UNDER_1M = "ds-under-1m"

    # Synthesized, never stored
    ESCALATED_5M_30M = "5m-30m-escalated"
    SPECIAL_COUNTRY_CEO = "special-country-ceo"


@dataclass(frozen=True)
class ThresholdMetadata:
    """Display metadata of a resolved or synthesized threshold."""

    key: str
    type: str
    name: str
    code: str
    notes: str | None = None

    def to_dict(self) -> dict[str, str | None]:
        return {
            "id": self.key,
            "type": self.type,
            "name": self.name,
            "code": self.code,
            "notes": self.notes,
        }


@dataclass(frozen=True)
class Threshold:
    """A named approval rule and its ordered approver chain."""

    key: str
    type: str
    name: str
    code: str
    notes: str | None = None
    approvers: tuple[ApproverEntry, ...] = ()

    @property
    def metadata(self) -> ThresholdMetadata:
        return ThresholdMetadata(
            key=self.key,
            type=self.type,
            name=self.name,
            code=self.code,
            notes=self.notes,
        )


@dataclass(frozen=True)
class Country:
    """A country and its risk classification."""

    name: str
    risk_level: RiskLevel

    @property
    def is_high_risk(self) -> bool:
        return self.risk_level is RiskLevel.HIGH_RISK

    @property
    def is_special(self) -> bool:
        return self.risk_level is RiskLevel.SPECIAL
