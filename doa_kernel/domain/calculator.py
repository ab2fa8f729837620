"""
Contract calculator types (``doa_kernel.domain.calculator``).

Responsibility
--------------
Inputs, outputs and the intermediate outcome of one contract evaluation.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* Monetary and percentage inputs are ``Decimal``; floats are converted
  through ``str`` so ``0.1`` stays ``Decimal("0.1")``.
* Missing numerics take documented defaults (value/capex 0, gross margin
  100, operating profit 45, markup 0).
* An outcome is exactly one of ``Resolved`` (a stored threshold) or
  ``Synthesized`` (an escalation chain built by the engine); "no threshold"
  is ``None``.  There is no state with both set.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from doa_kernel.domain.approvers import ApproverEntry
from doa_kernel.domain.reference import Threshold, ThresholdMetadata
from doa_kernel.exceptions import InvalidCalculatorInputError

ZERO = Decimal("0")

DEFAULT_GROSS_MARGIN = Decimal("100")
DEFAULT_OPERATING_PROFIT_PERCENT = Decimal("45")
DEFAULT_MARKUP_PERCENT = Decimal("0")


class ContractType(str, Enum):
    """Contract categories with distinct routing rules."""

    STANDARD = "standard"
    NON_BINDING = "nonBinding"
    DIRECT_SALES = "directSales"
    DIRECT_SALES_MARKUP = "directSalesMarkup"
    EPF = "epf"


# =========================================================================
# Input
# =========================================================================


def _to_decimal(field_name: str, value: Any, default: Decimal) -> Decimal:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        raise InvalidCalculatorInputError(field_name, value, "expected a number")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value))
        except InvalidOperation:
            raise InvalidCalculatorInputError(
                field_name, value, "expected a number"
            ) from None
    if not result.is_finite():
        raise InvalidCalculatorInputError(field_name, value, "must be finite")
    return result


def _to_contract_type(value: Any) -> ContractType:
    if value is None or value == "":
        return ContractType.STANDARD
    if isinstance(value, ContractType):
        return value
    try:
        return ContractType(value)
    except ValueError:
        raise InvalidCalculatorInputError(
            "contract_type",
            value,
            "expected one of " + ", ".join(t.value for t in ContractType),
        ) from None


def _to_flag(field_name: str, value: Any) -> bool:
    if value is None or value == "":
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    raise InvalidCalculatorInputError(field_name, value, "expected a boolean")


def _pick(data: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in data:
            return data[key]
    return None


@dataclass(frozen=True)
class CalculatorInput:
    """Attributes of a proposed contract.

    Fields are normalized on construction, so plain ints, floats and
    strings are accepted wherever a ``Decimal`` or ``ContractType`` is
    declared.

    Raises:
        InvalidCalculatorInputError: non-numeric amount, non-boolean
            high-risk flag or unknown contract type.
    """

    contract_value: Decimal = ZERO
    capex_value: Decimal = ZERO
    contract_type: ContractType = ContractType.STANDARD
    selected_country: str = ""
    manual_high_risk: bool = False
    gross_margin: Decimal = DEFAULT_GROSS_MARGIN
    operating_profit_percent: Decimal = DEFAULT_OPERATING_PROFIT_PERCENT
    markup_percent: Decimal = DEFAULT_MARKUP_PERCENT

    def __post_init__(self) -> None:
        normalized = {
            "contract_value": _to_decimal("contract_value", self.contract_value, ZERO),
            "capex_value": _to_decimal("capex_value", self.capex_value, ZERO),
            "contract_type": _to_contract_type(self.contract_type),
            "selected_country": self.selected_country or "",
            "manual_high_risk": _to_flag("manual_high_risk", self.manual_high_risk),
            "gross_margin": _to_decimal(
                "gross_margin", self.gross_margin, DEFAULT_GROSS_MARGIN,
            ),
            "operating_profit_percent": _to_decimal(
                "operating_profit_percent",
                self.operating_profit_percent,
                DEFAULT_OPERATING_PROFIT_PERCENT,
            ),
            "markup_percent": _to_decimal(
                "markup_percent", self.markup_percent, DEFAULT_MARKUP_PERCENT,
            ),
        }
        for name, value in normalized.items():
            object.__setattr__(self, name, value)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> CalculatorInput:
        """Build an input from a request body (camelCase or snake_case keys)."""
        return cls(
            contract_value=_pick(data, "contractValue", "contract_value"),
            capex_value=_pick(data, "capexValue", "capex_value"),
            contract_type=_pick(data, "contractType", "contract_type"),
            selected_country=_pick(data, "selectedCountry", "selected_country"),
            manual_high_risk=_pick(data, "manualHighRisk", "manual_high_risk"),
            gross_margin=_pick(data, "grossMargin", "gross_margin"),
            operating_profit_percent=_pick(
                data, "operatingProfitPercent", "operating_profit_percent",
            ),
            markup_percent=_pick(data, "markupPercent", "markup_percent"),
        )


# =========================================================================
# Outcome (tagged union)
# =========================================================================


@dataclass(frozen=True)
class Resolved:
    """The decision tree selected a stored threshold."""

    threshold: Threshold

    @property
    def metadata(self) -> ThresholdMetadata:
        return self.threshold.metadata

    @property
    def approvers(self) -> tuple[ApproverEntry, ...]:
        return self.threshold.approvers


@dataclass(frozen=True)
class Synthesized:
    """The engine built an escalation chain that is not stored anywhere."""

    metadata: ThresholdMetadata
    approvers: tuple[ApproverEntry, ...]
    reason: str


Outcome = Resolved | Synthesized | None


# =========================================================================
# Result
# =========================================================================


@dataclass(frozen=True)
class CalculatorFlags:
    """Risk and escalation indicators reported alongside the chain."""

    is_high_risk: bool = False
    is_special_country: bool = False
    is_capex_exceeds_10_percent: bool = False
    is_low_operating_profit: bool = False
    capex_percentage: Decimal = ZERO
    was_escalated: bool = False
    escalation_reason: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "isHighRisk": self.is_high_risk,
            "isSpecialCountry": self.is_special_country,
            "isCapexExceeds10Percent": self.is_capex_exceeds_10_percent,
            "isLowOperatingProfit": self.is_low_operating_profit,
            "capexPercentage": float(self.capex_percentage),
            "wasEscalated": self.was_escalated,
            "escalationReason": self.escalation_reason,
        }


@dataclass(frozen=True)
class CalculatorResult:
    """Outcome of one evaluation.

    ``approvers`` is canonical (deduplicated and ordered).
    ``excluded_approvers`` holds bare ``X`` entries hidden by the display
    setting.
    """

    threshold: ThresholdMetadata | None
    approvers: tuple[ApproverEntry, ...] = ()
    excluded_approvers: tuple[ApproverEntry, ...] = ()
    flags: CalculatorFlags = field(default_factory=CalculatorFlags)

    def to_dict(self) -> dict[str, Any]:
        return {
            "threshold": self.threshold.to_dict() if self.threshold else None,
            "approvers": [a.to_dict() for a in self.approvers],
            "excludedApprovers": [a.to_dict() for a in self.excluded_approvers],
            "flags": self.flags.to_dict(),
        }
