"""
doa_engines.decision -- Contract approval decision engine.

Responsibility:
    Map contract attributes (value, capex, contract type, country risk,
    gross margin, operating profit, markup) to the threshold whose
    approver chain governs the contract, apply the escalation overrides,
    and produce the canonical, display-filtered chain.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import doa_kernel/domain/ types and sibling engine modules.
    Reference data (thresholds, countries, the bare-X setting) is passed
    in by ``doa_kernel.services.calculator_service``.

Invariants enforced:
    - Strict rule order: each contract type owns an ordered rule table;
      the first rule whose predicate holds wins.  Non-binding contracts are
      routed before the high-risk override, which in turn precedes every
      other table.
    - All monetary limits are Decimal constants preserved from the DOA
      policy; no rule is derived from data.
    - Special-country escalation runs after selection and only replaces a
      chain that lacks a senior approval.
    - ``contract_value <= 0`` never resolves a threshold.

Failure modes:
    - A rule pointing at a threshold key absent from the table yields no
      threshold and an empty chain (logged as ``threshold_key_missing``).
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, replace
from decimal import Decimal

from doa_kernel.domain.approvers import ApproverEntry, normalize_role
from doa_kernel.domain.calculator import (
    ZERO,
    CalculatorFlags,
    CalculatorInput,
    CalculatorResult,
    ContractType,
    Outcome,
    Resolved,
    Synthesized,
)
from doa_kernel.domain.reference import (
    Country,
    Threshold,
    ThresholdKey,
    ThresholdMetadata,
    ThresholdType,
)
from doa_kernel.domain.tokens import APPROVE, FALLBACK_LEVEL, NO_LEVEL

from doa_engines.chain import canonicalize_chain, split_bare_approvals
from doa_engines.tokens import parse_action_token
from doa_engines.tracer import traced_engine

logger = logging.getLogger("doa_kernel.engines.decision")

# =========================================================================
# Policy constants (SAR)
# =========================================================================

M_1_875 = Decimal("1875000")
M_5 = Decimal("5000000")
M_10 = Decimal("10000000")
M_18_75 = Decimal("18750000")
M_30 = Decimal("30000000")
M_50 = Decimal("50000000")
M_200 = Decimal("200000000")

CAPEX_SHARE_LIMIT_PERCENT = Decimal("10")
LOW_OPERATING_PROFIT_PERCENT = Decimal("10")
LOW_GROSS_MARGIN_PERCENT = Decimal("40")
LOW_MARKUP_PERCENT = Decimal("25")

HUNDRED = Decimal("100")

SENIOR_APPROVING_BODIES: frozenset[str] = frozenset(
    normalize_role(r) for r in ("BOD", "ExCom", "General Assembly")
)
CEO_ROLE = normalize_role("CEO")


# =========================================================================
# Facts and rules
# =========================================================================


@dataclass(frozen=True)
class ContractFacts:
    """Numeric view of a contract that rule predicates read."""

    value: Decimal
    capex: Decimal
    gross_margin: Decimal
    operating_profit_percent: Decimal
    markup_percent: Decimal
    capex_percentage: Decimal


@dataclass(frozen=True)
class Escalation:
    """A chain the engine builds itself instead of reading from the table."""

    metadata: ThresholdMetadata
    approvers: tuple[ApproverEntry, ...]
    reason: str


@dataclass(frozen=True)
class BandRule:
    """One row of a rule table: a labelled predicate and its outcome."""

    label: str
    when: Callable[[ContractFacts], bool]
    outcome: str | Escalation


def _always(facts: ContractFacts) -> bool:
    return True


COO_ESCALATION_CHAIN: tuple[ApproverEntry, ...] = (
    ApproverEntry("Marketing & Commercial", "X1"),
    ApproverEntry("CFO", "X2"),
    ApproverEntry("COO", "X3"),
)

CEO_ESCALATION_CHAIN: tuple[ApproverEntry, ...] = COO_ESCALATION_CHAIN + (
    ApproverEntry("CEO", "X4"),
)


def _coo_escalation(name: str, notes: str, reason: str) -> Escalation:
    return Escalation(
        metadata=ThresholdMetadata(
            key=ThresholdKey.ESCALATED_5M_30M,
            type=ThresholdType.COMMERCIAL,
            name=name,
            code="4.2.3.1.2",
            notes=notes,
        ),
        approvers=COO_ESCALATION_CHAIN,
        reason=reason,
    )


ESCALATE_CAPEX_AND_PROFIT = _coo_escalation(
    name="<= SAR 5M (Escalated - Multiple Factors)",
    notes=(
        "Capex exceeds 10% of TCV AND Operating Profit <= 10%. "
        "Per 4.2.3.1.3 requirements (fully loaded Operating Profit with net "
        "income > 10%), approval escalated to 4.2.3.1.2 level (COO)."
    ),
    reason="Capex exceeds 10% of TCV AND Operating Profit <= 10%",
)

ESCALATE_CAPEX_SHARE = _coo_escalation(
    name="<= SAR 5M but Capex > 10% TCV (Escalated)",
    notes=(
        "Capex exceeds 10% of TCV. Per 4.2.3.1.3 requirements, approval "
        "escalated to 4.2.3.1.2 level (COO)."
    ),
    reason="Capex exceeds 10% of TCV",
)

ESCALATE_LOW_PROFIT = _coo_escalation(
    name="<= SAR 5M but Operating Profit <= 10% (Escalated)",
    notes=(
        "Operating Profit is <= 10%. Per 4.2.3.1.3 requirements (fully loaded "
        "Operating Profit with net income > 10%), approval escalated to "
        "4.2.3.1.2 level (COO)."
    ),
    reason="Operating Profit <= 10%",
)


def _capex_share_exceeded(f: ContractFacts) -> bool:
    return f.capex_percentage > CAPEX_SHARE_LIMIT_PERCENT


def _low_profit(f: ContractFacts) -> bool:
    return f.operating_profit_percent <= LOW_OPERATING_PROFIT_PERCENT


# Non-binding RFQs/RFPs/quotes: value only, never affected by country risk.
NON_BINDING_RULES: tuple[BandRule, ...] = (
    BandRule("TCV > 50M", lambda f: f.value > M_50, ThresholdKey.NB_OVER_50M),
    BandRule("TCV 18.75M-50M", lambda f: f.value > M_18_75, ThresholdKey.NB_18M_50M),
    BandRule("TCV <= 18.75M", _always, ThresholdKey.NB_UNDER_18M),
)

# Committed work in a high-risk market, whatever the value.
HIGH_RISK_RULES: tuple[BandRule, ...] = (
    BandRule("high-risk market", _always, ThresholdKey.HIGH_RISK),
)

EPF_RULES: tuple[BandRule, ...] = (
    BandRule(
        "TCV <= 50M and capex <= 10M",
        lambda f: f.value <= M_50 and f.capex <= M_10,
        ThresholdKey.EPF_50M,
    ),
    BandRule("capex > 10M", lambda f: f.capex > M_10, ThresholdKey.CAPEX_OVER_10M),
    BandRule(
        "TCV 50M-200M",
        lambda f: M_50 < f.value <= M_200,
        ThresholdKey.BAND_50M_200M,
    ),
    BandRule("TCV > 200M", lambda f: f.value > M_200, ThresholdKey.OVER_200M),
)

# Service lines priced on markup (e.g. chemicals).
DIRECT_SALES_MARKUP_RULES: tuple[BandRule, ...] = (
    BandRule("4.2.2.1 TCV > 200M", lambda f: f.value > M_200, ThresholdKey.OVER_200M),
    BandRule("4.2.2.3 capex > 10M", lambda f: f.capex > M_10, ThresholdKey.CAPEX_OVER_10M),
    BandRule("4.2.2.2 TCV > 50M", lambda f: f.value > M_50, ThresholdKey.BAND_50M_200M),
    BandRule("4.2.3.1.1 capex 5M-10M", lambda f: f.capex > M_5, ThresholdKey.BAND_30M_50M),
    BandRule(
        "markup < 25%",
        lambda f: f.markup_percent < LOW_MARKUP_PERCENT,
        ThresholdKey.DS_MARKUP_LOW,
    ),
    BandRule("markup >= 25%", _always, ThresholdKey.DS_MARKUP_HIGH),
)

DIRECT_SALES_RULES: tuple[BandRule, ...] = (
    # Above 50M the commercial escalation bands apply as for standard work.
    BandRule("4.2.2.1 TCV > 200M", lambda f: f.value > M_200, ThresholdKey.OVER_200M),
    BandRule(
        "4.2.2.3 TCV > 50M, capex > 10M",
        lambda f: f.value > M_50 and f.capex > M_10,
        ThresholdKey.CAPEX_OVER_10M,
    ),
    BandRule("4.2.2.2 TCV 50M-200M", lambda f: f.value > M_50, ThresholdKey.BAND_50M_200M),
    BandRule(
        "gross margin < 40%",
        lambda f: f.gross_margin < LOW_GROSS_MARGIN_PERCENT,
        ThresholdKey.DS_LOW_MARGIN,
    ),
    BandRule("TCV 30M-50M", lambda f: f.value > M_30, ThresholdKey.DS_30M_50M),
    BandRule("TCV 18.75M-30M", lambda f: f.value > M_18_75, ThresholdKey.DS_18M_30M),
    BandRule("TCV 1.875M-18.75M", lambda f: f.value > M_1_875, ThresholdKey.DS_1M_18M),
    BandRule("TCV <= 1.875M", _always, ThresholdKey.DS_UNDER_1M),
)

STANDARD_RULES: tuple[BandRule, ...] = (
    # Band 1 (4.2.2.1)
    BandRule("TCV > 200M", lambda f: f.value > M_200, ThresholdKey.OVER_200M),
    # Band 2 (4.2.2.2)
    BandRule(
        "TCV 50M-200M, capex > 10M",
        lambda f: f.value > M_50 and f.capex > M_10,
        ThresholdKey.CAPEX_OVER_10M,
    ),
    BandRule("TCV 50M-200M", lambda f: f.value > M_50, ThresholdKey.BAND_50M_200M),
    # Band 3 (4.2.3.1.1)
    BandRule(
        "TCV 30M-50M, capex > 10M",
        lambda f: f.value > M_30 and f.capex > M_10,
        ThresholdKey.CAPEX_OVER_10M,
    ),
    BandRule("TCV 30M-50M", lambda f: f.value > M_30, ThresholdKey.BAND_30M_50M),
    # Bands 4 and 5 share the absolute capex overrides
    BandRule("TCV <= 30M, capex > 10M", lambda f: f.capex > M_10, ThresholdKey.CAPEX_OVER_10M),
    BandRule("TCV <= 30M, capex 5M-10M", lambda f: f.capex > M_5, ThresholdKey.BAND_30M_50M),
    # Band 4 (4.2.3.1.2)
    BandRule("TCV 5M-30M", lambda f: f.value > M_5, ThresholdKey.BAND_5M_30M),
    # Band 5 (4.2.3.1.3): percentage-based escalation to the COO level
    BandRule(
        "TCV <= 5M, capex > 10% of TCV and operating profit <= 10%",
        lambda f: _capex_share_exceeded(f) and _low_profit(f),
        ESCALATE_CAPEX_AND_PROFIT,
    ),
    BandRule("TCV <= 5M, capex > 10% of TCV", _capex_share_exceeded, ESCALATE_CAPEX_SHARE),
    BandRule("TCV <= 5M, operating profit <= 10%", _low_profit, ESCALATE_LOW_PROFIT),
    BandRule("TCV <= 5M", _always, ThresholdKey.UNDER_5M),
)

RULES_BY_CONTRACT_TYPE: dict[ContractType, tuple[BandRule, ...]] = {
    ContractType.NON_BINDING: NON_BINDING_RULES,
    ContractType.EPF: EPF_RULES,
    ContractType.DIRECT_SALES_MARKUP: DIRECT_SALES_MARKUP_RULES,
    ContractType.DIRECT_SALES: DIRECT_SALES_RULES,
    ContractType.STANDARD: STANDARD_RULES,
}


# =========================================================================
# Risk derivation
# =========================================================================


def capex_percentage(contract_value: Decimal, capex_value: Decimal) -> Decimal:
    """Capex as a percentage of contract value (0 when either is non-positive)."""
    if capex_value > ZERO and contract_value > ZERO:
        return capex_value / contract_value * HUNDRED
    return ZERO


def derive_risk_flags(
    contract: CalculatorInput,
    countries: Mapping[str, Country],
) -> CalculatorFlags:
    """Country and profitability flags; never escalated at this stage.

    An unknown country is neither high-risk nor special.
    """
    country = countries.get(contract.selected_country)
    pct = capex_percentage(contract.contract_value, contract.capex_value)
    return CalculatorFlags(
        is_high_risk=contract.manual_high_risk or (country is not None and country.is_high_risk),
        is_special_country=country is not None and country.is_special,
        is_capex_exceeds_10_percent=pct > CAPEX_SHARE_LIMIT_PERCENT,
        is_low_operating_profit=(
            contract.operating_profit_percent <= LOW_OPERATING_PROFIT_PERCENT
        ),
        capex_percentage=pct,
    )


def contract_facts(contract: CalculatorInput) -> ContractFacts:
    return ContractFacts(
        value=contract.contract_value,
        capex=contract.capex_value,
        gross_margin=contract.gross_margin,
        operating_profit_percent=contract.operating_profit_percent,
        markup_percent=contract.markup_percent,
        capex_percentage=capex_percentage(contract.contract_value, contract.capex_value),
    )


# =========================================================================
# Selection
# =========================================================================


def rules_for(contract_type: ContractType, is_high_risk: bool) -> tuple[BandRule, ...]:
    """Rule table governing a contract.

    Non-binding work ignores country risk; any other high-risk contract is
    routed by the high-risk table.
    """
    if contract_type is ContractType.NON_BINDING:
        return NON_BINDING_RULES
    if is_high_risk:
        return HIGH_RISK_RULES
    return RULES_BY_CONTRACT_TYPE[contract_type]


def select_rule(contract: CalculatorInput, flags: CalculatorFlags) -> BandRule | None:
    """First rule of the governing table whose predicate holds."""
    facts = contract_facts(contract)
    for rule in rules_for(contract.contract_type, flags.is_high_risk):
        if rule.when(facts):
            return rule
    return None


def select_outcome(
    contract: CalculatorInput,
    flags: CalculatorFlags,
    thresholds: Mapping[str, Threshold],
) -> Outcome:
    """Resolve the selected rule against the threshold table."""
    rule = select_rule(contract, flags)
    if rule is None:
        return None
    if isinstance(rule.outcome, Escalation):
        return Synthesized(
            metadata=rule.outcome.metadata,
            approvers=rule.outcome.approvers,
            reason=rule.outcome.reason,
        )
    threshold = thresholds.get(rule.outcome)
    if threshold is None:
        logger.warning(
            "threshold_key_missing",
            extra={"threshold_key": rule.outcome, "rule": rule.label},
        )
        return None
    return Resolved(threshold)


# =========================================================================
# Special-country escalation
# =========================================================================


def has_senior_approval(approvers: tuple[ApproverEntry, ...] | list[ApproverEntry]) -> bool:
    """True if a board-level body approves, or the CEO approves at a numbered level."""
    for approver in approvers:
        token = parse_action_token(approver.action)
        if token.group != APPROVE:
            continue
        role = normalize_role(approver.role)
        if role in SENIOR_APPROVING_BODIES:
            return True
        if role == CEO_ROLE and token.level not in (NO_LEVEL, FALLBACK_LEVEL):
            return True
    return False


def apply_special_country_escalation(
    outcome: Outcome,
    contract: CalculatorInput,
    flags: CalculatorFlags,
) -> Outcome:
    """Replace the chain with the CEO chain for special countries.

    Applies only to committed work (not non-binding) in a special country
    whose resolved chain lacks a senior approval.
    """
    if outcome is None or not flags.is_special_country:
        return outcome
    if contract.contract_type is ContractType.NON_BINDING:
        return outcome
    if has_senior_approval(outcome.approvers):
        return outcome

    country = contract.selected_country
    base = outcome.metadata
    return Synthesized(
        metadata=ThresholdMetadata(
            key=ThresholdKey.SPECIAL_COUNTRY_CEO,
            type=base.type,
            name=f"{base.name} (Special Country - CEO Required)",
            code=base.code,
            notes=(
                f"{base.notes or ''} SPECIAL COUNTRY: {country} requires CEO "
                "approval regardless of contract value per DOA special country "
                "designation."
            ),
        ),
        approvers=CEO_ESCALATION_CHAIN,
        reason=f"Special Country: {country} requires CEO approval",
    )


# =========================================================================
# Evaluation
# =========================================================================


@traced_engine("decision", "1.0", fingerprint_fields=("contract", "count_bare_x"))
def evaluate_contract(
    *,
    contract: CalculatorInput,
    thresholds: Mapping[str, Threshold],
    countries: Mapping[str, Country],
    count_bare_x: bool,
) -> CalculatorResult:
    """Evaluate one contract against a snapshot of reference data.

    Args:
        contract: Contract attributes.
        thresholds: Threshold table keyed by threshold key.
        countries: Country table keyed by name.
        count_bare_x: When False, bare ``X`` steps move to
            ``excluded_approvers``.

    Returns:
        CalculatorResult with canonical approvers.
    """
    flags = derive_risk_flags(contract, countries)

    if contract.contract_value <= ZERO:
        return CalculatorResult(threshold=None, flags=flags)

    outcome = select_outcome(contract, flags, thresholds)
    outcome = apply_special_country_escalation(outcome, contract, flags)

    if outcome is None:
        return CalculatorResult(threshold=None, flags=flags)

    chain = canonicalize_chain(list(outcome.approvers))
    approvers, excluded = split_bare_approvals(chain, count_bare_x)

    if isinstance(outcome, Synthesized):
        flags = replace(flags, was_escalated=True, escalation_reason=outcome.reason)

    return CalculatorResult(
        threshold=outcome.metadata,
        approvers=tuple(approvers),
        excluded_approvers=tuple(excluded),
        flags=flags,
    )
