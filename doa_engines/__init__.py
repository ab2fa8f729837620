"""
Module: doa_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    engines: the action-token grammar, the chain canonicalizer, the
    contract decision engine and chain diagnostics.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import doa_kernel/domain/ (and sibling engine modules).
    MUST NOT import doa_kernel.services, doa_kernel.db or doa_config.

Invariants enforced:
    - Determinism: identical inputs always produce identical outputs.
    - Totality: the token grammar and canonicalizer never raise.
    - Decimal-only arithmetic for contract amounts and percentages.

Usage:
    from doa_engines import canonicalize_chain, parse_action_token
    from doa_engines.decision import evaluate_contract
"""

from doa_engines.chain import (
    canonicalize_chain,
    chain_from_role_actions,
    split_bare_approvals,
)
from doa_engines.chain_validation import ChainIssue, ChainIssueKind, validate_chains
from doa_engines.decision import (
    BandRule,
    apply_special_country_escalation,
    derive_risk_flags,
    evaluate_contract,
    has_senior_approval,
    select_outcome,
    select_rule,
)
from doa_engines.tokens import (
    is_well_formed_token,
    matches_token_pattern,
    parse_action_token,
    render_action_token,
)

__all__ = [
    # Token grammar
    "is_well_formed_token",
    "matches_token_pattern",
    "parse_action_token",
    "render_action_token",
    # Chains
    "canonicalize_chain",
    "chain_from_role_actions",
    "split_bare_approvals",
    # Diagnostics
    "ChainIssue",
    "ChainIssueKind",
    "validate_chains",
    # Decision engine
    "BandRule",
    "apply_special_country_escalation",
    "derive_risk_flags",
    "evaluate_contract",
    "has_senior_approval",
    "select_outcome",
    "select_rule",
]
