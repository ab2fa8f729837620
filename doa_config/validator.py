"""
Reference Set Validator (``doa_config.validator``).

Responsibility
--------------
Validates a parsed ``ReferenceSet`` before it is served or seeded, so
that structural mistakes in the YAML surface at load time instead of as
wrong approval chains at evaluation time.

Architecture position
---------------------
**Config layer** -- build-time validation.  Called by
``doa_config.get_reference_set`` after loading.

Invariants enforced
-------------------
* Threshold keys are unique.
* Threshold types are known.
* Every approver has a role and a well-formed action token.
* Country names are unique and risk levels are known.
* Every threshold key the decision rules can select is defined
  (warning only: a missing key resolves to no threshold at runtime).

Failure modes
-------------
* Validation errors (``ReferenceValidationResult.errors``)  -> the set
  MUST NOT be used.
* Validation warnings  -> the set may be used but should be reviewed.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field

from doa_config.schema import ReferenceSet
from doa_engines.chain_validation import ChainIssueKind, validate_chains
from doa_engines.decision import HIGH_RISK_RULES, RULES_BY_CONTRACT_TYPE
from doa_engines.tokens import is_well_formed_token
from doa_kernel.domain.reference import RiskLevel, ThresholdType

_RISK_LEVELS = frozenset(level.value for level in RiskLevel)


@dataclass
class ReferenceValidationResult:
    """
    Result of reference set validation.

    Contract
    --------
    * ``is_valid`` returns ``True`` only when ``errors`` is empty.
    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)


def selectable_threshold_keys() -> frozenset[str]:
    """Threshold keys that some decision rule can resolve from the table."""
    tables = list(RULES_BY_CONTRACT_TYPE.values()) + [HIGH_RISK_RULES]
    return frozenset(
        rule.outcome
        for table in tables
        for rule in table
        if isinstance(rule.outcome, str)
    )


def validate_reference_set(ref_set: ReferenceSet) -> ReferenceValidationResult:
    """
    Validate a reference set.

    Postconditions:
        - Returns a result whose ``errors`` list is empty iff the set is
          safe to serve or seed.
    """
    result = ReferenceValidationResult()
    _validate_threshold_keys(ref_set, result)
    _validate_threshold_types(ref_set, result)
    _validate_approvers(ref_set, result)
    _validate_countries(ref_set, result)
    _validate_rule_coverage(ref_set, result)
    return result


def _validate_threshold_keys(ref_set: ReferenceSet, result: ReferenceValidationResult) -> None:
    counts = Counter(t.key for t in ref_set.thresholds)
    for key, count in sorted(counts.items()):
        if count > 1:
            result.add_error(f"Duplicate threshold key '{key}' ({count} definitions)")


def _validate_threshold_types(ref_set: ReferenceSet, result: ReferenceValidationResult) -> None:
    for threshold in ref_set.thresholds:
        if threshold.type not in ThresholdType.ALL:
            result.add_error(
                f"Threshold '{threshold.key}' has unknown type '{threshold.type}'"
            )


def _validate_approvers(ref_set: ReferenceSet, result: ReferenceValidationResult) -> None:
    for threshold in ref_set.thresholds:
        if not threshold.approvers:
            result.add_warning(f"Threshold '{threshold.key}' has no approvers")
        for approver in threshold.approvers:
            if not approver.role.strip():
                result.add_error(f"Threshold '{threshold.key}' has an approver without a role")
            if not is_well_formed_token(approver.action):
                result.add_error(
                    f"Threshold '{threshold.key}': role '{approver.role}' has "
                    f"malformed action '{approver.action}'"
                )

    # Duplicate pairs are absorbed by canonicalization; report them for review.
    items = [
        {
            "code": t.key,
            "approval_chain": [{"role": a.role, "action": a.action} for a in t.approvers],
        }
        for t in ref_set.thresholds
    ]
    for issue in validate_chains(items):
        if issue.issue is ChainIssueKind.DUPLICATE_PAIR:
            result.add_warning(f"Threshold '{issue.code}': {issue.detail}")


def _validate_countries(ref_set: ReferenceSet, result: ReferenceValidationResult) -> None:
    counts = Counter(c.name for c in ref_set.countries)
    for name, count in sorted(counts.items()):
        if count > 1:
            result.add_error(f"Country '{name}' is classified {count} times")
    for country in ref_set.countries:
        if country.risk_level not in _RISK_LEVELS:
            result.add_error(
                f"Country '{country.name}' has unknown risk level '{country.risk_level}'"
            )


def _validate_rule_coverage(ref_set: ReferenceSet, result: ReferenceValidationResult) -> None:
    defined = {t.key for t in ref_set.thresholds}
    for key in sorted(selectable_threshold_keys() - defined):
        result.add_warning(f"Threshold key '{key}' is selectable but not defined")
