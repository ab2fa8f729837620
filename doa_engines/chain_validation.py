"""
doa_engines.chain_validation -- Data-quality diagnostics for approval chains.

Responsibility:
    Report, without modifying anything, the chain defects that
    canonicalization would otherwise silently absorb: chains with no
    parseable token, individual unrecognized tokens, and exact duplicate
    (role, action) pairs.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Failure modes:
    - None.  Items without a chain list are skipped.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from doa_engines.tokens import is_well_formed_token, matches_token_pattern


class ChainIssueKind(str, Enum):
    CHAIN_PARSES_EMPTY = "chain_parses_empty"
    UNRECOGNIZED_TOKEN = "unrecognized_token"
    DUPLICATE_PAIR = "duplicate_pair"


@dataclass(frozen=True)
class ChainIssue:
    """One diagnostic for one DOA item."""

    code: str
    issue: ChainIssueKind
    detail: str

    def to_dict(self) -> dict[str, str]:
        return {"code": self.code, "issue": self.issue.value, "detail": self.detail}


def _get(obj: Any, *names: str) -> Any:
    for name in names:
        if isinstance(obj, Mapping):
            if name in obj:
                return obj[name]
        elif hasattr(obj, name):
            return getattr(obj, name)
    return None


def validate_chains(items: Iterable[Any] | None) -> list[ChainIssue]:
    """Run chain diagnostics over DOA/browse items.

    Each item needs a ``code`` and an ``approval_chain`` (or
    ``approvalChain``) list of entries with ``role`` and ``action``.

    Returns:
        Issues in item order; an empty list means all clear.
    """
    if items is None:
        return []

    issues: list[ChainIssue] = []
    for item in items:
        chain = _get(item, "approval_chain", "approvalChain")
        if not isinstance(chain, (list, tuple)):
            continue
        code = _get(item, "code") or ""
        issues.extend(_check_chain(code, chain))
    return issues


def _check_chain(code: str, chain: list | tuple) -> list[ChainIssue]:
    issues: list[ChainIssue] = []

    if chain and not any(matches_token_pattern(_get(a, "action")) for a in chain):
        issues.append(ChainIssue(
            code=code,
            issue=ChainIssueKind.CHAIN_PARSES_EMPTY,
            detail=f"Chain has {len(chain)} entries but no valid tokens",
        ))

    for approver in chain:
        action = _get(approver, "action")
        if not action:
            continue
        if not is_well_formed_token(action):
            issues.append(ChainIssue(
                code=code,
                issue=ChainIssueKind.UNRECOGNIZED_TOKEN,
                detail=f'Role "{_get(approver, "role")}" has unrecognized token "{action}"',
            ))

    seen: set[str] = set()
    for approver in chain:
        key = f"{_get(approver, 'role')}:{_get(approver, 'action')}"
        if key in seen:
            issues.append(ChainIssue(
                code=code,
                issue=ChainIssueKind.DUPLICATE_PAIR,
                detail=f"Duplicate (role, token) pair: {key}",
            ))
        seen.add(key)

    return issues
