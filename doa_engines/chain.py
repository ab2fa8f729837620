"""
doa_engines.chain -- Approver chain canonicalization.

Responsibility:
    Deduplicate and totally order approval chains collected from any table
    (calculator thresholds, browse items, raw DOA items) so the same chain
    always renders the same way.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import doa_kernel/domain/ types and sibling engine modules.

Invariants enforced:
    - Dedup identity is (normalized role, token text without star); the
      first occurrence in input order wins and later duplicates are
      dropped, not merged.
    - Ordering: group priority (I < R < E < X < N < anything else), then
      ascending level, then unstarred before starred, then input order.
    - Idempotence: canonicalizing a canonical chain returns it unchanged.
    - Inputs are never mutated; every returned entry is a copy.

Failure modes:
    - None.  Empty or missing input yields ``[]``; malformed actions sort
      last via the fallback token.
"""

from __future__ import annotations

import copy
import dataclasses
from collections.abc import Iterable, Mapping
from typing import Any, TypeVar

from doa_kernel.domain.approvers import ApproverEntry, normalize_role
from doa_kernel.domain.tokens import APPROVE, ActionToken

from doa_engines.tokens import parse_action_token

T = TypeVar("T")

BARE_APPROVAL = APPROVE


def _field(entry: Any, name: str) -> Any:
    if isinstance(entry, Mapping):
        return entry.get(name)
    return getattr(entry, name, None)


def _with_action(entry: T, action: str) -> T:
    if isinstance(entry, Mapping):
        updated = dict(entry)
        updated["action"] = action
        return updated  # type: ignore[return-value]
    if dataclasses.is_dataclass(entry) and not isinstance(entry, type):
        return dataclasses.replace(entry, action=action)
    clone = copy.copy(entry)
    clone.action = action  # type: ignore[attr-defined]
    return clone


def chain_dedup_key(role: str | None, token: ActionToken) -> str:
    """Identity of a chain step: normalized role and star-less token text."""
    return f"{normalize_role(role)}|{token.comparison_form}"


def chain_sort_key(token: ActionToken, index: int) -> tuple[int, int, int, int]:
    """Total order over parsed chain steps; ``index`` is the input position."""
    return (token.group_priority, token.level, 1 if token.has_star else 0, index)


def canonicalize_chain(entries: Iterable[T] | None) -> list[T]:
    """Deduplicate and order an approval chain.

    Args:
        entries: ``ApproverEntry`` objects, mappings, or any object with
            ``role`` and ``action`` attributes.

    Returns:
        New list of copies with ``action`` replaced by the canonical token
        text; every other field is preserved.
    """
    if not entries:
        return []

    parsed = [
        (entry, parse_action_token(_field(entry, "action")), index)
        for index, entry in enumerate(entries)
    ]

    seen: set[str] = set()
    deduped = []
    for entry, token, index in parsed:
        key = chain_dedup_key(_field(entry, "role"), token)
        if key in seen:
            continue
        seen.add(key)
        deduped.append((entry, token, index))

    deduped.sort(key=lambda item: chain_sort_key(item[1], item[2]))

    return [_with_action(entry, token.original) for entry, token, _ in deduped]


def split_bare_approvals(
    entries: Iterable[T],
    count_bare_x: bool,
) -> tuple[list[T], list[T]]:
    """Separate bare ``X`` steps from a canonical chain.

    When ``count_bare_x`` is enabled nothing is excluded.  Otherwise every
    entry whose canonical action is exactly ``X`` moves to the excluded
    list; relative order is preserved in both lists.
    """
    entries = list(entries)
    if count_bare_x:
        return entries, []
    kept = [e for e in entries if _field(e, "action") != BARE_APPROVAL]
    excluded = [e for e in entries if _field(e, "action") == BARE_APPROVAL]
    return kept, excluded


def chain_from_role_actions(role_actions: Mapping[str, str | None]) -> list[ApproverEntry]:
    """Convert a raw DOA item ``{role: action}`` mapping into chain entries.

    Roles with an empty action are not part of the chain.  The result is
    not canonicalized; pass it through ``canonicalize_chain``.
    """
    chain: list[ApproverEntry] = []
    for role, action in role_actions.items():
        if action is None or not str(action).strip():
            continue
        chain.append(ApproverEntry(role=role, action=str(action).strip()))
    return chain
