"""
doa_engines.tokens -- Approval action token grammar.

Responsibility:
    Parse short approval-action strings (``X3*``, ``EX``, ``R``) into
    ``ActionToken`` values and render them back to their canonical text.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import doa_kernel/domain/ types.

Invariants enforced:
    - Totality: ``parse_action_token`` never raises.  Unparseable input
      degrades to a low-priority fallback token instead of being rejected,
      so legacy chains still order best-effort.
    - Idempotent normalization: for any well-formed input,
      ``parse_action_token(render_action_token(t)) == t``.

Grammar:
    token    := group digits? "*"?  |  "EX" "*"?
    group    := I | R | E | X | N
    Whitespace is ignored and letters are case-insensitive.
"""

from __future__ import annotations

import re

from doa_kernel.domain.tokens import (
    COMPOUND_ENDORSE,
    ENDORSE,
    EX_LEVEL,
    FALLBACK_GROUP,
    FALLBACK_LEVEL,
    NO_LEVEL,
    STAR,
    ActionToken,
)

_TOKEN_RE = re.compile(r"^([IREXN])(\d*)$")
_WELL_FORMED_RE = re.compile(r"^[IREXN]\d*\*?$", re.IGNORECASE)
_LEADING_LETTER_RE = re.compile(r"^([A-Z])")
_DIGITS_RE = re.compile(r"(\d+)")
_WHITESPACE_RE = re.compile(r"\s+")


def _strip_whitespace(value: str) -> str:
    return _WHITESPACE_RE.sub("", value)


def render_action_token(token: ActionToken) -> str:
    """Canonical text of a token: group, level digits if any, star if any.

    ``E`` at ``EX_LEVEL`` renders as ``EX`` rather than ``E10``.
    """
    star = STAR if token.has_star else ""
    if token.group == ENDORSE and token.level == EX_LEVEL:
        return COMPOUND_ENDORSE + star
    level = "" if token.level == NO_LEVEL else str(token.level)
    return f"{token.group}{level}{star}"


def parse_action_token(action: str | None) -> ActionToken:
    """Parse an approval action string.

    Args:
        action: Raw action text, e.g. ``"X1"``, ``"e3 *"``, ``"EX"``.

    Returns:
        ActionToken.  ``None`` or non-string input yields
        ``ActionToken("Z", 999, "")``; unrecognized text keeps its first
        letter (or ``Z``) and first digit run (or 999).
    """
    if not action or not isinstance(action, str):
        return ActionToken(
            group=FALLBACK_GROUP,
            level=FALLBACK_LEVEL,
            original=action if isinstance(action, str) else "",
            has_star=False,
        )

    compact = _strip_whitespace(action)
    upper = compact.upper()
    has_star = STAR in upper
    normalized = upper.replace(STAR, "")

    if normalized == COMPOUND_ENDORSE:
        token = ActionToken(ENDORSE, EX_LEVEL, "", has_star)
        return _with_canonical_text(token)

    match = _TOKEN_RE.match(normalized)
    if match is None:
        letter = _LEADING_LETTER_RE.match(normalized)
        digits = _DIGITS_RE.search(normalized)
        return ActionToken(
            group=letter.group(1) if letter else FALLBACK_GROUP,
            level=int(digits.group(1)) if digits else FALLBACK_LEVEL,
            original=upper if has_star else compact,
            has_star=has_star,
        )

    group, digits = match.groups()
    token = ActionToken(group, int(digits) if digits else NO_LEVEL, "", has_star)
    return _with_canonical_text(token)


def matches_token_pattern(action: str | None) -> bool:
    """True for ``[IREXN]\\d*\\*?`` only (any case/spacing); ``EX`` does not match."""
    if not action or not isinstance(action, str):
        return False
    return _WELL_FORMED_RE.match(_strip_whitespace(action)) is not None


def is_well_formed_token(action: str | None) -> bool:
    """True for ``[IREXN]\\d*\\*?``, ``EX`` and ``EX*`` (any case/spacing)."""
    if not action or not isinstance(action, str):
        return False
    compact = _strip_whitespace(action).upper()
    if compact in (COMPOUND_ENDORSE, COMPOUND_ENDORSE + STAR):
        return True
    return matches_token_pattern(compact)


def _with_canonical_text(token: ActionToken) -> ActionToken:
    return ActionToken(
        group=token.group,
        level=token.level,
        original=render_action_token(token),
        has_star=token.has_star,
    )
