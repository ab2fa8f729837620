"""
Action token value object (``doa_kernel.domain.tokens``).

Responsibility
--------------
Structured form of a short approval-action string such as ``X3*``, ``EX``
or ``R``.  Parsing and rendering live in ``doa_engines.tokens``; this
module only defines the value object and the ordering constants shared by
every chain consumer.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* Group priority is fixed: Initiate < Review < Endorse < Approve < Notify,
  with unrecognized groups after all of them.
* ``EX`` is the highest endorsement: group ``E`` at ``EX_LEVEL``, above any
  realistic numbered ``E`` level and below every ``X`` token.
* A token without digits sits at ``NO_LEVEL`` and therefore after every
  numbered token of its group.
"""

from __future__ import annotations

from dataclasses import dataclass

INITIATE = "I"
REVIEW = "R"
ENDORSE = "E"
APPROVE = "X"
NOTIFY = "N"

GROUPS: tuple[str, ...] = (INITIATE, REVIEW, ENDORSE, APPROVE, NOTIFY)

GROUP_PRIORITY: dict[str, int] = {
    INITIATE: 0,
    REVIEW: 1,
    ENDORSE: 2,
    APPROVE: 3,
    NOTIFY: 4,
}
UNKNOWN_GROUP_PRIORITY = 5

FALLBACK_GROUP = "Z"

NO_LEVEL = 100
EX_LEVEL = 10
FALLBACK_LEVEL = 999

COMPOUND_ENDORSE = "EX"
STAR = "*"


@dataclass(frozen=True)
class ActionToken:
    """Parsed approval action.

    ``has_star`` marks a conditional approval; it is ignored for ordering
    and deduplication but kept in ``original`` for display.
    """

    group: str
    level: int
    original: str
    has_star: bool = False

    @property
    def group_priority(self) -> int:
        return GROUP_PRIORITY.get(self.group, UNKNOWN_GROUP_PRIORITY)

    @property
    def is_numbered(self) -> bool:
        """True when the token carried an explicit level (``X3``, not ``X``)."""
        return self.group in GROUPS and self.level != NO_LEVEL

    @property
    def is_bare_approval(self) -> bool:
        return self.group == APPROVE and self.level == NO_LEVEL

    @property
    def comparison_form(self) -> str:
        """Upper-cased token text with stars stripped, used for dedup."""
        return self.original.upper().replace(STAR, "")
