"""Approver chain entries."""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_LABEL = "Approve"


@dataclass(frozen=True)
class ApproverEntry:
    """One (role, action) step of an approval chain.

    ``role`` carries no identity beyond string equality after
    ``normalize_role``.  ``action`` is a raw token string (``X3*``, ``EX``).
    """

    role: str
    action: str
    label: str | None = DEFAULT_LABEL

    def to_dict(self) -> dict[str, str | None]:
        return {"role": self.role, "action": self.action, "label": self.label}


def normalize_role(role: str | None) -> str:
    """Trim, collapse internal whitespace and case-fold a role name."""
    if not role:
        return ""
    return " ".join(role.split()).casefold()
