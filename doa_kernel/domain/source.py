"""Reference data source protocol."""

from __future__ import annotations

from typing import Protocol

from doa_kernel.domain.reference import Country, Threshold


class ReferenceSource(Protocol):
    """Pluggable read-only access to thresholds, countries and settings.

    Implementations must be side-effect free.  Errors propagate to the
    caller unchanged.
    """

    def fetch_thresholds_with_approvers(self) -> list[Threshold]:
        """Return every threshold with its ordered approver chain."""
        ...

    def fetch_countries(self) -> list[Country]:
        """Return every country with its risk level."""
        ...

    def fetch_boolean_setting(self, key: str) -> bool:
        """Return a boolean application setting (False when unset)."""
        ...
