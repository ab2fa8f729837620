"""
Module: doa_kernel.models.reference
Responsibility: ORM persistence for the reference data the calculator reads:
    roles, thresholds with their ordered approver rows, country risk
    classifications and application settings.

Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Threshold keys are unique; approver rows are ordered by sort_order.
    - Country risk_level is one of safe / special / high_risk (DB check).
    - Setting keys are unique; values are JSON documents
      (boolean toggles are stored as {"enabled": bool}).

Failure modes:
    - IntegrityError on duplicate threshold key, role name, country name
      or setting key.

Audit relevance:
    Every admin write to these tables must be followed by
    ``CalculatorService.invalidate()`` so the next evaluation reads the
    committed rows.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, CheckConstraint, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from doa_kernel.db.base import Base, TrackedBase, UUIDString


class RoleModel(Base):
    """An organizational role that can appear in approval chains."""

    __tablename__ = "roles"

    name: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)
    display_order: Mapped[int] = mapped_column(nullable=False, default=0)


class ThresholdModel(TrackedBase):
    """A value-based approval tier.

    ``threshold_key`` is the stable identifier the decision engine looks up
    (e.g. ``over-200m``); it is never shown to users.
    """

    __tablename__ = "thresholds"

    __table_args__ = (
        Index("ix_thresholds_sort_order", "sort_order"),
    )

    threshold_key: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(300), nullable=False)
    code: Mapped[str] = mapped_column(String(50), nullable=False)
    min_value: Mapped[Decimal | None] = mapped_column(nullable=True)
    max_value: Mapped[Decimal | None] = mapped_column(nullable=True)
    condition_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    sort_order: Mapped[int] = mapped_column(nullable=False, default=0)

    approvers: Mapped[list[ThresholdApproverModel]] = relationship(
        back_populates="threshold",
        order_by="ThresholdApproverModel.sort_order",
        cascade="all, delete-orphan",
    )


class ThresholdApproverModel(Base):
    """One step of a threshold's approval chain."""

    __tablename__ = "threshold_approvers"

    __table_args__ = (
        Index("ix_threshold_approvers_threshold", "threshold_id", "sort_order"),
    )

    threshold_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("thresholds.id", ondelete="CASCADE"), nullable=False,
    )
    role_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("roles.id"), nullable=False,
    )
    action: Mapped[str] = mapped_column(String(20), nullable=False)
    label: Mapped[str | None] = mapped_column(String(100), nullable=True)
    sort_order: Mapped[int] = mapped_column(nullable=False, default=0)

    threshold: Mapped[ThresholdModel] = relationship(back_populates="approvers")
    role: Mapped[RoleModel] = relationship()


class CountryModel(TrackedBase):
    """A country and its DOA risk classification."""

    __tablename__ = "countries"

    __table_args__ = (
        CheckConstraint(
            "risk_level IN ('safe', 'special', 'high_risk')",
            name="ck_countries_valid_risk_level",
        ),
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)
    risk_level: Mapped[str] = mapped_column(String(20), nullable=False, default="safe")


class AppSettingModel(TrackedBase):
    """A keyed application setting stored as a JSON document."""

    __tablename__ = "app_settings"

    key: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    value: Mapped[Any] = mapped_column(JSON, nullable=True)
