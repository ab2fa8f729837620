"""
Config -> Kernel Bridges.

Functions that turn a ``ReferenceSet`` into kernel inputs: an in-memory
reference source, or rows in the reference tables.  They live in
doa_config (the producer) because the kernel must never import doa_config.

Usage:
    from doa_config import get_reference_set
    from doa_config.bridges import reference_source_from_set, seed_reference_set

    ref_set = get_reference_set()
    source = reference_source_from_set(ref_set)

    with session_scope() as session:
        seed_reference_set(session, ref_set)
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from doa_config.schema import ReferenceSet
from doa_kernel.logging_config import get_logger
from doa_kernel.models.reference import (
    AppSettingModel,
    CountryModel,
    RoleModel,
    ThresholdApproverModel,
    ThresholdModel,
)
from doa_kernel.services.reference_source import InMemoryReferenceSource, setting_enabled

logger = get_logger("config.bridges")


@dataclass(frozen=True)
class SeedSummary:
    roles_created: int
    thresholds_created: int
    approvers_created: int
    countries_created: int
    settings_created: int


def reference_source_from_set(ref_set: ReferenceSet) -> InMemoryReferenceSource:
    """Serve a reference set directly, without a database."""
    return InMemoryReferenceSource(
        thresholds=[t.to_threshold() for t in ref_set.thresholds],
        countries=[c.to_country() for c in ref_set.countries],
        settings={s.key: setting_enabled(s.value) for s in ref_set.settings},
    )


def seed_reference_set(
    session: Session,
    ref_set: ReferenceSet,
    actor: str | None = None,
) -> SeedSummary:
    """
    Insert a reference set into empty reference tables.

    Roles that already exist (matched by name) are reused.  The session is
    flushed but not committed; the caller owns the transaction.

    Raises:
        sqlalchemy.exc.IntegrityError: if a threshold key, country or
            setting already exists.
    """
    roles = {
        role.name: role
        for role in session.execute(select(RoleModel)).scalars().all()
    }
    roles_created = 0

    def role_for(name: str) -> RoleModel:
        nonlocal roles_created
        role = roles.get(name)
        if role is None:
            role = RoleModel(name=name, display_order=len(roles))
            session.add(role)
            roles[name] = role
            roles_created += 1
        return role

    approvers_created = 0
    for position, threshold_def in enumerate(ref_set.thresholds):
        threshold = ThresholdModel(
            threshold_key=threshold_def.key,
            type=threshold_def.type,
            name=threshold_def.name,
            code=threshold_def.code,
            notes=threshold_def.notes,
            min_value=threshold_def.min_value,
            max_value=threshold_def.max_value,
            condition_text=threshold_def.condition,
            sort_order=position,
            updated_by=actor,
        )
        for step, approver_def in enumerate(threshold_def.approvers):
            threshold.approvers.append(
                ThresholdApproverModel(
                    role=role_for(approver_def.role),
                    action=approver_def.action,
                    label=approver_def.label,
                    sort_order=step,
                )
            )
            approvers_created += 1
        session.add(threshold)

    for country_def in ref_set.countries:
        session.add(
            CountryModel(
                name=country_def.name,
                risk_level=country_def.risk_level,
                updated_by=actor,
            )
        )

    for setting_def in ref_set.settings:
        session.add(AppSettingModel(key=setting_def.key, value=setting_def.value, updated_by=actor))

    session.flush()

    summary = SeedSummary(
        roles_created=roles_created,
        thresholds_created=len(ref_set.thresholds),
        approvers_created=approvers_created,
        countries_created=len(ref_set.countries),
        settings_created=len(ref_set.settings),
    )
    logger.info(
        "reference_set_seeded",
        extra={
            "reference_set": ref_set.name,
            "checksum": ref_set.checksum,
            "roles_created": summary.roles_created,
            "thresholds_created": summary.thresholds_created,
            "approvers_created": summary.approvers_created,
            "countries_created": summary.countries_created,
            "settings_created": summary.settings_created,
        },
    )
    return summary
