"""ORM models for the DOA kernel."""

from doa_kernel.models.reference import (
    AppSettingModel,
    CountryModel,
    RoleModel,
    ThresholdApproverModel,
    ThresholdModel,
)

__all__ = [
    "AppSettingModel",
    "CountryModel",
    "RoleModel",
    "ThresholdApproverModel",
    "ThresholdModel",
]
