"""
Pure domain layer.

This module contains pure value objects with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- I/O

All domain objects are immutable and deterministic.
"""

from doa_kernel.domain.approvers import DEFAULT_LABEL, ApproverEntry, normalize_role
from doa_kernel.domain.calculator import (
    CalculatorFlags,
    CalculatorInput,
    CalculatorResult,
    ContractType,
    Outcome,
    Resolved,
    Synthesized,
)
from doa_kernel.domain.reference import (
    COUNT_BARE_X_SETTING,
    Country,
    RiskLevel,
    Threshold,
    ThresholdKey,
    ThresholdMetadata,
    ThresholdType,
)
from doa_kernel.domain.source import ReferenceSource
from doa_kernel.domain.tokens import ActionToken

__all__ = [
    # Tokens and chains
    "ActionToken",
    "ApproverEntry",
    "DEFAULT_LABEL",
    "normalize_role",
    # Reference data
    "COUNT_BARE_X_SETTING",
    "Country",
    "ReferenceSource",
    "RiskLevel",
    "Threshold",
    "ThresholdKey",
    "ThresholdMetadata",
    "ThresholdType",
    # Calculator
    "CalculatorFlags",
    "CalculatorInput",
    "CalculatorResult",
    "ContractType",
    "Outcome",
    "Resolved",
    "Synthesized",
]
