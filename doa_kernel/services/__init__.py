"""
Kernel services.

Services own I/O: reading reference data through a ``ReferenceSource``,
caching it, and running the pure decision engine over the snapshot.
"""

from doa_kernel.services.calculator_service import CalculatorService
from doa_kernel.services.reference_source import (
    InMemoryReferenceSource,
    SqlReferenceSource,
)
from doa_kernel.services.threshold_store import ThresholdStore

__all__ = [
    "CalculatorService",
    "InMemoryReferenceSource",
    "SqlReferenceSource",
    "ThresholdStore",
]
