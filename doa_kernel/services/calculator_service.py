"""
CalculatorService - Resolves the DOA approval chain for a contract.

Responsibility:
    Load the reference snapshot (thresholds, countries, the bare-X
    setting), hand it to the pure decision engine and log the outcome.
    Also serves the reference listings used by browse screens.

Architecture position:
    Kernel > Services.  Imperative shell around ``doa_engines.decision``.

Invariants enforced:
    - The engine sees one snapshot per evaluation: both tables are read
      from the store before the engine runs.
    - ``invalidate()`` must be called after every admin write to
      thresholds, approver rows, countries or the bare-X setting.

Failure modes:
    - Source errors propagate from ``evaluate`` and the listing methods.
    - InvalidCalculatorInputError when ``evaluate`` is given a raw mapping
      with bad values.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from uuid import uuid4

from doa_engines.decision import evaluate_contract
from doa_kernel.domain.calculator import CalculatorInput, CalculatorResult
from doa_kernel.domain.reference import COUNT_BARE_X_SETTING, Country, Threshold
from doa_kernel.domain.source import ReferenceSource
from doa_kernel.logging_config import LogContext, get_logger
from doa_kernel.services.threshold_store import ThresholdStore

logger = get_logger("services.calculator")


class CalculatorService:
    """
    Entry point for contract evaluation.

    Usage:
        source = SqlReferenceSource(get_session_factory())
        service = CalculatorService(ThresholdStore(source), source)
        result = service.evaluate(CalculatorInput(contract_value=Decimal("7500000")))
    """

    def __init__(self, store: ThresholdStore, source: ReferenceSource | None = None):
        self._store = store
        self._source = source if source is not None else store.source

    @classmethod
    def from_source(cls, source: ReferenceSource) -> CalculatorService:
        return cls(ThresholdStore(source), source)

    @property
    def store(self) -> ThresholdStore:
        return self._store

    def evaluate(self, contract: CalculatorInput | Mapping[str, Any]) -> CalculatorResult:
        """
        Resolve the threshold and approver chain for one contract.

        Args:
            contract: A CalculatorInput, or a raw mapping accepted by
                ``CalculatorInput.from_mapping``.

        Returns:
            CalculatorResult with the canonical, display-filtered chain.
        """
        if not isinstance(contract, CalculatorInput):
            contract = CalculatorInput.from_mapping(contract)

        with LogContext.bind(evaluation_id=str(uuid4())):
            thresholds = self._store.load_thresholds()
            countries = self._store.load_countries()
            count_bare_x = self._source.fetch_boolean_setting(COUNT_BARE_X_SETTING)

            result = evaluate_contract(
                contract=contract,
                thresholds=thresholds,
                countries=countries,
                count_bare_x=count_bare_x,
            )

            logger.info(
                "contract_evaluated",
                extra={
                    "contract_type": contract.contract_type.value,
                    "threshold_key": result.threshold.key if result.threshold else None,
                    "approver_count": len(result.approvers),
                    "excluded_count": len(result.excluded_approvers),
                    "was_escalated": result.flags.was_escalated,
                },
            )
        return result

    def invalidate(self) -> None:
        self._store.invalidate()

    # -----------------------------------------------------------------
    # Reference listings
    # -----------------------------------------------------------------

    def thresholds_by_type(self) -> dict[str, list[Threshold]]:
        """Group all thresholds by type, keeping table order within a group."""
        grouped: dict[str, list[Threshold]] = {}
        for threshold in self._store.load_thresholds().values():
            grouped.setdefault(threshold.type, []).append(threshold)
        return grouped

    def thresholds_of_type(self, threshold_type: str) -> list[Threshold]:
        return [
            threshold
            for threshold in self._store.load_thresholds().values()
            if threshold.type == threshold_type
        ]

    def list_countries(self) -> list[Country]:
        return sorted(self._store.load_countries().values(), key=lambda c: c.name)
