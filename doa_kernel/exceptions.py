"""
Typed Exception Hierarchy for the DOA Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Approval routing is a legal determination. Callers must be able to tell a
malformed request apart from bad reference data without parsing message
strings:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example:
    try:
        result = calculator.evaluate(CalculatorInput.from_mapping(body))
    except InvalidCalculatorInputError as e:
        api_response(code=e.code, field=e.field, value=e.value)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    DOAKernelError (base)
    |
    +-- CalculatorError
    |   +-- InvalidCalculatorInputError
    |
    +-- ReferenceDataError
        +-- InvalidReferenceDataError
        +-- DuplicateThresholdKeyError
        +-- UnknownRiskLevelError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Calculator      | INVALID_CALCULATOR_INPUT    | Unknown contract type / non-numeric value
----------------|-----------------------------|-----------------------------------------
Reference data  | INVALID_REFERENCE_DATA      | Malformed reference set fragment
                | DUPLICATE_THRESHOLD_KEY     | Two thresholds share a key
                | UNKNOWN_RISK_LEVEL          | Country risk not safe/special/high_risk

===============================================================================
WHAT IS NOT WRAPPED
===============================================================================

Data-access failures (``sqlalchemy.exc.SQLAlchemyError`` or anything a
ReferenceSource raises) propagate unchanged. A partially loaded threshold
table could route a contract to the wrong approvers, so the calculator
fails the whole evaluation instead of degrading.
"""


class DOAKernelError(Exception):
    """
    Base exception for all DOA kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "DOA_KERNEL_ERROR"


# Calculator exceptions


class CalculatorError(DOAKernelError):
    """Base exception for contract evaluation errors."""

    code: str = "CALCULATOR_ERROR"


class InvalidCalculatorInputError(CalculatorError):
    """A calculator input field could not be interpreted."""

    code: str = "INVALID_CALCULATOR_INPUT"

    def __init__(self, field: str, value: object, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid calculator input {field}={value!r}: {reason}")


# Reference data exceptions


class ReferenceDataError(DOAKernelError):
    """Base exception for threshold/country reference data errors."""

    code: str = "REFERENCE_DATA_ERROR"


class InvalidReferenceDataError(ReferenceDataError):
    """A reference set fragment is structurally invalid."""

    code: str = "INVALID_REFERENCE_DATA"

    def __init__(self, source: str, errors: list[str]):
        self.source = source
        self.errors = list(errors)
        super().__init__(
            f"Invalid reference data in {source}: " + "; ".join(self.errors)
        )


class DuplicateThresholdKeyError(ReferenceDataError):
    """Two thresholds were declared with the same key."""

    code: str = "DUPLICATE_THRESHOLD_KEY"

    def __init__(self, threshold_key: str):
        self.threshold_key = threshold_key
        super().__init__(f"Duplicate threshold key: {threshold_key}")


class UnknownRiskLevelError(ReferenceDataError):
    """A country carries a risk level outside safe/special/high_risk."""

    code: str = "UNKNOWN_RISK_LEVEL"

    def __init__(self, country: str, risk_level: str):
        self.country = country
        self.risk_level = risk_level
        super().__init__(
            f"Unknown risk level {risk_level!r} for country {country!r}"
        )
