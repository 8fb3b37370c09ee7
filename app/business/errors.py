# ==== CREDIT ERROR TAXONOMY ==== #

"""
Exceptions raised by the credit validation engine.

Missing customers and company mismatches are not exceptions: they are
reported inside the validation result so list views can always render a row.
Only conditions that make a decision impossible are raised.
"""


class CreditError(Exception):
    """Base class for credit engine errors."""

    code = "CREDIT_ERROR"


class InvalidAmountError(CreditError, ValueError):
    """Amount that cannot be represented as a finite, bounded decimal."""

    code = "INVALID_AMOUNT"


class CreditDataSourceError(CreditError):
    """
    A read required for the decision failed or timed out.

    Raised instead of returning a partial result: a credit decision is never
    made on incomplete data.
    """

    code = "CREDIT_DATA_UNAVAILABLE"

    def __init__(self, message: str, reader: str = "unknown"):
        super().__init__(message)
        self.reader = reader
