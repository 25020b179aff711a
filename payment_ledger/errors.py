"""
Error taxonomy for the payment ledger.

ValidationError is raised before any side effect. TransferError means the
value movement failed and nothing was recorded. StoreError raised from
record() means value moved but the history entry may be missing.
"""

from enum import Enum


class PaymentLedgerError(Exception):
    """Base class for payment ledger errors"""


class ValidationErrorKind(Enum):
    """Reasons a transfer request is rejected"""
    SELF_TRANSFER = "self_transfer"
    NON_POSITIVE_AMOUNT = "non_positive_amount"
    AMOUNT_OUT_OF_RANGE = "amount_out_of_range"
    INVALID_PARTICIPANT = "invalid_participant"


class ValidationError(PaymentLedgerError):
    """Raised when a transfer request is rejected on its inputs"""

    def __init__(self, kind: ValidationErrorKind, message: str):
        super().__init__(message)
        self.kind = kind


class TransferError(PaymentLedgerError):
    """Raised when the transfer service fails to move value"""


class StoreError(PaymentLedgerError):
    """Raised when the persistent store is unreachable or rejects a write"""


class VersionConflictError(StoreError):
    """Raised when a compare-and-swap write sees a newer version"""

    def __init__(self, key: str, expected: int, actual: int):
        super().__init__(f"Version conflict on '{key}': expected {expected}, found {actual}")
        self.key = key
        self.expected = expected
        self.actual = actual
