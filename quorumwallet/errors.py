"""
QuorumWallet error taxonomy.

Every failure surfaced to a caller is a WalletError subclass carrying an
ErrorKind, so callers and the CLI can branch on the kind without string
matching.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    """Failure kinds."""
    INVALID_OWNER = "InvalidOwner"
    INVALID_SIGNER = "InvalidSigner"
    INVALID_THRESHOLD = "InvalidThreshold"
    NOT_ENOUGH_SIGNERS = "NotEnoughSigners"
    DUPLICATE_OR_UNORDERED_SIGNATURES = "DuplicateOrUnorderedSignatures"
    INSUFFICIENT_VALID_SIGNATURES = "InsufficientValidSignatures"
    EXECUTION_FAILED = "ExecutionFailed"
    NO_FEE_TO_DISTRIBUTE = "NoFeeToDistribute"
    NO_FEE_TO_WITHDRAW = "NoFeeToWithdraw"
    UNAUTHORIZED = "Unauthorized"
    TRANSFER_FAILED = "TransferFailed"
    REVENUE_SOURCE_ERROR = "RevenueSourceError"


class WalletError(Exception):
    """Base class for all wallet failures."""

    kind: ErrorKind = ErrorKind.UNAUTHORIZED

    def __init__(self, message: str = "", **details: Any):
        self.details: Dict[str, Any] = details
        super().__init__(message or self.kind.value)

    def to_dict(self) -> Dict[str, Any]:
        d = {"kind": self.kind.value, "message": str(self)}
        if self.details:
            d["details"] = self.details
        return d


class InvalidOwner(WalletError):
    kind = ErrorKind.INVALID_OWNER


class InvalidSigner(WalletError):
    kind = ErrorKind.INVALID_SIGNER


class InvalidThreshold(WalletError):
    kind = ErrorKind.INVALID_THRESHOLD


class NotEnoughSigners(WalletError):
    kind = ErrorKind.NOT_ENOUGH_SIGNERS


class DuplicateOrUnorderedSignatures(WalletError):
    kind = ErrorKind.DUPLICATE_OR_UNORDERED_SIGNATURES


class InsufficientValidSignatures(WalletError):
    kind = ErrorKind.INSUFFICIENT_VALID_SIGNATURES


class ExecutionFailed(WalletError):
    """Raised when the dispatched call reports failure."""
    kind = ErrorKind.EXECUTION_FAILED

    def __init__(self, message: str = "", result: Optional[bytes] = None, **details: Any):
        self.result = result
        super().__init__(message, **details)


class NoFeeToDistribute(WalletError):
    # Not raised by the default policy: zero revenue is a silent no-op.
    kind = ErrorKind.NO_FEE_TO_DISTRIBUTE


class NoFeeToWithdraw(WalletError):
    kind = ErrorKind.NO_FEE_TO_WITHDRAW


class Unauthorized(WalletError):
    kind = ErrorKind.UNAUTHORIZED


class AlreadyInitialized(Unauthorized):
    pass


class TransferFailed(WalletError):
    kind = ErrorKind.TRANSFER_FAILED


class RevenueSourceError(WalletError):
    kind = ErrorKind.REVENUE_SOURCE_ERROR
