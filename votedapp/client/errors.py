"""
Client-side error taxonomy.

Every failure the client surfaces carries an ``ErrorKind`` so callers branch on
the kind instead of inspecting message text. Revert reasons coming back from
the contracts are classified once, in ``classify_revert``.
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    WALLET_ABSENT = "wallet_absent"
    WALLET_REJECTED = "wallet_rejected"
    NOT_AUTHORIZED = "not_authorized"
    ALREADY_ADMIN = "already_admin"
    CANNOT_REMOVE_COMMISSIONER = "cannot_remove_commissioner"
    ALREADY_REGISTERED = "already_registered"
    ALREADY_VOTED = "already_voted"
    VOTING_NOT_ACTIVE = "voting_not_active"
    INSUFFICIENT_TOKENS = "insufficient_tokens"
    CONTRACT_REVERT = "contract_revert"
    BACKEND_UNREACHABLE = "backend_unreachable"
    BACKEND_REJECTED = "backend_rejected"
    IMAGE_UPLOAD_FAILED = "image_upload_failed"
    CONFIGURATION = "configuration"
    NOT_READY = "not_ready"
    UNKNOWN = "unknown"


FRIENDLY_MESSAGES = {
    ErrorKind.WALLET_ABSENT: "No crypto wallet detected. Please install MetaMask or another wallet.",
    ErrorKind.WALLET_REJECTED: "The request was rejected in your wallet.",
    ErrorKind.NOT_AUTHORIZED: "You are not authorized to perform this action.",
    ErrorKind.ALREADY_ADMIN: "This address is already an admin.",
    ErrorKind.CANNOT_REMOVE_COMMISSIONER: "Cannot remove the main election commissioner.",
    ErrorKind.ALREADY_REGISTERED: "This address is already registered.",
    ErrorKind.ALREADY_VOTED: "You have already voted.",
    ErrorKind.VOTING_NOT_ACTIVE: "Voting is not currently active.",
    ErrorKind.INSUFFICIENT_TOKENS: "You need at least 1 CK Token to vote.",
    ErrorKind.CONTRACT_REVERT: "The transaction failed. Please try again.",
    ErrorKind.BACKEND_UNREACHABLE: "Could not reach the server. Please try again.",
    ErrorKind.BACKEND_REJECTED: "The server rejected the request.",
    ErrorKind.IMAGE_UPLOAD_FAILED: "Image upload failed. You can proceed without an image or try again.",
    ErrorKind.CONFIGURATION: "The application is misconfigured.",
    ErrorKind.NOT_READY: "Wallet is connected but not initialized. Please reconnect.",
    ErrorKind.UNKNOWN: "Something went wrong. Please try again.",
}

# Revert reasons emitted by the deployed contracts, checked in order
REVERT_REASONS = (
    ("cannot remove election commissioner", ErrorKind.CANNOT_REMOVE_COMMISSIONER),
    ("already an admin", ErrorKind.ALREADY_ADMIN),
    ("only admin", ErrorKind.NOT_AUTHORIZED),
    ("not authorized", ErrorKind.NOT_AUTHORIZED),
    ("already registered", ErrorKind.ALREADY_REGISTERED),
    ("already voted", ErrorKind.ALREADY_VOTED),
    ("voting is not active", ErrorKind.VOTING_NOT_ACTIVE),
    ("voting not active", ErrorKind.VOTING_NOT_ACTIVE),
    ("voting period", ErrorKind.VOTING_NOT_ACTIVE),
    ("insufficient", ErrorKind.INSUFFICIENT_TOKENS),
)

USER_REJECTED_CODE = 4001


class VoteDappError(Exception):
    kind = ErrorKind.UNKNOWN

    def __init__(self, message: Optional[str] = None, kind: Optional[ErrorKind] = None):
        if kind is not None:
            self.kind = kind
        super().__init__(message or friendly_message(self.kind))


class NoProviderError(VoteDappError):
    """Raised when no wallet provider is available."""
    kind = ErrorKind.WALLET_ABSENT


class WalletRejectedError(VoteDappError):
    kind = ErrorKind.WALLET_REJECTED


class ContractConfigurationError(VoteDappError):
    """Raised when a contract handle cannot be built from its address/ABI."""
    kind = ErrorKind.CONFIGURATION


class ContractCallError(VoteDappError):
    kind = ErrorKind.CONTRACT_REVERT


class SignerUnavailableError(VoteDappError):
    kind = ErrorKind.NOT_READY


class SessionNotReadyError(VoteDappError):
    kind = ErrorKind.NOT_READY


class BackendError(VoteDappError):
    kind = ErrorKind.BACKEND_UNREACHABLE


class ImageUploadError(VoteDappError):
    kind = ErrorKind.IMAGE_UPLOAD_FAILED


def classify_revert(reason: Optional[str]) -> ErrorKind:
    if not reason:
        return ErrorKind.CONTRACT_REVERT
    lowered = reason.lower()
    for needle, kind in REVERT_REASONS:
        if needle in lowered:
            return kind
    return ErrorKind.CONTRACT_REVERT


def friendly_message(kind: ErrorKind) -> str:
    return FRIENDLY_MESSAGES.get(kind, FRIENDLY_MESSAGES[ErrorKind.UNKNOWN])


def error_kind(exc: BaseException) -> ErrorKind:
    """Kind of any exception raised by the client; foreign exceptions are UNKNOWN."""
    if isinstance(exc, VoteDappError):
        return exc.kind
    if getattr(exc, "code", None) == USER_REJECTED_CODE:
        return ErrorKind.WALLET_REJECTED
    return ErrorKind.UNKNOWN
