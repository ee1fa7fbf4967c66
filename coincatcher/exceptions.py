# coincatcher/exceptions.py
"""Expected, recoverable ledger errors.

Every error carries a message that can be shown to the user as-is. Bot
handlers catch ``LedgerError`` and reply with ``str(error)``.
"""
from typing import Optional


class LedgerError(Exception):
    """Base class for errors surfaced to the user"""

    default_message = "Operation failed."

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)


class IneligibleError(LedgerError):
    """Cooldown not elapsed or already claimed today"""

    default_message = "This reward is not available yet."

    def __init__(self, message: Optional[str] = None, ms_remaining: int = 0):
        super().__init__(message)
        self.ms_remaining = ms_remaining


class AccountBlockedError(LedgerError):
    default_message = "Your account is blocked."


class InsufficientBalanceError(LedgerError):
    default_message = "Insufficient balance."


class MissingProfileError(LedgerError):
    """Withdrawal destination (payment number, game id) not configured"""

    default_message = "Please complete your profile first."


class PermissionDeniedError(LedgerError):
    default_message = "You do not have access to this action."


class NotFoundError(LedgerError):
    default_message = "Not found."


class ExternalServiceError(LedgerError):
    """Pricing estimator unavailable or returned an invalid shape"""

    default_message = "The pricing service is temporarily unavailable."


class InvalidStateError(LedgerError):
    """Transition attempted out of a terminal request state"""

    default_message = "This request has already been processed."


class ValidationError(LedgerError):
    default_message = "Invalid input."


class PackageUnavailableError(LedgerError):
    default_message = "No packages are available right now."


class ConversionUnavailableError(LedgerError):
    default_message = "Coin conversion is temporarily unavailable."


class DuplicateRequestError(LedgerError):
    default_message = "A request already exists."


class StoreError(LedgerError):
    """Store failure after retries; nothing was written"""

    default_message = "Something went wrong, please try again."
