"""
Custom exceptions for AllianceRank with user-friendly error messages.
"""
from typing import Optional


class AllianceRankError(Exception):
    """Base exception for roster and leaderboard errors."""
    def __init__(self, message: str, user_message: Optional[str] = None):
        super().__init__(message)
        self.user_message = user_message or message


class ValidationError(AllianceRankError):
    """Raised when input is rejected before anything is written."""
    def __init__(self, message: str, user_message: Optional[str] = None):
        super().__init__(message, user_message or f"❌ {message}")


class NotFoundError(AllianceRankError):
    """Raised when a named record does not exist."""
    def __init__(self, kind: str, key):
        self.kind = kind
        self.key = key
        super().__init__(
            f"{kind} '{key}' not found",
            f"❌ {kind.capitalize()} '{key}' not found!"
        )


class BackingStoreUnavailable(AllianceRankError):
    """Raised when the persistence backend cannot complete an operation."""
    def __init__(self, operation: str, details: Optional[str] = None):
        self.operation = operation
        self.details = details
        super().__init__(
            f"Store error during {operation}: {details}",
            "❌ Database error occurred. Please try again later."
        )
