"""Utility functions and helpers"""

from .exceptions import AllianceRankError, ValidationError, NotFoundError, BackingStoreUnavailable

__all__ = [
    'AllianceRankError',
    'ValidationError',
    'NotFoundError',
    'BackingStoreUnavailable',
]
