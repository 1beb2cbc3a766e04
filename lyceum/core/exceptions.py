"""
Custom exceptions for the Lyceum platform.
"""

from typing import Optional, Any, Dict


class LyceumException(Exception):
    """Base exception for all Lyceum-related errors."""

    def __init__(self, message: str, error_code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}


class ValidationError(LyceumException):
    """Raised when input to a constructor or mutator is malformed or out of range."""
    pass


class StateError(LyceumException):
    """Raised when an operation is not valid for the current state of an aggregate."""
    pass


class ResourceNotFoundError(LyceumException):
    """Raised when a requested resource is not found."""
    pass


class DuplicateEntityError(LyceumException):
    """Raised when attempting to create a duplicate entity."""
    pass


class PersistenceError(LyceumException):
    """Raised when persistence operations fail."""
    pass


class ConfigurationError(LyceumException):
    """Raised when configuration is invalid."""
    pass
