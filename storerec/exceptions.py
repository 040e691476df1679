"""Custom exceptions for StoreRec.

Defines specific exception types so callers can tell a missing model apart
from an incompatible one, and an unavailable oracle apart from a clean text.
"""

from typing import Any, Dict, Optional


class StoreRecException(Exception):
    """Base exception for StoreRec errors."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        """Initialize exception.

        Args:
            message: Human-readable error message
            details: Additional error details for debugging
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ModelShapeMismatchError(StoreRecException):
    """Raised when a persisted model does not fit the current catalog."""

    def __init__(
        self,
        slot_name: str,
        expected: Dict[str, int],
        found: Dict[str, Any],
    ):
        message = (
            f"Persisted model in slot '{slot_name}' has shape "
            f"{found.get('input_dim')}x{found.get('output_dim')}, "
            f"expected {expected['input_dim']}x{expected['output_dim']}. "
            "Discard it and retrain for the current catalog."
        )
        super().__init__(
            message=message,
            details={
                "slot_name": slot_name,
                "expected": expected,
                "found": found,
            },
        )


class ModelStoreError(StoreRecException):
    """Raised when the model store fails to read or write a slot."""

    def __init__(self, slot_name: str, error: Exception):
        message = f"Model store failed on slot '{slot_name}': {str(error)}"
        super().__init__(
            message=message,
            details={
                "slot_name": slot_name,
                "error": str(error),
                "error_type": type(error).__name__,
            },
        )


class IllegalStateTransition(StoreRecException):
    """Raised when the online learner is driven into a transition it does not allow."""

    def __init__(self, current: str, target: str):
        message = f"Illegal learner state transition: {current} -> {target}"
        super().__init__(
            message=message,
            details={"current": current, "target": target},
        )


class OracleUnavailableError(StoreRecException):
    """Raised when the toxicity oracle cannot classify a comment."""

    def __init__(self, error: Optional[Exception] = None):
        if error is None:
            message = "Toxicity oracle is not loaded"
            details: Dict[str, Any] = {}
        else:
            message = f"Toxicity oracle failed: {str(error)}"
            details = {
                "error": str(error),
                "error_type": type(error).__name__,
            }
        super().__init__(message=message, details=details)
