# =============================================================================
# File: singlewindow/common/exceptions/exceptions.py
# Description: Root exceptions for the Single Window core
# =============================================================================

from typing import Any, Dict, Optional


class SingleWindowError(Exception):
    """
    Base exception for the Single Window core.

    Every error carries a machine-readable reason code and, where a guard or
    check failed, the name of that check. Together they are enough to drive
    an appeal workflow without re-deriving internal state.
    """

    reason_code: str = "SW-000"

    def __init__(
        self,
        message: str,
        *,
        check: Optional[str] = None,
        reason_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.check = check
        if reason_code is not None:
            self.reason_code = reason_code
        self.details: Dict[str, Any] = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Machine-readable rejection payload."""
        return {
            "error": type(self).__name__,
            "reason_code": self.reason_code,
            "check": self.check,
            "message": self.message,
            "details": self.details,
        }


class DomainError(SingleWindowError):
    """Raised for domain-specific errors"""
    reason_code = "SW-003"


# =============================================================================
# EOF
# =============================================================================
