"""
Custom exceptions for PlaceMatch
Matching problems are reported as data; exceptions are reserved for
invalid configuration and malformed queries
"""
from typing import Any, Dict, Optional


class PlaceMatchError(Exception):
    """Base exception for all PlaceMatch errors"""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to a plain dictionary for callers that serialize errors"""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(PlaceMatchError):
    """Raised when a query is structurally invalid"""

    def __init__(self, message: str, field: Optional[str] = None, **details):
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            details={"field": field, **details} if field else details,
        )


class ConfigurationError(PlaceMatchError):
    """Raised when matching options or lookup tables are invalid"""

    def __init__(self, message: str, setting: Optional[str] = None, **details):
        super().__init__(
            message=message,
            error_code="CONFIGURATION_ERROR",
            details={"setting": setting, **details} if setting else details,
        )
