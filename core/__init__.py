"""Core utilities and configuration for PlaceMatch"""
from core.config import settings
from core.exceptions import ConfigurationError, PlaceMatchError, ValidationError
from core.logging import get_logger

__all__ = [
    "settings",
    "get_logger",
    "PlaceMatchError",
    "ValidationError",
    "ConfigurationError",
]
