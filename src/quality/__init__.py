"""
Data Quality Module
"""
from .validators import DataValidator, ValidationResult, validate_sources

__all__ = [
    "DataValidator",
    "ValidationResult",
    "validate_sources",
]
