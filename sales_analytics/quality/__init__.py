"""
Data Quality Module
"""
from .validators import (
    DataValidator,
    InvalidInputShapeError,
    ValidationResult,
    ensure_valid,
)

__all__ = [
    "DataValidator",
    "InvalidInputShapeError",
    "ValidationResult",
    "ensure_valid",
]
