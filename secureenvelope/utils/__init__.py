"""
Utils module - Utility functions and helpers.
"""

from secureenvelope.utils.validators import (
    ValidationError,
    validate_key_name,
    validate_path_safe,
)

__all__ = [
    "ValidationError",
    "validate_key_name",
    "validate_path_safe",
]
