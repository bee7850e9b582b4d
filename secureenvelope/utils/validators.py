"""
Validation Utilities
====================

Input validation functions with security focus.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Final, Optional

# Characters not allowed in key file names across all platforms
_UNSAFE_CHARS: Final[re.Pattern[str]] = re.compile(r'[<>:"/\\|?*\x00-\x1f]')

_MAX_NAME_LENGTH: Final[int] = 200


class ValidationError(ValueError):
    """Raised when validation fails."""
    pass


def validate_path_safe(
    path: str | Path,
    base_directory: Optional[Path] = None,
    must_exist: bool = False,
    allow_symlinks: bool = False,
) -> Path:
    """
    Validate a path is safe and optionally within a base directory.

    Args:
        path: The path to validate
        base_directory: If provided, path must be within this directory
        must_exist: If True, path must exist
        allow_symlinks: If False, symlinks are rejected

    Returns:
        Validated, resolved Path object

    Raises:
        ValidationError: If validation fails
    """
    if ".." in Path(path).parts:
        raise ValidationError("Path traversal detected")

    candidate = Path(path)
    if not allow_symlinks and candidate.is_symlink():
        raise ValidationError("Symlinks are not allowed")

    try:
        validated_path = candidate.resolve()
    except (ValueError, RuntimeError) as e:
        raise ValidationError(f"Invalid path: {e}") from e

    if base_directory is not None:
        resolved_base = base_directory.resolve()
        if not validated_path.is_relative_to(resolved_base):
            raise ValidationError(f"Path must be within {resolved_base}")

    if must_exist and not validated_path.exists():
        raise ValidationError(f"Path does not exist: {validated_path.name}")

    return validated_path


def validate_key_name(name: str) -> str:
    """
    Validate a key file name.

    A key name is a single path component: no separators, no control
    characters, not "." or "..".

    Raises:
        ValidationError: If the name is unusable
    """
    if not isinstance(name, str) or not name:
        raise ValidationError("Key name cannot be empty")

    if len(name) > _MAX_NAME_LENGTH:
        raise ValidationError(f"Key name must be at most {_MAX_NAME_LENGTH} characters")

    if _UNSAFE_CHARS.search(name):
        raise ValidationError("Key name contains invalid characters")

    if name.strip(". ") == "" or name != name.strip():
        raise ValidationError("Key name is not a valid file name")

    return name
