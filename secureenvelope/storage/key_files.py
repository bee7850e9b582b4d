"""
Key File Persistence
====================

Reads and writes exported keys under an explicit base directory.

Security Features:
- Names are validated to stay inside the base directory
- Files are written atomically (temp file + rename)
- Owner-only permissions (0600) on POSIX
"""

from __future__ import annotations

import logging
import os
import platform
import tempfile
from pathlib import Path
from typing import Optional, Union

from secureenvelope.core.config import EnvelopeConfig
from secureenvelope.utils.validators import validate_key_name, validate_path_safe


class KeyFileStore:
    """
    Directory of exported key files.

    Usage:
        store = KeyFileStore(Path("/srv/keys"))
        store.write_all_text("service.pub", client.export_key())
        text = store.read_all_text("service.pub")
    """

    __slots__ = ("_base_dir", "_log")

    def __init__(self, base_dir: Optional[Union[str, Path]] = None) -> None:
        """
        Args:
            base_dir: Directory holding key files. Defaults to the configured
                      key directory.
        """
        if base_dir is None:
            base_dir = EnvelopeConfig.get_instance().paths.key_dir
        self._base_dir = Path(base_dir)
        self._log = logging.getLogger("secureenvelope.storage")

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    def path_for(self, name: str) -> Path:
        """
        Resolve a key name to its file path.

        Raises:
            ValidationError: If the name is invalid or escapes the base directory
        """
        validate_key_name(name)
        return validate_path_safe(self._base_dir / name, base_directory=self._base_dir)

    def exists(self, name: str) -> bool:
        return self.path_for(name).is_file()

    def read_all_bytes(self, name: str) -> bytes:
        """
        Read a key file.

        Raises:
            ValidationError: If the name is invalid
            FileNotFoundError: If no such key file exists
        """
        return self.path_for(name).read_bytes()

    def read_all_text(self, name: str) -> str:
        return self.read_all_bytes(name).decode("utf-8")

    def write_all_bytes(self, name: str, data: bytes) -> Path:
        """
        Write a key file, replacing any existing one.

        Returns:
            Path of the written file
        """
        path = self.path_for(name)
        self._base_dir.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(dir=self._base_dir, prefix=".tmp-")
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(data)
                handle.flush()
                os.fsync(handle.fileno())
            if platform.system().lower() != "windows":
                os.chmod(tmp_name, 0o600)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        self._log.debug("Wrote key file %s (%d bytes)", path.name, len(data))
        return path

    def write_all_text(self, name: str, text: str) -> Path:
        return self.write_all_bytes(name, text.encode("utf-8"))

    def delete(self, name: str) -> bool:
        """Remove a key file. Returns False if it did not exist."""
        path = self.path_for(name)
        if not path.exists():
            return False
        path.unlink()
        self._log.debug("Deleted key file %s", path.name)
        return True

    def __repr__(self) -> str:
        return f"KeyFileStore(base_dir={str(self._base_dir)!r})"
