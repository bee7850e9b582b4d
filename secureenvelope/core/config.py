"""
Secure Configuration Module
===========================

Provides immutable, environment-aware configuration with security-first defaults.

Security Features:
- Immutable configuration after initialization
- Environment variable override support
- No secrets in default values (passwords are never read from the environment)
- Explicit key directory instead of process-relative paths
- OS-aware path handling
"""

from __future__ import annotations

import hashlib
import os
import platform
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Final, Optional


# Security Constants
_SENSITIVE_KEYS: Final[frozenset[str]] = frozenset({
    "password", "passphrase", "secret", "token", "private_key",
    "credential", "auth", "salt",
})

_VALID_OAEP_HASHES: Final[frozenset[str]] = frozenset({"sha1", "sha256"})


def _is_sensitive_key(key: str) -> bool:
    """Check if a configuration key might contain sensitive data."""
    key_lower = key.lower()
    return any(sensitive in key_lower for sensitive in _SENSITIVE_KEYS)


def _get_default_key_dir() -> Path:
    """Get OS-appropriate default key directory."""
    system = platform.system().lower()

    if system == "windows":
        base = Path(os.environ.get("LOCALAPPDATA", Path.home() / "AppData" / "Local"))
    elif system == "darwin":
        base = Path.home() / "Library" / "Application Support"
    else:  # Linux and others
        base = Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local" / "share"))

    return base / "SecureEnvelope" / "keys"


def _get_default_log_dir() -> Path:
    """Get OS-appropriate default log directory."""
    system = platform.system().lower()

    if system == "windows":
        base = Path(os.environ.get("LOCALAPPDATA", Path.home() / "AppData" / "Local"))
        return base / "SecureEnvelope" / "Logs"
    elif system == "darwin":
        return Path.home() / "Library" / "Logs" / "SecureEnvelope"
    else:  # Linux and others
        return Path(os.environ.get("XDG_STATE_HOME", Path.home() / ".local" / "state")) / "SecureEnvelope" / "logs"


@dataclass(frozen=True, slots=True)
class PathConfig:
    """Immutable path configuration with OS-aware defaults."""

    key_dir: Path = field(default_factory=_get_default_key_dir)
    log_dir: Path = field(default_factory=_get_default_log_dir)

    def __post_init__(self) -> None:
        """Validate paths after initialization."""
        for field_name in ["key_dir", "log_dir"]:
            path = getattr(self, field_name)
            if not path.is_absolute():
                raise ValueError(f"{field_name} must be an absolute path: {path}")


@dataclass(frozen=True, slots=True)
class KeyConfig:
    """Immutable key generation and export settings."""

    rsa_key_size: int = 2048
    signing_key_size: int = 2048
    symmetric_key_bits: int = 256
    export_iterations: int = 100_000
    oaep_hash: str = "sha1"

    def __post_init__(self) -> None:
        """Validate key settings."""
        if self.rsa_key_size < 1024 or self.rsa_key_size % 256:
            raise ValueError("RSA key size must be a multiple of 256 and at least 1024")
        if self.signing_key_size not in (1024, 2048, 3072, 4096):
            raise ValueError("Signing key size must be 1024, 2048, 3072, or 4096")
        if self.symmetric_key_bits not in (128, 192, 256):
            raise ValueError("Symmetric key size must be 128, 192, or 256 bits")
        if self.export_iterations < 10_000:
            raise ValueError("Export iterations must be at least 10,000")
        if self.oaep_hash not in _VALID_OAEP_HASHES:
            raise ValueError(f"Invalid OAEP hash: {self.oaep_hash}")


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    """Immutable logging configuration."""

    level: str = "INFO"
    max_file_size_bytes: int = 10 * 1024 * 1024  # 10 MB
    backup_count: int = 5
    enable_console: bool = True
    enable_file: bool = False
    enable_json: bool = False

    def __post_init__(self) -> None:
        """Validate logging settings."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if self.level.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {self.level}")


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


class EnvelopeConfig:
    """
    Centralized, immutable configuration loader with environment override support.

    Usage:
        config = EnvelopeConfig.load()
        key_dir = config.paths.key_dir
        bits = config.keys.rsa_key_size
    """

    __slots__ = ("_paths", "_keys", "_logging", "_frozen", "_config_hash")

    _instance: Optional[EnvelopeConfig] = None

    def __init__(
        self,
        paths: Optional[PathConfig] = None,
        keys: Optional[KeyConfig] = None,
        logging: Optional[LoggingConfig] = None,
    ) -> None:
        """Initialize configuration. Use EnvelopeConfig.load() for standard initialization."""
        object.__setattr__(self, "_frozen", False)
        object.__setattr__(self, "_paths", paths or PathConfig())
        object.__setattr__(self, "_keys", keys or KeyConfig())
        object.__setattr__(self, "_logging", logging or LoggingConfig())
        object.__setattr__(self, "_config_hash", self._compute_hash())
        object.__setattr__(self, "_frozen", True)

    def _compute_hash(self) -> str:
        """Compute a hash of the configuration for integrity checking."""
        config_str = f"{self._paths}|{self._keys}|{self._logging}"
        return hashlib.sha256(config_str.encode()).hexdigest()[:16]

    @property
    def paths(self) -> PathConfig:
        """Get path configuration."""
        return self._paths

    @property
    def keys(self) -> KeyConfig:
        """Get key configuration."""
        return self._keys

    @property
    def logging(self) -> LoggingConfig:
        """Get logging configuration."""
        return self._logging

    @property
    def config_hash(self) -> str:
        """Get configuration integrity hash."""
        return self._config_hash

    @classmethod
    def load(cls, env_prefix: str = "SECUREENVELOPE") -> EnvelopeConfig:
        """
        Load configuration with environment variable overrides.

        Environment variables use the prefix and double underscores for
        nested values.

        Examples:
            SECUREENVELOPE_LOGGING__LEVEL=DEBUG
            SECUREENVELOPE_KEYS__RSA_KEY_SIZE=4096
            SECUREENVELOPE_PATHS__KEY_DIR=/srv/keys

        Args:
            env_prefix: Prefix for environment variables

        Returns:
            Configured EnvelopeConfig instance

        Raises:
            ValueError: If an override has an invalid value
        """
        env_overrides = cls._parse_env_overrides(env_prefix)

        paths_kwargs: dict[str, Any] = {}
        for name in ("key_dir", "log_dir"):
            if f"paths.{name}" in env_overrides:
                paths_kwargs[name] = Path(env_overrides[f"paths.{name}"])

        keys_kwargs: dict[str, Any] = {}
        for name in ("rsa_key_size", "signing_key_size", "symmetric_key_bits", "export_iterations"):
            if f"keys.{name}" in env_overrides:
                keys_kwargs[name] = int(env_overrides[f"keys.{name}"])
        if "keys.oaep_hash" in env_overrides:
            keys_kwargs["oaep_hash"] = env_overrides["keys.oaep_hash"].lower()

        logging_kwargs: dict[str, Any] = {}
        if "logging.level" in env_overrides:
            logging_kwargs["level"] = env_overrides["logging.level"]
        for name in ("enable_console", "enable_file", "enable_json"):
            if f"logging.{name}" in env_overrides:
                logging_kwargs[name] = _as_bool(env_overrides[f"logging.{name}"])

        return cls(
            paths=PathConfig(**paths_kwargs) if paths_kwargs else None,
            keys=KeyConfig(**keys_kwargs) if keys_kwargs else None,
            logging=LoggingConfig(**logging_kwargs) if logging_kwargs else None,
        )

    @staticmethod
    def _parse_env_overrides(prefix: str) -> dict[str, str]:
        """Parse environment variables with the given prefix."""
        overrides: dict[str, str] = {}
        prefix_upper = f"{prefix.upper()}_"

        for key, value in os.environ.items():
            if key.startswith(prefix_upper):
                # SECUREENVELOPE_SECTION__KEY -> section.key
                config_key = key[len(prefix_upper):].lower().replace("__", ".")

                # SECURITY: Skip sensitive keys from environment
                if _is_sensitive_key(config_key):
                    continue

                overrides[config_key] = value

        return overrides

    @classmethod
    def get_instance(cls) -> EnvelopeConfig:
        """Get or create the singleton configuration instance."""
        if cls._instance is None:
            cls._instance = cls.load()
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Reset the singleton instance. Use only for testing."""
        cls._instance = None

    def ensure_directories(self) -> None:
        """Create key and log directories with owner-only permissions."""
        import stat

        for directory in (self._paths.key_dir, self._paths.log_dir):
            directory.mkdir(parents=True, exist_ok=True)

            if platform.system().lower() != "windows":
                directory.chmod(stat.S_IRWXU)  # 700 - owner only

    def __repr__(self) -> str:
        """Safe string representation without sensitive data."""
        return f"EnvelopeConfig(hash={self._config_hash})"

    def __setattr__(self, name: str, value: Any) -> None:
        """Prevent modification after initialization."""
        if hasattr(self, "_frozen") and self._frozen:
            raise AttributeError("EnvelopeConfig is immutable after initialization")
        super().__setattr__(name, value)
