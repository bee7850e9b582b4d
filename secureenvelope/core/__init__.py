"""
Core module - Contains configuration, logging, errors and the client facade.
"""

from secureenvelope.core.config import EnvelopeConfig
from secureenvelope.core.logging import SecureLogFilter, get_secure_logger

__all__ = ["EnvelopeConfig", "get_secure_logger", "SecureLogFilter"]
