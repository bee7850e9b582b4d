"""
Storage module - Key file persistence.

Security Considerations:
- Files live under an explicit base directory, never the process CWD
- Exported private keys are unencrypted text unless export_encrypted() is used
"""

from secureenvelope.storage.key_files import KeyFileStore

__all__ = ["KeyFileStore"]
