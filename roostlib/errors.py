"""
Roost Error Types

Every failure the vault engine surfaces is a VaultError carrying a stable
ErrorKind. Callers branch on the exception class or on ``error.kind``; the
message text is for humans only and may change.
"""

from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    """Machine-checkable failure categories."""

    VAULT_LOCKED = "vault_locked"
    VAULT_NOT_FOUND = "vault_not_found"
    VAULT_EXISTS = "vault_exists"
    INVALID_PASSWORD = "invalid_password"
    ACCOUNT_NOT_FOUND = "account_not_found"
    DATA_CORRUPTED = "data_corrupted"
    DIRECTORY_REQUIRED = "directory_required"
    INVALID_INPUT = "invalid_input"
    IO_FAILURE = "io_failure"


class VaultError(Exception):
    """
    Base class for all vault failures.

    Args:
        context (str, optional): Extra human-readable detail appended to the
            default message for this kind.

    Attributes:
        kind (ErrorKind): Category of the failure
        context (str or None): Detail passed at raise time
    """

    kind = ErrorKind.DATA_CORRUPTED
    default_message = "vault error"

    def __init__(self, context: Optional[str] = None):
        self.context = context
        message = self.default_message
        if context:
            message = f"{message}: {context}"
        super().__init__(message)


class VaultLockedError(VaultError):
    kind = ErrorKind.VAULT_LOCKED
    default_message = "vault is locked or not initialized"


class VaultNotFoundError(VaultError):
    kind = ErrorKind.VAULT_NOT_FOUND
    default_message = "vault does not exist"


class VaultExistsError(VaultError):
    kind = ErrorKind.VAULT_EXISTS
    default_message = "vault already exists"


class InvalidPasswordError(VaultError):
    kind = ErrorKind.INVALID_PASSWORD
    default_message = "invalid master password"


class DecryptionError(InvalidPasswordError):
    """Raised for any authenticated-decryption failure.

    Wrong key, truncation and tampering are reported identically.
    """

    default_message = "decryption failed"


class AccountNotFoundError(VaultError):
    kind = ErrorKind.ACCOUNT_NOT_FOUND
    default_message = "account not found"


class DataCorruptedError(VaultError):
    kind = ErrorKind.DATA_CORRUPTED
    default_message = "data is corrupted"


class DirectoryRequiredError(VaultError):
    kind = ErrorKind.DIRECTORY_REQUIRED
    default_message = "data directory cannot be empty"


class InvalidAccountError(VaultError):
    kind = ErrorKind.INVALID_INPUT
    default_message = "invalid input"


class VaultIOError(VaultError):
    kind = ErrorKind.IO_FAILURE
    default_message = "vault file operation failed"


class InsecureExportWarning(UserWarning):
    """Emitted whenever secrets are written out in plaintext."""


__all__ = [
    "ErrorKind",
    "VaultError",
    "VaultLockedError",
    "VaultNotFoundError",
    "VaultExistsError",
    "InvalidPasswordError",
    "DecryptionError",
    "AccountNotFoundError",
    "DataCorruptedError",
    "DirectoryRequiredError",
    "InvalidAccountError",
    "VaultIOError",
    "InsecureExportWarning",
]
