"""
Roost Configuration

Runtime settings resolved once from the environment, with defaults that
match a single-user local install.
"""

import os

# Vault file name inside the data directory
VAULT_FILE_NAME = "vault.encrypted"

# Default data directory (user home relative)
DEFAULT_DATA_DIR = os.path.join(os.path.expanduser("~"), ".roost")

# PBKDF2 rounds never drop below this floor, whatever the environment says
MIN_PBKDF2_ITERATIONS = 100_000
DEFAULT_PBKDF2_ITERATIONS = 200_000

DEFAULT_CLIPBOARD_CLEAR_SECONDS = 30

# Minimum master password length accepted by the CLI
MIN_MASTER_PASSWORD_LENGTH = 8


def _env_int(name: str, default: int) -> int:
    """Read an integer environment variable, falling back on bad values."""
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


PBKDF2_ITERATIONS = max(
    MIN_PBKDF2_ITERATIONS,
    _env_int("ROOST_PBKDF2_ITERATIONS", DEFAULT_PBKDF2_ITERATIONS),
)

CLIPBOARD_CLEAR_SECONDS = max(
    0, _env_int("ROOST_CLIPBOARD_CLEAR_SECONDS", DEFAULT_CLIPBOARD_CLEAR_SECONDS)
)


def get_data_dir() -> str:
    """
    Resolve the vault data directory.

    Returns:
        str: ``$ROOST_DATA_DIR`` when set and non-empty, else ``~/.roost``
    """
    data_dir = os.environ.get("ROOST_DATA_DIR", "").strip()
    return data_dir or DEFAULT_DATA_DIR


__all__ = [
    "VAULT_FILE_NAME",
    "DEFAULT_DATA_DIR",
    "MIN_PBKDF2_ITERATIONS",
    "DEFAULT_PBKDF2_ITERATIONS",
    "DEFAULT_CLIPBOARD_CLEAR_SECONDS",
    "MIN_MASTER_PASSWORD_LENGTH",
    "PBKDF2_ITERATIONS",
    "CLIPBOARD_CLEAR_SECONDS",
    "get_data_dir",
]
