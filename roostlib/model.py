"""
Roost Data Model

Account records and the JSON encoding of the account collection that goes
inside the encrypted vault payload.
"""

import copy
import json
import secrets
from dataclasses import dataclass, asdict, fields
from typing import Any, Dict, List

from .errors import DataCorruptedError

# Random bytes behind an account identifier (rendered as 16 hex chars)
ACCOUNT_ID_BYTES = 8

# Fields a caller may set through add/update; the rest are engine-owned
EDITABLE_FIELDS = ("platform", "username", "email", "url", "notes", "group", "sort_order")

# Text fields matched by search
SEARCHABLE_FIELDS = ("platform", "username", "email", "url", "notes")


def generate_account_id() -> str:
    """Return a fresh random hex identifier."""
    return secrets.token_hex(ACCOUNT_ID_BYTES)


@dataclass
class Account:
    """
    One stored credential.

    ``id`` and ``created_at`` are fixed at creation; ``updated_at`` moves
    forward on every successful mutation. ``encrypted_password`` is an
    authenticated-ciphertext token, never plaintext.
    """

    id: str
    platform: str
    username: str = ""
    email: str = ""
    url: str = ""
    notes: str = ""
    group: str = ""
    sort_order: int = 0
    encrypted_password: str = ""
    created_at: float = 0.0
    updated_at: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Account":
        """
        Build an Account from its decoded JSON form.

        Unknown keys are ignored so newer files stay readable.

        Raises:
            DataCorruptedError: If required fields are missing or mistyped
        """
        if not isinstance(data, dict):
            raise DataCorruptedError("account record is not an object")

        account_id = data.get("id")
        platform = data.get("platform")
        if not isinstance(account_id, str) or not account_id:
            raise DataCorruptedError("account record has no id")
        if not isinstance(platform, str):
            raise DataCorruptedError(f"account {account_id} has no platform")

        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}

        try:
            account = cls(**values)
            account.sort_order = int(account.sort_order or 0)
            account.created_at = float(account.created_at or 0.0)
            account.updated_at = float(account.updated_at or 0.0)
        except (TypeError, ValueError) as exc:
            raise DataCorruptedError(f"account {account_id} is malformed") from exc

        for name in ("username", "email", "url", "notes", "group", "encrypted_password"):
            value = getattr(account, name)
            if value is None:
                setattr(account, name, "")
            elif not isinstance(value, str):
                raise DataCorruptedError(f"account {account_id} field {name} is not text")

        return account

    def copy(self) -> "Account":
        return copy.copy(self)


def serialize_accounts(accounts: List[Account]) -> bytes:
    """Encode the collection as the UTF-8 JSON vault payload."""
    document = {"accounts": [account.to_dict() for account in accounts]}
    return json.dumps(document, ensure_ascii=False).encode("utf-8")


def deserialize_accounts(payload: bytes) -> List[Account]:
    """
    Decode a vault payload back into accounts.

    Raises:
        DataCorruptedError: If the payload is not a valid collection
    """
    try:
        document = json.loads(bytes(payload).decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as exc:
        raise DataCorruptedError("vault payload is not valid JSON") from exc

    if not isinstance(document, dict):
        raise DataCorruptedError("vault payload is not an object")

    records = document.get("accounts") or []
    if not isinstance(records, list):
        raise DataCorruptedError("accounts field is not a list")

    return [Account.from_dict(record) for record in records]


__all__ = [
    "Account",
    "EDITABLE_FIELDS",
    "SEARCHABLE_FIELDS",
    "generate_account_id",
    "serialize_accounts",
    "deserialize_accounts",
]
