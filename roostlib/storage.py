"""
Roost Vault Storage Engine

This module owns the encrypted vault file and the unlocked session built on
top of it:
- Vault creation, unlock and lock (explicit state machine)
- Atomic persistence of the whole account collection
- Account CRUD, search and ordering under a reader/writer lock
- Master password rotation
- Raw export/import and plaintext CSV export

File layout: ``verification_hash(32) || salt(16) || token`` where ``token``
is the authenticated ciphertext of the JSON account collection. Hash and salt
sit outside the encrypted envelope so a password can be checked before any
decryption is attempted.
"""

import csv
import hmac
import logging
import os
import time
import warnings
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from . import accounts as collection
from .config import VAULT_FILE_NAME
from .crypto import (
    HASH_SIZE, SALT_SIZE,
    derive_key_pair, hash_for_verification, generate_salt,
    encrypt, decrypt, wipe_bytes,
)
from .errors import (
    VaultError, VaultLockedError, VaultNotFoundError, VaultExistsError,
    InvalidPasswordError, DecryptionError, DataCorruptedError,
    DirectoryRequiredError, InvalidAccountError, VaultIOError,
    InsecureExportWarning,
)
from .locking import ReadWriteLock
from .model import (
    Account, generate_account_id, serialize_accounts, deserialize_accounts,
)
from .validation import validate_account_fields

logger = logging.getLogger(__name__)

# Fixed prefix before the encrypted token
HEADER_SIZE = HASH_SIZE + SALT_SIZE

CSV_HEADER = [
    "ID", "Platform", "Username", "Email", "Password",
    "URL", "Notes", "Group", "CreatedAt", "UpdatedAt",
]


class VaultState(Enum):
    UNINITIALIZED = "uninitialized"  # no vault file
    LOCKED = "locked"                # file present, no key in memory
    UNLOCKED = "unlocked"            # key and accounts in memory


def _format_timestamp(timestamp: float) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()


def _write_private_file(path: str, data: bytes) -> None:
    """Write ``data`` to ``path`` with owner-only permissions, synced to disk."""
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "wb") as handle:
        handle.write(data)
        handle.flush()
        os.fsync(handle.fileno())


# ==============================================================================
# VAULT STORAGE CLASS
# ==============================================================================

class VaultStorage:
    """
    Session object for one vault file.

    Construct one per process and pass it to every collaborator. The instance
    exclusively holds the derived key, the verification hash and the decrypted
    account collection while unlocked; all of them are guarded by one
    reader/writer lock. Mutations hold the write lock for their whole
    duration, disk write included. Reads share the lock.

    A mutation whose save fails has already changed the in-memory collection;
    callers must treat that session as diverged from disk and unlock again.
    """

    def __init__(self, data_dir: Optional[str]):
        """
        Args:
            data_dir (str): Directory holding the vault file. Created with
                owner-only permissions when missing.

        Raises:
            DirectoryRequiredError: If data_dir is empty
            VaultIOError: If the directory cannot be created
        """
        if not data_dir:
            raise DirectoryRequiredError()

        try:
            os.makedirs(data_dir, mode=0o700, exist_ok=True)
        except OSError as exc:
            raise VaultIOError(f"error creating data directory {data_dir}") from exc

        self.data_dir = os.path.abspath(data_dir)
        self.vault_path = os.path.join(self.data_dir, VAULT_FILE_NAME)
        self.temp_path = self.vault_path + ".tmp"
        self.backup_path = self.vault_path + ".bak"

        self._lock = ReadWriteLock()
        self._accounts: Optional[List[Account]] = None
        self._key: Optional[bytearray] = None
        self._verification_hash: Optional[bytearray] = None
        self._salt: Optional[bytes] = None

    def __enter__(self) -> "VaultStorage":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    # ==========================================================================
    # STATE
    # ==========================================================================

    def vault_exists(self) -> bool:
        return os.path.isfile(self.vault_path)

    @property
    def state(self) -> VaultState:
        with self._lock.read_locked():
            return self._current_state()

    def _current_state(self) -> VaultState:
        if self._key is not None:
            return VaultState.UNLOCKED
        if self.vault_exists():
            return VaultState.LOCKED
        return VaultState.UNINITIALIZED

    @property
    def is_unlocked(self) -> bool:
        return self.state is VaultState.UNLOCKED

    def _require_unlocked(self) -> None:
        if self._key is None or self._accounts is None:
            raise VaultLockedError()

    def _clear_session(self) -> None:
        """Wipe key material and drop the decrypted collection."""
        if self._key is not None:
            wipe_bytes(self._key)
        if self._verification_hash is not None:
            wipe_bytes(self._verification_hash)
        self._key = None
        self._verification_hash = None
        self._salt = None
        self._accounts = None

    def _adopt_session(self, verification_hash: bytearray, salt: bytes,
                       key: bytearray, accounts: List[Account]) -> None:
        self._clear_session()
        self._verification_hash = verification_hash
        self._salt = bytes(salt)
        self._key = key
        self._accounts = accounts

    # ==========================================================================
    # FILE ACCESS
    # ==========================================================================

    def _read_vault_file(self) -> bytes:
        try:
            with open(self.vault_path, "rb") as handle:
                return handle.read()
        except FileNotFoundError as exc:
            raise VaultNotFoundError() from exc
        except OSError as exc:
            raise VaultIOError("error reading vault file") from exc

    @staticmethod
    def _split_vault_data(data: bytes):
        """
        Slice raw file bytes into ``(hash, salt, token)``.

        Raises:
            DataCorruptedError: If the file is shorter than the fixed header
        """
        if len(data) < HEADER_SIZE:
            raise DataCorruptedError("vault file is truncated")
        return data[:HASH_SIZE], data[HASH_SIZE:HEADER_SIZE], data[HEADER_SIZE:]

    def _write_atomic(self, data: bytes) -> None:
        """
        Replace the vault file with ``data`` via temp file and rename.

        A concurrent reader sees either the old or the new file, never a
        partial one. On failure the temp file is removed and the old vault is
        left as it was.
        """
        try:
            _write_private_file(self.temp_path, data)
            os.replace(self.temp_path, self.vault_path)
        except OSError as exc:
            try:
                os.remove(self.temp_path)
            except FileNotFoundError:
                pass
            except OSError:
                logger.warning("Could not remove temporary file %s", self.temp_path)
            raise VaultIOError("failed to write vault file") from exc

    def _save_vault(self) -> None:
        """
        Encrypt the account collection and persist it atomically.

        The caller must hold the write lock. Only the accounts are serialized;
        the resident verification hash and salt are written in front of the
        token so they always match the key that encrypted it.
        """
        if (self._accounts is None or self._key is None
                or not self._salt or not self._verification_hash):
            raise VaultLockedError("cannot save vault, missing state")

        payload = bytearray(serialize_accounts(self._accounts))
        try:
            token = encrypt(payload, self._key)
        finally:
            wipe_bytes(payload)

        data = bytes(self._verification_hash) + self._salt + token.encode("ascii")
        try:
            self._write_atomic(data)
        except VaultIOError:
            logger.error("Saving vault %s failed", self.vault_path)
            raise

    def _encrypt_secret(self, secret: str) -> str:
        if not isinstance(secret, str):
            raise InvalidAccountError("password must be text")
        secret_bytes = bytearray(secret.encode("utf-8"))
        try:
            return encrypt(secret_bytes, self._key)
        finally:
            wipe_bytes(secret_bytes)

    # ==========================================================================
    # VAULT LIFECYCLE
    # ==========================================================================

    def create_vault(self, master_password: str) -> None:
        """
        Create a new, empty vault and leave it unlocked.

        Raises:
            VaultExistsError: If a vault file is already present
            InvalidAccountError: If the password is empty
            VaultIOError: If the file cannot be written
        """
        with self._lock.write_locked():
            if self.vault_exists():
                raise VaultExistsError()
            if not master_password:
                raise InvalidAccountError("master password cannot be empty")

            salt = generate_salt()
            verification_hash, key = derive_key_pair(master_password, salt)
            self._adopt_session(verification_hash, salt, key, [])

            try:
                self._save_vault()
            except VaultError:
                self._clear_session()
                raise

            logger.info("Vault created at %s", self.vault_path)

    def unlock_vault(self, master_password: str) -> None:
        """
        Verify the master password and load the account collection.

        Nothing is adopted unless every step succeeds; a failed attempt
        leaves the previous state as it was.

        Raises:
            VaultNotFoundError: If there is no vault file
            InvalidPasswordError: If the password does not match
            DataCorruptedError: If the file cannot be decrypted or parsed
        """
        with self._lock.write_locked():
            data = self._read_vault_file()
            stored_hash, salt, token = self._split_vault_data(data)

            candidate_hash, key = derive_key_pair(master_password or "", salt)
            if not hmac.compare_digest(bytes(candidate_hash), stored_hash):
                wipe_bytes(candidate_hash)
                wipe_bytes(key)
                logger.warning("Failed unlock attempt for %s", self.vault_path)
                raise InvalidPasswordError()

            plaintext = bytearray()
            try:
                plaintext = bytearray(decrypt(token, key))
                accounts = deserialize_accounts(plaintext)
            except DecryptionError as exc:
                wipe_bytes(candidate_hash)
                wipe_bytes(key)
                raise DataCorruptedError("failed to decrypt vault data") from exc
            except DataCorruptedError:
                wipe_bytes(candidate_hash)
                wipe_bytes(key)
                raise
            finally:
                wipe_bytes(plaintext)

            self._adopt_session(candidate_hash, salt, key, accounts)
            logger.info("Vault unlocked (%d accounts)", len(accounts))

    def lock(self) -> None:
        """Forget the key and the decrypted accounts."""
        with self._lock.write_locked():
            was_unlocked = self._key is not None
            self._clear_session()
        if was_unlocked:
            logger.info("Vault locked")

    close = lock

    def change_master_password(self, new_password: str,
                               current_password: Optional[str] = None) -> None:
        """
        Re-key the vault under a new master password.

        A fresh salt, verification hash and key are generated and the
        existing accounts are persisted under them. Secrets stored per
        account are re-encrypted with the new key.

        If the save fails the session is dropped to LOCKED and the error
        propagates: the file still holds the old password and the caller must
        unlock again.

        Args:
            new_password (str): Replacement master password
            current_password (str, optional): When given, checked against the
                unlocked vault before anything changes

        Raises:
            VaultLockedError: If the vault is not unlocked
            InvalidPasswordError: If current_password is wrong
            InvalidAccountError: If new_password is empty
            VaultIOError: If the re-keyed vault cannot be written
        """
        with self._lock.write_locked():
            self._require_unlocked()
            if not new_password:
                raise InvalidAccountError("master password cannot be empty")

            if current_password is not None:
                check = hash_for_verification(current_password, self._salt)
                try:
                    if not hmac.compare_digest(bytes(check), bytes(self._verification_hash)):
                        raise InvalidPasswordError()
                finally:
                    wipe_bytes(check)

            new_salt = generate_salt()
            new_hash, new_key = derive_key_pair(new_password, new_salt)

            # Secrets are re-encrypted into copies so a failure leaves the
            # current session untouched
            rekeyed = []
            try:
                for account in self._accounts:
                    updated = account.copy()
                    if account.encrypted_password:
                        secret = bytearray(decrypt(account.encrypted_password, self._key))
                        try:
                            updated.encrypted_password = encrypt(secret, new_key)
                        finally:
                            wipe_bytes(secret)
                    rekeyed.append(updated)
            except VaultError:
                wipe_bytes(new_hash)
                wipe_bytes(new_key)
                raise

            self._adopt_session(new_hash, new_salt, new_key, rekeyed)
            try:
                self._save_vault()
            except VaultError:
                self._clear_session()
                logger.error("Master password change failed; session locked")
                raise

            logger.info("Master password changed")

    # ==========================================================================
    # ACCOUNT OPERATIONS
    # ==========================================================================

    def add_account(self, fields: Dict[str, Any], secret: str) -> Account:
        """
        Add a new account and persist the vault.

        Args:
            fields (dict): Editable account fields; ``platform`` is required
            secret (str): Plaintext password, encrypted before storage

        Returns:
            Account: Copy of the stored record
        """
        with self._lock.write_locked():
            self._require_unlocked()
            cleaned = validate_account_fields(fields)

            existing_ids = {account.id for account in self._accounts}
            account_id = generate_account_id()
            while account_id in existing_ids:
                account_id = generate_account_id()

            now = time.time()
            account = Account(
                id=account_id,
                platform=cleaned["platform"],
                username=cleaned.get("username", ""),
                email=cleaned.get("email", ""),
                url=cleaned.get("url", ""),
                notes=cleaned.get("notes", ""),
                group=cleaned.get("group", ""),
                sort_order=(cleaned["sort_order"] if "sort_order" in cleaned
                            else collection.next_sort_order(self._accounts)),
                encrypted_password=self._encrypt_secret(secret),
                created_at=now,
                updated_at=now,
            )

            collection.append_account(self._accounts, account)
            self._save_vault()
            logger.debug("Account %s added", account.id)
            return account.copy()

    def update_account(self, account_id: str, fields: Dict[str, Any],
                       new_secret: Optional[str] = None) -> Account:
        """
        Change fields of an existing account and persist the vault.

        ``id`` and ``created_at`` never change; ``updated_at`` is refreshed.
        When ``new_secret`` is None the stored secret is kept.

        Raises:
            AccountNotFoundError: If no account has that id
        """
        with self._lock.write_locked():
            self._require_unlocked()
            cleaned = validate_account_fields(fields, require_platform=False)
            current = collection.find_account(self._accounts, account_id)

            updated = current.copy()
            for name, value in cleaned.items():
                setattr(updated, name, value)
            if new_secret is not None:
                updated.encrypted_password = self._encrypt_secret(new_secret)
            updated.updated_at = max(time.time(), current.updated_at, current.created_at)

            collection.replace_account(self._accounts, updated)
            self._save_vault()
            logger.debug("Account %s updated", account_id)
            return updated.copy()

    def delete_account(self, account_id: str) -> None:
        with self._lock.write_locked():
            self._require_unlocked()
            collection.remove_account(self._accounts, account_id)
            self._save_vault()
            logger.debug("Account %s deleted", account_id)

    def list_accounts(self) -> List[Account]:
        with self._lock.read_locked():
            self._require_unlocked()
            return [account.copy() for account in self._accounts]

    def get_account(self, account_id: str) -> Account:
        with self._lock.read_locked():
            self._require_unlocked()
            return collection.find_account(self._accounts, account_id).copy()

    def search_accounts(self, query: str) -> List[Account]:
        """Case-insensitive substring search; an empty query returns all."""
        with self._lock.read_locked():
            self._require_unlocked()
            return [account.copy() for account in collection.search_accounts(self._accounts, query)]

    def decrypt_secret(self, account_id: str) -> str:
        """
        Return the plaintext secret of one account.

        Raises:
            AccountNotFoundError: If no account has that id
            DecryptionError: If the stored token does not authenticate
        """
        with self._lock.read_locked():
            self._require_unlocked()
            account = collection.find_account(self._accounts, account_id)
            return decrypt(account.encrypted_password, self._key).decode("utf-8")

    # ==========================================================================
    # GROUPS AND ORDERING
    # ==========================================================================

    def list_groups(self) -> List[str]:
        with self._lock.read_locked():
            self._require_unlocked()
            return collection.list_groups(self._accounts)

    def list_accounts_in_group(self, group: str) -> List[Account]:
        """Accounts of ``group`` by sort_order; ``""`` selects ungrouped ones."""
        with self._lock.read_locked():
            self._require_unlocked()
            return [account.copy() for account in collection.filter_by_group(self._accounts, group)]

    def search_accounts_in_group(self, query: str, group: str) -> List[Account]:
        with self._lock.read_locked():
            self._require_unlocked()
            members = collection.filter_by_group(self._accounts, group)
            return [account.copy() for account in collection.search_accounts(members, query)]

    def reorder_accounts(self, account_ids: List[str], group: Optional[str] = None) -> None:
        """
        Persist a new display order.

        Raises:
            AccountNotFoundError: If an id is unknown
            InvalidAccountError: If an id is outside ``group``
        """
        with self._lock.write_locked():
            self._require_unlocked()
            renumbered = collection.apply_order(self._accounts, account_ids, group)
            now = time.time()
            for account in renumbered:
                account.updated_at = max(now, account.updated_at)
            self._save_vault()

    # ==========================================================================
    # EXPORT / IMPORT
    # ==========================================================================

    def export_vault(self, export_path: str) -> None:
        """
        Copy the encrypted vault file verbatim to ``export_path``.

        No decryption happens; the copy opens with the original master
        password.
        """
        with self._lock.read_locked():
            data = self._read_vault_file()
            try:
                _write_private_file(export_path, data)
            except OSError as exc:
                raise VaultIOError(f"failed to write export file {export_path}") from exc
        logger.info("Vault exported to %s", export_path)

    def import_vault(self, import_path: str) -> None:
        """
        Replace the vault file with an exported one and lock the session.

        The import file is read and length-checked before anything on disk
        changes, so importing ``vault.encrypted.bak`` itself restores it. The
        current file is then renamed to ``vault.encrypted.bak``. Only the
        minimum length is checked here: no password is known at import time,
        so the next unlock_vault() performs the full validation. A failed
        write restores the backup.

        Raises:
            DataCorruptedError: If the import file is too short
            VaultIOError: If reading, backing up or writing fails
        """
        with self._lock.write_locked():
            try:
                with open(import_path, "rb") as handle:
                    data = handle.read()
            except OSError as exc:
                raise VaultIOError(f"failed to read import file {import_path}") from exc

            if len(data) <= HEADER_SIZE:
                raise DataCorruptedError("import file format invalid or too short")

            backed_up = False
            if self.vault_exists():
                try:
                    os.replace(self.vault_path, self.backup_path)
                except OSError as exc:
                    raise VaultIOError("failed to back up existing vault") from exc
                backed_up = True
                logger.info("Existing vault backed up to %s", self.backup_path)

            try:
                self._write_atomic(data)
            except VaultError:
                if backed_up:
                    self._restore_backup()
                raise

            self._clear_session()
            logger.info("Vault imported from %s; unlock with its original master password", import_path)

    def _restore_backup(self) -> None:
        try:
            os.replace(self.backup_path, self.vault_path)
        except OSError:
            logger.error("Could not restore vault backup %s", self.backup_path)

    def export_to_csv(self, export_path: str) -> None:
        """
        Write every account, secret included, to a plaintext CSV file.

        INSECURE: the output holds all passwords in clear text. An
        InsecureExportWarning is always emitted. Each decrypted secret is
        wiped as soon as its row is written; a partial file is removed on
        failure.
        """
        with self._lock.read_locked():
            self._require_unlocked()

            warnings.warn(
                "Exporting passwords to CSV writes them in plaintext",
                InsecureExportWarning,
                stacklevel=2,
            )
            logger.warning("Exporting %d accounts in plaintext to %s", len(self._accounts), export_path)

            try:
                fd = os.open(export_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
                with open(fd, "w", encoding="utf-8-sig", newline="") as handle:
                    writer = csv.writer(handle)
                    writer.writerow(CSV_HEADER)
                    for account in self._accounts:
                        self._write_csv_row(writer, account)
            except (OSError, VaultError) as exc:
                try:
                    os.remove(export_path)
                except OSError:
                    pass
                if isinstance(exc, VaultError):
                    raise
                raise VaultIOError(f"failed to write CSV file {export_path}") from exc

    def _write_csv_row(self, writer, account: Account) -> None:
        secret = bytearray()
        try:
            if account.encrypted_password:
                secret = bytearray(decrypt(account.encrypted_password, self._key))
            writer.writerow([
                account.id, account.platform, account.username, account.email,
                secret.decode("utf-8"),
                account.url, account.notes, account.group,
                _format_timestamp(account.created_at),
                _format_timestamp(account.updated_at),
            ])
        finally:
            wipe_bytes(secret)


__all__ = ["VaultStorage", "VaultState", "HEADER_SIZE", "CSV_HEADER"]
