"""
Cryptographic operations for Roost.

This module provides the primitives the vault engine is built on:
- Key derivation using PBKDF2-HMAC-SHA256 with HKDF key separation
- Authenticated encryption using AES-256-GCM with self-contained tokens
- Best-effort wiping of sensitive buffers

Only one cipher suite is defined. Tokens are base64 text so they can be
embedded in JSON (per-account secrets) as well as written to disk (the vault
payload).
"""

import os
import base64
import binascii
import ctypes
from typing import Tuple, Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from . import config
from .errors import DecryptionError

# ==============================================================================
# CRYPTOGRAPHIC CONSTANTS
# ==============================================================================

# Size of the per-vault salt in bytes
SALT_SIZE = 16

# Size of AES-GCM nonce in bytes (96 bits as recommended for AES-GCM)
NONCE_SIZE = 12

# Size of AES-GCM authentication tag in bytes (128 bits)
TAG_SIZE = 16

# Size of encryption key in bytes (256 bits for AES-256)
KEY_SIZE = 32

# Size of the stored verification hash in bytes
HASH_SIZE = 32

# PBKDF2 rounds; resolved from configuration, never below 100k
PBKDF2_ITERATIONS = config.PBKDF2_ITERATIONS

# HKDF context strings binding each output to a single purpose
ENCRYPTION_INFO = b"roost-encryption"
VERIFICATION_INFO = b"roost-verification"

BytesLike = Union[bytes, bytearray]

# ==============================================================================
# KEY DERIVATION FUNCTIONS
# ==============================================================================

def _stretch_password(password: str, salt: bytes) -> bytearray:
    """
    Run the slow, iterated part of the derivation.

    Args:
        password (str): Master password (encoded to UTF-8)
        salt (bytes): Per-vault salt

    Returns:
        bytearray: 32 bytes of stretched key material
    """
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_SIZE,
        salt=bytes(salt),
        iterations=PBKDF2_ITERATIONS,
    )
    password_bytes = bytearray(password.encode("utf-8"))
    try:
        return bytearray(kdf.derive(bytes(password_bytes)))
    finally:
        wipe_bytes(password_bytes)


def derive_hkdf_key(key_material: BytesLike, info: bytes) -> bytearray:
    """
    Apply HKDF-SHA256 to stretched key material.

    HKDF binds each derived value to a purpose, so the verification hash
    stored on disk never equals the encryption key.

    Args:
        key_material (bytes): Output of the PBKDF2 stretch
        info (bytes): Purpose label

    Returns:
        bytearray: 32-byte derived value
    """
    hkdf = HKDF(
        algorithm=hashes.SHA256(),
        length=KEY_SIZE,
        salt=None,  # PBKDF2 already consumed the salt
        info=info,
    )
    return bytearray(hkdf.derive(bytes(key_material)))


def derive_key_pair(password: str, salt: bytes) -> Tuple[bytearray, bytearray]:
    """
    Derive both the verification hash and the encryption key in one stretch.

    Args:
        password (str): Master password
        salt (bytes): Per-vault salt

    Returns:
        Tuple[bytearray, bytearray]: ``(verification_hash, key)``, both
        mutable so the caller can wipe them.
    """
    stretched = _stretch_password(password, salt)
    try:
        verification_hash = derive_hkdf_key(stretched, VERIFICATION_INFO)
        key = derive_hkdf_key(stretched, ENCRYPTION_INFO)
        return verification_hash, key
    finally:
        wipe_bytes(stretched)


def derive_key(password: str, salt: bytes) -> bytearray:
    """Derive the 32-byte symmetric key for ``password`` and ``salt``."""
    stretched = _stretch_password(password, salt)
    try:
        return derive_hkdf_key(stretched, ENCRYPTION_INFO)
    finally:
        wipe_bytes(stretched)


def hash_for_verification(password: str, salt: bytes) -> bytearray:
    """Derive the 32-byte password verification hash.

    Used only to check a supplied password; never as a key.
    """
    stretched = _stretch_password(password, salt)
    try:
        return derive_hkdf_key(stretched, VERIFICATION_INFO)
    finally:
        wipe_bytes(stretched)


def generate_salt() -> bytes:
    """
    Generate a cryptographically secure random salt.

    Returns:
        bytes: SALT_SIZE bytes from the OS random source
    """
    return os.urandom(SALT_SIZE)

# ==============================================================================
# SYMMETRIC ENCRYPTION / DECRYPTION
# ==============================================================================

def _check_key(key: BytesLike) -> None:
    """
    Reject keys of the wrong length before any cipher is constructed.

    Raises:
        ValueError: If key is not exactly KEY_SIZE bytes
    """
    if key is None or len(key) != KEY_SIZE:
        raise ValueError("invalid encryption key length")


def encrypt(plaintext: BytesLike, key: BytesLike) -> str:
    """
    Encrypt data using AES-256-GCM.

    A fresh random nonce is generated for every call, so encrypting the same
    plaintext twice yields two different tokens.

    Args:
        plaintext (bytes): Data to encrypt
        key (bytes): 32-byte key

    Returns:
        str: Base64 token of ``nonce || ciphertext || tag``

    Raises:
        ValueError: If the key has the wrong length
    """
    _check_key(key)

    nonce = os.urandom(NONCE_SIZE)
    aesgcm = AESGCM(bytes(key))

    # AESGCM appends the 16-byte tag to the ciphertext
    ciphertext_with_tag = aesgcm.encrypt(nonce, bytes(plaintext), None)

    return base64.b64encode(nonce + ciphertext_with_tag).decode("ascii")


def decrypt(token: Union[str, bytes], key: BytesLike) -> bytes:
    """
    Decrypt and verify a token produced by encrypt().

    The tag is verified before any plaintext is released. Wrong keys,
    malformed or truncated tokens and tampered data all raise the same
    DecryptionError.

    Args:
        token (str or bytes): Base64 token
        key (bytes): 32-byte key

    Returns:
        bytes: Plaintext

    Raises:
        ValueError: If the key has the wrong length
        DecryptionError: On any authentication or format failure
    """
    _check_key(key)

    try:
        raw = base64.b64decode(token, validate=True)
    except (binascii.Error, ValueError, TypeError) as exc:
        raise DecryptionError() from exc

    if len(raw) < NONCE_SIZE + TAG_SIZE:
        raise DecryptionError()

    nonce, ciphertext_with_tag = raw[:NONCE_SIZE], raw[NONCE_SIZE:]

    try:
        return AESGCM(bytes(key)).decrypt(nonce, ciphertext_with_tag, None)
    except InvalidTag as exc:
        raise DecryptionError() from exc

# ==============================================================================
# SECURE MEMORY MANAGEMENT
# ==============================================================================

def wipe_bytes(data: bytearray) -> None:
    """
    Overwrite a mutable buffer with zeros in place.

    Effectiveness is limited by Python's memory management: immutable copies
    made elsewhere (str, bytes) are out of reach.

    Args:
        data (bytearray): Buffer to wipe; None and empty buffers are ignored
    """
    if not data:
        return

    for i in range(len(data)):
        data[i] = 0

    ctypes.memset(
        ctypes.addressof(ctypes.c_char.from_buffer(data)),
        0,
        len(data)
    )


__all__ = [
    "SALT_SIZE",
    "NONCE_SIZE",
    "TAG_SIZE",
    "KEY_SIZE",
    "HASH_SIZE",
    "derive_key_pair",
    "derive_key",
    "hash_for_verification",
    "generate_salt",
    "encrypt",
    "decrypt",
    "wipe_bytes",
]
