"""Tests for key derivation, authenticated encryption and buffer wiping."""

import base64

import pytest

from roostlib import crypto
from roostlib.errors import DecryptionError, InvalidPasswordError, ErrorKind


SALT = b"\x01" * crypto.SALT_SIZE


class TestKeyDerivation:

    def test_same_inputs_give_same_key(self):
        assert crypto.derive_key("hunter22", SALT) == crypto.derive_key("hunter22", SALT)

    def test_key_is_32_bytes(self):
        assert len(crypto.derive_key("hunter22", SALT)) == crypto.KEY_SIZE

    def test_different_salt_changes_key(self):
        other = b"\x02" * crypto.SALT_SIZE
        assert crypto.derive_key("hunter22", SALT) != crypto.derive_key("hunter22", other)

    def test_different_password_changes_key(self):
        assert crypto.derive_key("hunter22", SALT) != crypto.derive_key("hunter23", SALT)

    def test_verification_hash_differs_from_key(self):
        verification_hash, key = crypto.derive_key_pair("hunter22", SALT)
        assert len(verification_hash) == crypto.HASH_SIZE
        assert verification_hash != key

    def test_pair_matches_individual_derivations(self):
        verification_hash, key = crypto.derive_key_pair("hunter22", SALT)
        assert key == crypto.derive_key("hunter22", SALT)
        assert verification_hash == crypto.hash_for_verification("hunter22", SALT)

    def test_empty_password_still_derives(self):
        assert len(crypto.derive_key("", SALT)) == crypto.KEY_SIZE

    def test_generate_salt_is_random(self):
        first, second = crypto.generate_salt(), crypto.generate_salt()
        assert len(first) == crypto.SALT_SIZE
        assert first != second


class TestCipher:

    @pytest.fixture
    def key(self):
        return crypto.derive_key("hunter22", SALT)

    def test_round_trip(self, key):
        token = crypto.encrypt(b"top secret", key)
        assert crypto.decrypt(token, key) == b"top secret"

    def test_empty_plaintext(self, key):
        assert crypto.decrypt(crypto.encrypt(b"", key), key) == b""

    def test_token_is_base64_with_overhead(self, key):
        raw = base64.b64decode(crypto.encrypt(b"abc", key))
        assert len(raw) == crypto.NONCE_SIZE + 3 + crypto.TAG_SIZE

    def test_nonce_is_fresh_per_call(self, key):
        assert crypto.encrypt(b"same", key) != crypto.encrypt(b"same", key)

    def test_wrong_key_fails(self, key):
        token = crypto.encrypt(b"top secret", key)
        other = crypto.derive_key("other", SALT)
        with pytest.raises(DecryptionError):
            crypto.decrypt(token, other)

    def test_tampered_ciphertext_fails(self, key):
        raw = bytearray(base64.b64decode(crypto.encrypt(b"top secret", key)))
        raw[crypto.NONCE_SIZE] ^= 0x01
        with pytest.raises(DecryptionError):
            crypto.decrypt(base64.b64encode(bytes(raw)).decode(), key)

    def test_truncated_token_fails(self, key):
        short = base64.b64encode(b"\x00" * 10).decode()
        with pytest.raises(DecryptionError):
            crypto.decrypt(short, key)

    def test_non_base64_token_fails(self, key):
        with pytest.raises(DecryptionError):
            crypto.decrypt("not base64 !!!", key)

    def test_decryption_error_is_invalid_password_kind(self, key):
        with pytest.raises(InvalidPasswordError) as excinfo:
            crypto.decrypt("AAAA", key)
        assert excinfo.value.kind is ErrorKind.INVALID_PASSWORD

    @pytest.mark.parametrize("bad_key", [b"", b"\x00" * 16, b"\x00" * 33])
    def test_bad_key_length_rejected(self, bad_key):
        with pytest.raises(ValueError, match="invalid encryption key length"):
            crypto.encrypt(b"data", bad_key)
        with pytest.raises(ValueError, match="invalid encryption key length"):
            crypto.decrypt("AAAA", bad_key)


class TestWipeBytes:

    def test_buffer_is_zeroed(self):
        buf = bytearray(b"sensitive")
        crypto.wipe_bytes(buf)
        assert buf == bytearray(len(b"sensitive"))

    def test_empty_and_none_are_ignored(self):
        crypto.wipe_bytes(bytearray())
        crypto.wipe_bytes(None)
