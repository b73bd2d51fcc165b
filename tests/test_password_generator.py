"""Tests for random password generation and strength estimation."""

import string

import pytest

from roostlib.password_generator import (
    AMBIGUOUS_CHARS, SIMILAR_CHARS, SYMBOLS,
    GeneratorOptions, PasswordGenerationError,
    estimate_password_strength, generate_password,
)


class TestGeneratePassword:

    def test_default_options(self):
        password = generate_password()
        assert len(password) == 16
        assert set(password) <= set(string.ascii_letters + string.digits + SYMBOLS)

    @pytest.mark.parametrize("length", [1, 3, 4, 32, 128])
    def test_exact_length(self, length):
        assert len(generate_password(GeneratorOptions(length=length))) == length

    @pytest.mark.parametrize("length", [0, -5])
    def test_non_positive_length(self, length):
        with pytest.raises(PasswordGenerationError, match="password length must be positive"):
            generate_password(GeneratorOptions(length=length))

    def test_empty_charset(self):
        options = GeneratorOptions(use_lowercase=False, use_uppercase=False,
                                   use_digits=False, use_symbols=False)
        with pytest.raises(PasswordGenerationError,
                           match="at least one character set must be selected"):
            generate_password(options)

    def test_digits_only(self):
        options = GeneratorOptions(length=40, use_lowercase=False, use_uppercase=False,
                                   use_symbols=False)
        assert generate_password(options).isdigit()

    def test_every_selected_set_is_represented(self):
        for _ in range(20):
            password = generate_password(GeneratorOptions(length=8))
            assert any(c in string.ascii_lowercase for c in password)
            assert any(c in string.ascii_uppercase for c in password)
            assert any(c in string.digits for c in password)
            assert any(c in SYMBOLS for c in password)

    def test_exclude_similar(self):
        options = GeneratorOptions(length=200, exclude_similar=True)
        for _ in range(5):
            assert not set(generate_password(options)) & set(SIMILAR_CHARS)

    def test_exclude_ambiguous(self):
        options = GeneratorOptions(length=200, exclude_ambiguous=True)
        for _ in range(5):
            assert not set(generate_password(options)) & set(AMBIGUOUS_CHARS)

    def test_outputs_differ(self):
        assert len({generate_password() for _ in range(20)}) == 20


class TestStrengthEstimate:

    def test_empty(self):
        assert estimate_password_strength("")["strength"] == "Very Weak"

    def test_short_simple_is_weak(self):
        result = estimate_password_strength("abc")
        assert result["strength"] == "Very Weak"
        assert result["feedback"]

    def test_entropy_grows_with_pool_and_length(self):
        def bits(password):
            return estimate_password_strength(password)["entropy_bits"]

        assert bits("abcd") < bits("aB1!")
        assert bits("abcd") < bits("abcdefgh")

    def test_long_random_is_strong(self):
        result = estimate_password_strength("Xk9#mQ2$vL7!pR4&zT8@")
        assert result["strength"] in ("Strong", "Very Strong")
        assert result["entropy_bits"] > 80

    def test_common_pattern_is_penalized(self):
        plain = estimate_password_strength("Zebra!Lamp#Cove42")
        common = estimate_password_strength("Password!Lamp#42x")
        assert plain["entropy_bits"] == common["entropy_bits"]
        assert plain["strength"] != common["strength"]
