"""
Secure Password Generation Module for Roost

This module provides cryptographically secure password generation and a
lightweight strength estimate for display:
- Random passwords from configurable character sets
- Optional exclusion of look-alike and ambiguous characters
- Entropy-based strength labels

All random selection uses the secrets module, which draws from the operating
system CSPRNG. The generator is stateless and safe to call from any thread.

SECURITY NOTES:
- Uses secrets instead of random for every draw, shuffling included
- Guarantees one character from each selected set when the length allows it
- Never logs or caches generated passwords
"""

import re
import math
import secrets
import string
from dataclasses import dataclass
from typing import Dict, Optional

# ==============================================================================
# CHARACTER SETS
# ==============================================================================

LOWERCASE = string.ascii_lowercase
UPPERCASE = string.ascii_uppercase
DIGITS = string.digits
SYMBOLS = "!@#$%^&*()-_=+[]{}|;:,.<>?/"

SIMILAR_CHARS = "lI1O0"
AMBIGUOUS_CHARS = "{}()[]<>/\\"

DEFAULT_LENGTH = 16

_system_random = secrets.SystemRandom()


# ==============================================================================
# CUSTOM EXCEPTION CLASSES
# ==============================================================================

class PasswordGenerationError(ValueError):
    """
    Raised when the requested options cannot produce a password.

    Covers a non-positive length and option combinations that leave the
    character set empty.
    """


# ==============================================================================
# OPTIONS
# ==============================================================================

@dataclass
class GeneratorOptions:
    """
    Parameters for generate_password().

    Attributes:
        length (int): Number of characters to produce. Default: 16
        use_lowercase (bool): Include a-z. Default: True
        use_uppercase (bool): Include A-Z. Default: True
        use_digits (bool): Include 0-9. Default: True
        use_symbols (bool): Include SYMBOLS. Default: True
        exclude_similar (bool): Drop characters in SIMILAR_CHARS. Default: False
        exclude_ambiguous (bool): Drop characters in AMBIGUOUS_CHARS. Default: False
    """

    length: int = DEFAULT_LENGTH
    use_lowercase: bool = True
    use_uppercase: bool = True
    use_digits: bool = True
    use_symbols: bool = True
    exclude_similar: bool = False
    exclude_ambiguous: bool = False


def _filter_pool(pool: str, options: GeneratorOptions) -> str:
    excluded = ""
    if options.exclude_similar:
        excluded += SIMILAR_CHARS
    if options.exclude_ambiguous:
        excluded += AMBIGUOUS_CHARS
    return "".join(char for char in pool if char not in excluded)


def build_charset_pools(options: GeneratorOptions) -> list:
    """
    Return the non-empty character pools selected by ``options``.

    Exclusions are applied per pool so a set that becomes empty after
    filtering simply drops out.
    """
    selected = []
    if options.use_lowercase:
        selected.append(LOWERCASE)
    if options.use_uppercase:
        selected.append(UPPERCASE)
    if options.use_digits:
        selected.append(DIGITS)
    if options.use_symbols:
        selected.append(SYMBOLS)

    pools = [_filter_pool(pool, options) for pool in selected]
    return [pool for pool in pools if pool]


# ==============================================================================
# MAIN PASSWORD GENERATION FUNCTION
# ==============================================================================

def generate_password(options: Optional[GeneratorOptions] = None) -> str:
    """
    Generate a cryptographically secure random password.

    Every character is drawn uniformly from the union of the selected pools.
    When the length is at least the number of pools, one character from each
    pool is placed first and the result is shuffled, so every selected type
    is represented.

    Args:
        options (GeneratorOptions, optional): Generation parameters.
            Defaults to GeneratorOptions() (16 characters, all sets).

    Returns:
        str: Generated password of exactly ``options.length`` characters

    Raises:
        PasswordGenerationError: If the length is not positive or the
            character set is empty

    Examples:
        >>> generate_password(GeneratorOptions(length=12, use_symbols=False))
        'hG7fD2k9LpQ3'

    Security Notes:
        - secrets.choice() for every character
        - SystemRandom.shuffle() so positions carry no pattern
    """
    if options is None:
        options = GeneratorOptions()

    if options.length <= 0:
        raise PasswordGenerationError("password length must be positive")

    pools = build_charset_pools(options)
    if not pools:
        raise PasswordGenerationError("at least one character set must be selected")

    charset = "".join(pools)

    password_chars = []
    if options.length >= len(pools):
        password_chars = [secrets.choice(pool) for pool in pools]

    while len(password_chars) < options.length:
        password_chars.append(secrets.choice(charset))

    _system_random.shuffle(password_chars)
    return "".join(password_chars)


# ==============================================================================
# STRENGTH ESTIMATION
# ==============================================================================

def estimate_password_strength(password: str) -> Dict[str, object]:
    """
    Rough, entropy-based strength analysis for display.

    Entropy is ``log2(pool size) * length`` where the pool is inferred from
    the character types present. Common and repeated patterns lower the
    label by one step.

    Args:
        password (str): Password to analyze

    Returns:
        dict: Keys ``entropy_bits`` (float), ``strength`` (label),
        ``color`` (UI hint) and ``feedback`` (list of suggestions)
    """
    if not password:
        return {
            'entropy_bits': 0.0,
            'strength': "Very Weak",
            'color': "red",
            'feedback': ["Password is empty"],
        }

    feedback = []
    has_lower = bool(re.search(r'[a-z]', password))
    has_upper = bool(re.search(r'[A-Z]', password))
    has_digit = bool(re.search(r'[0-9]', password))
    has_symbol = bool(re.search(r'[^A-Za-z0-9]', password))

    pool = 0
    pool += 26 if has_lower else 0
    pool += 26 if has_upper else 0
    pool += 10 if has_digit else 0
    pool += len(SYMBOLS) if has_symbol else 0

    entropy = math.log2(pool) * len(password) if pool else 0.0

    if sum([has_lower, has_upper, has_digit, has_symbol]) < 3:
        feedback.append("Use mixed character types (uppercase, lowercase, digits, symbols)")
    if len(password) < 12:
        feedback.append("Use at least 12 characters")

    penalty = 0
    lowered = password.lower()
    for pattern in ('password', 'qwerty', '123456', 'admin', 'welcome'):
        if pattern in lowered:
            penalty += 1
            feedback.append(f"Avoid common passwords like '{pattern}'")
            break
    if re.search(r'(.)\1{2,}', password):
        penalty += 1
        feedback.append("Avoid repeated characters (aaa, 111, etc.)")

    levels = [
        (0, "Very Weak", "red"),
        (40, "Weak", "orange"),
        (60, "Good", "yellow"),
        (80, "Strong", "blue"),
        (100, "Very Strong", "green"),
    ]
    level = 0
    for index, (threshold, _, _) in enumerate(levels):
        if entropy >= threshold:
            level = index
    level = max(0, level - penalty)

    _, strength, color = levels[level]
    return {
        'entropy_bits': round(entropy, 1),
        'strength': strength,
        'color': color,
        'feedback': feedback,
    }


__all__ = [
    'PasswordGenerationError',
    'GeneratorOptions',
    'build_charset_pools',
    'generate_password',
    'estimate_password_strength',
    'SYMBOLS',
    'SIMILAR_CHARS',
    'AMBIGUOUS_CHARS',
]
