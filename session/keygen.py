"""
Session key generation.

Keys are the only secret protecting a session, so every character is drawn
from the operating system CSPRNG through the ``secrets`` module, never from
``random``.

Keys use a fixed alphabet of ASCII letters and digits (62 symbols), which is
safe in cookies, URLs, and HTTP headers without escaping. With the default
length of 32 a key carries about 190 bits of entropy.
"""

import os
import secrets
import string
from typing import Callable

from errors.exceptions import RandomSourceUnavailableError

ALPHABET = string.ascii_letters + string.digits

DEFAULT_KEY_LENGTH = 32

KeyGenerator = Callable[[int], str]


def assert_random_source_available() -> None:
    """
    Check that the secure randomness source can be read.

    Called once when a store starts. A failure here must stop startup.

    Raises:
        RandomSourceUnavailableError: If the OS source cannot be read.
    """
    try:
        os.urandom(1)
    except (OSError, NotImplementedError) as e:
        raise RandomSourceUnavailableError(
            f"Secure randomness source is unavailable: {e}"
        ) from e


def generate_key(length: int) -> str:
    """
    Generate a random key of ``length`` characters from ALPHABET.

    Args:
        length: Number of characters. Zero yields an empty string.

    Returns:
        The generated key.

    Raises:
        ValueError: If length is negative.
        RandomSourceUnavailableError: If the OS source fails mid-call.
    """
    if length < 0:
        raise ValueError(f"Key length cannot be negative, got {length}")

    try:
        return "".join(secrets.choice(ALPHABET) for _ in range(length))
    except (OSError, NotImplementedError) as e:
        raise RandomSourceUnavailableError(
            f"Secure randomness source failed while generating a key: {e}"
        ) from e
