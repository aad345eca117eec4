"""
Short Code Generator

Produces random, fixed-length, URL-safe short codes.

The generator keeps no state and does not guarantee uniqueness: the record
store's UNIQUE constraint on short_code is what rejects collisions, and the
allocation service retries with a fresh code when that happens.

Keyspace: 64 ** 6 (about 6.9e10) codes at the default length.
"""

import random
import string

ALPHABET = string.ascii_lowercase + string.ascii_uppercase + string.digits + "-_"
ALPHABET_LENGTH = len(ALPHABET)


def generate_short_code(length: int = 6) -> str:
    """
    Generate a random short code.

    Not cryptographically secure; codes are identifiers, not secrets.

    Args:
        length: Number of characters (default: 6)

    Returns:
        A string of `length` characters drawn uniformly from ALPHABET
    """
    if length < 1:
        raise ValueError(f"Short code length must be positive (given value: {length})")
    return "".join(random.choices(ALPHABET, k=length))
