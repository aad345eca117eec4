"""
Input Validators and Sanitizers

This module provides validation and sanitization functions for user inputs.
These functions help prevent security issues and ensure data integrity.

Security Considerations:
- Only http/https destinations are accepted (no javascript:, data:, file:)
- Aliases and path segments are restricted to the short-code alphabet
- Length limits prevent oversized keys and URLs
"""

import re
from typing import Any, Optional
from urllib.parse import urlparse

ALIAS_PATTERN = re.compile(r'[A-Za-z0-9_-]+')

ALLOWED_SCHEMES = {'http', 'https'}


def is_valid_url(url: Any, max_length: int = 2048) -> bool:
    """
    Validate a destination URL.

    Args:
        url: The submitted value
        max_length: Maximum allowed length (default: 2048 per RFC 7230)

    Returns:
        True if url is a string with an http(s) scheme and a host
    """
    if not url or not isinstance(url, str):
        return False

    if len(url) > max_length:
        return False

    try:
        result = urlparse(url)
    except ValueError:
        return False

    if result.scheme.lower() not in ALLOWED_SCHEMES:
        return False

    return bool(result.netloc)


def is_valid_alias_format(alias: Any) -> bool:
    """Return True if alias is a string made only of [A-Za-z0-9_-]."""
    return isinstance(alias, str) and ALIAS_PATTERN.fullmatch(alias) is not None


def sanitize_short_code(short_code: str, max_length: int = 32) -> Optional[str]:
    """
    Sanitize and validate a redirect path segment.

    Short codes and aliases share the alphabet [A-Za-z0-9_-], so anything
    else can never match a stored record.

    Args:
        short_code: The path segment to sanitize
        max_length: Longest code that can be stored

    Returns:
        Sanitized short code if valid, None otherwise
    """
    if not short_code or not isinstance(short_code, str):
        return None

    if len(short_code) > max_length:
        return None

    if not ALIAS_PATTERN.fullmatch(short_code):
        return None

    return short_code
