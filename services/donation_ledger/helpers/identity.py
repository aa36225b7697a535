"""
Identity normalization for donation contributors.

Emails and display names are compared case-insensitively after unicode
and whitespace normalization.
"""

import re
import unicodedata
from typing import Iterable, Optional, Set


def normalize_name(name: Optional[str]) -> Optional[str]:
    """
    Normalize a display name into a merge key.

    Normalization steps:
    1. Strip leading/trailing whitespace
    2. Normalize unicode to NFC form (canonical composition)
    3. Collapse multiple spaces into single space
    4. Case-fold

    Args:
        name: Display name as reported by the platform

    Returns:
        Normalized key, or None for missing/blank names

    Examples:
        >>> normalize_name("  Simon   Cropp ")
        'simon cropp'
        >>> normalize_name("   ") is None
        True
    """
    if not name or not isinstance(name, str):
        return None

    result = unicodedata.normalize("NFC", name.strip())
    result = re.sub(r"\s+", " ", result)
    result = result.casefold()

    return result or None


def normalize_email(email: Optional[str]) -> Optional[str]:
    """
    Normalize an email (or platform account id) into a merge key.

    Examples:
        >>> normalize_email(" Foo@Example.COM ")
        'foo@example.com'
        >>> normalize_email("") is None
        True
    """
    if not email or not isinstance(email, str):
        return None

    result = email.strip().casefold()
    return result or None


def is_blocked(block_list: Set[str], *values: Optional[str]) -> bool:
    """
    Check whether any of the given names/emails is on the block-list.

    Args:
        block_list: Entries normalized with normalize_name
        *values: Candidate names and emails (None entries are ignored)

    Returns:
        True if any value matches case-insensitively

    Example:
        >>> is_blocked({"jane@example.com"}, "Jane", "JANE@example.com")
        True
    """
    return any(key in block_list for key in _keys(values))


def _keys(values: Iterable[Optional[str]]) -> Iterable[str]:
    for value in values:
        key = normalize_name(value)
        if key:
            yield key
