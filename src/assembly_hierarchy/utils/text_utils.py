"""
Text utilities for the Assembly Hierarchy Engine.

Provides normalization and ordering helpers used for sibling ordering,
part-number de-duplication and text search.
"""

import re
from typing import Optional, Tuple, Union


_DIGIT_RUN = re.compile(r"(\d+)")


def normalize_whitespace(text: str) -> str:
    """
    Normalize multiple spaces, tabs, newlines to single space.

    Args:
        text: Input text

    Returns:
        Normalized text with single spaces
    """
    normalized = re.sub(r"\s+", " ", text)
    return normalized.strip()


def normalize_part_number(part_number: Optional[str]) -> Optional[str]:
    """
    Canonical form of a part number for uniqueness counting.

    Args:
        part_number: Raw part number, possibly None or blank.

    Returns:
        Whitespace-normalized part number, or None when blank.
    """
    if part_number is None:
        return None
    normalized = normalize_whitespace(str(part_number))
    return normalized or None


def natural_sort_key(text: str) -> Tuple[Tuple[int, Union[int, str]], ...]:
    """
    Build a sort key that orders embedded numbers numerically.

    Reference designators such as ``R2`` and ``R10`` sort as an engineer
    expects (``R2`` before ``R10``).

    Args:
        text: Input text

    Returns:
        Tuple usable as a sort key. Numeric chunks compare before text chunks
        at the same position so the key is always comparable.

    Example:
        >>> sorted(["R10", "R2", "C1"], key=natural_sort_key)
        ['C1', 'R2', 'R10']
    """
    key = []
    for chunk in _DIGIT_RUN.split(text.casefold()):
        if not chunk:
            continue
        if chunk.isdigit():
            key.append((0, int(chunk)))
        else:
            key.append((1, chunk))
    return tuple(key)


def contains_text(haystack: Optional[str], needle: str) -> bool:
    """
    Case-insensitive substring test that tolerates missing values.

    Args:
        haystack: Text to search in, may be None.
        needle: Already case-folded text to search for.

    Returns:
        True if needle occurs in haystack.
    """
    if not haystack:
        return False
    return needle in haystack.casefold()
