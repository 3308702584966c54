"""Glob-style matching for policy patterns.

Every pattern in a signing policy (resource coordinates, signer subject
fields, user names) is compared with :func:`match_pattern`. An empty pattern
leaves the field unconstrained; ``*``, ``?`` and ``[...]`` behave as in
shell globs. Comparison is case-sensitive.
"""

from __future__ import annotations

import logging
import re
from fnmatch import fnmatchcase

logger = logging.getLogger(__name__)

_WILDCARD_CHARS = frozenset("*?[")


def is_wildcard(pattern: str) -> bool:
    """Return True if the pattern contains any glob token."""
    return any(c in _WILDCARD_CHARS for c in pattern)


def match_pattern(pattern: str, value: str) -> bool:
    """Match a value against a policy pattern.

    Never raises: a pattern that cannot be compiled as a glob is compared
    literally instead.
    """
    if not pattern:
        return True
    if not is_wildcard(pattern):
        return pattern == value
    try:
        return fnmatchcase(value, pattern)
    except re.error:
        logger.debug("Invalid glob %r, falling back to literal comparison", pattern)
        return pattern == value
