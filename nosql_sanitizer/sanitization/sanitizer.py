"""
NoSQL Injection Sanitization.

Hardens decoded request data before it is used as a query filter or
update document.

Attack vectors handled:
- MongoDB operators ($where, $ne, $gt, ...), at any depth
- Dot notation field traversal
- Null bytes in keys and string values
- Prototype pollution keys (__proto__, constructor, prototype)
- Deep recursion / cyclic structures
- Live regex objects (ReDoS) and callables
"""

import logging
import re
from collections.abc import Mapping
from datetime import date, time
from typing import Any

from nosql_sanitizer.observability.log_sanitizer import safe_log_value
from nosql_sanitizer.sanitization.keys import (
    DANGEROUS_KEYS,
    MAX_RECURSION_DEPTH,
    MONGODB_OPERATORS,
    has_dangerous_characters,
    is_dropped_key,
    resolve_key,
    sanitize_key_name,
)

logger = logging.getLogger(__name__)


class NoSQLSanitizer:
    """
    Recursive, non-mutating sanitizer for JSON-like request data.

    Output is always a fresh tree: mappings become dicts, lists and tuples
    become lists. Dates pass through, regex patterns become "/source/flags"
    strings, callables are dropped.
    """

    MAX_RECURSION_DEPTH = MAX_RECURSION_DEPTH
    DANGEROUS_KEYS = DANGEROUS_KEYS
    MONGODB_OPERATORS = MONGODB_OPERATORS

    # Python flag -> JS-style flag letter, in output order
    REGEX_FLAGS = (
        (re.IGNORECASE, "i"),
        (re.MULTILINE, "m"),
        (re.DOTALL, "s"),
        (re.VERBOSE, "x"),
    )

    @classmethod
    def sanitize(cls, value: Any, depth: int = 0) -> Any:
        """
        Sanitize a request data tree.

        Args:
            value: Decoded body/query/path parameters (any JSON-like value)
            depth: Current nesting depth (callers leave the default)

        Returns:
            Sanitized copy. Containers nested deeper than MAX_RECURSION_DEPTH
            are replaced with empty containers of the same kind.
        """
        if isinstance(value, str):
            return cls.sanitize_string(value)

        if value is None or isinstance(value, (bool, int, float)):
            return value

        if isinstance(value, (date, time)):
            return value

        if isinstance(value, re.Pattern):
            return cls.sanitize_string(cls.format_regex(value))

        if isinstance(value, Mapping):
            if depth > cls.MAX_RECURSION_DEPTH:
                return {}
            return cls._sanitize_mapping(value, depth)

        if isinstance(value, (list, tuple)):
            if depth > cls.MAX_RECURSION_DEPTH:
                return []
            return cls._sanitize_sequence(value, depth)

        if cls._is_callable(value):
            return None

        # Opaque leaf (bytes, Decimal, UUID, ObjectId, ...)
        return value

    @classmethod
    def _sanitize_mapping(cls, mapping: Mapping, depth: int) -> dict:
        sanitized = {}

        for raw_key, raw_value in mapping.items():
            key = raw_key if isinstance(raw_key, str) else str(raw_key)

            safe_key = resolve_key(key)
            if safe_key is None:
                logger.debug(f"Dropped key at depth {depth}: {safe_log_value(key)}")
                continue

            if cls._is_callable(raw_value):
                continue

            # Operator-only objects are removed with their key:
            # {"password": {"$ne": None}} -> {}
            if cls._is_operator_only(raw_value):
                logger.debug(
                    f"Dropped operator-only value at depth {depth}: {safe_log_value(key)}"
                )
                continue

            sanitized[safe_key] = cls.sanitize(raw_value, depth + 1)

        return sanitized

    @classmethod
    def _sanitize_sequence(cls, sequence, depth: int) -> list:
        # Callables are compacted out, so the output may be shorter
        return [
            cls.sanitize(item, depth + 1)
            for item in sequence
            if not cls._is_callable(item)
        ]

    @staticmethod
    def _is_callable(value: Any) -> bool:
        return callable(value) and not isinstance(value, Mapping)

    @staticmethod
    def _is_operator_only(value: Any) -> bool:
        if not isinstance(value, Mapping) or not value:
            return False
        return all(
            resolve_key(k if isinstance(k, str) else str(k)) is None
            for k in value
        )

    @staticmethod
    def sanitize_string(value: str) -> str:
        """Strip null bytes, leave everything else untouched."""
        if "\0" in value:
            return value.replace("\0", "")
        return value

    @classmethod
    def format_regex(cls, pattern: re.Pattern) -> str:
        """
        Render a compiled pattern as an inert string.

        re.compile("test", re.I | re.M) -> "/test/im"
        """
        source = pattern.pattern
        if isinstance(source, bytes):
            source = source.decode("latin-1")

        flags = "".join(letter for flag, letter in cls.REGEX_FLAGS if pattern.flags & flag)
        return f"/{source}/{flags}"


def sanitize_data(value: Any, depth: int = 0) -> Any:
    """
    Convenience function for sanitizing a request data tree.

    Usage:
        query = sanitize_data(request.get_json())
        users.find_one(query)
    """
    return NoSQLSanitizer.sanitize(value, depth)


def sanitize_string(value: str) -> str:
    return NoSQLSanitizer.sanitize_string(value)


__all__ = [
    "DANGEROUS_KEYS",
    "MAX_RECURSION_DEPTH",
    "MONGODB_OPERATORS",
    "NoSQLSanitizer",
    "has_dangerous_characters",
    "is_dropped_key",
    "sanitize_data",
    "sanitize_key_name",
    "sanitize_string",
]
