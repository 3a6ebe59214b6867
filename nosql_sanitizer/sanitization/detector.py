"""
Operator detection and sanitization validation.

Read-only counterparts of the sanitizer:
- detect_mongo_operators(): audit report of every "$" key
- validate_sanitization(): hard-reject check for untrusted input
"""

from collections.abc import Mapping
from typing import Any, List, NamedTuple

from nosql_sanitizer.sanitization.keys import (
    MAX_RECURSION_DEPTH,
    MONGODB_OPERATORS,
    has_dangerous_characters,
    is_dropped_key,
    is_operator_key,
)


class OperatorFinding(NamedTuple):
    """A "$" key found in request data"""
    operator: str
    path: str  # dot-joined keys/indices, e.g. "items.0.$where"
    value: Any

    @property
    def known(self) -> bool:
        return self.operator in MONGODB_OPERATORS


def _key_str(key: Any) -> str:
    return key if isinstance(key, str) else str(key)


def _join(path: str, part: str) -> str:
    return f"{path}.{part}" if path else part


def detect_mongo_operators(value: Any, path: str = "", depth: int = 0) -> List[OperatorFinding]:
    """
    Find MongoDB operators anywhere in a data tree.

    Used for detection/audit logging; the input is never modified.
    Nesting below MAX_RECURSION_DEPTH is not inspected, which also
    bounds the walk on cyclic input.

    Args:
        value: Data to inspect
        path: Path prefix of value (for nested calls)
        depth: Current nesting depth

    Returns:
        List of OperatorFinding in traversal order
    """
    found: List[OperatorFinding] = []

    if depth > MAX_RECURSION_DEPTH:
        return found

    if isinstance(value, Mapping):
        for raw_key, child in value.items():
            key = _key_str(raw_key)
            current_path = _join(path, key)

            if is_operator_key(key):
                found.append(OperatorFinding(key, current_path, child))

            found.extend(detect_mongo_operators(child, current_path, depth + 1))

    elif isinstance(value, (list, tuple)):
        for index, item in enumerate(value):
            found.extend(detect_mongo_operators(item, _join(path, str(index)), depth + 1))

    return found


def validate_sanitization(value: Any, depth: int = 0) -> bool:
    """
    Check that a data tree is safe to hand to the query layer as is.

    A tree is unsafe if any key is a dangerous key (__proto__, constructor,
    prototype, "_"-prefixed other than "_id"), an operator ("$"-prefixed),
    or contains characters the sanitizer would rewrite (dot, null byte,
    path traversal, escape/markup characters). A non-empty container nested deeper
    than MAX_RECURSION_DEPTH is unsafe as well.

    Returns:
        True if safe, False if dangerous content found
    """
    if isinstance(value, Mapping):
        if depth > MAX_RECURSION_DEPTH:
            return not value

        for raw_key, child in value.items():
            key = _key_str(raw_key)
            if is_dropped_key(key) or has_dangerous_characters(key):
                return False
            if not validate_sanitization(child, depth + 1):
                return False
        return True

    if isinstance(value, (list, tuple)):
        if depth > MAX_RECURSION_DEPTH:
            return not value
        return all(validate_sanitization(item, depth + 1) for item in value)

    return True
