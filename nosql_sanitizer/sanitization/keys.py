"""
Key rules for NoSQL request sanitization.

Two independent policies apply to mapping keys:
- DROP: prototype-pollution keys, private underscore keys, $-operators
- RENAME: keys carrying dangerous characters (dots, null bytes, ...)

Drop checks always run before rename checks.
"""

import re

MAX_RECURSION_DEPTH = 10

DANGEROUS_KEYS = frozenset({"__proto__", "constructor", "prototype"})

# Known MongoDB operators (reporting only, every "$" key is an operator)
MONGODB_OPERATORS = (
    "$where", "$regex", "$expr", "$jsonSchema", "$text",
    "$eq", "$ne", "$gt", "$gte", "$lt", "$lte",
    "$in", "$nin", "$exists", "$type",
    "$and", "$or", "$not", "$nor",
    "$elemMatch", "$all", "$size",
    "$mod", "$slice", "$push", "$pull",
    "$set", "$unset", "$inc", "$mul",
    "$rename", "$setOnInsert", "$currentDate",
)

ID_FIELD = "_id"

# Substrings that make a key unsafe to pass through unchanged
DANGEROUS_SUBSTRINGS = ("$", ".", "\0", "..", "\\", "<", ">", "&", "'", '"', "`")

_KEY_REPLACE_PATTERN = re.compile(r"[$.\0\\<>&'\"`;]")
_UNDERSCORE_RUN_PATTERN = re.compile(r"_+")


def is_operator_key(key: str) -> bool:
    """True for any key starting with '$' (query/update operator)."""
    return key.startswith("$")


def is_dangerous_key(key: str) -> bool:
    """
    True for keys that must be dropped outright.

    Covers prototype-pollution names and underscore-prefixed keys,
    except the document identifier "_id".
    """
    if key in DANGEROUS_KEYS:
        return True
    return key.startswith("_") and key != ID_FIELD


def is_dropped_key(key: str) -> bool:
    return is_dangerous_key(key) or is_operator_key(key)


def has_dangerous_characters(key: str) -> bool:
    """
    Check if a key contains characters that need rewriting.

    Args:
        key: Mapping key

    Returns:
        True if the key contains '$', '.', a null byte, a path traversal
        sequence, or an escape/markup character
    """
    return any(s in key for s in DANGEROUS_SUBSTRINGS)


def sanitize_key_name(key: str) -> str:
    """
    Rewrite a key into a safe field name.

    Steps:
    1. Replace dangerous characters with '_'
    2. Collapse runs of '_' into one
    3. Strip leading/trailing '_'

    Examples:
        "user.password" -> "user_password"
        "user$$$name"   -> "user_name"
        "$username$"    -> "username"
    """
    key = _KEY_REPLACE_PATTERN.sub("_", key)
    key = _UNDERSCORE_RUN_PATTERN.sub("_", key)
    return key.strip("_")


def resolve_key(key: str):
    """
    Resolve the output key for a mapping entry.

    Returns:
        The key to store the entry under, or None if the entry is dropped
    """
    if is_dropped_key(key):
        return None

    if not has_dangerous_characters(key):
        return key

    safe_key = sanitize_key_name(key)

    # Renaming can expose a dropped name ("constructor." -> "constructor")
    if not safe_key or is_dropped_key(safe_key):
        return None

    return safe_key
