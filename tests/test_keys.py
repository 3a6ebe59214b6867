"""
Test Suite for key rules.

Tests:
1. Key renaming (sanitize_key_name)
2. Dangerous character detection
3. Drop rules (prototype pollution, operators, private keys)
4. Key resolution priority (drop before rename)
"""

import pytest

from nosql_sanitizer.sanitization.keys import (
    DANGEROUS_KEYS,
    has_dangerous_characters,
    is_dangerous_key,
    is_operator_key,
    resolve_key,
    sanitize_key_name,
)


class TestSanitizeKeyName:
    """Test key renaming"""

    @pytest.mark.parametrize(
        "key,expected",
        [
            ("user$name", "user_name"),
            ("user.name", "user_name"),
            ("user<name>", "user_name"),
            ("user$$$name", "user_name"),
            ("$username$", "username"),
            ("user\0name", "user_name"),
            ("a.b.c", "a_b_c"),
            ("it's", "it_s"),
            ("../admin", "/admin"),
            ("..\\admin", "admin"),
            ("a;b", "a_b"),
        ],
    )
    def test_rewrites(self, key, expected):
        assert sanitize_key_name(key) == expected

    @pytest.mark.parametrize(
        "key",
        ["user$name", "__a..b__", "$$", "._._.", "x\0\0y", "name", "a_b", "<&>"],
    )
    def test_idempotent(self, key):
        """Applying the rewrite twice gives the same result as once"""
        once = sanitize_key_name(key)
        assert sanitize_key_name(once) == once

    def test_output_has_no_dangerous_characters(self):
        for key in ["a$b.c\0d\\e<f>g&h'i\"j`k", "....", "$.$"]:
            assert not has_dangerous_characters(sanitize_key_name(key))

    def test_only_dangerous_characters_gives_empty_key(self):
        assert sanitize_key_name("$.$") == ""


class TestDangerousCharacters:
    """Test dangerous character detection"""

    @pytest.mark.parametrize(
        "key",
        ["$where", "user$name", "user.name", "user\0name", "../admin", "..\\admin",
         "a\\b", "<script>", "a&b", "it's", 'say"hi"', "`cmd`"],
    )
    def test_detected(self, key):
        assert has_dangerous_characters(key)

    @pytest.mark.parametrize("key", ["username", "email", "_id", "first_name", "ünïcødé", "a;b"])
    def test_safe_keys(self, key):
        assert not has_dangerous_characters(key)


class TestDropRules:
    """Test keys that are dropped instead of renamed"""

    def test_dangerous_key_set(self):
        assert DANGEROUS_KEYS == {"__proto__", "constructor", "prototype"}
        for key in DANGEROUS_KEYS:
            assert is_dangerous_key(key)

    @pytest.mark.parametrize("key", ["_admin", "_version", "_deleted", "__v", "_"])
    def test_underscore_keys_are_dangerous(self, key):
        assert is_dangerous_key(key)

    def test_id_is_not_dangerous(self):
        assert not is_dangerous_key("_id")
        assert is_dangerous_key("_id_")

    def test_operator_keys(self):
        assert is_operator_key("$ne")
        assert is_operator_key("$anything")
        assert not is_operator_key("price$")


class TestResolveKey:
    """Test resolution priority: drop checks before rename checks"""

    @pytest.mark.parametrize(
        "key,expected",
        [
            ("name", "name"),
            ("_id", "_id"),
            ("__proto__", None),
            ("_secret", None),
            ("$ne", None),
            ("$__proto__", None),
            ("user.password", "user_password"),
            ("user\0name", "user_name"),
            ("constructor.", None),
            (".prototype", None),
            ("...", None),
        ],
    )
    def test_resolution(self, key, expected):
        assert resolve_key(key) == expected
