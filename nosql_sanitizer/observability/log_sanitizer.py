"""
Log Sanitization Utilities.

Request keys, paths and operator values are attacker-controlled; they are
escaped here before they reach a log record.
"""

import re
from typing import Any, Iterable


class LogSanitizer:
    """
    Sanitize values before logging to prevent log injection.

    Log injection risks:
    - Newline injection (split log entries)
    - Control character injection
    - Log flooding with huge payloads
    """

    # Control characters to remove (except tab/newline, which are escaped)
    CONTROL_CHARS = re.compile(r'[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]')

    MAX_LOG_LENGTH = 200

    # Findings rendered per audit line, the rest is counted
    MAX_FINDINGS = 10

    @classmethod
    def sanitize(cls, value: Any, max_length: int = None) -> str:
        """
        Sanitize a value for safe logging.

        Args:
            value: Value to sanitize (will be converted to string)
            max_length: Max length (default: MAX_LOG_LENGTH)

        Returns:
            Sanitized string safe for logging
        """
        if value is None:
            return "None"

        s = value if isinstance(value, str) else repr(value)

        s = cls.CONTROL_CHARS.sub('', s)
        s = s.replace('\n', '\\n').replace('\r', '\\r').replace('\t', '\\t')

        max_len = max_length or cls.MAX_LOG_LENGTH
        if len(s) > max_len:
            s = s[:max_len] + '...'

        return s

    @classmethod
    def format_findings(cls, findings: Iterable, max_length: int = 50) -> str:
        """
        Render operator findings as one audit line.

        Example:
            "password.$ne=None, $where='this.a == 1'"

        Args:
            findings: OperatorFinding items (operator, path, value)
            max_length: Max length per rendered value
        """
        findings = list(findings)
        parts = [
            f"{cls.sanitize(f.path)}={cls.sanitize(f.value, max_length)}"
            for f in findings[: cls.MAX_FINDINGS]
        ]

        hidden = len(findings) - cls.MAX_FINDINGS
        if hidden > 0:
            parts.append(f"(+{hidden} more)")

        return ", ".join(parts)


def safe_log_value(value: Any, max_length: int = None) -> str:
    """
    Convenience function for sanitizing a single value for logging.

    Usage:
        logger.debug(f"Dropped key: {safe_log_value(key)}")
    """
    return LogSanitizer.sanitize(value, max_length)
