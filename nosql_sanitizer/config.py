"""
Configuration loader with fail-fast validation.

If any validation fails → app refuses to start with clear error.
"""

import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

SANITIZE_MODES = ("strip", "reject")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
DEFAULT_MAX_CONTENT_LENGTH = 10 * 1024 * 1024  # 10MB


class ConfigValidationError(Exception):
    """Raised when config validation fails (fail-fast)"""
    pass


def _parse_bool(raw: str) -> Optional[bool]:
    value = raw.strip().lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off"):
        return False
    return None


class Config:
    """
    Central configuration with fail-fast validation.

    Validates:
    1. Sanitization policy (SANITIZE_MODE, SANITIZE_AUDIT)
    2. Logging (LOG_LEVEL, LOG_FILE)
    3. Request limits (MAX_CONTENT_LENGTH)

    On failure: raises ConfigValidationError listing every problem.
    """

    def __init__(self, env_file: Optional[str] = None):
        """
        Initialize config with fail-fast validation.

        Args:
            env_file: Path to .env file (default: .env in project root)

        Raises:
            ConfigValidationError: If any required validation fails
        """
        self.errors = []

        if env_file:
            load_dotenv(env_file)
        else:
            env_path = Path(__file__).parent.parent / ".env"
            if env_path.exists():
                load_dotenv(env_path)
                logger.info(f"Loaded .env from {env_path}")

        self._validate_sanitize_config()
        self._validate_logging_config()
        self._validate_request_limits()

        if self.errors:
            error_report = "\n".join(f"  ✗ {err}" for err in self.errors)
            msg = f"Configuration validation failed:\n{error_report}"
            logger.error(msg)
            raise ConfigValidationError(msg)

        logger.info("✓ Configuration validation passed")

    def _validate_sanitize_config(self):
        self.sanitize_mode = os.getenv("SANITIZE_MODE", "strip").strip().lower()
        if self.sanitize_mode not in SANITIZE_MODES:
            self.errors.append(
                f"SANITIZE_MODE must be one of {', '.join(SANITIZE_MODES)}, "
                f"got '{self.sanitize_mode}'"
            )

        raw_audit = os.getenv("SANITIZE_AUDIT", "true")
        self.sanitize_audit = _parse_bool(raw_audit)
        if self.sanitize_audit is None:
            self.errors.append(f"SANITIZE_AUDIT must be a boolean, got '{raw_audit}'")

    def _validate_logging_config(self):
        self.log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
        if self.log_level not in LOG_LEVELS:
            self.errors.append(
                f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}, got '{self.log_level}'"
            )

        self.log_file = os.getenv("LOG_FILE") or None
        if self.log_file and not Path(self.log_file).parent.exists():
            # Not fatal: console logging still works
            logger.warning(f"LOG_FILE directory does not exist: {self.log_file}")

    def _validate_request_limits(self):
        raw_limit = os.getenv("MAX_CONTENT_LENGTH", str(DEFAULT_MAX_CONTENT_LENGTH))
        try:
            self.max_content_length = int(raw_limit)
        except ValueError:
            self.errors.append(f"MAX_CONTENT_LENGTH must be an integer, got '{raw_limit}'")
            return

        if self.max_content_length <= 0:
            self.errors.append(
                f"MAX_CONTENT_LENGTH must be positive, got {self.max_content_length}"
            )

    def __repr__(self) -> str:
        return (
            f"Config(\n"
            f"  sanitize_mode={self.sanitize_mode},\n"
            f"  sanitize_audit={self.sanitize_audit},\n"
            f"  log_level={self.log_level},\n"
            f"  log_file={self.log_file},\n"
            f"  max_content_length={self.max_content_length}\n"
            f")"
        )


def load_config(env_file: Optional[str] = None) -> Config:
    """
    Load and validate config with fail-fast behavior.

    Returns:
        Config: Validated configuration object

    Raises:
        ConfigValidationError: If any validation fails
    """
    return Config(env_file=env_file)
