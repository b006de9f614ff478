"""Core configuration and utilities package."""

from gatekeeper.core.config import Settings, get_settings
from gatekeeper.core.logging import get_logger, set_correlation_id, setup_logging
from gatekeeper.core.security import (
    Operator,
    check_rate_limit,
    hash_password,
    verify_api_key,
    verify_basic_auth,
    verify_password,
)

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Logging
    "get_logger",
    "set_correlation_id",
    "setup_logging",
    # Security
    "Operator",
    "check_rate_limit",
    "hash_password",
    "verify_api_key",
    "verify_basic_auth",
    "verify_password",
]
