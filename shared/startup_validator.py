"""
Startup configuration validation module.

This module provides startup-time validation for critical configuration
to catch misconfigurations early (fail-fast) rather than on the first
booking or report request.

Usage:
    from shared.startup_validator import validate_startup_config, StartupValidationError

    try:
        validate_startup_config()
    except StartupValidationError as e:
        logger.critical(f"Startup blocked: {e}")
        raise
"""

import logging
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from shared.config import Settings, get_settings

logger = logging.getLogger(__name__)

PLACEHOLDER_JWT_SECRET = "change-me"
MIN_JWT_SECRET_LENGTH = 32


class StartupValidationError(Exception):
    """Raised when critical startup validation fails."""

    pass


def validate_startup_config(settings: Settings | None = None) -> dict[str, bool]:
    """
    Validate all critical configuration at startup.

    Performs tiered validation:
    - TIER 1 (CRITICAL): Block startup if any fail
    - TIER 2 (IMPORTANT): Warn but allow startup

    Args:
        settings: Settings to validate (defaults to the cached application settings)

    Returns:
        dict of {check_name: passed} for all validations

    Raises:
        StartupValidationError: If any CRITICAL check fails
    """
    settings = settings or get_settings()
    results: dict[str, bool] = {}
    critical_failures: list[str] = []

    # =========================================================================
    # TIER 1: CRITICAL (block startup if any fail)
    # =========================================================================

    # 1. Database URL must use the asyncpg driver
    if not settings.DATABASE_URL.startswith("postgresql+asyncpg://"):
        critical_failures.append(
            "DATABASE_URL must use asyncpg driver: postgresql+asyncpg://..."
        )
        results["database_url_format"] = False
    else:
        results["database_url_format"] = True
        logger.info("  [OK] Database URL uses asyncpg driver")

    # 2. JWT secret configured
    if not settings.JWT_SECRET or settings.JWT_SECRET == PLACEHOLDER_JWT_SECRET:
        critical_failures.append(
            "JWT_SECRET is placeholder - generate one with: openssl rand -hex 32"
        )
        results["jwt_secret"] = False
    else:
        results["jwt_secret"] = True
        logger.info("  [OK] JWT secret configured")

    # 3. Studio timezone is a valid IANA zone
    try:
        ZoneInfo(settings.STUDIO_TIMEZONE)
        results["studio_timezone"] = True
        logger.info(f"  [OK] Studio timezone: {settings.STUDIO_TIMEZONE}")
    except (ZoneInfoNotFoundError, ValueError):
        critical_failures.append(
            f"STUDIO_TIMEZONE is not a valid IANA timezone: {settings.STUDIO_TIMEZONE}"
        )
        results["studio_timezone"] = False

    # =========================================================================
    # TIER 2: IMPORTANT (warn but allow startup)
    # =========================================================================

    # 4. JWT secret minimum length (security)
    if results["jwt_secret"] and len(settings.JWT_SECRET) < MIN_JWT_SECRET_LENGTH:
        logger.warning(
            f"JWT_SECRET should be at least {MIN_JWT_SECRET_LENGTH} characters for security"
        )
        results["jwt_secret_length"] = False
    else:
        results["jwt_secret_length"] = results["jwt_secret"]

    # 5. Wildcard CORS
    if "*" in settings.CORS_ORIGINS.split(","):
        logger.warning("CORS_ORIGINS allows any origin ('*')")
        results["cors_restricted"] = False
    else:
        results["cors_restricted"] = True

    # =========================================================================
    # Summary and result
    # =========================================================================

    passed = sum(1 for v in results.values() if v)
    total = len(results)
    logger.info(f"Startup validation: {passed}/{total} checks passed")

    if critical_failures:
        logger.critical("=" * 60)
        logger.critical("STARTUP BLOCKED - Critical configuration errors:")
        for i, failure in enumerate(critical_failures, 1):
            logger.critical(f"  {i}. {failure}")
        logger.critical("=" * 60)
        raise StartupValidationError(
            f"Critical startup validation failed ({len(critical_failures)} errors): "
            f"{'; '.join(critical_failures)}"
        )

    return results
