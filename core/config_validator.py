# core/config_validator.py

from typing import List
from core.config import settings
from core.logging_config import logger
from models.enums import Role


def validate_required_config() -> List[str]:
    """
    Validate that all required environment variables are set.
    Returns list of missing required variables.
    """
    missing = []

    if not settings.SUPABASE_URL:
        missing.append("SUPABASE_URL")
    if not settings.SUPABASE_SERVICE_ROLE_KEY:
        missing.append("SUPABASE_SERVICE_ROLE_KEY")

    return missing


def validate_optional_config() -> List[str]:
    """
    Validate optional but recommended configuration.
    Returns list of warnings.
    """
    warnings = []

    if not settings.SUPABASE_ANON_KEY:
        warnings.append("SUPABASE_ANON_KEY (optional but recommended)")

    if settings.DEFAULT_ROLE != Role.village_health_worker.value:
        warnings.append(
            f"DEFAULT_ROLE '{settings.DEFAULT_ROLE}' is not least privileged; "
            "village_health_worker will be used"
        )

    return warnings


def validate_config_on_startup():
    """
    Validate configuration on application startup.

    Missing Supabase credentials are fatal in production and only logged
    elsewhere, so the console can start (health, roles, reports) without a
    backend during development.
    """
    missing_required = validate_required_config()
    warnings = validate_optional_config()

    if missing_required:
        error_msg = f"Missing required environment variables: {', '.join(missing_required)}"
        logger.error(error_msg)
        if settings.ENV == "production":
            raise RuntimeError(error_msg)

    for warning in warnings:
        logger.warning(f"Configuration: {warning}")

    if not missing_required:
        logger.info("Configuration validation passed")
