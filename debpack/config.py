"""Configuration and logging setup for debpack."""

import logging
import os
import sys
from datetime import UTC, datetime


def setup_logging(level: str | None = None) -> None:
    """Send debpack build progress to stdout.

    Configures the root logger once per process so every debpack module
    logger (hooks, payload builders, writer) reports each build step.

    Args:
        level: One of LOG_LEVELS, case-insensitive. Defaults to the
            DEBPACK_LOG_LEVEL environment variable, then INFO.

    Raises:
        ValueError: If the level is not one of LOG_LEVELS
    """
    log_level = (level or os.getenv(ENV_LOG_LEVEL, "INFO")).upper()
    if log_level not in LOG_LEVELS:
        raise ValueError(f"Invalid log level {log_level!r}: expected one of {', '.join(LOG_LEVELS)}")

    logging.basicConfig(
        level=getattr(logging, log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    # Only reached when publishing to S3, keep it quiet
    logging.getLogger("boto3").setLevel(logging.WARNING)
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def get_env_var(name: str, default: str | None = None, required: bool = False) -> str:
    """Get environment variable with optional default and validation.

    Args:
        name: Environment variable name
        default: Default value if not set
        required: Whether the variable is required

    Returns:
        Environment variable value

    Raises:
        ValueError: If required variable is not set
    """
    value = os.getenv(name, default)

    if required and not value:
        raise ValueError(f"Required environment variable {name} is not set")

    return value or ""


def build_timestamp() -> datetime:
    """Return the timestamp stamped into a package.

    SOURCE_DATE_EPOCH pins the timestamp for reproducible builds.

    Raises:
        ValueError: If SOURCE_DATE_EPOCH is set but not an integer
    """
    epoch = get_env_var(ENV_SOURCE_DATE_EPOCH)
    if epoch:
        try:
            return datetime.fromtimestamp(int(epoch), UTC)
        except ValueError:
            raise ValueError(f"Invalid {ENV_SOURCE_DATE_EPOCH}: {epoch!r}") from None
    return datetime.now(UTC)


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

# Environment variable names
ENV_LOG_LEVEL = "DEBPACK_LOG_LEVEL"
ENV_SOURCE_DATE_EPOCH = "SOURCE_DATE_EPOCH"
ENV_AWS_REGION = "AWS_REGION"
