"""Process configuration loaded from environment variables.

Settings are read once at startup and treated as read-only afterwards. The
GDPR block-set in particular is never mutated after the PolicyGate is built
from it.
"""
import logging
import os
from functools import lru_cache
from typing import Mapping, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import ConfigurationError

logger = logging.getLogger("ado-core.config")

DEFAULT_BLOCKED_WORK_ITEM_TYPES = "Bug"
DEFAULT_MAX_FILE_SIZE_MB = "1"
LARGE_FILE_WARNING_BYTES = 10 * 1024 * 1024
MIN_PAT_LENGTH = 20


class Settings(BaseModel):
    """Validated server settings."""

    azure_devops_url: str
    azure_devops_pat: str = Field(repr=False)
    azure_devops_project: str = Field(..., min_length=1)
    gdpr_blocked_work_item_types: list[str] = Field(default_factory=lambda: ["Bug"])
    max_file_size_bytes: int = Field(..., gt=0)
    api_version: str = "7.1"
    request_timeout_seconds: float = Field(30.0, gt=0)
    tool_deadline_seconds: float = Field(120.0, gt=0)

    @field_validator("azure_devops_url")
    @classmethod
    def _check_url(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError("AZURE_DEVOPS_URL must start with http:// or https://")
        return value.rstrip("/")

    @field_validator("azure_devops_pat")
    @classmethod
    def _check_pat(cls, value: str) -> str:
        if len(value) < MIN_PAT_LENGTH:
            raise ValueError("AZURE_DEVOPS_PAT appears to be invalid (too short)")
        return value


def parse_blocked_types(value: str) -> list[str]:
    """Split a comma separated list of work item types, dropping blanks."""
    return [item.strip() for item in value.split(",") if item.strip()]


def parse_max_file_size(value: str) -> int:
    """Convert a size in megabytes to bytes."""
    try:
        size_mb = float(value)
    except ValueError:
        size_mb = float("nan")
    if not size_mb > 0:
        raise ConfigurationError(
            f"Invalid MAX_FILE_SIZE_MB value: {value}. Must be a positive number.",
            "MAX_FILE_SIZE_MB",
        )
    return int(size_mb * 1024 * 1024)


def _required(env: Mapping[str, str], name: str) -> str:
    value = env.get(name)
    if not value:
        raise ConfigurationError(
            f"Required environment variable {name} is not set. Please check your MCP server configuration.",
            name,
        )
    return value


def _float(env: Mapping[str, str], name: str, default: str) -> float:
    raw = env.get(name) or default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"Invalid {name} value: {raw}. Must be a number.", name) from None


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Build Settings from an environment mapping (os.environ by default).

    Raises:
        ConfigurationError: If a required variable is missing or a value is invalid
    """
    if env is None:
        env = os.environ

    try:
        settings = Settings(
            azure_devops_url=_required(env, "AZURE_DEVOPS_URL"),
            azure_devops_pat=_required(env, "AZURE_DEVOPS_PAT"),
            azure_devops_project=_required(env, "AZURE_DEVOPS_PROJECT"),
            gdpr_blocked_work_item_types=parse_blocked_types(
                env.get("GDPR_BLOCKED_WORK_ITEM_TYPES") or DEFAULT_BLOCKED_WORK_ITEM_TYPES
            ),
            max_file_size_bytes=parse_max_file_size(env.get("MAX_FILE_SIZE_MB") or DEFAULT_MAX_FILE_SIZE_MB),
            api_version=env.get("AZURE_DEVOPS_API_VERSION") or "7.1",
            request_timeout_seconds=_float(env, "AZURE_DEVOPS_TIMEOUT_SECONDS", "30"),
            tool_deadline_seconds=_float(env, "MCP_TOOL_DEADLINE_SECONDS", "120"),
        )
    except ValidationError as e:
        messages = "; ".join(error["msg"] for error in e.errors())
        raise ConfigurationError(f"Invalid configuration: {messages}") from None

    logger.info("Configuration loaded successfully")
    logger.info(f"Azure DevOps URL: {settings.azure_devops_url}")
    logger.info(f"Project: {settings.azure_devops_project}")
    logger.info(f"GDPR blocked types: {', '.join(settings.gdpr_blocked_work_item_types)}")
    logger.info(f"Max file size: {settings.max_file_size_bytes / 1024 / 1024:.2f} MB")

    if not settings.gdpr_blocked_work_item_types:
        logger.warning("No GDPR blocked work item types configured")
    if settings.max_file_size_bytes > LARGE_FILE_WARNING_BYTES:
        logger.warning("MAX_FILE_SIZE_MB is very large (>10MB), may cause memory issues")

    return settings


@lru_cache()
def get_settings() -> Settings:
    """Get the process-wide settings, loading them on first use."""
    return load_settings()
