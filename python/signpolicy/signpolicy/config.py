"""Evaluator settings loaded from environment variables."""

from __future__ import annotations

import logging

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Signing-policy engine configuration.

    Every setting can be overridden with a ``SIGNPOLICY_`` prefixed
    environment variable (e.g. SIGNPOLICY_ENFORCER_NAMESPACE).
    """

    enforcer_namespace: str = "integrity-verifier-operator-system"
    policy_namespace: str = "integrity-verifier-policy"
    policy_files: list[str] = []
    log_level: str = "info"

    model_config = SettingsConfigDict(env_prefix="SIGNPOLICY_", case_sensitive=False)


def configure_logging(level: str | None = None) -> None:
    """Apply the configured log level to the package logger."""
    name = (level or settings.log_level).upper()
    logging.getLogger("signpolicy").setLevel(getattr(logging, name, logging.INFO))


settings = Settings()
