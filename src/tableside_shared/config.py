"""
Utilities to centralize configuration handling across the tableside services.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass


@dataclass
class AppConfig:
    """Simple container for application level settings."""

    app_name: str
    # PostgreSQL database
    db_host: str
    db_port: int
    db_user: str
    db_password: str
    db_name: str
    db_sslmode: str
    database_url: str
    # App settings
    secret_key: str
    log_level: str
    restaurant_name: str
    restaurant_slug: str
    public_base_url: str
    debug_mode: bool
    flask_debug: bool
    cors_allowed_origins: str
    # Table order aggregation
    order_lock_timeout_ms: int
    merge_retry_attempts: int
    merge_retry_base_delay_ms: int
    max_cart_lines: int

    @property
    def sqlalchemy_uri(self) -> str:
        """
        Build a SQLAlchemy URI.

        DATABASE_URL wins when present; otherwise a PostgreSQL URI using psycopg2
        as the driver is assembled from the individual connection settings.
        """
        if self.database_url:
            return self.database_url
        ssl_arg = f"?sslmode={self.db_sslmode}" if self.db_sslmode else ""
        return (
            f"postgresql+psycopg2://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}{ssl_arg}"
        )

    @property
    def allowed_origins(self) -> list[str]:
        return [
            origin.strip() for origin in self.cors_allowed_origins.split(",") if origin.strip()
        ]


def _read_env(name: str, default: str | None = None) -> str:
    """
    Internal helper to fetch environment variables with support for defaults.
    """
    value = os.getenv(name)
    if value is None:
        if default is None:
            raise RuntimeError(f"Missing required environment variable '{name}'")
        value = default
    return value


def read_bool(name: str, default: str = "false") -> bool:
    value = _read_env(name, default)
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _slugify(value: str) -> str:
    value = value.strip().lower()
    value = re.sub(r"[^a-z0-9]+", "-", value)
    return value.strip("-")


def validate_required_env_vars(skip_in_debug: bool = False) -> None:
    """
    Validate that all required environment variables are set.

    Designed to fail fast during startup rather than encountering errors later.

    Args:
        skip_in_debug: If True, skip validation when DEBUG_MODE=true

    Raises:
        RuntimeError: If any required variable is missing or has an invalid value
    """
    if skip_in_debug and read_bool("DEBUG_MODE", "false"):
        return

    errors = []

    secret_key = os.getenv("SECRET_KEY", "")
    if not secret_key or secret_key in ["change-me-please", "super-secret-change-me"]:
        errors.append(
            "SECRET_KEY must be configured with a secure random value. "
            'Generate with: python3 -c "import secrets; print(secrets.token_urlsafe(32))"'
        )

    if not os.getenv("DATABASE_URL"):
        for name in ("POSTGRES_HOST", "POSTGRES_USER", "POSTGRES_PASSWORD", "POSTGRES_DB"):
            if not os.getenv(name, ""):
                errors.append(f"{name} must be configured (or set DATABASE_URL)")

    for name in ("ORDER_LOCK_TIMEOUT_MS", "MERGE_RETRY_ATTEMPTS", "MERGE_RETRY_BASE_DELAY_MS"):
        raw = os.getenv(name, "")
        if raw:
            try:
                if int(raw) < 0:
                    errors.append(f"{name} must not be negative, got: {raw}")
            except ValueError:
                errors.append(f"{name} must be a valid integer, got: {raw}")

    if errors:
        error_msg = "\nConfiguration Errors - Missing or invalid environment variables:\n"
        for error in errors:
            error_msg += f"  - {error}\n"
        raise RuntimeError(error_msg)


def load_config(app_name: str) -> AppConfig:
    """
    Produce an AppConfig instance populated from environment variables.

    Each service passes its desired `app_name` to keep logs easy to
    differentiate while still reusing the same config loader.
    """
    restaurant_name = _read_env("RESTAURANT_NAME", "Tableside")
    return AppConfig(
        app_name=app_name,
        db_host=_read_env("POSTGRES_HOST", "tableside-postgres"),
        db_port=int(_read_env("POSTGRES_PORT", "5432")),
        db_user=_read_env("POSTGRES_USER", "tableside"),
        db_password=_read_env("POSTGRES_PASSWORD", "tableside"),
        db_name=_read_env("POSTGRES_DB", "tableside"),
        db_sslmode=_read_env("POSTGRES_SSLMODE", "disable"),
        database_url=_read_env("DATABASE_URL", ""),
        secret_key=_read_env("SECRET_KEY", "super-secret-change-me"),
        log_level=_read_env("LOG_LEVEL", "INFO"),
        restaurant_name=restaurant_name,
        restaurant_slug=_slugify(restaurant_name),
        public_base_url=_read_env("PUBLIC_BASE_URL", "http://localhost:6080").rstrip("/"),
        debug_mode=read_bool("DEBUG_MODE", "false"),
        flask_debug=read_bool("FLASK_DEBUG", "false"),
        cors_allowed_origins=_read_env("CORS_ALLOWED_ORIGINS", ""),
        order_lock_timeout_ms=int(_read_env("ORDER_LOCK_TIMEOUT_MS", "3000")),
        merge_retry_attempts=int(_read_env("MERGE_RETRY_ATTEMPTS", "3")),
        merge_retry_base_delay_ms=int(_read_env("MERGE_RETRY_BASE_DELAY_MS", "25")),
        max_cart_lines=int(_read_env("MAX_CART_LINES", "50")),
    )
