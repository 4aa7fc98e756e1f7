"""
Configuration for the ASOF site.

Two sources, nothing hardcoded in code:

    config/.env                Secrets (Settings): DB_PASSWORD, REDIS_PASSWORD,
                               SMTP_USER, SMTP_PASSWORD, INITIAL_ADMIN_PASSWORD
    config/settings/*.yaml     Everything else, one file per CONFIG_SECTIONS
                               entry, each validated by its schema

Both are cached; tests call get_settings.cache_clear() and
get_app_config.cache_clear() to reload.
"""

from functools import lru_cache
from pathlib import Path
from typing import Any
from urllib.parse import quote_plus

import yaml
from pydantic import BaseModel, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from asof.backend.core.config_schema import (
    ApplicationSchema,
    ConcurrencySchema,
    ContentSchema,
    DatabaseSchema,
    FeaturesSchema,
    LoggingSchema,
    MailSchema,
    ObservabilitySchema,
    SecuritySchema,
    SiteSchema,
    StorageSchema,
)

CONFIG_SECTIONS: dict[str, type[BaseModel]] = {
    "application": ApplicationSchema,
    "database": DatabaseSchema,
    "logging": LoggingSchema,
    "features": FeaturesSchema,
    "security": SecuritySchema,
    "observability": ObservabilitySchema,
    "concurrency": ConcurrencySchema,
    "storage": StorageSchema,
    "mail": MailSchema,
    "content": ContentSchema,
    "site": SiteSchema,
}
"""Section name -> schema. The YAML file is `<section>.yaml`."""


def find_project_root() -> Path:
    """Walk up from the working directory to the .project_root marker."""
    for candidate in (Path.cwd(), *Path.cwd().parents):
        if (candidate / ".project_root").exists():
            return candidate
    raise RuntimeError("Project root not found. Ensure .project_root file exists.")


def validate_project_root() -> Path:
    """find_project_root() for entry scripts: exits with a message instead of raising."""
    try:
        return find_project_root()
    except RuntimeError as e:
        raise SystemExit(f"Error: {e}") from e


def load_yaml_config(filename: str) -> dict[str, Any]:
    config_path = find_project_root() / "config" / "settings" / filename
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


class Settings(BaseSettings):
    """Secrets only. Everything else belongs in YAML."""

    db_password: str
    redis_password: str
    smtp_user: str = ""
    smtp_password: str = ""
    initial_admin_password: str = ""

    model_config = SettingsConfigDict(
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


def load_section(section: str) -> BaseModel:
    """Load `<section>.yaml` and validate it against its schema."""
    filename = f"{section}.yaml"
    raw = load_yaml_config(filename)
    try:
        return CONFIG_SECTIONS[section].model_validate(raw)
    except ValidationError as e:
        raise ValueError(f"Invalid configuration in {filename}:\n{e}") from e


class AppConfig:
    """
    Every YAML section, validated, as typed attributes.

    A broken or incomplete file fails here, at startup, rather than on the
    first request that reads it.
    """

    application: ApplicationSchema
    database: DatabaseSchema
    logging: LoggingSchema
    features: FeaturesSchema
    security: SecuritySchema
    observability: ObservabilitySchema
    concurrency: ConcurrencySchema
    storage: StorageSchema
    mail: MailSchema
    content: ContentSchema
    site: SiteSchema

    def __init__(self) -> None:
        for section in CONFIG_SECTIONS:
            setattr(self, section, load_section(section))

    @property
    def is_production(self) -> bool:
        return self.application.environment == "production"


@lru_cache
def get_settings() -> Settings:
    env_path = find_project_root() / "config" / ".env"
    return Settings(_env_file=str(env_path))


@lru_cache
def get_app_config() -> AppConfig:
    return AppConfig()


def get_database_url(async_driver: bool = True) -> str:
    """PostgreSQL URL from database.yaml and DB_PASSWORD (asyncpg unless async_driver is False)."""
    db = get_app_config().database
    password = quote_plus(get_settings().db_password)
    driver = "postgresql+asyncpg" if async_driver else "postgresql"
    return f"{driver}://{db.user}:{password}@{db.host}:{db.port}/{db.name}"


def get_redis_url() -> str:
    """Redis URL for the task broker and readiness checks."""
    redis = get_app_config().database.redis
    password = get_settings().redis_password
    auth = f":{quote_plus(password)}@" if password else ""
    return f"redis://{auth}{redis.host}:{redis.port}/{redis.db}"
