"""Configuration loader for Pulseo."""

import os
from pathlib import Path
from typing import Optional
import yaml
from pydantic import BaseModel


DEV_JWT_SECRET = "dev-secret-do-not-use-in-production"


class ConfigurationError(RuntimeError):
    """Raised when the configuration is unusable for the current environment."""


class ServerConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False


class DatabaseConfig(BaseModel):
    path: str = "data/pulseo.db"


class AuthConfig(BaseModel):
    # HS256 signing secret; falls back to DEV_JWT_SECRET outside production
    jwt_secret: Optional[str] = None
    jwt_algorithm: str = "HS256"
    access_token_ttl_seconds: int = 3600
    refresh_token_ttl_seconds: int = 30 * 24 * 3600


class TasksConfig(BaseModel):
    soft_delete_grace_seconds: int = 60
    purge_interval_seconds: int = 60
    max_columns_per_user: int = 10


class LoggingConfig(BaseModel):
    level: str = "info"


class CorsConfig(BaseModel):
    origins: list[str] = ["http://localhost:4321", "http://localhost:3000"]


class Config(BaseModel):
    environment: str = "development"
    server: ServerConfig = ServerConfig()
    database: DatabaseConfig = DatabaseConfig()
    auth: AuthConfig = AuthConfig()
    tasks: TasksConfig = TasksConfig()
    logging: LoggingConfig = LoggingConfig()
    cors: CorsConfig = CorsConfig()

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


_config: Optional[Config] = None


def load_config(config_path: Optional[str] = None) -> Config:
    """Load configuration from YAML file and environment variables."""
    global _config

    if _config is not None:
        return _config

    if config_path is None:
        config_path = os.environ.get("PULSEO_CONFIG", "config.yml")

    config_data = {}

    if Path(config_path).exists():
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}

    config = Config(**config_data)

    # Override with environment variables
    if os.environ.get("PULSEO_ENV"):
        config.environment = os.environ["PULSEO_ENV"]

    if os.environ.get("PULSEO_DB_PATH"):
        config.database.path = os.environ["PULSEO_DB_PATH"]

    if os.environ.get("PULSEO_JWT_SECRET"):
        config.auth.jwt_secret = os.environ["PULSEO_JWT_SECRET"]

    if os.environ.get("PULSEO_LOG_LEVEL"):
        config.logging.level = os.environ["PULSEO_LOG_LEVEL"]

    _config = config
    return config


def get_config() -> Config:
    """Get the loaded configuration."""
    global _config
    if _config is None:
        return load_config()
    return _config


def reset_config() -> None:
    """Forget the cached configuration so the next call reloads it."""
    global _config
    _config = None


def resolve_jwt_secret(config: Config) -> str:
    """
    Return the access-token signing secret.

    Production must configure one explicitly; anywhere else the development
    secret is used when none is set.
    """
    if config.auth.jwt_secret:
        return config.auth.jwt_secret
    if config.is_production:
        raise ConfigurationError(
            "PULSEO_JWT_SECRET (or auth.jwt_secret) is required in production"
        )
    return DEV_JWT_SECRET
