"""Configuration management with YAML and environment variable support"""

import os
from typing import Any, Dict, List, Optional, Tuple, Type

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from app.models.role import ViewerRole


class BaseConfigSection(BaseSettings):
    """Base class for all config sections with correct environment variable precedence.

    Priority order:
    1. Environment variables
    2. Init kwargs (YAML data)
    3. Default values
    """

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        """Customize settings source priority: env vars > init kwargs > defaults."""
        return (env_settings, init_settings, dotenv_settings, file_secret_settings)


class ServerConfig(BaseConfigSection):
    """Server configuration"""

    host: str = "0.0.0.0"  # nosec B104
    port: int = 8000

    model_config = SettingsConfigDict(env_prefix="APP_SERVER_")


class StorageConfig(BaseConfigSection):
    """Object storage layout and URL signing configuration"""

    base_url: str = "http://localhost:54321/storage/v1"
    free_bucket: str = "videos-free"
    premium_bucket: str = "videos-premium"
    thumbnail_bucket: str = "thumbnails"
    signing_secret: str = "change-me"
    signed_url_ttl: int = 3600  # seconds
    public_url_cache_size: int = 1024

    model_config = SettingsConfigDict(env_prefix="APP_STORAGE_")

    @field_validator("signed_url_ttl")
    @classmethod
    def validate_ttl(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("signed_url_ttl must be positive")
        return v

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


class TimeoutsConfig(BaseConfigSection):
    """Operation timeout configuration"""

    lookup: float = 10.0  # seconds

    model_config = SettingsConfigDict(env_prefix="APP_TIMEOUTS_")


class RateLimitingConfig(BaseConfigSection):
    """Rate limiting configuration"""

    catalog_rpm: int = 120  # requests per minute
    playback_rpm: int = 20
    burst_capacity: int = 20  # maximum tokens

    model_config = SettingsConfigDict(env_prefix="APP_RATE_LIMITING_")


class LoggingConfig(BaseConfigSection):
    """Logging configuration"""

    level: str = "INFO"
    format: str = "json"

    model_config = SettingsConfigDict(env_prefix="APP_LOGGING_")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"level must be one of {valid_levels}")
        return v_upper


class SecurityConfig(BaseConfigSection):
    """Security configuration

    ``tokens`` maps bearer tokens to viewer roles. Requests without a token
    are served as anonymous viewers.
    """

    tokens: Dict[str, ViewerRole] = Field(default_factory=dict)
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])

    model_config = SettingsConfigDict(env_prefix="APP_SECURITY_")


class TestingConfig(BaseConfigSection):
    """Test mode configuration"""

    seed_demo_catalog: bool = False

    model_config = SettingsConfigDict(env_prefix="APP_TESTING_")


class Config(BaseSettings):
    """Main application configuration"""

    server: ServerConfig = Field(default_factory=ServerConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    timeouts: TimeoutsConfig = Field(default_factory=TimeoutsConfig)
    rate_limiting: RateLimitingConfig = Field(default_factory=RateLimitingConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    security: SecurityConfig = Field(default_factory=SecurityConfig)
    testing: TestingConfig = Field(default_factory=TestingConfig)

    model_config = SettingsConfigDict(env_prefix="APP_")


class ConfigService:
    """Service for loading and managing configuration"""

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path or os.environ.get("APP_CONFIG_PATH", "config.yaml")
        self._config: Optional[Config] = None

    def load(self) -> Config:
        """Load configuration from YAML file with environment variable overrides."""
        config_data: Dict[str, Any] = {}

        if os.path.exists(self.config_path):
            with open(self.config_path, "r", encoding="utf-8") as f:
                yaml_data = yaml.safe_load(f)
                if yaml_data:
                    config_data = yaml_data

        self._config = Config(
            server=ServerConfig(**config_data.get("server", {})),
            storage=StorageConfig(**config_data.get("storage", {})),
            timeouts=TimeoutsConfig(**config_data.get("timeouts", {})),
            rate_limiting=RateLimitingConfig(**config_data.get("rate_limiting", {})),
            logging=LoggingConfig(**config_data.get("logging", {})),
            security=SecurityConfig(**config_data.get("security", {})),
            testing=TestingConfig(**config_data.get("testing", {})),
        )

        return self._config

    def validate(self) -> bool:
        """Validate the loaded configuration"""
        if self._config is None:
            raise ValueError("Configuration not loaded. Call load() first.")

        if self._config.storage.signing_secret == "change-me" and not (
            self._config.testing.seed_demo_catalog
        ):
            raise ValueError("storage.signing_secret must be set outside test mode")

        return True

    @property
    def config(self) -> Config:
        """Get the loaded configuration"""
        if self._config is None:
            raise ValueError("Configuration not loaded. Call load() first.")
        return self._config
