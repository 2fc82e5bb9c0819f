"""
Configuration management for PlateDashboard.

This module provides centralized configuration with validation using Pydantic.
All configuration values are loaded from environment variables with sensible defaults.
"""

from typing import Optional, Literal
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseConfig(BaseSettings):
    """Database connection and pool configuration."""

    model_config = SettingsConfigDict(env_prefix='DB_', case_sensitive=False)

    host: str = Field(default='localhost', description='Database host')
    port: int = Field(default=5432, description='Database port')
    name: str = Field(default='plate_dashboard', alias='POSTGRES_DB', description='Database name')
    user: str = Field(default='plate_user', alias='POSTGRES_USER', description='Database user')
    password: str = Field(default='plate_password', alias='POSTGRES_PASSWORD', description='Database password')

    # Connection pool settings
    pool_size: int = Field(default=10, description='Connection pool size')
    connect_timeout: int = Field(default=10, description='Connect timeout in seconds')

    @property
    def connection_string(self) -> str:
        """Generate PostgreSQL connection string."""
        return f"postgresql://{self.user}:{self.password}@{self.host}:{self.port}/{self.name}"


class RetentionConfig(BaseSettings):
    """Data retention policy and maintenance scheduler configuration."""

    model_config = SettingsConfigDict(env_prefix='RETENTION_', case_sensitive=False)

    default_days: int = Field(
        default=90,
        description='Retention window used until a policy is saved'
    )
    config_key: str = Field(
        default='data_retention_policy',
        description='system_config key holding the retention policy'
    )
    scheduler_enabled: bool = Field(
        default=True,
        description='Run the background cleanup loop inside the API process'
    )
    initial_delay_seconds: float = Field(
        default=5,
        description='Delay before the first cleanup after startup'
    )
    interval_seconds: float = Field(
        default=24 * 3600,
        description='Period between scheduled cleanups'
    )

    @field_validator('initial_delay_seconds')
    @classmethod
    def validate_delay(cls, v: float) -> float:
        """Validate the startup delay is not negative."""
        if v < 0:
            raise ValueError('Initial delay must be non-negative')
        return v

    @field_validator('interval_seconds')
    @classmethod
    def validate_interval(cls, v: float) -> float:
        """Validate the cleanup period is positive."""
        if v <= 0:
            raise ValueError('Cleanup interval must be positive')
        return v

    @model_validator(mode='after')
    def validate_default_days(self) -> 'RetentionConfig':
        """Validate the default window lies in the accepted policy range."""
        if not 1 <= self.default_days <= 365:
            raise ValueError('Default retention days must be between 1 and 365')
        return self


class APIConfig(BaseSettings):
    """API server configuration."""

    model_config = SettingsConfigDict(env_prefix='API_', case_sensitive=False)

    host: str = Field(default='0.0.0.0', description='API host')
    port: int = Field(default=8000, description='API port')
    reload: bool = Field(default=False, description='Enable auto-reload for development')
    log_level: Literal['debug', 'info', 'warning', 'error', 'critical'] = Field(
        default='info',
        description='Logging level'
    )
    cors_origins: list[str] = Field(
        default=['*'],
        description='CORS allowed origins'
    )


class AppConfig(BaseSettings):
    """Main application configuration."""

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore'
    )

    # Environment
    environment: Literal['development', 'staging', 'production'] = Field(
        default='development',
        description='Application environment'
    )
    debug: bool = Field(default=False, description='Debug mode')

    # Sub-configurations
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    retention: RetentionConfig = Field(default_factory=RetentionConfig)
    api: APIConfig = Field(default_factory=APIConfig)

    @classmethod
    def load(cls) -> 'AppConfig':
        """Load configuration from environment."""
        return cls(
            database=DatabaseConfig(),
            retention=RetentionConfig(),
            api=APIConfig()
        )

    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == 'production'

    def is_development(self) -> bool:
        """Check if running in development."""
        return self.environment == 'development'


# Global configuration instance
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Get or create global configuration instance."""
    global _config
    if _config is None:
        _config = AppConfig.load()
    return _config


def reload_config() -> AppConfig:
    """Reload configuration from environment."""
    global _config
    _config = AppConfig.load()
    return _config
