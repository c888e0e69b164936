"""
Configuration Settings.

This module defines the runtime configuration using Pydantic's BaseSettings.
It automatically loads all configuration from environment variables and .env
file without explicit dotenv loading.
"""

from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# =====================================================================
# Grouped Configuration Models
# =====================================================================


class SandboxConfig(BaseModel):
    """Outbound HTTP sandbox configuration."""

    timeout_ms: int = Field(
        default=30000, gt=0, alias="HIVELANG_HTTP_TIMEOUT_MS", description="Default request timeout in milliseconds"
    )
    user_agent: str = Field(
        default="HiveLang-Integration/1.0",
        alias="HIVELANG_HTTP_USER_AGENT",
        description="User-Agent sent with every sandboxed request unless overridden",
    )
    allow_loopback_http: bool = Field(
        default=True,
        alias="HIVELANG_ALLOW_LOOPBACK_HTTP",
        description="Permit plain http:// to localhost, 127.0.0.1 and ::1",
    )

    model_config = {"populate_by_name": True}


class RuntimeCacheConfig(BaseModel):
    """Compiled runtime cache configuration."""

    capacity: int = Field(default=100, ge=0, alias="HIVELANG_CACHE_CAPACITY", description="Maximum cached runtimes")
    eviction: Literal["fifo", "lru"] = Field(
        default="fifo", alias="HIVELANG_CACHE_EVICTION", description="Eviction policy (fifo or lru)"
    )

    model_config = {"populate_by_name": True}


class LoggingConfig(BaseModel):
    """Log output configuration."""

    level: str = Field(default="INFO", alias="HIVELANG_LOG_LEVEL", description="Console log level")
    format: Literal["simple", "detailed", "json"] = Field(
        default="detailed", alias="HIVELANG_LOG_FORMAT", description="Log line format (simple, detailed or json)"
    )
    file_dir: str = Field(default="logs", alias="HIVELANG_LOG_FILE_DIR", description="Directory of the log file")
    to_file: bool = Field(default=False, alias="HIVELANG_LOG_TO_FILE", description="Also write DEBUG logs to a file")

    model_config = {"populate_by_name": True}


class CORSConfig(BaseModel):
    """CORS configuration."""

    origins: list[str] = Field(default=["*"], alias="CORS_ORIGINS", description="Allowed CORS origins (use * for all)")
    allow_credentials: bool = Field(
        default=True, alias="CORS_ALLOW_CREDENTIALS", description="Allow credentials in CORS requests"
    )
    allow_methods: list[str] = Field(
        default=["*"], alias="CORS_ALLOW_METHODS", description="Allowed HTTP methods (use * for all)"
    )
    allow_headers: list[str] = Field(
        default=["*"], alias="CORS_ALLOW_HEADERS", description="Allowed HTTP headers (use * for all)"
    )

    model_config = {"populate_by_name": True}


# =====================================================================
# Main Settings Class
# =====================================================================


class Settings(BaseSettings):
    """
    Runtime settings model.

    Flat fields bind to environment variables (and `.env`) by alias; the
    properties below regroup them into the typed sub-models the runtime consumes.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True,
        populate_by_name=True,
    )

    # =====================================================================
    # Server Configuration
    # =====================================================================
    server_host: str = Field(
        default="0.0.0.0",
        description="Runtime server host address to bind to",
        alias="HIVELANG_SERVER_HOST",
    )
    server_port: int = Field(
        default=8000,
        description="Runtime server port number",
        alias="HIVELANG_SERVER_PORT",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
        alias="HIVELANG_LOG_LEVEL",
    )
    log_format: Literal["simple", "detailed", "json"] = Field(default="detailed", alias="HIVELANG_LOG_FORMAT")
    log_file_dir: str = Field(default="logs", alias="HIVELANG_LOG_FILE_DIR")
    log_to_file: bool = Field(default=False, alias="HIVELANG_LOG_TO_FILE")

    # =====================================================================
    # Sandbox Configuration
    # =====================================================================
    http_timeout_ms: int = Field(default=30000, gt=0, alias="HIVELANG_HTTP_TIMEOUT_MS")
    http_user_agent: str = Field(default="HiveLang-Integration/1.0", alias="HIVELANG_HTTP_USER_AGENT")
    allow_loopback_http: bool = Field(default=True, alias="HIVELANG_ALLOW_LOOPBACK_HTTP")

    # =====================================================================
    # Runtime Configuration
    # =====================================================================
    cache_capacity: int = Field(default=100, ge=0, alias="HIVELANG_CACHE_CAPACITY")
    cache_eviction: Literal["fifo", "lru"] = Field(default="fifo", alias="HIVELANG_CACHE_EVICTION")
    reject_duplicate_capabilities: bool = Field(
        default=False,
        description="Fail loading a source that defines the same capability twice",
        alias="HIVELANG_REJECT_DUPLICATE_CAPABILITIES",
    )

    # =====================================================================
    # CORS Configuration
    # =====================================================================
    cors_origins: list[str] = Field(default=["*"], alias="CORS_ORIGINS")
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(default=["*"], alias="CORS_ALLOW_METHODS")
    cors_allow_headers: list[str] = Field(default=["*"], alias="CORS_ALLOW_HEADERS")

    # =====================================================================
    # Computed Properties (Grouped Configurations)
    # =====================================================================

    @property
    def sandbox(self) -> SandboxConfig:
        """Get sandbox configuration from environment variables."""
        return SandboxConfig.model_validate(self.model_dump(by_alias=True))

    @property
    def cache(self) -> RuntimeCacheConfig:
        """Get runtime cache configuration from environment variables."""
        return RuntimeCacheConfig.model_validate(self.model_dump(by_alias=True))

    @property
    def log(self) -> LoggingConfig:
        """Get logging configuration from environment variables."""
        return LoggingConfig.model_validate(self.model_dump(by_alias=True))

    @property
    def cors(self) -> CORSConfig:
        """Get CORS configuration from environment variables."""
        return CORSConfig.model_validate(self.model_dump(by_alias=True))


settings = Settings()
