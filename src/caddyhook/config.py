"""Configuration management for caddyhook."""

from functools import lru_cache

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Built once at startup and passed explicitly to the components that need
    it; instances are frozen.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # Caddy
    caddyfile_path: str = Field(
        default="/etc/caddy/Caddyfile",
        description="Path of the Caddyfile as seen by this process",
    )
    caddy_container: str = Field(default="caddy", description="Caddy container name (not ID)")
    caddy_binary: str = Field(default="caddy", description="Caddy binary inside the container")
    caddy_config_path: str = Field(
        default="/etc/caddy/Caddyfile",
        description="Path of the Caddyfile inside the Caddy container",
    )
    caddy_adapter: str = Field(default="caddyfile", description="Caddy config adapter")

    # Docker
    docker_sock: str = Field(default="/var/run/docker.sock", description="Docker API socket")
    docker_timeout: float = Field(
        default=10.0, gt=0, description="Per-call timeout for Docker API requests (seconds)"
    )

    # GitHub
    github_secretkey: SecretStr = Field(
        default=SecretStr("secret"), description="Shared webhook secret"
    )
    tracked_ref: str = Field(
        default="refs/heads/main", description="Only pushes to this ref trigger a reload"
    )

    # HTTP server
    host: str = Field(default="0.0.0.0", description="Listen address")
    port: int = Field(default=8080, ge=1, le=65535, description="Listen port")
    hook_path: str = Field(default="/hook", description="Webhook endpoint path")

    # Application
    environment: str = Field(default="production", description="Environment name")
    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator("hook_path")
    @classmethod
    def _hook_path_is_absolute(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError("hook_path must start with '/'")
        return v

    @field_validator("tracked_ref", "caddy_container")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be empty")
        return v.strip()

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment.lower() == "development"

    @property
    def reload_command(self) -> list[str]:
        """Argument vector executed inside the Caddy container."""
        return [
            self.caddy_binary,
            "reload",
            "--config",
            self.caddy_config_path,
            "--adapter",
            self.caddy_adapter,
        ]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
