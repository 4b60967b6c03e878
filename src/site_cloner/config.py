"""Application configuration."""

import os
from pathlib import Path

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from site_cloner.domain.clone import Credentials

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    anima_email: str = ""
    anima_password: SecretStr = SecretStr("")
    platform_url: str = "https://dev.animaapp.com/"
    published_domain_suffix: str = ".dev.animaapp.io"
    screenshots_dir: Path = Path("screenshots")
    screenshots_prefix: str = "/screenshots"
    headless: bool = True
    docker: bool = False
    slow_mo_ms: int = 0
    viewport_width: int = 1920
    viewport_height: int = 1080
    idle_before_close_seconds: float = 120.0
    cancel_on_disconnect: bool = False
    cors_origins: str = "*"
    log_level: str = "INFO"
    host: str = "0.0.0.0"  # noqa: S104
    port: int = 5001
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    def credentials(self) -> Credentials:
        """Return the platform login credentials."""
        return Credentials(
            identity=self.anima_email,
            secret=self.anima_password.get_secret_value(),
        )


def parse_cors_origins(raw: str | None) -> list[str]:
    """Parse allowed CORS origins from env."""
    if raw is None:
        return ["*"]
    cleaned = raw.strip()
    if cleaned in {"", "*"}:
        return ["*"]
    origins: list[str] = []
    for chunk in cleaned.split(","):
        value = chunk.strip().rstrip("/")
        if value:
            origins.append(value)
    return origins or ["*"]
