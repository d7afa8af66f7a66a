"""Service configuration shared by the generation client and the dispatcher."""

from __future__ import annotations

from pydantic import BaseModel, Field

from imagegen.config.environment import DEFAULT_ENV, Environment
from imagegen.config.logging_config import get_logger

log = get_logger(__name__)

DEFAULT_TIMEOUT_MS = int(DEFAULT_ENV["REQUEST_TIMEOUT"])


def _parse_timeout(raw: str | int | None) -> int:
    if raw is None:
        return DEFAULT_TIMEOUT_MS
    try:
        value = int(str(raw).strip())
    except ValueError:
        log.warning(f"Ignoring REQUEST_TIMEOUT={raw!r}: not an integer")
        return DEFAULT_TIMEOUT_MS
    if value <= 0:
        log.warning(f"Ignoring REQUEST_TIMEOUT={raw!r}: must be positive")
        return DEFAULT_TIMEOUT_MS
    return value


class ServiceConfig(BaseModel):
    """Process-wide configuration, built once at startup."""

    base_url: str = Field(
        default=DEFAULT_ENV["SD_WEBUI_URL"],
        description="Base URL of the Stable Diffusion WebUI API",
    )
    auth_user: str | None = Field(default=None, description="Basic-auth username")
    auth_password: str | None = Field(default=None, description="Basic-auth password")
    output_dir: str = Field(
        default=DEFAULT_ENV["SD_OUTPUT_DIR"],
        description="Default directory for generated images",
    )
    request_timeout_ms: int = Field(
        default=DEFAULT_TIMEOUT_MS,
        gt=0,
        description="Timeout applied to every remote call, in milliseconds",
    )
    metadata_concurrency: int = Field(
        default=4,
        ge=1,
        description="Maximum number of png-info calls in flight per invocation",
    )

    @classmethod
    def from_environment(cls) -> "ServiceConfig":
        config = cls(
            base_url=Environment.get("SD_WEBUI_URL"),
            auth_user=Environment.get("SD_AUTH_USER"),
            auth_password=Environment.get("SD_AUTH_PASS"),
            output_dir=Environment.get("SD_OUTPUT_DIR"),
            request_timeout_ms=_parse_timeout(Environment.get("REQUEST_TIMEOUT")),
        )
        if bool(config.auth_user) != bool(config.auth_password):
            log.warning(
                "SD_AUTH_USER and SD_AUTH_PASS must be set together; "
                "basic auth is disabled"
            )
        return config

    @property
    def auth(self) -> tuple[str, str] | None:
        if self.auth_user and self.auth_password:
            return (self.auth_user, self.auth_password)
        return None

    @property
    def timeout_seconds(self) -> float:
        return self.request_timeout_ms / 1000.0

    def describe(self) -> dict[str, str]:
        """Return printable settings with the password masked."""
        return {
            "SD_WEBUI_URL": self.base_url,
            "SD_AUTH_USER": self.auth_user or "",
            "SD_AUTH_PASS": "****" if self.auth_password else "",
            "SD_OUTPUT_DIR": self.output_dir,
            "REQUEST_TIMEOUT": str(self.request_timeout_ms),
        }
