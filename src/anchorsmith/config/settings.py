"""Environment-driven application settings.

Values come from environment variables or a ``.env`` file at the project
root.  The wallet and service variables keep the names the challenge
platform documents (``SOLANA_PRIVATE_KEY``, ``API_URL`` ...); tuning knobs
use the ``ANCHORSMITH_`` prefix.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_API_URL = "https://ai-api.blueshift.gg"


class BuilderSettings(BaseSettings):
    """Anchor toolchain invocation."""

    model_config = SettingsConfigDict(env_prefix="ANCHORSMITH_BUILD_")

    anchor_command: list[str] = Field(default_factory=lambda: ["anchor"])
    """argv prefix for the Anchor CLI, e.g. ``["anchor"]`` or ``["avm", "run", "anchor"]``."""
    output_root: Path = Path("artifacts") / "anchor"
    scaffold_timeout_seconds: float = Field(default=120.0, gt=0, le=3600)
    build_timeout_seconds: float = Field(default=900.0, gt=0, le=7200)
    extra_env: dict[str, str] = Field(default_factory=dict)
    """Variables layered over the inherited environment for every command."""


class HttpSettings(BaseSettings):
    """Challenge-service HTTP client."""

    model_config = SettingsConfigDict(env_prefix="ANCHORSMITH_HTTP_")

    timeout_seconds: float = Field(default=30.0, gt=0, le=600)


class Settings(BaseSettings):
    """Top-level settings aggregator."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    builder: BuilderSettings = Field(default_factory=BuilderSettings)
    http: HttpSettings = Field(default_factory=HttpSettings)

    # Wallet (read from env without prefix)
    solana_private_key: str = ""
    """Base58-encoded 64-byte secret key."""

    # Service endpoints; see ``_resolve_urls`` for the precedence.
    api_url: str = ""
    blueshift_base_url: str = ""
    blueshift_ai_hackathon_mcp_url: str = ""
    mcp_url: str = ""

    # Registration details reported to the service
    agent_name: str = "Anchorsmith Agent"
    agent_team: str = "Local Development"

    @model_validator(mode="after")
    def _resolve_urls(self) -> Settings:
        explicit_mcp = self.blueshift_ai_hackathon_mcp_url.rstrip("/")
        raw = (
            self.api_url
            or self.blueshift_base_url
            or (explicit_mcp.removesuffix("/mcp") if explicit_mcp else "")
            or DEFAULT_API_URL
        )
        self.api_url = raw.rstrip("/")
        self.mcp_url = (explicit_mcp or f"{self.api_url}/mcp").rstrip("/")
        return self


# Module-level singleton, import and use directly.
settings = Settings()


def get_settings() -> Settings:
    """Return the module-level Settings singleton."""
    return settings
