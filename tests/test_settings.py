"""Tests for environment-driven settings."""

from __future__ import annotations

from pathlib import Path

import pytest

from anchorsmith.config.settings import DEFAULT_API_URL, BuilderSettings, Settings, get_settings, settings

URL_VARS = ("API_URL", "BLUESHIFT_BASE_URL", "BLUESHIFT_AI_HACKATHON_MCP_URL", "MCP_URL")


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (*URL_VARS, "SOLANA_PRIVATE_KEY"):
        monkeypatch.delenv(name, raising=False)


def _load() -> Settings:
    return Settings(_env_file=None)


class TestServiceUrl:
    def test_default(self) -> None:
        s = _load()
        assert s.api_url == DEFAULT_API_URL
        assert s.mcp_url == f"{DEFAULT_API_URL}/mcp"

    def test_api_url_wins(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("API_URL", "https://primary.test/")
        monkeypatch.setenv("BLUESHIFT_BASE_URL", "https://secondary.test")
        monkeypatch.setenv("BLUESHIFT_AI_HACKATHON_MCP_URL", "https://tertiary.test/mcp")
        assert _load().api_url == "https://primary.test"

    def test_base_url_before_mcp(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("BLUESHIFT_BASE_URL", "https://secondary.test")
        monkeypatch.setenv("BLUESHIFT_AI_HACKATHON_MCP_URL", "https://tertiary.test/mcp")
        assert _load().api_url == "https://secondary.test"

    def test_derived_from_mcp_url(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("BLUESHIFT_AI_HACKATHON_MCP_URL", "https://tertiary.test/mcp/")
        s = _load()
        assert s.api_url == "https://tertiary.test"
        assert s.mcp_url == "https://tertiary.test/mcp"

    def test_mcp_url_follows_api_url(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("API_URL", "https://primary.test")
        assert _load().mcp_url == "https://primary.test/mcp"


class TestBuilderSettings:
    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for name in ("ANCHOR_COMMAND", "OUTPUT_ROOT", "SCAFFOLD_TIMEOUT_SECONDS", "BUILD_TIMEOUT_SECONDS"):
            monkeypatch.delenv(f"ANCHORSMITH_BUILD_{name}", raising=False)
        b = BuilderSettings()
        assert b.anchor_command == ["anchor"]
        assert b.output_root == Path("artifacts") / "anchor"
        assert b.scaffold_timeout_seconds == 120
        assert b.build_timeout_seconds == 900

    def test_env_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ANCHORSMITH_BUILD_ANCHOR_COMMAND", '["avm", "run", "anchor"]')
        monkeypatch.setenv("ANCHORSMITH_BUILD_BUILD_TIMEOUT_SECONDS", "60")
        monkeypatch.setenv("ANCHORSMITH_BUILD_EXTRA_ENV", '{"CARGO_TERM_COLOR": "never"}')
        b = BuilderSettings()
        assert b.anchor_command == ["avm", "run", "anchor"]
        assert b.build_timeout_seconds == 60
        assert b.extra_env == {"CARGO_TERM_COLOR": "never"}

    def test_timeout_must_be_positive(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ANCHORSMITH_BUILD_BUILD_TIMEOUT_SECONDS", "0")
        with pytest.raises(ValueError):
            BuilderSettings()


def test_private_key_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SOLANA_PRIVATE_KEY", "abc")
    assert _load().solana_private_key == "abc"


def test_singleton() -> None:
    assert get_settings() is settings
