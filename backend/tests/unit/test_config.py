"""Unit tests for application configuration.

Tests Settings defaults, environment loading and secret files.
"""

import pytest
from pydantic import ValidationError

from pantrybot.config import Settings, _load_secret_file_env_vars, get_settings


class TestSettingsDefaults:
    """Test Settings default values."""

    def test_llm_defaults(self, empty_settings):
        """Test provider-specific defaults."""
        assert empty_settings.llm_provider is None
        assert empty_settings.llm_stream_idle_timeout_seconds == 60.0
        assert empty_settings.ollama_model == "llama3.2"
        assert empty_settings.ollama_timeout_seconds == 60.0
        assert empty_settings.anthropic_model == "claude-3-haiku-20240307"
        assert empty_settings.anthropic_base_url == "https://api.anthropic.com"
        assert empty_settings.anthropic_max_tokens == 4096
        assert empty_settings.anthropic_timeout_seconds == 30.0
        assert empty_settings.openai_model == "gpt-4o-mini"
        assert empty_settings.openai_base_url == "https://api.openai.com/v1"
        assert empty_settings.openai_timeout_seconds == 30.0

    def test_default_app_env(self, empty_settings):
        """Test default app environment is development."""
        assert empty_settings.app_env == "development"
        assert empty_settings.is_development is True
        assert empty_settings.is_production is False


class TestSettingsEnvironment:
    """Test loading from environment variables."""

    def test_reads_llm_env_vars(self, monkeypatch):
        """Test selection signals come from the environment."""
        monkeypatch.setenv("LLM_PROVIDER", "anthropic")
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-env")
        monkeypatch.setenv("OLLAMA_BASE_URL", "http://gpu-box:11434")
        monkeypatch.setenv("OPENAI_TIMEOUT_SECONDS", "12.5")

        settings = Settings(_env_file=None)

        assert settings.llm_provider == "anthropic"
        assert settings.anthropic_api_key == "sk-ant-env"
        assert settings.ollama_base_url == "http://gpu-box:11434"
        assert settings.openai_timeout_seconds == 12.5

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()


class TestProductionValidation:
    """Test production safety checks."""

    def test_debug_rejected_in_production(self, settings_factory):
        with pytest.raises(ValidationError, match="APP_DEBUG must be false in production"):
            settings_factory(app_env="production", app_debug=True)

    def test_production_without_debug(self, settings_factory):
        settings = settings_factory(app_env="production")

        assert settings.is_production is True


class TestSecretFiles:
    """Test *_FILE secret loading (Docker secrets)."""

    def test_secret_file_populates_env(self, monkeypatch, tmp_path):
        secret = tmp_path / "openai_key"
        secret.write_text("sk-from-file\n", encoding="utf-8")
        monkeypatch.setenv("OPENAI_API_KEY", "overwritten")
        monkeypatch.setenv("OPENAI_API_KEY_FILE", str(secret))

        _load_secret_file_env_vars()

        assert Settings(_env_file=None).openai_api_key == "sk-from-file"

    def test_empty_secret_file_raises(self, monkeypatch, tmp_path):
        secret = tmp_path / "empty"
        secret.write_text("  \n", encoding="utf-8")
        monkeypatch.setenv("ANTHROPIC_API_KEY_FILE", str(secret))

        with pytest.raises(ValueError, match="ANTHROPIC_API_KEY_FILE is empty"):
            _load_secret_file_env_vars()

    def test_missing_secret_file_raises(self, monkeypatch, tmp_path):
        monkeypatch.setenv("OLLAMA_API_KEY_FILE", str(tmp_path / "missing"))

        with pytest.raises(RuntimeError, match="Failed to read OLLAMA_API_KEY_FILE"):
            _load_secret_file_env_vars()
