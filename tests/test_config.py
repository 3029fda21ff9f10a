"""Tests for pipeline configuration."""

import pytest

from clinical_document_generation.core.config import PipelineConfiguration
from clinical_document_generation.core.exceptions import ConfigurationError


ENV_VARS = [
    "GEMINI_API_KEY",
    "GOOGLE_API_KEY",
    "OPENAI_API_KEY",
    "LLM_PROVIDER",
    "GEMINI_MODEL",
    "OPENAI_MODEL",
    "GENERATION_TEMPERATURE",
    "RATE_LIMIT_DELAY",
    "RATE_LIMIT_RETRIES",
    "INITIAL_BACKOFF_SECONDS",
    "PATIENT_STORE_PATH",
    "VAULT_PATH",
    "ENABLE_VAULT",
    "LOG_LEVEL",
]


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Empty environment and a cwd without a .env file."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return monkeypatch


class TestValidate:
    """Tests for validate()."""

    def test_valid_gemini_config(self):
        """Test a Gemini key satisfies the default provider."""
        PipelineConfiguration(gemini_api_key="key").validate()

    def test_missing_key(self):
        """Test the selected provider needs a key."""
        with pytest.raises(ConfigurationError):
            PipelineConfiguration().validate()
        with pytest.raises(ConfigurationError):
            PipelineConfiguration(llm_provider="openai", gemini_api_key="key").validate()

    def test_unknown_provider(self):
        """Test unsupported providers are rejected."""
        with pytest.raises(ConfigurationError):
            PipelineConfiguration(llm_provider="llama", gemini_api_key="key").validate()

    @pytest.mark.parametrize(
        "overrides",
        [
            {"rate_limit_retries": -1},
            {"initial_backoff": -0.5},
            {"rate_limit_delay": -1.0},
            {"temperature": 2.5},
        ],
    )
    def test_out_of_range_values(self, overrides):
        """Test negative retry settings and bad temperatures are rejected."""
        with pytest.raises(ConfigurationError):
            PipelineConfiguration(gemini_api_key="key", **overrides).validate()

    def test_to_dict_masks_keys(self):
        """Test API keys never appear in to_dict()."""
        data = PipelineConfiguration(gemini_api_key="secret").to_dict()
        assert data["gemini_api_key"] == "***"
        assert "secret" not in str(data)


class TestFromEnvironment:
    """Tests for from_environment()."""

    def test_reads_settings(self, clean_env):
        """Test settings are read from environment variables."""
        clean_env.setenv("GEMINI_API_KEY", "key")
        clean_env.setenv("RATE_LIMIT_RETRIES", "5")
        clean_env.setenv("INITIAL_BACKOFF_SECONDS", "0.5")
        clean_env.setenv("ENABLE_VAULT", "false")
        clean_env.setenv("LOG_LEVEL", "debug")

        config = PipelineConfiguration.from_environment()

        assert config.gemini_api_key == "key"
        assert config.rate_limit_retries == 5
        assert config.initial_backoff == 0.5
        assert config.enable_vault is False
        assert config.log_level == "DEBUG"

    def test_google_api_key_fallback(self, clean_env):
        """Test GOOGLE_API_KEY is accepted for Gemini."""
        clean_env.setenv("GOOGLE_API_KEY", "google-key")
        assert PipelineConfiguration.from_environment().gemini_api_key == "google-key"

    def test_openai_only_selects_openai(self, clean_env):
        """Test an OpenAI-only environment switches provider."""
        clean_env.setenv("OPENAI_API_KEY", "openai-key")
        config = PipelineConfiguration.from_environment()
        assert config.llm_provider == "openai"
        assert config.active_model == "gpt-4o"

    def test_env_file(self, clean_env, tmp_path):
        """Test an explicit .env file is loaded."""
        env_file = tmp_path / "custom.env"
        env_file.write_text("GEMINI_API_KEY=from-file\n")
        # Registered with monkeypatch so the value load_dotenv sets is undone
        clean_env.setenv("GEMINI_API_KEY", "placeholder")
        clean_env.delenv("GEMINI_API_KEY")

        config = PipelineConfiguration.from_environment(env_file=str(env_file))

        assert config.gemini_api_key == "from-file"

    def test_invalid_number(self, clean_env):
        """Test a non-numeric setting raises ConfigurationError."""
        clean_env.setenv("GEMINI_API_KEY", "key")
        clean_env.setenv("RATE_LIMIT_RETRIES", "many")
        with pytest.raises(ConfigurationError):
            PipelineConfiguration.from_environment()

    def test_missing_key_fails_validation(self, clean_env):
        """Test loading with no keys fails fast."""
        with pytest.raises(ConfigurationError):
            PipelineConfiguration.from_environment()
