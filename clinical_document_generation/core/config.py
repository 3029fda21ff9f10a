"""
Configuration for the Clinical Document Generation Pipeline

This module defines the configuration dataclass used to initialize and
configure the batch document pipeline. Configuration is:
    1. Loaded from environment variables (with .env support)
    2. Validated at startup to fail fast on misconfiguration
    3. Overridable programmatically for tests and scripts

Configuration Hierarchy:
    PipelineConfiguration (main config)
    ├── LLM Settings (API keys, model names, temperature, spacing)
    ├── Retry Settings (rate-limit retries, initial backoff)
    ├── Storage Settings (patient store path, vault path)
    └── Logging Settings (level)

Usage:
    from clinical_document_generation.core.config import PipelineConfiguration

    # Load from environment
    config = PipelineConfiguration.from_environment()

    # Or configure programmatically
    config = PipelineConfiguration(gemini_api_key="your-key")
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from clinical_document_generation.core.constants import (
    DEFAULT_INITIAL_BACKOFF_SECONDS,
    DEFAULT_RATE_LIMIT_RETRIES,
)
from clinical_document_generation.core.exceptions import ConfigurationError


# =============================================================================
# STAGE 1: DEFAULT VALUES
# =============================================================================
# Centralized defaults make configuration transparent and overridable.


class ConfigDefaults:
    """Default configuration values."""

    # -------------------------------------------------------------------------
    # 1.1 LLM Provider Defaults
    # -------------------------------------------------------------------------
    DEFAULT_PROVIDER = "gemini"
    SUPPORTED_PROVIDERS = ("gemini", "openai")
    DEFAULT_GEMINI_MODEL = "gemini-1.5-pro"
    DEFAULT_OPENAI_MODEL = "gpt-4o"
    DEFAULT_TEMPERATURE = 0.2
    DEFAULT_RATE_LIMIT_DELAY = 0.0  # seconds between API calls

    # -------------------------------------------------------------------------
    # 1.2 Retry Defaults
    # -------------------------------------------------------------------------
    DEFAULT_RATE_LIMIT_RETRIES = DEFAULT_RATE_LIMIT_RETRIES
    DEFAULT_INITIAL_BACKOFF = DEFAULT_INITIAL_BACKOFF_SECONDS

    # -------------------------------------------------------------------------
    # 1.3 Storage Defaults
    # -------------------------------------------------------------------------
    DEFAULT_PATIENT_STORE_PATH = "data/patient_store.json"
    DEFAULT_VAULT_PATH = "data/report_vault.json"

    # -------------------------------------------------------------------------
    # 1.4 Logging Defaults
    # -------------------------------------------------------------------------
    DEFAULT_LOG_LEVEL = "INFO"


# =============================================================================
# STAGE 2: CONFIGURATION DATACLASS
# =============================================================================


@dataclass
class PipelineConfiguration:
    """
    Configuration for the batch document pipeline.

    What it does:
        Encapsulates all configuration parameters needed to build the
        LLM client, generation adapter, stores and orchestrator.

    Why it exists:
        1. Single source of truth for all configuration
        2. Validated at startup to fail fast on errors
        3. Supports both environment and programmatic configuration

    Example:
        >>> config = PipelineConfiguration.from_environment()
        >>> config.gemini_model
        'gemini-1.5-pro'
    """

    # -------------------------------------------------------------------------
    # 2.1 LLM Provider Configuration
    # -------------------------------------------------------------------------
    gemini_api_key: Optional[str] = None
    """Google Gemini API key. Required if using Gemini provider."""

    gemini_model: str = ConfigDefaults.DEFAULT_GEMINI_MODEL
    """Gemini model name."""

    openai_api_key: Optional[str] = None
    """OpenAI API key. Required if using OpenAI provider."""

    openai_model: str = ConfigDefaults.DEFAULT_OPENAI_MODEL
    """OpenAI model name."""

    llm_provider: str = ConfigDefaults.DEFAULT_PROVIDER
    """Which LLM provider to use: 'gemini' or 'openai'."""

    temperature: float = ConfigDefaults.DEFAULT_TEMPERATURE
    """Sampling temperature for document generation."""

    rate_limit_delay: float = ConfigDefaults.DEFAULT_RATE_LIMIT_DELAY
    """Minimum spacing between API calls in seconds."""

    # -------------------------------------------------------------------------
    # 2.2 Retry Configuration
    # -------------------------------------------------------------------------
    rate_limit_retries: int = ConfigDefaults.DEFAULT_RATE_LIMIT_RETRIES
    """Additional attempts after a rate-limit error (total calls = retries + 1)."""

    initial_backoff: float = ConfigDefaults.DEFAULT_INITIAL_BACKOFF
    """First backoff delay in seconds; doubles each retry."""

    # -------------------------------------------------------------------------
    # 2.3 Storage Configuration
    # -------------------------------------------------------------------------
    patient_store_path: Optional[str] = ConfigDefaults.DEFAULT_PATIENT_STORE_PATH
    """JSON file backing the patient/report store (None = in-memory)."""

    vault_path: str = ConfigDefaults.DEFAULT_VAULT_PATH
    """JSON file backing the local report vault."""

    enable_vault: bool = True
    """Archive every completed document to the local vault."""

    # -------------------------------------------------------------------------
    # 2.4 Logging Configuration
    # -------------------------------------------------------------------------
    log_level: str = ConfigDefaults.DEFAULT_LOG_LEVEL

    # -------------------------------------------------------------------------
    # 2.5 Validation Methods
    # -------------------------------------------------------------------------

    def validate(self) -> None:
        """
        Validate configuration parameters.

        Checks:
            1. Provider is supported and has an API key
            2. Retry budget and backoff are non-negative
            3. Temperature is in the providers' accepted range

        Raises:
            ConfigurationError: If configuration is invalid
        """
        if self.llm_provider not in ConfigDefaults.SUPPORTED_PROVIDERS:
            raise ConfigurationError(
                f"Unsupported LLM provider: {self.llm_provider}",
                context={"supported": list(ConfigDefaults.SUPPORTED_PROVIDERS)},
            )

        if self.llm_provider == "gemini" and not self.gemini_api_key:
            raise ConfigurationError(
                "Gemini API key required when using Gemini provider",
                context={"setting": "GEMINI_API_KEY", "provider": "gemini"},
            )

        if self.llm_provider == "openai" and not self.openai_api_key:
            raise ConfigurationError(
                "OpenAI API key required when using OpenAI provider",
                context={"setting": "OPENAI_API_KEY", "provider": "openai"},
            )

        if self.rate_limit_retries < 0:
            raise ConfigurationError(
                f"Rate limit retries must be >= 0, got {self.rate_limit_retries}",
                context={"setting": "RATE_LIMIT_RETRIES"},
            )

        if self.initial_backoff < 0 or self.rate_limit_delay < 0:
            raise ConfigurationError(
                "Backoff and rate limit delay must be >= 0",
                context={
                    "initial_backoff": self.initial_backoff,
                    "rate_limit_delay": self.rate_limit_delay,
                },
            )

        if not (0.0 <= self.temperature <= 2.0):
            raise ConfigurationError(
                f"Temperature must be 0-2, got {self.temperature}",
                context={"temperature": self.temperature},
            )

    # -------------------------------------------------------------------------
    # 2.6 Factory Methods
    # -------------------------------------------------------------------------

    @classmethod
    def from_environment(
        cls, env_file: Optional[str] = None, validate_on_load: bool = True
    ) -> "PipelineConfiguration":
        """
        Load configuration from environment variables.

        STAGE 1: Load .env file (if specified or found)
        STAGE 2: Read environment variables
        STAGE 3: Convert to typed configuration
        STAGE 4: Validate configuration (optional)

        Args:
            env_file: Path to .env file (optional, auto-detected if not provided)
            validate_on_load: Whether to validate after loading

        Returns:
            Configured PipelineConfiguration instance

        Raises:
            ConfigurationError: If required settings are missing or invalid
        """
        # STAGE 1: Load .env file
        if env_file:
            load_dotenv(env_file)
        else:
            possible_locations = [
                Path.cwd() / ".env",
                Path.cwd() / "clinical_document_generation" / ".env",
            ]
            for location in possible_locations:
                if location.exists():
                    load_dotenv(location)
                    break

        # STAGE 2: Read environment variables
        gemini_key = os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")
        openai_key = os.getenv("OPENAI_API_KEY")

        llm_provider = os.getenv("LLM_PROVIDER", ConfigDefaults.DEFAULT_PROVIDER).lower()
        if not gemini_key and openai_key and not os.getenv("LLM_PROVIDER"):
            llm_provider = "openai"

        store_path = os.getenv("PATIENT_STORE_PATH", ConfigDefaults.DEFAULT_PATIENT_STORE_PATH)

        # STAGE 3: Create configuration
        try:
            config = cls(
                gemini_api_key=gemini_key,
                gemini_model=os.getenv("GEMINI_MODEL", ConfigDefaults.DEFAULT_GEMINI_MODEL),
                openai_api_key=openai_key,
                openai_model=os.getenv("OPENAI_MODEL", ConfigDefaults.DEFAULT_OPENAI_MODEL),
                llm_provider=llm_provider,
                temperature=float(
                    os.getenv("GENERATION_TEMPERATURE", ConfigDefaults.DEFAULT_TEMPERATURE)
                ),
                rate_limit_delay=float(
                    os.getenv("RATE_LIMIT_DELAY", ConfigDefaults.DEFAULT_RATE_LIMIT_DELAY)
                ),
                rate_limit_retries=int(
                    os.getenv("RATE_LIMIT_RETRIES", ConfigDefaults.DEFAULT_RATE_LIMIT_RETRIES)
                ),
                initial_backoff=float(
                    os.getenv("INITIAL_BACKOFF_SECONDS", ConfigDefaults.DEFAULT_INITIAL_BACKOFF)
                ),
                patient_store_path=store_path or None,
                vault_path=os.getenv("VAULT_PATH", ConfigDefaults.DEFAULT_VAULT_PATH),
                enable_vault=os.getenv("ENABLE_VAULT", "true").lower() == "true",
                log_level=os.getenv("LOG_LEVEL", ConfigDefaults.DEFAULT_LOG_LEVEL).upper(),
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid numeric setting: {e}")

        # STAGE 4: Validate
        if validate_on_load:
            config.validate()

        return config

    @property
    def active_model(self) -> str:
        """Model name for the selected provider."""
        return self.gemini_model if self.llm_provider == "gemini" else self.openai_model

    def to_dict(self) -> dict:
        """Convert configuration to dictionary (for logging/debugging)."""
        return {
            "llm_provider": self.llm_provider,
            "gemini_model": self.gemini_model,
            "openai_model": self.openai_model,
            "gemini_api_key": "***" if self.gemini_api_key else None,
            "openai_api_key": "***" if self.openai_api_key else None,
            "temperature": self.temperature,
            "rate_limit_delay": self.rate_limit_delay,
            "rate_limit_retries": self.rate_limit_retries,
            "initial_backoff": self.initial_backoff,
            "patient_store_path": self.patient_store_path,
            "vault_path": self.vault_path,
            "enable_vault": self.enable_vault,
            "log_level": self.log_level,
        }
