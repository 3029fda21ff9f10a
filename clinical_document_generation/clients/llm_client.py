"""
LLM Client Protocol and Base Implementation

This module defines the interface for LLM clients and provides a base
class with common functionality (call spacing, error accounting).

Protocol Pattern:
    - LLMClientProtocol defines the interface
    - BaseLLMClient provides common implementation
    - Concrete clients (GeminiClient, OpenAIClient) extend base

Retry Ownership:
    Clients make exactly ONE attempt per generate() call. Rate-limit
    retries belong to the DocumentGenerator so the attempt budget
    (1 initial + N retries) is counted in a single place.
"""

import re
import time
from abc import ABC, abstractmethod
from typing import List, Optional, Protocol, Sequence, Union, runtime_checkable

from loguru import logger

from clinical_document_generation.core.constants import RATE_LIMIT_SIGNATURES
from clinical_document_generation.core.exceptions import LLMError
from clinical_document_generation.core.models import UploadedFile

_RATE_LIMIT_PATTERN = re.compile("|".join(RATE_LIMIT_SIGNATURES))


# A request is an ordered list of text fragments and file payloads.
ContentPart = Union[str, UploadedFile]


def is_rate_limit_error(error: BaseException) -> bool:
    """
    Recognize a rate-limit / quota signal from any provider SDK.

    Matches an HTTP 429 status on the exception (``code`` or
    ``status_code``) or any of RATE_LIMIT_SIGNATURES in its message.
    """
    for attribute in ("code", "status_code"):
        value = getattr(error, attribute, None)
        if value == 429 or str(value) == "429":
            return True

    message = str(error).lower()
    return _RATE_LIMIT_PATTERN.search(message) is not None


# =============================================================================
# STAGE 1: LLM CLIENT PROTOCOL
# =============================================================================
# Defines the contract that all LLM clients must follow.


@runtime_checkable
class LLMClientProtocol(Protocol):
    """
    Protocol defining the interface for LLM clients.

    What it does:
        Specifies the exact methods any LLM client must implement,
        enabling type-safe dependency injection and test doubles.

    Required Methods:
        generate(parts, system_instruction) → Generated text ("" if none)

    Properties:
        model_name → Name of the model being used
        provider_name → Name of the provider (gemini, openai)
    """

    def generate(self, parts: Sequence[ContentPart], system_instruction: str) -> str:
        """
        Generate text from an ordered list of content parts.

        Args:
            parts: Text fragments and file payloads, in prompt order
            system_instruction: Document-type specific instruction

        Returns:
            Generated text (may be empty; callers decide what that means)

        Raises:
            LLMRateLimitError: If the provider signalled rate limiting
            LLMError: If the call failed for any other reason
        """
        ...

    @property
    def model_name(self) -> str:
        """Name of the model being used."""
        ...

    @property
    def provider_name(self) -> str:
        """Name of the LLM provider."""
        ...


# =============================================================================
# STAGE 2: BASE LLM CLIENT (ABSTRACT)
# =============================================================================


class BaseLLMClient(ABC):
    """
    Abstract base class for LLM clients with common functionality.

    What it does:
        Provides inter-call spacing, error wrapping and call metrics so
        concrete implementations only translate requests and errors.

    What subclasses must implement:
        - _call_api(parts, system_instruction): Actual API call
        - provider_name: Property returning provider name

    What base class provides:
        - Minimum spacing between calls
        - Wrapping of unexpected SDK errors in LLMError
        - Logging and metrics
    """

    def __init__(
        self,
        api_key: str,
        model_name: str,
        rate_limit_delay: float = 0.0,
        temperature: float = 0.2,
    ):
        """
        Initialize base LLM client.

        Args:
            api_key: API key for the provider
            model_name: Name of model to use
            rate_limit_delay: Minimum seconds between API calls
            temperature: Sampling temperature
        """
        self._api_key = api_key
        self._model_name = model_name
        self._rate_limit_delay = rate_limit_delay
        self._temperature = temperature

        self._last_call_time: Optional[float] = None
        self._total_calls = 0
        self._failed_calls = 0

    # =========================================================================
    # STAGE 3: PUBLIC API
    # =========================================================================

    def generate(self, parts: Sequence[ContentPart], system_instruction: str) -> str:
        """
        Make a single spaced API call and track its outcome.

        Args:
            parts: Text fragments and file payloads, in prompt order
            system_instruction: Document-type specific instruction

        Returns:
            Generated text

        Raises:
            LLMError: Provider error (LLMRateLimitError for quota signals)
        """
        self._apply_rate_limit()

        try:
            result = self._call_api(list(parts), system_instruction)
        except LLMError:
            self._failed_calls += 1
            raise
        except Exception as e:
            self._failed_calls += 1
            logger.error(f"Unexpected error in {self.provider_name} call: {e}")
            raise LLMError(str(e), provider=self.provider_name, original_error=e)

        self._total_calls += 1
        return result

    # =========================================================================
    # STAGE 4: ABSTRACT METHODS
    # =========================================================================

    @abstractmethod
    def _call_api(self, parts: List[ContentPart], system_instruction: str) -> str:
        """
        Make the actual API call. Must be implemented by subclasses.

        Raises:
            LLMError: If API call fails
        """
        ...

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name (e.g., 'gemini', 'openai')."""
        ...

    # =========================================================================
    # STAGE 5: COMMON IMPLEMENTATION
    # =========================================================================

    @property
    def model_name(self) -> str:
        """Return the model name."""
        return self._model_name

    @property
    def temperature(self) -> float:
        return self._temperature

    def _apply_rate_limit(self) -> None:
        """Wait until at least rate_limit_delay has passed since the last call."""
        if self._last_call_time is not None:
            elapsed = time.time() - self._last_call_time
            if elapsed < self._rate_limit_delay:
                time.sleep(self._rate_limit_delay - elapsed)

        self._last_call_time = time.time()

    # =========================================================================
    # STAGE 6: METRICS
    # =========================================================================

    @property
    def total_calls(self) -> int:
        """Total number of successful API calls."""
        return self._total_calls

    @property
    def failed_calls(self) -> int:
        """Number of failed API calls."""
        return self._failed_calls

    @property
    def success_rate(self) -> float:
        """Percentage of successful calls."""
        total = self._total_calls + self._failed_calls
        if total == 0:
            return 100.0
        return (self._total_calls / total) * 100
