"""
OpenAI Client - OpenAI API Implementation

Concrete LLMClient for OpenAI chat completions. Images travel as
data-URL ``image_url`` parts, every other file type as a ``file`` part.
"""

from typing import Any, Dict, List

from loguru import logger

from clinical_document_generation.clients.llm_client import (
    BaseLLMClient,
    ContentPart,
    is_rate_limit_error,
)
from clinical_document_generation.core.exceptions import (
    LLMError,
    LLMRateLimitError,
    LLMContentFilteredError,
)
from clinical_document_generation.core.models import UploadedFile


class OpenAIClient(BaseLLMClient):
    """
    OpenAI API client for document generation.

    Example:
        >>> client = OpenAIClient(api_key="...", model_name="gpt-4o")
        >>> text = client.generate(["Patient reports..."], system_instruction)
    """

    def __init__(
        self,
        api_key: str,
        model_name: str = "gpt-4o",
        rate_limit_delay: float = 0.0,
        temperature: float = 0.2,
        max_tokens: int = 8192,
    ):
        super().__init__(
            api_key=api_key,
            model_name=model_name,
            rate_limit_delay=rate_limit_delay,
            temperature=temperature,
        )
        self._max_tokens = max_tokens

        self._client = None
        self._initialize_client()

        logger.info(f"OpenAIClient initialized | Model: {model_name}")

    def _initialize_client(self) -> None:
        """
        Initialize the OpenAI client.

        Lazy import to avoid requiring openai at module load.
        """
        try:
            from openai import OpenAI

            self._client = OpenAI(api_key=self._api_key)

        except ImportError:
            raise LLMError(
                "openai package not installed. Install with: pip install openai",
                provider="openai",
            )
        except Exception as e:
            raise LLMError(
                f"Failed to initialize OpenAI client: {e}", provider="openai", original_error=e
            )

    # =========================================================================
    # STAGE 2: API CALL IMPLEMENTATION
    # =========================================================================

    @staticmethod
    def _to_message_content(parts: List[ContentPart]) -> List[Dict[str, Any]]:
        content: List[Dict[str, Any]] = []
        for part in parts:
            if not isinstance(part, UploadedFile):
                content.append({"type": "text", "text": part})
                continue

            data_url = f"data:{part.mime_type};base64,{part.base64_data}"
            if part.mime_type.startswith("image/"):
                content.append({"type": "image_url", "image_url": {"url": data_url}})
            else:
                content.append(
                    {"type": "file", "file": {"filename": part.file_name, "file_data": data_url}}
                )
        return content

    def _call_api(self, parts: List[ContentPart], system_instruction: str) -> str:
        """
        Make the actual OpenAI API call.

        Raises:
            LLMRateLimitError: If rate limited
            LLMContentFilteredError: If content was filtered
            LLMError: Any other API failure
        """
        try:
            response = self._client.chat.completions.create(
                model=self._model_name,
                messages=[
                    {"role": "system", "content": system_instruction},
                    {"role": "user", "content": self._to_message_content(parts)},
                ],
                temperature=self._temperature,
                max_tokens=self._max_tokens,
            )

            if response.choices:
                choice = response.choices[0]
                if choice.finish_reason == "content_filter":
                    raise LLMContentFilteredError(provider="openai", reason="content_filter")
                if choice.message.content:
                    return choice.message.content

            return ""

        except LLMError:
            raise

        except Exception as e:
            if is_rate_limit_error(e):
                raise LLMRateLimitError(provider="openai", original_error=e)

            error_str = str(e).lower()
            if "content_filter" in error_str or "policy" in error_str:
                raise LLMContentFilteredError(provider="openai", reason=str(e))

            raise LLMError(f"OpenAI API error: {e}", provider="openai", original_error=e)

    # =========================================================================
    # STAGE 3: PROPERTIES
    # =========================================================================

    @property
    def provider_name(self) -> str:
        """Return provider name."""
        return "openai"
