"""
Gemini Client - Google Gemini API Implementation

Concrete LLMClient for Google's Gemini API. File payloads are sent as
inline data parts next to the text instruction; the system instruction
is attached per call because it varies with the document type.
"""

from typing import Any, List

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


# Permissive thresholds for clinical content.
GEMINI_SAFETY_SETTINGS = [
    {"category": "HARM_CATEGORY_HARASSMENT", "threshold": "BLOCK_NONE"},
    {"category": "HARM_CATEGORY_HATE_SPEECH", "threshold": "BLOCK_NONE"},
    {"category": "HARM_CATEGORY_SEXUALLY_EXPLICIT", "threshold": "BLOCK_NONE"},
    {"category": "HARM_CATEGORY_DANGEROUS_CONTENT", "threshold": "BLOCK_NONE"},
]


class GeminiClient(BaseLLMClient):
    """
    Google Gemini API client for document generation.

    What it does:
        Sends text and inline file parts (PDF, images, audio) to a Gemini
        model via the google-generativeai library and translates SDK
        errors to domain exceptions.

    Example:
        >>> client = GeminiClient(api_key="...", model_name="gemini-1.5-pro")
        >>> text = client.generate(["Patient reports..."], system_instruction)
    """

    def __init__(
        self,
        api_key: str,
        model_name: str = "gemini-1.5-pro",
        rate_limit_delay: float = 0.0,
        temperature: float = 0.2,
    ):
        super().__init__(
            api_key=api_key,
            model_name=model_name,
            rate_limit_delay=rate_limit_delay,
            temperature=temperature,
        )

        self._genai = None
        self._initialize_client()

        logger.info(f"GeminiClient initialized | Model: {model_name}")

    def _initialize_client(self) -> None:
        """
        Configure the Gemini SDK.

        Lazy import to avoid requiring google-generativeai at module load.
        """
        try:
            import google.generativeai as genai

            genai.configure(api_key=self._api_key)
            self._genai = genai

        except ImportError:
            raise LLMError(
                "google-generativeai package not installed. "
                "Install with: pip install google-generativeai",
                provider="gemini",
            )
        except Exception as e:
            raise LLMError(
                f"Failed to initialize Gemini client: {e}", provider="gemini", original_error=e
            )

    # =========================================================================
    # STAGE 2: API CALL IMPLEMENTATION
    # =========================================================================

    @staticmethod
    def _to_gemini_parts(parts: List[ContentPart]) -> List[Any]:
        converted: List[Any] = []
        for part in parts:
            if isinstance(part, UploadedFile):
                converted.append({"mime_type": part.mime_type, "data": part.raw_bytes})
            else:
                converted.append(part)
        return converted

    def _call_api(self, parts: List[ContentPart], system_instruction: str) -> str:
        """
        Make the actual Gemini API call.

        Returns:
            Generated text, or "" when the model produced no text parts

        Raises:
            LLMRateLimitError: If rate limited / quota exhausted
            LLMContentFilteredError: If the prompt was blocked
            LLMError: Any other API failure
        """
        try:
            model = self._genai.GenerativeModel(
                model_name=self._model_name,
                system_instruction=system_instruction,
                safety_settings=GEMINI_SAFETY_SETTINGS,
                generation_config={"temperature": self._temperature},
            )
            response = model.generate_content(self._to_gemini_parts(parts))

            feedback = getattr(response, "prompt_feedback", None)
            if feedback is not None and feedback.block_reason:
                raise LLMContentFilteredError(provider="gemini", reason=str(feedback.block_reason))

            return self._extract_text(response)

        except LLMError:
            raise

        except Exception as e:
            if is_rate_limit_error(e):
                raise LLMRateLimitError(provider="gemini", original_error=e)

            error_str = str(e).lower()
            if "blocked" in error_str or "safety" in error_str:
                raise LLMContentFilteredError(provider="gemini", reason=str(e))

            raise LLMError(f"Gemini API error: {e}", provider="gemini", original_error=e)

    @staticmethod
    def _extract_text(response: Any) -> str:
        # response.text raises ValueError when the candidate has no text parts
        try:
            if response.text:
                return response.text
        except ValueError:
            pass

        for candidate in getattr(response, "candidates", None) or []:
            content = getattr(candidate, "content", None)
            if content and content.parts:
                texts = [getattr(part, "text", "") for part in content.parts]
                return "".join(text for text in texts if text)
        return ""

    # =========================================================================
    # STAGE 3: PROPERTIES
    # =========================================================================

    @property
    def provider_name(self) -> str:
        """Return provider name."""
        return "gemini"
