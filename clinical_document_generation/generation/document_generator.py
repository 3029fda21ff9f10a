"""
Document Generator - Generation Adapter with Rate-Limit Backoff

This module turns one unit of work (text or uploaded files) into
document text via an injected LLM client.

Why Separate from Prompt Builder:
    1. Single Responsibility: this class owns the LLM interaction
    2. Dependency injection: LLM client and sleep function are injected
    3. Retry policy lives in one place (rate-limit signals only)
    4. Post-processing: code-fence stripping after generation

Pipeline Position:
    UploadBatch → Orchestrator → PromptBuilder → [DocumentGenerator] → Persister
                                                  ^^^^^^^^^^^^^^^^^^^
                                                  You are here
"""

import re
import time
from typing import Callable, Optional, Sequence, Union

from loguru import logger

from clinical_document_generation.clients.llm_client import (
    LLMClientProtocol,
    is_rate_limit_error,
)
from clinical_document_generation.core.constants import (
    DEFAULT_INITIAL_BACKOFF_SECONDS,
    DEFAULT_RATE_LIMIT_RETRIES,
    EMPTY_RESPONSE_ERROR,
)
from clinical_document_generation.core.enums import DocumentType
from clinical_document_generation.core.exceptions import (
    GenerationError,
    LLMRateLimitError,
    PromptError,
)
from clinical_document_generation.core.models import GenerationMetadata, UploadedFile
from clinical_document_generation.generation.prompt_builder import PromptBuilder


_LEADING_FENCE = re.compile(r"^```[a-z]*\n?", re.IGNORECASE)
_TRAILING_FENCE = re.compile(r"\n?```$")


def strip_code_fences(text: str) -> str:
    """Remove a leading ```lang fence and a trailing ``` fence, then trim."""
    stripped = text.strip()
    stripped = _LEADING_FENCE.sub("", stripped)
    stripped = _TRAILING_FENCE.sub("", stripped)
    return stripped.strip()


# =============================================================================
# STAGE 1: DOCUMENT GENERATOR CLASS
# =============================================================================


class DocumentGenerator:
    """
    Generates clinical documents with bounded exponential backoff.

    What it does:
        Builds the request with PromptBuilder, calls the LLM client and
        retries ONLY on rate-limit signals, doubling the delay each time
        (1.5s, 3s, 6s by default). Any other error propagates at once.

    Failure signals:
        LLMRateLimitError → quota exhausted after the retry budget
        GenerationError   → service returned no usable content
        LLMError / other  → transport or API failure (not retried)

    Example:
        >>> generator = DocumentGenerator(llm_client)
        >>> text = generator.generate(files, DocumentType.INTAKE_SUMMARY)
    """

    def __init__(
        self,
        llm_client: LLMClientProtocol,
        prompt_builder: Optional[PromptBuilder] = None,
        max_rate_limit_retries: int = DEFAULT_RATE_LIMIT_RETRIES,
        initial_backoff: float = DEFAULT_INITIAL_BACKOFF_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize the document generator.

        Args:
            llm_client: LLM client for text generation
            prompt_builder: Prompt builder (default instance if omitted)
            max_rate_limit_retries: Additional attempts after a rate-limit error
            initial_backoff: First backoff delay in seconds
            sleep: Sleep function (injected as a no-op in tests)
        """
        self._llm_client = llm_client
        self._prompt_builder = prompt_builder or PromptBuilder()
        self._max_rate_limit_retries = max_rate_limit_retries
        self._initial_backoff = initial_backoff
        self._sleep = sleep

        self._generation_count = 0
        self._rate_limit_retry_count = 0

        logger.debug(
            f"DocumentGenerator initialized | "
            f"Rate-limit retries: {max_rate_limit_retries} | "
            f"Initial backoff: {initial_backoff}s"
        )

    # =========================================================================
    # STAGE 2: MAIN GENERATION API
    # =========================================================================

    def generate(
        self,
        content: Union[str, Sequence[UploadedFile]],
        document_type: DocumentType,
        metadata: Optional[GenerationMetadata] = None,
    ) -> str:
        """
        Generate document text for one unit of work.

        Algorithm:
            1. Reject empty content
            2. Build system instruction and user parts
            3. Call LLM, backing off on rate-limit signals
            4. Strip code fences; reject an empty result

        Args:
            content: Plain text, or a non-empty sequence of uploaded files
            document_type: Selects the prompt variant
            metadata: Optional client id / date of service hints

        Returns:
            Generated document text

        Raises:
            PromptError: If content is blank or has no files
            GenerationError: If the service returned no usable content
            LLMRateLimitError: If rate limiting outlasted the retry budget
        """
        # =====================================================================
        # STAGE 2.1: VALIDATE INPUT
        # =====================================================================
        if isinstance(content, str):
            if not content.strip():
                raise PromptError("No text content supplied for generation")
        else:
            content = list(content)
            if not content:
                raise PromptError(
                    "No files supplied for generation",
                    context={"document_type": document_type.value},
                )

        # =====================================================================
        # STAGE 2.2: BUILD REQUEST
        # =====================================================================
        system_instruction = self._prompt_builder.get_system_instruction(document_type)
        parts = self._prompt_builder.build_parts(content, document_type, metadata)

        logger.info(
            f"Generating {document_type.value} | "
            f"Parts: {len(parts)} | "
            f"Model: {getattr(self._llm_client, 'model_name', 'unknown')}"
        )

        # =====================================================================
        # STAGE 2.3: CALL LLM WITH BACKOFF
        # =====================================================================
        raw_text = self._call_with_backoff(parts, system_instruction)

        # =====================================================================
        # STAGE 2.4: POST-PROCESS
        # =====================================================================
        text = strip_code_fences(raw_text or "")
        if not text:
            raise GenerationError(EMPTY_RESPONSE_ERROR)

        self._generation_count += 1
        logger.info(f"Generated {document_type.value} | Length: {len(text)} chars")
        return text

    # =========================================================================
    # STAGE 3: LLM INTERACTION
    # =========================================================================

    def _call_with_backoff(self, parts, system_instruction: str) -> str:
        """
        Call the LLM, retrying only on rate-limit signals.

        Total attempts are bounded by 1 + max_rate_limit_retries; the last
        rate-limit error is re-raised unchanged once the budget is spent.
        """
        delay = self._initial_backoff

        for attempt in range(self._max_rate_limit_retries + 1):
            try:
                return self._llm_client.generate(parts, system_instruction)

            except Exception as e:
                if not (isinstance(e, LLMRateLimitError) or is_rate_limit_error(e)):
                    raise

                retries_left = self._max_rate_limit_retries - attempt
                if retries_left == 0:
                    logger.error(
                        f"Rate limit persisted after {attempt + 1} attempt(s); giving up"
                    )
                    raise

                self._rate_limit_retry_count += 1
                logger.warning(
                    f"Quota exceeded. Retrying in {delay}s... ({retries_left} attempts left)"
                )
                self._sleep(delay)
                delay *= 2

        # Unreachable: the loop either returns or raises
        raise GenerationError("Retry loop exited without a result")

    # =========================================================================
    # STAGE 4: STATISTICS
    # =========================================================================

    @property
    def generation_count(self) -> int:
        """Number of documents generated."""
        return self._generation_count

    @property
    def rate_limit_retry_count(self) -> int:
        """Number of backoff sleeps taken across all calls."""
        return self._rate_limit_retry_count
