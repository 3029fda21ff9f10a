"""
Domain Exceptions for Clinical Document Generation

This module defines all custom exceptions used throughout the batch
document pipeline. Well-defined exceptions enable:
    1. Clear error categorization for debugging
    2. Specific catch blocks for different failure modes
    3. Rich error context for troubleshooting

Exception Hierarchy:
    ClinicalDocumentError (base)
    ├── ConfigurationError        → Invalid configuration
    ├── GenerationError           → Document generation failures
    │   ├── PromptError
    │   └── LLMError
    │       ├── LLMRateLimitError
    │       └── LLMContentFilteredError
    ├── RepositoryError           → Patient/report store failures
    │   ├── StoreLoadError
    │   ├── StoreWriteError
    │   └── PatientNotFoundError
    ├── BatchError                → Batch model / orchestration misuse
    │   ├── BatchStateError
    │   ├── GroupNotFoundError
    │   └── InvalidTransitionError
    └── VaultError                → Local report archive failures

Usage:
    from clinical_document_generation.core.exceptions import LLMRateLimitError

    try:
        text = generator.generate(files, DocumentType.INTAKE_SUMMARY)
    except LLMRateLimitError as e:
        logger.error(f"Quota exhausted for {e.provider}")
"""

from typing import Optional


# =============================================================================
# STAGE 1: BASE EXCEPTION
# =============================================================================
# All domain exceptions inherit from this base class.


class ClinicalDocumentError(Exception):
    """
    Base exception for all clinical document generation errors.

    What it does:
        Provides a common base class for all domain-specific exceptions,
        enabling catch-all handling while preserving specific error types.

    Attributes:
        message: Human-readable error description
        context: Dictionary of additional context for debugging
    """

    def __init__(self, message: str, context: Optional[dict] = None):
        """
        Initialize with message and optional context.

        Args:
            message: Human-readable error description
            context: Additional debugging context (ids, stage, inputs)
        """
        self.message = message
        self.context = context or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format message with context for display."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} [{context_str}]"
        return self.message


# =============================================================================
# STAGE 2: CONFIGURATION ERRORS
# =============================================================================


class ConfigurationError(ClinicalDocumentError):
    """
    Error in pipeline configuration.

    When raised:
        - Missing API key for the selected provider
        - Unknown LLM provider
        - Out-of-range retry, backoff or temperature settings
    """

    pass


# =============================================================================
# STAGE 3: GENERATION ERRORS
# =============================================================================
# Errors related to producing document text from the LLM backend.


class GenerationError(ClinicalDocumentError):
    """
    Base exception for document generation errors.

    Raised directly when the service was reachable but returned no
    usable content.
    """

    pass


class PromptError(GenerationError):
    """
    Error constructing the generation request.

    When raised:
        - No content supplied (blank text or empty file list)
    """

    pass


class LLMError(GenerationError):
    """
    Error from LLM API call.

    What it does:
        Wraps errors from the underlying LLM API (Gemini, OpenAI)
        with the provider that produced them.

    Attributes:
        provider: The LLM provider (gemini, openai)
        original_error: The wrapped original exception
    """

    def __init__(self, message: str, provider: str, original_error: Optional[Exception] = None):
        self.provider = provider
        self.original_error = original_error
        super().__init__(
            message,
            context={
                "provider": provider,
                "original_error": str(original_error) if original_error else None,
            },
        )


class LLMRateLimitError(LLMError):
    """
    LLM API rate limit or quota exceeded.

    What it does:
        The only error the generation adapter retries. Once the retry
        budget is spent it propagates unchanged so callers can tell quota
        exhaustion apart from other failures.

    Attributes:
        retry_after: Seconds the provider asked us to wait (if known)
    """

    def __init__(
        self,
        provider: str,
        retry_after: Optional[float] = None,
        original_error: Optional[Exception] = None,
    ):
        self.retry_after = retry_after
        super().__init__(
            f"Rate limit exceeded for {provider}", provider=provider, original_error=original_error
        )
        self.context["retry_after"] = retry_after


class LLMContentFilteredError(LLMError):
    """LLM refused to answer because of its safety settings."""

    def __init__(self, provider: str, reason: Optional[str] = None):
        super().__init__(
            f"Content filtered by {provider} safety settings: {reason or 'unknown reason'}",
            provider=provider,
        )
        self.reason = reason


# =============================================================================
# STAGE 4: REPOSITORY ERRORS
# =============================================================================
# Errors related to the patient/report store.


class RepositoryError(ClinicalDocumentError):
    """
    Error accessing the patient/report store.

    The persistence adapter logs and swallows these; they never fail a
    unit of work.
    """

    pass


class StoreLoadError(RepositoryError):
    """
    Error loading a file-backed store.

    Attributes:
        file_path: Path to the store file
        reason: Why loading failed
    """

    def __init__(self, file_path: str, reason: str):
        self.file_path = file_path
        self.reason = reason
        super().__init__(
            f"Failed to load store from {file_path}: {reason}",
            context={"file_path": file_path, "reason": reason},
        )


class StoreWriteError(RepositoryError):
    """Error writing a patient or report row."""

    pass


class PatientNotFoundError(RepositoryError):
    """Referenced patient id does not exist in the store."""

    def __init__(self, patient_id: str):
        self.patient_id = patient_id
        super().__init__(f"Patient not found: {patient_id}", context={"patient_id": patient_id})


# =============================================================================
# STAGE 5: BATCH ERRORS
# =============================================================================
# Misuse of the upload model or the per-unit state machine.


class BatchError(ClinicalDocumentError):
    """Base exception for batch model and orchestration errors."""

    pass


class BatchStateError(BatchError):
    """
    Operation not allowed in the batch's current state.

    When raised:
        - Attaching group-level files to a session-note group
        - Attaching session files to a non-session-note group
        - Starting a run while another run is active
        - Dispatching an unknown command
    """

    pass


class GroupNotFoundError(BatchError):
    """Referenced group or session id does not exist in the batch."""

    def __init__(self, group_id: str, session_id: Optional[str] = None):
        self.group_id = group_id
        self.session_id = session_id
        target = f"session {session_id} in group {group_id}" if session_id else f"group {group_id}"
        super().__init__(
            f"Unknown {target}",
            context={"group_id": group_id, "session_id": session_id},
        )


class InvalidTransitionError(BatchError):
    """Event is not legal for the unit's current status."""

    def __init__(self, status: str, event: str):
        self.status = status
        self.event = event
        super().__init__(
            f"Cannot apply '{event}' to a unit in '{status}' state",
            context={"status": status, "event": event},
        )


# =============================================================================
# STAGE 6: VAULT ERRORS
# =============================================================================


class VaultError(ClinicalDocumentError):
    """Error writing the local report vault."""

    pass
