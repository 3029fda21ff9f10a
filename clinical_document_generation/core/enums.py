"""
Enumerations for Clinical Document Generation

This module defines the enumeration types used throughout the batch
document pipeline. Enums provide:
    1. Type safety for categorical values
    2. IDE autocomplete support
    3. Clear domain semantics

Enumeration Categories:
    DocumentType → Kinds of clinical artifacts the pipeline can produce
    UnitStatus   → Lifecycle state of a group or session in a batch run
    UnitEvent    → Events that drive the per-unit state machine
"""

from enum import Enum


# =============================================================================
# STAGE 1: DOCUMENT TYPE ENUMERATION
# =============================================================================
# Each document type selects its own prompt variant and decides whether a
# group holds files directly or a list of sessions.


class DocumentType(str, Enum):
    """
    Types of clinical documents that can be generated.

    What it does:
        Categorizes generated documentation by purpose, selecting the
        prompt variant used for generation and the shape of the upload
        group (flat files vs. per-session file sets).

    When to use:
        - When adding a group to a batch
        - When building the generation prompt
        - When labelling a stored report

    Members:
        INTAKE_SUMMARY → Clinical synthesis of raw intake material
        TREATMENT_PLAN → Multi-modal treatment plan
        SESSION_NOTE   → DARP note, one per clinical encounter (session)
    """

    INTAKE_SUMMARY = "intake-summary"
    """Exhaustive clinical synthesis report of the intake material."""

    TREATMENT_PLAN = "treatment-plan"
    """Treatment plan built from the intake and any prior documentation."""

    SESSION_NOTE = "session-note"
    """DARP session note (Data, Assessment, Response, Plan) for one encounter."""

    @property
    def label(self) -> str:
        """Human-readable label used in file names and summaries."""
        return _DOCUMENT_TYPE_LABELS[self]

    @classmethod
    def get_all_types(cls) -> list:
        """Return all document type values as a list."""
        return [document_type.value for document_type in cls]

    @classmethod
    def from_string(cls, value: str) -> "DocumentType":
        """
        Convert string to DocumentType with case-insensitive matching.

        Accepts the canonical values, the member names, and the short
        aliases stored by older report rows ("summary", "treatment", "darp").

        Args:
            value: String representation of the document type

        Returns:
            Matching DocumentType enum member

        Raises:
            ValueError: If string doesn't match any document type
        """
        normalized = value.strip().lower().replace("_", "-").replace(" ", "-")
        if normalized in _DOCUMENT_TYPE_ALIASES:
            return _DOCUMENT_TYPE_ALIASES[normalized]
        for document_type in cls:
            if document_type.value == normalized:
                return document_type
        raise ValueError(
            f"Unknown document type: '{value}'. Valid types: {cls.get_all_types()}"
        )


_DOCUMENT_TYPE_LABELS = {
    DocumentType.INTAKE_SUMMARY: "CaseSummary",
    DocumentType.TREATMENT_PLAN: "TreatmentPlan",
    DocumentType.SESSION_NOTE: "SessionNote",
}

_DOCUMENT_TYPE_ALIASES = {
    "summary": DocumentType.INTAKE_SUMMARY,
    "treatment": DocumentType.TREATMENT_PLAN,
    "darp": DocumentType.SESSION_NOTE,
}


# =============================================================================
# STAGE 2: UNIT STATUS ENUMERATION
# =============================================================================
# Shared by groups and sessions. See batch/state_machine.py for transitions.


class UnitStatus(str, Enum):
    """
    Lifecycle status of a unit of work (group or session).

    Transitions:
        QUEUED → PROCESSING → COMPLETED
                            → ERROR → (next run) QUEUED
    """

    QUEUED = "queued"
    """Waiting to be processed (or skipped because it has no files)."""

    PROCESSING = "processing"
    """Currently being generated and persisted."""

    COMPLETED = "completed"
    """Generated successfully. Terminal; skipped by later runs."""

    ERROR = "error"
    """Generation failed. Terminal for the run; requeued by the next run."""

    @property
    def is_terminal(self) -> bool:
        """True for COMPLETED and ERROR."""
        return self in (UnitStatus.COMPLETED, UnitStatus.ERROR)


# =============================================================================
# STAGE 3: UNIT EVENT ENUMERATION
# =============================================================================


class UnitEvent(str, Enum):
    """Events accepted by the per-unit state transition function."""

    START = "start"
    SUCCEED = "succeed"
    FAIL = "fail"
    REQUEUE = "requeue"
