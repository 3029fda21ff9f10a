"""
Domain Models for Clinical Document Generation

This module defines the core data structures used throughout the batch
document pipeline. Models are dataclasses designed for:
    1. Type safety and IDE support
    2. Serialization to/from JSON
    3. Clear domain semantics

Model Hierarchy:
    UploadedFile       → One file captured from the picker (base64 payload)
    Session            → One clinical encounter's files (session notes only)
    ClientGroup        → One patient/document-type unit of batch work
    GenerationMetadata → Optional hints passed through to generation
    PatientIdentity    → Best-effort identity parsed from generated text
    Patient / Report   → Rows of the patient/report store
    PersistenceOutcome → What the persistence adapter managed to do
    BatchProgress      → Display aggregates (see batch/progress.py)
    BatchRunSummary    → Outcome of one orchestrator run

Usage:
    from clinical_document_generation.core.models import ClientGroup, UploadedFile

    group = ClientGroup(document_type=DocumentType.INTAKE_SUMMARY)
    group.files.append(UploadedFile.from_path("intake.pdf"))
"""

import base64
import mimetypes
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from clinical_document_generation.core.constants import FILE_EXTENSION_MIME_OVERRIDES
from clinical_document_generation.core.enums import DocumentType, UnitStatus


def new_id() -> str:
    """Opaque unique identifier (never reused)."""
    return uuid.uuid4().hex


# =============================================================================
# STAGE 1: UPLOADED FILE MODEL
# =============================================================================
# Held in memory only. Consumed once by the generation adapter; only the
# generated text survives.


@dataclass(frozen=True)
class UploadedFile:
    """
    A file payload captured for generation.

    Attributes:
        file_name: Original file name
        mime_type: MIME type sent to the LLM with the data
        base64_data: Binary content, base64-encoded for transport
        file_id: Identity used to detach the file from a group or session
    """

    file_name: str
    mime_type: str
    base64_data: str
    file_id: str = field(default_factory=new_id)

    @property
    def raw_bytes(self) -> bytes:
        """Decoded binary content."""
        return base64.b64decode(self.base64_data)

    @classmethod
    def from_bytes(
        cls, file_name: str, data: bytes, mime_type: Optional[str] = None
    ) -> "UploadedFile":
        """Create from raw bytes, guessing the MIME type from the name if needed."""
        if not mime_type:
            suffix = Path(file_name).suffix.lower()
            guessed, _ = mimetypes.guess_type(file_name)
            mime_type = (
                FILE_EXTENSION_MIME_OVERRIDES.get(suffix) or guessed or "application/octet-stream"
            )
        return cls(
            file_name=file_name,
            mime_type=mime_type,
            base64_data=base64.b64encode(data).decode("ascii"),
        )

    @classmethod
    def from_path(cls, path: str) -> "UploadedFile":
        """Read a file from disk."""
        file_path = Path(path)
        return cls.from_bytes(file_path.name, file_path.read_bytes())


# =============================================================================
# STAGE 2: SESSION MODEL
# =============================================================================


@dataclass
class Session:
    """
    One clinical encounter's worth of documents inside a session-note group.

    A session contributes to batch totals only when it has files; empty
    sessions are skipped by the orchestrator and the progress projection.
    """

    id: str = field(default_factory=new_id)
    date_of_service: str = ""
    files: List[UploadedFile] = field(default_factory=list)
    status: UnitStatus = UnitStatus.QUEUED
    result_patient_name: Optional[str] = None
    last_error: Optional[str] = None

    @property
    def has_files(self) -> bool:
        return len(self.files) > 0


# =============================================================================
# STAGE 3: CLIENT GROUP MODEL
# =============================================================================


@dataclass
class ClientGroup:
    """
    One logical unit of batch work for a single patient/document type.

    What it does:
        Holds the uploads and metadata for one patient and one document
        type, plus the status the orchestrator reports back.

    Invariant:
        SESSION_NOTE groups keep ``files`` empty (files live on sessions);
        every other type keeps ``sessions`` empty. The upload model
        enforces this whenever the document type changes.

    Attributes:
        id: Opaque unique identifier
        document_type: Which prompt variant is used
        files: Uploaded files (non-session-note types)
        client_id_hint: Free-text client id passed through to generation
        date_of_service_hint: Free-text date passed through to generation
        sessions: Per-encounter file sets (session-note type)
        status: Group status (aggregated from sessions for session notes)
        result_patient_name: Patient resolved on completion
        last_error: Message recorded on failure
    """

    document_type: DocumentType = DocumentType.INTAKE_SUMMARY
    id: str = field(default_factory=new_id)
    files: List[UploadedFile] = field(default_factory=list)
    client_id_hint: str = ""
    date_of_service_hint: str = ""
    sessions: List[Session] = field(default_factory=list)
    status: UnitStatus = UnitStatus.QUEUED
    result_patient_name: Optional[str] = None
    last_error: Optional[str] = None

    @property
    def is_session_note(self) -> bool:
        return self.document_type == DocumentType.SESSION_NOTE

    @property
    def eligible_sessions(self) -> List[Session]:
        """Sessions that have files (only these are ever processed)."""
        return [session for session in self.sessions if session.has_files]

    @property
    def has_work(self) -> bool:
        """True if the orchestrator would find anything to process."""
        if self.is_session_note:
            return len(self.eligible_sessions) > 0
        return len(self.files) > 0

    def find_session(self, session_id: str) -> Optional[Session]:
        for session in self.sessions:
            if session.id == session_id:
                return session
        return None


# =============================================================================
# STAGE 4: GENERATION METADATA
# =============================================================================


@dataclass(frozen=True)
class GenerationMetadata:
    """Optional hints forwarded to the generation prompt."""

    client_id: Optional[str] = None
    date_of_service: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not (self.client_id or self.date_of_service)


# =============================================================================
# STAGE 5: PATIENT / REPORT MODELS
# =============================================================================


@dataclass(frozen=True)
class PatientIdentity:
    """
    Best-effort patient identity extracted from generated text.

    The generator's output format is not guaranteed, so ``name`` falls back
    to "Unknown Patient" and the optional fields to None.
    """

    name: str
    client_id: Optional[str] = None
    date_of_birth: Optional[str] = None


@dataclass
class Patient:
    """A row of the patient table."""

    first_name: str
    last_name: str
    initials: str
    id: str = field(default_factory=new_id)
    dob: Optional[str] = None
    client_id: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "initials": self.initials,
            "dob": self.dob,
            "client_id": self.client_id,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Patient":
        """Create from dictionary (JSON deserialization)."""
        return cls(
            id=data["id"],
            first_name=data.get("first_name", ""),
            last_name=data.get("last_name", ""),
            initials=data.get("initials", ""),
            dob=data.get("dob"),
            client_id=data.get("client_id"),
            created_at=_parse_timestamp(data.get("created_at")),
            updated_at=_parse_timestamp(data.get("updated_at")),
        )


@dataclass
class Report:
    """A generated document stored against a patient."""

    patient_id: str
    document_type: DocumentType
    content: str
    is_urgent: bool = False
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "patient_id": self.patient_id,
            "document_type": self.document_type.value,
            "content": self.content,
            "is_urgent": self.is_urgent,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Report":
        """Create from dictionary (JSON deserialization)."""
        return cls(
            id=data["id"],
            patient_id=data["patient_id"],
            document_type=DocumentType.from_string(data.get("document_type", "summary")),
            content=data.get("content", ""),
            is_urgent=bool(data.get("is_urgent", False)),
            created_at=_parse_timestamp(data.get("created_at")),
        )


@dataclass(frozen=True)
class PersistenceOutcome:
    """
    Result of the persistence adapter.

    ``patient_name`` is always set, even when ``saved`` is False: the
    generated document is still usable by the caller.
    """

    patient_name: str
    saved: bool
    patient: Optional[Patient] = None
    report: Optional[Report] = None
    error: Optional[str] = None


# =============================================================================
# STAGE 6: BATCH AGGREGATES
# =============================================================================


@dataclass(frozen=True)
class BatchProgress:
    """Read-only display aggregates computed from group/session state."""

    total_report_units: int = 0
    queued_units: int = 0
    completed_groups: int = 0
    errored_groups: int = 0
    total_eligible_groups: int = 0
    percent_complete: float = 0.0


@dataclass
class BatchRunSummary:
    """Outcome of one orchestrator run."""

    processed_units: int = 0
    succeeded_units: int = 0
    failed_units: int = 0
    groups_with_errors: int = 0
    stopped_early: bool = False

    @property
    def message(self) -> str:
        """User-facing completion message."""
        text = (
            f"Batch finished. Success: {self.succeeded_units}. "
            f"Failed: {self.failed_units}."
        )
        if self.stopped_early:
            text = f"Batch stopped. Success: {self.succeeded_units}. Failed: {self.failed_units}."
        if self.groups_with_errors:
            text += f" {self.groups_with_errors} group(s) had errors."
        return text


def _parse_timestamp(value: Optional[str]) -> datetime:
    if not value:
        return datetime.now()
    return datetime.fromisoformat(value)
