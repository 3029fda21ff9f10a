"""
Batch Commands

Every user action on a batch is a frozen command object applied through
BatchController.dispatch(), so the batch is only mutated from one place.
"""

from dataclasses import dataclass
from typing import Optional, Tuple, Union

from clinical_document_generation.core.enums import DocumentType
from clinical_document_generation.core.models import UploadedFile


@dataclass(frozen=True)
class AddGroup:
    document_type: DocumentType = DocumentType.INTAKE_SUMMARY


@dataclass(frozen=True)
class RemoveGroup:
    group_id: str


@dataclass(frozen=True)
class SetDocumentType:
    group_id: str
    document_type: DocumentType


@dataclass(frozen=True)
class AddSession:
    group_id: str
    date_of_service: str = ""


@dataclass(frozen=True)
class RemoveSession:
    group_id: str
    session_id: str


@dataclass(frozen=True)
class SetSessionDate:
    group_id: str
    session_id: str
    date_of_service: str


@dataclass(frozen=True)
class AttachFiles:
    """Attach to the group, or to ``session_id`` for session-note groups."""

    group_id: str
    files: Tuple[UploadedFile, ...]
    session_id: Optional[str] = None


@dataclass(frozen=True)
class DetachFile:
    group_id: str
    file_id: str
    session_id: Optional[str] = None


@dataclass(frozen=True)
class SetMetadata:
    """None leaves a hint unchanged."""

    group_id: str
    client_id_hint: Optional[str] = None
    date_of_service_hint: Optional[str] = None


@dataclass(frozen=True)
class Run:
    pass


@dataclass(frozen=True)
class Stop:
    pass


BatchCommand = Union[
    AddGroup,
    RemoveGroup,
    SetDocumentType,
    AddSession,
    RemoveSession,
    SetSessionDate,
    AttachFiles,
    DetachFile,
    SetMetadata,
    Run,
    Stop,
]
