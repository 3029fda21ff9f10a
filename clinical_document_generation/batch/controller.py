"""
Batch Controller - Single Entry Point for Batch Commands

Routes command objects to the upload model and the orchestrator:

    AddGroup / RemoveGroup / SetDocumentType / SetMetadata  → UploadBatch
    AddSession / RemoveSession / SetSessionDate             → UploadBatch
    AttachFiles / DetachFile                                → UploadBatch
    Run / Stop                                              → BatchOrchestrator

Usage:
    controller = BatchController(UploadBatch(), orchestrator)
    group_id = controller.dispatch(AddGroup(DocumentType.TREATMENT_PLAN))
    controller.dispatch(AttachFiles(group_id, (UploadedFile.from_path("plan.pdf"),)))
    summary = controller.dispatch(Run())
"""

from typing import Any, Callable, Dict, Type

from loguru import logger

from clinical_document_generation.batch.commands import (
    AddGroup,
    AddSession,
    AttachFiles,
    BatchCommand,
    DetachFile,
    RemoveGroup,
    RemoveSession,
    Run,
    SetDocumentType,
    SetMetadata,
    SetSessionDate,
    Stop,
)
from clinical_document_generation.batch.orchestrator import BatchOrchestrator
from clinical_document_generation.batch.progress import compute_progress
from clinical_document_generation.batch.upload_model import UploadBatch
from clinical_document_generation.core.exceptions import BatchStateError
from clinical_document_generation.core.models import BatchProgress, BatchRunSummary


class BatchController:
    """
    Applies batch commands.

    dispatch() returns the new id for AddGroup / AddSession, the
    BatchRunSummary for Run, and None otherwise.
    """

    def __init__(self, batch: UploadBatch, orchestrator: BatchOrchestrator):
        self._batch = batch
        self._orchestrator = orchestrator
        self._handlers: Dict[Type, Callable[[Any], Any]] = {
            AddGroup: self._add_group,
            RemoveGroup: self._remove_group,
            SetDocumentType: self._set_document_type,
            AddSession: self._add_session,
            RemoveSession: self._remove_session,
            SetSessionDate: self._set_session_date,
            AttachFiles: self._attach_files,
            DetachFile: self._detach_file,
            SetMetadata: self._set_metadata,
            Run: self._run,
            Stop: self._stop,
        }

    @property
    def batch(self) -> UploadBatch:
        return self._batch

    @property
    def progress(self) -> BatchProgress:
        """Progress recomputed from current state."""
        return compute_progress(self._batch.groups)

    def dispatch(self, command: BatchCommand) -> Any:
        """
        Apply one command.

        Raises:
            BatchStateError: Unknown command type, or a command the batch
                cannot accept in its current state
            GroupNotFoundError: Command names an unknown group or session
        """
        handler = self._handlers.get(type(command))
        if handler is None:
            raise BatchStateError(
                f"Unknown batch command: {type(command).__name__}",
                context={"command": repr(command)},
            )

        logger.debug(f"Dispatching {type(command).__name__}")
        return handler(command)

    # =========================================================================
    # HANDLERS
    # =========================================================================

    def _add_group(self, command: AddGroup) -> str:
        return self._batch.add_group(command.document_type)

    def _remove_group(self, command: RemoveGroup) -> None:
        self._batch.remove_group(command.group_id)

    def _set_document_type(self, command: SetDocumentType) -> None:
        self._batch.set_group_document_type(command.group_id, command.document_type)

    def _add_session(self, command: AddSession) -> str:
        return self._batch.add_session(command.group_id, command.date_of_service)

    def _remove_session(self, command: RemoveSession) -> None:
        self._batch.remove_session(command.group_id, command.session_id)

    def _set_session_date(self, command: SetSessionDate) -> None:
        self._batch.set_session_date(command.group_id, command.session_id, command.date_of_service)

    def _attach_files(self, command: AttachFiles) -> None:
        self._batch.attach_files(
            command.group_id, list(command.files), session_id=command.session_id
        )

    def _detach_file(self, command: DetachFile) -> None:
        self._batch.detach_file(command.group_id, command.file_id, session_id=command.session_id)

    def _set_metadata(self, command: SetMetadata) -> None:
        self._batch.set_group_metadata(
            command.group_id,
            client_id_hint=command.client_id_hint,
            date_of_service_hint=command.date_of_service_hint,
        )

    def _run(self, command: Run) -> BatchRunSummary:
        return self._orchestrator.run(self._batch)

    def _stop(self, command: Stop) -> None:
        self._orchestrator.request_stop()
