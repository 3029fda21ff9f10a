"""
Batch Orchestrator

Drives every queued unit of work through generation and persistence,
strictly in list order and one call at a time.

Pipeline Position:
    UploadBatch → [BatchOrchestrator] → DocumentGenerator → ReportPersister → ReportVault
                   ^^^^^^^^^^^^^^^^^
                   You are here

Run Semantics:
    1. Units left in ERROR by an earlier run are requeued; COMPLETED
       units are skipped, so re-running never regenerates a document.
    2. Units with no files are skipped and stay QUEUED, with no message.
    3. Generation failure → unit ERROR with the error message. The run
       continues with the next unit.
    4. Persistence failure never fails a unit (see ReportPersister).
    5. Session-note groups are PROCESSING while their sessions run and
       end COMPLETED only if every session with files completed.
    6. request_stop() is honoured only before a new group or session;
       the unit in flight always finishes.
    7. on_batch_complete fires exactly once per run, after the running
       flag is cleared. Callback errors are logged, never raised.
"""

import threading
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from loguru import logger

from clinical_document_generation.archive.vault import ReportVault
from clinical_document_generation.batch.state_machine import transition
from clinical_document_generation.batch.upload_model import UploadBatch
from clinical_document_generation.core.constants import GENERIC_UNIT_ERROR
from clinical_document_generation.core.enums import DocumentType, UnitEvent, UnitStatus
from clinical_document_generation.core.exceptions import BatchStateError
from clinical_document_generation.core.models import (
    BatchRunSummary,
    ClientGroup,
    GenerationMetadata,
    Session,
    UploadedFile,
)
from clinical_document_generation.generation.document_generator import DocumentGenerator
from clinical_document_generation.persistence.report_persister import ReportPersister


UnitUpdateCallback = Callable[[ClientGroup, Optional[Session]], None]


@dataclass(frozen=True)
class UnitResult:
    """Outcome of generating and persisting one unit."""

    patient_name: Optional[str] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


def _error_message(error: Exception) -> str:
    message = getattr(error, "message", None) or str(error)
    return message or GENERIC_UNIT_ERROR


class BatchOrchestrator:
    """
    Sequential batch runner with cooperative "stop after current" cancel.

    Example:
        >>> orchestrator = BatchOrchestrator(generator, persister,
        ...                                  on_batch_complete=refresh_patients)
        >>> summary = orchestrator.run(batch)
        >>> summary.message
        'Batch finished. Success: 3. Failed: 0.'
    """

    def __init__(
        self,
        generator: DocumentGenerator,
        persister: ReportPersister,
        vault: Optional[ReportVault] = None,
        on_batch_complete: Optional[Callable[[], None]] = None,
        on_unit_update: Optional[UnitUpdateCallback] = None,
    ):
        """
        Args:
            generator: Generation adapter
            persister: Persistence adapter
            vault: Optional local archive for completed documents
            on_batch_complete: Zero-argument callback, once per run
            on_unit_update: Called with (group, session) after every
                transition; session is None for group-level transitions
        """
        self._generator = generator
        self._persister = persister
        self._vault = vault
        self._on_batch_complete = on_batch_complete
        self._on_unit_update = on_unit_update
        self._stop_event = threading.Event()
        self._running = False

    # =========================================================================
    # STAGE 1: CONTROL
    # =========================================================================

    def request_stop(self) -> None:
        """Ask the run to stop before the next group or session."""
        if self._running:
            logger.info("Stop requested; finishing the current unit")
        self._stop_event.set()

    @property
    def stop_requested(self) -> bool:
        return self._stop_event.is_set()

    @property
    def is_running(self) -> bool:
        return self._running

    # =========================================================================
    # STAGE 2: RUN
    # =========================================================================

    def run(self, batch: UploadBatch) -> BatchRunSummary:
        """
        Process every queued unit in the batch.

        Returns:
            BatchRunSummary for this run

        Raises:
            BatchStateError: If the batch is already running
        """
        if batch.is_running:
            raise BatchStateError("Batch is already running")

        batch.is_running = True
        self._running = True
        self._stop_event.clear()
        summary = BatchRunSummary()

        logger.info(f"Batch processing started | Groups: {len(batch.groups)}")

        try:
            self._requeue_errors(batch)

            for group_id in [group.id for group in batch.groups]:
                group = batch.get_group(group_id)
                if not self._should_process_group(group):
                    continue

                if self.stop_requested:
                    summary.stopped_early = True
                    logger.info(f"Stopping before group {group_id}")
                    break

                if group.is_session_note:
                    self._run_session_group(batch, group_id, summary)
                else:
                    self._run_group(batch, group_id, summary)

            summary.groups_with_errors = sum(
                1 for group in batch.groups if group.status == UnitStatus.ERROR
            )
            logger.info(summary.message)
            return summary

        finally:
            batch.is_running = False
            self._running = False
            self._notify_batch_complete()

    # =========================================================================
    # STAGE 3: UNIT PROCESSING
    # =========================================================================

    @staticmethod
    def _should_process_group(group: ClientGroup) -> bool:
        if group.status == UnitStatus.COMPLETED:
            logger.debug(f"Skipping completed group {group.id}")
            return False
        if not group.has_work:
            return False
        if group.status != UnitStatus.QUEUED:
            logger.warning(f"Skipping group {group.id} in unexpected state {group.status.value}")
            return False
        return True

    def _run_group(self, batch: UploadBatch, group_id: str, summary: BatchRunSummary) -> None:
        group = self._transition_group(batch, group_id, UnitEvent.START)
        metadata = GenerationMetadata(
            client_id=group.client_id_hint or None,
            date_of_service=group.date_of_service_hint or None,
        )

        result = self._process_unit(
            group.files, group.document_type, metadata, group.client_id_hint
        )
        self._record(summary, result)

        if result.succeeded:
            self._transition_group(
                batch, group_id, UnitEvent.SUCCEED, patient_name=result.patient_name
            )
        else:
            self._transition_group(batch, group_id, UnitEvent.FAIL, error=result.error)

    def _run_session_group(
        self, batch: UploadBatch, group_id: str, summary: BatchRunSummary
    ) -> None:
        group = self._transition_group(batch, group_id, UnitEvent.START)
        failed_sessions = 0
        stopped = False
        patient_name: Optional[str] = None

        for session_id in [session.id for session in group.sessions]:
            group = batch.get_group(group_id)
            session = group.find_session(session_id)
            if session is None or not session.has_files:
                continue
            if session.status == UnitStatus.COMPLETED:
                patient_name = patient_name or session.result_patient_name
                continue
            if session.status != UnitStatus.QUEUED:
                continue

            if self.stop_requested:
                stopped = True
                summary.stopped_early = True
                logger.info(f"Stopping before session {session_id} of group {group_id}")
                break

            session = self._transition_session(batch, group_id, session_id, UnitEvent.START)
            metadata = GenerationMetadata(
                client_id=group.client_id_hint or None,
                date_of_service=session.date_of_service or group.date_of_service_hint or None,
            )

            result = self._process_unit(
                session.files, DocumentType.SESSION_NOTE, metadata, group.client_id_hint
            )
            self._record(summary, result)

            if result.succeeded:
                patient_name = patient_name or result.patient_name
                self._transition_session(
                    batch,
                    group_id,
                    session_id,
                    UnitEvent.SUCCEED,
                    patient_name=result.patient_name,
                )
            else:
                failed_sessions += 1
                self._transition_session(
                    batch, group_id, session_id, UnitEvent.FAIL, error=result.error
                )

        # Aggregate: completed only if every session with files completed
        group = batch.get_group(group_id)
        incomplete = [s for s in group.eligible_sessions if s.status != UnitStatus.COMPLETED]

        if not incomplete:
            self._transition_group(batch, group_id, UnitEvent.SUCCEED, patient_name=patient_name)
            return

        reasons: List[str] = []
        if failed_sessions:
            reasons.append(f"{failed_sessions} session(s) failed")
        if stopped:
            reasons.append("stopped before all sessions were processed")
        if not reasons:
            reasons.append(f"{len(incomplete)} session(s) not completed")
        self._transition_group(batch, group_id, UnitEvent.FAIL, error="; ".join(reasons))

    def _process_unit(
        self,
        files: Sequence[UploadedFile],
        document_type: DocumentType,
        metadata: GenerationMetadata,
        client_id_hint: str,
    ) -> UnitResult:
        """Generate, persist and archive one unit. Never raises."""
        try:
            text = self._generator.generate(list(files), document_type, metadata)
        except Exception as e:
            logger.error(f"Generation failed for {document_type.value}: {e}")
            return UnitResult(error=_error_message(e))

        outcome = self._persister.persist(text, document_type, client_id_hint or None)

        if self._vault is not None:
            try:
                self._vault.archive(
                    text,
                    document_type,
                    source_file_name=files[0].file_name if files else None,
                    report_id=outcome.report.id if outcome.report else None,
                )
            except Exception as e:
                logger.exception(f"Vault archive failed (continuing batch): {e}")

        return UnitResult(patient_name=outcome.patient_name)

    @staticmethod
    def _record(summary: BatchRunSummary, result: UnitResult) -> None:
        summary.processed_units += 1
        if result.succeeded:
            summary.succeeded_units += 1
        else:
            summary.failed_units += 1

    # =========================================================================
    # STAGE 4: STATE TRANSITIONS
    # =========================================================================

    def _requeue_errors(self, batch: UploadBatch) -> None:
        for group in list(batch.groups):
            for session in group.sessions:
                if session.status == UnitStatus.ERROR:
                    self._transition_session(batch, group.id, session.id, UnitEvent.REQUEUE)
            if group.status == UnitStatus.ERROR:
                self._transition_group(batch, group.id, UnitEvent.REQUEUE)

    def _transition_group(
        self, batch: UploadBatch, group_id: str, event: UnitEvent, **kwargs
    ) -> ClientGroup:
        updated = transition(batch.get_group(group_id), event, **kwargs)
        batch.replace_group(updated)
        logger.debug(f"Group {group_id} → {updated.status.value}")
        self._notify_unit_update(updated, None)
        return updated

    def _transition_session(
        self, batch: UploadBatch, group_id: str, session_id: str, event: UnitEvent, **kwargs
    ) -> Session:
        updated = transition(batch.get_session(group_id, session_id), event, **kwargs)
        batch.replace_session(group_id, updated)
        logger.debug(f"Session {session_id} (group {group_id}) → {updated.status.value}")
        self._notify_unit_update(batch.get_group(group_id), updated)
        return updated

    def _notify_unit_update(self, group: ClientGroup, session: Optional[Session]) -> None:
        if self._on_unit_update is None:
            return
        try:
            self._on_unit_update(group, session)
        except Exception as e:
            logger.exception(f"Unit update callback failed: {e}")

    def _notify_batch_complete(self) -> None:
        if self._on_batch_complete is None:
            return
        try:
            self._on_batch_complete()
        except Exception as e:
            logger.exception(f"Batch complete callback failed: {e}")
