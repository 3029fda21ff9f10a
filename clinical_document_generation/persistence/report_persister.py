"""
Report Persister - Patient Resolution & Persistence Adapter

Turns generated text into a stored, patient-linked report:

    STAGE 1: Extract identity (PATIENT_NAME / CLIENT_ID / DOB lines)
    STAGE 2: Resolve patient by full name; backfill or create
    STAGE 3: Insert the report, flagged urgent when the marker is present

Persistence is best-effort: any store failure is logged and swallowed,
and the resolved name is still returned so the unit of work can
complete with its generated text.
"""

from typing import Optional

from loguru import logger

from clinical_document_generation.core.enums import DocumentType
from clinical_document_generation.core.models import Patient, PersistenceOutcome
from clinical_document_generation.parsing.report_parser import (
    extract_patient_identity,
    is_urgent,
    split_full_name,
)
from clinical_document_generation.repository.patient_store import PatientReportStore


class ReportPersister:
    """
    Persistence adapter between the orchestrator and the patient/report store.

    Example:
        >>> persister = ReportPersister(InMemoryPatientReportStore())
        >>> outcome = persister.persist("PATIENT_NAME: Jane Doe\\n...", DocumentType.INTAKE_SUMMARY)
        >>> outcome.patient_name, outcome.saved
        ('Jane Doe', True)
    """

    def __init__(self, store: PatientReportStore):
        self._store = store
        self._saved_count = 0
        self._failed_count = 0

    @property
    def store(self) -> PatientReportStore:
        return self._store

    def persist(
        self,
        text: str,
        document_type: DocumentType,
        client_id_hint: Optional[str] = None,
    ) -> PersistenceOutcome:
        """
        Store generated text against the patient it names.

        Args:
            text: Generated document
            document_type: Stored on the report row
            client_id_hint: Used when the text has no CLIENT_ID line

        Returns:
            PersistenceOutcome; ``saved`` is False if the store failed
        """
        identity = extract_patient_identity(text)
        client_id = identity.client_id or (client_id_hint or "").strip() or None

        try:
            patient = self._resolve_patient(identity.name, identity.date_of_birth, client_id)
            report = self._store.insert_report(
                patient.id, document_type, text, is_urgent(text)
            )
        except Exception as e:
            self._failed_count += 1
            logger.exception(
                f"Failed to save {document_type.value} report for '{identity.name}' "
                f"(continuing batch): {e}"
            )
            return PersistenceOutcome(patient_name=identity.name, saved=False, error=str(e))

        self._saved_count += 1
        logger.info(
            f"Saved {document_type.value} report {report.id} | Patient: {patient.full_name}"
            + (" | URGENT" if report.is_urgent else "")
        )
        return PersistenceOutcome(
            patient_name=identity.name, saved=True, patient=patient, report=report
        )

    def _resolve_patient(
        self, name: str, dob: Optional[str], client_id: Optional[str]
    ) -> Patient:
        existing = self._store.find_patient_by_name(name)
        if existing is not None:
            if (dob and not existing.dob) or (client_id and not existing.client_id):
                return self._store.backfill_patient(existing.id, dob=dob, client_id=client_id)
            return existing

        first_name, last_name = split_full_name(name)
        return self._store.create_patient(first_name, last_name, dob=dob, client_id=client_id)

    # =========================================================================
    # STATISTICS
    # =========================================================================

    @property
    def saved_count(self) -> int:
        return self._saved_count

    @property
    def failed_count(self) -> int:
        return self._failed_count
