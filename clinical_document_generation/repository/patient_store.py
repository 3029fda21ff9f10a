"""
Patient/Report Store - Data Access Abstraction

This module provides the store the persistence adapter writes to,
abstracting whether rows live in memory or in a JSON file on disk.

Architecture:
    PatientReportStore (Protocol)
    ├── InMemoryPatientReportStore → Dict-backed, for tests and dry runs
    └── JsonFilePatientReportStore → One JSON document, rewritten atomically

Capabilities:
    find_patient_by_name → case-insensitive, whitespace-normalized match
    create_patient       → new row with derived initials
    backfill_patient     → fill ONLY empty dob / client_id
    insert_report        → report row linked to an existing patient
    list_patients / reports_for_patient → post-batch refresh

Usage:
    from clinical_document_generation.repository import JsonFilePatientReportStore

    store = JsonFilePatientReportStore("data/patient_store.json")
    patient = store.find_patient_by_name("jane  doe")
"""

import json
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Protocol, runtime_checkable

from loguru import logger

from clinical_document_generation.core.enums import DocumentType
from clinical_document_generation.core.exceptions import (
    PatientNotFoundError,
    StoreLoadError,
    StoreWriteError,
)
from clinical_document_generation.core.models import Patient, Report
from clinical_document_generation.parsing.report_parser import extract_initials, normalize_name


# =============================================================================
# STAGE 1: STORE PROTOCOL (INTERFACE)
# =============================================================================


@runtime_checkable
class PatientReportStore(Protocol):
    """
    Protocol defining the patient/report store capabilities.

    Every method may raise RepositoryError (or any transport error for
    remote implementations); the persistence adapter swallows them.
    """

    def find_patient_by_name(self, full_name: str) -> Optional[Patient]:
        """Return the first patient whose full name matches, ignoring case and spacing."""
        ...

    def create_patient(
        self,
        first_name: str,
        last_name: str,
        dob: Optional[str] = None,
        client_id: Optional[str] = None,
    ) -> Patient:
        ...

    def backfill_patient(
        self, patient_id: str, dob: Optional[str] = None, client_id: Optional[str] = None
    ) -> Patient:
        """Set dob / client_id only where the stored value is empty."""
        ...

    def insert_report(
        self, patient_id: str, document_type: DocumentType, content: str, is_urgent: bool
    ) -> Report:
        ...

    def list_patients(self) -> List[Patient]:
        ...

    def reports_for_patient(self, patient_id: str) -> List[Report]:
        ...


# =============================================================================
# STAGE 2: IN-MEMORY IMPLEMENTATION
# =============================================================================


class InMemoryPatientReportStore:
    """
    Patient/report store held in dictionaries.

    Insertion order is preserved, so name lookups return the oldest
    matching patient.

    Example:
        >>> store = InMemoryPatientReportStore()
        >>> patient = store.create_patient("Jane", "Doe")
        >>> store.find_patient_by_name("JANE DOE").id == patient.id
        True
    """

    def __init__(self):
        self._patients: Dict[str, Patient] = {}
        self._reports: Dict[str, Report] = {}

    # =========================================================================
    # STAGE 2.1: PATIENTS
    # =========================================================================

    def find_patient_by_name(self, full_name: str) -> Optional[Patient]:
        key = normalize_name(full_name)
        if not key:
            return None
        for patient in self._patients.values():
            if normalize_name(patient.full_name) == key:
                return patient
        return None

    def create_patient(
        self,
        first_name: str,
        last_name: str,
        dob: Optional[str] = None,
        client_id: Optional[str] = None,
    ) -> Patient:
        patient = Patient(
            first_name=first_name,
            last_name=last_name,
            initials=extract_initials(first_name, last_name),
            dob=dob or None,
            client_id=client_id or None,
        )
        self._patients[patient.id] = patient
        self._commit()
        logger.debug(f"Created patient {patient.id} ({patient.initials})")
        return patient

    def backfill_patient(
        self, patient_id: str, dob: Optional[str] = None, client_id: Optional[str] = None
    ) -> Patient:
        patient = self._require_patient(patient_id)

        if dob and not patient.dob:
            patient.dob = dob
        if client_id and not patient.client_id:
            patient.client_id = client_id
        patient.updated_at = datetime.now()

        self._commit()
        return patient

    def get_patient(self, patient_id: str) -> Patient:
        return self._require_patient(patient_id)

    def list_patients(self) -> List[Patient]:
        return list(self._patients.values())

    # =========================================================================
    # STAGE 2.2: REPORTS
    # =========================================================================

    def insert_report(
        self, patient_id: str, document_type: DocumentType, content: str, is_urgent: bool
    ) -> Report:
        self._require_patient(patient_id)
        report = Report(
            patient_id=patient_id,
            document_type=document_type,
            content=content,
            is_urgent=is_urgent,
        )
        self._reports[report.id] = report
        self._commit()
        logger.debug(
            f"Inserted {document_type.value} report {report.id} for patient {patient_id}"
            + (" [URGENT]" if is_urgent else "")
        )
        return report

    def reports_for_patient(self, patient_id: str) -> List[Report]:
        """Reports for one patient, newest first."""
        reports = [report for report in self._reports.values() if report.patient_id == patient_id]
        return sorted(reports, key=lambda report: report.created_at, reverse=True)

    @property
    def report_count(self) -> int:
        return len(self._reports)

    # =========================================================================
    # STAGE 2.3: HELPERS
    # =========================================================================

    def _require_patient(self, patient_id: str) -> Patient:
        patient = self._patients.get(patient_id)
        if patient is None:
            raise PatientNotFoundError(patient_id)
        return patient

    def _commit(self) -> None:
        """Hook called after every mutation (no-op in memory)."""


# =============================================================================
# STAGE 3: JSON FILE IMPLEMENTATION
# =============================================================================


class JsonFilePatientReportStore(InMemoryPatientReportStore):
    """
    Patient/report store persisted as one JSON document.

    How it works:
        STAGE 3.1: Load {"patients": [...], "reports": [...]} if the file exists
        STAGE 3.2: Serve reads from memory
        STAGE 3.3: After each mutation, write a temp file in the same
                   directory and os.replace() it over the store file

    Raises:
        StoreLoadError: If the existing file is not valid store JSON
        StoreWriteError: If the file cannot be written
    """

    def __init__(self, store_path: str):
        super().__init__()
        self._store_path = Path(store_path)
        self._load()

        logger.info(
            f"JsonFilePatientReportStore initialized | "
            f"Path: {self._store_path} | "
            f"Patients: {len(self._patients)} | "
            f"Reports: {len(self._reports)}"
        )

    @property
    def store_path(self) -> Path:
        return self._store_path

    def _load(self) -> None:
        if not self._store_path.exists():
            return

        try:
            with open(self._store_path, "r", encoding="utf-8") as f:
                raw_data = json.load(f)
            for record in raw_data.get("patients", []):
                patient = Patient.from_dict(record)
                self._patients[patient.id] = patient
            for record in raw_data.get("reports", []):
                report = Report.from_dict(record)
                self._reports[report.id] = report

        except json.JSONDecodeError as e:
            raise StoreLoadError(str(self._store_path), f"Invalid JSON: {e}")
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise StoreLoadError(str(self._store_path), f"Malformed record: {e}")
        except OSError as e:
            raise StoreLoadError(str(self._store_path), str(e))

    def _commit(self) -> None:
        payload = {
            "patients": [patient.to_dict() for patient in self._patients.values()],
            "reports": [report.to_dict() for report in self._reports.values()],
        }

        try:
            self._store_path.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(
                dir=self._store_path.parent, prefix=f".{self._store_path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(payload, f, indent=2, ensure_ascii=False)
                os.replace(temp_path, self._store_path)
            except BaseException:
                if os.path.exists(temp_path):
                    os.remove(temp_path)
                raise
        except OSError as e:
            raise StoreWriteError(
                f"Failed to write store: {e}", context={"path": str(self._store_path)}
            )
