"""Tests for the patient/report stores."""

import json

import pytest

from clinical_document_generation.core.enums import DocumentType
from clinical_document_generation.core.exceptions import PatientNotFoundError, StoreLoadError
from clinical_document_generation.repository import (
    InMemoryPatientReportStore,
    JsonFilePatientReportStore,
    PatientReportStore,
)


class TestInMemoryStore:
    """Tests for the dict-backed store."""

    def test_satisfies_protocol(self, store):
        """Test the store implements PatientReportStore."""
        assert isinstance(store, PatientReportStore)

    def test_create_and_find_by_name(self, store):
        """Test lookups ignore case and spacing."""
        patient = store.create_patient("Jane", "Doe")
        assert patient.initials == "JD"
        assert store.find_patient_by_name("  jane   DOE ").id == patient.id

    def test_find_returns_first_match(self, store):
        """Test duplicate names resolve to the oldest patient."""
        first = store.create_patient("Jane", "Doe")
        store.create_patient("Jane", "Doe")
        assert store.find_patient_by_name("Jane Doe").id == first.id

    def test_find_unknown_name(self, store):
        """Test no match returns None."""
        assert store.find_patient_by_name("Nobody Here") is None

    def test_backfill_only_fills_empty_fields(self, store):
        """Test existing dob / client id are never overwritten."""
        patient = store.create_patient("Jane", "Doe", dob="1990-01-01")
        updated = store.backfill_patient(patient.id, dob="2000-02-02", client_id="C-1")
        assert updated.dob == "1990-01-01"
        assert updated.client_id == "C-1"

    def test_insert_report_requires_patient(self, store):
        """Test reports must link to an existing patient."""
        with pytest.raises(PatientNotFoundError):
            store.insert_report("missing", DocumentType.INTAKE_SUMMARY, "text", False)

    def test_reports_for_patient(self, store):
        """Test reports are returned for their patient only."""
        jane = store.create_patient("Jane", "Doe")
        john = store.create_patient("John", "Smith")
        store.insert_report(jane.id, DocumentType.INTAKE_SUMMARY, "a", False)
        store.insert_report(john.id, DocumentType.TREATMENT_PLAN, "b", True)

        reports = store.reports_for_patient(john.id)
        assert [report.content for report in reports] == ["b"]
        assert reports[0].is_urgent is True
        assert store.report_count == 2


class TestJsonFileStore:
    """Tests for the JSON-file store."""

    def test_round_trip_across_instances(self, tmp_path):
        """Test rows written by one instance are read by the next."""
        path = tmp_path / "store.json"
        store = JsonFilePatientReportStore(str(path))
        patient = store.create_patient("Jane", "Doe", client_id="C-100")
        store.insert_report(patient.id, DocumentType.SESSION_NOTE, "note", False)

        reloaded = JsonFilePatientReportStore(str(path))
        found = reloaded.find_patient_by_name("jane doe")
        assert found.client_id == "C-100"
        reports = reloaded.reports_for_patient(found.id)
        assert reports[0].document_type == DocumentType.SESSION_NOTE

    def test_creates_parent_directory(self, tmp_path):
        """Test the store file's directory is created on first write."""
        path = tmp_path / "nested" / "store.json"
        JsonFilePatientReportStore(str(path)).create_patient("Jane", "Doe")
        assert json.loads(path.read_text())["patients"][0]["last_name"] == "Doe"

    def test_invalid_json_raises(self, tmp_path):
        """Test a corrupt file raises StoreLoadError."""
        path = tmp_path / "store.json"
        path.write_text("{not json")
        with pytest.raises(StoreLoadError):
            JsonFilePatientReportStore(str(path))

    def test_missing_file_is_empty(self, tmp_path):
        """Test a missing file starts an empty store."""
        store = JsonFilePatientReportStore(str(tmp_path / "absent.json"))
        assert store.list_patients() == []

    def test_in_memory_store_is_base(self):
        """Test the JSON store shares the in-memory behavior."""
        assert issubclass(JsonFilePatientReportStore, InMemoryPatientReportStore)
