"""Tests for the local report vault."""

import json

import pytest

from clinical_document_generation.archive import ReportVault, VaultItem
from clinical_document_generation.core.enums import DocumentType
from clinical_document_generation.core.exceptions import VaultError

from conftest import JANE_DOE_SUMMARY


@pytest.fixture
def vault(tmp_path):
    return ReportVault(str(tmp_path / "vault.json"))


class TestArchive:
    """Tests for archiving generated documents."""

    def test_archive_parses_patient(self, vault):
        """Test the folder name is derived from the PATIENT_NAME line."""
        item = vault.archive(JANE_DOE_SUMMARY, DocumentType.INTAKE_SUMMARY, "intake.pdf", "r-1")

        assert item.patient_first_initial == "J"
        assert item.patient_last_name == "Doe"
        assert item.folder_name == "Doe_J"
        assert item.report_id == "r-1"
        assert vault.get(item.id).generated_text == JANE_DOE_SUMMARY

    def test_file_name_fallback(self, vault):
        """Test an unnamed document is filed under its source file name."""
        item = vault.archive("Summary without a header.", DocumentType.TREATMENT_PLAN, "John-Smith.pdf")

        assert item.folder_name == "Smith_J"
        assert item.patient_last_name == "Smith"

    def test_no_patient_and_no_file_name(self, vault):
        """Test no folder is assigned when nothing names the patient."""
        item = vault.archive("Summary without a header.", DocumentType.TREATMENT_PLAN)
        assert item.folder_name is None

    def test_newest_first(self, vault):
        """Test later items are listed first."""
        first = vault.archive("PATIENT_NAME: A One", DocumentType.INTAKE_SUMMARY)
        second = vault.archive("PATIENT_NAME: B Two", DocumentType.SESSION_NOTE)
        assert [item.id for item in vault.list_items()] == [second.id, first.id]

    def test_upsert_merges_existing(self, vault):
        """Test upsert keeps stored values where the update has None."""
        item = vault.archive(JANE_DOE_SUMMARY, DocumentType.INTAKE_SUMMARY, "intake.pdf")
        vault.upsert(VaultItem(id=item.id, generated_text="edited", created_at=item.created_at))

        merged = vault.get(item.id)
        assert merged.generated_text == "edited"
        assert merged.source_file_name == "intake.pdf"
        assert merged.updated_at is not None
        assert len(vault.list_items()) == 1

    def test_failed_write_leaves_no_temp_file(self, vault, tmp_path, monkeypatch):
        """Test a failed replace raises VaultError and cleans up its temp file."""

        def fail_replace(src, dst):
            raise OSError("read-only file system")

        monkeypatch.setattr("clinical_document_generation.archive.vault.os.replace", fail_replace)

        with pytest.raises(VaultError):
            vault.archive(JANE_DOE_SUMMARY, DocumentType.INTAKE_SUMMARY)

        assert list(tmp_path.iterdir()) == []

    def test_remove(self, vault):
        """Test removing an item."""
        item = vault.archive(JANE_DOE_SUMMARY, DocumentType.INTAKE_SUMMARY)
        vault.remove(item.id)
        assert vault.list_items() == []


class TestLegacyRecords:
    """Tests for reading older or damaged vault files."""

    def test_migrates_legacy_fields(self, tmp_path):
        """Test content/date/unknown type records are migrated on read."""
        path = tmp_path / "vault.json"
        path.write_text(
            json.dumps(
                [
                    {
                        "id": "old-1",
                        "content": "PATIENT_NAME: John Smith\nBody",
                        "date": "2024-01-01T00:00:00",
                        "document_type": "mystery",
                    }
                ]
            )
        )

        item = ReportVault(str(path)).get("old-1")

        assert item.generated_text.startswith("PATIENT_NAME: John Smith")
        assert item.created_at == "2024-01-01T00:00:00"
        assert item.document_type == DocumentType.INTAKE_SUMMARY
        assert item.patient_last_name == "Smith"
        assert item.patient_first_initial == "J"

    def test_corrupt_file_is_empty(self, tmp_path):
        """Test an unreadable vault is treated as empty."""
        path = tmp_path / "vault.json"
        path.write_text("[{broken")
        assert ReportVault(str(path)).list_items() == []
