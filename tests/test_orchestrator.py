"""Tests for the batch orchestrator."""

import pytest

from clinical_document_generation.archive import ReportVault
from clinical_document_generation.core.enums import DocumentType, UnitStatus
from clinical_document_generation.core.exceptions import (
    BatchStateError,
    LLMError,
    LLMRateLimitError,
    VaultError,
)
from clinical_document_generation.persistence import ReportPersister

from conftest import FailingReportStore, FakeLLMClient, make_file


def patient_from_file_name(parts, system_instruction):
    """Answer with the patient named by the first file ("Alice-Adams.pdf")."""
    name = parts[0].file_name.rsplit(".", 1)[0]
    if name.startswith("fail"):
        raise LLMError(f"cannot read {name}", provider="fake")
    if name.startswith("quota"):
        raise LLMRateLimitError(provider="fake")
    return f"PATIENT_NAME: {name.replace('-', ' ')}\n\nBody"


def files_called(client):
    return [parts[0].file_name for parts, _ in client.calls]


def add_file_group(batch, file_name, document_type=DocumentType.INTAKE_SUMMARY):
    group_id = batch.add_group(document_type)
    batch.attach_files(group_id, [make_file(file_name)])
    return group_id


def add_session_group(batch, *file_names):
    """Session-note group with one session per file name (seed session reused)."""
    group_id = batch.add_group(DocumentType.SESSION_NOTE)
    session_ids = [batch.get_group(group_id).sessions[0].id]
    for _ in file_names[1:]:
        session_ids.append(batch.add_session(group_id))
    for session_id, file_name in zip(session_ids, file_names):
        batch.attach_files(group_id, [make_file(file_name)], session_id=session_id)
    return group_id, session_ids


@pytest.fixture
def client():
    return FakeLLMClient(handler=patient_from_file_name)


class TestOrdering:
    """Tests for sequential, in-order processing."""

    def test_groups_and_sessions_processed_in_list_order(self, batch, client, make_orchestrator):
        """Test A, B, then C's sessions in order, one call each."""
        add_file_group(batch, "Alice-Adams.pdf")
        add_file_group(batch, "Bob-Brown.pdf", DocumentType.TREATMENT_PLAN)
        add_session_group(batch, "Cara-Cole.m4a", "Cara-Cole-2.m4a")

        summary = make_orchestrator(client).run(batch)

        assert files_called(client) == [
            "Alice-Adams.pdf",
            "Bob-Brown.pdf",
            "Cara-Cole.m4a",
            "Cara-Cole-2.m4a",
        ]
        assert summary.succeeded_units == 4
        assert all(group.status == UnitStatus.COMPLETED for group in batch)
        assert [group.result_patient_name for group in batch] == [
            "Alice Adams",
            "Bob Brown",
            "Cara Cole",
        ]

    def test_unit_update_sequence(self, batch, client, make_orchestrator):
        """Test a group reports PROCESSING then COMPLETED."""
        add_file_group(batch, "Alice-Adams.pdf")
        seen = []

        orchestrator = make_orchestrator(
            client, on_unit_update=lambda group, session: seen.append(group.status)
        )
        orchestrator.run(batch)

        assert seen == [UnitStatus.PROCESSING, UnitStatus.COMPLETED]


class TestBatchComplete:
    """Tests for the once-per-run completion callback."""

    @pytest.mark.parametrize(
        "file_names",
        [
            ["Alice-Adams.pdf", "Bob-Brown.pdf"],
            ["fail-one.pdf", "fail-two.pdf"],
            ["Alice-Adams.pdf", "fail-two.pdf"],
            [],
        ],
    )
    def test_fires_exactly_once(self, batch, client, make_orchestrator, file_names):
        """Test the callback fires once for success, failure, mixed and empty runs."""
        for file_name in file_names:
            add_file_group(batch, file_name)
        calls = []

        make_orchestrator(client, on_batch_complete=lambda: calls.append(1)).run(batch)

        assert calls == [1]
        assert batch.is_running is False

    def test_fires_once_when_stopped_early(self, batch, client, make_orchestrator):
        """Test a run stopped during unit 2 of 3 still notifies exactly once."""
        add_file_group(batch, "Alice-Adams.pdf")
        second = add_file_group(batch, "Bob-Brown.pdf")
        third = add_file_group(batch, "Cara-Cole.pdf")
        calls = []
        holder = {}

        def stop_when_second_starts(group, session):
            if group.id == second and group.status == UnitStatus.PROCESSING:
                holder["orchestrator"].request_stop()

        orchestrator = make_orchestrator(
            client,
            on_batch_complete=lambda: calls.append(1),
            on_unit_update=stop_when_second_starts,
        )
        holder["orchestrator"] = orchestrator
        summary = orchestrator.run(batch)

        assert calls == [1]
        assert summary.stopped_early is True
        assert batch.get_group(third).status == UnitStatus.QUEUED
        assert batch.is_running is False

    def test_callback_error_does_not_escape(self, batch, client, make_orchestrator):
        """Test a failing callback still returns the summary."""
        add_file_group(batch, "Alice-Adams.pdf")

        def explode():
            raise RuntimeError("refresh failed")

        summary = make_orchestrator(client, on_batch_complete=explode).run(batch)

        assert summary.succeeded_units == 1
        assert batch.is_running is False

    def test_running_batch_rejected(self, batch, client, make_orchestrator):
        """Test a second concurrent run is refused."""
        add_file_group(batch, "Alice-Adams.pdf")
        batch.is_running = True
        with pytest.raises(BatchStateError):
            make_orchestrator(client).run(batch)


class TestSkipping:
    """Tests for idempotent re-runs and empty units."""

    def test_rerun_never_regenerates(self, batch, client, make_orchestrator):
        """Test a second run over completed units makes no calls."""
        add_file_group(batch, "Alice-Adams.pdf")
        add_session_group(batch, "Cara-Cole.m4a")
        orchestrator = make_orchestrator(client)

        orchestrator.run(batch)
        calls_after_first = len(client.calls)
        summary = orchestrator.run(batch)

        assert len(client.calls) == calls_after_first
        assert summary.processed_units == 0
        assert all(group.status == UnitStatus.COMPLETED for group in batch)

    def test_empty_group_stays_queued(self, batch, client, make_orchestrator):
        """Test a group without files is skipped without an error."""
        group_id = batch.add_group(DocumentType.INTAKE_SUMMARY)

        summary = make_orchestrator(client).run(batch)

        group = batch.get_group(group_id)
        assert group.status == UnitStatus.QUEUED
        assert group.last_error is None
        assert client.calls == []
        assert summary.processed_units == 0

    def test_empty_session_skipped(self, batch, client, make_orchestrator):
        """Test an empty session neither runs nor blocks group completion."""
        group_id = batch.add_group(DocumentType.SESSION_NOTE)
        empty_session_id = batch.get_group(group_id).sessions[0].id
        session_id = batch.add_session(group_id, "2024-05-01")
        batch.attach_files(group_id, [make_file("Cara-Cole.m4a")], session_id=session_id)

        make_orchestrator(client).run(batch)

        assert len(client.calls) == 1
        assert batch.get_group(group_id).status == UnitStatus.COMPLETED
        assert batch.get_session(group_id, empty_session_id).status == UnitStatus.QUEUED
        assert batch.get_session(group_id, session_id).status == UnitStatus.COMPLETED

    def test_session_date_reaches_prompt(self, batch, client, make_orchestrator):
        """Test the session's date of service is sent with the files."""
        group_id = batch.add_group(DocumentType.SESSION_NOTE)
        session_id = batch.get_group(group_id).sessions[0].id
        batch.set_session_date(group_id, session_id, "2024-05-01")
        batch.attach_files(group_id, [make_file("Cara-Cole.m4a")], session_id=session_id)

        make_orchestrator(client).run(batch)

        parts, _ = client.calls[0]
        assert "Date of service: 2024-05-01" in parts[-1]


class TestFailures:
    """Tests for per-unit failure isolation."""

    def test_failed_group_does_not_stop_batch(self, batch, client, make_orchestrator):
        """Test one failure is recorded and the run continues."""
        first = add_file_group(batch, "Alice-Adams.pdf")
        failed = add_file_group(batch, "fail-scan.pdf")
        last = add_file_group(batch, "Bob-Brown.pdf")

        summary = make_orchestrator(client).run(batch)

        assert batch.get_group(first).status == UnitStatus.COMPLETED
        assert batch.get_group(failed).status == UnitStatus.ERROR
        assert batch.get_group(failed).last_error == "cannot read fail-scan"
        assert batch.get_group(last).status == UnitStatus.COMPLETED
        assert summary.succeeded_units == 2
        assert summary.failed_units == 1
        assert summary.groups_with_errors == 1
        assert summary.message == "Batch finished. Success: 2. Failed: 1. 1 group(s) had errors."

    def test_rate_limited_unit_fails_after_retries(
        self, batch, client, make_orchestrator, sleeps
    ):
        """Test an exhausted retry budget fails only that unit."""
        group_id = add_file_group(batch, "quota-hit.pdf")

        make_orchestrator(client).run(batch)

        assert len(client.calls) == 4
        assert sleeps == [1.5, 3.0, 6.0]
        assert batch.get_group(group_id).last_error == "Rate limit exceeded for fake"

    def test_failed_session_fails_group(self, batch, client, make_orchestrator):
        """Test a session error marks the group ERROR but keeps completed sessions."""
        group_id, (ok_id, bad_id) = add_session_group(batch, "Cara-Cole.m4a", "fail-audio.m4a")

        make_orchestrator(client).run(batch)

        group = batch.get_group(group_id)
        assert group.status == UnitStatus.ERROR
        assert group.last_error == "1 session(s) failed"
        assert batch.get_session(group_id, ok_id).status == UnitStatus.COMPLETED
        assert batch.get_session(group_id, bad_id).status == UnitStatus.ERROR

    def test_errors_requeued_on_next_run(self, batch, make_orchestrator):
        """Test an errored unit is retried by the next run."""
        client = FakeLLMClient(responses=[LLMError("offline", provider="fake")])
        group_id = add_file_group(batch, "Alice-Adams.pdf")
        orchestrator = make_orchestrator(client)

        orchestrator.run(batch)
        assert batch.get_group(group_id).status == UnitStatus.ERROR

        orchestrator.run(batch)
        group = batch.get_group(group_id)
        assert group.status == UnitStatus.COMPLETED
        assert group.last_error is None
        assert group.result_patient_name == "Jane Doe"

    def test_persistence_failure_still_completes(self, batch, client, make_orchestrator):
        """Test a store failure never fails the unit."""
        group_id = add_file_group(batch, "Alice-Adams.pdf")
        persister = ReportPersister(FailingReportStore())

        summary = make_orchestrator(client, persister=persister).run(batch)

        group = batch.get_group(group_id)
        assert group.status == UnitStatus.COMPLETED
        assert group.result_patient_name == "Alice Adams"
        assert summary.failed_units == 0
        assert persister.failed_count == 1


class TestStop:
    """Tests for cooperative "stop after current" cancellation."""

    def test_stop_after_current_group(self, batch, client, make_orchestrator):
        """Test a stop during unit 2 lets it finish and never starts unit 3."""
        add_file_group(batch, "Alice-Adams.pdf")
        second = add_file_group(batch, "Bob-Brown.pdf")
        third = add_file_group(batch, "Cara-Cole.pdf")
        holder = {}

        def stop_when_second_starts(group, session):
            if group.id == second and group.status == UnitStatus.PROCESSING:
                holder["orchestrator"].request_stop()

        orchestrator = make_orchestrator(client, on_unit_update=stop_when_second_starts)
        holder["orchestrator"] = orchestrator
        summary = orchestrator.run(batch)

        assert files_called(client) == ["Alice-Adams.pdf", "Bob-Brown.pdf"]
        assert batch.get_group(second).status == UnitStatus.COMPLETED
        assert batch.get_group(third).status == UnitStatus.QUEUED
        assert summary.stopped_early is True
        assert summary.message.startswith("Batch stopped.")

    def test_stop_inside_session_group(self, batch, client, make_orchestrator):
        """Test a stop between sessions fails the group and a re-run resumes."""
        group_id, session_ids = add_session_group(
            batch, "Cara-Cole.m4a", "Cara-Cole-2.m4a", "Cara-Cole-3.m4a"
        )
        holder = {"armed": True}

        def stop_on_first_session(group, session):
            starting = session is not None and session.status == UnitStatus.PROCESSING
            if holder["armed"] and starting:
                holder["armed"] = False
                holder["orchestrator"].request_stop()

        orchestrator = make_orchestrator(client, on_unit_update=stop_on_first_session)
        holder["orchestrator"] = orchestrator
        orchestrator.run(batch)

        group = batch.get_group(group_id)
        assert group.status == UnitStatus.ERROR
        assert group.last_error == "stopped before all sessions were processed"
        statuses = [batch.get_session(group_id, sid).status for sid in session_ids]
        assert statuses == [UnitStatus.COMPLETED, UnitStatus.QUEUED, UnitStatus.QUEUED]

        orchestrator.run(batch)

        assert batch.get_group(group_id).status == UnitStatus.COMPLETED
        assert batch.get_group(group_id).result_patient_name == "Cara Cole"
        assert len(client.calls) == 3


class TestVault:
    """Tests for archiving completed units."""

    def test_completed_units_archived(self, batch, client, make_orchestrator, tmp_path):
        """Test each completed unit lands in the vault."""
        vault = ReportVault(str(tmp_path / "vault.json"))
        add_file_group(batch, "Alice-Adams.pdf")

        make_orchestrator(client, vault=vault).run(batch)

        items = vault.list_items()
        assert len(items) == 1
        assert items[0].source_file_name == "Alice-Adams.pdf"
        assert items[0].folder_name == "Adams_A"
        assert items[0].report_id is not None

    def test_vault_failure_does_not_fail_unit(self, batch, client, make_orchestrator):
        """Test an archive error is logged and ignored."""

        class BrokenVault:
            def archive(self, *args, **kwargs):
                raise VaultError("read-only")

        group_id = add_file_group(batch, "Alice-Adams.pdf")

        make_orchestrator(client, vault=BrokenVault()).run(batch)

        assert batch.get_group(group_id).status == UnitStatus.COMPLETED
