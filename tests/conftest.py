"""Shared fakes and fixtures for the clinical document generation tests."""

from typing import Callable, List, Optional

import pytest

from clinical_document_generation.batch import BatchOrchestrator, UploadBatch
from clinical_document_generation.core.exceptions import StoreWriteError
from clinical_document_generation.core.models import UploadedFile
from clinical_document_generation.generation import DocumentGenerator
from clinical_document_generation.persistence import ReportPersister
from clinical_document_generation.repository import InMemoryPatientReportStore


JANE_DOE_SUMMARY = "PATIENT_NAME: Jane Doe\nCLIENT_ID: C-100\nDOB: 1990-01-01\n\nSummary body."


def make_file(name: str = "intake.pdf", data: bytes = b"%PDF-1.4 test") -> UploadedFile:
    return UploadedFile.from_bytes(name, data)


class FakeLLMClient:
    """
    Scripted LLM client.

    ``responses`` are consumed in order (strings are returned, exceptions
    raised); once exhausted, ``handler`` (if given) or ``default`` answers.
    """

    model_name = "fake-model"
    provider_name = "fake"

    def __init__(
        self,
        responses: Optional[list] = None,
        default: str = JANE_DOE_SUMMARY,
        handler: Optional[Callable[[list, str], str]] = None,
    ):
        self.responses = list(responses or [])
        self.default = default
        self.handler = handler
        self.calls: List[tuple] = []

    def generate(self, parts, system_instruction):
        self.calls.append((list(parts), system_instruction))
        if self.responses:
            response = self.responses.pop(0)
        elif self.handler is not None:
            response = self.handler(list(parts), system_instruction)
        else:
            response = self.default
        if isinstance(response, BaseException):
            raise response
        return response


class FailingReportStore(InMemoryPatientReportStore):
    """Store whose report inserts always fail."""

    def insert_report(self, patient_id, document_type, content, is_urgent):
        raise StoreWriteError("disk full")


@pytest.fixture
def sleeps():
    """Delays passed to the injected sleep function."""
    return []


@pytest.fixture
def fake_client():
    return FakeLLMClient()


@pytest.fixture
def generator(fake_client, sleeps):
    return DocumentGenerator(fake_client, sleep=sleeps.append)


@pytest.fixture
def store():
    return InMemoryPatientReportStore()


@pytest.fixture
def persister(store):
    return ReportPersister(store)


@pytest.fixture
def batch():
    return UploadBatch()


@pytest.fixture
def make_orchestrator(sleeps, store):
    """Build an orchestrator around a FakeLLMClient."""

    def _build(client=None, persister=None, **kwargs):
        generator = DocumentGenerator(client or FakeLLMClient(), sleep=sleeps.append)
        return BatchOrchestrator(generator, persister or ReportPersister(store), **kwargs)

    return _build
