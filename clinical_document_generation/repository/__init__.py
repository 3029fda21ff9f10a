"""
Repository Layer - Patient/Report Store Abstraction

Submodules:
    patient_store.py → Store protocol, in-memory and JSON-file implementations
"""

from clinical_document_generation.repository.patient_store import (
    PatientReportStore,
    InMemoryPatientReportStore,
    JsonFilePatientReportStore,
)

__all__ = [
    "PatientReportStore",
    "InMemoryPatientReportStore",
    "JsonFilePatientReportStore",
]
