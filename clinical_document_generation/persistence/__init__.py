"""
Persistence Layer - Best-effort storage of generated documents.
"""

from clinical_document_generation.persistence.report_persister import ReportPersister

__all__ = ["ReportPersister"]
