"""
Clinical Document Generation

Batch pipeline that turns grouped clinical uploads (text, scanned
documents, audio) into intake summaries, treatment plans and DARP
session notes, stores each document against the patient it names, and
reports progress.

Architecture Overview:
    clinical_document_generation/
    ├── core/         → Domain models, enums, configuration (Layer 0 - Pure)
    ├── clients/      → LLM client abstractions (Layer 1 - Infrastructure)
    ├── parsing/      → Heuristic extraction from generated text
    ├── repository/   → Patient/report store (Layer 1 - Infrastructure)
    ├── generation/   → Prompt building and generation with backoff
    ├── persistence/  → Best-effort patient resolution and report save
    ├── archive/      → Local vault of generated documents
    ├── batch/        → Upload model, state machine, orchestrator, progress
    └── pipeline.py   → Public facade

Quick Start:
    from clinical_document_generation import DocumentPipeline

    pipeline = DocumentPipeline.from_environment()
    batch = pipeline.new_batch()
"""

__version__ = "1.0.0"

# =============================================================================
# PUBLIC API EXPORTS
# =============================================================================

from clinical_document_generation.pipeline import DocumentPipeline

from clinical_document_generation.core.models import (
    UploadedFile,
    Session,
    ClientGroup,
    GenerationMetadata,
    PatientIdentity,
    BatchProgress,
    BatchRunSummary,
)

from clinical_document_generation.core.enums import DocumentType, UnitStatus

from clinical_document_generation.core.config import PipelineConfiguration
from clinical_document_generation.core.logging import configure_logging

from clinical_document_generation.batch import UploadBatch, BatchController

__all__ = [
    "DocumentPipeline",
    "UploadedFile",
    "Session",
    "ClientGroup",
    "GenerationMetadata",
    "PatientIdentity",
    "BatchProgress",
    "BatchRunSummary",
    "DocumentType",
    "UnitStatus",
    "PipelineConfiguration",
    "configure_logging",
    "UploadBatch",
    "BatchController",
]
