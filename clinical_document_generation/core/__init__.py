"""
Core Layer - Domain Models, Enums, Configuration and Exceptions

This layer contains the side-effect-free components that form the
foundation of the batch document pipeline.

Submodules:
    models.py     → Data structures (ClientGroup, Session, UploadedFile, ...)
    enums.py      → Enumerations (DocumentType, UnitStatus, UnitEvent)
    config.py     → Configuration dataclass
    constants.py  → Labels, markers, retry budget, log format
    exceptions.py → Domain-specific exceptions
    logging.py    → loguru sink setup

Dependency Rule:
    This layer depends on NOTHING else in the package.
    All other layers may depend on this layer.
"""

from clinical_document_generation.core.models import (
    UploadedFile,
    Session,
    ClientGroup,
    GenerationMetadata,
    PatientIdentity,
    Patient,
    Report,
    PersistenceOutcome,
    BatchProgress,
    BatchRunSummary,
)
from clinical_document_generation.core.enums import (
    DocumentType,
    UnitStatus,
    UnitEvent,
)
from clinical_document_generation.core.config import PipelineConfiguration
from clinical_document_generation.core.exceptions import (
    ClinicalDocumentError,
    ConfigurationError,
    GenerationError,
    LLMError,
    LLMRateLimitError,
    RepositoryError,
    BatchError,
)

__all__ = [
    # Models
    "UploadedFile",
    "Session",
    "ClientGroup",
    "GenerationMetadata",
    "PatientIdentity",
    "Patient",
    "Report",
    "PersistenceOutcome",
    "BatchProgress",
    "BatchRunSummary",
    # Enums
    "DocumentType",
    "UnitStatus",
    "UnitEvent",
    # Configuration
    "PipelineConfiguration",
    # Exceptions
    "ClinicalDocumentError",
    "ConfigurationError",
    "GenerationError",
    "LLMError",
    "LLMRateLimitError",
    "RepositoryError",
    "BatchError",
]
