"""
Clinical Document Generation Pipeline - Public Facade

This is the PUBLIC API entry point. It wires configuration, the LLM
client, generation, persistence, the vault and the orchestrator into
one object.

Architecture Diagram:
    ┌─────────────────────────────────────────────────────────────────────┐
    │                          DocumentPipeline                           │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                     │
    │   ┌───────────┐    ┌───────────┐    ┌───────────┐    ┌───────────┐  │
    │   │UploadBatch│ →  │Orchestratr│ →  │ Generator │ →  │ Persister │  │
    │   └───────────┘    └───────────┘    └───────────┘    └───────────┘  │
    │                          │                                │         │
    │                          └──────────→ Vault          Store┘         │
    └─────────────────────────────────────────────────────────────────────┘

Usage:
    from clinical_document_generation import DocumentPipeline, DocumentType, UploadedFile

    pipeline = DocumentPipeline.from_environment()
    batch = pipeline.new_batch()
    group_id = batch.add_group(DocumentType.INTAKE_SUMMARY)
    batch.attach_files(group_id, [UploadedFile.from_path("intake.pdf")])
    summary = pipeline.run(batch)
"""

from typing import Callable, Optional, Sequence, Tuple, Union

from loguru import logger

from clinical_document_generation.archive.vault import ReportVault
from clinical_document_generation.batch.controller import BatchController
from clinical_document_generation.batch.orchestrator import BatchOrchestrator, UnitUpdateCallback
from clinical_document_generation.batch.progress import compute_progress
from clinical_document_generation.batch.upload_model import UploadBatch
from clinical_document_generation.clients import GeminiClient, LLMClientProtocol, OpenAIClient
from clinical_document_generation.core.config import PipelineConfiguration
from clinical_document_generation.core.enums import DocumentType
from clinical_document_generation.core.exceptions import ConfigurationError, VaultError
from clinical_document_generation.core.models import (
    BatchProgress,
    BatchRunSummary,
    GenerationMetadata,
    PersistenceOutcome,
    UploadedFile,
)
from clinical_document_generation.generation import DocumentGenerator
from clinical_document_generation.persistence import ReportPersister
from clinical_document_generation.repository import (
    InMemoryPatientReportStore,
    JsonFilePatientReportStore,
    PatientReportStore,
)


# =============================================================================
# STAGE 1: PIPELINE CLASS
# =============================================================================


class DocumentPipeline:
    """
    Facade over the batch document pipeline.

    How it works:
        STAGE 1: Build components from configuration (or use overrides)
        STAGE 2: run(batch) drives the orchestrator over an UploadBatch
        STAGE 3: generate_document() handles one ad-hoc input

    Example:
        >>> pipeline = DocumentPipeline(config, generator=fake_generator)
        >>> summary = pipeline.run(batch)
        >>> print(summary.message)
    """

    def __init__(
        self,
        config: PipelineConfiguration,
        llm_client: Optional[LLMClientProtocol] = None,
        generator: Optional[DocumentGenerator] = None,
        store: Optional[PatientReportStore] = None,
        vault: Optional[ReportVault] = None,
        on_batch_complete: Optional[Callable[[], None]] = None,
        on_unit_update: Optional[UnitUpdateCallback] = None,
    ):
        """
        Initialize pipeline with configuration and optional component overrides.

        Args:
            config: Pipeline configuration
            llm_client: Optional LLM client override (ignored if generator given)
            generator: Optional generator override (for testing)
            store: Optional patient/report store override
            vault: Optional vault override (else built when enable_vault)
            on_batch_complete: Called once at the end of every run
            on_unit_update: Called after every unit transition
        """
        self._config = config

        # =====================================================================
        # STAGE 1.1: GENERATION
        # =====================================================================
        if generator is not None:
            self._generator = generator
        else:
            self._generator = DocumentGenerator(
                llm_client=llm_client or self._create_llm_client(config),
                max_rate_limit_retries=config.rate_limit_retries,
                initial_backoff=config.initial_backoff,
            )

        # =====================================================================
        # STAGE 1.2: PERSISTENCE
        # =====================================================================
        if store is not None:
            self._store = store
        elif config.patient_store_path:
            self._store = JsonFilePatientReportStore(config.patient_store_path)
        else:
            self._store = InMemoryPatientReportStore()
        self._persister = ReportPersister(self._store)

        if vault is not None:
            self._vault: Optional[ReportVault] = vault
        elif config.enable_vault:
            self._vault = ReportVault(config.vault_path)
        else:
            self._vault = None

        # =====================================================================
        # STAGE 1.3: ORCHESTRATION
        # =====================================================================
        self._orchestrator = BatchOrchestrator(
            generator=self._generator,
            persister=self._persister,
            vault=self._vault,
            on_batch_complete=on_batch_complete,
            on_unit_update=on_unit_update,
        )

        logger.info(
            f"DocumentPipeline initialized | "
            f"Provider: {config.llm_provider} | "
            f"Model: {config.active_model} | "
            f"Store: {type(self._store).__name__} | "
            f"Vault: {'on' if self._vault else 'off'}"
        )

    # =========================================================================
    # STAGE 2: BATCH API
    # =========================================================================

    def new_batch(self) -> UploadBatch:
        return UploadBatch()

    def new_controller(self, batch: Optional[UploadBatch] = None) -> BatchController:
        """Command-driven access to a batch (new one if not given)."""
        return BatchController(batch if batch is not None else UploadBatch(), self._orchestrator)

    def run(self, batch: UploadBatch) -> BatchRunSummary:
        return self._orchestrator.run(batch)

    def request_stop(self) -> None:
        self._orchestrator.request_stop()

    def progress(self, batch: UploadBatch) -> BatchProgress:
        return compute_progress(batch.groups)

    # =========================================================================
    # STAGE 3: SINGLE DOCUMENT API
    # =========================================================================

    def generate_document(
        self,
        content: Union[str, Sequence[UploadedFile]],
        document_type: DocumentType = DocumentType.INTAKE_SUMMARY,
        metadata: Optional[GenerationMetadata] = None,
        persist: bool = True,
    ) -> Tuple[str, Optional[PersistenceOutcome]]:
        """
        Generate (and optionally persist) one document outside a batch.

        Returns:
            (generated text, persistence outcome or None when persist=False)

        Raises:
            GenerationError: Generation failures propagate to the caller
        """
        text = self._generator.generate(content, document_type, metadata)
        if not persist:
            return text, None

        client_id_hint = metadata.client_id if metadata else None
        outcome = self._persister.persist(text, document_type, client_id_hint)
        if self._vault is not None:
            try:
                self._vault.archive(
                    text, document_type, report_id=outcome.report.id if outcome.report else None
                )
            except VaultError as e:
                logger.warning(f"Vault archive failed: {e}")
        return text, outcome

    # =========================================================================
    # STAGE 4: FACTORY METHODS
    # =========================================================================

    @classmethod
    def from_environment(cls, env_file: Optional[str] = None, **overrides) -> "DocumentPipeline":
        """
        Create pipeline from environment configuration.

        Args:
            env_file: Path to .env file (optional)
            **overrides: Component overrides passed to __init__

        Raises:
            ConfigurationError: If required settings missing
        """
        config = PipelineConfiguration.from_environment(env_file=env_file, validate_on_load=True)
        return cls(config, **overrides)

    @staticmethod
    def _create_llm_client(config: PipelineConfiguration) -> LLMClientProtocol:
        """Create LLM client from configuration."""
        if config.llm_provider == "gemini":
            if not config.gemini_api_key:
                raise ConfigurationError(
                    "Gemini API key required", context={"setting": "GEMINI_API_KEY"}
                )
            return GeminiClient(
                api_key=config.gemini_api_key,
                model_name=config.gemini_model,
                rate_limit_delay=config.rate_limit_delay,
                temperature=config.temperature,
            )
        if config.llm_provider == "openai":
            if not config.openai_api_key:
                raise ConfigurationError(
                    "OpenAI API key required", context={"setting": "OPENAI_API_KEY"}
                )
            return OpenAIClient(
                api_key=config.openai_api_key,
                model_name=config.openai_model,
                rate_limit_delay=config.rate_limit_delay,
                temperature=config.temperature,
            )
        raise ConfigurationError(
            f"Unsupported LLM provider: {config.llm_provider}",
            context={"supported": ["gemini", "openai"]},
        )

    # =========================================================================
    # STAGE 5: PROPERTIES
    # =========================================================================

    @property
    def config(self) -> PipelineConfiguration:
        return self._config

    @property
    def generator(self) -> DocumentGenerator:
        return self._generator

    @property
    def store(self) -> PatientReportStore:
        return self._store

    @property
    def persister(self) -> ReportPersister:
        return self._persister

    @property
    def vault(self) -> Optional[ReportVault]:
        return self._vault

    @property
    def orchestrator(self) -> BatchOrchestrator:
        return self._orchestrator
