"""
Batch Layer - Upload Grouping, State Machine, Orchestration and Progress

Submodules:
    upload_model.py  → UploadBatch (ordered groups + running flag)
    state_machine.py → Pure per-unit transition function
    orchestrator.py  → Sequential runner with stop-after-current
    progress.py      → Display aggregates recomputed from state
    commands.py      → Frozen command objects
    controller.py    → BatchController.dispatch(command)
"""

from clinical_document_generation.batch.upload_model import UploadBatch
from clinical_document_generation.batch.state_machine import transition, next_status
from clinical_document_generation.batch.orchestrator import BatchOrchestrator
from clinical_document_generation.batch.progress import compute_progress
from clinical_document_generation.batch.commands import (
    AddGroup,
    AddSession,
    AttachFiles,
    BatchCommand,
    DetachFile,
    RemoveGroup,
    RemoveSession,
    Run,
    SetDocumentType,
    SetMetadata,
    SetSessionDate,
    Stop,
)
from clinical_document_generation.batch.controller import BatchController

__all__ = [
    "UploadBatch",
    "transition",
    "next_status",
    "BatchOrchestrator",
    "compute_progress",
    "BatchController",
    "BatchCommand",
    "AddGroup",
    "AddSession",
    "AttachFiles",
    "DetachFile",
    "RemoveGroup",
    "RemoveSession",
    "Run",
    "SetDocumentType",
    "SetMetadata",
    "SetSessionDate",
    "Stop",
]
