"""
Run a Batch of Clinical Documents from a Folder

Each sub-directory of the input folder becomes one group (one patient).
For session notes, each sub-directory of a group becomes one session and
its name is used as the date of service.

Layout:
    input/
    ├── jane_doe/                 → group (intake summary / treatment plan)
    │   ├── intake_form.pdf
    │   └── phone_screen.m4a
    └── john_smith/               → group (session notes)
        ├── 2024-05-01/           → session, date of service "2024-05-01"
        │   └── session.m4a
        └── 2024-05-08/
            └── notes.jpg

Usage:
    python run_batch.py input/ --document-type intake-summary
    python run_batch.py input/ --document-type session-note --client-id C-100
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from loguru import logger

from clinical_document_generation import (
    DocumentPipeline,
    DocumentType,
    PipelineConfiguration,
    UploadBatch,
    UploadedFile,
    configure_logging,
)
from clinical_document_generation.core.exceptions import ClinicalDocumentError


def _visible_entries(directory: Path) -> List[Path]:
    return sorted(path for path in directory.iterdir() if not path.name.startswith("."))


def _load_files(directory: Path) -> List[UploadedFile]:
    return [
        UploadedFile.from_path(str(path)) for path in _visible_entries(directory) if path.is_file()
    ]


def build_batch(
    input_dir: Path, document_type: DocumentType, client_id: Optional[str] = None
) -> UploadBatch:
    """Build an UploadBatch from the folder layout described above."""
    batch = UploadBatch()

    for group_dir in _visible_entries(input_dir):
        if not group_dir.is_dir():
            continue

        group_id = batch.add_group(document_type)
        if client_id:
            batch.set_group_metadata(group_id, client_id_hint=client_id)

        if document_type != DocumentType.SESSION_NOTE:
            batch.attach_files(group_id, _load_files(group_dir))
            continue

        # add_group() seeds one empty session; reuse it for the first date
        seed_session_id = batch.get_group(group_id).sessions[0].id
        session_dirs = [path for path in _visible_entries(group_dir) if path.is_dir()]
        for index, session_dir in enumerate(session_dirs):
            if index == 0:
                session_id = seed_session_id
                batch.set_session_date(group_id, session_id, session_dir.name)
            else:
                session_id = batch.add_session(group_id, session_dir.name)
            batch.attach_files(group_id, _load_files(session_dir), session_id=session_id)

        if any(path.is_file() for path in _visible_entries(group_dir)):
            logger.warning(f"Ignoring loose files in session-note group folder {group_dir.name}")

    return batch


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Generate clinical documents for a folder of uploads"
    )
    parser.add_argument("input_dir", type=Path, help="Folder with one sub-directory per patient")
    parser.add_argument(
        "--document-type",
        default=DocumentType.INTAKE_SUMMARY.value,
        choices=DocumentType.get_all_types(),
        help="Document type for every group (default: intake-summary)",
    )
    parser.add_argument("--client-id", default=None, help="Client id hint applied to every group")
    parser.add_argument("--env-file", default=None, help="Path to .env file")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    parser.add_argument("--no-vault", action="store_true", help="Do not archive to the vault")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    # =========================================================================
    # STAGE 1: CONFIGURATION
    # =========================================================================
    try:
        config = PipelineConfiguration.from_environment(env_file=args.env_file)
    except ClinicalDocumentError as e:
        print(f"[FAIL] Configuration error: {e}")
        return 2

    if args.no_vault:
        config.enable_vault = False
    configure_logging(args.log_level or config.log_level)

    if not args.input_dir.is_dir():
        print(f"[FAIL] Input folder not found: {args.input_dir}")
        return 2

    # =========================================================================
    # STAGE 2: BUILD BATCH
    # =========================================================================
    document_type = DocumentType.from_string(args.document_type)
    batch = build_batch(args.input_dir, document_type, args.client_id)
    if not len(batch):
        print(f"[FAIL] No group folders found in {args.input_dir}")
        return 2

    def on_unit_update(group, session):
        unit = session or group
        label = f"session {session.date_of_service or session.id}" if session else "group"
        print(f"  - {group.id[:8]} {label}: {unit.status.value}")

    # =========================================================================
    # STAGE 3: RUN
    # =========================================================================
    try:
        pipeline = DocumentPipeline(config, on_unit_update=on_unit_update)
    except ClinicalDocumentError as e:
        print(f"[FAIL] Failed to initialize pipeline: {e}")
        return 2

    print("\n" + "=" * 80)
    print(f"CLINICAL DOCUMENT BATCH - {document_type.label}")
    print("=" * 80 + "\n")

    summary = pipeline.run(batch)

    # =========================================================================
    # STAGE 4: SUMMARY
    # =========================================================================
    print("\n" + "=" * 80)
    print(summary.message)
    for group in batch:
        status = group.status.value.upper()
        detail = group.result_patient_name or group.last_error or ""
        print(f"  [{status}] {group.id[:8]} {detail}")
    print("=" * 80)

    return 1 if summary.groups_with_errors else 0


if __name__ == "__main__":
    sys.exit(main())
