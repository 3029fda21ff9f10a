"""
Report Vault - Local Archive of Generated Documents

A JSON-file archive that keeps every completed document available
locally, independent of the patient/report store. Records written by
older versions are migrated on read:

    content            → generated_text
    missing patient    → parsed from the PATIENT_NAME line
    unknown doc type   → intake summary
    date               → created_at

A corrupt or unreadable file is treated as an empty vault (with a
warning) so archiving never blocks a batch.
"""

import json
import os
import tempfile
from dataclasses import asdict, dataclass, field, fields, replace
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from loguru import logger

from clinical_document_generation.core.constants import UNKNOWN_PATIENT_NAME
from clinical_document_generation.core.enums import DocumentType
from clinical_document_generation.core.exceptions import VaultError
from clinical_document_generation.core.models import new_id
from clinical_document_generation.parsing.report_parser import (
    extract_patient_identity,
    guess_patient_from_file_name,
    is_urgent,
    split_full_name,
)


def _now() -> str:
    return datetime.now().isoformat()


@dataclass
class VaultItem:
    """One archived document."""

    document_type: DocumentType = DocumentType.INTAKE_SUMMARY
    generated_text: str = ""
    id: str = field(default_factory=new_id)
    created_at: str = field(default_factory=_now)
    updated_at: Optional[str] = None
    patient_first_initial: Optional[str] = None
    patient_last_name: Optional[str] = None
    folder_name: Optional[str] = None
    source_file_name: Optional[str] = None
    is_urgent: bool = False
    report_id: Optional[str] = None

    @property
    def sort_key(self) -> str:
        return self.updated_at or self.created_at

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["document_type"] = self.document_type.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VaultItem":
        """Create from a stored record, migrating legacy shapes."""
        generated_text = data.get("generated_text")
        if not isinstance(generated_text, str):
            generated_text = data.get("content") if isinstance(data.get("content"), str) else ""

        try:
            document_type = DocumentType.from_string(str(data.get("document_type") or ""))
        except ValueError:
            document_type = DocumentType.INTAKE_SUMMARY

        first_initial = data.get("patient_first_initial")
        last_name = data.get("patient_last_name")
        if not first_initial and not last_name:
            first_initial, last_name = _patient_from_text(generated_text)

        return cls(
            id=str(data.get("id") or new_id()),
            created_at=str(data.get("created_at") or data.get("date") or _now()),
            updated_at=data.get("updated_at"),
            document_type=document_type,
            generated_text=generated_text,
            patient_first_initial=first_initial,
            patient_last_name=last_name,
            folder_name=data.get("folder_name"),
            source_file_name=data.get("source_file_name"),
            is_urgent=bool(data.get("is_urgent", False)),
            report_id=data.get("report_id"),
        )


def _patient_from_text(text: str):
    identity = extract_patient_identity(text)
    if identity.name == UNKNOWN_PATIENT_NAME:
        return None, None
    first_name, last_name = split_full_name(identity.name)
    return first_name[:1].upper() or None, last_name or first_name or None


# =============================================================================
# VAULT
# =============================================================================


class ReportVault:
    """
    JSON-file backed archive of generated documents.

    Example:
        >>> vault = ReportVault("data/report_vault.json")
        >>> item = vault.archive(text, DocumentType.SESSION_NOTE, source_file_name="s1.m4a")
        >>> vault.list_items()[0].id == item.id
        True
    """

    def __init__(self, vault_path: str):
        self._vault_path = Path(vault_path)

    @property
    def vault_path(self) -> Path:
        return self._vault_path

    def list_items(self) -> List[VaultItem]:
        """All items, newest (updated or created) first."""
        items = self._read()
        return sorted(items, key=lambda item: item.sort_key, reverse=True)

    def get(self, item_id: str) -> Optional[VaultItem]:
        for item in self._read():
            if item.id == item_id:
                return item
        return None

    def upsert(self, item: VaultItem) -> List[VaultItem]:
        """
        Insert a new item at the front, or merge into the existing one.

        Merging keeps stored values where the incoming item has None and
        bumps ``updated_at``.
        """
        items = self._read()
        for index, existing in enumerate(items):
            if existing.id == item.id:
                changes = {
                    f.name: getattr(item, f.name)
                    for f in fields(VaultItem)
                    if f.name != "id" and getattr(item, f.name) is not None
                }
                changes["updated_at"] = _now()
                items[index] = replace(existing, **changes)
                break
        else:
            items.insert(0, item)

        self._write(items)
        return items

    def remove(self, item_id: str) -> List[VaultItem]:
        items = [item for item in self._read() if item.id != item_id]
        self._write(items)
        return items

    def archive(
        self,
        text: str,
        document_type: DocumentType,
        source_file_name: Optional[str] = None,
        report_id: Optional[str] = None,
    ) -> VaultItem:
        """Build a VaultItem from generated text and upsert it."""
        first_initial, last_name = _patient_from_text(text)
        folder_name = f"{last_name}_{first_initial}" if last_name and first_initial else None
        if folder_name is None and source_file_name:
            guess = guess_patient_from_file_name(source_file_name)
            first_initial, last_name = guess.first_initial, guess.last_name
            folder_name = guess.folder_name

        item = VaultItem(
            document_type=document_type,
            generated_text=text,
            patient_first_initial=first_initial,
            patient_last_name=last_name,
            folder_name=folder_name,
            source_file_name=source_file_name,
            is_urgent=is_urgent(text),
            report_id=report_id,
        )
        self.upsert(item)
        logger.debug(f"Archived {document_type.value} to vault as {item.id}")
        return item

    # =========================================================================
    # FILE I/O
    # =========================================================================

    def _read(self) -> List[VaultItem]:
        if not self._vault_path.exists():
            return []

        try:
            with open(self._vault_path, "r", encoding="utf-8") as f:
                raw_data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Vault file unreadable, treating as empty: {self._vault_path} ({e})")
            return []

        if not isinstance(raw_data, list):
            logger.warning(f"Vault file is not a list, treating as empty: {self._vault_path}")
            return []

        return [VaultItem.from_dict(record) for record in raw_data if isinstance(record, dict)]

    def _write(self, items: List[VaultItem]) -> None:
        try:
            self._vault_path.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(
                dir=self._vault_path.parent, prefix=f".{self._vault_path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump([item.to_dict() for item in items], f, indent=2, ensure_ascii=False)
                os.replace(temp_path, self._vault_path)
            except BaseException:
                if os.path.exists(temp_path):
                    os.remove(temp_path)
                raise
        except OSError as e:
            raise VaultError(f"Failed to write vault: {e}", context={"path": str(self._vault_path)})
