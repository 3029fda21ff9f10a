"""
Archive Layer - Local vault of generated documents.
"""

from clinical_document_generation.archive.vault import ReportVault, VaultItem

__all__ = ["ReportVault", "VaultItem"]
