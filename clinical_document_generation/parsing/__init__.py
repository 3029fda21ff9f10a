"""
Parsing Layer - Heuristic extraction from generated document text.
"""

from clinical_document_generation.parsing.report_parser import (
    FileNameGuess,
    ReportSections,
    clean_label_value,
    extract_initials,
    extract_patient_identity,
    extract_trigger_quotes,
    guess_patient_from_file_name,
    is_urgent,
    normalize_name,
    split_full_name,
    split_report_sections,
)

__all__ = [
    "FileNameGuess",
    "ReportSections",
    "clean_label_value",
    "extract_initials",
    "extract_patient_identity",
    "extract_trigger_quotes",
    "guess_patient_from_file_name",
    "is_urgent",
    "normalize_name",
    "split_full_name",
    "split_report_sections",
]
