"""
Report Parser - Best-Effort Extraction from Generated Documents

The generator's output format is not contractually guaranteed, so every
function here is a heuristic with a defined fallback rather than a
strict parser:

    extract_patient_identity → PATIENT_NAME / CLIENT_ID / DOB header lines
    is_urgent                → presence of the urgency marker glyph
    extract_trigger_quotes   → verbatim quotes listed under the safety alert
    split_report_sections    → [SECTION_n] delimited report body
    guess_patient_from_file_name → identity hint from an upload's file name

Usage:
    from clinical_document_generation.parsing import extract_patient_identity

    identity = extract_patient_identity(text)
    identity.name  # "Unknown Patient" when no PATIENT_NAME line exists
"""

import re
from dataclasses import dataclass
from typing import Optional, Tuple

from clinical_document_generation.core.constants import (
    CLIENT_ID_LABEL,
    DOB_LABEL,
    EMPHASIS_CHARACTERS,
    PATIENT_NAME_LABEL,
    SECTION_MARKER_PATTERN,
    UNKNOWN_PATIENT_NAME,
    URGENCY_MARKER,
)
from clinical_document_generation.core.models import PatientIdentity


# =============================================================================
# STAGE 1: PATIENT IDENTITY
# =============================================================================


def _label_pattern(label: str) -> "re.Pattern[str]":
    # Value runs to end of line; label may itself be wrapped in emphasis
    return re.compile(rf"(?<![A-Za-z0-9]){re.escape(label)}[*_]*[ \t]*:[ \t]*(.*)", re.IGNORECASE)


_NAME_PATTERN = _label_pattern(PATIENT_NAME_LABEL)
_CLIENT_ID_PATTERN = _label_pattern(CLIENT_ID_LABEL)
_DOB_PATTERN = _label_pattern(DOB_LABEL)


def clean_label_value(value: str) -> str:
    """
    Strip markdown emphasis from a captured value.

    Asterisks are removed anywhere; underscores only at the edges so
    identifiers such as ``AB_1234`` survive.
    """
    cleaned = re.sub(r"\*+", "", value).strip()
    return cleaned.strip(EMPHASIS_CHARACTERS).strip()


def _find_label_value(pattern: "re.Pattern[str]", text: str) -> Optional[str]:
    match = pattern.search(text)
    if not match:
        return None
    value = clean_label_value(match.group(1))
    return value or None


def extract_patient_identity(text: str) -> PatientIdentity:
    """
    Extract patient identity from generated document text.

    Args:
        text: Generated document

    Returns:
        PatientIdentity with name "Unknown Patient" and None optionals
        for any label that is missing or empty
    """
    return PatientIdentity(
        name=_find_label_value(_NAME_PATTERN, text) or UNKNOWN_PATIENT_NAME,
        client_id=_find_label_value(_CLIENT_ID_PATTERN, text),
        date_of_birth=_find_label_value(_DOB_PATTERN, text),
    )


def split_full_name(full_name: str) -> Tuple[str, str]:
    """
    Split a full name into (first_name, last_name).

    The last whitespace-separated token is the last name; everything
    before it is the first name. A single token is a first name only.
    """
    tokens = clean_label_value(full_name).split()
    if not tokens:
        return "", ""
    if len(tokens) == 1:
        return tokens[0], ""
    return " ".join(tokens[:-1]), tokens[-1]


def extract_initials(first_name: str, last_name: str) -> str:
    """Two-letter initials, using "X" for a missing part."""
    first = first_name.strip()[:1].upper() or "X"
    last = last_name.strip()[:1].upper() or "X"
    return first + last


def normalize_name(name: str) -> str:
    """Case-folded, whitespace-collapsed key for name matching."""
    return " ".join(clean_label_value(name).split()).casefold()


# =============================================================================
# STAGE 2: SAFETY MARKERS
# =============================================================================


def is_urgent(text: str) -> bool:
    return URGENCY_MARKER in text


_TRIGGER_QUOTES_PATTERN = re.compile(
    r"TRIGGER QUOTES:\**(.*?)(?=\[SECTION|###|##|\Z)", re.IGNORECASE | re.DOTALL
)


def extract_trigger_quotes(text: str) -> Optional[str]:
    """Text listed under TRIGGER QUOTES, up to the next section or heading."""
    match = _TRIGGER_QUOTES_PATTERN.search(text)
    if not match:
        return None
    quotes = re.sub(r"^[:\s-]+", "", match.group(1).strip())
    return quotes or None


# =============================================================================
# STAGE 3: REPORT SECTIONS
# =============================================================================


@dataclass(frozen=True)
class ReportSections:
    """
    A generated report split on its [SECTION_n] markers.

    ``preamble`` holds everything before the first marker (identity lines,
    safety alert). Missing sections are empty strings.
    """

    preamble: str = ""
    clinical_report: str = ""
    extended_record: str = ""
    impressions: str = ""
    treatment_plan: str = ""

    @property
    def has_sections(self) -> bool:
        return any(
            (self.clinical_report, self.extended_record, self.impressions, self.treatment_plan)
        )


def split_report_sections(text: str) -> ReportSections:
    parts = [part.strip() for part in re.split(SECTION_MARKER_PATTERN, text, flags=re.IGNORECASE)]
    parts += [""] * (5 - len(parts))
    return ReportSections(
        preamble=parts[0],
        clinical_report=parts[1],
        extended_record=parts[2],
        impressions=parts[3],
        treatment_plan=parts[4],
    )


# =============================================================================
# STAGE 4: FILE NAME HEURISTICS
# =============================================================================


@dataclass(frozen=True)
class FileNameGuess:
    """Patient hint derived from an upload's file name."""

    first_initial: str
    last_name: str
    folder_name: str


def _sanitize_name_part(value: str) -> str:
    return re.sub(r"[^a-zA-Z0-9_-]", "", value).strip()


def guess_patient_from_file_name(file_name: str) -> FileNameGuess:
    """
    Guess a patient from a file name such as ``Jane-Doe.pdf``.

    The first token gives the first initial and the last token the last
    name; the folder name is ``Last_F``.

    Example:
        >>> guess_patient_from_file_name("Jane-Doe.pdf").folder_name
        'Doe_J'
    """
    base_name = re.sub(r"\.[^/.]+$", "", file_name)
    tokens = [token for token in re.split(r"[_\-\s]+", base_name) if token]

    last_name = _sanitize_name_part(tokens[-1] if tokens else "Unknown") or "Unknown"
    first_token = _sanitize_name_part(tokens[0] if tokens else "X") or "X"
    first_initial = first_token[0].upper()

    return FileNameGuess(
        first_initial=first_initial,
        last_name=last_name,
        folder_name=f"{last_name}_{first_initial}",
    )
