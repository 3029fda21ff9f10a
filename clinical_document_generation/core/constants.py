"""
Constants for Clinical Document Generation

This module defines constant values used throughout the batch document
pipeline. Constants are:
    1. Centralized for easy modification
    2. Type-hinted for IDE support
    3. Documented with usage context

Constant Categories:
    PATIENT LABELS   → Line prefixes the generator writes for identity
    URGENCY          → Marker glyph flagging an acute-risk report
    RETRY            → Rate-limit backoff budget
    LOGGING          → Shared loguru format
"""

from typing import Dict, List


# =============================================================================
# STAGE 1: PATIENT IDENTITY LABELS
# =============================================================================
# The prompts ask the model to write these as label-prefixed lines at the
# top of every document. Parsing is best-effort.

PATIENT_NAME_LABEL = "PATIENT_NAME"
CLIENT_ID_LABEL = "CLIENT_ID"
DOB_LABEL = "DOB"

UNKNOWN_PATIENT_NAME = "Unknown Patient"

# Markdown emphasis characters stripped around captured values
EMPHASIS_CHARACTERS = "*_"


# =============================================================================
# STAGE 2: URGENCY / SAFETY MARKERS
# =============================================================================

URGENCY_MARKER = "\U0001F6A8"  # 🚨

SAFETY_ALERT_HEADER = f"**{URGENCY_MARKER} URGENT SAFETY ALERT: ACUTE RISK DETECTED**"

SAFETY_TRIGGER_TERMS: List[str] = [
    "suicide",
    "kill",
    "die",
    "hurt myself",
    "hearing voices",
    "cut",
    "overdose",
    "hopeless",
]

SECTION_MARKER_PATTERN = r"\[SECTION_\d+\]"


# =============================================================================
# STAGE 3: RETRY / BACKOFF
# =============================================================================

DEFAULT_RATE_LIMIT_RETRIES = 3  # additional attempts after the first
DEFAULT_INITIAL_BACKOFF_SECONDS = 1.5  # doubles each retry: 1.5, 3, 6

# Patterns (matched against the lower-cased message) that identify a
# rate-limit / quota failure. 429 must stand alone as a status code.
RATE_LIMIT_SIGNATURES: List[str] = [
    r"\b429\b",
    "resource_exhausted",
    "resource exhausted",
    "quota",
    "rate limit",
    "too many requests",
]


# =============================================================================
# STAGE 4: ERROR MESSAGES
# =============================================================================

GENERIC_UNIT_ERROR = "Generation failed"
EMPTY_RESPONSE_ERROR = "Analysis failed to generate a response."

FILE_EXTENSION_MIME_OVERRIDES: Dict[str, str] = {
    ".m4a": "audio/mp4",
    ".md": "text/markdown",
}


# =============================================================================
# STAGE 5: LOGGING CONFIGURATION
# =============================================================================
# Standard log format for consistent logging across modules.

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)
