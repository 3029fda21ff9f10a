"""
Generation Layer - Document Generation

Submodules:
    prompt_builder.py     → System instructions and user-turn layout per document type
    document_generator.py → LLM call with rate-limit backoff and fence stripping
"""

from clinical_document_generation.generation.prompt_builder import PromptBuilder
from clinical_document_generation.generation.document_generator import (
    DocumentGenerator,
    strip_code_fences,
)

__all__ = [
    "PromptBuilder",
    "DocumentGenerator",
    "strip_code_fences",
]
