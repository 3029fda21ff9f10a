"""
Clients Layer - LLM API Client Abstractions

This layer wraps the LLM providers (Gemini, OpenAI) behind one protocol
so the generation adapter works with either.

Submodules:
    llm_client.py    → Protocol, base implementation, rate-limit detection
    gemini_client.py → Google Gemini implementation
    openai_client.py → OpenAI implementation
"""

from clinical_document_generation.clients.llm_client import (
    ContentPart,
    LLMClientProtocol,
    BaseLLMClient,
    is_rate_limit_error,
)
from clinical_document_generation.clients.gemini_client import GeminiClient
from clinical_document_generation.clients.openai_client import OpenAIClient

__all__ = [
    "ContentPart",
    "LLMClientProtocol",
    "BaseLLMClient",
    "is_rate_limit_error",
    "GeminiClient",
    "OpenAIClient",
]
