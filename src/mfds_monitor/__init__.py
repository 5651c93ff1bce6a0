"""
MFDS Regulatory Monitor - recent Korean food-safety regulation announcements

This package asks a search-grounded generative model for the latest notices
published by the Ministry of Food and Drug Safety (mfds.go.kr), validates the
answer into structured records, and serves them over HTTP.
"""

__version__ = "1.0.0"

from .backends import GenerationBackend, GeminiBackend, OpenRouterBackend
from .config import Config, get_config
from .errors import (
    BackendNotConfiguredError,
    ContractViolationError,
    RetrievalError,
    RetrievalTimeoutError,
    UpstreamError,
)
from .llm_factory import BackendFactory
from .models import UpdateCategory, UpdateRecord, sort_records
from .parsing import FreeTextParser, StructuredParser
from .prompts import build_update_prompt
from .retriever import UpdateRetriever
from .service import UpdateService, create_update_service

__all__ = [
    "BackendFactory",
    "BackendNotConfiguredError",
    "Config",
    "ContractViolationError",
    "FreeTextParser",
    "GeminiBackend",
    "GenerationBackend",
    "OpenRouterBackend",
    "RetrievalError",
    "RetrievalTimeoutError",
    "StructuredParser",
    "UpdateCategory",
    "UpdateRecord",
    "UpdateRetriever",
    "UpdateService",
    "UpstreamError",
    "build_update_prompt",
    "create_update_service",
    "get_config",
    "sort_records",
]
