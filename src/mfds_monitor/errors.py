"""
Error types raised by the update retrieval pipeline.

An empty backend response is not an error; it yields an empty list.
Everything below surfaces to the caller as a failure.
"""

from typing import Optional


class RetrievalError(Exception):
    """Base class for update retrieval failures."""

    error_type = "retrieval_error"
    public_message = "Failed to retrieve MFDS updates"

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail


class UpstreamError(RetrievalError):
    """Network, authentication, rate-limit or backend failure."""

    error_type = "upstream_failure"
    public_message = "The generation service could not be reached or rejected the request"

    def __init__(self, message: str, detail: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message, detail=detail)
        self.status_code = status_code


class RetrievalTimeoutError(UpstreamError):
    """The generation service did not answer within the configured timeout."""

    error_type = "timeout"
    public_message = "The generation service timed out"


class ContractViolationError(RetrievalError):
    """Structured output was requested but the backend returned something else."""

    error_type = "contract_violation"
    public_message = "The generation service returned malformed structured output"


class BackendNotConfiguredError(RetrievalError):
    """No credential is available for the selected provider."""

    error_type = "not_configured"
    public_message = "The generation service is not configured"
