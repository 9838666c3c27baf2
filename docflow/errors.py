"""Error taxonomy shared by the intake, dispatcher, and retry layers.

Every pipeline error carries a stable ``reason`` string and a transport
``category`` so the message reaching the store, the caller, and any
dashboard keeps the distinction between failure kinds.
"""

UNAUTHORIZED = "unauthorized"
FORBIDDEN = "forbidden"
BAD_REQUEST = "bad-request"
SERVER_ERROR = "server-error"


class PipelineError(Exception):
    """Base exception for all pipeline errors."""

    reason: str = "internal_error"
    category: str = SERVER_ERROR


class ValidationError(PipelineError):
    """Raised when a candidate file violates the intake policy (client side only)."""

    reason = "validation_failed"
    category = BAD_REQUEST


class BadRequestError(PipelineError):
    """Raised when a submission is malformed."""

    reason = "bad_request"
    category = BAD_REQUEST


class DocumentNotFoundError(PipelineError):
    """Raised when a document cannot be found in the status store."""

    reason = "document_not_found"
    category = BAD_REQUEST


class AuthorizationError(PipelineError):
    """Raised when the caller is not allowed to process documents for a project."""

    reason = "unauthorized"
    category = UNAUTHORIZED


class AuthenticationError(AuthorizationError):
    """Raised when the bearer credential is missing, invalid, or expired."""


class ProjectAccessError(AuthorizationError):
    """Raised when the caller does not own the parent project."""

    reason = "forbidden"
    category = FORBIDDEN


class ExtractionError(PipelineError):
    """Raised when text cannot be derived from the given bytes."""

    reason = "extraction_failed"
    category = BAD_REQUEST


class UnsupportedFileTypeError(ExtractionError):
    """Raised when no extraction strategy can handle the file."""

    reason = "unsupported_file_type"


class SourceUnavailableError(ExtractionError):
    """Raised when stored or referenced source bytes cannot be loaded."""

    reason = "source_unavailable"


class AIProviderError(PipelineError):
    """Raised when the AI provider is unreachable or returned a non-success response."""

    reason = "ai_provider_error"


class AIProviderUnavailableError(AIProviderError):
    """Raised when no AI provider is configured."""

    reason = "ai_provider_unavailable"


class ParseError(PipelineError):
    """Raised when an AI response cannot be interpreted as the requested shape.

    Never escalated to a document failure: callers keep the raw response.
    """

    reason = "parse_failed"


class TransportError(PipelineError):
    """Raised when the dispatcher cannot be reached or answered garbage."""

    reason = "transport_error"


class RetryRejectedError(PipelineError):
    """Raised when a retry is requested for a document that is not in error."""

    reason = "retry_rejected"
    category = BAD_REQUEST
