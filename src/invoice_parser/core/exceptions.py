"""Custom exception classes for invoice parsing.

Each exception maps to a code in errors.py. Only UnsupportedLayoutError
is fatal for a document; the others are raised and handled inside the
engine so that a parse degrades instead of aborting.
"""

from typing import Any


class InvoiceProcessingError(Exception):
    """Base exception for all invoice processing errors.

    Attributes:
        error_code: Code from the error catalog (e.g., "PARSE_001")
        details: Additional context about the error (for logging)
    """

    default_code = "UNKNOWN"

    def __init__(self, error_code: str | None = None, details: dict[str, Any] | None = None):
        self.error_code = error_code or self.default_code
        self.details = details or {}
        super().__init__(self.error_code)

    def __str__(self) -> str:
        if self.details:
            return f"{self.error_code}: {self.details}"
        return self.error_code


class UnsupportedLayoutError(InvoiceProcessingError):
    """No registered strategy recognized the document.

    Raised by the selector when every candidate scored zero. Maps to
    PARSE_001. Callers must handle it explicitly.
    """

    default_code = "PARSE_001"


class DueDateNotFoundError(InvoiceProcessingError):
    """No due date could be resolved.

    The engine records this as a null due date; the exception exists for
    callers that want to turn the condition into a hard failure.
    """

    default_code = "PARSE_002"


class MalformedLineError(InvoiceProcessingError, ValueError):
    """A single line failed amount or date parsing; the line is dropped."""

    default_code = "PARSE_003"


class ExternalServiceError(InvoiceProcessingError):
    """The external extraction service failed (transport, status or payload).

    Common causes:
    - Timeout or connection refused
    - Non-2xx status
    - Empty or malformed JSON body
    """

    default_code = "EXT_001"


class QualityGateError(InvoiceProcessingError):
    """A parse result failed the acceptance gate."""

    default_code = "VAL_001"
