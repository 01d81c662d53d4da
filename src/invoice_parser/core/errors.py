"""Error codes and user-friendly messages.

This module defines the error catalog for invoice parsing.
Each error has:
- code: Unique identifier
- message: Technical description (for logs)
- user_message: User-friendly explanation
- suggestion: Actionable guidance for the user
- retry_allowed: Whether the error is retryable
"""

from dataclasses import dataclass


@dataclass
class ErrorDefinition:
    """Definition of a single error type."""

    code: str
    message: str
    user_message: str
    suggestion: str
    retry_allowed: bool


ERROR_CATALOG: dict[str, dict] = {
    "PARSE_001": {
        "code": "PARSE_001",
        "message": "Unsupported invoice layout: no parser scored above zero",
        "user_message": "We couldn't recognize this invoice format.",
        "suggestion": (
            "Please upload an invoice from Itaú, Itaú Personnalité, Bradesco, Banco do Brasil, "
            "Sicredi, Mercado Pago, Nubank, C6 or Santander."
        ),
        "retry_allowed": False,
    },
    "PARSE_002": {
        "code": "PARSE_002",
        "message": "Due date not found or ambiguous",
        "user_message": "We couldn't determine the due date of this invoice.",
        "suggestion": "Please inform the due date manually.",
        "retry_allowed": True,
    },
    "PARSE_003": {
        "code": "PARSE_003",
        "message": "Malformed transaction line",
        "user_message": "Some lines of this invoice could not be read.",
        "suggestion": "Review the imported transactions before confirming.",
        "retry_allowed": False,
    },
    "EXT_001": {
        "code": "EXT_001",
        "message": "External extraction service failed",
        "user_message": "The document reader is temporarily unavailable.",
        "suggestion": "Please try again in a few moments.",
        "retry_allowed": True,
    },
    "VAL_001": {
        "code": "VAL_001",
        "message": "Parsed invoice failed the quality gate",
        "user_message": "The invoice data appears to be incomplete.",
        "suggestion": "Please upload the complete invoice PDF.",
        "retry_allowed": False,
    },
}


def get_error(error_code: str) -> dict:
    """Get error definition by code.

    Args:
        error_code: Error code from the catalog

    Returns:
        Dict with error details (a generic entry for unknown codes)
    """
    if error_code not in ERROR_CATALOG:
        return {
            "code": "UNKNOWN",
            "message": f"Unknown error code: {error_code}",
            "user_message": "An unexpected error occurred.",
            "suggestion": "Please try again. Contact support if the problem persists.",
            "retry_allowed": True,
        }
    return ERROR_CATALOG[error_code]


def get_definition(error_code: str) -> ErrorDefinition:
    """Typed view of a catalog entry."""
    return ErrorDefinition(**get_error(error_code))


def get_user_message(error_code: str) -> str:
    """Get user-friendly message for an error code."""
    return get_error(error_code)["user_message"]


def get_suggestion(error_code: str) -> str:
    """Get actionable suggestion for an error code."""
    return get_error(error_code)["suggestion"]


def is_retryable(error_code: str) -> bool:
    """Check if an error is retryable."""
    return get_error(error_code)["retry_allowed"]
