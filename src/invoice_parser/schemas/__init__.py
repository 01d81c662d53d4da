"""Pydantic schemas for parsed invoices and extraction-service payloads."""

from .extractor import ExtractorInstallment, ExtractorResponse, ExtractorTransaction
from .internal import ParsedTransaction, ParseResult, TransactionScope, TransactionType

__all__ = [
    "ExtractorInstallment",
    "ExtractorResponse",
    "ExtractorTransaction",
    "ParsedTransaction",
    "ParseResult",
    "TransactionScope",
    "TransactionType",
]
