"""Multi-strategy parser for Brazilian credit-card invoice text.

Typical use:

    >>> from invoice_parser import InvoicePipeline
    >>> pipeline = InvoicePipeline.from_settings()
    >>> result = pipeline.parse(text)
    >>> result.bank_name, len(result.transactions)
"""

from invoice_parser.extraction.pipeline import InvoicePipeline, parse_invoice
from invoice_parser.schemas.internal import ParsedTransaction, ParseResult

__version__ = "0.1.0"

__all__ = ["InvoicePipeline", "ParsedTransaction", "ParseResult", "parse_invoice"]
