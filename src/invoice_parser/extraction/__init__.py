"""Invoice extraction: external service client, totals and the parse pipeline."""

from invoice_parser.extraction.client import ExtractorClient
from invoice_parser.extraction.pipeline import InvoicePipeline, parse_invoice

__all__ = ["ExtractorClient", "InvoicePipeline", "parse_invoice"]
