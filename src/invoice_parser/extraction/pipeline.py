"""End-to-end invoice parsing.

This module orchestrates the parsing workflow:
1. Select the strategy that best explains the text
2. Prefer the extraction service for PDF-aware strategies
3. Resolve the due date (strategy, generic fallback, caller override)
4. Link rows to the due date and drop next-invoice echoes
5. Read the printed total and reconcile the rows against it
6. Score the result
"""

import logging
import re
from collections.abc import Sequence
from datetime import date
from decimal import Decimal

from invoice_parser.core.config import Settings
from invoice_parser.core.config import settings as default_settings
from invoice_parser.core.exceptions import UnsupportedLayoutError
from invoice_parser.core.logging import setup_logging
from invoice_parser.extraction.client import ExtractorClient
from invoice_parser.extraction.totals import (
    expense_sum,
    extract_printed_total,
    fallback_due_date,
    net_sum,
    reconcile,
)
from invoice_parser.parsers.base import InvoiceParser, PdfAwareParser
from invoice_parser.parsers.factory import build_default_parsers
from invoice_parser.parsers.selector import select_best
from invoice_parser.quality.evaluator import ParseQualityEvaluator
from invoice_parser.schemas.internal import ParsedTransaction, ParseResult, TransactionType

logger = logging.getLogger(__name__)

_CARD_FINAL = re.compile(r"(?i)final\s*(\d{4})")
_TRAILING_DIGITS = re.compile(r"(\d{4})(?:\s*\(\d+\))?\s*$")


class InvoicePipeline:
    """Parses invoice text into an immutable, scored ParseResult.

    The pipeline holds only the strategy registry and settings, so one
    instance can parse any number of documents.

    Example:
        >>> pipeline = InvoicePipeline.from_settings()
        >>> result = pipeline.parse(text)
        >>> print(f"{result.bank_name}: {len(result.transactions)} rows")
    """

    def __init__(self, parsers: Sequence[InvoiceParser], settings: Settings | None = None):
        """Initialize the pipeline.

        Args:
            parsers: Strategy registry in selection order
            settings: Engine settings (default: module-level settings)
        """
        self.parsers = tuple(parsers)
        self.settings = settings or default_settings
        self.evaluator = ParseQualityEvaluator(self.settings)

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "InvoicePipeline":
        """Build the default registry with an extraction client from settings.

        Also configures package logging from ``log_level`` and ``log_file``.
        """
        settings = settings or default_settings
        setup_logging(settings.log_level, settings.log_file)
        return cls(build_default_parsers(ExtractorClient.from_settings(settings)), settings)

    def parse(
        self,
        text: str,
        pdf_bytes: bytes | None = None,
        due_date_override: date | None = None,
    ) -> ParseResult:
        """Parse one invoice.

        Args:
            text: Plain text extracted from the invoice
            pdf_bytes: Original document, used by PDF-aware strategies
            due_date_override: Due date supplied by the caller, used only
                when none can be found in the document

        Returns:
            ParseResult with quality score

        Raises:
            UnsupportedLayoutError: If the text is empty or no strategy
                recognizes it
        """
        if not text or not text.strip():
            raise UnsupportedLayoutError(details={"reason": "empty text"})

        selection = select_best(self.parsers, text)
        parser = selection.chosen.parser
        due_date = selection.chosen.due_date
        transactions: list[ParsedTransaction] = list(selection.chosen.transactions)
        service_total: Decimal | None = None
        card_digits: str | None = None
        source = "text"

        if pdf_bytes and isinstance(parser, PdfAwareParser):
            try:
                pdf_result = parser.parse_with_source(pdf_bytes, text)
            except Exception as exc:
                logger.warning("PDF-aware parse with %s failed, keeping text result: %s", parser.name, exc)
            else:
                if pdf_result.due_date is not None:
                    due_date = pdf_result.due_date
                if pdf_result.transactions:
                    transactions = list(pdf_result.transactions)
                    source = pdf_result.source
                    service_total = pdf_result.total_amount
                    card_digits = pdf_result.card_last_digits

        if due_date is None:
            logger.warning("Parser %s found no due date; trying fallback extractor", parser.name)
            due_date = fallback_due_date(text)
        if due_date is None and due_date_override is not None:
            logger.warning("Using caller-supplied due date %s", due_date_override)
            due_date = due_date_override
        if due_date is None:
            logger.warning("No due date for %s invoice; continuing without one", parser.name)

        transactions = [tx.with_due_date(due_date) for tx in transactions]
        if parser.drop_rows_after_due_date and due_date is not None:
            transactions = self._drop_after_due_date(transactions, due_date)

        printed_total = extract_printed_total(text)
        if printed_total is None and service_total is not None and service_total > 0:
            printed_total = service_total
        if printed_total is not None:
            total_amount = printed_total
        elif parser.net_total_fallback:
            total_amount = net_sum(transactions)
        else:
            total_amount = expense_sum(transactions)

        result = ParseResult(
            transactions=tuple(transactions),
            due_date=due_date,
            total_amount=total_amount,
            bank_name=parser.bank_name,
            card_last_digits=card_digits or self._card_last_digits(transactions),
            source=source,
            parser_name=parser.name,
            reconciliation_difference=reconcile(
                transactions, printed_total, self.settings.reconciliation_tolerance
            ),
        )
        score = self.evaluator.evaluate(result, text)
        logger.info(
            "Parsed %s invoice: due_date=%s transactions=%d quality=%d source=%s",
            parser.name,
            due_date,
            len(transactions),
            score,
            source,
        )
        return result.model_copy(update={"quality_score": score})

    @staticmethod
    def _drop_after_due_date(transactions: list[ParsedTransaction], due_date: date) -> list[ParsedTransaction]:
        kept = [
            tx
            for tx in transactions
            if not (tx.transaction_type == TransactionType.EXPENSE and tx.transaction_date > due_date)
        ]
        if len(kept) < len(transactions):
            logger.info(
                "Dropped %d expense rows dated after due date %s",
                len(transactions) - len(kept),
                due_date,
            )
        return kept

    @staticmethod
    def _card_last_digits(transactions: list[ParsedTransaction]) -> str | None:
        """Last four digits shared by every labelled row, or None when ambiguous."""
        digits: set[str] = set()
        for tx in transactions:
            if not tx.card_name:
                continue
            match = _CARD_FINAL.search(tx.card_name) or _TRAILING_DIGITS.search(tx.card_name)
            if match:
                digits.add(match.group(1))
        return digits.pop() if len(digits) == 1 else None


def parse_invoice(
    text: str,
    pdf_bytes: bytes | None = None,
    due_date_override: date | None = None,
    parsers: Sequence[InvoiceParser] | None = None,
    settings: Settings | None = None,
) -> ParseResult:
    """Convenience function: parse with the default registry.

    Args:
        text: Plain text extracted from the invoice
        pdf_bytes: Original document for PDF-aware strategies
        due_date_override: Caller-supplied due date fallback
        parsers: Strategy registry (default: ``build_default_parsers()``
            without an extraction client)
        settings: Engine settings

    Returns:
        ParseResult with quality score
    """
    pipeline = InvoicePipeline(parsers if parsers is not None else build_default_parsers(), settings)
    return pipeline.parse(text, pdf_bytes=pdf_bytes, due_date_override=due_date_override)
