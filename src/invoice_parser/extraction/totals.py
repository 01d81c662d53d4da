"""Printed invoice totals, generic due-date fallback and reconciliation.

These run after a strategy has been chosen and work on the whole text,
independently of the institution layout.
"""

import logging
import re
from collections.abc import Iterable
from datetime import date
from decimal import Decimal

from invoice_parser.core.exceptions import MalformedLineError
from invoice_parser.parsers.base import parse_brl_amount
from invoice_parser.parsers.dates import find_due_date
from invoice_parser.schemas.internal import ParsedTransaction, TransactionType

logger = logging.getLogger(__name__)

# The amount must end at its cents so that digits printed after it (a
# date on the same line, a row on the next) are not glued on.
_TOTAL_VALUE = r"[^0-9]{0,25}R?\$?\s*([0-9][0-9 .]{0,20}?,[0-9]{2}|[0-9][0-9,]{0,20}?\.[0-9]{2})(?![0-9])"

# Ordered: the current-invoice wordings come before the generic ones, and
# "total da fatura anterior" is never taken.
PRINTED_TOTAL_PATTERNS = [
    re.compile(r"(?is)\btotal\s+desta\s+fatura\b" + _TOTAL_VALUE),
    re.compile(r"(?is)\blan[cç]amentos\s+atuais\b" + _TOTAL_VALUE),
    re.compile(r"(?is)\btotal\s+dos\s+lan[cç]amentos\s+atuais\b" + _TOTAL_VALUE),
    re.compile(r"(?is)\btotal\s+(?:da\s+)?fatura\b(?!\s*anterior)" + _TOTAL_VALUE),
    re.compile(r"(?is)\btotal\s+a\s+pagar\b" + _TOTAL_VALUE),
    re.compile(r"(?is)\bvalor\s+total\b" + _TOTAL_VALUE),
]

_FALLBACK_KEYWORD = r"(?is)\b(?:venc(?:imento)?|vct(?:o)?|data\s+de\s+vencimento)\b[^\d]{0,30}"

FALLBACK_DUE_DATE_PATTERNS = [
    (re.compile(_FALLBACK_KEYWORD + r"(?P<day>\d{2})[./-](?P<month>\d{2})[./-](?P<year>\d{4})"), 60),
    (re.compile(_FALLBACK_KEYWORD + r"(?P<day>\d{2})[./-](?P<month>\d{2})(?![./-]\d)"), 40),
    (re.compile(
        r"(?is)\b(?:venc(?:imento)?|vct(?:o)?|data\s+de\s+vencimento|fatura)\b[^\d]{0,30}"
        r"(?P<day>\d{2})\s+(?P<mon>[a-z]{3})\s+(?P<year>\d{4})"
    ), 30),
]
FALLBACK_DIGITS_KEYWORD = re.compile(r"(?i)\b(?:venc(?:imento)?|vct(?:o)?|data\s+de\s+vencimento)\b")


def extract_printed_total(text: str | None) -> Decimal | None:
    """Total printed on the invoice, or None when no positive total is found.

    Patterns are tried in order and the first positive value wins.
    """
    if not text or not text.strip():
        return None
    searchable = text.replace("\u00a0", " ")
    for pattern in PRINTED_TOTAL_PATTERNS:
        match = pattern.search(searchable)
        if not match:
            continue
        try:
            value = parse_brl_amount(re.sub(r"\s+", "", match.group(1)))
        except MalformedLineError:
            continue
        if value > 0:
            return value
    return None


def fallback_due_date(text: str | None) -> date | None:
    """Layout-independent due date (numeric, no-year, textual month, digits-only)."""
    value = find_due_date(
        text,
        FALLBACK_DUE_DATE_PATTERNS,
        digits_keyword=FALLBACK_DIGITS_KEYWORD,
        label="fallback",
    )
    if value is not None:
        logger.warning("Fallback due date extracted: %s", value)
    return value


def expense_sum(transactions: Iterable[ParsedTransaction]) -> Decimal:
    return sum(
        (tx.amount for tx in transactions if tx.transaction_type == TransactionType.EXPENSE),
        Decimal("0"),
    )


def net_sum(transactions: Iterable[ParsedTransaction]) -> Decimal:
    """Expenses minus incomes."""
    return sum((tx.signed_amount for tx in transactions), Decimal("0"))


def reconcile(
    transactions: Iterable[ParsedTransaction],
    printed_total: Decimal | None,
    tolerance: Decimal = Decimal("0.01"),
) -> Decimal | None:
    """Compare the net sum of the rows against the printed total.

    Args:
        transactions: Parsed rows of the invoice
        printed_total: Total printed on the document (None skips the check)
        tolerance: Largest difference still considered a match

    Returns:
        The absolute difference, or None when there is no printed total
    """
    if printed_total is None:
        return None
    difference = abs(net_sum(transactions) - printed_total)
    if difference > tolerance:
        logger.warning(
            "Reconciliation mismatch: rows sum differs from printed total %s by %s",
            printed_total,
            difference,
        )
    return difference
