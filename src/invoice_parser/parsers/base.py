"""Base class for institution parsers.

Every institution layout gets one subclass. The base holds the contract
(applicability, due date, transactions) and the line-level helpers every
layout needs: Brazilian amounts, installment fractions, direction
inference and transaction construction. Subclasses override only what is
different for their layout.
"""

import re
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Protocol, runtime_checkable

from invoice_parser.categorization import categorize, infer_scope
from invoice_parser.core.exceptions import MalformedLineError
from invoice_parser.normalize import normalize
from invoice_parser.schemas.internal import ParsedTransaction, ParseResult, TransactionType

_CURRENCY = re.compile(r"(?i)(?:US|R)\$")
_BR_THOUSANDS = re.compile(r"^\d{1,3}(?:\.\d{3})+(?:,\d{1,2})?$")

# "03/12", "3x12", "03 de 12", "09de10"
_INSTALLMENT_PATTERNS = [
    re.compile(r"(?<![\d/])(\d{1,2})\s*/\s*(\d{1,2})(?![\d/])"),
    re.compile(r"(?i)(?<!\w)(\d{1,2})x(\d{1,2})(?!\w)"),
    re.compile(r"(?i)(?<!\w)(\d{1,2})\s*de\s*(\d{1,2})(?!\w)"),
]

_REFUND_WORDS = ("estorno", "credito", "reembolso", "devolucao")
_PAYMENT_WORDS = ("pagamento", "pagto", "pgto")

# Layout markers that only Itaú invoices print.
_ITAU_LAYOUT_MARKERS = [
    re.compile(r"lan(?:c)?amentos\s*:?\s*compras\s+e\s+saques"),
    re.compile(r"lan(?:c)?amentos\s+no\s+cart(?:a)?o\s*\(?\s*final\s*\d{4}"),
]
_PERSONNALITE_MARKER = re.compile(r"personn?alite|p\s*e\s*r\s*s\s*o\s*n(?:\s*n)?\s*a\s*l\s*i\s*t\s*e")


def parse_brl_amount(value: str | None) -> Decimal:
    """Parse a printed amount into a signed Decimal.

    Accepts "1.234,56", "1234,56", "1234.56", "R$ 18,40", "-43,75" and the
    U+2212 minus sign some PDFs emit.

    Raises:
        MalformedLineError: If the value is not a number
    """
    if value is None:
        raise MalformedLineError(details={"amount": value})
    text = _CURRENCY.sub("", value).replace("−", "-").replace(" ", "").strip()
    negative = text.startswith("-") or text.endswith("-")
    text = text.strip("-+")
    if not text:
        raise MalformedLineError(details={"amount": value})

    if "," in text:
        text = text.replace(".", "").replace(",", ".")
    elif _BR_THOUSANDS.match(text):
        text = text.replace(".", "")
    try:
        amount = Decimal(text)
    except InvalidOperation as exc:
        raise MalformedLineError(details={"amount": value}) from exc
    return -amount if negative else amount


def split_installment(description: str) -> tuple[str, int | None, int | None]:
    """Pull an installment fraction out of a description.

    The last fraction wins ("LOJA 2/3 09/10" -> 9 of 10). Fractions where
    the index exceeds the total are left alone, they are more likely part
    of the merchant name.

    Returns:
        (description without the fraction, current, total)
    """
    for pattern in _INSTALLMENT_PATTERNS:
        matches = list(pattern.finditer(description))
        if not matches:
            continue
        match = matches[-1]
        current, total = int(match.group(1)), int(match.group(2))
        if current < 1 or total < 1 or current > total:
            continue
        cleaned = (description[:match.start()] + " " + description[match.end():]).strip()
        cleaned = re.sub(r"\s{2,}", " ", cleaned).rstrip(" -")
        return cleaned or description.strip(), current, total
    return description.strip(), None, None


def infer_direction(
    negative: bool,
    description: str | None,
    in_payment_section: bool = False,
    extra_keywords: tuple[str, ...] = (),
) -> TransactionType:
    """Shared direction rule.

    A printed minus sign always means INCOME. Refund wording means INCOME
    anywhere; payment wording only inside a payment section. Parsers add
    layout-specific words through ``extra_keywords``.
    """
    if negative:
        return TransactionType.INCOME
    text = normalize(description)
    if any(word in text for word in _REFUND_WORDS + extra_keywords):
        return TransactionType.INCOME
    if in_payment_section and any(word in text for word in _PAYMENT_WORDS):
        return TransactionType.INCOME
    return TransactionType.EXPENSE


def has_itau_layout_markers(text: str | None) -> bool:
    """True when the text carries layout markers specific to Itaú invoices."""
    normalized = normalize(text)
    return any(marker.search(normalized) for marker in _ITAU_LAYOUT_MARKERS) or has_personnalite_marker(text)


def has_personnalite_marker(text: str | None) -> bool:
    return bool(_PERSONNALITE_MARKER.search(normalize(text)))


class InvoiceParser:
    """Base parser strategy.

    Subclasses must implement:
        - is_applicable(): does the text look like this layout?
        - extract_due_date(): the invoice due date, or None
        - extract_transactions(): every transaction of the current invoice

    And may override:
        - conflicts_with(): guardrail that disqualifies the parser when the
          text carries strong markers of another institution

    Instances hold only compiled patterns, so one instance can serve any
    number of documents.
    """

    name: str = "base"
    bank_name: str | None = None
    # Drop EXPENSE rows dated after the due date (next-invoice echoes).
    drop_rows_after_due_date: bool = False
    # Without a printed total, fall back to the net sum instead of expenses.
    net_total_fallback: bool = False

    def is_applicable(self, text: str) -> bool:
        raise NotImplementedError

    def extract_due_date(self, text: str) -> date | None:
        raise NotImplementedError

    def extract_transactions(self, text: str) -> list[ParsedTransaction]:
        raise NotImplementedError

    def conflicts_with(self, text: str) -> bool:
        return False

    def parse_text(self, text: str) -> ParseResult:
        """Run the text path and package it as a result (no quality score)."""
        return ParseResult(
            transactions=tuple(self.extract_transactions(text)),
            due_date=self.extract_due_date(text),
            bank_name=self.bank_name,
            source="text",
            parser_name=self.name,
        )

    def build_transaction(
        self,
        description: str,
        amount: Decimal,
        transaction_date: date,
        transaction_type: TransactionType,
        category: str | None = None,
        card_name: str | None = None,
        cardholder_name: str | None = None,
        installment: tuple[int | None, int | None] = (None, None),
    ) -> ParsedTransaction:
        """Assemble a ParsedTransaction with an unsigned amount.

        The category falls back to the merchant mapper when the layout did
        not provide one.
        """
        number, total = installment
        return ParsedTransaction(
            description=description,
            amount=abs(amount),
            transaction_type=transaction_type,
            transaction_date=transaction_date,
            category=category or categorize(description, transaction_type),
            scope=infer_scope(description),
            card_name=card_name,
            cardholder_name=cardholder_name,
            installment_number=number,
            installment_total=total,
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


@runtime_checkable
class PdfAwareParser(Protocol):
    """Secondary capability: parse from the original document bytes.

    Implementations call the external extraction service and fall back to
    their own text path when it fails, so the returned result is always
    usable. ``source`` tells which path produced it.
    """

    def parse_with_source(self, pdf_bytes: bytes, text: str) -> ParseResult:
        ...
