"""Sicredi parser refinement.

Sicredi prints a wide table ("Data e hora  Cidade  Compra  Descrição
Parcela  Valor em reais") whose columns survive text extraction only as
runs of two or more spaces. When the columns collapse, the extraction
service is the better source (``parse_with_source``).
"""

import logging
import re
from datetime import date
from decimal import Decimal

from invoice_parser.categorization import categorize
from invoice_parser.core.exceptions import ExternalServiceError, MalformedLineError
from invoice_parser.extraction.client import ExtractorClient
from invoice_parser.normalize import normalize
from invoice_parser.parsers.base import (
    InvoiceParser,
    has_itau_layout_markers,
    infer_direction,
    parse_brl_amount,
)
from invoice_parser.parsers.dates import (
    find_due_date,
    month_from_token,
    parse_flexible_date,
    prepare_for_dates,
    resolve_date,
)
from invoice_parser.schemas.extractor import ExtractorResponse
from invoice_parser.schemas.internal import ParsedTransaction, ParseResult, TransactionType

logger = logging.getLogger(__name__)

DUE_DATE_PATTERNS = [
    (re.compile(
        r"(?i)\bvencimento\b\s*[:\-]?\s*(?P<day>\d{2})/(?P<month>\d{2})/(?P<year>\d{4})"
    ), 60),
]
_HAS_DUE = re.compile(r"(?i)\bvencimento\b\s+\d{2}/\d{2}/\d{4}")


class SicrediParser(InvoiceParser):
    """Parser refinement for Sicredi credit card invoices.

    Sicredi-specific behaviors:
    - Dates as "11/nov" with the time in the same column
    - Columns split on runs of two or more spaces
    - One card block per "Cartão ..." line
    """

    name = "sicredi"
    bank_name = "Sicredi"

    ROW_START = re.compile(r"(?i)^\d{2}/[a-z]{3}\b")
    ROW_DATE = re.compile(r"(?i)^(\d{2})/([a-z]{3})")
    INSTALLMENT = re.compile(r"^(\d{2})/(\d{2})$")
    COLUMN_GAP = re.compile(r"\s{2,}")

    def __init__(self, client: ExtractorClient | None = None):
        super().__init__()
        self.client = client

    def is_applicable(self, text: str) -> bool:
        n = normalize(text)
        if not n:
            return False
        has_due = bool(_HAS_DUE.search(prepare_for_dates(text)))
        if "sicredi" in n and has_due:
            return True
        return has_due and "data e hora" in n and "valor em reais" in n

    def conflicts_with(self, text: str) -> bool:
        return has_itau_layout_markers(text)

    def extract_due_date(self, text: str) -> date | None:
        return find_due_date(text, DUE_DATE_PATTERNS, label=self.name)

    def extract_transactions(self, text: str) -> list[ParsedTransaction]:
        if not text or not text.strip():
            return []
        due_date = self.extract_due_date(text)
        if due_date is None:
            return []

        transactions: list[ParsedTransaction] = []
        card_name: str | None = None
        for raw in text.splitlines():
            line = raw.strip()
            if not line:
                continue
            n = normalize(line)
            if n.startswith("cartao "):
                card_name = line
                continue
            if "data e hora" in n and "valor em reais" in n:
                continue
            if not self.ROW_START.match(line):
                continue
            try:
                tx = self._parse_row(line, due_date, card_name or self.bank_name)
            except MalformedLineError as exc:
                logger.debug("%s: dropped line %r (%s)", self.name, line, exc)
                continue
            if tx is not None:
                transactions.append(tx)
        return transactions

    def _parse_row(self, line: str, due_date: date, card_name: str) -> ParsedTransaction | None:
        parts = self.COLUMN_GAP.split(line)
        if len(parts) < 4:
            return None

        date_match = self.ROW_DATE.match(parts[0])
        month = month_from_token(date_match.group(2)) if date_match else None
        if month is None:
            raise MalformedLineError(details={"date": parts[0]})
        transaction_date = resolve_date(int(date_match.group(1)), month, due_date)

        description = parts[3].strip()
        if not description:
            return None
        amount = parse_brl_amount(parts[-1])

        installment = (None, None)
        for part in parts[1:-1]:
            installment_match = self.INSTALLMENT.match(part.strip())
            if installment_match:
                number, total = int(installment_match.group(1)), int(installment_match.group(2))
                if 1 <= number <= total:
                    installment = (number, total)
                break

        transaction_type = infer_direction(amount < 0, description, extra_keywords=("pagamento",))
        return self.build_transaction(
            description,
            amount,
            transaction_date,
            transaction_type,
            category=self._categorize(description, transaction_type),
            card_name=card_name,
            installment=installment,
        )

    @staticmethod
    def _categorize(description: str, transaction_type: TransactionType) -> str:
        n = normalize(description)
        if transaction_type == TransactionType.EXPENSE and ("iof" in n or "anuidade" in n):
            return "Taxas e Juros"
        return categorize(description, transaction_type)

    def parse_with_source(self, pdf_bytes: bytes, text: str) -> ParseResult:
        """Parse through the extraction service, falling back to the text path."""
        if self.client is None:
            return self.parse_text(text)
        try:
            response = self.client.parse_sicredi(pdf_bytes)
        except ExternalServiceError as exc:
            logger.warning("%s: extraction service failed (%s); using text path", self.name, exc)
            return self.parse_text(text)

        result = self._from_response(response, text)
        if not result.transactions:
            logger.warning("%s: extraction service returned no transactions; using text path", self.name)
            return self.parse_text(text)
        return result

    def _from_response(self, response: ExtractorResponse, text: str) -> ParseResult:
        due_date = parse_flexible_date(response.due_date, None) or self.extract_due_date(text)

        transactions: list[ParsedTransaction] = []
        finals: set[str] = set()
        for item in response.transactions:
            transaction_date = parse_flexible_date(item.date, due_date)
            description = (item.description or "").strip()
            if transaction_date is None or item.amount is None or not description:
                logger.debug("%s: dropped service row %r", self.name, item)
                continue

            amount = Decimal(item.amount)
            card_name = self.bank_name
            card_final = (item.card_final or "").strip()
            if re.fullmatch(r"\d{4}", card_final):
                card_name = f"{self.bank_name} final {card_final}"
                finals.add(card_final)

            installment = (None, None)
            if item.installment and item.installment.current and item.installment.total:
                if 1 <= item.installment.current <= item.installment.total:
                    installment = (item.installment.current, item.installment.total)

            transaction_type = TransactionType.INCOME if amount < 0 else TransactionType.EXPENSE
            transactions.append(
                self.build_transaction(
                    description,
                    amount,
                    transaction_date,
                    transaction_type,
                    category=self._categorize(description, transaction_type),
                    card_name=card_name,
                    installment=installment,
                )
            )

        return ParseResult(
            transactions=tuple(transactions),
            due_date=due_date,
            total_amount=response.total,
            bank_name=self.bank_name,
            card_last_digits=finals.pop() if len(finals) == 1 else None,
            source="extractor",
            parser_name=self.name,
        )
