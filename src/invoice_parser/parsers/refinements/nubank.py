"""Nubank parser refinement.

Nubank rows read "06 NOV  🔄  Merchant  R$ 6,90", optionally followed by
a "└→ Total e pagar: R$ 6,90 (...)" detail line that carries the amount
actually billed (purchase + IOF + interest). Payments are printed as
"Pagamento em 05 NOV  -R$ 934,83".
"""

import logging
import re
from datetime import date
from decimal import Decimal

from invoice_parser.categorization import categorize
from invoice_parser.core.exceptions import MalformedLineError
from invoice_parser.normalize import normalize, normalize_merchant
from invoice_parser.parsers.base import InvoiceParser, has_itau_layout_markers, parse_brl_amount
from invoice_parser.parsers.dates import month_from_token, resolve_date
from invoice_parser.schemas.internal import ParsedTransaction, TransactionType

logger = logging.getLogger(__name__)

_AMOUNT = r"([\d.]+,\d{2})"

# Nubank-specific families checked before the shared mapper.
_CATEGORY_OVERRIDES = [
    ("Seguro", re.compile(r"PEPAY|SEGUROFATURA|SEGURO")),
    ("Transporte", re.compile(r"\b(?:UBER|99|TAXI|BOLT|LOGGI)\b")),
    ("iFood", re.compile(r"IFOOD|\bIFD\b|DELIVERY")),
    ("Saúde", re.compile(r"FARMACIA|DROGARIA|HOSPITAL|CLINICA|MEDICO|ODONTO|DENTISTA")),
    ("Alimentação", re.compile(
        r"RESTAURANTE|\bBAR\b|PIZZARIA|BURGER|SUSHI|PADARIA|CONFEITARIA|CHURRASC|LANCHONETE|\bCAFE\b|BELMONTE|\bBAFO\b"
    )),
    ("Assinaturas", re.compile(
        r"GOOGLE|MICROSOFT|ADOBE|NETFLIX|SPOTIFY|AMAZON|APPLE|DROPBOX|FIGMA|NOTION|CANVA|BRASIL PAGAMENTOS"
    )),
    ("Lazer", re.compile(r"PARQUE|CINEMA|TEATRO|MUSEU|ENTRETENIMENTO|DIVERSAO|JOGO|GAME")),
]


class NubankParser(InvoiceParser):
    """Parser refinement for Nubank invoices.

    Nubank-specific behaviors:
    - Dates as "06 NOV" (OCR sometimes prints "N0V")
    - Icon glyphs between the date and the merchant are dropped
    - "Total e pagar" detail lines override the row amount
    - Rows without a date inherit the last printed date
    """

    name = "nubank"
    bank_name = "Nubank"

    DUE_DATE = re.compile(r"(?i)Data de vencimento:\s*(\d{2})\s+([A-Z]{3})\s+(\d{4})")
    ROW = re.compile(r"^(\d{2})\s+([A-Z0-9]{3})\s+(.+?)\s+R\$\s*" + _AMOUNT + r"(?:\s+.*)?$")
    DATE_ONLY = re.compile(r"^(\d{2})\s+([A-Z0-9]{3})$")
    ROW_NO_AMOUNT = re.compile(r"^(\d{2})\s+([A-Z0-9]{3})\s+(.+?)$")
    UNDATED_ROW = re.compile(r"^(?![↳└])(.+?)\s+(-?)R\$\s*" + _AMOUNT + r"\s*$")
    BARE_AMOUNT = re.compile(r"^(?:R\$\s*)?" + _AMOUNT + r"$")
    PAYMENT_INLINE = re.compile(r"(?i)^Pagamento em\s+(\d{2})\s+([A-Z0-9]{3})\s*:?\s*-R\$\s*" + _AMOUNT + r"$")
    PAYMENT_ROW = re.compile(r"(?i)^(\d{2})\s+([A-Z0-9]{3}).*?\bPagamento em\b.*?-R\$\s*" + _AMOUNT + r"$")
    BILLED_TOTAL = re.compile(r"(?i)total\s+[ea]\s+pagar\s*:?\s*R\$\s*" + _AMOUNT)

    def is_applicable(self, text: str) -> bool:
        n = normalize(text)
        if not any(brand in n for brand in ("nubank", "nu pagamentos", "nucard", "nu bank")):
            return False
        return "data de vencimento" in n and "transacoes" in n and "fatura" in n

    def conflicts_with(self, text: str) -> bool:
        return has_itau_layout_markers(text)

    def extract_due_date(self, text: str) -> date | None:
        if not text:
            return None
        match = self.DUE_DATE.search(text)
        if not match:
            return None
        month = month_from_token(match.group(2))
        if month is None:
            return None
        try:
            return date(int(match.group(3)), month, int(match.group(1)))
        except ValueError:
            return None

    def extract_transactions(self, text: str) -> list[ParsedTransaction]:
        if not text or not text.strip():
            return []
        due_date = self.extract_due_date(text)
        if due_date is None:
            return []

        transactions: list[ParsedTransaction] = []
        last_date: date | None = None
        pending: tuple[date, str] | None = None
        for line in self._transaction_lines(text):
            try:
                if pending is not None:
                    bare = self.BARE_AMOUNT.match(line)
                    pending_date, pending_description = pending
                    pending = None
                    if bare:
                        transactions.append(self._build(pending_description, parse_brl_amount(bare.group(1)), pending_date))
                        continue

                if line.startswith(("↳", "└")) or self.BILLED_TOTAL.search(line):
                    billed = self.BILLED_TOTAL.search(line)
                    if billed and transactions:
                        transactions[-1] = self._adjust_amount(transactions[-1], billed.group(1))
                    continue

                payment = self.PAYMENT_INLINE.match(line) or self.PAYMENT_ROW.match(line)
                if payment:
                    payment_date = self._row_date(payment.group(1), payment.group(2), due_date)
                    last_date = payment_date
                    transactions.append(self._build_payment(payment, payment_date))
                    continue

                row = self.ROW.match(line)
                if row:
                    last_date = self._row_date(row.group(1), row.group(2), due_date)
                    description = self._strip_icons(row.group(3))
                    if description:
                        transactions.append(self._build(description, parse_brl_amount(row.group(4)), last_date))
                    continue

                date_only = self.DATE_ONLY.match(line)
                if date_only:
                    last_date = self._row_date(date_only.group(1), date_only.group(2), due_date)
                    continue

                no_amount = self.ROW_NO_AMOUNT.match(line)
                if no_amount and "R$" not in line:
                    row_date = self._row_date(no_amount.group(1), no_amount.group(2), due_date)
                    description = self._strip_icons(no_amount.group(3))
                    n = normalize(description)
                    if description and not any(w in n for w in ("pagamento em", "pagamentos", "fatura")):
                        last_date = row_date
                        pending = (row_date, description)
                    continue

                undated = self.UNDATED_ROW.match(line)
                if undated and last_date is not None and not undated.group(2):
                    description = self._strip_icons(undated.group(1))
                    n = normalize(description)
                    if description and not any(w in n for w in ("pagamento", "fatura", "total", "limite", "saldo")):
                        transactions.append(self._build(description, parse_brl_amount(undated.group(3)), last_date))
            except MalformedLineError as exc:
                logger.debug("%s: dropped line %r (%s)", self.name, line, exc)
        return transactions

    @staticmethod
    def _transaction_lines(text: str) -> list[str]:
        """Non-empty lines after the "TRANSAÇÕES" header (all lines when absent)."""
        lines = [raw.strip() for raw in text.splitlines() if raw.strip()]
        for index, line in enumerate(lines):
            if normalize(line).startswith("transacoes"):
                return lines[index + 1:]
        return lines

    @staticmethod
    def _row_date(day: str, month_token: str, due_date: date) -> date:
        month = month_from_token(month_token)
        if month is None:
            raise MalformedLineError(details={"date": f"{day} {month_token}"})
        return resolve_date(int(day), month, due_date)

    @staticmethod
    def _strip_icons(description: str) -> str:
        """Drop up to three leading glyph tokens (emoji, arrows) before the merchant."""
        tokens = description.split()
        dropped = 0
        while tokens and dropped < 3 and len(tokens[0]) <= 4 and not any(ch.isalnum() for ch in tokens[0]):
            tokens.pop(0)
            dropped += 1
        return " ".join(tokens)

    def _build(self, description: str, amount: Decimal, transaction_date: date) -> ParsedTransaction:
        return self.build_transaction(
            description,
            amount,
            transaction_date,
            TransactionType.EXPENSE,
            category=self._categorize(description),
            card_name=self.bank_name,
        )

    def _build_payment(self, match: re.Match, payment_date: date) -> ParsedTransaction:
        description = f"Pagamento em {match.group(1)} {match.group(2).upper()}"
        return self.build_transaction(
            description,
            parse_brl_amount(match.group(3)),
            payment_date,
            TransactionType.INCOME,
            category="Reembolso",
            card_name=self.bank_name,
        )

    @staticmethod
    def _adjust_amount(transaction: ParsedTransaction, billed: str) -> ParsedTransaction:
        amount = abs(parse_brl_amount(billed))
        if amount == transaction.amount:
            return transaction
        return transaction.model_copy(update={"amount": amount})

    @staticmethod
    def _categorize(description: str) -> str:
        key = normalize_merchant(description)
        for label, pattern in _CATEGORY_OVERRIDES:
            if pattern.search(key):
                return label
        return categorize(description, TransactionType.EXPENSE)
