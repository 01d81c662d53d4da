"""Bradesco parser refinement.

Bradesco prints a "LANÇAMENTOS" table where long rows wrap: the date and
merchant sit on one line and the amount on the next, often followed by
one-word continuation markers ("CAM", "PA"). Rows are merged back before
parsing.
"""

import logging
import re
from datetime import date

from invoice_parser.categorization import categorize
from invoice_parser.core.exceptions import MalformedLineError
from invoice_parser.normalize import normalize
from invoice_parser.parsers.base import (
    InvoiceParser,
    has_itau_layout_markers,
    parse_brl_amount,
    split_installment,
)
from invoice_parser.parsers.dates import find_due_date, parse_day_month
from invoice_parser.schemas.internal import ParsedTransaction, TransactionType

logger = logging.getLogger(__name__)

_DUE_KEYWORD = r"(?i)\b(?:venc(?:imento)?|vcto?)\b\.?\s*[:\-]?\s*"

DUE_DATE_PATTERNS = [
    (re.compile(_DUE_KEYWORD + r"(?P<day>\d{2})/(?P<month>\d{2})/(?P<year>\d{4}|\d{2})(?!\d)"), 60),
    (re.compile(_DUE_KEYWORD + r"(?P<day>\d{2})/(?P<month>\d{2})(?![/\d])"), 40),
]

_INCOME_WORDS = ("reembolso", "credito", "devolucao", "cashback", "paygoal")


class BradescoParser(InvoiceParser):
    """Parser refinement for Bradesco credit card invoices.

    Bradesco-specific behaviors:
    - Wrapped rows: a dated line without amount waits for the next line
      that ends with one
    - Installments as "03/12" like every layout; otherwise "P/1" marks
      the index alone. Both markers leave the description
    - Days past the month end are pulled back to its last day
    - Payment echoes and "TOTAL PARA" subtotals are skipped
    """

    name = "bradesco"
    bank_name = "Bradesco"

    ROW_START = re.compile(r"^(\d{2}/\d{2})(?:/\d{2,4})?[ \t]+(.+?)\s*$")
    TRAILING_AMOUNT = re.compile(r"(-?(?:\d{1,3}(?:\.\d{3})*|\d+)(?:,\d{2}|\.\d{2}))\s*$")
    INSTALLMENT = re.compile(r"\bP/(\d+)(?:\s|$)")
    CARD = re.compile(r"(?im)^\s*cart[ãa]o\s*[:\-]\s*(.+?)\s*$")
    HOLDER = re.compile(r"(?im)^\s*titular\s*[:\-]?\s*(.+?)\s*$")

    _MARKERS = {"CAM", "PA"}
    _PAYMENT_WORDS = ("pagto", "pagamento", "deb em c/c", "debito em conta")

    def is_applicable(self, text: str) -> bool:
        n = normalize(text)
        if "bradesco" not in n or "vencimento" not in n:
            return False
        return "total da fatura" in n or "lancamentos" in n or "historico de lancamentos" in n

    def conflicts_with(self, text: str) -> bool:
        return has_itau_layout_markers(text)

    def extract_due_date(self, text: str) -> date | None:
        return find_due_date(text, DUE_DATE_PATTERNS, label=self.name)

    def extract_transactions(self, text: str) -> list[ParsedTransaction]:
        if not text or not text.strip():
            return []
        due_date = self.extract_due_date(text)
        card_match = self.CARD.search(text)
        card_name = f"{self.bank_name} {card_match.group(1)}" if card_match else self.bank_name
        holder_match = self.HOLDER.search(text)
        holder = holder_match.group(1) if holder_match else None

        transactions: list[ParsedTransaction] = []
        pending: tuple[str, str] | None = None
        for line in self._launch_lines(text):
            if not line or line.upper() in self._MARKERS:
                continue

            amount_match = self.TRAILING_AMOUNT.search(line)
            if pending is not None:
                if not amount_match:
                    start = self.ROW_START.match(line)
                    if start:
                        pending = (start.group(1), start.group(2))
                    continue
                row = (pending[0], pending[1], amount_match.group(1))
                pending = None
            else:
                start = self.ROW_START.match(line)
                if not start:
                    continue
                rest = start.group(2)
                rest_amount = self.TRAILING_AMOUNT.search(rest)
                description = rest[:rest_amount.start()].strip() if rest_amount else ""
                if not rest_amount or not description:
                    pending = (start.group(1), rest)
                    continue
                row = (start.group(1), description, rest_amount.group(1))

            try:
                tx = self._build_row(*row, due_date=due_date, card_name=card_name, holder=holder)
            except MalformedLineError as exc:
                logger.debug("%s: dropped row %r (%s)", self.name, row, exc)
                continue
            if tx is not None:
                transactions.append(tx)
        return transactions

    def _launch_lines(self, text: str) -> list[str]:
        """Lines of the launches table (the whole text when the header is missing)."""
        lines = [raw.strip() for raw in text.splitlines()]
        start = next(
            (i for i, line in enumerate(lines) if "lancamentos" in normalize(line)),
            None,
        )
        if start is None:
            selected = []
            for line in lines:
                if "limites" in normalize(line):
                    break
                selected.append(line)
            return selected

        selected = []
        for line in lines[start + 1:]:
            n = normalize(line)
            if "limites" in n or "resumo da fatura" in n:
                break
            selected.append(line)
        return selected

    def _build_row(
        self,
        day_month: str,
        description: str,
        amount_text: str,
        due_date: date | None,
        card_name: str,
        holder: str | None,
    ) -> ParsedTransaction | None:
        description = description.strip()
        n = normalize(description)
        if not description or n.startswith("total para") or any(w in n for w in self._PAYMENT_WORDS):
            return None

        amount = parse_brl_amount(amount_text)
        transaction_date = parse_day_month(day_month, due_date, clamp=True)
        transaction_type = self._infer_type(n, amount < 0)

        description, number, total = split_installment(description)
        installment = (number, total)
        installment_match = self.INSTALLMENT.search(description)
        if installment_match:
            index = int(installment_match.group(1))
            if number is None and index >= 1:
                installment = (index, index)
            stripped = re.sub(r"\s{2,}", " ", self.INSTALLMENT.sub(" ", description)).strip()
            description = stripped or description

        return self.build_transaction(
            description,
            amount,
            transaction_date,
            transaction_type,
            category=self._categorize(description, n, transaction_type),
            card_name=card_name,
            cardholder_name=holder,
            installment=installment,
        )

    @staticmethod
    def _infer_type(normalized: str, negative: bool) -> TransactionType:
        if negative:
            return TransactionType.INCOME
        if "anuidade" in normalized or "compra de pontos" in normalized:
            return TransactionType.EXPENSE
        if any(word in normalized for word in _INCOME_WORDS):
            return TransactionType.INCOME
        return TransactionType.EXPENSE

    @staticmethod
    def _categorize(description: str, normalized: str, transaction_type: TransactionType) -> str:
        if "anuidade" in normalized:
            return "Taxas e Juros"
        if transaction_type == TransactionType.INCOME and any(w in normalized for w in _INCOME_WORDS):
            return "Reembolso"
        if "ctce" in normalized:
            return "Hospedagem"
        if "exterior" in normalized or "iof" in normalized:
            return "Viagem"
        return categorize(description, transaction_type)
