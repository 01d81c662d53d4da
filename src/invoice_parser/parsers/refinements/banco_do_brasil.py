"""Banco do Brasil (Ourocard) parser refinement.

Rows look like "21/08 MERCHANT TX R$ 79,68": the two-letter column before
the amount is the country (or US state) of the merchant. International
rows are followed by indented detail lines with the foreign amount and
the exchange rate, which sometimes get glued onto the row itself.
"""

import logging
import re
from datetime import date

from invoice_parser.categorization import categorize
from invoice_parser.core.exceptions import MalformedLineError
from invoice_parser.normalize import normalize
from invoice_parser.parsers.base import InvoiceParser, has_itau_layout_markers, parse_brl_amount
from invoice_parser.parsers.dates import find_due_date, parse_day_month
from invoice_parser.schemas.internal import ParsedTransaction, TransactionType

logger = logging.getLogger(__name__)

_DUE_KEYWORD = r"(?i)\bvenc(?:imento)?\b[^\d\n]{0,20}"

DUE_DATE_PATTERNS = [
    (re.compile(_DUE_KEYWORD + r"(?P<day>\d{2})/(?P<month>\d{2})/(?P<year>\d{4})"), 60),
    (re.compile(_DUE_KEYWORD + r"(?P<day>\d{2})/(?P<month>\d{2})(?![/\d])"), 40),
]
DUE_DIGITS_KEYWORD = re.compile(r"(?i)\bvencimento\b")

_CATEGORY_HEADERS = {
    "lazer", "restaurantes", "servicos", "vestuario", "viagens", "outros lancamentos",
}
_PAYMENT_WORDS = ("pgto", "pagto", "pagamento")
_REFUND_WORDS = ("credito", "estorno", "reembolso")


class BancoDoBrasilParser(InvoiceParser):
    """Parser refinement for Banco do Brasil (Ourocard) invoices.

    Banco do Brasil-specific behaviors:
    - Table starts after the "Descrição País Valor" header
    - Country column before "R$"; non-BR rows drop their detail lines
    - Payments of previous invoices ("PGTO. COBRANCA") are skipped
    """

    name = "banco_do_brasil"
    bank_name = "Banco do Brasil"

    LINE_PATTERN = re.compile(r"^(\d{2}/\d{2})\s+(.+?)\s+(?:([A-Z]{2})\s+)?R\$\s*([-−\d.,]+)\s*$")
    DESCRIPTION_CUT = re.compile(r"(?i)\s*(?:\*\*\*|cota[cç][aã]o|\biof\b).*$")
    HOLDER = re.compile(r"(?im)^\s*(?:titular|cliente|nome)\s*[:\-]\s*(.+?)\s*$")

    def is_applicable(self, text: str) -> bool:
        n = normalize(text)
        has_brand = (
            "banco do brasil" in n
            or "ourocard" in n
            or "bb.com.br" in n
            or ("ouvidoria" in n and re.search(r"\bbb\b", n) is not None)
        )
        if not has_brand:
            return False
        has_summary = "resumo da fatura" in n and ("total desta fatura" in n or "total da fatura" in n)
        has_launches = "pagamento efetuado" in n and "lancamentos atuais" in n
        return has_summary or has_launches

    def conflicts_with(self, text: str) -> bool:
        return has_itau_layout_markers(text)

    def extract_due_date(self, text: str) -> date | None:
        return find_due_date(text, DUE_DATE_PATTERNS, digits_keyword=DUE_DIGITS_KEYWORD, label=self.name)

    def extract_transactions(self, text: str) -> list[ParsedTransaction]:
        if not text or not text.strip():
            return []
        due_date = self.extract_due_date(text)
        if due_date is None:
            return []
        holder = self._find_holder(text)

        transactions: list[ParsedTransaction] = []
        in_table = False
        skipping_details = False
        for raw in text.splitlines():
            line = raw.strip()
            n = normalize(line)
            if not in_table:
                in_table = "descricao" in n and "valor" in n and "pais" in n
                continue
            if not line:
                continue
            if "total da fatura" in n or ("resumo" in n and "fatura" in n):
                break
            if skipping_details and raw[:1].isspace():
                continue
            skipping_details = False
            if n in _CATEGORY_HEADERS:
                continue

            match = self.LINE_PATTERN.match(line)
            if not match:
                logger.debug("%s: ignored line %r", self.name, line)
                continue
            try:
                tx = self._parse_row(match, due_date, holder)
            except MalformedLineError as exc:
                logger.debug("%s: dropped line %r (%s)", self.name, line, exc)
                continue
            country = match.group(3)
            skipping_details = country is not None and country != "BR"
            if tx is not None:
                transactions.append(tx)
        return transactions

    def _parse_row(self, match: re.Match, due_date: date, holder: str | None) -> ParsedTransaction | None:
        day_month, description, _country, amount_text = match.groups()
        description = self.DESCRIPTION_CUT.sub("", description).strip()
        key = re.sub(r"[^a-z0-9 ]", " ", normalize(description)).split()
        if not description or not key:
            return None
        if key[0] in _PAYMENT_WORDS and "cobranca" in key:
            return None

        amount = parse_brl_amount(amount_text)
        n = normalize(description)
        transaction_type = TransactionType.EXPENSE
        if amount < 0 or any(word in n for word in _PAYMENT_WORDS + _REFUND_WORDS):
            transaction_type = TransactionType.INCOME

        return self.build_transaction(
            description,
            amount,
            parse_day_month(day_month, due_date),
            transaction_type,
            category=self._categorize(description, n, transaction_type),
            card_name=self.bank_name,
            cardholder_name=holder,
        )

    @staticmethod
    def _categorize(description: str, normalized: str, transaction_type: TransactionType) -> str:
        if transaction_type == TransactionType.INCOME:
            if any(word in normalized for word in _PAYMENT_WORDS):
                return "Pagamento"
            if any(word in normalized for word in _REFUND_WORDS):
                return "Reembolso"
        return categorize(description, transaction_type)

    def _find_holder(self, text: str) -> str | None:
        for match in self.HOLDER.finditer(text):
            value = match.group(1)
            n = normalize(value)
            if value and "banco" not in n and "brasil" not in n and "ourocard" not in n:
                return value
        return None
