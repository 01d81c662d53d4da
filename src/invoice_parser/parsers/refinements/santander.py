"""Santander parser refinement.

Santander prints one block per card holder ("NAME - 4258 XXXX XXXX 8854")
with DESPESAS, PARCELAMENTOS and PAGAMENTOS E DÉBITOS CRÉDITOS sections.
Its signals are the broadest of all layouts ("Total a Pagar" +
"Vencimento"), so it sits last in the registry and refuses Itaú texts.
"""

import logging
import re
from datetime import date
from enum import Enum

from invoice_parser.categorization import categorize
from invoice_parser.core.exceptions import MalformedLineError
from invoice_parser.normalize import collapse_spaces, normalize
from invoice_parser.parsers.base import (
    InvoiceParser,
    has_itau_layout_markers,
    infer_direction,
    parse_brl_amount,
)
from invoice_parser.parsers.dates import find_due_date, parse_day_month, prepare_for_dates
from invoice_parser.schemas.internal import ParsedTransaction, TransactionType

logger = logging.getLogger(__name__)

DUE_DATE_PATTERNS = [
    (re.compile(
        r"(?is)total\s+a\s+pagar\s+R\$\s*[\d.,]+\s+vencimento\s+"
        r"(?P<day>\d{2})/(?P<month>\d{2})(?:/(?P<year>\d{4}))?(?![/\d])"
    ), 80),
    (re.compile(r"(?i)\bvencimento\b\s+(?P<day>\d{2})/(?P<month>\d{2})/(?P<year>\d{4})"), 60),
    (re.compile(r"(?i)\bvencimento\b\s+(?P<day>\d{2})/(?P<month>\d{2})(?![/\d])"), 40),
]
_HAS_DUE = re.compile(r"(?i)\bvencimento\b\s+\d{2}/\d{2}")

_AMOUNT = r"[-−]?(?:\d{1,3}(?:\.\d{3})+|\d+),\d{2}"
_PAYMENT_WORDS = ("pagamento", "deb autom", "debito autom")
_REFUND_WORDS = ("credito", "estorno")
_FOOD_WORDS = ("restaurante", "cafe", "padaria", "churrasc", "pizzaria", "lanchonete")


class Section(Enum):
    NONE = "none"
    PAYMENTS_AND_CREDITS = "payments_and_credits"
    INSTALLMENTS = "installments"
    EXPENSES = "expenses"


class SantanderParser(InvoiceParser):
    """Parser refinement for Santander credit card invoices.

    Santander-specific behaviors:
    - Card label "Santander <last4> (<first4>)" from each holder block
    - Installment rows carry a "01/10" column before the amount
    - Optional USD column after the BRL amount
    - Automatic-debit payment rows are informational and skipped
    - A leading "Compra" column (garbled to digits) is dropped
    """

    name = "santander"
    bank_name = "Santander"
    net_total_fallback = True

    HOLDER_BLOCK = re.compile(r"^([A-Z\s]+?)\s+-\s+(\d{4})\s+XXXX\s+XXXX\s+(\d{4})\s*$")
    LEADING_COLUMN = re.compile(r"^\d{1,2}\s+(?=\d{2}/\d{2}\s)")
    INSTALLMENT_LINE = re.compile(r"^(\d{2}/\d{2})\s+(.+?)\s+(\d{2})/(\d{2})\s+(" + _AMOUNT + r")\s*$")
    EXPENSE_LINE = re.compile(r"^(\d{2}/\d{2})\s+(.+?)\s+(" + _AMOUNT + r")(?:\s+(" + _AMOUNT + r"))?\s*$")

    def is_applicable(self, text: str) -> bool:
        n = normalize(text)
        if not n or has_itau_layout_markers(text):
            return False
        has_due = bool(_HAS_DUE.search(prepare_for_dates(text)))
        has_holders = any(self.HOLDER_BLOCK.match(line.strip()) for line in text.splitlines())
        return has_due and ("santander" in n or has_holders or "total a pagar" in n)

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
        card_name: str | None = self.bank_name
        holder: str | None = None
        section = Section.NONE
        for raw in text.splitlines():
            line = raw.strip()
            if not line:
                continue

            holder_match = self.HOLDER_BLOCK.match(line)
            if holder_match:
                holder = holder_match.group(1).strip() or None
                card_name = f"{self.bank_name} {holder_match.group(3)} ({holder_match.group(2)})"
                section = Section.NONE
                continue

            n = normalize(line)
            if "resumo" in n and "fatura" in n:
                break
            section = self._next_section(n, section)

            line = self.LEADING_COLUMN.sub("", line)
            if not re.match(r"^\d{2}/\d{2}\s", line):
                continue
            try:
                tx = self._parse_line(line, due_date, section, card_name, holder)
            except MalformedLineError as exc:
                logger.debug("%s: dropped line %r (%s)", self.name, line, exc)
                continue
            if tx is not None:
                transactions.append(tx)
        return transactions

    @staticmethod
    def _next_section(normalized_line: str, current: Section) -> Section:
        if re.match(r"^\d{2}/\d{2}\s", normalized_line):
            return current
        if any(word in normalized_line for word in ("pagamentos", "debitos", "creditos")):
            return Section.PAYMENTS_AND_CREDITS
        if "parcel" in normalized_line:
            return Section.INSTALLMENTS
        if any(word in normalized_line for word in ("despesas", "compras", "lancamentos")):
            return Section.EXPENSES
        return current

    def _parse_line(
        self,
        line: str,
        due_date: date,
        section: Section,
        card_name: str | None,
        holder: str | None,
    ) -> ParsedTransaction | None:
        cleaned = collapse_spaces(line.replace("US$", " ").replace("R$", " "))

        installment = (None, None)
        match = self.INSTALLMENT_LINE.match(cleaned)
        if match:
            day_month, description, number, total, amount_text = match.groups()
            if 1 <= int(number) <= int(total):
                installment = (int(number), int(total))
        else:
            match = self.EXPENSE_LINE.match(cleaned)
            if not match:
                return None
            day_month, description, amount_text, _usd = match.groups()

        description = description.strip()
        n = normalize(description)
        if "deb autom" in n or "debito autom" in n:
            return None

        amount = parse_brl_amount(amount_text)
        transaction_type = infer_direction(
            amount < 0,
            description,
            in_payment_section=section == Section.PAYMENTS_AND_CREDITS,
        )
        return self.build_transaction(
            description,
            amount,
            parse_day_month(day_month, due_date),
            transaction_type,
            category=self._categorize(description, n, transaction_type),
            card_name=card_name,
            cardholder_name=holder,
            installment=installment,
        )

    @staticmethod
    def _categorize(description: str, normalized: str, transaction_type: TransactionType) -> str:
        if transaction_type == TransactionType.INCOME:
            if any(word in normalized for word in _PAYMENT_WORDS) or "fatura" in normalized:
                return "Pagamento"
            if any(word in normalized for word in _REFUND_WORDS):
                return "Reembolso"
        elif any(word in normalized for word in _FOOD_WORDS):
            return "Alimentação"
        return categorize(description, transaction_type)
