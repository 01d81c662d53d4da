"""C6 Bank parser refinement.

C6 invoices open with a "Resumo da fatura" block whose lines look like
transactions ("21 nov Compras nacionais 5.098,40") and must be ignored,
then list transactions per card under "C6 Carbon Virtual Final 5867 -
HOLDER" headers.
"""

import logging
import re
from datetime import date
from enum import Enum

from invoice_parser.core.exceptions import MalformedLineError
from invoice_parser.normalize import collapse_spaces, normalize
from invoice_parser.parsers.base import (
    InvoiceParser,
    has_itau_layout_markers,
    infer_direction,
    parse_brl_amount,
)
from invoice_parser.parsers.dates import find_due_date, month_from_token, resolve_date
from invoice_parser.schemas.internal import ParsedTransaction

logger = logging.getLogger(__name__)

_DUE_KEYWORD = r"(?i)(?:venc(?:imento)?|data\s+d[eo]\s+vencimento)\b[^\d\n]{0,20}"

DUE_DATE_PATTERNS = [
    (re.compile(_DUE_KEYWORD + r"(?P<day>\d{2})/(?P<month>\d{2})/(?P<year>\d{4})"), 60),
    (re.compile(_DUE_KEYWORD + r"(?P<day>\d{2})/(?P<month>\d{2})(?![/\d])"), 40),
    (re.compile(
        _DUE_KEYWORD + r"(?P<day>\d{1,2})\s+(?:de\s+)?(?P<mon>[a-z]{3,9})\.?\s+(?:de\s+)?(?P<year>\d{4})"
    ), 30),
    (re.compile(_DUE_KEYWORD + r"(?P<day>\d{1,2})\s+(?:de\s+)?(?P<mon>[a-z]{3,9})\b(?!\s+(?:de\s+)?\d)"), 20),
]
DUE_DIGITS_KEYWORD = re.compile(r"(?i)\bvencimento\b")


class Section(Enum):
    NONE = "none"
    SUMMARY = "summary"
    TRANSACTIONS = "transactions"


class C6Parser(InvoiceParser):
    """Parser refinement for C6 Bank invoices.

    C6-specific behaviors:
    - Dates as "27 out" (OCR sometimes prints "n0v")
    - Installments as "- Parcela 2/3" before the amount
    - "Inclusao de Pagamento" rows are informational and skipped
    - Repeated identical rows are kept (real repeated purchases)
    """

    name = "c6"
    bank_name = "C6 Bank"

    CARD_HEADER = re.compile(r"(?i)^c6\s+(.+?)\s+final\s*:?\s*(\d{4})(?:\s*-\s*(.+))?$")
    LINE_PATTERN = re.compile(
        r"(?i)^(\d{1,2})\s+([a-z0-9]{3})\s+(.+?)"
        r"(?:\s+-\s+parcela\s+(\d+)\s*/\s*(\d+))?\s+(-?[\d.,]+)\s*$"
    )
    _SUMMARY_SKIP = ("compras", "juros", "tarifa", "total a pagar")

    def is_applicable(self, text: str) -> bool:
        n = normalize(text)
        if not n:
            return False
        if "c6 bank" in n or "c6bank" in n:
            return True
        has_c6 = re.search(r"\bc6\b", n) is not None
        if has_c6 and "venc" in n and ("cartao" in n or "fatura" in n):
            return True
        return any(self.CARD_HEADER.match(line.strip()) for line in text.splitlines())

    def conflicts_with(self, text: str) -> bool:
        return has_itau_layout_markers(text)

    def extract_due_date(self, text: str) -> date | None:
        return find_due_date(text, DUE_DATE_PATTERNS, digits_keyword=DUE_DIGITS_KEYWORD, label=self.name)

    def extract_transactions(self, text: str) -> list[ParsedTransaction]:
        if not text or not text.strip():
            return []
        due_date = self.extract_due_date(text)

        transactions: list[ParsedTransaction] = []
        section = Section.NONE
        card_name = self.bank_name
        holder: str | None = None
        for raw in text.splitlines():
            line = collapse_spaces(raw.replace("|", " "))
            if not line:
                continue

            card_match = self.CARD_HEADER.match(line)
            if card_match:
                card_name = f"{card_match.group(1).strip()} {card_match.group(2)}"
                holder = card_match.group(3).strip() if card_match.group(3) else None
                continue

            n = normalize(line)
            if "resumo" in n and "fatura" in n:
                section = Section.SUMMARY
                continue
            if "transacoes" in n:
                section = Section.TRANSACTIONS
                continue
            if section == Section.SUMMARY:
                continue

            try:
                tx = self._parse_line(line, due_date, card_name, holder)
            except MalformedLineError as exc:
                logger.debug("%s: dropped line %r (%s)", self.name, line, exc)
                continue
            if tx is not None:
                transactions.append(tx)
        return transactions

    def _parse_line(
        self,
        line: str,
        due_date: date | None,
        card_name: str,
        holder: str | None,
    ) -> ParsedTransaction | None:
        match = self.LINE_PATTERN.match(line)
        if not match:
            return None
        day, month_token, description, number, total, amount_text = match.groups()
        month = month_from_token(month_token)
        if month is None:
            return None

        description = description.strip()
        if "inclusao de pagamento" in normalize(description):
            return None

        amount = parse_brl_amount(amount_text)
        installment = (None, None)
        if number and total and 1 <= int(number) <= int(total):
            installment = (int(number), int(total))

        transaction_type = infer_direction(amount < 0, description, extra_keywords=("pagamento", "inclusao"))
        return self.build_transaction(
            description,
            amount,
            resolve_date(int(day), month, due_date),
            transaction_type,
            card_name=card_name,
            cardholder_name=holder,
            installment=installment,
        )
