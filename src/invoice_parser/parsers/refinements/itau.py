"""Itaú parser refinement.

Itaú invoices print a summary block, then "Pagamentos efetuados", then
"Lançamentos: compras e saques", then a "Compras parceladas - próximas
faturas" block that belongs to future invoices and must never be read.
"""

import logging
import re
from datetime import date
from enum import Enum

from invoice_parser.core.exceptions import MalformedLineError
from invoice_parser.normalize import normalize
from invoice_parser.parsers.base import (
    InvoiceParser,
    has_personnalite_marker,
    infer_direction,
    parse_brl_amount,
    split_installment,
)
from invoice_parser.parsers.dates import find_due_date, month_from_token, parse_day_month, resolve_date
from invoice_parser.schemas.internal import ParsedTransaction

logger = logging.getLogger(__name__)

_DUE_KEYWORD = r"(?:venc(?:imento)?|vcto?|data\s+de\s+vencimento)\b[^\d]{0,40}"

# (pattern, weight): an explicit "com vencimento em" beats a bare keyword,
# and a full date beats one that borrows its year.
ITAU_DUE_DATE_PATTERNS = [
    (re.compile(
        r"(?i)com\s+vencimento\s+em\s*:?\s*(?P<day>\d{2})[./-](?P<month>\d{2})[./-](?P<year>\d{4})"
    ), 100),
    (re.compile(
        r"(?i)" + _DUE_KEYWORD + r"(?P<day>\d{2})[./-](?P<month>\d{2})[./-](?P<year>\d{4})"
    ), 60),
    (re.compile(
        r"(?i)" + _DUE_KEYWORD + r"(?P<day>\d{2})[./-](?P<month>\d{2})(?![./-]?\d)"
    ), 40),
    (re.compile(
        r"(?i)" + _DUE_KEYWORD
        + r"(?P<day>\d{2})\s+(?:de\s+)?(?P<mon>[a-z]{3,9})\.?\s+(?:de\s+)?(?P<year>\d{4})"
    ), 30),
]
ITAU_DUE_DIGITS_KEYWORD = re.compile(r"(?i)\bvenc(?:imento)?\b")

_PREMIUM = re.compile(r"mastercard\s+black|visa\s+infinite")


class Section(Enum):
    NONE = "none"
    PAYMENTS = "payments"
    PURCHASES = "purchases"
    FUTURE = "future"


class ItauParser(InvoiceParser):
    """Parser refinement for regular Itaú (Itaucard) invoices.

    Itaú-specific behaviors:
    - Section state machine: payments, purchases, then future installments
      (scanning stops there for good)
    - Dates as "17/11", "17/11/2025" or "17 NOV"
    - Installments as "03/12" or "3x12" inside the description
    """

    name = "itau"
    bank_name = "Itaú"
    drop_rows_after_due_date = True

    LINE_PATTERN = re.compile(
        r"^(\d{2}\s+[A-Za-z]{3}|\d{2}/\d{2}(?:/\d{4})?)\s+(.+?)\s+(-?[\d.,]+)\s*$"
    )
    _RESET_MARKERS = (
        "encargos cobrados nesta fatura",
        "novo teto",
        "credito rotativo",
        "limites de credito",
    )

    def is_applicable(self, text: str) -> bool:
        normalized = normalize(text)
        if not normalized:
            return False
        if not any(marker in normalized for marker in ("itau", "banco itau", "itaucard")):
            return False

        has_payments = "pagamentos efetuados" in normalized
        has_purchases = "lancamentos: compras e saques" in normalized or (
            "lancamentos" in normalized and "compras e saques" in normalized
        )
        has_summary = (
            "resumo da fatura" in normalized
            and "total desta fatura" in normalized
            and "pagamento minimo" in normalized
        )
        return (has_payments and has_purchases) or has_summary

    def conflicts_with(self, text: str) -> bool:
        """Personnalité invoices share this layout; leave them to their own parser."""
        return has_personnalite_marker(text) or bool(_PREMIUM.search(normalize(text)))

    def extract_due_date(self, text: str) -> date | None:
        return find_due_date(
            text,
            ITAU_DUE_DATE_PATTERNS,
            digits_keyword=ITAU_DUE_DIGITS_KEYWORD,
            label=self.name,
        )

    def extract_transactions(self, text: str) -> list[ParsedTransaction]:
        if not text or not text.strip():
            return []
        due_date = self.extract_due_date(text)

        transactions: list[ParsedTransaction] = []
        section = Section.NONE
        for raw in text.splitlines():
            line = raw.strip()
            if not line:
                continue
            section = self._next_section(normalize(line), section)
            if section == Section.FUTURE:
                break
            if section == Section.NONE:
                continue

            try:
                tx = self._parse_line(line, due_date, section)
            except MalformedLineError as exc:
                logger.debug("%s: dropped line %r (%s)", self.name, line, exc)
                continue
            if tx is not None:
                transactions.append(tx)
        return transactions

    def _next_section(self, normalized_line: str, current: Section) -> Section:
        if normalized_line.startswith("compras parceladas") or "proximas faturas" in normalized_line:
            return Section.FUTURE
        if normalized_line.startswith("proxima fatura"):
            return Section.FUTURE
        if "pagamentos efetuados" in normalized_line:
            return Section.PAYMENTS
        if "lancamentos: compras e saques" in normalized_line or (
            "lancamentos" in normalized_line and "compras e saques" in normalized_line
        ):
            return Section.PURCHASES
        if normalized_line.startswith("sac") or any(m in normalized_line for m in self._RESET_MARKERS):
            return Section.NONE
        return current

    def _parse_line(self, line: str, due_date: date | None, section: Section) -> ParsedTransaction | None:
        match = self.LINE_PATTERN.match(line)
        if not match:
            return None
        date_token, description, amount_token = match.groups()

        amount = parse_brl_amount(amount_token)
        transaction_date = self._parse_date(date_token, due_date)
        description, number, total = split_installment(description)
        transaction_type = infer_direction(
            amount < 0,
            description,
            in_payment_section=section == Section.PAYMENTS,
            extra_keywords=("pagamento", "payment"),
        )
        return self.build_transaction(
            description,
            amount,
            transaction_date,
            transaction_type,
            card_name=self.bank_name,
            installment=(number, total),
        )

    def _parse_date(self, token: str, due_date: date | None) -> date:
        """Parse "17/11", "17/11/2025" or "17 NOV".

        Raises:
            MalformedLineError: If the token is not a valid date
        """
        if "/" in token:
            return parse_day_month(token, due_date)
        day, month_token = token.split()
        month = month_from_token(month_token)
        if month is None:
            raise MalformedLineError(details={"date": token})
        return resolve_date(int(day), month, due_date)
