"""Mercado Pago parser refinement."""

import logging
import re
from datetime import date

from invoice_parser.core.exceptions import MalformedLineError
from invoice_parser.normalize import normalize
from invoice_parser.parsers.base import (
    InvoiceParser,
    has_itau_layout_markers,
    infer_direction,
    parse_brl_amount,
)
from invoice_parser.parsers.dates import find_due_date, parse_day_month
from invoice_parser.schemas.internal import ParsedTransaction

logger = logging.getLogger(__name__)

DUE_DATE_PATTERNS = [
    (re.compile(r"(?i)\bvencimento\b\s*[:\-]?\s*(?P<day>\d{2})/(?P<month>\d{2})/(?P<year>\d{4})"), 60),
    (re.compile(r"(?i)\bvence\s+em\b\s*[:\-]?\s*(?P<day>\d{2})/(?P<month>\d{2})/(?P<year>\d{4})"), 60),
]

# Brand must show up in the header; "MERCADO PAGO*LOJA" rows appear on
# every other issuer's invoice.
_HEADER_LINES = 20


class MercadoPagoParser(InvoiceParser):
    """Parser refinement for Mercado Pago credit card invoices.

    Mercado Pago-specific behaviors:
    - "Vence em" label with the date on the next line
    - Card blocks as "Cartão Visa [************1234]"
    - International purchases split over two lines
    - Installments as "Parcela 2 de 6"
    """

    name = "mercado_pago"
    bank_name = "Mercado Pago"

    CARD_HEADER = re.compile(r"(?i)cart[aã]o\s+([a-z]+)\s*\[.*?(\d{4})\s*\]")
    INTERNATIONAL_START = re.compile(r"(?i)^(\d{2}/\d{2})\s+compra\s+internacional\s+em\s+(.+?)$")
    INTERNATIONAL_AMOUNT = re.compile(r"R\$\s*(-?[\d.]+,\d{2})")
    INSTALLMENT_LINE = re.compile(
        r"(?i)^(\d{2}/\d{2})\s+(.+?)\s+parcela\s+(\d+)\s+de\s+(\d+)\s+R\$\s*(-?[\d.]+,\d{2})$"
    )
    BASIC_LINE = re.compile(r"^(\d{2}/\d{2})\s+(.+?)\s+(?:R\$\s*)?(-?[\d.]+,\d{2})$")

    def is_applicable(self, text: str) -> bool:
        if not text or not text.strip():
            return False
        lines = [line for line in text.splitlines() if line.strip()]
        header = normalize("\n".join(lines[:_HEADER_LINES]))
        if not any(brand in header for brand in ("mercado pago", "mercadopago", "mp card")):
            return False
        return self.extract_due_date(text) is not None or "fatura" in normalize(text)

    def conflicts_with(self, text: str) -> bool:
        return has_itau_layout_markers(text)

    def extract_due_date(self, text: str) -> date | None:
        return find_due_date(text, DUE_DATE_PATTERNS, label=self.name)

    def extract_transactions(self, text: str) -> list[ParsedTransaction]:
        if not text or not text.strip():
            return []
        due_date = self.extract_due_date(text)

        transactions: list[ParsedTransaction] = []
        card_name = self.bank_name
        pending_international: tuple[str, str] | None = None
        for raw in text.splitlines():
            line = raw.strip()
            if not line:
                continue

            card_match = self.CARD_HEADER.search(line)
            if card_match:
                card_name = f"{self.bank_name} {card_match.group(1).title()} {card_match.group(2)}"
                continue

            try:
                if pending_international is not None:
                    amount_match = self.INTERNATIONAL_AMOUNT.search(line)
                    if amount_match:
                        day_month, merchant = pending_international
                        pending_international = None
                        transactions.append(
                            self._build(day_month, merchant, amount_match.group(1), due_date, card_name)
                        )
                        continue

                start = self.INTERNATIONAL_START.match(line)
                if start:
                    pending_international = (start.group(1), start.group(2))
                    continue

                installment = self.INSTALLMENT_LINE.match(line)
                if installment:
                    number, total = int(installment.group(3)), int(installment.group(4))
                    transactions.append(
                        self._build(
                            installment.group(1),
                            installment.group(2),
                            installment.group(5),
                            due_date,
                            card_name,
                            (number, total) if 1 <= number <= total else (None, None),
                        )
                    )
                    continue

                basic = self.BASIC_LINE.match(line)
                if basic:
                    transactions.append(
                        self._build(basic.group(1), basic.group(2), basic.group(3), due_date, card_name)
                    )
            except MalformedLineError as exc:
                logger.debug("%s: dropped line %r (%s)", self.name, line, exc)
        return transactions

    def _build(
        self,
        day_month: str,
        description: str,
        amount_text: str,
        due_date: date | None,
        card_name: str,
        installment: tuple[int | None, int | None] = (None, None),
    ) -> ParsedTransaction:
        amount = parse_brl_amount(amount_text)
        description = description.strip()
        transaction_type = infer_direction(amount < 0, description, extra_keywords=("pagamento",))
        return self.build_transaction(
            description,
            amount,
            parse_day_month(day_month, due_date),
            transaction_type,
            card_name=card_name,
            installment=installment,
        )
