"""Itaú Personnalité parser refinement.

Personnalité invoices reuse the Itaú summary block but list purchases per
card ("Lançamentos no cartão (final 8578)") with a CATEGORY.CITY line
under each purchase. Text extraction often loses the "Itaú" header or
drops the cedilla ("Lanamentos"), so applicability leans on layout markers
rather than on the brand name.

Column-collapsed statements are better served by the extraction service;
``parse_with_source`` tries it first and falls back to the text path.
"""

import logging
import re
from datetime import date
from decimal import Decimal

from invoice_parser.categorization import CATEGORIES
from invoice_parser.core.exceptions import ExternalServiceError, MalformedLineError
from invoice_parser.extraction.client import ExtractorClient
from invoice_parser.normalize import normalize
from invoice_parser.parsers.base import infer_direction, parse_brl_amount, split_installment
from invoice_parser.parsers.dates import parse_day_month, parse_flexible_date
from invoice_parser.parsers.refinements.itau import ItauParser
from invoice_parser.schemas.extractor import ExtractorResponse
from invoice_parser.schemas.internal import ParsedTransaction, ParseResult, TransactionType

logger = logging.getLogger(__name__)

CARD_LABEL = "Itau Personnalitê"
CARD_LABEL_MASTERCARD = "Itau Personnalitê Mastercard"

_ITAU_MARKERS = (
    "itau", "banco itau", "itau unibanco", "unibanco", "itaucard", "itau card",
    "ita unibanco", "ita cares", "itau cares", "itacares", "itaucares",
)
_PERSONNALITE = re.compile(r"personn?alite|p\s*e\s*r\s*s\s*o\s*n(?:\s*n)?\s*a\s*l\s*i\s*t\s*e")
_MULTI_CARDS = re.compile(r"lan(?:c)?amentos\s+no\s+cart(?:a)?o.*final\s*\d{4}", re.DOTALL)
_LAUNCHES = re.compile(r"lan(?:c)?amentos\s*:?\s*compras\s+e\s+saques|lan(?:c)?amentos\s+atuais\b")

# Taxonomy labels as printed on the CATEGORY.CITY line, plus the
# Personnalité-specific names that differ from ours.
_HINT_ALIASES = {
    "turismo e entretenimento": "Lazer",
    "hobby": "Lazer",
    "entretenimento": "Lazer",
    "veiculos": "Transporte",
    "servicos": "Serviços",
    "supermercado": "Alimentação",
    "restaurante": "Alimentação",
}
_HINT_LABELS = {normalize(label): label for label in CATEGORIES if label != "Outros"}


class ItauPersonnaliteParser(ItauParser):
    """Parser refinement for Itaú Personnalité invoices.

    Personnalité-specific behaviors:
    - Multi-card sections, each transaction labelled with its card final
    - Category hint from the CATEGORY.CITY line under a purchase
    - Installment echoes of the same purchase are collapsed to the
      lowest installment index
    - Due date resolved exactly like regular Itaú
    """

    name = "itau_personnalite"
    bank_name = "Itaú Personnalité"

    CARD_SECTION = re.compile(
        r"(?i)lan(?:c|ç)?amentos\s+no\s+cart(?:a|ã)?o\s*\(\s*final\s+(\d{4})\s*\)"
    )
    HEADER_LINE = re.compile(
        r"(?i).*(data\s+estabelecimento\s+valor|data\s+lan[cç]amentos\s+valor"
        r"|estabelecimento\s+valor|valor\s+em\s+r\$).*"
    )
    DATE_ONLY = re.compile(r"^\d{2}/\d{2}/\d{4}[.)]?$")
    DATE_RANGE = re.compile(r"^\d{2}/\d{2}\s+a\s+\d{2}/\d{2}\)?$")
    DATE_AT_START = re.compile(r"^(\d{2}/\d{2})\b")
    TRAILING_AMOUNT = re.compile(
        r"(?:R\$\s*)?([-−]?(?:\d{1,3}(?:\.\d{3})*,\d{2}|\d+[.,]\d{2}))\s*$"
    )
    CATEGORY_CITY = re.compile(r"^([^\d.]+?)\s*\.\s*[^\d]+$")
    FUTURE_BLOCK = re.compile(r"(?i)compras\s+parceladas")

    _SKIP_WORDS = (
        "vencimento", "emissao", "emisso", "postagem", "previsao", "previso",
        "fechamento", "periodo", "peodo", "continua",
    )

    def __init__(self, client: ExtractorClient | None = None):
        """Initialize the parser.

        Args:
            client: Extraction service client used by parse_with_source
        """
        super().__init__()
        self.client = client

    def is_applicable(self, text: str) -> bool:
        n = normalize(text)
        if not n:
            return False

        has_itau = any(marker in n for marker in _ITAU_MARKERS)
        has_premium = (
            "mastercard black" in n
            or ("mastercard" in n and "black" in n)
            or "visa infinite" in n
            or ("visa" in n and "infinite" in n)
        )
        has_personnalite = bool(_PERSONNALITE.search(n))
        has_multi_cards = bool(_MULTI_CARDS.search(n))

        has_any_layout = (
            "resumo da fatura" in n
            or "lancamentos atuais" in n
            or "lanamentos atuais" in n
            or ("parcelamento" in n and "fatura" in n)
            or "pagamento minimo" in n
            or "o total da sua fatura" in n
            or "total desta fatura" in n
            or "total da fatura" in n
            or "total dos lancamentos atuais" in n
            or "total dos lanamentos atuais" in n
            or has_multi_cards
            or bool(_LAUNCHES.search(n))
        )
        if has_personnalite:
            return has_any_layout

        # Regular Itaú prints the same summary, so without the name we need
        # per-card sections or a premium card brand.
        layout_count = int(has_multi_cards) + int(has_premium)
        required = 1 if has_itau or has_multi_cards or has_premium else 2
        return has_any_layout and layout_count >= required

    def conflicts_with(self, text: str) -> bool:
        return False

    def extract_transactions(self, text: str) -> list[ParsedTransaction]:
        if not text or not text.strip():
            return []
        due_date = self.extract_due_date(text)
        base_label = CARD_LABEL_MASTERCARD if "mastercard" in normalize(text) else CARD_LABEL

        lines = self._current_invoice_scope(text).splitlines()
        transactions: list[ParsedTransaction] = []
        card_name = base_label
        for index, raw in enumerate(lines):
            line = raw.strip()
            if not line:
                continue

            card_match = self.CARD_SECTION.search(line)
            if card_match:
                card_name = f"{base_label} final {card_match.group(1)}"
                continue
            if self._is_noise(line):
                continue

            line = re.sub(r"^\D+", "", line)
            if self.DATE_ONLY.match(line) or self.DATE_RANGE.match(line):
                continue
            if not self.DATE_AT_START.match(line):
                continue

            hint = self._category_hint(lines[index + 1] if index + 1 < len(lines) else "")
            try:
                tx = self._parse_personnalite_line(line, due_date, card_name, hint)
            except MalformedLineError as exc:
                logger.debug("%s: dropped line %r (%s)", self.name, line, exc)
                continue
            if tx is not None:
                transactions.append(tx)
        return self._dedupe(transactions)

    def _current_invoice_scope(self, text: str) -> str:
        """Text before the future-installments block."""
        match = self.FUTURE_BLOCK.search(text)
        scope = text[:match.start()] if match and match.start() > 0 else text
        if scope.strip():
            return scope
        launches = _LAUNCHES.search(normalize(text))
        return text if launches is None else text[launches.start():]

    def _is_noise(self, line: str) -> bool:
        if self.HEADER_LINE.match(line):
            return True
        n = normalize(line)
        if n.startswith(("lancamentos", "lanamentos", "total dos lancamentos", "total dos lanamentos")):
            return True
        if "pagamento" in n and any(word in n for word in ("deb", "automatic", "debitad", "efetuad")):
            return True
        if "total dos pagamentos" in n:
            return True
        return any(word in n for word in self._SKIP_WORDS)

    def _category_hint(self, next_line: str) -> str | None:
        """Map a "SAÚDE.SAO PAULO" line to a category label."""
        line = next_line.strip()
        if not line or "." not in line or self.HEADER_LINE.match(line):
            return None
        if self.DATE_AT_START.match(re.sub(r"^\D+", "", line)):
            return None
        match = self.CATEGORY_CITY.match(line)
        if not match:
            return None
        key = normalize(match.group(1))
        return _HINT_LABELS.get(key) or _HINT_ALIASES.get(key)

    def _parse_personnalite_line(
        self,
        line: str,
        due_date: date | None,
        card_name: str,
        hint: str | None,
    ) -> ParsedTransaction | None:
        date_match = self.DATE_AT_START.match(line)
        amount_match = self.TRAILING_AMOUNT.search(line)
        if not date_match or not amount_match or amount_match.start() <= date_match.end():
            return None

        description = line[date_match.end():amount_match.start()].strip()
        description = re.sub(r"^[^0-9A-Za-zÀ-ÿ]+", "", description)
        if not description:
            return None

        amount = parse_brl_amount(amount_match.group(1))
        transaction_date = parse_day_month(date_match.group(1), due_date)
        description, number, total = split_installment(description)
        transaction_type = infer_direction(amount < 0, description)
        category = hint if transaction_type == TransactionType.EXPENSE else None
        return self.build_transaction(
            description,
            amount,
            transaction_date,
            transaction_type,
            category=category,
            card_name=card_name,
            installment=(number, total),
        )

    @staticmethod
    def _dedupe(transactions: list[ParsedTransaction]) -> list[ParsedTransaction]:
        """Collapse installment echoes of the same purchase, keeping the lowest index."""
        kept: list[ParsedTransaction] = []
        positions: dict[tuple, int] = {}
        for tx in transactions:
            key = (tx.card_name, tx.transaction_date, tx.amount, normalize(tx.description))
            if key not in positions:
                positions[key] = len(kept)
                kept.append(tx)
                continue
            current = kept[positions[key]]
            if tx.installment_number is not None and (
                current.installment_number is None or tx.installment_number < current.installment_number
            ):
                kept[positions[key]] = tx
        return kept

    def parse_with_source(self, pdf_bytes: bytes, text: str) -> ParseResult:
        """Parse through the extraction service, falling back to the text path.

        Args:
            pdf_bytes: Original PDF
            text: Text extracted from the same PDF

        Returns:
            ParseResult with source "extractor" on success, "text" otherwise
        """
        if self.client is None:
            return self.parse_text(text)
        try:
            response = self.client.parse_itau_personnalite(pdf_bytes)
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
        base_label = CARD_LABEL_MASTERCARD if "mastercard" in normalize(text) else CARD_LABEL

        transactions: list[ParsedTransaction] = []
        finals: set[str] = set()
        for item in response.transactions:
            transaction_date = parse_flexible_date(item.date, due_date)
            if transaction_date is None or item.amount is None or not (item.description or "").strip():
                logger.debug("%s: dropped service row %r", self.name, item)
                continue

            amount = Decimal(item.amount)
            description = item.description.strip()
            number = total = None
            if item.installment and item.installment.current and item.installment.total:
                if 1 <= item.installment.current <= item.installment.total:
                    number, total = item.installment.current, item.installment.total
            if number is None:
                description, number, total = split_installment(description)

            card_name = base_label
            card_final = (item.card_final or "").strip()
            if re.fullmatch(r"\d{4}", card_final):
                card_name = f"{base_label} final {card_final}"
                finals.add(card_final)

            transactions.append(
                self.build_transaction(
                    description,
                    amount,
                    transaction_date,
                    infer_direction(amount < 0, description),
                    card_name=card_name,
                    installment=(number, total),
                )
            )

        return ParseResult(
            transactions=tuple(self._dedupe(transactions)),
            due_date=due_date,
            total_amount=response.total,
            bank_name=self.bank_name,
            card_last_digits=finals.pop() if len(finals) == 1 else None,
            source="extractor",
            parser_name=self.name,
        )
