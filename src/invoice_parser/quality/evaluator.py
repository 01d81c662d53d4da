"""Quality scoring of a parse result.

The score (0-100) summarizes how much of an invoice was recovered: due
date, printed total, card digits and transaction coverage add points;
short or garbled text and sparse or blank rows take them away.
"""

import logging
from decimal import Decimal

from invoice_parser.core.config import Settings
from invoice_parser.core.config import settings as default_settings
from invoice_parser.schemas.internal import ParseResult

logger = logging.getLogger(__name__)

DUE_DATE_POINTS = 20
TOTAL_POINTS = 20
CARD_DIGITS_POINTS = 10
MANY_TRANSACTIONS_POINTS = 20
MANY_TRANSACTIONS = 5
VALID_ROWS_POINTS = 30
VALID_ROWS_RATIO = 0.80

SHORT_TEXT_PENALTY = 30
GARBLED_PENALTY = 20
FEW_TRANSACTIONS_PENALTY = 25
BLANK_DESCRIPTION_PENALTY = 15


class ParseQualityEvaluator:
    """Scores a ParseResult against the raw text it came from.

    Example:
        >>> evaluator = ParseQualityEvaluator(settings)
        >>> evaluator.evaluate(result, text)
        90
    """

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or default_settings

    def evaluate(self, result: ParseResult | None, raw_text: str | None) -> int:
        """Compute the quality score.

        Args:
            result: Parse result to score
            raw_text: Text the result was parsed from

        Returns:
            Score clamped to 0-100 (0 for a missing result)
        """
        if result is None:
            logger.warning("Quality evaluation skipped: no parse result")
            return 0

        score = 0
        tx_count = len(result.transactions)

        if result.due_date is not None:
            score += DUE_DATE_POINTS
        if result.total_amount is not None and result.total_amount > 0:
            score += TOTAL_POINTS
        if self._has_card_digits(result):
            score += CARD_DIGITS_POINTS
        if tx_count >= MANY_TRANSACTIONS:
            score += MANY_TRANSACTIONS_POINTS
        valid_ratio = self._valid_ratio(result)
        if valid_ratio >= VALID_ROWS_RATIO:
            score += VALID_ROWS_POINTS

        if raw_text is not None and len(raw_text) < self.settings.min_text_length:
            score -= SHORT_TEXT_PENALTY
        if raw_text and self.garbled_percent(raw_text) > self.settings.max_garbled_percent:
            score -= GARBLED_PENALTY
        if tx_count < self.settings.min_transactions:
            score -= FEW_TRANSACTIONS_PENALTY
        if any(not tx.description.strip() for tx in result.transactions):
            score -= BLANK_DESCRIPTION_PENALTY

        score = max(0, min(100, score))
        logger.debug(
            "Quality score %d (transactions=%d, valid=%d%%, text=%d chars)",
            score,
            tx_count,
            round(valid_ratio * 100),
            len(raw_text or ""),
        )
        return score

    @staticmethod
    def _has_card_digits(result: ParseResult) -> bool:
        digits = result.card_last_digits
        return digits is not None and len(digits) == 4 and digits.isdigit()

    @staticmethod
    def _valid_ratio(result: ParseResult) -> float:
        if not result.transactions:
            return 0.0
        valid = sum(
            1
            for tx in result.transactions
            if tx.amount != Decimal("0")
        )
        return valid / len(result.transactions)

    @staticmethod
    def garbled_percent(text: str) -> float:
        """Share of replacement and control characters (tab, CR and LF excepted)."""
        if not text:
            return 0.0
        garbled = sum(
            1 for ch in text if ch == "\ufffd" or (ord(ch) < 32 and ch not in "\t\r\n")
        )
        return garbled / len(text) * 100
