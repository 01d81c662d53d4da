"""Acceptance gate for parse results.

The engine only scores results; callers decide what to do with a result
that fails the gate. ``validate_or_raise`` is for callers that want the
gate to be a hard failure.
"""

import logging

from invoice_parser.core.config import Settings
from invoice_parser.core.config import settings as default_settings
from invoice_parser.core.exceptions import DueDateNotFoundError, QualityGateError
from invoice_parser.schemas.internal import ParseResult

logger = logging.getLogger(__name__)


class ParseQualityValidator:
    """Applies the configured thresholds to a scored ParseResult."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or default_settings

    def get_reject_reason(self, result: ParseResult | None) -> str | None:
        """Human-readable reason the result fails the gate, or None when it passes."""
        if result is None:
            return "No parse result"
        return result.reject_reason(
            min_score=self.settings.min_score_for_acceptance,
            min_transactions=self.settings.min_transactions,
        )

    def is_valid(self, result: ParseResult | None) -> bool:
        reason = self.get_reject_reason(result)
        if reason is not None:
            logger.warning("Parse result rejected: %s", reason)
            return False
        logger.info(
            "Parse result accepted (score=%d, transactions=%d)",
            result.quality_score,
            len(result.transactions),
        )
        return True

    def is_high_quality(self, result: ParseResult | None) -> bool:
        if result is None:
            return False
        return result.is_high_quality(self.settings.min_score_for_high_quality)

    def validate_or_raise(self, result: ParseResult | None) -> ParseResult:
        """Return the result unchanged when it passes the gate.

        Raises:
            DueDateNotFoundError: If the result has no due date
            QualityGateError: If the result fails the gate for any other reason
        """
        if result is not None and result.due_date is None:
            raise DueDateNotFoundError(details={"parser": result.parser_name})
        reason = self.get_reject_reason(result)
        if reason is not None:
            raise QualityGateError(details={"reason": reason})
        return result
