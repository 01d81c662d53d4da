"""Parser selection by score.

Every registered strategy is evaluated against the text and the highest
score wins. Evaluation never lets one strategy's failure abort the
selection: an exception inside a candidate is logged and scored as zero.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date

from invoice_parser.core.exceptions import UnsupportedLayoutError
from invoice_parser.parsers.base import InvoiceParser
from invoice_parser.schemas.internal import ParsedTransaction

logger = logging.getLogger(__name__)

APPLICABLE_WEIGHT = 1_000_000
DUE_DATE_WEIGHT = 100_000
TRANSACTIONS_WEIGHT = 10_000
PER_TRANSACTION_WEIGHT = 20
MAX_TRANSACTION_BONUS = 5_000


@dataclass(frozen=True)
class Candidate:
    """Outcome of evaluating one strategy against a document."""

    parser: InvoiceParser
    score: int
    applicable: bool = False
    due_date: date | None = None
    tx_count: int = 0
    transactions: tuple[ParsedTransaction, ...] = field(default_factory=tuple)
    disqualified: bool = False
    error: str | None = None


@dataclass(frozen=True)
class Selection:
    """The chosen candidate plus every evaluated candidate, in registry order."""

    chosen: Candidate
    evaluated: tuple[Candidate, ...]


def compute_score(applicable: bool, due_date: date | None, tx_count: int) -> int:
    """Score a candidate.

    Applicability dominates, then a due date, then transactions (which
    only count when the layout was recognized or a due date was found).
    """
    score = 0
    if applicable:
        score += APPLICABLE_WEIGHT
    if due_date is not None:
        score += DUE_DATE_WEIGHT
    if tx_count > 0 and (applicable or due_date is not None):
        score += TRANSACTIONS_WEIGHT + min(MAX_TRANSACTION_BONUS, PER_TRANSACTION_WEIGHT * tx_count)
    return score


def evaluate(parser: InvoiceParser, text: str) -> Candidate:
    """Evaluate a single strategy; never raises."""
    try:
        if parser.conflicts_with(text):
            logger.warning("Parser %s disqualified by layout guardrail", parser.name)
            return Candidate(parser=parser, score=0, disqualified=True)

        applicable = bool(parser.is_applicable(text))
        due_date = parser.extract_due_date(text)
        transactions = tuple(parser.extract_transactions(text))
    except Exception as exc:
        logger.warning("Parser %s failed during evaluation: %s", parser.name, exc)
        return Candidate(parser=parser, score=0, error=str(exc))

    score = compute_score(applicable, due_date, len(transactions))
    logger.debug(
        "Candidate %s: applicable=%s due_date=%s tx=%d score=%d",
        parser.name,
        applicable,
        due_date,
        len(transactions),
        score,
    )
    return Candidate(
        parser=parser,
        score=score,
        applicable=applicable,
        due_date=due_date,
        tx_count=len(transactions),
        transactions=transactions,
    )


def select_best(parsers: Sequence[InvoiceParser], text: str) -> Selection:
    """Pick the strategy that best explains the text.

    Ties keep the earlier registry position.

    Raises:
        UnsupportedLayoutError: If no candidate scores above zero
    """
    evaluated = tuple(evaluate(parser, text) for parser in parsers)

    best: Candidate | None = None
    for candidate in evaluated:
        if best is None or candidate.score > best.score:
            best = candidate

    if best is None or best.score <= 0:
        raise UnsupportedLayoutError(details={"evaluated": [c.parser.name for c in evaluated]})

    logger.info("Selected parser %s (score=%d, tx=%d)", best.parser.name, best.score, best.tx_count)
    return Selection(chosen=best, evaluated=evaluated)
