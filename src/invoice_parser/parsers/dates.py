"""Date helpers shared by the institution parsers.

Invoice lines rarely print a year ("17/11", "05 NOV"), so every purchase
date is resolved against the invoice due date: a month later than the due
month belongs to the previous year (December purchase, January due date).

Due dates are harder. A single document can mention the current due date,
the next invoice's due date, the issue date and a processing date, in any
of several encodings. ``find_due_date`` collects every candidate from a
list of weighted patterns and scores each by the words printed around it.
"""

import calendar
import logging
import re
from dataclasses import dataclass
from datetime import date, datetime

from invoice_parser.core.exceptions import MalformedLineError
from invoice_parser.normalize import normalize, normalize_numeric_dates, strip_accents

logger = logging.getLogger(__name__)

PT_MONTHS = {
    "jan": 1, "fev": 2, "mar": 3, "abr": 4, "mai": 5, "jun": 6,
    "jul": 7, "ago": 8, "set": 9, "out": 10, "nov": 11, "dez": 12,
}
EN_MONTHS = {
    "feb": 2, "apr": 4, "may": 5, "aug": 8, "sep": 9, "oct": 10, "dec": 12,
}
FULL_PT_MONTHS = {
    "janeiro": 1, "fevereiro": 2, "marco": 3, "abril": 4, "maio": 5, "junho": 6,
    "julho": 7, "agosto": 8, "setembro": 9, "outubro": 10, "novembro": 11, "dezembro": 12,
}

FULL_DATE = re.compile(r"(\d{2})/(\d{2})/(\d{4})")

# Words around a due-date match that make it more (or less) likely to be
# the due date of the current invoice.
_POSITIVE_ANCHORS = {
    "com vencimento em": 30,
    "total": 10,
    "resumo": 10,
    "pagamento minimo": 10,
}
_NEGATIVE_ANCHORS = {
    "proxim": -40,
    "postagem": -30,
    "processamento": -30,
    "previsao": -20,
    "fechamento": -20,
    "emissao": -20,
    "emitido": -20,
}
_ANCHOR_WINDOW = 60


def month_from_token(token: str | None) -> int | None:
    """Map a month token ("NOV", "n0v", "Dec", "dezembro") to its number."""
    if not token:
        return None
    value = normalize(token).replace("0", "o").rstrip(".")
    if value in FULL_PT_MONTHS:
        return FULL_PT_MONTHS[value]
    key = value[:3]
    return PT_MONTHS.get(key) or EN_MONTHS.get(key)


def infer_year(month: int, due_date: date) -> int:
    """Year of a day/month printed on an invoice due on ``due_date``."""
    return due_date.year - 1 if month > due_date.month else due_date.year


def resolve_date(
    day: int,
    month: int,
    due_date: date | None,
    fallback_year: int | None = None,
    clamp: bool = False,
) -> date:
    """Build a concrete purchase date from a bare day/month.

    Args:
        day: Day as printed
        month: Month number
        due_date: Invoice due date used as the year anchor
        fallback_year: Year used when no due date is known (defaults to
            the current year)
        clamp: Pull a day past the month end (31/02) back to the last
            day instead of rejecting it

    Returns:
        A date with an inferred year

    Raises:
        MalformedLineError: If the month or day is out of range
    """
    if not 1 <= month <= 12 or not 1 <= day <= 31:
        raise MalformedLineError(details={"day": day, "month": month})
    if due_date is not None:
        year = infer_year(month, due_date)
    else:
        year = fallback_year or date.today().year
    last_day = calendar.monthrange(year, month)[1]
    if day > last_day and not clamp:
        raise MalformedLineError(details={"day": day, "month": month, "year": year})
    return date(year, month, min(day, last_day))


def parse_day_month(
    value: str,
    due_date: date | None,
    fallback_year: int | None = None,
    clamp: bool = False,
) -> date:
    """Parse "dd/mm" (or "dd/mm/yy[yy]") into a date, inferring the year when absent."""
    parts = value.strip().split("/")
    try:
        day, month = int(parts[0]), int(parts[1])
    except (IndexError, ValueError) as exc:
        raise MalformedLineError(details={"date": value}) from exc
    if len(parts) >= 3 and parts[2].strip():
        try:
            year = int(parts[2])
            if year < 100:
                year += 2000
            return date(year, month, day)
        except ValueError as exc:
            raise MalformedLineError(details={"date": value}) from exc
    return resolve_date(day, month, due_date, fallback_year, clamp=clamp)


def parse_flexible_date(value: str | None, due_date: date | None) -> date | None:
    """Parse an ISO, dd/mm/yyyy or dd/mm value; None when nothing fits."""
    if not value or not value.strip():
        return None
    value = value.strip()
    try:
        return datetime.strptime(value[:10], "%Y-%m-%d").date()
    except ValueError:
        pass
    try:
        return parse_day_month(value, due_date)
    except MalformedLineError:
        return None


def first_full_date(text: str | None) -> date | None:
    """First valid dd/mm/yyyy date printed anywhere in the text."""
    for match in FULL_DATE.finditer(normalize_numeric_dates(text)):
        try:
            return date(int(match.group(3)), int(match.group(2)), int(match.group(1)))
        except ValueError:
            continue
    return None


def prepare_for_dates(text: str | None) -> str:
    """Text form every due-date pattern runs against."""
    return strip_accents(normalize_numeric_dates(text))


@dataclass(frozen=True)
class DueDateCandidate:
    """One due-date-looking match found in a document."""

    value: date
    position: int
    score: int


def _anchor_score(searchable: str, position: int) -> int:
    window = normalize(searchable[max(0, position - _ANCHOR_WINDOW):position])
    score = 0
    for anchor, weight in _POSITIVE_ANCHORS.items():
        if anchor in window:
            score += weight
    for anchor, weight in _NEGATIVE_ANCHORS.items():
        if anchor in window:
            score += weight
    return score


def _match_to_date(match: re.Match, default_year: int | None) -> date | None:
    groups = match.groupdict()
    try:
        day = int(groups["day"])
        if groups.get("mon"):
            month = month_from_token(groups["mon"])
            if month is None:
                return None
        else:
            month = int(groups["month"])
        year_text = groups.get("year")
        if year_text:
            year = int(year_text)
            if year < 100:
                year += 2000
        elif default_year is not None:
            year = default_year
        else:
            return None
        return date(year, month, day)
    except (TypeError, ValueError):
        return None


def find_due_date(
    text: str | None,
    patterns: list[tuple[re.Pattern, int]],
    digits_keyword: re.Pattern | None = None,
    label: str = "invoice",
) -> date | None:
    """Pick the most likely due date among every pattern match.

    Each pattern must use named groups ``day`` plus ``month`` or ``mon``
    and optionally ``year``; patterns without a year borrow the year of the
    first full date printed in the document. A candidate scores its pattern
    weight plus the anchors found just before it. When the best score is
    shared by different dates the earliest one is kept and the conflict is
    logged.

    Args:
        text: Raw invoice text
        patterns: (compiled pattern, weight) pairs
        digits_keyword: Optional keyword pattern for the digits-only
            fallback (e.g. "Vencimento 2 2 1 2 2 0 2 5" glued by extraction)
        label: Parser name used in log messages

    Returns:
        The chosen due date, or None
    """
    if not text or not text.strip():
        return None
    searchable = prepare_for_dates(text)
    anchor_date = first_full_date(text)
    default_year = anchor_date.year if anchor_date else None

    candidates: list[DueDateCandidate] = []
    for pattern, weight in patterns:
        for match in pattern.finditer(searchable):
            value = _match_to_date(match, default_year)
            if value is None:
                continue
            score = weight + _anchor_score(searchable, match.start())
            candidates.append(DueDateCandidate(value, match.start(), score))

    if not candidates and digits_keyword is not None:
        value = _digits_due_date(text, digits_keyword, default_year)
        if value is not None:
            return value

    if not candidates:
        return None

    best_score = max(c.score for c in candidates)
    best = sorted((c for c in candidates if c.score == best_score), key=lambda c: c.position)
    if len({c.value for c in best}) > 1:
        logger.warning(
            "%s: ambiguous due date, %d candidates tied at score %d (%s); keeping the earliest",
            label,
            len(best),
            best_score,
            ", ".join(c.value.isoformat() for c in best),
        )
    return best[0].value


def _digits_due_date(text: str, keyword: re.Pattern, default_year: int | None) -> date | None:
    match = keyword.search(strip_accents(text))
    if not match:
        return None
    tail = strip_accents(text)[match.end():match.end() + 60]
    digits = re.sub(r"\D", "", tail)
    try:
        if len(digits) >= 8:
            return date(int(digits[4:8]), int(digits[2:4]), int(digits[0:2]))
        if len(digits) >= 4 and default_year is not None:
            return date(default_year, int(digits[2:4]), int(digits[0:2]))
    except ValueError:
        return None
    return None
