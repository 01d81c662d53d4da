"""Text normalization shared by applicability checks and categorization.

Invoice text arrives from an upstream PDF-to-text step with accents,
mixed case, non-breaking spaces and column padding. Everything that
matches keywords goes through ``normalize`` first so that "Itaú
Personnalité", "ITAU PERSONNALITE" and "Itau   Personnalité" compare equal.
"""

import re
import unicodedata

# Acquirer / marketplace prefixes glued to merchant names ("EC*ADIDAS", "MP*LOJA").
_ACQUIRER_PREFIX = re.compile(r"(?i)\b(?:ec|mp|pg|sq)\s*\*\s*")
_MERCHANT_PREFIX = re.compile(r"\b(?:EC|MP|PG|SQ)\s*\*|\bMP\s+")
_WHITESPACE = re.compile(r"\s+")
# Only gaps next to a lone digit ("2 2 / 1 2"), so "2025 17/11" stays apart.
_DIGIT_GAP = re.compile(r"(?<!\d\d)(?<=\d)[ \t]+(?=\d)|(?<=\d)[ \t]+(?=\d(?!\d))")
_SEPARATOR_GAP = re.compile(r"[ \t]*([./-])[ \t]*")


def strip_accents(text: str) -> str:
    """Remove combining marks after canonical decomposition."""
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def _unify_spaces(text: str) -> str:
    # NBSP, thin spaces and the rest of the Unicode Z* separators.
    return "".join(" " if unicodedata.category(ch).startswith("Z") else ch for ch in text)


def normalize(text: str | None) -> str:
    """Canonicalize text for accent/case-insensitive matching.

    Args:
        text: Raw text (may be None)

    Returns:
        Lowercase, accent-free text with single spaces and known
        acquirer prefixes removed. Never raises.
    """
    if not text:
        return ""
    value = strip_accents(_unify_spaces(text)).lower()
    value = _ACQUIRER_PREFIX.sub("", value)
    return _WHITESPACE.sub(" ", value).strip()


def compact(normalized: str | None) -> str:
    """Drop every space, to match tokens that were merged or split by extraction."""
    return (normalized or "").replace(" ", "")


def contains_keyword(text: str | None, keyword: str | None) -> bool:
    """Accent/case-insensitive substring test."""
    needle = normalize(keyword)
    return bool(needle) and needle in normalize(text)


def normalize_merchant(description: str | None) -> str:
    """Normalize a merchant description into an uppercase matching key.

    Punctuation becomes spaces ("APPLE.COM/BILL" -> "APPLE COM BILL",
    "H&M" -> "H M") so keyword families can use plain substrings.
    """
    if not description:
        return ""
    value = strip_accents(_unify_spaces(description)).upper()
    value = _MERCHANT_PREFIX.sub("", value)
    value = re.sub(r"[^A-Z0-9 ]", " ", value)
    return _WHITESPACE.sub(" ", value).strip()


def normalize_numeric_dates(text: str | None) -> str:
    """Repair dates broken by stray whitespace ("2 2 / 1 2 / 2 0 2 5" -> "22/12/2025").

    Only meant for due-date searches; the output is not suitable for line
    scanning because columns of digits get glued together.
    """
    if not text:
        return ""
    value = text.replace("\u00a0", " ")
    value = _DIGIT_GAP.sub("", value)
    return _SEPARATOR_GAP.sub(r"\1", value)


def collapse_spaces(text: str | None) -> str:
    """Collapse whitespace runs without touching case or accents."""
    return _WHITESPACE.sub(" ", _unify_spaces(text or "")).strip()
