"""Transaction categorization utilities.

Deterministic, local categorization of invoice transactions from their
descriptions. Rule-based on purpose: no network calls, auditable output.
"""

from .rules import CATEGORIES, categorize, infer_scope

__all__ = ["CATEGORIES", "categorize", "infer_scope"]
