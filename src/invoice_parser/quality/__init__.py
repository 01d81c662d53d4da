"""Quality gate for parse results: scoring and acceptance checks."""

from .evaluator import ParseQualityEvaluator
from .validator import ParseQualityValidator

__all__ = ["ParseQualityEvaluator", "ParseQualityValidator"]
