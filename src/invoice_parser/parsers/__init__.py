"""Invoice parser strategies.

One InvoiceParser subclass per institution layout; the selector scores
all of them against a document and the factory builds the ordered
registry they are evaluated from.
"""

from invoice_parser.parsers.base import InvoiceParser, PdfAwareParser
from invoice_parser.parsers.factory import build_default_parsers
from invoice_parser.parsers.selector import Candidate, Selection, select_best

__all__ = [
    "Candidate",
    "InvoiceParser",
    "PdfAwareParser",
    "Selection",
    "build_default_parsers",
    "select_best",
]
