"""Parser registry.

The order of the registry is part of the selection rules: more specific
layouts come first so they win ties against broader ones.
"""

from invoice_parser.extraction.client import ExtractorClient
from invoice_parser.parsers.base import InvoiceParser
from invoice_parser.parsers.refinements import (
    BancoDoBrasilParser,
    BradescoParser,
    C6Parser,
    ItauParser,
    ItauPersonnaliteParser,
    MercadoPagoParser,
    NubankParser,
    SantanderParser,
    SicrediParser,
)


def build_default_parsers(client: ExtractorClient | None = None) -> tuple[InvoiceParser, ...]:
    """Build the ordered, immutable strategy registry.

    Args:
        client: Extraction service client handed to the PDF-aware
            strategies (None disables the service path)

    Returns:
        Tuple of parser instances in selection order
    """
    return (
        ItauPersonnaliteParser(client=client),
        ItauParser(),
        BradescoParser(),
        BancoDoBrasilParser(),
        SicrediParser(client=client),
        MercadoPagoParser(),
        NubankParser(),
        C6Parser(),
        SantanderParser(),
    )
