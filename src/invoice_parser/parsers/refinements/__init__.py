"""Institution-specific parser refinements.

Each refinement extends InvoiceParser and overrides only what is different
for that institution's layout (section headers, line shapes, dates).
"""

from .banco_do_brasil import BancoDoBrasilParser
from .bradesco import BradescoParser
from .c6 import C6Parser
from .itau import ItauParser
from .itau_personnalite import ItauPersonnaliteParser
from .mercado_pago import MercadoPagoParser
from .nubank import NubankParser
from .santander import SantanderParser
from .sicredi import SicrediParser

__all__ = [
    "BancoDoBrasilParser",
    "BradescoParser",
    "C6Parser",
    "ItauParser",
    "ItauPersonnaliteParser",
    "MercadoPagoParser",
    "NubankParser",
    "SantanderParser",
    "SicrediParser",
]
