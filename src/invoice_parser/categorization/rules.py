"""Deterministic merchant categorization.

Brazilian card invoices carry no MCC, so a category is inferred from the
merchant description plus the transaction direction. Rules are ordered
keyword families: narrow brand names come before broad substrings, and a
handful of short tokens use word boundaries ("GOL" must not match "GOLD'S
GYM", "PET" must not match "PETRO", "OTICA" must not match "BOTICARIO").
"""

from __future__ import annotations

import re

from invoice_parser.normalize import compact, normalize, normalize_merchant
from invoice_parser.schemas.internal import TransactionScope, TransactionType

DEFAULT_CATEGORY = "Outros"

# Public taxonomy (display labels).
CATEGORIES: set[str] = {
    "Pagamento",
    "Reembolso",
    "Taxas e Juros",
    "Assinaturas",
    "Hospedagem",
    "Viagem",
    "iFood",
    "Alimentação",
    "Vestuário",
    "Academia/Saúde",
    "Saúde",
    "Plano de Saúde",
    "Seguro",
    "Pet",
    "E-commerce",
    "Serviços",
    "Lazer",
    "Educação",
    "Beleza",
    "Transporte",
    "Internet",
    "Celular",
    "Aluguel",
    "Água",
    "Luz",
    "Outros",
}

_Matcher = tuple[str, ...] | re.Pattern[str]


def _family(*needles: str) -> tuple[str, ...]:
    return tuple(normalize_merchant(needle) for needle in needles)


def _word(*tokens: str) -> re.Pattern[str]:
    return re.compile(r"\b(?:" + "|".join(tokens) + r")\b")


_INCOME_RULES: list[tuple[str, _Matcher]] = [
    ("Pagamento", _family("INCLUSAO DE PAGAMENTO", "PAGAMENTO", "PAGTO", "PGTO")),
    ("Reembolso", _family(
        "ESTORNO", "CREDITO", "REEMBOLSO", "DEVOLUCAO", "PAYGOAL", "CASHBACK", "PONTOS",
    )),
]

# Ordering matters: earlier matches win.
_EXPENSE_RULES: list[tuple[str, _Matcher]] = [
    ("Taxas e Juros", _family("ANUIDADE", "ANULIDADE")),

    # Subscriptions / streaming / software
    ("Assinaturas", _family(
        "NETFLIX", "DISNEY PLUS", "DISNEY+", "AMAZON PRIME", "PRIME VIDEO", "HBO MAX",
        "GLOBOPLAY", "GLOBO PLAY", "PARAMOUNT PLUS", "PARAMOUNT+", "APPLE TV",
        "SPOTIFY", "APPLE MUSIC", "YOUTUBE MUSIC", "YOUTUBE PREMIUM", "DEEZER", "TIDAL",
        "PLAYSTATION PLUS", "PS PLUS", "XBOX GAME PASS", "GAME PASS", "XBOX LIVE",
        "NINTENDO SWITCH ONLINE", "NINTENDO ONLINE", "STEAM", "EPIC GAMES",
        "MICROSOFT 365", "OFFICE 365", "ONEDRIVE", "MICROSOFT TEAMS", "ADOBE",
        "PHOTOSHOP", "LIGHTROOM", "ICLOUD", "APPLE ONE", "GOOGLE ONE",
        "GOOGLE WORKSPACE", "D GOOGLE", "DGOOGLE", "GOOGLE BRASIL PAGAMENTOS",
        "BRASIL PAGAMENTOS", "SMILES CLUB", "CLUBE LIVELO",
    )),
    ("Assinaturas", re.compile(r"GOOGLE.*PAGAMENTOS|APPLE COM BILL|APPLE.*\bCOM\b.*\bBILL\b")),

    ("Hospedagem", _family("AIRBNB", "BOOKING", "EXPEDIA", "TRIVAGO", "HOTELS COM")),

    # Airlines. Short codes only as whole words.
    ("Viagem", _family(
        "LATAM", "UNITED AIRLINES", "GOL LINHAS", "AZUL LINHAS", "AZUL AEREAS",
        "DECOLAR", "MAXMILHAS", "123MILHAS", "TICKETE CO TRAVE",
    )),
    ("Viagem", _word("GOL", "UNITED")),

    # Delivery before transport: "UBER EATS" contains "UBER".
    ("iFood", re.compile(r"^IFD\b|IFOOD")),
    ("Alimentação", _family("UBER EATS", "UBEREATS", "RAPPI", "99FOOD", "99 FOOD", "AIQFOME")),

    # Apparel
    ("Vestuário", _family(
        "ADIDAS", "NIKE", "PUMA", "MIZUNO", "ASICS", "NEW BALANCE", "REEBOK", "SAUCONY",
        "CONVERSE", "LUPO", "HAVAIANAS", "MORMAII", "SPEEDO", "MOTTA SPORT", "BIRDEN",
        "GALAPAGOS", "FUTFANATICS", "CENTAURO", "NETSHOES", "BOLOVO", "SHEIN", "RENNER",
        "RIACHUELO", "ZARA", "VIVARA", "FOREVER 21", "FASHION", "MARCELOSHOES",
        "MARCELOS SHOES", "LINGERIE", "FERRAGAMO", "MERCADOLIVREFASHION",
        "MERCADOLIVREROUPAS", "SHOPEE", "ALIEXPRESS", "ALI EXPRESS",
    )),
    ("Vestuário", _word("H M", "C C", "VANS", "WISH")),

    # Fitness
    ("Academia/Saúde", _family(
        "SMART FIT", "SMARTFIT", "BLUEFIT", "BODYTECH", "GOLD'S GYM", "GOLDS GYM",
        "GOLD GYM", "FITDANCE", "COMPANHIA ATHLETICA", "GYMPASS", "WELLHUB", "FITPASS",
        "CLASSPASS", "YOGA", "PILATES", "ACADEMIA", "KEEPRUNNING",
    )),
    ("Academia/Saúde", _word("GYM", "FIT")),

    ("Saúde", re.compile(r"VISAOEXPRESS|\bOTICAS?\b")),

    ("Plano de Saúde", _family("UNIMED", "BRADESCO SAUDE", "SULAMERICA SAUDE", "HAPVIDA", "AMIL SAUDE")),
    ("Plano de Saúde", _word("AMIL")),

    ("Seguro", _family(
        "BRADESCO AUTO", "MONGERAL", "SEGURO", "SEGURADORA", "PEPAY", "SEGUROFATURA",
        "SUPROTEGIDO", "PORTO SEGURO", "TOKIO MARINE", "ALLIANZ", "MAPFRE",
    )),

    # Pharmacies
    ("Saúde", _family(
        "FARMACIA", "DROGARIA", "DROGASIL", "DROGA RAIA", "RAIA DROGASIL", "ULTRAFARMA",
        "ULTRA FARMA", "PAGUE MENOS", "NOTRE DAME", "CONSULTA REMEDIOS", "REMEDIO",
        "PHARMA", "FORMULAS", "ESPACOLASER", "CONSULTORIO",
    )),

    ("Pet", re.compile(r"PET STOCK|PETZ\b|COBASI|\bPET\b")),

    ("E-commerce", re.compile(r"AMAZONMKTPLC|AMAZON BR|^AMAZON\b|\bAMAZON\b|MERCADOLIVRE|MAGAZINE LUIZA|\bMAGALU\b|APPLE STORE")),

    # Supermarkets
    ("Alimentação", _family(
        "CARREFOUR", "EXTRA SUPERMERCADO", "EXTRAPLUS", "PAO DE ACUCAR", "ZONA SUL",
        "PREZUNIC", "SONDA", "WALMART", "ATACADAO", "ASSAI", "MERCADO CENTRAL",
        "HORTIFRUTI", "PADARIA", "CONFEITARIA", "ADEGA",
    )),

    # Bars, restaurants, entertainment. "BAR" as prefix but not "BARRA".
    ("Lazer", re.compile(r"^BAR(?!R)|\bBAR\b")),
    ("Lazer", _family(
        "CHURRASC", "CHOPPERIA", "RESTAURANTE", "RESTAURANT", "BOTECO", "BUTECO",
        "CASA DE SHOW", "FLUENTE", "BEBIDA", "PIMENTA CARIOCA", "CINEMA", "CINEMARK",
        "INGRESSO", "SYMPLA", "TICKETMASTER", "STATUEOFLIBERTY", "CRUISES", "SEAWORLD",
        "TENNIS", "THEATRE", "TEATRO",
    )),
    ("Lazer", _word("PARK")),

    # Education
    ("Educação", _family(
        "DEVSUPERIOR", "UDEMY", "COURSERA", "ALURA", "PLATZI", "SKILLSHARE",
        "LINKEDIN LEARNING", "CAMBLY", "PREPLY", "ENGLISH LIVE", "ENGLISHLIVE", "BABBEL",
        "DUOLINGO", "BUSUU", "ESCOLA", "FACULDADE", "UNIVERSIDADE", "COLEGIO",
        "CODECADEMY", "DATACAMP", "HACKERRANK", "LEETCODE",
    )),

    # Beauty
    ("Beleza", _family(
        "SALAO", "BARBEARIA", "BARBER", "MANICURE", "PEDICURE", "NATURA", "BOTICARIO",
        "AVON", "MARY KAY", "SEPHORA", "COSMETICOS",
    )),

    # Transport and fuel
    ("Transporte", _family(
        "UBER", "CABIFY", "LYFT", "EASY TAXI", "TAXI", "COMBUST", "IPIRANGA",
        "SHELL", "PETRO", "ESTACIONAMENTO", "PARKING", "ZONA AZUL", "SEM PARAR",
        "CONECTCAR", "MOTOLIBRE", "METRO", "PEDAGIO",
    )),
    ("Transporte", _word("99", "99APP", "99POP", "POSTO")),

    # Generic food words
    ("Alimentação", _family(
        "PIZZA", "LANCHONETE", "CAFE", "SORVETERIA", "ACAI", "JUICE BAR", "CREPE",
        "HAMBURG", "BURGER", "SUSHI", "DIM SUM", "MERCADO", "SUPERMERC", "ATACADO",
        "EMPORIO", "HORTI", "BISTRO",
    )),

    ("Assinaturas", _family("STREAM", "SUBSCRIPTION", "ASSINAT")),
    ("Saúde", _family("HOSPITAL", "CLINICA", "CONSULTA", "MEDIC", "LABORATORIO", "ODONTO")),

    # Utilities
    ("Internet", _family("INTERNET", "FIBRA", "BANDA LARGA")),
    ("Celular", _family("TELEFONE", "CELULAR", "VIVO", "CLARO", "TIM CELULAR")),
    ("Aluguel", re.compile(r"ALUGUEL|\bRENT\b")),
    ("Água", re.compile(r"\bAGUA\b|SANEAMENTO|SABESP|CEDAE")),
    ("Luz", re.compile(r"ENERGIA|\bLUZ\b|ENEL\b|LIGHT SA|CEMIG|COELBA")),
]

# Words that mark an expense as business spending.
_BUSINESS_MARKERS = re.compile(
    r"\b(?:cnpj|mei|ltda|eireli|pj|fornecedor(?:es)?|insumos?|estoque|maquininha)\b"
)


def _contains(normalized: str, compacted: str, needle: str) -> bool:
    if not needle:
        return False
    if len(needle) <= 3:
        return re.search(r"\b" + re.escape(needle) + r"\b", normalized) is not None
    if needle in normalized:
        return True
    needle_compact = compact(needle)
    # Short compact needles produce false positives ("NB" inside "AMAZONBR").
    return len(needle_compact) > 3 and needle_compact in compacted


def _matches(matcher: _Matcher, normalized: str, compacted: str) -> bool:
    if isinstance(matcher, re.Pattern):
        return matcher.search(normalized) is not None
    return any(_contains(normalized, compacted, needle) for needle in matcher)


def _first_match(rules: list[tuple[str, _Matcher]], normalized: str) -> str | None:
    compacted = compact(normalized)
    for category, matcher in rules:
        if _matches(matcher, normalized, compacted):
            return category
    return None


def categorize(description: str | None, transaction_type: TransactionType | None = None) -> str:
    """Infer a category label from a merchant description.

    Args:
        description: Merchant/description text as printed on the invoice.
        transaction_type: Direction of the transaction; INCOME short-circuits
            to a payment/refund label.

    Returns:
        A label from CATEGORIES ("Outros" when nothing matches).
    """
    normalized = normalize_merchant(description)
    if not normalized:
        return DEFAULT_CATEGORY

    if transaction_type == TransactionType.INCOME:
        return _first_match(_INCOME_RULES, normalized) or DEFAULT_CATEGORY

    return _first_match(_EXPENSE_RULES, normalized) or DEFAULT_CATEGORY


def infer_scope(description: str | None) -> TransactionScope:
    """Tag a transaction as BUSINESS when its description carries company markers."""
    if _BUSINESS_MARKERS.search(normalize(description)):
        return TransactionScope.BUSINESS
    return TransactionScope.PERSONAL
