"""Tests for the Nubank parser refinement."""

from datetime import date
from decimal import Decimal

from invoice_parser.parsers.refinements import NubankParser
from invoice_parser.schemas.internal import TransactionType

NUBANK_INVOICE = "\n".join([
    "Nubank",
    "Olá, Lia.",
    "Esta é a sua fatura de dezembro, no valor de R$ 1.107,60",
    "",
    "Data de vencimento: 12 DEZ 2025",
    "Período vigente: 05 NOV a 05 DEZ",
    "Limite total do cartão de crédito: R$ 1.300,00",
    "",
    "LIA RIBEIRO ENDRINGER                    EMISSÃO E ENVIO 05 DEZ 2025",
    "FATURA 12 DEZ 2025",
    "",
    "TRANSAÇÕES    DE 05 NOV A 05 DEZ",
    "",
    "06 NOV    🔄    Pepay*Segurofatura    R$ 6,90",
    "         └→ Total e pagar: R$ 6,90 (valor da transação de R$ 6,90 + R$ 0,00 de IOF + R$ 0,00 de juros).",
    "",
    "06 NOV    💳    Uber*Trip Help.U    R$ 43,75",
    "         └→ Total e pagar: R$ 43,75 (valor da transação de R$ 43,75 + R$ 0,00 de IOF + R$ 0,00 de juros).",
    "",
    "12 NOV    🏪    R F CRUZ CHURRASCANAL    R$ 104,30",
    "         └→ Total e pagar: R$ 104,29 (valor da transação de R$ 85,00 + R$ 0,81 de IOF + R$ 18,49 de juros).",
    "",
    "Pagamentos e Financiamentos    -R$ 660,63",
    "",
    "05 NOV    Pagamento em 05 NOV    -R$ 934,83",
])


class TestNubankParser:
    """Test suite for NubankParser."""

    def test_is_applicable(self):
        assert NubankParser().is_applicable(NUBANK_INVOICE)

    def test_requires_brand(self):
        text = NUBANK_INVOICE.replace("Nubank\n", "")

        assert not NubankParser().is_applicable(text)

    def test_extract_due_date(self):
        assert NubankParser().extract_due_date(NUBANK_INVOICE) == date(2025, 12, 12)

    def test_extract_transactions(self):
        txs = NubankParser().extract_transactions(NUBANK_INVOICE)

        assert len(txs) == 4

        assert txs[0].description == "Pepay*Segurofatura"
        assert txs[0].amount == Decimal("6.90")
        assert txs[0].category == "Seguro"
        assert txs[0].transaction_date == date(2025, 11, 6)

        assert txs[1].description == "Uber*Trip Help.U"
        assert txs[1].amount == Decimal("43.75")
        assert txs[1].category == "Transporte"

    def test_billed_total_overrides_row_amount(self):
        """Test the "Total e pagar" detail line adjusts the purchase amount."""
        churrascaria = NubankParser().extract_transactions(NUBANK_INVOICE)[2]

        assert churrascaria.description == "R F CRUZ CHURRASCANAL"
        assert churrascaria.amount == Decimal("104.29")
        assert churrascaria.transaction_type == TransactionType.EXPENSE
        assert churrascaria.category == "Alimentação"
        assert churrascaria.transaction_date == date(2025, 11, 12)

    def test_payment_row(self):
        """Test payments are income and the section subtotal is skipped."""
        payment = NubankParser().extract_transactions(NUBANK_INVOICE)[3]

        assert payment.description == "Pagamento em 05 NOV"
        assert payment.amount == Decimal("934.83")
        assert payment.transaction_type == TransactionType.INCOME
        assert payment.category == "Reembolso"
        assert payment.transaction_date == date(2025, 11, 5)

    def test_amount_on_next_line(self):
        text = "\n".join([
            "Nubank",
            "Data de vencimento: 12 DEZ 2025",
            "FATURA 12 DEZ 2025",
            "TRANSAÇÕES",
            "20 N0V    NETFLIX.COM",
            "R$ 55,90",
        ])

        txs = NubankParser().extract_transactions(text)

        assert len(txs) == 1
        assert txs[0].description == "NETFLIX.COM"
        assert txs[0].amount == Decimal("55.90")
        assert txs[0].transaction_date == date(2025, 11, 20)
        assert txs[0].category == "Assinaturas"

    def test_no_due_date(self):
        text = NUBANK_INVOICE.replace("Data de vencimento: 12 DEZ 2025", "")

        assert NubankParser().extract_due_date(text) is None
        assert NubankParser().extract_transactions(text) == []
