"""Tests for the C6 Bank parser refinement."""

from datetime import date
from decimal import Decimal

from invoice_parser.parsers.refinements import C6Parser
from invoice_parser.schemas.internal import TransactionType

C6_INVOICE = "\n".join([
    "C6 BANK",
    "Olá, Lenon! Sua fatura com vencimento em Dezembro chegou no valor de R$ 5.098,40",
    "Vencimento: 20/12/2025",
    "Transações do cartão principal",
    "C6 Carbon Virtual Final 5867 - LENON MERLO",
    "27 out   AIRBNB * HMF99EFWK9 - Parcela 2/3   369,48",
    "14 nov   BAR PIMENTA CARIOCA   92,40",
    "09 dez   Estorno Tarifa - Estorno   98,00",
    "C6 Carbon Virtual Final 1234 - OUTRO TITULAR",
    "21 nov   Inclusao de Pagamento   5.698,02",
])


def _with_rows(*rows, due="Vencimento: 20/12/2025"):
    return "\n".join([
        "C6 BANK",
        due,
        "Transações",
        "C6 Carbon Virtual Final 5867 - LENON MERLO",
        *rows,
    ])


class TestC6Applicability:
    """Test suite for C6 detection and due date."""

    def test_is_applicable(self):
        parser = C6Parser()

        assert parser.is_applicable(C6_INVOICE)
        assert not parser.is_applicable("BANCO X\nVencimento: 20/12/2025")

    def test_extract_due_date(self):
        assert C6Parser().extract_due_date(C6_INVOICE) == date(2025, 12, 20)

    def test_due_date_without_year(self):
        """Test the year is borrowed from the issue date."""
        text = "\n".join([
            "C6 BANK",
            "Emissão: 01/12/2025",
            "Vencimento: 20/12",
            "Transações do cartão principal",
            "C6 Carbon Virtual Final 5867 - LENON MERLO",
            "14 nov   BAR PIMENTA CARIOCA   92,40",
        ])
        parser = C6Parser()

        assert parser.is_applicable(text)
        assert parser.extract_due_date(text) == date(2025, 12, 20)

    def test_due_date_with_textual_month(self):
        text = "C6 BANK\nVencimento: 20 DEZ 2025\nC6 Carbon Virtual Final 5867 - LENON MERLO"
        parser = C6Parser()

        assert parser.is_applicable(text)
        assert parser.extract_due_date(text) == date(2025, 12, 20)


class TestC6Transactions:
    """Test suite for C6 row extraction."""

    def test_extract_transactions(self):
        """Test card blocks, installments and refunds; "Inclusao de Pagamento" is skipped."""
        txs = C6Parser().extract_transactions(C6_INVOICE)

        assert len(txs) == 3

        airbnb = txs[0]
        assert airbnb.description == "AIRBNB * HMF99EFWK9"
        assert airbnb.amount == Decimal("369.48")
        assert airbnb.transaction_type == TransactionType.EXPENSE
        assert airbnb.category == "Hospedagem"
        assert airbnb.transaction_date == date(2025, 10, 27)
        assert airbnb.card_name == "Carbon Virtual 5867"
        assert airbnb.cardholder_name == "LENON MERLO"
        assert (airbnb.installment_number, airbnb.installment_total) == (2, 3)

        bar = txs[1]
        assert bar.description == "BAR PIMENTA CARIOCA"
        assert bar.category == "Lazer"
        assert bar.transaction_date == date(2025, 11, 14)
        assert bar.installment_number is None

        refund = txs[2]
        assert refund.description == "Estorno Tarifa - Estorno"
        assert refund.amount == Decimal("98.00")
        assert refund.transaction_type == TransactionType.INCOME
        assert refund.category == "Reembolso"
        assert refund.transaction_date == date(2025, 12, 9)

    def test_numbered_description_and_ocr_month(self):
        txs = C6Parser().extract_transactions(_with_rows("21 n0v   59146329HEBER   52,00"))

        assert len(txs) == 1
        assert txs[0].description == "59146329HEBER"
        assert txs[0].amount == Decimal("52.00")
        assert txs[0].transaction_type == TransactionType.EXPENSE
        assert txs[0].transaction_date == date(2025, 11, 21)

    def test_summary_lines_skipped(self):
        text = "\n".join([
            "C6 BANK",
            "Vencimento: 20/12/2025",
            "Resumo da fatura",
            "21 nov   Compras nacionais   5.098,40",
            "Transações",
            "C6 Carbon Virtual Final 5867 - LENON MERLO",
            "14 nov   BAR PIMENTA CARIOCA   92,40",
        ])

        txs = C6Parser().extract_transactions(text)

        assert [tx.description for tx in txs] == ["BAR PIMENTA CARIOCA"]

    def test_repeated_card_section_keeps_rows(self):
        text = _with_rows(
            "14 nov   BAR PIMENTA CARIOCA   92,40",
            "C6 Carbon Virtual Final 5867 - LENON MERLO",
            "14 nov   BAR PIMENTA CARIOCA   92,40",
        )

        assert len(C6Parser().extract_transactions(text)) == 2

    def test_identical_rows_are_not_deduplicated(self):
        txs = C6Parser().extract_transactions(_with_rows(
            "21 nov   BAR PIMENTA CARIOCA   11,00",
            "21 nov   BAR PIMENTA CARIOCA   11,00",
            "21 nov   BAR PIMENTA CARIOCA   18,00",
        ))

        assert [tx.amount for tx in txs] == [Decimal("11.00"), Decimal("11.00"), Decimal("18.00")]

    def test_previous_year_for_months_after_due_month(self):
        txs = C6Parser().extract_transactions(_with_rows(
            "27 dez   AIRBNB * HMF99EFWK9   369,48",
            "02 fev   SHOPEE *LIVICOMPANY   66,41",
            due="Vencimento: 19/02/2026",
        ))

        assert [tx.transaction_date for tx in txs] == [date(2025, 12, 27), date(2026, 2, 2)]
