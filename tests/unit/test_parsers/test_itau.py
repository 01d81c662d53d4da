"""Tests for the Itaú parser refinement."""

from datetime import date
from decimal import Decimal

import pytest

from invoice_parser.parsers.refinements import ItauParser
from invoice_parser.schemas.internal import TransactionType


class TestItauDueDate:
    """Test suite for Itaú due-date extraction."""

    def test_venc_abbreviation_without_year(self):
        """Test "VENC. 15/12" borrows the year from other dates in the text."""
        text = "\n".join([
            "ITAU",
            "Resumo da fatura em R$",
            "Pagamento efetuado em 21/11/2025 -3.692,62",
            "VENC. 15/12",
            "",
            "Pagamentos efetuados",
            "21/11/2025 PAGAMENTO EFETUADO -3.692,62",
            "",
            "Lançamentos: compras e saques",
            "17/11 UBER TRIP 18,40",
            "18/11 IFD*IFD*COMERCIO DE 120,90",
        ])
        parser = ItauParser()

        assert parser.is_applicable(text)
        assert parser.extract_due_date(text) == date(2025, 12, 15)

        txs = parser.extract_transactions(text)
        assert len(txs) == 3
        assert txs[0].transaction_type == TransactionType.INCOME
        assert txs[0].amount == Decimal("3692.62")
        assert txs[0].transaction_date == date(2025, 11, 21)
        assert txs[1].description == "UBER TRIP"
        assert txs[1].category == "Transporte"
        assert txs[2].category == "iFood"

    @pytest.mark.parametrize(
        "header, due_line",
        [
            ("Banco Itaú", "VCTO: 20 / 12 / 2025"),
            ("Itau", "Vencimento: 2 0 / 1 2 / 2 0 2 5"),
        ],
    )
    def test_spaced_digits(self, header, due_line):
        """Test dates broken by stray spaces are repaired."""
        text = "\n".join([
            header,
            "Pagamentos efetuados",
            "",
            "Lançamentos: compras e saques",
            due_line,
            "17/11 UBER TRIP 18,40",
        ])
        parser = ItauParser()

        assert parser.is_applicable(text)
        assert parser.extract_due_date(text) == date(2025, 12, 20)

    def test_com_vencimento_em_on_next_line(self):
        text = "\n".join([
            "ItauUniclass",
            "Resumo da fatura em R$",
            "Com vencimento em:",
            "22/12/2025",
            "Pagamentos efetuados",
            "",
            "Lançamentos: compras e saques",
            "17/11 UBER TRIP 18,40",
        ])
        parser = ItauParser()

        assert parser.is_applicable(text)
        assert parser.extract_due_date(text) == date(2025, 12, 22)

    def test_com_vencimento_em_beats_processing_block(self):
        """Test the processing block's next due date is not taken."""
        text = "\n".join([
            "Banco Itau",
            "Postagem: 14/12/2025",
            "Processamento: 14/12/2025",
            "Entrada: 14/12/2025",
            "Vencimento: 14/01/2026",
            "Próxima postagem: 14/01/2026",
            "",
            "O total da sua fatura é:",
            "Com vencimento em:",
            "22/12/2025",
            "",
            "Pagamentos efetuados",
            "21/11  PAGAMENTO DEBITADO AUTOMATICAMENTE  -3.692,62",
            "",
            "Lançamentos: compras e saques",
            "15/10  CLINICA SCHUNK 2025  720,00",
        ])
        parser = ItauParser()

        assert parser.is_applicable(text)
        assert parser.extract_due_date(text) == date(2025, 12, 22)


class TestItauTransactions:
    """Test suite for Itaú section handling and row parsing."""

    TEXT = "\n".join([
        "Banco Itaú",
        "Pagamentos efetuados",
        "21/11 PAGAMENTO DEBITADO AUTOMATICAMENTE -3.692,62",
        "Lançamentos: compras e saques",
        "Vencimento: 15/12/2025",
        "17 NOV UBER TRIP 18,40",
        "18/11 LOJA X 03/12 120,00",
        "Compras parceladas - próximas faturas",
        "10/01 LOJA X 04/12 120,00",
    ])

    def test_future_installments_block_stops_scan(self):
        txs = ItauParser().extract_transactions(self.TEXT)

        assert len(txs) == 3
        assert all(tx.transaction_date <= date(2025, 12, 15) for tx in txs)

    def test_textual_month_date(self):
        tx = ItauParser().extract_transactions(self.TEXT)[1]

        assert tx.description == "UBER TRIP"
        assert tx.transaction_date == date(2025, 11, 17)
        assert tx.card_name == "Itaú"

    def test_installment_split_from_description(self):
        tx = ItauParser().extract_transactions(self.TEXT)[2]

        assert tx.description == "LOJA X"
        assert (tx.installment_number, tx.installment_total) == (3, 12)

    def test_payment_section_row_is_income(self):
        tx = ItauParser().extract_transactions(self.TEXT)[0]

        assert tx.transaction_type == TransactionType.INCOME
        assert tx.category == "Pagamento"

    def test_rows_outside_sections_ignored(self):
        """Test rows after a reset marker are not read."""
        text = self.TEXT.replace(
            "Compras parceladas - próximas faturas",
            "Encargos cobrados nesta fatura",
        )

        txs = ItauParser().extract_transactions(text)

        assert len(txs) == 3

    def test_impossible_dates_dropped(self):
        """Test rows with days the month does not have are dropped, not clamped."""
        text = "\n".join([
            "Banco Itaú",
            "Vencimento: 15/12/2025",
            "Lançamentos: compras e saques",
            "31/02 LOJA FANTASMA 10,00",
            "45/11 OUTRA LOJA 20,00",
            "17/11 UBER TRIP 18,40",
        ])

        txs = ItauParser().extract_transactions(text)

        assert [(tx.description, tx.transaction_date) for tx in txs] == [("UBER TRIP", date(2025, 11, 17))]

    def test_empty_text(self):
        assert ItauParser().extract_transactions("") == []
        assert not ItauParser().is_applicable("")

    def test_drops_rows_after_due_date_flag(self):
        assert ItauParser.drop_rows_after_due_date is True


class TestItauGuardrail:
    """Test suite for Itaú vs Personnalité disambiguation."""

    def test_conflicts_with_personnalite(self):
        parser = ItauParser()

        assert parser.conflicts_with("Itaú Personnalité\nLançamentos: compras e saques")
        assert parser.conflicts_with("Itaú Mastercard Black")
        assert not parser.conflicts_with(TestItauTransactions.TEXT)

    def test_not_applicable_without_brand(self):
        text = TestItauTransactions.TEXT.replace("Banco Itaú", "Banco Qualquer")

        assert not ItauParser().is_applicable(text)
