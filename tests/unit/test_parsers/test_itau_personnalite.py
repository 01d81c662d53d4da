"""Tests for the Itaú Personnalité parser refinement."""

from datetime import date
from decimal import Decimal
from unittest.mock import Mock

import pytest

from invoice_parser.core.exceptions import ExternalServiceError
from invoice_parser.parsers.refinements import ItauPersonnaliteParser
from invoice_parser.schemas.extractor import ExtractorResponse

SIMPLE_INVOICE = "\n".join([
    "Itau Personnalitê",
    "Resumo da fatura",
    "Vencimento: 21/11/2025",
    "",
    "Lançamentos: compras e saques",
    "17/11 UBER TRIP 18,40",
])

FULL_MARKERS = "\n".join([
    "ITAU PERSONNALITE",
    "MASTERCARD",
    "Com vencimento em: 01/12/2025",
    "Lançamentos no cartão (final 8578)",
    "Lançamentos: compras e saques",
    "17/11 ALLIANZ SEGU*09 de 10 188,39",
    "Compras parceladas - próximas faturas",
])


class TestPersonnaliteApplicability:
    """Test suite for Personnalité detection on clean and garbled text."""

    @pytest.mark.parametrize(
        "text",
        [
            FULL_MARKERS,
            FULL_MARKERS.replace("ITAU PERSONNALITE", "Itau Personnalitê").replace("MASTERCARD", "MasterCard"),
            "\n".join([
                "Resumo da fatura em R$",
                "Lanamentos no carto (final 8578)",
                "Lanamentos: compras e saques",
                "17/11 ALLIANZ SEGU*09 de 10 188,39",
                "Total dos lanamentos atuais 3.760,96",
            ]),
            "\n".join([
                "Ita Unibanco",
                "Resumo da fatura em R$",
                "Lanamentos atuais 3.760,96",
                "Lanamentos no carto (final 8578)",
                "Lanamentos: compras e saques",
                "ITAU PERSONNALITÉ",
                "17/11 UBER TRIP 18,40",
            ]),
            "\n".join([
                "Ita Cares",
                "Resumo da fatura em R$",
                "Lanamentos atuais 3.760,96",
                "Lanamentos: compras e saques",
                "p e r s o n a l i t e",
                "17/11 UBER TRIP 18,40",
            ]),
            "\n".join([
                "Resumo da fatura em R$",
                "Ita\u00a0\u00a0Cares",
                "5234.XXXX.XXXX.8578\u00a0MASTERCARD\u00a0BLACK",
                "Lanamentos\u00a0atuais 3.760,96",
                "Lanamentos\u00a0no carto (final 8578)",
                "Lanamentos:\u00a0compras e saques",
                "Vencimento: 01/12/2025",
                "17/11 UBER TRIP 18,40",
            ]),
        ],
        ids=["uppercase", "mixed-case", "no-brand", "ita-unibanco", "spaced-letters", "premium-nbsp"],
    )
    def test_accepts_personnalite(self, text):
        assert ItauPersonnaliteParser().is_applicable(text)

    @pytest.mark.parametrize(
        "text",
        [
            "\n".join([
                "Esta é a sua fatura de dezembro, no valor de R$ 1.107,60",
                "Data de vencimento: 12 DEZ 2025",
                "Período vigente: 05 NOV a 05 DEZ",
                "Limite total do cartão de crédito: R$ 1.300,00",
                "Compras parceladas - próximas faturas",
            ]),
            "\n".join([
                "ITAU UNIBANCO S.A.",
                "FATURA DO CARTAO DE CREDITO",
                "Período: 01/11/2025 a 30/11/2025",
                "Vencimento: 15/12/2025",
                "Saldo anterior: R$ 0,00",
                "Compras parceladas - próximas faturas",
            ]),
            "\n".join([
                "Ita Unibanco",
                "Vencimento: 21/11/2025",
                "Lançamentos: compras e saques",
                "17/11 UBER TRIP 18,40",
            ]),
            "\n".join([
                "ITAU UNIBANCO S.A.",
                "Resumo da fatura em R$",
                "Lançamentos atuais 2.005,92",
                "Pagamento mínimo: R$ 200,59",
                "Vencimento: 22/12/2025",
                "Infinite",
                "Lançamentos: compras e saques",
                "15/10 CLINICA SCHUNK 02/05 720,00",
            ]),
            "",
        ],
        ids=["nubank", "regular-itau", "weak-itau", "itau-infinite-only", "empty"],
    )
    def test_rejects_other_layouts(self, text):
        assert not ItauPersonnaliteParser().is_applicable(text)

    def test_never_conflicts(self):
        assert ItauPersonnaliteParser().conflicts_with(FULL_MARKERS) is False


class TestPersonnaliteTransactions:
    """Test suite for Personnalité row extraction."""

    def test_future_block_split_across_lines_is_ignored(self):
        """Test "Compras parceladas - pr" / "ximas faturas" still ends the invoice."""
        text = "\n".join([
            "Itau Personnalitê",
            "Resumo da fatura",
            "Vencimento: 21/11/2025",
            "",
            "Lançamentos: compras e saques",
            "17/11 UBER TRIP 18,40",
            "18/11 IFD*IFD*COMERCIO DE 120,90",
            "",
            "Compras parceladas - pr",
            "ximas faturas",
            "22/01 BT SHOP VITORI 11/12 482,00",
            "23/01 OUTRA LOJA 01/05 100,00",
            "",
            "Encargos cobrados nesta fatura",
        ])

        txs = ItauPersonnaliteParser().extract_transactions(text)

        assert len(txs) == 2

    def test_date_only_and_range_noise_lines(self):
        text = "\n".join([
            "Resumo da fatura em R$",
            "Vencimento: 01/12/2025",
            "Previsão prox. Fechamento: 24/12/2025.",
            "(01/12 a 31/12)",
            "Lanamentos no carto (final 8578)",
            "19/05 COS SERVICOSMEDIC07/10 500,00",
            "Compras parceladas - pr",
            "ximas faturas",
            "19/05 COS SERVICOSMEDIC08/10 500,00",
            "Total dos lanamentos atuais 3.760,96",
        ])
        parser = ItauPersonnaliteParser()

        assert parser.is_applicable(text)

        txs = parser.extract_transactions(text)
        assert len(txs) == 1
        assert txs[0].amount == Decimal("500.00")

    def test_installment_noise_before_amount(self):
        text = SIMPLE_INVOICE.replace("17/11 UBER TRIP 18,40", "17/11 ALLIANZ SEGUROS 09de10 188,39")

        txs = ItauPersonnaliteParser().extract_transactions(text)

        assert len(txs) == 1
        assert "allianz" in txs[0].description.lower()
        assert txs[0].amount == Decimal("188.39")
        assert txs[0].transaction_date == date(2025, 11, 17)
        assert (txs[0].installment_number, txs[0].installment_total) == (9, 10)

    def test_leading_symbol_before_date(self):
        text = SIMPLE_INVOICE.replace("17/11 UBER TRIP", "☎ 17/11 UBER TRIP")

        txs = ItauPersonnaliteParser().extract_transactions(text)

        assert len(txs) == 1
        assert txs[0].transaction_date == date(2025, 11, 17)

    def test_card_name_per_card_section(self):
        text = "\n".join([
            "Itau Personnalitê",
            "Mastercard",
            "Resumo da fatura",
            "Vencimento: 21/11/2025",
            "",
            "Lançamentos no cartão (final 8578)",
            "17/11 UBER TRIP 18,40",
            "",
            "Lançamentos no cartão (final 2673)",
            "18/11 AMAZON 120,90",
        ])

        txs = ItauPersonnaliteParser().extract_transactions(text)

        assert len(txs) == 2
        assert txs[0].card_name == "Itau Personnalitê Mastercard final 8578"
        assert txs[1].card_name == "Itau Personnalitê Mastercard final 2673"

    def test_category_from_hint_line(self):
        """Test the CATEGORY.CITY line under a purchase sets its category."""
        text = SIMPLE_INVOICE.replace("17/11 UBER TRIP 18,40", "17/11 FARMACIA 18,40\nSAÚDE.SAO PAULO")

        txs = ItauPersonnaliteParser().extract_transactions(text)

        assert len(txs) == 1
        assert txs[0].category == "Saúde"

    def test_installment_echoes_keep_lowest_index(self):
        text = "\n".join([
            "Itau Personnalitê",
            "Mastercard",
            "Com vencimento em: 01/12/2025",
            "Lançamentos no cartão (final 8578)",
            "Lançamentos: compras e saques",
            "19/05 COS SERVICOSMEDIC07/10 500,00",
            "19/05 COS SERVICOSMEDIC08/10 500,00",
            "Total dos lancamentos atuais 3.760,96",
        ])

        txs = ItauPersonnaliteParser().extract_transactions(text)

        assert len(txs) == 1
        assert (txs[0].installment_number, txs[0].installment_total) == (7, 10)
        assert txs[0].amount == Decimal("500.00")

    def test_rows_before_launches_anchor(self):
        """Test rows printed before the launches header are still read."""
        text = "\n".join([
            "Resumo da fatura em R$",
            "Vencimento: 01/12/2025",
            "Continua...",
            "Lanamentos no carto (final 8578)",
            "19/05 COS SERVICOSMEDIC07/10 500,00",
            "Lanamentos atuais 3.760,96",
            "Lanamentos: compras e saques",
            "Compras parceladas - próximas faturas",
            "19/05 COS SERVICOSMEDIC08/10 500,00",
        ])
        parser = ItauPersonnaliteParser()

        assert parser.is_applicable(text)

        txs = parser.extract_transactions(text)
        assert len(txs) == 1
        assert txs[0].amount == Decimal("500.00")


class TestPersonnaliteExtractionService:
    """Test suite for the PDF path through the extraction service."""

    def test_client_failure_falls_back_to_text(self):
        client = Mock()
        client.parse_itau_personnalite.side_effect = ExternalServiceError(details={"reason": "down"})
        parser = ItauPersonnaliteParser(client=client)

        expected = parser.extract_transactions(SIMPLE_INVOICE)
        result = parser.parse_with_source(b"\x01\x02\x03", SIMPLE_INVOICE)

        assert result.source == "text"
        assert len(result.transactions) == len(expected)
        assert result.transactions[0].description == expected[0].description
        client.parse_itau_personnalite.assert_called_once_with(b"\x01\x02\x03")

    def test_client_success_uses_service_rows(self):
        client = Mock()
        client.parse_itau_personnalite.return_value = ExtractorResponse.model_validate({
            "bank": "itau_personnalite",
            "dueDate": "2025-11-21",
            "total": 3760.96,
            "transactions": [
                {"date": "2025-11-17", "description": "UBER TRIP", "amount": 18.40, "cardFinal": "8578"},
                {
                    "date": "17/11",
                    "description": "ALLIANZ SEGUROS 09/10",
                    "amount": 188.39,
                    "cardFinal": "2673",
                    "installment": {"current": 9, "total": 10},
                },
            ],
        })
        parser = ItauPersonnaliteParser(client=client)
        text = "Itau Personnalitê\nResumo da fatura\nVencimento: 21/11/2025"

        result = parser.parse_with_source(b"\x09\x09\x09", text)

        assert result.source == "extractor"
        assert result.due_date == date(2025, 11, 21)
        assert result.total_amount == Decimal("3760.96")
        assert len(result.transactions) == 2
        assert result.transactions[0].description == "UBER TRIP"
        assert result.transactions[0].card_name == "Itau Personnalitê final 8578"
        assert result.transactions[1].transaction_date == date(2025, 11, 17)
        assert (result.transactions[1].installment_number, result.transactions[1].installment_total) == (9, 10)
        assert result.card_last_digits is None
        client.parse_itau_personnalite.assert_called_once()

    def test_empty_service_response_falls_back_to_text(self):
        client = Mock()
        client.parse_itau_personnalite.return_value = ExtractorResponse(transactions=[])
        parser = ItauPersonnaliteParser(client=client)

        result = parser.parse_with_source(b"%PDF", SIMPLE_INVOICE)

        assert result.source == "text"
        assert len(result.transactions) == 1

    def test_without_client_uses_text(self):
        result = ItauPersonnaliteParser().parse_with_source(b"%PDF", SIMPLE_INVOICE)

        assert result.source == "text"
        assert result.parser_name == "itau_personnalite"
