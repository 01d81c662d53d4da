"""Tests for the extraction service client."""

from decimal import Decimal

import httpx
import pytest

from invoice_parser.core.exceptions import ExternalServiceError
from invoice_parser.extraction.client import ExtractorClient

SERVICE_PAYLOAD = {
    "bank": "ITAU_PERSONNALITE",
    "dueDate": "2025-12-01",
    "total": 3760.96,
    "pages": 4,
    "transactions": [
        {"date": "2025-11-17", "description": "ALLIANZ SEGU", "amount": 188.39, "cardFinal": "8578"},
    ],
}


def _client(handler) -> ExtractorClient:
    return ExtractorClient("http://extractor.test/", timeout=1.0, transport=httpx.MockTransport(handler))


class TestExtractorClient:
    """Test suite for ExtractorClient."""

    def test_trailing_slash_stripped(self):
        assert ExtractorClient("  http://extractor.test/ ").base_url == "http://extractor.test"

    def test_personnalite_upload(self):
        """Test the PDF is sent as a multipart "file" field to the layout endpoint."""
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json=SERVICE_PAYLOAD)

        response = _client(handler).parse_itau_personnalite(b"%PDF-1.7 fake")

        assert len(requests) == 1
        request = requests[0]
        assert request.method == "POST"
        assert request.url.path == "/parse/itau-personnalite"
        assert "multipart/form-data" in request.headers["content-type"]
        body = request.read()
        assert b'name="file"' in body
        assert b'filename="invoice.pdf"' in body
        assert b"%PDF-1.7 fake" in body

        assert response.due_date == "2025-12-01"
        assert response.total == Decimal("3760.96")
        assert response.transactions[0].card_final == "8578"

    def test_sicredi_endpoint(self):
        paths = []

        def handler(request: httpx.Request) -> httpx.Response:
            paths.append(request.url.path)
            return httpx.Response(200, json={"transactions": []})

        response = _client(handler).parse_sicredi(b"%PDF")

        assert paths == ["/parse/sicredi"]
        assert response.transactions == []

    def test_empty_document_not_sent(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        with pytest.raises(ExternalServiceError) as exc_info:
            _client(handler).parse_sicredi(b"")

        assert exc_info.value.error_code == "EXT_001"
        assert exc_info.value.details["reason"] == "empty document"

    def test_http_error_status(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="bad gateway")

        with pytest.raises(ExternalServiceError) as exc_info:
            _client(handler).parse_itau_personnalite(b"%PDF")

        assert exc_info.value.details["status"] == 502
        assert exc_info.value.details["body"] == "bad gateway"
        assert exc_info.value.details["endpoint"] == "/parse/itau-personnalite"

    def test_transport_failure(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(ExternalServiceError) as exc_info:
            _client(handler).parse_itau_personnalite(b"%PDF")

        assert "connection refused" in exc_info.value.details["reason"]
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    def test_timeout(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(ExternalServiceError):
            _client(handler).parse_sicredi(b"%PDF")

    @pytest.mark.parametrize(
        "content, reason",
        [
            (b"", "empty body"),
            (b"   \n", "empty body"),
            (b"<html>oops</html>", "malformed body"),
            (b'{"transactions": "nope"}', "malformed body"),
        ],
        ids=["empty", "whitespace", "not-json", "wrong-shape"],
    )
    def test_unusable_body(self, content, reason):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=content)

        with pytest.raises(ExternalServiceError) as exc_info:
            _client(handler).parse_itau_personnalite(b"%PDF")

        assert exc_info.value.details["reason"] == reason


def test_from_settings(settings) -> None:
    client = ExtractorClient.from_settings(settings)

    assert client.base_url == "http://extractor.test"
    assert client.timeout == 1.0
