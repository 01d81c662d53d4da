"""Client for the external PDF extraction service.

The service receives the original PDF as a multipart upload and answers
with a structured JSON payload (see ``schemas.extractor``). Every failure
(transport, timeout, status, empty or malformed body) surfaces as
``ExternalServiceError`` so callers can fall back to the text path.
"""

import logging

import httpx
from pydantic import ValidationError

from invoice_parser.core.config import Settings
from invoice_parser.core.exceptions import ExternalServiceError
from invoice_parser.schemas.extractor import ExtractorResponse

logger = logging.getLogger(__name__)

ITAU_PERSONNALITE_ENDPOINT = "/parse/itau-personnalite"
SICREDI_ENDPOINT = "/parse/sicredi"


class ExtractorClient:
    """Synchronous client for the extraction service.

    Example:
        >>> client = ExtractorClient("http://localhost:8000", timeout=10.0)
        >>> response = client.parse_itau_personnalite(pdf_bytes)
        >>> len(response.transactions)
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize the client.

        Args:
            base_url: Service root (trailing slash is ignored)
            timeout: Connect/read timeout in seconds
            transport: Optional httpx transport (tests use MockTransport)
        """
        self.base_url = (base_url or "http://localhost:8000").strip().rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "ExtractorClient":
        return cls(settings.extractor_base_url, timeout=settings.extractor_timeout_seconds)

    def parse_itau_personnalite(self, pdf_bytes: bytes) -> ExtractorResponse:
        return self._post(ITAU_PERSONNALITE_ENDPOINT, pdf_bytes)

    def parse_sicredi(self, pdf_bytes: bytes) -> ExtractorResponse:
        return self._post(SICREDI_ENDPOINT, pdf_bytes)

    def _post(self, endpoint: str, pdf_bytes: bytes) -> ExtractorResponse:
        """Upload the PDF and validate the response.

        Raises:
            ExternalServiceError: On any failure, including empty input
        """
        if not pdf_bytes:
            raise ExternalServiceError(details={"endpoint": endpoint, "reason": "empty document"})

        url = f"{self.base_url}{endpoint}"
        logger.info(
            "Sending PDF to extraction service: url=%s bytes=%d magic=%r",
            url,
            len(pdf_bytes),
            pdf_bytes[:4],
        )
        files = {"file": ("invoice.pdf", pdf_bytes, "application/pdf")}
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                response = client.post(url, files=files)
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            body = exc.response.text[:500]
            raise ExternalServiceError(
                details={"endpoint": endpoint, "status": exc.response.status_code, "body": body}
            ) from exc
        except httpx.HTTPError as exc:
            raise ExternalServiceError(details={"endpoint": endpoint, "reason": str(exc)}) from exc

        if not response.content.strip():
            raise ExternalServiceError(details={"endpoint": endpoint, "reason": "empty body"})
        try:
            return ExtractorResponse.model_validate_json(response.content)
        except ValidationError as exc:
            raise ExternalServiceError(details={"endpoint": endpoint, "reason": "malformed body"}) from exc
