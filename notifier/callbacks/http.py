"""httpx-backed callback sender."""
import httpx
import structlog
from .base import CallbackSender
from ..errors import DeliveryFailure

log = structlog.get_logger()


class HttpCallbackSender(CallbackSender):
    """POSTs callback bodies as JSON using a shared httpx.AsyncClient."""

    def __init__(self, timeout_ms: int = 5000, transport: httpx.AsyncBaseTransport | None = None):
        """
        Initialize the sender.

        Args:
            timeout_ms: Per-request timeout in milliseconds
            transport: Optional transport override (used by tests)
        """
        self.timeout = timeout_ms / 1000
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
                headers={"Content-Type": "application/json"},
            )
        return self._client

    async def send(self, url: str, body: bytes) -> int:
        try:
            response = await self._get_client().post(url, content=body)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise DeliveryFailure(f"Failed to send callback: {e}") from e
        log.debug("callback.response", url=url, status_code=response.status_code)
        return response.status_code

    async def aclose(self):
        if self._client is not None:
            await self._client.aclose()
            self._client = None
