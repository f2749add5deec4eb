"""Base sender interface for callback delivery."""
from abc import ABC, abstractmethod


class CallbackSender(ABC):
    """Abstract transport that POSTs an outcome body to a callback URL."""

    @abstractmethod
    async def send(self, url: str, body: bytes) -> int:
        """
        Send one callback request.

        Args:
            url: Callback target
            body: JSON-encoded outcome record

        Returns:
            HTTP status code of the response

        Raises:
            DeliveryFailure: If the request could not be completed
        """
        pass

    async def aclose(self):
        """Release transport resources."""
        return None
