"""External client interfaces."""

from abc import ABC, abstractmethod
from typing import Mapping

from relay_core.domain.entities import DeliveryResult


class WebhookClient(ABC):
    """
    Abstract client for outbound webhook callbacks.

    Performs a single POST; retry scheduling belongs to the dispatcher.
    """

    @abstractmethod
    async def post(
        self,
        url: str,
        body: bytes,
        headers: Mapping[str, str],
    ) -> DeliveryResult:
        """
        Send one callback.

        Args:
            url: The endpoint URL
            body: The exact bytes that were signed
            headers: Request headers including the signature

        Returns:
            The delivery result. Network errors are reported through
            `DeliveryResult.error` instead of being raised.
        """
        ...
