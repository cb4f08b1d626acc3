"""External client implementations."""

from .webhook_client import HttpWebhookClient

__all__ = [
    "HttpWebhookClient",
]
