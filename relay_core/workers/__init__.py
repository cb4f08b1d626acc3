"""Background workers."""

from .delivery_worker import DeliveryWorker, purge_expired_idempotency_keys

__all__ = [
    "DeliveryWorker",
    "purge_expired_idempotency_keys",
]
