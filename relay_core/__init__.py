"""
Relay Core - Reliable Event Delivery & Request Idempotency

A FastAPI-based service that captures domain events in a transactional
outbox, delivers them as signed webhooks with retry and dead-lettering,
and guarantees at-most-once execution of idempotent mutating requests.
"""

__version__ = "0.1.0"
