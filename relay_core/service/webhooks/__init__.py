"""
Webhook Delivery Rules: signing, retry schedule, secrets and health.
"""

from .signature import (
    SIGNATURE_HEADER,
    DEFAULT_TOLERANCE_SECONDS,
    compute_signature,
    parse_signature_header,
    sign,
    verify,
)
from .schedule import (
    RETRY_SCHEDULE_SECONDS,
    MAX_ATTEMPTS,
    retry_delay_seconds,
    next_retry_at,
    is_exhausted,
)
from .health import (
    EndpointHealthStatus,
    classify_endpoint_health,
    delivery_rate,
)
from .endpoint_secret import SECRET_PREFIX, generate_secret

__all__ = [
    # Signature
    "SIGNATURE_HEADER",
    "DEFAULT_TOLERANCE_SECONDS",
    "compute_signature",
    "parse_signature_header",
    "sign",
    "verify",
    # Schedule
    "RETRY_SCHEDULE_SECONDS",
    "MAX_ATTEMPTS",
    "retry_delay_seconds",
    "next_retry_at",
    "is_exhausted",
    # Health
    "EndpointHealthStatus",
    "classify_endpoint_health",
    "delivery_rate",
    # Secrets
    "SECRET_PREFIX",
    "generate_secret",
]
