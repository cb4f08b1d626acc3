"""Idempotency record entities."""

import base64
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from relay_core.domain.clock import utcnow

IDEMPOTENCY_KEY_MAX_LENGTH = 255


def build_composite_key(workspace_id: str, method: str, path: str, client_key: str) -> str:
    """Scope a client key to its workspace, verb and path."""
    return f"{workspace_id}:{method}:{path}:{client_key}"


@dataclass(frozen=True)
class CachedResponse:
    """
    The captured outcome of the original request.

    The body is kept as raw bytes and stored base64-encoded, so any
    response replays byte for byte.
    """

    status_code: int
    headers: dict[str, str]
    body: bytes

    @property
    def content_type(self) -> str:
        return self.headers.get("content-type", "application/json")

    def to_dict(self) -> dict[str, Any]:
        return {
            "statusCode": self.status_code,
            "headers": dict(self.headers),
            "body": base64.b64encode(self.body).decode("ascii"),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CachedResponse":
        return cls(
            status_code=int(data["statusCode"]),
            headers=dict(data.get("headers") or {}),
            body=base64.b64decode(data.get("body") or ""),
        )


@dataclass
class IdempotencyRecord:
    """
    A claim on a composite idempotency key.

    `response` is None while the original request is in flight and is
    written exactly once when it completes.
    """

    key: str
    workspace_id: str
    request_method: str
    request_path: str
    expires_at: datetime
    response: CachedResponse | None = None
    created_at: datetime = field(default_factory=utcnow)

    @classmethod
    def claim(
        cls,
        workspace_id: str,
        method: str,
        path: str,
        client_key: str,
        ttl_hours: int = 24,
    ) -> "IdempotencyRecord":
        now = utcnow()
        return cls(
            key=build_composite_key(workspace_id, method, path, client_key),
            workspace_id=workspace_id,
            request_method=method,
            request_path=path,
            expires_at=now + timedelta(hours=ttl_hours),
            created_at=now,
        )

    @property
    def is_completed(self) -> bool:
        return self.response is not None
