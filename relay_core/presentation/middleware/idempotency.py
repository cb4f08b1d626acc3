"""Idempotency middleware for mutating requests."""

from typing import Callable

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from relay_core.core.config import settings
from relay_core.core.metrics import record_idempotency_outcome
from relay_core.domain.entities import (
    IDEMPOTENCY_KEY_MAX_LENGTH,
    CachedResponse,
    IdempotencyRecord,
)
from relay_core.domain.exceptions import (
    DuplicateKeyError,
    IdempotencyKeyConflictException,
    InvalidIdempotencyKeyException,
    RequestInProgressException,
)
from relay_core.domain.interfaces import UnitOfWork
from relay_core.infrastructure.repositories import unit_of_work_factory

from .error_handler import domain_error_response
from .request_context import get_request_id
from .workspace import get_optional_workspace_id

logger = structlog.get_logger(__name__)

IDEMPOTENCY_HEADER = "X-Idempotency-Key"
REPLAY_HEADER = "X-Idempotent-Replayed"
IDEMPOTENT_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


class IdempotencyMiddleware(BaseHTTPMiddleware):
    """
    Executes a keyed mutating request at most once per workspace.

    The claim is inserted before the handler runs and the store's primary
    key decides which of several concurrent requests wins. The winner's
    response is recorded; later requests with the same key get it
    replayed, or 409 while the winner is still running.

    Requests without the header, without a workspace, or with a safe
    method pass straight through.
    """

    def __init__(
        self,
        app: ASGIApp,
        uow_factory: Callable[[], UnitOfWork] | None = None,
        ttl_hours: int | None = None,
    ):
        super().__init__(app)
        self._uow = uow_factory or unit_of_work_factory()
        self._ttl_hours = ttl_hours or settings.idempotency_ttl_hours

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.method not in IDEMPOTENT_METHODS:
            return await call_next(request)

        client_key = request.headers.get(IDEMPOTENCY_HEADER)
        workspace_id = get_optional_workspace_id(request)
        if client_key is None or not workspace_id:
            return await call_next(request)

        if not 1 <= len(client_key) <= IDEMPOTENCY_KEY_MAX_LENGTH:
            record_idempotency_outcome("invalid")
            return domain_error_response(InvalidIdempotencyKeyException(IDEMPOTENCY_KEY_MAX_LENGTH))

        record = IdempotencyRecord.claim(
            workspace_id,
            request.method,
            request.url.path,
            client_key,
            ttl_hours=self._ttl_hours,
        )
        log = logger.bind(
            request_id=get_request_id(),
            workspace_id=workspace_id,
            method=request.method,
            path=request.url.path,
        )

        try:
            async with self._uow() as uow:
                await uow.idempotency.create(record)
        except DuplicateKeyError:
            return await self._resolve_duplicate(record.key, log)
        except Exception as e:
            # The store is unavailable: serve the request without protection
            log.error("idempotency_claim_failed", error=str(e), error_type=type(e).__name__)
            record_idempotency_outcome("unprotected")
            return await call_next(request)

        record_idempotency_outcome("claimed")

        try:
            response = await call_next(request)
        except Exception:
            await self._release(record.key, log)
            raise

        return await self._complete(record.key, response, log)

    async def _resolve_duplicate(self, key: str, log) -> Response:
        async with self._uow() as uow:
            existing = await uow.idempotency.get(key)

        if existing is None:
            record_idempotency_outcome("conflict")
            log.warning("idempotency_key_conflict")
            return domain_error_response(IdempotencyKeyConflictException())

        if not existing.is_completed:
            record_idempotency_outcome("in_progress")
            log.info("idempotent_request_in_progress")
            return domain_error_response(RequestInProgressException())

        record_idempotency_outcome("replayed")
        log.info("idempotent_request_replayed", status_code=existing.response.status_code)

        cached = existing.response
        return Response(
            content=cached.body,
            status_code=cached.status_code,
            media_type=cached.content_type,
            headers={REPLAY_HEADER: "true"},
        )

    async def _complete(self, key: str, response: Response, log) -> Response:
        body = b"".join([chunk async for chunk in response.body_iterator])

        cached = CachedResponse(
            status_code=response.status_code,
            headers={"content-type": response.headers.get("content-type", "application/json")},
            body=body,
        )

        try:
            async with self._uow() as uow:
                await uow.idempotency.save_response(key, cached)
        except Exception as e:
            # Losing the record only costs replay; the response still goes out
            log.error("idempotency_response_save_failed", error=str(e))

        completed = Response(
            content=body,
            status_code=response.status_code,
            background=response.background,
        )
        # Raw header pairs keep repeated headers such as Set-Cookie
        completed.raw_headers = list(response.raw_headers)
        return completed

    async def _release(self, key: str, log) -> None:
        """Drop the claim of a request that produced no response, so it can be retried."""
        try:
            async with self._uow() as uow:
                await uow.idempotency.delete(key)
        except Exception as e:
            log.error("idempotency_claim_release_failed", error=str(e))
        else:
            log.info("idempotency_claim_released")
