"""Request context middleware for logging."""
import time
import uuid
from contextvars import ContextVar
from typing import Any
from typing import Callable

from fastapi import Request
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware

# Context variables to store request-specific data
request_id_ctx: ContextVar[str] = ContextVar("request_id", default="")
client_ip_ctx: ContextVar[str] = ContextVar("client_ip", default="")
actor_ctx: ContextVar[str] = ContextVar("actor", default="")

ACTOR_ID_HEADER = "X-Actor-Id"
ACTOR_ROLE_HEADER = "X-Actor-Role"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Middleware to capture and log request context information."""

    async def dispatch(self, request: Request, call_next: Callable) -> Any:
        """
        Capture request context and add it to every log line of the request.

        Captures:
        - Request ID (from header or generated)
        - Client IP (forwarded header or direct)
        - Actor identity set by the authentication gateway
        """
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request_id_ctx.set(request_id)

        client_ip = self._get_client_ip(request)
        client_ip_ctx.set(client_ip)

        actor = self._get_actor(request)
        actor_ctx.set(actor)

        with logger.contextualize(
            request_id=request_id,
            client_ip=client_ip,
            actor=actor,
            request_path=f"{request.method} {request.url.path}",
        ):
            start_time = time.time()
            response = await call_next(request)
            duration_ms = (time.time() - start_time) * 1000

            logger.info(
                f"{request.method} {request.url.path} - {response.status_code}",
                event_type="http_request",
                http_method=request.method,
                url_path=str(request.url.path),
                url_query=str(request.query_params) if request.query_params else None,
                status_code=response.status_code,
                response_time_ms=round(duration_ms, 2),
            )

            response.headers["X-Request-ID"] = request_id
            return response

    def _get_client_ip(self, request: Request) -> str:
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            # X-Forwarded-For can contain multiple IPs, take the first one
            return forwarded_for.split(",")[0].strip()

        if request.client:
            return request.client.host

        return "unknown"

    def _get_actor(self, request: Request) -> str:
        actor_id = request.headers.get(ACTOR_ID_HEADER)
        if not actor_id:
            return "anonymous"
        return f"{request.headers.get(ACTOR_ROLE_HEADER, 'client')}:{actor_id}"


def get_request_context() -> dict:
    """Current request context, for log lines written outside the middleware scope."""
    return {
        "request_id": request_id_ctx.get(),
        "client_ip": client_ip_ctx.get(),
        "actor": actor_ctx.get(),
    }
