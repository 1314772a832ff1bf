"""FastAPI application exposing the memory service over HTTP.

Every response uses the same envelope::

    {"success": bool, "data": ..., "error": {code, message, details} | null,
     "timestamp": "...", "requestId": "req_..."}

Memory routes require ``Authorization: Bearer <API_TOKEN>``; ``/api/health``
and ``/api/info`` are public.  ``/api/`` paths are rate limited per client.
"""

from __future__ import annotations

import logging
import secrets
import time
from collections.abc import Awaitable
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from fastapi import Depends
from fastapi import FastAPI
from fastapi import Query
from fastapi import Request
from fastapi import Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from pydantic import Field
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.types import ASGIApp

from mem0mcp.auth import BearerCheck
from mem0mcp.auth import check_bearer_token
from mem0mcp.config import ServerConfig
from mem0mcp.observability import latency_metrics_snapshot
from mem0mcp.observability import track_latency
from mem0mcp.service import MemoryService
from mem0mcp.storage.schemas import utc_now_iso

logger = logging.getLogger(__name__)

MCP_MOUNT_PATH = "/mcp"

AVAILABLE_ROUTES = [
    "GET /api/health",
    "GET /api/info",
    "POST /api/memory/save",
    "GET /api/memory/all",
    "GET /api/memory/search",
    "GET /api/memory/:id",
    "PUT /api/memory/:id",
    "DELETE /api/memory/:id",
]

_AUTH_FAILURES = {
    BearerCheck.missing_token: (
        401,
        "Access token required. Please provide a Bearer token in the Authorization header.",
        {"expectedFormat": "Authorization: Bearer your-api-token-here"},
    ),
    BearerCheck.server_config_error: (
        500,
        "Server authentication not properly configured",
        {},
    ),
    BearerCheck.invalid_token: (403, "Invalid access token provided", {}),
}


class ApiError(Exception):
    """Error rendered as an envelope with the given status and code."""

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message
        self.details = details or {}


# ---------------------------------------------------------------------------
# Request / response helpers
# ---------------------------------------------------------------------------


class SaveMemoryRequest(BaseModel):
    text: str = Field(min_length=1)
    user_id: str | None = Field(default=None, alias="userId")
    metadata: dict[str, Any] | None = None


class UpdateMemoryRequest(BaseModel):
    text: str = Field(min_length=1)
    user_id: str | None = Field(default=None, alias="userId")
    metadata: dict[str, Any] | None = None


def new_request_id() -> str:
    return f"req_{int(time.time() * 1000)}_{secrets.token_hex(5)}"


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


def envelope(
    request: Request,
    *,
    data: Any = None,
    error: dict[str, Any] | None = None,
    status_code: int = 200,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "success": error is None,
            "data": data,
            "error": error,
            "timestamp": utc_now_iso(),
            "requestId": _request_id(request),
        },
    )


def error_envelope(request: Request, exc: ApiError) -> JSONResponse:
    return envelope(
        request,
        error={"code": exc.code, "message": exc.message, "details": exc.details},
        status_code=exc.status_code,
    )


def _not_found(memory_id: str, user_id: str) -> ApiError:
    return ApiError(
        404,
        "MEMORY_NOT_FOUND",
        f"Memory with ID {memory_id} not found for user {user_id}",
        {"memoryId": memory_id, "userId": user_id},
    )


# ---------------------------------------------------------------------------
# Rate limiting
# ---------------------------------------------------------------------------


@dataclass
class _Window:
    started: float
    count: int


class FixedWindowRateLimiter:
    """Allow ``max_requests`` per client within each ``window_seconds``."""

    def __init__(self, max_requests: int, window_seconds: float) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._windows: dict[str, _Window] = {}

    def hit(self, client: str, now: float | None = None) -> tuple[bool, int]:
        """Count one request; return ``(allowed, retry_after_seconds)``."""
        now = time.monotonic() if now is None else now
        window = self._windows.get(client)
        if window is None or now - window.started >= self.window_seconds:
            self._evict_expired(now)
            window = _Window(started=now, count=0)
            self._windows[client] = window
        window.count += 1
        retry_after = max(int(window.started + self.window_seconds - now), 1)
        return window.count <= self.max_requests, retry_after

    @property
    def tracked_clients(self) -> int:
        return len(self._windows)

    def _evict_expired(self, now: float) -> None:
        expired = [
            client
            for client, window in self._windows.items()
            if now - window.started >= self.window_seconds
        ]
        for client in expired:
            del self._windows[client]


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------


def create_app(
    service: MemoryService,
    config: ServerConfig | None = None,
    *,
    mcp_app: ASGIApp | None = None,
) -> FastAPI:
    """Create the HTTP API.  *mcp_app* (a FastMCP ASGI app) is mounted at ``/mcp``."""
    config = config or ServerConfig()
    limiter = FixedWindowRateLimiter(
        config.http.rate_limit_max_requests,
        config.http.rate_limit_window_ms / 1000,
    )

    app = FastAPI(
        title="mem0mcp",
        description="HTTP API for long term memory storage and retrieval",
        version="0.1.0",
        lifespan=getattr(mcp_app, "lifespan", None),
    )
    app.state.service = service
    app.state.config = config
    app.state.limiter = limiter

    # -- middleware --

    @app.middleware("http")
    async def request_context(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        request.state.request_id = new_request_id()
        start = time.perf_counter()

        if request.url.path.startswith("/api/"):
            client = request.client.host if request.client else "unknown"
            allowed, retry_after = limiter.hit(client)
            if not allowed:
                window_minutes = config.http.rate_limit_window_ms / 60000
                response: Response = error_envelope(
                    request,
                    ApiError(
                        429,
                        "RATE_LIMIT_EXCEEDED",
                        f"Too many requests. Limit: {limiter.max_requests} "
                        f"requests per {window_minutes:g} minutes",
                        {
                            "windowMs": config.http.rate_limit_window_ms,
                            "retryAfter": retry_after,
                        },
                    ),
                )
                response.headers["Retry-After"] = str(retry_after)
                response.headers["X-Request-ID"] = request.state.request_id
                return response

        response = await call_next(request)
        response.headers["X-Request-ID"] = request.state.request_id
        logger.info(
            "HTTP %s %s -> %d (%.1fms, %s)",
            request.method,
            request.url.path,
            response.status_code,
            (time.perf_counter() - start) * 1000,
            request.state.request_id,
        )
        return response

    # -- error handlers --

    @app.exception_handler(ApiError)
    async def handle_api_error(request: Request, exc: ApiError) -> JSONResponse:
        return error_envelope(request, exc)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = [
            {"field": ".".join(str(p) for p in err.get("loc", ())), "message": err.get("msg")}
            for err in exc.errors()
        ]
        return error_envelope(
            request,
            ApiError(400, "VALIDATION_ERROR", "Request validation failed", {"validationErrors": errors}),
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == 404:
            logger.warning("Route not found: %s %s", request.method, request.url.path)
            return error_envelope(
                request,
                ApiError(
                    404,
                    "ROUTE_NOT_FOUND",
                    f"Route {request.method} {request.url.path} not found",
                    {"availableRoutes": AVAILABLE_ROUTES},
                ),
            )
        return error_envelope(
            request, ApiError(exc.status_code, "HTTP_ERROR", str(exc.detail))
        )

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        details: dict[str, Any] = {"error": str(exc)} if config.debug else {}
        return error_envelope(
            request,
            ApiError(500, "INTERNAL_SERVER_ERROR", "An internal server error occurred", details),
        )

    # -- dependencies --

    async def require_token(request: Request) -> None:
        outcome = check_bearer_token(
            request.headers.get("Authorization"), config.http.api_token
        )
        if outcome is BearerCheck.ok:
            return
        status_code, message, details = _AUTH_FAILURES[outcome]
        raise ApiError(status_code, outcome.value, message, details)

    def resolve_user(user_id: str | None) -> str:
        return user_id or config.default_user_id

    async def run(operation: str, call: Awaitable[Any]) -> Any:
        """Await a service call, mapping bad ids to 400 and storage faults to 500."""
        with track_latency(f"http.{operation}"):
            try:
                return await call
            except ValueError as exc:
                raise ApiError(400, "VALIDATION_ERROR", str(exc)) from exc
            except (RuntimeError, OSError) as exc:
                logger.error("Storage failure during %s: %s", operation, exc)
                details = {"error": str(exc)} if config.debug else {}
                raise ApiError(
                    500, "INTERNAL_SERVER_ERROR", "An internal server error occurred", details
                ) from exc

    # -- public routes --

    @app.get("/")
    async def root(request: Request) -> JSONResponse:
        return envelope(
            request,
            data={
                "name": config.name,
                "endpoints": {
                    "health": "GET /api/health",
                    "info": "GET /api/info",
                    "memory": AVAILABLE_ROUTES[2:],
                },
            },
        )

    @app.get("/api/health")
    async def health(request: Request) -> JSONResponse:
        info = service.health_info()
        info["metrics"] = latency_metrics_snapshot()
        if info["status"] == "healthy":
            return envelope(request, data=info)
        return envelope(
            request,
            data=info,
            error={"code": "UNHEALTHY", "message": "Service is not healthy", "details": {}},
            status_code=503,
        )

    @app.get("/api/info")
    async def info(request: Request) -> JSONResponse:
        return envelope(request, data=service.server_info())

    # -- memory routes --

    guarded = [Depends(require_token)]

    @app.post("/api/memory/save", dependencies=guarded)
    async def save_memory(request: Request, body: SaveMemoryRequest) -> JSONResponse:
        user_id = resolve_user(body.user_id)
        result = await run("save_memory", service.save_memory(body.text, user_id, body.metadata))
        return envelope(
            request,
            data={"id": result.id, "message": result.message, "userId": user_id},
            status_code=201,
        )

    @app.get("/api/memory/all", dependencies=guarded)
    async def get_all_memories(
        request: Request,
        user_id: str | None = Query(default=None, alias="userId"),
        limit: int = Query(default=50, ge=1, le=1000),
    ) -> JSONResponse:
        uid = resolve_user(user_id)
        memories = await run("get_all_memories", service.get_all_memories(uid, limit))
        return envelope(
            request,
            data={
                "memories": [m.model_dump(by_alias=True) for m in memories],
                "count": len(memories),
                "userId": uid,
                "limit": limit,
            },
        )

    @app.get("/api/memory/search", dependencies=guarded)
    async def search_memories(
        request: Request,
        query: str = Query(min_length=1, pattern=r".*\S.*"),
        user_id: str | None = Query(default=None, alias="userId"),
        limit: int = Query(default=10, ge=1, le=100),
    ) -> JSONResponse:
        query = query.strip()
        uid = resolve_user(user_id)
        memories = await run("search_memories", service.search_memories(query, uid, limit))
        return envelope(
            request,
            data={
                "memories": [m.model_dump(by_alias=True) for m in memories],
                "count": len(memories),
                "query": query,
                "userId": uid,
                "limit": limit,
            },
        )

    @app.get("/api/memory/{memory_id}", dependencies=guarded)
    async def get_memory(
        request: Request,
        memory_id: str,
        user_id: str | None = Query(default=None, alias="userId"),
    ) -> JSONResponse:
        uid = resolve_user(user_id)
        memory = await run("get_memory", service.get_memory_by_id(memory_id, uid))
        if memory is None:
            raise _not_found(memory_id, uid)
        return envelope(request, data={"memory": memory.model_dump(by_alias=True), "userId": uid})

    @app.put("/api/memory/{memory_id}", dependencies=guarded)
    async def update_memory(
        request: Request, memory_id: str, body: UpdateMemoryRequest
    ) -> JSONResponse:
        uid = resolve_user(body.user_id)
        updated = await run(
            "update_memory", service.update_memory(memory_id, uid, body.text, body.metadata)
        )
        if not updated:
            raise _not_found(memory_id, uid)
        return envelope(
            request,
            data={"id": memory_id, "message": "Memory updated successfully", "userId": uid},
        )

    @app.delete("/api/memory/{memory_id}", dependencies=guarded)
    async def delete_memory(
        request: Request,
        memory_id: str,
        user_id: str | None = Query(default=None, alias="userId"),
    ) -> JSONResponse:
        uid = resolve_user(user_id)
        deleted = await run("delete_memory", service.delete_memory(memory_id, uid))
        if not deleted:
            raise _not_found(memory_id, uid)
        return envelope(
            request,
            data={"id": memory_id, "message": "Memory deleted successfully", "userId": uid},
        )

    if mcp_app is not None:
        app.mount(MCP_MOUNT_PATH, mcp_app)

    return app
