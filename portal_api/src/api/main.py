from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Type
from uuid import uuid4

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, WebSocket, WebSocketDisconnect
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from jose import JWTError

from src.core.deps import get_tenant_id
from src.core.logging import configure_logging, correlation_id_var, tenant_id_var, user_id_var
from src.core.security import Caller, build_caller, caller_from_token
from src.core.settings import get_app_settings
from src.db.run_migrations import main as run_alembic
from src.db.seed import seed_all
from src.db.session import tenant_session_scope
from src.repositories.security import SecurityRepository
from src.schemas.common import ErrorInfo, ErrorResponse, MessageResponse, TenantEcho
from src.schemas.pending_review import PendingReviewEvent
from src.services.pending_review import PendingReviewService, build_database_sources
from src.services.pending_review_poller import PendingReviewPoller, poller_registry
from src.services.review_actions import (
    InvalidTransitionError,
    ItemNotFoundError,
    MissingReasonError,
    ReviewActionError,
    ReviewPermissionError,
)

from src.api.routes.audit import router as audit_router
from src.api.routes.auth import router as auth_router
from src.api.routes.commissions import router as commissions_router
from src.api.routes.pending_review import router as pending_review_router
from src.api.routes.requests import router as requests_router
from src.api.routes.users import router as users_router
from src.api.routes.warranties import router as warranties_router

configure_logging()
logger = logging.getLogger(__name__)

settings = get_app_settings()

openapi_tags = [
    {"name": "System", "description": "System and operational endpoints."},
    {"name": "Health", "description": "Liveness and readiness probes."},
    {"name": "Auth", "description": "Authentication and token endpoints."},
    {"name": "Users", "description": "Employee administration endpoints."},
    {"name": "Pending Review", "description": "Worklist of items awaiting review or revision, with SLA status."},
    {"name": "Commissions", "description": "Commission submissions and their review actions."},
    {"name": "Requests", "description": "Employee requests and their review actions."},
    {"name": "Warranties", "description": "Customer warranty claims."},
    {"name": "Audit", "description": "Audit log of review actions."},
    {"name": "WebSocket", "description": "WebSocket usage, endpoints, and connection details."},
]

app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    openapi_tags=openapi_tags,
)

# CORS - avoid wildcard with credentials
cors_allow_credentials = settings.CORS_ALLOW_CREDENTIALS
if settings.CORS_ORIGINS == ["*"] and cors_allow_credentials:
    logger.warning("CORS_ALLOW_CREDENTIALS=True with '*' origins is not permitted; disabling credentials.")
    cors_allow_credentials = False

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=cors_allow_credentials,
    allow_methods=settings.CORS_ALLOW_METHODS,
    allow_headers=settings.CORS_ALLOW_HEADERS,
)


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    """
    Bind correlation_id and tenant_id to the logging context for the request.
    Adds 'X-Correlation-ID' to every response.
    """
    corr = request.headers.get("X-Correlation-ID") or request.headers.get("X-Request-ID") or str(uuid4())
    tenant = request.headers.get("X-Tenant-ID")
    token_corr = correlation_id_var.set(corr)
    token_tenant = tenant_id_var.set(tenant)
    token_user = user_id_var.set(None)
    request.state.correlation_id = corr
    request.state.tenant_id = tenant

    logger.info("Incoming request %s %s", request.method, request.url.path)
    try:
        response = await call_next(request)
    finally:
        correlation_id_var.reset(token_corr)
        tenant_id_var.reset(token_tenant)
        user_id_var.reset(token_user)

    response.headers["X-Correlation-ID"] = corr
    return response


def _build_error_response(
    request: Request,
    status_code: int,
    error_type: str,
    message: str,
    details: Any | None = None,
) -> JSONResponse:
    """Build a standardized ErrorResponse JSONResponse."""
    err = ErrorResponse(
        status=status_code,
        error=ErrorInfo(type=error_type, message=message, details=details),
        correlation_id=getattr(request.state, "correlation_id", None),
        tenant_id=getattr(request.state, "tenant_id", None),
        path=request.url.path,
        method=request.method,
        timestamp=datetime.now(tz=timezone.utc),
    )
    return JSONResponse(status_code=status_code, content=err.model_dump(mode="json"))


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Standard error envelope for HTTPException."""
    detail = exc.detail if isinstance(exc.detail, str) else "HTTP Error"
    return _build_error_response(
        request=request,
        status_code=exc.status_code,
        error_type="http_error",
        message=str(detail),
        details=None if isinstance(exc.detail, str) else exc.detail,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Standard error envelope for request validation errors."""
    return _build_error_response(
        request=request,
        status_code=422,
        error_type="validation_error",
        message="Request validation failed",
        details=jsonable_encoder(exc.errors()),
    )


_REVIEW_ERRORS: Dict[Type[ReviewActionError], tuple[int, str]] = {
    ItemNotFoundError: (404, "not_found"),
    InvalidTransitionError: (409, "invalid_transition"),
    ReviewPermissionError: (403, "forbidden"),
    MissingReasonError: (422, "validation_error"),
}


@app.exception_handler(ReviewActionError)
async def review_action_exception_handler(request: Request, exc: ReviewActionError):
    """Map review action failures onto HTTP status codes."""
    status_code, error_type = _REVIEW_ERRORS.get(type(exc), (400, "review_error"))
    logger.info("Review action rejected: %s", exc)
    return _build_error_response(request, status_code, error_type, str(exc))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Catch-all handler to avoid leaking stack traces and to return a structured error."""
    logger.exception("Unhandled error processing request")
    return _build_error_response(
        request=request,
        status_code=500,
        error_type="internal_error",
        message="An unexpected error occurred",
    )


@app.on_event("startup")
async def on_startup() -> None:
    """
    Run migrations and optional seeding on service startup.

    Failures are logged and the app keeps starting; readiness relies on the database later.
    """
    if settings.RUN_MIGRATIONS_ON_STARTUP:
        try:
            logger.info("Running Alembic migrations: upgrade head")
            # env.py drives its own event loop, so keep it off this one
            await asyncio.to_thread(run_alembic, ["upgrade", "head"])
            logger.info("Migrations completed.")
        except Exception:
            logger.exception("Migration step failed")

    if settings.AUTO_SEED:
        try:
            logger.info("Running database seeding...")
            await seed_all()
            logger.info("Seeding completed.")
        except Exception:
            logger.exception("Seeding step failed")


api_v1 = APIRouter(prefix="/api/v1")


# PUBLIC_INTERFACE
@api_v1.get("/health", response_model=MessageResponse, summary="Health Check", tags=["Health"])
def health_check() -> MessageResponse:
    """Basic liveness check."""
    return MessageResponse(message="Healthy")


# PUBLIC_INTERFACE
@api_v1.get(
    "/health/tenant",
    response_model=TenantEcho,
    summary="Tenant Health Echo",
    description="Echoes the tenant context to verify header handling.",
    tags=["Health"],
)
async def tenant_health_echo(tenant_id=Depends(get_tenant_id)) -> TenantEcho:
    return TenantEcho(tenant_id=tenant_id)


WEBSOCKET_ENDPOINT_DOC: Dict[str, Any] = {
    "path": "/ws/pending-review",
    "summary": "Live pending-review worklist (server push).",
    "query": ["token", "tenant_id?"],
    "headers": ["X-Tenant-ID"],
    "messages": {
        "client_to_server": ["ping", "refresh"],
        "server_to_client": ["pending_review.snapshot", "pending_review.error", "pong"],
    },
    "close_codes": {
        "4401": "missing or invalid token, or a token issued for another tenant",
        "4403": "inactive or unknown user",
    },
}

# PUBLIC_INTERFACE
@api_v1.get(
    "/websocket-info",
    response_model=Dict[str, Any],
    summary="WebSocket Usage Information",
    description="Connection details for the live pending-review channel.",
    tags=["WebSocket"],
)
def websocket_info() -> Dict[str, Any]:
    """Describe how to connect to /ws/pending-review."""
    return {
        "usage": (
            "Connect with a valid access token as the 'token' query parameter and the 'X-Tenant-ID' header "
            "(or 'tenant_id' query parameter). The server pushes the caller's worklist on connect, every "
            f"{settings.PENDING_REVIEW_POLL_SECONDS:g} seconds, and whenever a review action changes the tenant's items."
        ),
        "security": {
            "token": "Access JWT whose 'tenant_id' claim matches the tenant.",
            "header": "X-Tenant-ID: UUID",
        },
        "endpoints": [WEBSOCKET_ENDPOINT_DOC],
        "notes": "WebSocket endpoints are not represented in the OpenAPI schema; refer to this endpoint for usage.",
    }


api_v1.include_router(auth_router)
api_v1.include_router(users_router)
api_v1.include_router(pending_review_router)
api_v1.include_router(commissions_router)
api_v1.include_router(requests_router)
api_v1.include_router(warranties_router)
api_v1.include_router(audit_router)

app.include_router(api_v1)


async def _authenticate_ws(websocket: WebSocket) -> Caller | None:
    """
    Resolve the Caller for a WebSocket from its token, re-reading roles and the
    active flag from the database. Closes the socket and returns None on failure.
    """
    token = websocket.query_params.get("token")
    tenant = websocket.headers.get("x-tenant-id") or websocket.query_params.get("tenant_id")
    if not token or not tenant:
        await websocket.close(code=4401)
        return None
    try:
        claimed = caller_from_token(token, tenant)
    except (JWTError, ValueError):
        await websocket.close(code=4401)
        return None

    async with tenant_session_scope(claimed.tenant_id) as session:
        repo = SecurityRepository(session)
        user = await repo.get_user_by_id(claimed.user_id)
        if user is None or not user.is_active:
            await websocket.close(code=4403)
            return None
        roles = await repo.list_role_names_for_user(user.id)
    return build_caller(user.id, claimed.tenant_id, roles, email=user.email)


# PUBLIC_INTERFACE
@app.websocket("/ws/pending-review")
async def ws_pending_review(websocket: WebSocket):
    """
    Live pending-review worklist.

    Security:
      - Query param 'token' must be a valid access JWT.
      - Header 'X-Tenant-ID' (or query param 'tenant_id') must match the token's tenant.
    Messages:
      - Server -> Client: PendingReviewEvent JSON ('pending_review.snapshot' or 'pending_review.error').
      - Client -> Server: 'ping' (answered with 'pong') or 'refresh' (forces an immediate rebuild).
    """
    await websocket.accept()
    caller = await _authenticate_ws(websocket)
    if caller is None:
        return

    tenant_id_var.set(str(caller.tenant_id))
    user_id_var.set(str(caller.user_id))
    service = PendingReviewService(build_database_sources(caller.tenant_id))

    async def fetch():
        return await service.get_worklist(caller)

    async def deliver(event: PendingReviewEvent) -> None:
        await websocket.send_json(event.model_dump(mode="json"))

    poller = PendingReviewPoller(fetch, deliver, interval=settings.PENDING_REVIEW_POLL_SECONDS)
    poller_registry.register(caller.tenant_id, poller)
    poll_task = asyncio.create_task(poller.run())
    try:
        while True:
            msg = (await websocket.receive_text()).strip().lower()
            if msg == "ping":
                await websocket.send_text("pong")
            elif msg == "refresh":
                poller.invalidate()
    except WebSocketDisconnect:
        logger.info("Pending-review socket closed")
    except Exception:
        logger.exception("Error on pending-review socket")
    finally:
        poller_registry.unregister(caller.tenant_id, poller)
        poller.stop()
        await _await_stopped(poll_task)


async def _await_stopped(task: asyncio.Task) -> None:
    if not task.done():
        task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
