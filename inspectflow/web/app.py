"""FastAPI operator API for InspectFlow."""

from __future__ import annotations

from contextlib import asynccontextmanager
from uuid import uuid4

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from inspectflow.config import get_config
from inspectflow.core.logging import configure_logging
from inspectflow.db.connection import close_db
from inspectflow.errors import InvalidState, NotFound
from inspectflow.web.routes import health, imports, jobs, review_queue

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(get_config())
    yield
    await close_db()


app = FastAPI(
    title="InspectFlow Operator API",
    description="Calendar import review queue and inspector assignment",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)


# Request Logging Middleware
class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        structlog.contextvars.clear_contextvars()

        request_id = request.headers.get("X-Request-ID", str(uuid4()))
        structlog.contextvars.bind_contextvars(request_id=request_id)

        logger.info(
            "request_started",
            method=request.method,
            path=request.url.path,
            client_ip=request.client.host if request.client else None,
        )

        try:
            response = await call_next(request)

            logger.info(
                "request_completed",
                status_code=response.status_code,
            )
            response.headers["X-Request-ID"] = request_id
            return response

        except Exception as exc:
            logger.error("request_failed", error=str(exc))
            raise


app.add_middleware(RequestLoggingMiddleware)


# Exception Handlers
@app.exception_handler(NotFound)
async def not_found_handler(request: Request, exc: NotFound):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(InvalidState)
async def invalid_state_handler(request: Request, exc: InvalidState):
    return JSONResponse(
        status_code=409,
        content={"detail": str(exc), "currentStatus": exc.current_status},
    )


# Include Routers
app.include_router(health.router)
app.include_router(review_queue.router)
app.include_router(imports.router)
app.include_router(jobs.router)
