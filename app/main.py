"""
Comarc Fluxo - FastAPI Application.
Payment flow proposal calculator and login/signup rate limiting for the sales team.
Every request carries a Correlation ID for tracing and audit logging.
"""
from typing import Callable, Awaitable, Dict, Any
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
import time
from uuid import uuid4

from app.core.config import settings
from app.core.database import init_db
from app.core.logger import logger
from app.auth.router import router as auth_router
from app.proposta.router import router as proposta_router
from app.ratelimit.router import router as ratelimit_router
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle management (startup/shutdown hooks)."""
    logger.info(f"Initializing {settings.APP_NAME} v{settings.VERSION}")
    init_db()
    logger.info("Database initialized")

    yield

    logger.info("Shutting down application")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.VERSION,
    description=(
        "Payment flow proposals (entrada, ato, mensais, reforços, chaves) with exact-cent "
        "installments, and fail-open rate limiting for login and signup."
    ),
    lifespan=lifespan
)

# Trust X-Forwarded-* headers from the load balancer
app.add_middleware(ProxyHeadersMiddleware, trusted_hosts="*")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def add_correlation_id(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
    """
    Injects a Correlation ID into the request state and propagates it to the response headers.
    """
    correlation_id = request.headers.get("X-Correlation-ID", str(uuid4()))
    request.state.correlation_id = correlation_id

    start_time = time.time()

    logger.info(
        f"Request: {request.method} {request.url.path}",
        extra={"correlation_id": correlation_id}
    )

    response = await call_next(request)

    process_time = time.time() - start_time
    response.headers["X-Correlation-ID"] = correlation_id
    response.headers["X-Process-Time"] = str(process_time)

    logger.info(
        f"Response: {response.status_code} | {process_time:.3f}s",
        extra={"correlation_id": correlation_id}
    )

    return response


app.include_router(proposta_router, prefix="/proposta", tags=["Proposals"])
app.include_router(ratelimit_router, prefix="/rate-limit", tags=["Rate Limit"])
app.include_router(auth_router, prefix="/auth", tags=["Auth"])


@app.get("/api-info", tags=["Health"])
def api_info() -> Dict[str, Any]:
    """
    Endpoint exposing API metadata and service discovery links.
    """
    return {
        "app": settings.APP_NAME,
        "version": settings.VERSION,
        "status": "online",
        "endpoints": {
            "calculate": "/proposta/calculate",
            "installments": "/proposta/installments",
            "proposals": "/proposta/history",
            "rate_limit": "/rate-limit",
            "login": "/auth/login",
            "register": "/auth/register",
            "docs": "/docs",
            "redoc": "/redoc"
        }
    }


@app.get("/health", tags=["Health"])
def health_check() -> Dict[str, str]:
    """
    Liveness probe endpoint for orchestration systems.
    """
    return {
        "status": "healthy",
        "app": settings.APP_NAME,
        "version": settings.VERSION
    }


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Returns HTTP errors with the request Correlation ID attached."""
    correlation_id = getattr(request.state, "correlation_id", "N/A")

    logger.info(
        f"HTTPException: {exc.status_code} | {exc.detail}",
        extra={"correlation_id": correlation_id}
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "correlation_id": correlation_id},
        headers=getattr(exc, "headers", None)
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Global exception barrier.
    Logs unhandled exceptions with their Correlation ID and returns a sanitized 500.
    """
    correlation_id = getattr(request.state, "correlation_id", "N/A")

    logger.error(
        f"Unhandled exception: {str(exc)}",
        exc_info=True,
        extra={"correlation_id": correlation_id}
    )

    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal Server Error",
            "correlation_id": correlation_id
        }
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",  # nosec
        port=8000,
        reload=settings.DEBUG
    )
