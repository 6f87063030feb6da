"""
FastAPI application factory and main app configuration.
"""

import logging
import uuid
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api.routers import checkout, consultation, health, pharmacy, registrations, session
from .api.schemas.common import ErrorResponse
from .core.config import get_settings
from .core.container import Container, ServiceNames, build_container
from .core.exceptions import (
    AuthenticationError,
    ClinicDeskException,
    NegotiationError,
    RecordStoreError,
    ValidationError,
)
from .core.structured_logger import configure_logging, get_logger
from .domain.errors import DomainError, MissingScopeError, RegistrationNotFoundError

logger = logging.getLogger("clinicdesk")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    container: Container = app.state.container
    settings = container.settings
    logger.info("Starting %s v%s (%s)", settings.app_name, settings.app_version, settings.app_env)

    state = container.get(ServiceNames.SESSION).restore()
    logger.info("Session step after restore: %s", state.step)

    yield

    record_store = container.get(ServiceNames.RECORD_STORE)
    close = getattr(record_store, "close", None)
    if close is not None:
        await close()
    logger.info("Shutdown complete")


def _error(request: Request, status_code: int, error: str, message: str, details: Optional[dict] = None):
    req_id = getattr(request.state, "request_id", None)
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            error=error,
            message=message,
            request_id=req_id or "",
            details=details or {},
        ).model_dump(),
    )


def create_app(container: Optional[Container] = None) -> FastAPI:
    """Create and configure FastAPI application."""
    settings = container.settings if container is not None else get_settings()
    configure_logging(settings.logging.level, settings.logging.format, settings.logging.file_path)
    access_logger = get_logger("clinicdesk.access")

    app = FastAPI(
        title=settings.app_name,
        description="Clinic front desk, consultation, pharmacy and checkout on top of an ERP",
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
    )
    app.state.container = container or build_container(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors.allowed_origins,
        allow_credentials=settings.cors.allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        access_logger.info(
            "request",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            request_id=request_id,
        )
        return response

    app.include_router(health.router)
    app.include_router(session.router)
    app.include_router(registrations.router)
    app.include_router(consultation.router)
    app.include_router(pharmacy.router)
    app.include_router(checkout.router)

    @app.exception_handler(RegistrationNotFoundError)
    async def not_found_handler(request: Request, exc: RegistrationNotFoundError):
        return _error(request, 404, exc.error_code, exc.message, exc.details)

    @app.exception_handler(MissingScopeError)
    async def missing_scope_handler(request: Request, exc: MissingScopeError):
        return _error(request, 409, exc.error_code, exc.message, exc.details)

    @app.exception_handler(DomainError)
    async def domain_error_handler(request: Request, exc: DomainError):
        return _error(request, 400, exc.error_code or "DOMAIN_ERROR", exc.message, exc.details)

    @app.exception_handler(AuthenticationError)
    async def auth_error_handler(request: Request, exc: AuthenticationError):
        return _error(request, 401, exc.error_code, exc.message, exc.details)

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        return _error(request, 422, exc.error_code, exc.message, exc.details)

    @app.exception_handler(NegotiationError)
    async def negotiation_error_handler(request: Request, exc: NegotiationError):
        return _error(request, 409, exc.error_code, exc.message, exc.details)

    @app.exception_handler(RecordStoreError)
    async def record_store_error_handler(request: Request, exc: RecordStoreError):
        req_id = getattr(request.state, "request_id", None)
        logger.error("ERP error (%s): %s | request_id=%s", exc.status, exc.detail, req_id)
        return _error(request, 502, exc.error_code, exc.detail, exc.details)

    @app.exception_handler(ClinicDeskException)
    async def clinicdesk_error_handler(request: Request, exc: ClinicDeskException):
        return _error(request, 500, exc.error_code or "INTERNAL_ERROR", exc.message, exc.details)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        req_id = getattr(request.state, "request_id", None)
        logger.error("ValidationError on %s %s: %s | request_id=%s", request.method, request.url.path, exc.errors(), req_id)
        return _error(
            request,
            422,
            "INVALID_INPUT",
            "Request validation failed",
            {"errors": [{"loc": list(e.get("loc", ())), "msg": e.get("msg", "")} for e in exc.errors()]},
        )

    return app


def main() -> None:
    """Run the API with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(create_app(), host=settings.host, port=settings.port, log_level=settings.logging.level.lower())


if __name__ == "__main__":
    main()
