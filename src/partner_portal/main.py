"""FastAPI application for the partner portal."""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from partner_portal.api.candidates import router as candidates_router
from partner_portal.core.config import settings
from partner_portal.core.error_handling import ErrorCategory, ErrorContext, PortalError, error_handler
from partner_portal.core.startup import PortalServices, initialize_system, shutdown_system

logger = structlog.get_logger(__name__)

_STATUS_BY_CATEGORY = {
    ErrorCategory.VALIDATION: 400,
    ErrorCategory.AUTHENTICATION: 401,
    ErrorCategory.BUSINESS_LOGIC: 409,
    ErrorCategory.DATABASE: 500,
    ErrorCategory.EXTERNAL_SERVICE: 502,
    ErrorCategory.UPSTREAM: 502,
    ErrorCategory.TIMEOUT: 504,
    ErrorCategory.SYSTEM: 500,
}


def create_app(services: Optional[PortalServices] = None) -> FastAPI:
    """Create the application.

    Args:
        services: Prebuilt service container; when omitted the system is
            initialized on startup from settings

    Returns:
        FastAPI application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "services", None) is None:
            app.state.services = initialize_system()
            owned = True
        else:
            owned = False
        try:
            yield
        finally:
            if owned:
                shutdown_system(app.state.services)

    app = FastAPI(
        title="Partner Portal API",
        description="Candidate reconciliation, duplicate detection and contact enrichment",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.services = services

    @app.exception_handler(PortalError)
    async def portal_error_handler(request: Request, exc: PortalError):
        error = error_handler.handle_error(
            exc,
            ErrorContext(operation=f"{request.method} {request.url.path}", component="api"),
        )
        return JSONResponse(
            status_code=_STATUS_BY_CATEGORY.get(error.category, 500),
            content={"detail": error.message, "category": error.category.value},
        )

    app.include_router(candidates_router)

    @app.get("/health")
    async def health_check(request: Request):
        """Health check endpoint."""
        services = getattr(request.app.state, "services", None)
        database = services.database if services else None
        return {
            "status": "healthy",
            "service": "partner-portal",
            "database": database.health_check() if database else None,
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "partner_portal.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=True
    )
