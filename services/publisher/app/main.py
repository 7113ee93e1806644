"""FastAPI application entry point.

Catalog Publish Gate - admin preview API. The scan itself runs from
scripts/run_checks.py.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.routes import api_router
from app.schemas.common import ErrorDetail, ErrorResponse
from app.services.shopify_client import ShopifyError
from app.settings import get_settings

logger = logging.getLogger("uvicorn.error")


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Publish-readiness checks for a Shopify catalog",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    @app.exception_handler(ShopifyError)
    async def shopify_exception_handler(request: Request, exc: ShopifyError) -> JSONResponse:
        logger.warning(f"Shopify error on {request.url.path}: {exc}")
        body = ErrorResponse(
            error=ErrorDetail(
                code="UPSTREAM_ERROR",
                message=str(exc),
                detail={"errors": exc.errors} if exc.errors else None,
            )
        )
        return JSONResponse(status_code=502, content=body.model_dump())

    # Exception handler for structured error format
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Global exception handler returning structured error format."""
        return JSONResponse(
            status_code=500,
            content={
                "error": {
                    "code": "INTERNAL_ERROR",
                    "message": str(exc) if settings.debug else "Internal server error",
                    "detail": None,
                }
            },
        )

    # Health check endpoint
    @app.get("/health", tags=["health"])
    async def health_check() -> dict[str, bool]:
        """Health check endpoint."""
        return {"ok": True}

    app.include_router(api_router)

    return app


# Application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
