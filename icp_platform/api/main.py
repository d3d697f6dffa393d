"""
FastAPI application - routers, error mapping and index lifecycle.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .assistant import router as assistant_router
from .common import router as common_router
from .meta import schemas_router, stats_router
from .partners import router as partners_router
from .schemas import ErrorResponse, HealthResponse, ValidationErrorResponse, ValidationFieldError
from .solutions import router as solutions_router
from .tickets import router as tickets_router
from .users import router as users_router
from ..core.config import CORS_ORIGINS, INDEX_WARM_ON_STARTUP, VERSION, debug_enabled, validate_config
from ..core.container import AppContainer
from ..core.db import health_check
from ..core.errors import PlatformError, SchemaValidationError
from ..util.logging import logger


def _validation_response(message: str, errors) -> JSONResponse:
    body = ValidationErrorResponse(
        message=message,
        errors=[ValidationFieldError(**e) for e in errors],
    )
    return JSONResponse(status_code=400, content=jsonable_encoder(body))


def create_app(container: Optional[AppContainer] = None, warm_on_startup: bool = INDEX_WARM_ON_STARTUP) -> FastAPI:
    """Build the application around a container (a default one when omitted)."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        for issue in validate_config():
            logger.warning(f"Config issue: {issue}")
        if app.state.container is None:
            app.state.container = AppContainer()
        if warm_on_startup:
            await app.state.container.warm()
        yield
        app.state.container.dispose()

    app = FastAPI(
        title="ICP Platform API",
        version=VERSION,
        description="Solutions and partners catalog with approval workflow, semantic search and translation",
        docs_url="/docs" if debug_enabled() else None,
        redoc_url="/redoc" if debug_enabled() else None,
        lifespan=lifespan,
    )
    app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(SchemaValidationError)
    async def schema_validation_handler(request: Request, exc: SchemaValidationError):
        return _validation_response(exc.message, exc.errors)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = [
            {
                "field": ".".join(str(part) for part in err.get("loc", ())),
                "message": err.get("msg", "invalid value"),
                "value": err.get("input"),
            }
            for err in exc.errors()
        ]
        logger.log_schema_validation_error(f"{request.method} {request.url.path}", errors)
        return _validation_response("Request validation failed", errors)

    @app.exception_handler(PlatformError)
    async def platform_error_handler(request: Request, exc: PlatformError):
        body = ErrorResponse(error_type=exc.error_type, message=exc.message)
        return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(body))

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle all unhandled exceptions."""
        logging.error(f"Unhandled exception: {exc}")
        content = {"detail": "Internal server error"}
        if debug_enabled():
            content["debug"] = str(exc)
        return JSONResponse(status_code=500, content=content)

    @app.get("/health", response_model=HealthResponse)
    def health_check_endpoint(request: Request):
        """Check system health."""
        container = request.app.state.container
        db_health = health_check(getattr(container.store, "db_path", None))
        return HealthResponse(
            status="healthy" if db_health else "unhealthy",
            version=VERSION,
            db_health=db_health,
            indexes={name: index.stats() for name, index in container.indexes.items()},
        )

    app.include_router(solutions_router, prefix="/v1/solutions", tags=["solutions"])
    app.include_router(partners_router, prefix="/v1/partners", tags=["partners"])
    app.include_router(users_router, prefix="/v1/users", tags=["users"])
    app.include_router(tickets_router, prefix="/v1/tickets", tags=["tickets"])
    app.include_router(stats_router, prefix="/v1/stats", tags=["stats"])
    app.include_router(schemas_router, prefix="/v1/schemas", tags=["schemas"])
    app.include_router(common_router, prefix="/v1/common", tags=["common"])
    app.include_router(assistant_router, prefix="/v1/ai", tags=["ai"])

    return app


app = create_app()
