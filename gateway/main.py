"""
Main FastAPI application entry point.
"""
from contextlib import asynccontextmanager
import logging
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration

from .api.auth_codes import router as auth_codes_router
from .api.meta import router as meta_router
from .api.proxy import router as proxy_router
from .api.quizzes import router as quizzes_router
from .core.config import Settings, get_settings
from .core.errors import GatewayError
from .core.logging import configure_logging
from .middleware.logging import LoggingMiddleware
from .middleware.security import SecurityHeadersMiddleware, internal_error_response
from .services.container import Services, build_services

logger = logging.getLogger(__name__)


def _describe_validation_error(error: dict) -> str:
    loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "header")]
    field = ".".join(loc)
    return f"{field}: {error['msg']}" if field else error["msg"]


def create_app(settings: Optional[Settings] = None, services: Optional[Services] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)

    if settings.SENTRY_DSN:
        sentry_sdk.init(
            dsn=settings.SENTRY_DSN,
            environment=settings.ENVIRONMENT,
            integrations=[FastApiIntegration(transaction_style="endpoint")],
            traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
            send_default_pii=False,
        )

    services = services or build_services(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting %s %s (%s)", settings.APP_NAME, settings.APP_VERSION, settings.ENVIRONMENT)
        yield
        logger.info("Shutting down %s...", settings.APP_NAME)
        services.close()

    app = FastAPI(
        title=settings.APP_NAME,
        description=settings.APP_DESCRIPTION,
        version=settings.APP_VERSION,
        docs_url=None if settings.is_production() else "/docs",
        redoc_url=None,
        openapi_url=None if settings.is_production() else "/openapi.json",
        lifespan=lifespan,
    )
    app.state.services = services

    # Added innermost first: CORS answers preflights, then hardening headers, then access log.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=False,
        allow_methods=settings.CORS_ALLOW_METHODS,
        allow_headers=settings.CORS_ALLOW_HEADERS,
        max_age=settings.CORS_MAX_AGE,
    )
    app.add_middleware(SecurityHeadersMiddleware, settings=settings)
    app.add_middleware(LoggingMiddleware)

    @app.exception_handler(GatewayError)
    async def gateway_error_handler(request: Request, exc: GatewayError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_content(), headers=exc.headers)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == status.HTTP_404_NOT_FOUND:
            content = {"error": "Not Found", "path": request.url.path}
        else:
            content = {"error": exc.detail, "path": request.url.path}
        return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "error": "Validation failed",
                "message": "Request is invalid",
                "errors": [_describe_validation_error(e) for e in exc.errors()],
            },
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error("Unhandled exception on %s %s", request.method, request.url.path, exc_info=exc)
        return internal_error_response(settings, exc)

    # Order matters: quiz routes must win over the /api/{path} proxy catch-all.
    app.include_router(meta_router, tags=["meta"])
    app.include_router(auth_codes_router, prefix="/auth", tags=["auth"])
    app.include_router(quizzes_router, prefix="/api/quizzes", tags=["quizzes"])
    app.include_router(proxy_router, tags=["proxy"])
    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    uvicorn.run(
        "gateway.main:app",
        host=_settings.HOST,
        port=_settings.PORT,
        reload=_settings.RELOAD,
        log_level=_settings.LOG_LEVEL.lower(),
        access_log=False,
    )
