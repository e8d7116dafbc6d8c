import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DBAPIError
from sqlmodel import SQLModel

from .error import ClientError, OAuthError, ServerError

logger = logging.getLogger(__name__)

# Error details that may be shown to the caller
PUBLIC_DETAIL_KEYS = ("attempts_remaining", "retry_after")


async def handle_client_error(request: Request, exc: ClientError):
    error_dict = {"code": exc.base_error.code, "message": exc.base_error.message}
    details = {
        key: value
        for key, value in (exc.base_error.details or {}).items()
        if key in PUBLIC_DETAIL_KEYS
    }
    if details:
        error_dict["details"] = details
    logger.warning(f"Client error: {error_dict}")

    headers = None
    if "retry_after" in details:
        headers = {"Retry-After": str(details["retry_after"])}
    return JSONResponse(status_code=exc.status_code, content={"error": error_dict}, headers=headers)


async def handle_server_error(request: Request, exc: ServerError):
    error_dict = {"code": exc.base_error.code, "message": "Internal server error"}
    logger.error(f"Server error: {exc.base_error.code}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"error": error_dict}
    )


async def handle_oauth_error(request: Request, exc: OAuthError):
    logger.warning(f"OAuth error: {exc.base_error.code} path={request.url.path}")
    headers = {"Cache-Control": "no-store", "Pragma": "no-cache"}
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        scheme = "Bearer" if exc.base_error.code == "invalid_token" else "Basic"
        headers["WWW-Authenticate"] = f'{scheme} error="{exc.base_error.code}"'
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.base_error.code, "error_description": exc.base_error.message},
        headers=headers,
    )


async def handle_database_error(request: Request, exc: DBAPIError):
    logger.error(f"Database error: {exc.__class__.__name__} path={request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"error": {"code": "UPSTREAM_UNAVAILABLE", "message": "Service temporarily unavailable"}},
    )


def create_app(ApplicationConfig) -> FastAPI:
    logging.basicConfig(
        level=ApplicationConfig.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        from src.adapter.services.expiry_sweeper import ExpirySweeper
        from src.app.services.background import drain_background_tasks
        from src.depends import AsyncSessionLocal, engine
        import src.domain.entities  # noqa: F401  registers the tables

        if ApplicationConfig.AUTO_CREATE_TABLES:
            async with engine.begin() as conn:
                await conn.run_sync(SQLModel.metadata.create_all)

        sweeper = ExpirySweeper(AsyncSessionLocal, ApplicationConfig.EXPIRY_SWEEP_INTERVAL_SECONDS)
        sweeper_task = asyncio.create_task(sweeper.run(), name="expiry_sweeper")
        logger.info("event=startup")
        try:
            yield
        finally:
            sweeper_task.cancel()
            try:
                await sweeper_task
            except asyncio.CancelledError:
                pass
            await drain_background_tasks()
            await engine.dispose()
            logger.info("event=shutdown")

    app = FastAPI(title="SSO Identity Service", version="0.1.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=ApplicationConfig.CORS_ORIGINS,
        allow_credentials=ApplicationConfig.CORS_ALLOW_CREDENTIALS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from src.api.routes import admin, audit, auth, health_check, oauth, sessions

    app.include_router(health_check.router, tags=["Health"])
    app.include_router(auth.router, tags=["Authentication"])
    app.include_router(sessions.router, tags=["Sessions"])
    app.include_router(oauth.router, tags=["OAuth"])
    app.include_router(oauth.well_known_router, tags=["OAuth"])
    app.include_router(admin.router, tags=["Admin"])
    app.include_router(audit.router, tags=["Audit"])

    app.add_exception_handler(ClientError, handle_client_error)
    app.add_exception_handler(ServerError, handle_server_error)
    app.add_exception_handler(OAuthError, handle_oauth_error)
    app.add_exception_handler(DBAPIError, handle_database_error)

    return app
