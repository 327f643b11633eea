"""FastAPI application factory and setup."""

import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from loguru import logger
from starlette.responses import JSONResponse

from iam_bridge.api.http.app_data import ApplicationDependencies
from iam_bridge.api.http.routers.auth import router as auth_router
from iam_bridge.api.utils.app_startup import configure_logging
from iam_bridge.core.services import (
    DbSessionService,
    HttpProfileStore,
    IdTokenVerifier,
    JWKSCacheInMemory,
    JwksService,
    RedisService,
    SessionPolicy,
)
from iam_bridge.core.storage import create_kv_store
from iam_bridge.runtime.context import get_config


async def startup(app: FastAPI) -> None:
    config = get_config()
    logger.info("Starting up application in {} environment", config.app.environment)

    database_service = DbSessionService()
    database_service.create_all()

    redis_service = RedisService()
    kv_store = await create_kv_store(redis_service)

    jwks_cache = JWKSCacheInMemory()
    jwks_service = JwksService(jwks_cache)

    app.state.app_dependencies = ApplicationDependencies(
        jwks_cache=jwks_cache,
        jwks_service=jwks_service,
        id_token_verifier=IdTokenVerifier(jwks_service),
        profile_store=HttpProfileStore(config.profile_store),
        session_policy=SessionPolicy(kv_store),
        database_service=database_service,
        redis_service=redis_service,
    )

    if not config.oidc.providers:
        logger.warning("No OIDC providers configured; sign-in is unavailable")


async def shutdown(app: FastAPI) -> None:
    logger.info("Shutting down application")
    deps: ApplicationDependencies | None = getattr(app.state, "app_dependencies", None)
    if deps and deps.redis_service:
        await deps.redis_service.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    await startup(app)
    try:
        yield
    finally:
        await shutdown(app)


def create_app() -> FastAPI:
    configure_logging()
    production = get_config().app.environment == "production"

    app = FastAPI(
        title="iam-bridge",
        lifespan=lifespan,
        docs_url=None if production else "/docs",
        redoc_url=None if production else "/redoc",
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        start = time.perf_counter()
        with logger.contextualize(request_id=request_id):
            try:
                response = await call_next(request)
            except Exception:
                logger.exception(f"{request.method} {request.url.path} failed")
                return JSONResponse(
                    status_code=500,
                    content={"detail": "Internal Server Error", "request_id": request_id},
                    headers={"X-Request-ID": request_id},
                )
            duration_ms = (time.perf_counter() - start) * 1000
            logger.info(
                f"{request.method} {request.url.path} -> {response.status_code} "
                f"({duration_ms:.1f} ms)"
            )
            response.headers.setdefault("X-Request-ID", request_id)
            return response

    app.include_router(auth_router, prefix="/auth")

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()

__all__ = ["app", "create_app", "startup", "shutdown"]
