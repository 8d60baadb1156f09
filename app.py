from contextlib import asynccontextmanager
from typing import Optional

import redis
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backend import RedisBackend, create_redis_client
from config import Settings, load_settings
from errors import InvalidInput, ProtocolError
from handlers import build_protocol
from logging_config import get_logger, setup_logging
from routers.messages import messages_router
from routers.rooms import rooms_router
from routers.uploads import uploads_router
from utils import Clock, utcnow

logger = get_logger(__name__)


def _validation_message(exc: RequestValidationError) -> str:
    fields = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part != "body"]
        if loc and loc[-1] not in fields:
            fields.append(loc[-1])
    if not fields:
        return InvalidInput.default_message
    return f"{InvalidInput.default_message}: {', '.join(fields)}"


def create_app(settings: Optional[Settings] = None, redis_client: Optional[redis.Redis] = None, clock: Clock = utcnow) -> FastAPI:
    """Build the application.

    With no ``redis_client`` the connection is opened at startup from settings.
    """
    settings = settings or load_settings()

    def wire(app: FastAPI, client: redis.Redis):
        app.state.backend = RedisBackend(client)
        app.state.protocol = build_protocol(app.state.backend, settings, clock=clock)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if not settings.jwt_secret:
            # Token-issuing requests will fail with config_error until this is set
            logger.error("JWT_SECRET is not configured; room creation and joins will be rejected")
        if redis_client is None:
            client = create_redis_client(settings)
            wire(app, client)
            try:
                yield
            finally:
                client.close()
                logger.info("Redis client closed")
        else:
            yield

    app = FastAPI(title="Ephemeral room access", lifespan=lifespan)
    app.state.settings = settings
    if redis_client is not None:
        wire(app, redis_client)

    # Configure CORS to allow all origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Allow all origins
        allow_methods=["*"],  # Allow all HTTP methods
        allow_headers=["*"],  # Allow all headers
    )

    @app.exception_handler(ProtocolError)
    async def protocol_error_handler(request: Request, exc: ProtocolError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        error = InvalidInput(_validation_message(exc))
        logger.warning(f"Rejected request to {request.url.path}: {error.message}")
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.url.path}: {exc}", exc_info=True)
        return JSONResponse(status_code=500, content={"error": "Internal server error", "kind": "internal"})

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    app.include_router(rooms_router)
    app.include_router(messages_router)
    app.include_router(uploads_router)

    logger.info(f"FastAPI application initialized (identity strategy: {settings.identity_strategy})")
    return app


_settings = load_settings()
setup_logging(log_level=_settings.log_level, log_file=_settings.log_file, log_format=_settings.log_format)

app = create_app(_settings)
