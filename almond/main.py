"""
main.py: FastAPI application factory.

`create_app()` wires configuration, logging, the database engine, the
notifier gateway, the password hasher, exception handlers and the v1
routers. Serve it with `uvicorn --factory almond.main:create_app`.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from almond.api import api_router
from almond.core.config import Settings, get_settings
from almond.core.logging import configure_logging, get_logger
from almond.core.security import PasswordHasher
from almond.db import create_all, make_engine, make_sessionmaker
from almond.exceptions.handlers import register_exception_handlers
from almond.services import NotificationGateway

logger = get_logger(__name__)


def create_app(settings: Settings | None = None, notifier: NotificationGateway | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL)

    engine = make_engine(settings.DATABASE_URL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await create_all(engine)
        logger.info("Almond backend started (%s)", settings.ENVIRONMENT)
        yield
        await engine.dispose()

    app = FastAPI(
        title="Almond Backend",
        description="Identity, session and category services for the Almond classifieds platform",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.engine = engine
    app.state.sessionmaker = make_sessionmaker(engine)
    app.state.notifier = notifier or NotificationGateway.from_settings(settings)
    app.state.hasher = PasswordHasher.from_settings(settings)

    # -------------------------------------------------------------------------
    # CORS
    # -------------------------------------------------------------------------

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Mount all v1 API routers under /api/v1 prefix
    app.include_router(api_router, prefix="/api/v1")

    @app.get("/health", tags=["health"])
    async def health():
        return {"status": "success", "message": "Almond backend running"}

    return app
