from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from shared.config.database import Database
from shared.config.settings import Settings
from shared.observability import setup_observability
from shared.security import limiter

# IMPORTANT: import models so they register with Base
from services.auth_service import models as auth_models  # noqa: F401
from services.order_service import models as order_models  # noqa: F401
from services.comment_service import models as comment_models  # noqa: F401
from services.notification_service import models as notification_models  # noqa: F401

from services.admin_service.router import router as admin_router
from services.auth_service.router import router as auth_router, users_router
from services.auth_service.service import AuthService
from services.comment_service.router import router as comment_router
from services.notification_service.router import router as notification_router
from services.notification_service.service import DeadlineSweeper
from services.order_service.attachments import AttachmentStore
from services.order_service.router import earnings_router, router as order_router

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    db: Database = app.state.db

    await db.create_all()
    if settings.seed_demo_users:
        async with db.sessionmaker() as session:
            await AuthService.seed_demo_users(session)

    sweeper = None
    if settings.deadline_sweep_interval_seconds > 0:
        sweeper = DeadlineSweeper(db.sessionmaker, settings.deadline_sweep_interval_seconds)
        sweeper.start()
    logger.info("startup_complete", database=db.engine.url.render_as_string(hide_password=True))

    yield

    if sweeper is not None:
        await sweeper.stop()
    await db.dispose()
    logger.info("shutdown_complete")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()

    app = FastAPI(
        title="Scribe Marketplace",
        version="1.0.0",
        description="Handwriting transcription orders: students, admins, writers and delivery agents.",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.db = Database(settings.database_url, echo=settings.db_echo)
    app.state.attachments = AttachmentStore(settings.upload_dir)

    # --- OBSERVABILITY BOOTSTRAP ---
    setup_observability(
        app, "scribe_marketplace",
        otlp_endpoint=settings.otlp_endpoint,
        metrics_enabled=settings.metrics_enabled,
    )

    # --- SECURITY SETUP ---
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    @app.get("/health", include_in_schema=False)
    async def health_check():
        return {"service": "scribe", "status": "running"}

    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(order_router)
    app.include_router(comment_router)
    app.include_router(earnings_router)
    app.include_router(notification_router)
    app.include_router(admin_router)
    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(create_app(), host="0.0.0.0", port=8000)
