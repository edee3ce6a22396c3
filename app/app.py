import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.responses import JSONResponse
from app.core.config import settings
from app.core.exceptions import WebhookError
from app.core.logging import setup_logging
from app.db import session
from app.redis import close_redis
from app.api.v1 import routes_health, routes_webhook

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.ENV == "development":
        await session.init_db()
    logger.info(f"{settings.APP_NAME} started (env: {settings.ENV})")
    yield
    await close_redis()
    await session.engine.dispose()
    logger.info(f"{settings.APP_NAME} stopped")


def create_app():
    setup_logging(settings.LOG_LEVEL)
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Receives webhooks and applies each delivery at most once",
        lifespan=lifespan
    )

    app.include_router(
        routes_health.router,
        prefix="/api/v1",
        tags=["health"]
    )

    app.include_router(
        routes_webhook.router,
        prefix="/api/v1",
        tags=["webhooks"]
    )

    @app.exception_handler(WebhookError)
    async def webhook_error_handler(request, ex: WebhookError):
        return JSONResponse(status_code=ex.status_code, content={"error": ex.message})

    @app.get("/")
    def root():
        return {"message": settings.APP_NAME}
    return app


app = create_app()
