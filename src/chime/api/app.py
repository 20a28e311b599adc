"""FastAPI application factory."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from chime.config import get_settings


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    from chime.channels.base import close_channel

    await close_channel()


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title=f"{settings.app_name} API",
        description="Chime reminder delivery: cron trigger and health endpoints",
        version="0.1.0",
        lifespan=lifespan,
    )

    from chime.api.routers import cron, health

    app.include_router(cron.router, prefix="/cron", tags=["cron"])
    app.include_router(health.router, tags=["health"])

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        return JSONResponse(
            status_code=500, content={"ok": False, "error": "Internal server error"}
        )

    @app.get("/health")
    async def health():
        return {"status": "ok", "service": "chime-api"}

    return app


app = create_app()
