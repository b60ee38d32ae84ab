"""FastAPI application initialization."""

import os
from contextlib import asynccontextmanager

import logfire
import sentry_sdk
from fastapi import FastAPI
from sentry_sdk.integrations.fastapi import FastApiIntegration

from fb_messenger.api import webhook
from fb_messenger.config import get_settings
from fb_messenger.logging_config import setup_logfire
from fb_messenger.services.hooks import HookRegistry


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: observability setup and registry reporting."""
    settings = get_settings()

    setup_logfire(app)

    if settings.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            traces_sample_rate=settings.sentry_traces_sample_rate,
            send_default_pii=False,
            integrations=[FastApiIntegration()],
        )

    registry: HookRegistry = app.state.hook_registry
    logfire.info(
        "Application startup complete",
        environment=settings.env,
        api_root=settings.api_root,
        hooks=[kind.value for kind in registry.hooks],
    )

    yield

    logfire.info("Application shutdown complete")


def create_app(registry: HookRegistry | None = None) -> FastAPI:
    """Build the webhook application.

    Args:
        registry: Hook table for this app. A fresh, empty registry is created
            when omitted; register hooks on ``app.state.hook_registry``.
    """
    app = FastAPI(
        title="Facebook Messenger Webhooks",
        description="Messenger webhook receiver dispatching to registered hooks",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.hook_registry = registry or HookRegistry()

    app.include_router(webhook.router, prefix="/webhook", tags=["webhook"])

    @app.get("/health")
    def health():
        """Liveness probe."""
        return {"status": "healthy"}

    return app


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", 8000))
    uvicorn.run(
        "fb_messenger.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=port,
        reload=os.getenv("ENV") == "local",
    )
