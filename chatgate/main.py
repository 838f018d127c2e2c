import logging
import os

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, generate_latest

from chatgate.config import Config
from chatgate.config.logging_config import configure_logging
from chatgate.db.usage_store import UsageStore, create_usage_store
from chatgate.handlers import GatewayDependencies
from chatgate.routes import chat, health
from chatgate.security.token_verifier import TokenVerifier
from chatgate.services.inference_session import InferenceSession
from chatgate.services.quota_guard import QuotaGuard
from chatgate.services.startup import lifespan
from chatgate.services.usage_recorder import UsageRecorder
from chatgate.utils.error_handlers import register_exception_handlers

configure_logging()
logger = logging.getLogger(__name__)

# Initialize Sentry for error monitoring
if Config.SENTRY_ENABLED and Config.SENTRY_DSN:
    import sentry_sdk

    sentry_sdk.init(
        dsn=Config.SENTRY_DSN,
        environment=Config.SENTRY_ENVIRONMENT,
        release=Config.SENTRY_RELEASE,
        traces_sample_rate=Config.SENTRY_TRACES_SAMPLE_RATE,
        # Conversation content stays out of Sentry
        send_default_pii=False,
    )
    logger.info(
        f"✅ Sentry initialized (environment: {Config.SENTRY_ENVIRONMENT}, "
        f"release: {Config.SENTRY_RELEASE})"
    )
else:
    logger.info("⏭️  Sentry disabled (SENTRY_ENABLED=false or SENTRY_DSN not set)")


def create_app(
    usage_store: UsageStore | None = None,
    verifier: TokenVerifier | None = None,
    inference: InferenceSession | None = None,
    model_id: str | None = None,
    system_prompt: str | None = None,
    user_limit: int | None = None,
    global_limit: int | None = None,
) -> FastAPI:
    """
    Build the application.

    Collaborators default to the process-wide clients built from Config;
    tests pass substitutes.
    """
    app = FastAPI(
        title="Chat Gateway",
        description="Quota-enforcing streaming chat gateway",
        version=Config.APP_VERSION,
        lifespan=lifespan,
    )

    store = usage_store if usage_store is not None else create_usage_store()
    quota_kwargs = {}
    if user_limit is not None:
        quota_kwargs["user_limit"] = user_limit
    if global_limit is not None:
        quota_kwargs["global_limit"] = global_limit

    app.state.usage_store = store
    app.state.gateway = GatewayDependencies(
        verifier=verifier or TokenVerifier(),
        quota_guard=QuotaGuard(store, **quota_kwargs),
        inference=inference or InferenceSession(),
        recorder=UsageRecorder(store),
        model_id=model_id or Config.MODEL_ID,
        system_prompt=system_prompt or Config.SYSTEM_PROMPT,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=Config.CORS_ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
        expose_headers=["X-Request-ID"],
    )

    register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(chat.router)

    if Config.PROMETHEUS_ENABLED:

        @app.get("/metrics", include_in_schema=False)
        async def metrics():
            return Response(generate_latest(REGISTRY), media_type=CONTENT_TYPE_LATEST)

    return app


if __name__ == "__main__":
    import uvicorn

    port = int(os.environ.get("PORT", "8000"))
    uvicorn.run("chatgate.main:create_app", factory=True, host="0.0.0.0", port=port)
