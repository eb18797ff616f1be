"""
Application lifespan handler.
Manages startup and shutdown events for the FastAPI application.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from rest_api.models import Base
from rest_api.services.chatbot import ConversationHistoryStore, close_gemini_client
from rest_api.services.oauth import close_google_client
from shared.config.logging import rest_api_logger as logger
from shared.config.logging import setup_logging
from shared.config.settings import settings
from shared.infrastructure.db import engine
from ws_gateway.router import manager as ws_manager


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup: logging, secret validation, tables, assistant history store.
    Shutdown: close outbound HTTP clients.
    """
    setup_logging()

    secret_errors = settings.validate_production_secrets()
    if secret_errors:
        for error in secret_errors:
            logger.error("Configuration error: %s", error)
        if settings.is_production:
            raise RuntimeError(
                f"Production configuration errors: {'; '.join(secret_errors)}. "
                "Server will not start with insecure configuration."
            )
        logger.warning("Running with insecure defaults (acceptable for development only)")

    logger.info("Starting Taakra API", port=settings.port, env=settings.environment)

    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created/verified")

    app.state.chat_history = ConversationHistoryStore(
        max_messages=settings.chatbot_history_limit,
        max_sessions=settings.chatbot_max_sessions,
    )
    if not settings.gemini_api_key:
        logger.info("GEMINI_API_KEY not set, assistant will use rule-based replies")

    yield

    logger.info("Shutting down Taakra API")

    closed = await ws_manager.shutdown()
    logger.info("WebSocket connections closed", count=closed)

    await close_gemini_client()
    await close_google_client()
    logger.info("Outbound HTTP clients closed")
