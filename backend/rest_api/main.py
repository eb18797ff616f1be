"""
REST API main application.
Entry point for the Taakra FastAPI server (HTTP API and /ws/chat).
"""

from fastapi import FastAPI

from rest_api.core.cors import configure_cors
from rest_api.core.errors import register_exception_handlers
from rest_api.core.lifespan import lifespan
from rest_api.core.middlewares import register_middlewares
from rest_api.routers.auth import router as auth_router
from rest_api.routers.categories import router as categories_router
from rest_api.routers.chat import router as chat_router
from rest_api.routers.chatbot import router as chatbot_router
from rest_api.routers.competitions import router as competitions_router
from rest_api.routers.users import router as users_router
from shared.config.settings import settings
from shared.security.rate_limit import limiter
from shared.utils.schemas import HealthResponse
from ws_gateway.router import router as ws_router


def create_app() -> FastAPI:
    app = FastAPI(
        title="Taakra API",
        description="Competition platform: accounts, competitions, registrations, chat and assistant",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.state.limiter = limiter
    register_exception_handlers(app)

    # CORS last so it wraps everything, including error responses
    register_middlewares(app)
    configure_cors(app)

    @app.get("/api/health", response_model=HealthResponse, tags=["health"])
    def health_check() -> HealthResponse:
        """Basic health check endpoint."""
        return HealthResponse(status="healthy", service="taakra-api", environment=settings.environment)

    app.include_router(auth_router)
    app.include_router(competitions_router)
    app.include_router(categories_router)
    app.include_router(users_router)
    app.include_router(chat_router)
    app.include_router(chatbot_router)
    app.include_router(ws_router)
    return app


app = create_app()


def main() -> None:
    import uvicorn

    uvicorn.run(
        "rest_api.main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=settings.environment == "development",
    )


if __name__ == "__main__":
    main()
