"""Application factory for the FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers) so
tests can build isolated instances.
"""

from __future__ import annotations

from fastapi import FastAPI

from llm_adapter.api.routes import generate_router, health_router
from llm_adapter.core.config import settings
from llm_adapter.core.exception_handlers import setup_exception_handlers
from llm_adapter.core.logging import configure_logging
from llm_adapter.core.middleware import request_id_middleware


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance.

    Returns:
        Configured FastAPI app with middleware, handlers and routers.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="LLM Adapter API",
        description=(
            "Provider-neutral text generation and streaming on top of the "
            "OpenAI chat-completion API."
        ),
        version="0.1.0",
        debug=settings.app.debug,
    )

    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(generate_router, prefix="/v1")
    app.include_router(health_router)

    return app
