from __future__ import annotations

from llm_adapter.api.routes.generate import router as generate_router
from llm_adapter.api.routes.health import router as health_router

__all__ = ["generate_router", "health_router"]
