from __future__ import annotations

from fastapi import APIRouter

from llm_adapter.core.config import settings

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Liveness probe.

    Does not call the provider; reports which provider/model is configured.
    """

    return {
        "status": "ok",
        "provider": settings.llm.provider,
        "model": settings.llm.model,
    }
