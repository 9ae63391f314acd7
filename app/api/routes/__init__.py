from __future__ import annotations

from app.api.routes.health import router as health_router
from app.api.routes.policy import router as policy_router

__all__ = ["health_router", "policy_router"]
