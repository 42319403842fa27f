from __future__ import annotations

from app.api.routes.health import router as health_router
from app.api.routes.settings import router as settings_router

__all__ = ["health_router", "settings_router"]
