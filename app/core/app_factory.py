"""Application factory for FastAPI app.

Centralizes app construction (metadata, shared state, middleware, handlers,
routers) so tests can build isolated instances with fresh limiter tables and
secret stores.
"""

from __future__ import annotations

from fastapi import FastAPI

from app.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from app.adapters.secret_store.base import AbstractSecretStore
from app.adapters.secret_store.in_memory import InMemorySecretStore
from app.api.routes import health_router, settings_router
from app.core.config import Settings, settings as default_settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import request_id_middleware
from app.core.openapi import apply_openapi_customizations
from app.core.rate_limit import build_route_classes, rate_limit_middleware
from app.core.security_headers import security_headers_middleware
from app.services.credential_cipher import CredentialCipherProvider
from app.services.workspace_key_service import WorkspaceKeyService


def create_app(
    app_settings: Settings | None = None,
    *,
    secret_store: AbstractSecretStore | None = None,
    rate_limiter: InMemoryFixedWindowRateLimiter | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        app_settings: Settings to use; defaults to the global settings.
        secret_store: Persistence for sealed workspace keys.
        rate_limiter: Limiter owning the admission table.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    cfg = app_settings or default_settings

    # Logging first so subsequent init logs are formatted as desired
    configure_logging(cfg.log)

    app = FastAPI(
        title="Creator Vault API",
        description=(
            "Security core of the creator business platform: sealed storage of "
            "workspace API keys (AES-256-GCM) and per-IP rate limiting of public "
            "routes."
        ),
        version="0.1.0",
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
    )

    # Shared state
    if rate_limiter is None:
        rate_limiter = InMemoryFixedWindowRateLimiter(window_seconds=cfg.app.rate_limit_window_seconds)
    if secret_store is None:
        secret_store = InMemorySecretStore()

    app.state.settings = cfg
    app.state.rate_limiter = rate_limiter
    app.state.route_classes = build_route_classes(cfg.app)
    app.state.cipher_provider = CredentialCipherProvider(lambda: cfg.security.encryption_key)
    app.state.workspace_key_service = WorkspaceKeyService(
        ciphers=app.state.cipher_provider,
        store=secret_store,
    )

    # Middleware (last registered runs outermost)
    app.middleware("http")(rate_limit_middleware)
    app.middleware("http")(security_headers_middleware)
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(settings_router, prefix="/api")
    app.include_router(health_router)

    # OpenAPI customizations (security scheme, tags, exemptions)
    apply_openapi_customizations(app)

    return app
