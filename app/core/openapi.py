"""OpenAPI metadata and customization utilities.

Enriches the generated OpenAPI schema with:
- Tags metadata
- The ``X-API-Key`` security scheme, required by default
- Per-path exemptions for health checks and public routes, and a note on
  the 429 response public routes may return

This keeps documentation concerns decoupled from the app factory.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

_TAGS = [
    {
        "name": "Settings",
        "description": "Workspace API key storage. Keys are sealed with AES-256-GCM at rest.",
    },
    {
        "name": "Health",
        "description": "Liveness checks.",
    },
]

_RATE_LIMITED_RESPONSE = {
    "description": "Too many requests from this client for the route class. "
    "Retry after the number of seconds in the Retry-After header.",
}


def _is_public(path: str) -> bool:
    return path.endswith("/health") or path.startswith("/api/public/")


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add metadata and security."""

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        schema = original_openapi()

        security_schemes = schema.setdefault("components", {}).setdefault("securitySchemes", {})
        security_schemes.setdefault(
            "ApiKeyAuth",
            {
                "type": "apiKey",
                "in": "header",
                "name": "X-API-Key",
                "description": "Provide your API key via the X-API-Key header.",
            },
        )
        schema.setdefault("security", [{"ApiKeyAuth": []}])

        tags = schema.setdefault("tags", [])
        known = {t.get("name") for t in tags}
        tags.extend(tag for tag in _TAGS if tag["name"] not in known)

        for path, methods in schema.get("paths", {}).items():
            if not _is_public(path):
                continue
            for method_obj in methods.values():
                if not isinstance(method_obj, dict):
                    continue
                method_obj["security"] = []
                if path.startswith("/api/public/"):
                    method_obj.setdefault("responses", {}).setdefault("429", _RATE_LIMITED_RESPONSE)

        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
