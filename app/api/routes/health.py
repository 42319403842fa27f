from __future__ import annotations

from fastapi import APIRouter

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Liveness check for load balancers.

    Deliberately does not touch the encryption key or the limiter table, so a
    missing ``ENCRYPTION_KEY`` never takes the instance out of rotation.
    """

    return {"status": "ok"}
