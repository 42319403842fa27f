from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from app.core.auth import require_workspace_id, verify_api_key
from app.schemas.api_key import (
    ApiKeyMutationResponse,
    ApiKeyStatusResponse,
    SaveApiKeyRequest,
)
from app.services.workspace_key_service import WorkspaceKeyService

router = APIRouter(
    prefix="/settings",
    tags=["Settings"],
    dependencies=[Depends(verify_api_key)],
)


def get_workspace_key_service(request: Request) -> WorkspaceKeyService:
    return request.app.state.workspace_key_service


ServiceDep = Annotated[WorkspaceKeyService, Depends(get_workspace_key_service)]
WorkspaceDep = Annotated[str, Depends(require_workspace_id)]


@router.get("/api-key", response_model=ApiKeyStatusResponse)
def get_api_key_status(workspace_id: WorkspaceDep, service: ServiceDep) -> ApiKeyStatusResponse:
    """Report whether the workspace has an API key stored.

    The key itself is never returned.
    """
    key_status = service.status(workspace_id)
    return ApiKeyStatusResponse(
        has_key=key_status.has_key,
        last_updated=key_status.last_updated,
    )


@router.post("/api-key", response_model=ApiKeyMutationResponse)
def save_api_key(
    body: SaveApiKeyRequest,
    workspace_id: WorkspaceDep,
    service: ServiceDep,
) -> ApiKeyMutationResponse:
    """Seal and store the workspace's API key, replacing any previous one.

    Raises:
        ValidationAppError: 400 when the key is empty or badly formatted.
        CredentialError: opaque 500 when the encryption key is unavailable.
    """
    service.save_key(workspace_id, body.api_key)
    return ApiKeyMutationResponse(message="API key saved")


@router.delete("/api-key", response_model=ApiKeyMutationResponse)
def delete_api_key(workspace_id: WorkspaceDep, service: ServiceDep) -> ApiKeyMutationResponse:
    service.remove_key(workspace_id)
    return ApiKeyMutationResponse(message="API key removed")
