"""Pydantic schemas for workspace API key settings."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class SaveApiKeyRequest(BaseModel):
    """Body of POST /api/settings/api-key."""

    model_config = ConfigDict(populate_by_name=True)

    api_key: str = Field(
        ...,
        alias="apiKey",
        description="Plaintext API key to store. Sealed before persistence.",
    )


class ApiKeyStatusResponse(BaseModel):
    """Whether a workspace has a key stored. Never includes the key itself."""

    model_config = ConfigDict(populate_by_name=True)

    has_key: bool = Field(..., alias="hasKey")
    last_updated: datetime | None = Field(
        default=None,
        alias="lastUpdated",
        description="When the stored key was last written (UTC), if any.",
    )


class ApiKeyMutationResponse(BaseModel):
    success: bool = True
    message: str
