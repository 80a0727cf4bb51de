"""Pydantic models describing the Key Vault secrets data-plane payloads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class KeyVaultBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class SecretAttributesPayload(KeyVaultBaseModel):
    enabled: bool = True
    created: int | None = None
    updated: int | None = None
    recovery_level: str | None = Field(default=None, alias="recoveryLevel")
    recoverable_days: int | None = Field(default=None, alias="recoverableDays")


class SecretItem(KeyVaultBaseModel):
    id: str
    attributes: SecretAttributesPayload = Field(default_factory=SecretAttributesPayload)
    content_type: str | None = Field(default=None, alias="contentType")
    managed: bool | None = None


class SecretListResponse(KeyVaultBaseModel):
    value: list[SecretItem] = Field(default_factory=list)
    next_link: str | None = Field(default=None, alias="nextLink")


class SecretBundle(KeyVaultBaseModel):
    id: str
    value: str | None = None
    attributes: SecretAttributesPayload = Field(default_factory=SecretAttributesPayload)
    content_type: str | None = Field(default=None, alias="contentType")


class SecretSetParameters(KeyVaultBaseModel):
    value: str
    content_type: str | None = Field(default=None, alias="contentType")


class ErrorDetail(KeyVaultBaseModel):
    code: str = "Unknown"
    message: str = ""


class KeyVaultErrorResponse(KeyVaultBaseModel):
    error: ErrorDetail
