"""Pydantic models describing the JSON transfer documents."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, RootModel


class TransferBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ExportedAttributes(TransferBaseModel):
    enabled: bool | None = None
    created: str | None = None
    updated: str | None = None
    recovery_level: str | None = Field(default=None, alias="recoveryLevel")


class FullExportSecret(TransferBaseModel):
    name: str
    value: str | None = None
    attributes: ExportedAttributes | None = None


class FullExportDocument(TransferBaseModel):
    vault_name: str | None = Field(default=None, alias="vaultName")
    vault_uri: str | None = Field(default=None, alias="vaultUri")
    exported_at: str | None = Field(default=None, alias="exportedAt")
    secrets: list[FullExportSecret]


class SimpleSecret(TransferBaseModel):
    name: str
    value: str


class SimpleExportList(RootModel[list[SimpleSecret]]):
    pass


class SimpleExportDocument(TransferBaseModel):
    secrets: list[SimpleSecret]
