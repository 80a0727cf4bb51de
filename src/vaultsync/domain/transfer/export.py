"""Render secrets in the supported export formats."""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING

from .formats import ExportOptions, TransferFormat, dotenv_key
from .schema import (
    ExportedAttributes,
    FullExportDocument,
    FullExportSecret,
    SimpleExportList,
    SimpleSecret,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from vaultsync.domain.model import SecretEntry

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ExportRecord:
    entry: SecretEntry
    value: str

    @property
    def name(self) -> str:
        return self.entry.name


def render_export(
    records: Sequence[ExportRecord],
    format: TransferFormat | str,  # noqa: A002
    *,
    vault_name: str = "",
    vault_uri: str = "",
    options: ExportOptions | None = None,
    exported_at: datetime | None = None,
) -> str:
    """Serialise ``records``; metadata options only affect the full format."""

    selected = TransferFormat(format)
    match selected:
        case TransferFormat.FULL:
            output = render_full(
                records,
                vault_name=vault_name,
                vault_uri=vault_uri,
                options=options or ExportOptions(),
                exported_at=exported_at or datetime.now(UTC),
            )
        case TransferFormat.SIMPLE:
            output = render_simple(records)
        case TransferFormat.KEY_VALUE:
            output = render_key_value(records)
        case TransferFormat.DOTENV:
            output = render_dotenv(records)
    log.info("Exported %d secrets in %s format", len(records), selected)
    return output


def render_full(
    records: Sequence[ExportRecord],
    *,
    vault_name: str,
    vault_uri: str,
    options: ExportOptions,
    exported_at: datetime,
) -> str:
    document = FullExportDocument(
        vault_name=vault_name,
        vault_uri=vault_uri,
        exported_at=exported_at.isoformat(),
        secrets=[
            FullExportSecret(
                name=record.name,
                value=record.value,
                attributes=_exported_attributes(record.entry, options),
            )
            for record in records
        ],
    )
    return document.model_dump_json(by_alias=True, exclude_none=True, indent=2)


def render_simple(records: Sequence[ExportRecord]) -> str:
    document = SimpleExportList([SimpleSecret(name=r.name, value=r.value) for r in records])
    return document.model_dump_json(indent=2)


def render_key_value(records: Sequence[ExportRecord]) -> str:
    return json.dumps({record.name: record.value for record in records}, indent=2)


def render_dotenv(records: Sequence[ExportRecord]) -> str:
    return "\n".join(f'{dotenv_key(r.name)}="{_escape_dotenv(r.value)}"' for r in records)


def _exported_attributes(entry: SecretEntry, options: ExportOptions) -> ExportedAttributes | None:
    if not options.includes_attributes:
        return None
    attributes = entry.attributes
    return ExportedAttributes(
        enabled=attributes.enabled if options.include_enabled else None,
        created=_timestamp(attributes.created) if options.include_created else None,
        updated=_timestamp(attributes.updated) if options.include_updated else None,
        recovery_level=attributes.recovery_level if options.include_recovery_level else None,
    )


def _timestamp(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.astimezone(UTC).isoformat()


def _escape_dotenv(value: str) -> str:
    # Escapes understood by double-quoted dotenv values.
    return (
        value.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\r", "\\r")
    )
