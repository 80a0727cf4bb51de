"""Translate Key Vault payloads into domain entries."""

from __future__ import annotations

from datetime import UTC, datetime

from vaultsync.domain.model import SecretAttributes, SecretEntry, SecretValue

from .schema import SecretAttributesPayload, SecretBundle, SecretItem


def _epoch_to_datetime(value: int | None) -> datetime | None:
    if value is None:
        return None
    return datetime.fromtimestamp(value, tz=UTC)


def parse_attributes(
    payload: SecretAttributesPayload,
    *,
    content_type: str | None = None,
) -> SecretAttributes:
    return SecretAttributes(
        enabled=payload.enabled,
        created=_epoch_to_datetime(payload.created),
        updated=_epoch_to_datetime(payload.updated),
        recovery_level=payload.recovery_level,
        recoverable_days=payload.recoverable_days,
        content_type=content_type,
    )


def parse_secret_item(item: SecretItem) -> SecretEntry:
    return SecretEntry(
        identifier=item.id,
        attributes=parse_attributes(item.attributes, content_type=item.content_type),
    )


def parse_secret_bundle(bundle: SecretBundle) -> SecretValue:
    return SecretValue(
        identifier=bundle.id,
        value=bundle.value,
        attributes=parse_attributes(bundle.attributes, content_type=bundle.content_type),
    )


def entry_from_bundle(bundle: SecretBundle) -> SecretEntry:
    """Listing-style entry for a freshly written secret, without its version suffix."""

    vault, sep, rest = bundle.id.partition("/secrets/")
    identifier = f"{vault}{sep}{rest.split('/', 1)[0]}" if sep else bundle.id
    return SecretEntry(
        identifier=identifier,
        attributes=parse_attributes(bundle.attributes, content_type=bundle.content_type),
    )
