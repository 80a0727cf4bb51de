"""Parse import files into name/value entries.

Supported formats are the ones :mod:`vaultsync.domain.transfer.export` writes:
full JSON export, simple JSON list, flat key-value JSON object and dotenv. Without
an explicit format the content is auto-detected; anything unrecognised raises
:class:`ImportParseError` before a single write is planned.
"""

from __future__ import annotations

import io
import json
from logging import getLogger
from typing import TYPE_CHECKING, cast

from dotenv import dotenv_values
from pydantic import ValidationError

from vaultsync.domain.model import ImportEntry

from .formats import (
    FULL_EXPORT_METADATA_KEYS,
    ImportParseError,
    TransferFormat,
    secret_name_from_dotenv_key,
)
from .schema import FullExportDocument, SimpleExportDocument, SimpleExportList

if TYPE_CHECKING:
    from collections.abc import Callable

log = getLogger(__name__)

type Parser = Callable[[str], list[ImportEntry]]


def parse_import(content: str, format: TransferFormat | str | None = None) -> list[ImportEntry]:  # noqa: A002
    """Parse ``content`` in ``format``, or auto-detect the format when it is ``None``."""

    text = content.strip()
    if not text:
        raise ImportParseError("File content is empty")

    if format is None:
        return _auto_detect_and_parse(text)

    try:
        selected = TransferFormat(format)
    except ValueError:
        raise ImportParseError(f"Unknown format: {format}") from None
    return _PARSERS[selected](text)


def detect_format(content: str) -> TransferFormat:
    """Return the format auto-detection would parse ``content`` as."""

    text = content.strip()
    if not text:
        raise ImportParseError("File content is empty")
    for candidate, parser in _detection_order(text):
        try:
            parser(text)
        except ImportParseError:
            continue
        return candidate
    raise ImportParseError(_UNDETECTED_MESSAGE)


def parse_full(content: str) -> list[ImportEntry]:
    try:
        document = FullExportDocument.model_validate_json(content)
    except ValidationError as exc:
        raise ImportParseError(f"Failed to parse as full export format: {exc}") from exc
    entries = [ImportEntry(name=s.name, value=s.value or "") for s in document.secrets]
    return _require_entries(entries, TransferFormat.FULL, "No secrets found in full export format")


def parse_simple(content: str) -> list[ImportEntry]:
    try:
        if content.lstrip().startswith("["):
            secrets = SimpleExportList.model_validate_json(content).root
        else:
            secrets = SimpleExportDocument.model_validate_json(content).secrets
    except ValidationError as exc:
        raise ImportParseError(f"Failed to parse as simple export format: {exc}") from exc
    entries = [ImportEntry(name=s.name, value=s.value) for s in secrets]
    return _require_entries(
        entries, TransferFormat.SIMPLE, "No secrets found in simple export format"
    )


def parse_key_value(content: str) -> list[ImportEntry]:
    try:
        payload = json.loads(content)
    except json.JSONDecodeError as exc:
        raise ImportParseError(f"Failed to parse as key-value JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise ImportParseError("Key-value JSON must be an object")

    entries: list[ImportEntry] = []
    for key, raw in cast("dict[str, object]", payload).items():
        if key in FULL_EXPORT_METADATA_KEYS:
            continue
        value = _scalar_to_string(raw)
        if value is None:
            log.debug("Skipping non-scalar value for key %s", key)
            continue
        entries.append(ImportEntry(name=key, value=value))
    return _require_entries(entries, TransferFormat.KEY_VALUE, "No valid key-value pairs found")


def parse_dotenv(content: str) -> list[ImportEntry]:
    values = dotenv_values(stream=io.StringIO(content), interpolate=False)
    entries: list[ImportEntry] = []
    for key, value in values.items():
        # ``KEY`` without ``=`` parses to None; JSON fragments are not variables.
        if value is None or not key or "{" in key or '"' in key:
            continue
        entries.append(ImportEntry(name=secret_name_from_dotenv_key(key), value=value))
    return _require_entries(
        entries, TransferFormat.DOTENV, "No valid environment variables found"
    )


def looks_like_dotenv(content: str) -> bool:
    """True when most non-comment lines look like ``KEY=value`` assignments."""

    lines = [
        line.strip()
        for line in content.splitlines()
        if line.strip() and not line.strip().startswith("#")
    ]
    if not lines:
        return False
    matching = sum(1 for line in lines if "=" in line and not line.startswith("{"))
    return matching / len(lines) > 0.5


_PARSERS: dict[TransferFormat, Parser] = {
    TransferFormat.FULL: parse_full,
    TransferFormat.SIMPLE: parse_simple,
    TransferFormat.KEY_VALUE: parse_key_value,
    TransferFormat.DOTENV: parse_dotenv,
}

_UNDETECTED_MESSAGE = (
    "Could not detect file format. Supported formats: full JSON export, simple JSON, "
    "key-value JSON, or .env"
)


def _detection_order(content: str) -> list[tuple[TransferFormat, Parser]]:
    order: list[TransferFormat] = []
    if content.startswith(("{", "[")):
        # JSON values may contain ``=``; keep dotenv as the last resort here.
        order.extend((TransferFormat.FULL, TransferFormat.SIMPLE, TransferFormat.KEY_VALUE))
    elif looks_like_dotenv(content):
        order.append(TransferFormat.DOTENV)
    if TransferFormat.DOTENV not in order:
        order.append(TransferFormat.DOTENV)
    return [(candidate, _PARSERS[candidate]) for candidate in order]


def _auto_detect_and_parse(content: str) -> list[ImportEntry]:
    log.info("Auto-detecting import format")
    for candidate, parser in _detection_order(content):
        try:
            entries = parser(content)
        except ImportParseError as exc:
            log.debug("Content is not %s: %s", candidate, exc)
            continue
        log.debug("Detected %s format", candidate)
        return entries
    raise ImportParseError(_UNDETECTED_MESSAGE)


def _scalar_to_string(raw: object) -> str | None:
    if isinstance(raw, bool):
        return "true" if raw else "false"
    if isinstance(raw, str):
        return raw
    if isinstance(raw, int | float):
        return str(raw)
    return None


def _require_entries(
    entries: list[ImportEntry],
    format: TransferFormat,  # noqa: A002
    message: str,
) -> list[ImportEntry]:
    if not entries:
        raise ImportParseError(message)
    log.info("Parsed %d secrets from %s format", len(entries), format)
    return entries
