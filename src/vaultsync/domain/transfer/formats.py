"""Import/export file formats and options."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class TransferFormat(StrEnum):
    FULL = "full"
    SIMPLE = "simple"
    KEY_VALUE = "keyValue"
    DOTENV = "dotenv"


class ImportParseError(ValueError):
    """Raised when import content matches none of the supported formats."""


@dataclass(frozen=True, slots=True, kw_only=True)
class ExportOptions:
    """Optional metadata fields for the full export format.

    Name and value are always exported.
    """

    include_enabled: bool = False
    include_created: bool = False
    include_updated: bool = False
    include_recovery_level: bool = False

    @property
    def includes_attributes(self) -> bool:
        return (
            self.include_enabled
            or self.include_created
            or self.include_updated
            or self.include_recovery_level
        )


# Top-level keys of the full export document, never secret names in key-value files.
FULL_EXPORT_METADATA_KEYS = frozenset({"vaultName", "vaultUri", "exportedAt", "secrets"})


def dotenv_key(name: str) -> str:
    """``my-secret`` -> ``MY_SECRET``."""

    return name.upper().replace("-", "_")


def secret_name_from_dotenv_key(key: str) -> str:
    """``MY_SECRET`` -> ``my-secret``."""

    return key.lower().replace("_", "-")
