"""Import parsing and export rendering for secret files."""

from __future__ import annotations

from .export import ExportRecord, render_export
from .formats import ExportOptions, ImportParseError, TransferFormat
from .parse import detect_format, looks_like_dotenv, parse_import

__all__ = [
    "ExportOptions",
    "ExportRecord",
    "ImportParseError",
    "TransferFormat",
    "detect_format",
    "looks_like_dotenv",
    "parse_import",
    "render_export",
]
