# ruff: noqa: T201

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from vaultsync.app import compare_vaults, export_secrets, import_secrets, sync_vaults
from vaultsync.config import configure_logging
from vaultsync.domain.reconciliation import (
    ComparisonStatus,
    ConflictAction,
    ConflictPolicy,
    MissingDirection,
    SyncProgress,
    SyncResult,
)
from vaultsync.domain.reconciliation.classify import status_label
from vaultsync.domain.transfer import ExportOptions, TransferFormat

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from vaultsync.app import ComparisonReport

log = logging.getLogger(__name__)

_FORMAT_CHOICES = [str(fmt) for fmt in TransferFormat]


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Compare and synchronise secret stores")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    compare = subparsers.add_parser("compare", help="Compare two vaults")
    compare.add_argument("source", help="Source vault URI, host or name")
    compare.add_argument("target", help="Target vault URI, host or name")
    compare.add_argument(
        "--no-values",
        action="store_true",
        help="Compare names only; shared names stay pending",
    )
    compare.add_argument(
        "--status",
        choices=[str(status) for status in ComparisonStatus],
        help="Only list entries with this status",
    )
    compare.add_argument("--json", action="store_true", help="Print the comparison as JSON")

    sync = subparsers.add_parser("sync", help="Copy missing and mismatched secrets")
    sync.add_argument("source", help="Source vault URI, host or name")
    sync.add_argument("target", help="Target vault URI, host or name")
    sync.add_argument(
        "--missing",
        choices=[str(direction) for direction in MissingDirection],
        default=str(MissingDirection.TO_TARGET),
        help="Which side receives entries that exist on one side only",
    )
    sync.add_argument(
        "--overwrite-mismatches",
        action="store_true",
        help="Update target entries whose value differs from the source",
    )
    sync.add_argument(
        "--value",
        action="append",
        default=[],
        metavar="NAME=VALUE",
        help="Custom value for a missing entry (repeatable)",
    )
    sync.add_argument("--dry-run", action="store_true", help="Plan writes without applying")

    import_ = subparsers.add_parser("import", help="Merge an import file into a vault")
    import_.add_argument("vault", help="Destination vault URI, host or name")
    import_.add_argument("file", type=Path, help="File to import")
    import_.add_argument(
        "--format",
        choices=_FORMAT_CHOICES,
        help="Input format (auto-detected when omitted)",
    )
    import_.add_argument(
        "--on-conflict",
        choices=[str(policy) for policy in ConflictPolicy],
        default=str(ConflictPolicy.ASK),
        help="Default action for names that already exist",
    )
    import_.add_argument(
        "--skip",
        action="append",
        default=[],
        metavar="NAME",
        help="Keep the existing value of NAME (repeatable)",
    )
    import_.add_argument(
        "--override",
        action="append",
        default=[],
        metavar="NAME",
        help="Replace the existing value of NAME (repeatable)",
    )
    import_.add_argument("--dry-run", action="store_true", help="Plan writes without applying")

    export = subparsers.add_parser("export", help="Export a vault's secrets")
    export.add_argument("vault", help="Vault URI, host or name")
    export.add_argument(
        "--format",
        choices=_FORMAT_CHOICES,
        default=str(TransferFormat.FULL),
        help="Output format",
    )
    export.add_argument("--output", type=Path, help="Write to PATH instead of stdout")
    export.add_argument("--include-enabled", action="store_true")
    export.add_argument("--include-created", action="store_true")
    export.add_argument("--include-updated", action="store_true")
    export.add_argument("--include-recovery-level", action="store_true")

    return parser.parse_args(list(argv))


def _parse_custom_values(pairs: Sequence[str]) -> dict[str, str]:
    values: dict[str, str] = {}
    for pair in pairs:
        name, sep, value = pair.partition("=")
        if not sep or not name.strip():
            raise ValueError(f"Invalid --value {pair!r}; expected NAME=VALUE")
        values[name.strip()] = value
    return values


def _parse_decisions(skip: Sequence[str], override: Sequence[str]) -> dict[str, ConflictAction]:
    both = set(skip) & set(override)
    if both:
        raise ValueError(f"Names given to both --skip and --override: {', '.join(sorted(both))}")
    decisions = dict.fromkeys(skip, ConflictAction.SKIP)
    decisions.update(dict.fromkeys(override, ConflictAction.OVERRIDE))
    return decisions


def _print_comparison(
    report: ComparisonReport,
    *,
    status: ComparisonStatus | None,
    as_json: bool,
) -> None:
    entries = [e for e in report.entries if status is None or e.status is status]
    stats = report.stats
    if as_json:
        payload = {
            "source": report.source_ref,
            "target": report.target_ref,
            "stats": {
                "total": stats.total,
                "match": stats.matches,
                "mismatch": stats.mismatches,
                "sourceOnly": stats.source_only,
                "targetOnly": stats.target_only,
                "pending": stats.pending,
            },
            "entries": [
                {
                    "name": entry.name,
                    "status": str(entry.status),
                    "sourceFetch": str(entry.source_fetch),
                    "targetFetch": str(entry.target_fetch),
                }
                for entry in entries
            ],
        }
        print(json.dumps(payload, indent=2))
        return

    width = max((len(entry.name) for entry in entries), default=4)
    for entry in entries:
        print(f"{entry.name:<{width}}  {status_label(entry.status)}")
    print(
        f"total={stats.total} match={stats.matches} mismatch={stats.mismatches} "
        f"source-only={stats.source_only} target-only={stats.target_only} "
        f"pending={stats.pending}"
    )


def _report_progress(progress: SyncProgress) -> None:
    outcome = "ok" if progress.succeeded else "FAILED"
    operation = progress.operation
    print(
        f"[{progress.current}/{progress.total}] {operation.kind} {operation.name} "
        f"-> {operation.store_ref}: {outcome}"
    )


def _print_result(result: SyncResult) -> None:
    print(f"success={result.success} failed={result.failed} skipped={result.skipped}")
    for failure in result.failures:
        print(f"  {failure.operation.name}: {failure.message}")


def _run_compare(args: argparse.Namespace) -> int:
    report = compare_vaults(args.source, args.target, load_values=not args.no_values)
    status = ComparisonStatus(args.status) if args.status else None
    _print_comparison(report, status=status, as_json=args.json)
    return 0


def _run_sync(args: argparse.Namespace, custom_values: dict[str, str]) -> int:
    outcome = sync_vaults(
        args.source,
        args.target,
        missing=MissingDirection(args.missing),
        overwrite_mismatches=args.overwrite_mismatches,
        custom_values=custom_values,
        dry_run=args.dry_run,
        on_progress=_report_progress,
    )
    for name in outcome.unavailable:
        print(f"value of {name} not available; skipped")
    if outcome.dry_run:
        for operation in outcome.operations:
            print(f"would {operation.kind} {operation.name} in {operation.store_ref}")
        return 1 if outcome.unavailable else 0
    _print_result(outcome.result)
    return 1 if outcome.result.failed else 0


def _run_import(args: argparse.Namespace, decisions: dict[str, ConflictAction]) -> int:
    content = args.file.read_text(encoding="utf-8")
    outcome = import_secrets(
        args.vault,
        content,
        format=args.format,
        policy=ConflictPolicy(args.on_conflict),
        decisions=decisions,
        dry_run=args.dry_run,
        on_progress=_report_progress,
    )
    print(
        f"parsed={outcome.parsed} new={len(outcome.new_entries)} "
        f"conflicts={len(outcome.conflicts)}"
    )
    if outcome.dry_run:
        for operation in outcome.operations:
            print(f"would {operation.kind} {operation.name} in {operation.store_ref}")
        return 0
    _print_result(outcome.result)
    return 1 if outcome.result.failed else 0


def _run_export(args: argparse.Namespace) -> int:
    options = ExportOptions(
        include_enabled=args.include_enabled,
        include_created=args.include_created,
        include_updated=args.include_updated,
        include_recovery_level=args.include_recovery_level,
    )
    output = export_secrets(args.vault, args.format, options=options)
    if args.output is None:
        print(output)
    else:
        args.output.write_text(f"{output}\n", encoding="utf-8")
        log.info("Wrote export to %s", args.output)
    return 0


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    load_dotenv()
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    custom_values: dict[str, str] = {}
    decisions: dict[str, ConflictAction] = {}
    try:
        parsed_args = _parse_args(args_list)
        configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)
        if parsed_args.command == "sync":
            custom_values = _parse_custom_values(parsed_args.value)
        elif parsed_args.command == "import":
            decisions = _parse_decisions(parsed_args.skip, parsed_args.override)
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        if parsed_args.command == "compare":
            exit_code = _run_compare(parsed_args)
        elif parsed_args.command == "sync":
            exit_code = _run_sync(parsed_args, custom_values)
        elif parsed_args.command == "import":
            exit_code = _run_import(parsed_args, decisions)
        elif parsed_args.command == "export":
            exit_code = _run_export(parsed_args)
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301
    except ValueError:
        log.exception("Rejected input")
        sys.exit(2)
    except Exception:
        log.exception("Fatal error")
        sys.exit(1)

    if exit_code:
        sys.exit(exit_code)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
