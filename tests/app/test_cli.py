from __future__ import annotations

import json
from pathlib import Path

import pytest

from tests.support.secret_store import SOURCE, TARGET
from vaultsync.app import ComparisonReport, ImportRunResult, SyncRunResult
from vaultsync.domain.reconciliation import (
    ComparedEntry,
    ComparisonStats,
    ComparisonStatus,
    ConflictAction,
    ConflictPolicy,
    MissingDirection,
    SyncResult,
    UnresolvedConflictsError,
    WriteFailure,
    WriteKind,
    WriteOperation,
)
from vaultsync.domain.transfer import ExportOptions
from vaultsync.ui import cli


def _report() -> ComparisonReport:
    return ComparisonReport(
        source_ref=SOURCE,
        target_ref=TARGET,
        entries=[
            ComparedEntry(name="a", status=ComparisonStatus.SOURCE_ONLY),
            ComparedEntry(name="b", status=ComparisonStatus.MATCH),
        ],
        stats=ComparisonStats(total=2, matches=1, source_only=1),
    )


def test_compare_prints_entries_and_stats(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    captured: dict[str, object] = {}

    def fake_compare(source: str, target: str, **kwargs: object) -> ComparisonReport:
        captured.update(source=source, target=target, **kwargs)
        return _report()

    monkeypatch.setattr(cli, "compare_vaults", fake_compare)

    cli.main(["compare", SOURCE, TARGET, "--no-values"])

    assert captured == {"source": SOURCE, "target": TARGET, "load_values": False}
    out = capsys.readouterr().out
    assert "a  source only" in out
    assert "total=2 match=1 mismatch=0 source-only=1 target-only=0 pending=0" in out


def test_compare_json_filters_by_status(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setattr(cli, "compare_vaults", lambda *_a, **_k: _report())

    cli.main(["compare", SOURCE, TARGET, "--json", "--status", "match"])

    payload = json.loads(capsys.readouterr().out)
    assert [entry["name"] for entry in payload["entries"]] == ["b"]
    assert payload["stats"]["sourceOnly"] == 1


def test_sync_passes_options(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}

    def fake_sync(source: str, target: str, **kwargs: object) -> SyncRunResult:
        captured.update(kwargs)
        return SyncRunResult(operations=[], result=SyncResult(success=1))

    monkeypatch.setattr(cli, "sync_vaults", fake_sync)

    cli.main(
        [
            "sync",
            SOURCE,
            TARGET,
            "--missing",
            "both",
            "--overwrite-mismatches",
            "--value",
            "a=x=y",
        ]
    )

    assert captured["missing"] is MissingDirection.BOTH
    assert captured["overwrite_mismatches"] is True
    assert captured["custom_values"] == {"a": "x=y"}
    assert captured["dry_run"] is False


def test_sync_exits_with_one_on_failed_writes(monkeypatch: pytest.MonkeyPatch) -> None:
    failure = WriteFailure(
        operation=WriteOperation(WriteKind.CREATE, TARGET, "a", "1"), message="boom"
    )
    monkeypatch.setattr(
        cli,
        "sync_vaults",
        lambda *_a, **_k: SyncRunResult(
            operations=[], result=SyncResult(failed=1, failures=[failure])
        ),
    )

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["sync", SOURCE, TARGET])

    assert excinfo.value.code == 1


def test_invalid_custom_value_exits_with_two() -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["sync", SOURCE, TARGET, "--value", "missing-separator"])

    assert excinfo.value.code == 2


def test_import_reads_file_and_builds_decisions(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    captured: dict[str, object] = {}
    source_file = tmp_path / "secrets.env"
    source_file.write_text("A=1\nB=2\n", encoding="utf-8")

    def fake_import(vault: str, content: str, **kwargs: object) -> ImportRunResult:
        captured.update(vault=vault, content=content, **kwargs)
        return ImportRunResult(parsed=2, new_entries=["b"], conflicts=["a"], operations=[])

    monkeypatch.setattr(cli, "import_secrets", fake_import)

    cli.main(
        [
            "import",
            TARGET,
            str(source_file),
            "--format",
            "dotenv",
            "--on-conflict",
            "skip",
            "--override",
            "a",
        ]
    )

    assert captured["vault"] == TARGET
    assert captured["content"] == "A=1\nB=2\n"
    assert captured["format"] == "dotenv"
    assert captured["policy"] is ConflictPolicy.SKIP_ALL
    assert captured["decisions"] == {"a": ConflictAction.OVERRIDE}


def test_import_with_unresolved_conflicts_exits_with_two(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    source_file = tmp_path / "secrets.json"
    source_file.write_text('{"a": "1"}', encoding="utf-8")

    def fake_import(*_args: object, **_kwargs: object) -> ImportRunResult:
        raise UnresolvedConflictsError(1, ("a",))

    monkeypatch.setattr(cli, "import_secrets", fake_import)

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["import", TARGET, str(source_file)])

    assert excinfo.value.code == 2


def test_conflicting_skip_and_override_exit_with_two(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["import", TARGET, str(tmp_path / "x"), "--skip", "a", "--override", "a"])

    assert excinfo.value.code == 2


def test_export_writes_output_file(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    captured: dict[str, object] = {}

    def fake_export(vault: str, format: str, **kwargs: object) -> str:  # noqa: A002
        captured.update(vault=vault, format=format, **kwargs)
        return '{"a": "1"}'

    monkeypatch.setattr(cli, "export_secrets", fake_export)
    output = tmp_path / "out.json"

    cli.main(
        ["export", SOURCE, "--format", "keyValue", "--output", str(output), "--include-enabled"]
    )

    assert output.read_text(encoding="utf-8") == '{"a": "1"}\n'
    assert captured["format"] == "keyValue"
    assert captured["options"] == ExportOptions(include_enabled=True)


def test_runtime_failure_exits_with_one(monkeypatch: pytest.MonkeyPatch) -> None:
    def failing_export(*_args: object, **_kwargs: object) -> str:
        raise RuntimeError("vault unreachable")

    monkeypatch.setattr(cli, "export_secrets", failing_export)

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["export", SOURCE])

    assert excinfo.value.code == 1


def test_missing_command_exits_with_two() -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main([])

    assert excinfo.value.code == 2
