import json
from datetime import UTC, datetime
from pathlib import Path
from uuid import UUID, uuid4

from typer.testing import CliRunner

from transaction_ingest.cli import app
from transaction_ingest.identity import composite_id

runner = CliRunner()


def _write_rows(path: Path, rows, *, jsonl: bool = False) -> Path:
    if jsonl:
        path.write_text("\n".join(json.dumps(r) for r in rows) + "\n", encoding="utf-8")
    else:
        path.write_text(json.dumps(rows), encoding="utf-8")
    return path


def _good_row(**overrides):
    row = {
        "ts": "2024-01-01T00:00:00Z",
        "amount": 50,
        "remote_person_id": "donor-7",
        "remote_page_name": "spring",
        "entry_type": "TRANSACTION_ONE_TIME",
    }
    row.update(overrides)
    return row


def _read_jsonl(path: Path):
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines() if line]


def test_normalize_writes_jsonl(tmp_path: Path):
    rows = _write_rows(tmp_path / "rows.json", [_good_row(), _good_row(recurring_number=3)])
    people = tmp_path / "people.json"
    people.write_text(json.dumps({"donor-7": "p-7"}), encoding="utf-8")
    out = tmp_path / "out.jsonl"

    result = runner.invoke(
        app,
        [
            "normalize",
            "--rows-path",
            str(rows),
            "--people-path",
            str(people),
            "--input-id",
            "in-1",
            "--output-path",
            str(out),
        ],
    )

    assert result.exit_code == 0, result.output
    records = _read_jsonl(out)
    assert len(records) == 2
    assert records[0]["entry_type_id"] == 11
    assert records[0]["recurs_id"] == 0
    assert records[1]["recurs_id"] == 3
    assert records[0]["person_id"] == "p-7"
    assert records[0]["input_id"] == "in-1"
    assert UUID(records[0]["id"]) == composite_id(
        input_id="in-1", person_id="p-7", ts=datetime(2024, 1, 1, tzinfo=UTC)
    )


def test_normalize_reads_jsonl_and_page_map(tmp_path: Path):
    rows = _write_rows(tmp_path / "rows.jsonl", [_good_row(), _good_row()], jsonl=True)
    pages = tmp_path / "pages.json"
    pages.write_text(json.dumps({"spring": 12}), encoding="utf-8")
    out = tmp_path / "out.jsonl"

    result = runner.invoke(
        app,
        ["normalize", "--rows-path", str(rows), "--pages-path", str(pages), "--output-path", str(out)],
    )

    assert result.exit_code == 0, result.output
    assert [r["input_id"] for r in _read_jsonl(out)] == [12, 12]


def test_rejected_rows_are_reported(tmp_path: Path):
    bad = _good_row()
    del bad["amount"]
    rows = _write_rows(tmp_path / "rows.json", [_good_row(), bad])
    out = tmp_path / "out.jsonl"

    result = runner.invoke(app, ["normalize", "--rows-path", str(rows), "--output-path", str(out)])
    assert result.exit_code == 0
    assert "row 1: invalid amount" in result.output
    assert len(_read_jsonl(out)) == 1

    strict = runner.invoke(
        app, ["normalize", "--rows-path", str(rows), "--output-path", str(out), "--strict"]
    )
    assert strict.exit_code == 1


def test_missing_rows_file(tmp_path: Path):
    result = runner.invoke(app, ["normalize", "--rows-path", str(tmp_path / "nope.json")])
    assert result.exit_code == 1
    assert "File not found" in result.output


def test_unparseable_rows_file(tmp_path: Path):
    rows = tmp_path / "rows.jsonl"
    rows.write_text('{"ts": 1}\n{not json\n', encoding="utf-8")
    result = runner.invoke(app, ["normalize", "--rows-path", str(rows)])
    assert result.exit_code == 1
    assert "Failed to parse input" in result.output


def test_invalid_namespace_env(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("TRANSACTION_INGEST_ID_NAMESPACE", "not-a-uuid")
    rows = _write_rows(tmp_path / "rows.json", [_good_row()])
    result = runner.invoke(app, ["normalize", "--rows-path", str(rows)])
    assert result.exit_code == 1


def test_namespace_env_changes_ids(tmp_path: Path, monkeypatch):
    ns = uuid4()
    rows = _write_rows(tmp_path / "rows.json", [_good_row()])
    out = tmp_path / "out.jsonl"
    monkeypatch.setenv("TRANSACTION_INGEST_ID_NAMESPACE", str(ns))

    result = runner.invoke(
        app,
        ["normalize", "--rows-path", str(rows), "--input-id", "in-1", "--output-path", str(out)],
    )

    assert result.exit_code == 0, result.output
    assert UUID(_read_jsonl(out)[0]["id"]) == composite_id(
        input_id="in-1", person_id=None, ts=datetime(2024, 1, 1, tzinfo=UTC), namespace=ns
    )


def test_dotenv_is_loaded_from_cwd(tmp_path: Path):
    ns = uuid4()
    # conftest runs each test with tmp_path as the working directory.
    (tmp_path / ".env").write_text(f"TRANSACTION_INGEST_ID_NAMESPACE={ns}\n", encoding="utf-8")

    result = runner.invoke(app, ["derive-id", "--ts", "1704067200000"])

    assert result.exit_code == 0, result.output
    expected = composite_id(
        input_id=None, person_id=None, ts=datetime(2024, 1, 1, tzinfo=UTC), namespace=ns
    )
    assert str(expected) in result.output


def test_derive_id_command():
    result = runner.invoke(
        app,
        [
            "derive-id",
            "--ts",
            "2024-01-01T00:00:00Z",
            "--input-id",
            "in-1",
            "--person-id",
            "p-7",
            "--remote-transaction-id",
            "tx-1",
        ],
    )

    assert result.exit_code == 0, result.output
    expected = composite_id(
        input_id="in-1",
        person_id="p-7",
        ts=datetime(2024, 1, 1, tzinfo=UTC),
        remote_transaction_id="tx-1",
    )
    assert str(expected) in result.output


def test_derive_id_rejects_bad_ts():
    result = runner.invoke(app, ["derive-id", "--ts", "yesterday"])
    assert result.exit_code == 1
    assert "invalid ts" in result.output


def test_unknown_log_level_env_does_not_break_commands(monkeypatch):
    monkeypatch.setenv("TRANSACTION_INGEST_LOG_LEVEL", "verbose")
    result = runner.invoke(app, ["derive-id", "--ts", "1704067200000"])
    assert result.exit_code == 0, result.output


def test_existing_output_survives_unreadable_input(tmp_path: Path):
    out = tmp_path / "out.jsonl"
    out.write_text('{"kept": true}\n', encoding="utf-8")

    missing = runner.invoke(
        app,
        ["normalize", "--rows-path", str(tmp_path / "nope.json"), "--output-path", str(out)],
    )
    bad = tmp_path / "rows.jsonl"
    bad.write_text("{not json\n", encoding="utf-8")
    broken = runner.invoke(
        app, ["normalize", "--rows-path", str(bad), "--output-path", str(out)]
    )

    assert missing.exit_code == 1
    assert broken.exit_code == 1
    assert out.read_text(encoding="utf-8") == '{"kept": true}\n'
    assert not (tmp_path / "out.jsonl.tmp").exists()


def test_out_of_range_ts_row_does_not_abort_batch(tmp_path: Path):
    rows = _write_rows(
        tmp_path / "rows.json", [_good_row(ts="0001-01-01T00:00:00+05:00"), _good_row()]
    )
    out = tmp_path / "out.jsonl"

    result = runner.invoke(app, ["normalize", "--rows-path", str(rows), "--output-path", str(out)])

    assert result.exit_code == 0, result.output
    assert "row 0: invalid ts" in result.output
    assert len(_read_jsonl(out)) == 1
