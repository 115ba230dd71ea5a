from __future__ import annotations

import json
from pathlib import Path

import pytest

from billease.billing import CommandValidationError
from billease.cli.main import main, parse_item_spec


def _db_args(tmp_path: Path) -> list[str]:
    return ["--root", str(tmp_path), "--db", str(tmp_path / "catalog.sqlite3")]


def _add(tmp_path: Path, capsys, name: str, price: str) -> str:
    code = main(_db_args(tmp_path) + ["catalog", "add", "--name", name, "--category", "General", "--price", price])
    assert code == 0
    return json.loads(capsys.readouterr().out.strip().splitlines()[-1])["id"]


def test_parse_item_spec() -> None:
    assert parse_item_spec("abc") == ("abc", 1, None)
    pid, qty, price = parse_item_spec("abc:3:80")
    assert (pid, qty, str(price)) == ("abc", 3, "80.00")
    with pytest.raises(CommandValidationError):
        parse_item_spec("abc:x")
    with pytest.raises(CommandValidationError):
        parse_item_spec(":2")
    with pytest.raises(CommandValidationError):
        parse_item_spec("abc:1000001")
    with pytest.raises(CommandValidationError):
        parse_item_spec("abc:1:12abc")


def test_bill_command_prints_snapshot(tmp_path: Path, capsys) -> None:
    a = _add(tmp_path, capsys, "Product A", "100")
    b = _add(tmp_path, capsys, "Product B", "50")

    code = main(_db_args(tmp_path) + ["bill", "--client", "Jane", "--item", f"{a}:1:80", "--item", f"{b}:2", "--item", b])
    assert code == 0
    snap = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
    assert snap["total_amount"] == "230.00"
    assert [line["quantity"] for line in snap["lines"]] == [1, 3]


def test_bill_command_writes_pdf(tmp_path: Path, capsys) -> None:
    a = _add(tmp_path, capsys, "Product A", "100")
    out_dir = tmp_path / "bills"
    out_dir.mkdir()
    code = main(_db_args(tmp_path) + ["bill", "--client", "Jane", "--item", a, "--pdf", str(out_dir), "--share"])
    assert code == 0
    printed = capsys.readouterr().out.strip().splitlines()
    assert Path(printed[0]).is_file()
    assert printed[1].startswith("https://wa.me/?text=")


def test_bill_command_reports_operator_errors(tmp_path: Path, capsys) -> None:
    a = _add(tmp_path, capsys, "Product A", "100")
    assert main(_db_args(tmp_path) + ["bill", "--client", "Jane", "--item", "ghost"]) == 1
    assert main(_db_args(tmp_path) + ["bill", "--client", " ", "--item", a]) == 1
    assert main(_db_args(tmp_path) + ["bill", "--client", "Jane", "--item", f"{a}:0"]) == 1
    assert main(_db_args(tmp_path) + ["bill", "--client", "Jane", "--item", f"{a}:x"]) == 2


def test_catalog_categories_and_delete(tmp_path: Path, capsys) -> None:
    a = _add(tmp_path, capsys, "Product A", "100")
    assert main(_db_args(tmp_path) + ["catalog", "categories"]) == 0
    assert capsys.readouterr().out.strip() == "General"
    assert main(_db_args(tmp_path) + ["catalog", "delete", "--id", a]) == 0
    assert main(_db_args(tmp_path) + ["catalog", "delete", "--id", a]) == 1
