"""Tests for the command line front-end and the batch reports."""

from __future__ import annotations

import csv
import json
from pathlib import Path

import pytest

from conftest import write_fake
from tojpg import cli


def test_help_shows_convert(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["--help"])

    assert exc_info.value.code == 0
    assert "convert" in capsys.readouterr().out


def test_convert_writes_outputs_and_summary(make_image, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    png = make_image("a.png")
    jpe = make_image("b.jpe", fmt="JPEG")

    code = cli.main(["convert", str(png), str(jpe), "--fix-extension", "--remove-extension"])

    assert code == 0
    assert (tmp_path / "a.jpg").is_file()
    assert (tmp_path / "b.jpg").is_file()
    assert not jpe.exists()

    out = capsys.readouterr().out
    assert "Transcoded : 1" in out
    assert "Renamed    : 1" in out


def test_failures_give_exit_code_1(make_image, tmp_path: Path) -> None:
    src = make_image("pic.jpe", fmt="JPEG")
    write_fake(tmp_path, "pic.jpg", b"already here")

    code = cli.main(["convert", str(src), "--fix-extension"])

    assert code == 1


def test_configuration_error_gives_exit_code_2(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    blocker = write_fake(tmp_path, "out", b"")
    src = write_fake(tmp_path, "a.txt", b"text")

    code = cli.main(["convert", str(src), "--out", str(blocker)])

    assert code == 2
    assert "Configuration error" in capsys.readouterr().out


def test_report_files(make_image, tmp_path: Path) -> None:
    png = make_image("a.png")
    txt = write_fake(tmp_path, "b.txt", b"text")
    out = tmp_path / "out"
    reports = tmp_path / "reports"

    code = cli.main(["convert", str(png), str(txt), "--out", str(out), "--report", str(reports)])
    assert code == 0

    data = json.loads((reports / "report.json").read_text(encoding="utf-8"))
    assert data["summary"]["transcoded"] == 1
    assert data["summary"]["unsupported"] == 1
    assert data["summary"]["succeeded"] == 1
    statuses = {Path(f["src_path"]).name: f["status"] for f in data["files"]}
    assert statuses == {"a.png": "success", "b.txt": "unsupported"}

    with (reports / "report.csv").open(encoding="utf-8", newline="") as f:
        rows = list(csv.DictReader(f))
    assert [r["status"] for r in rows] == ["success", "unsupported"]
    assert rows[0]["action"] == "transcode"
    assert Path(rows[0]["out_path"]).name == "a.png.jpg"
