import json
from pathlib import Path

import pytest

from ashram import cli


@pytest.fixture
def receipt_json(tmp_path: Path, receipt_fields: dict) -> Path:
    path = tmp_path / "receipt.json"
    path.write_text(json.dumps({"receipt": receipt_fields}), encoding="utf-8")
    return path


def test_render_writes_pdf(receipt_json: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    output = tmp_path / "out.pdf"
    cli.main(["render", str(receipt_json), "-o", str(output), "--no-logos", "--backend", "vector"])

    assert output.read_bytes().startswith(b"%PDF")
    assert "vector backend" in capsys.readouterr().out


def test_html_writes_preview(receipt_json: Path, tmp_path: Path) -> None:
    output = tmp_path / "preview.html"
    cli.main(["html", str(receipt_json), "-o", str(output)])

    assert "Receipt #ASH123456" in output.read_text(encoding="utf-8")


def test_default_output_name_is_a_single_path_segment(
    tmp_path: Path, receipt_fields: dict, monkeypatch: pytest.MonkeyPatch
) -> None:
    path = tmp_path / "receipt.json"
    path.write_text(json.dumps({**receipt_fields, "receiptNumber": "2024/08/001"}), encoding="utf-8")
    monkeypatch.chdir(tmp_path)

    cli.main(["html", str(path), "--no-logos"])

    assert (tmp_path / "Receipt-2024_08_001.html").is_file()
    assert not (tmp_path / "Receipt-2024").exists()


def test_bare_receipt_object_is_accepted(tmp_path: Path, receipt_fields: dict) -> None:
    path = tmp_path / "bare.json"
    path.write_text(json.dumps(receipt_fields), encoding="utf-8")
    assert cli._load_receipt(str(path))["receiptNumber"] == "ASH123456"


def test_fonts_lists_candidates(capsys: pytest.CaptureFixture[str]) -> None:
    cli.main(["fonts"])
    out = capsys.readouterr().out
    assert "regular" in out and "bold" in out


def test_missing_input_exits(tmp_path: Path) -> None:
    with pytest.raises(SystemExit, match="Input file not found"):
        cli.main(["render", str(tmp_path / "missing.json")])


def test_invalid_receipt_exits(tmp_path: Path) -> None:
    path = tmp_path / "receipt.json"
    path.write_text(json.dumps({"donorName": "Test Donor"}), encoding="utf-8")
    with pytest.raises(SystemExit, match="Missing required receipt fields"):
        cli.main(["html", str(path)])


def test_no_command_prints_help(capsys: pytest.CaptureFixture[str]) -> None:
    cli.main([])
    assert "usage" in capsys.readouterr().out
