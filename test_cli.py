"""Tests for the casesmith command line."""
import ast
import json
import logging

from typer.testing import CliRunner

from cli import app

runner = CliRunner()

SOURCE = (
    "def size(n):\n"
    "    if n > 10:\n"
    "        return 'big'\n"
    "    else:\n"
    "        return 'small'\n"
)


def test_scan_text_output(tmp_path):
    src = tmp_path / "mod.py"
    src.write_text(SOURCE)
    result = runner.invoke(app, ["scan", str(src)])
    assert result.exit_code == 0
    assert "2 cases" in result.output
    assert "{'n': 11} → 'big'" in result.output


def test_scan_json_output(tmp_path):
    src = tmp_path / "mod.py"
    src.write_text(SOURCE)
    result = runner.invoke(app, ["scan", str(src), "--json"])
    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data[0]["function"] == "size"
    assert [c["args"] for c in data[0]["cases"]] == [{"n": 11}, {"n": 10}]
    assert data[0]["cases"][1]["expected"] == "small"


def test_scan_missing_path(tmp_path):
    result = runner.invoke(app, ["scan", str(tmp_path / "nope.py")])
    assert result.exit_code == 1
    assert "not found" in result.output


def test_scan_rejects_non_python_file(tmp_path):
    src = tmp_path / "notes.txt"
    src.write_text("hello")
    result = runner.invoke(app, ["scan", str(src)])
    assert result.exit_code == 1
    assert "not a Python file" in result.output


def test_scan_reports_syntax_error(tmp_path):
    src = tmp_path / "broken.py"
    src.write_text("def broken(:\n")
    result = runner.invoke(app, ["scan", str(src)])
    assert result.exit_code == 1
    assert "cannot parse" in result.output


def test_generate_writes_beside_source(tmp_path):
    src = tmp_path / "mod.py"
    src.write_text(SOURCE)
    result = runner.invoke(app, ["generate", str(src)])
    assert result.exit_code == 0
    target = tmp_path / "test_mod.py"
    text = target.read_text()
    ast.parse(text)
    assert "from mod import size" in text


def test_generate_output_option(tmp_path):
    src = tmp_path / "mod.py"
    src.write_text(SOURCE)
    out = tmp_path / "custom_test.py"
    result = runner.invoke(app, ["generate", str(src), "-o", str(out)])
    assert result.exit_code == 0
    assert out.exists()
    assert "Generated 2 cases" in result.output


def test_generate_directory(tmp_path):
    (tmp_path / "a.py").write_text(SOURCE)
    (tmp_path / "b.py").write_text("def g(x):\n    return x\n")
    result = runner.invoke(app, ["generate", str(tmp_path)])
    assert result.exit_code == 0
    assert (tmp_path / "test_a.py").exists()
    assert "def test_g():" in (tmp_path / "test_b.py").read_text()


def test_generate_output_requires_single_file(tmp_path):
    result = runner.invoke(app, ["generate", str(tmp_path), "-o", str(tmp_path / "x.py")])
    assert result.exit_code == 1


def test_generate_missing_file_with_output(tmp_path):
    result = runner.invoke(app, ["generate", str(tmp_path / "missing.py"),
                                 "-o", str(tmp_path / "out.py")])
    assert result.exit_code == 1
    assert "not found" in result.output


def test_generate_warns_before_overwriting(tmp_path, caplog):
    src = tmp_path / "mod.py"
    src.write_text(SOURCE)
    existing = tmp_path / "test_mod.py"
    existing.write_text("def test_by_hand():\n    pass\n")
    with caplog.at_level(logging.WARNING, logger="cli"):
        result = runner.invoke(app, ["generate", str(src)])
    assert result.exit_code == 0
    assert any("overwriting existing" in r.getMessage() for r in caplog.records)
