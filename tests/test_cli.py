"""CLI tests for binapi-generator.

Tests cover:
- Argument parsing
- Single file and directory inputs
- Error handling for invalid inputs
- Output package layout
- Formatting and validation tool fallbacks
"""

from __future__ import annotations

import subprocess

import pytest

from binapi_generator import run
from binapi_generator.cli import main, setup_parser

from conftest import INTERFACE_SCHEMA, VPE_SCHEMA


@pytest.fixture
def temp_output_dir(tmp_path):
    """Create a temporary output directory for tests."""
    output_dir = tmp_path / "output"
    output_dir.mkdir()
    return output_dir


@pytest.fixture
def temp_schema_dir(tmp_path):
    """Create a temporary directory with one valid and one broken module."""
    schema_dir = tmp_path / "schemas"
    schema_dir.mkdir()

    (schema_dir / "vpe.api.json").write_text(VPE_SCHEMA.read_text(encoding="utf8"), encoding="utf8")
    (schema_dir / "broken.api.json").write_text('{"messages": [', encoding="utf8")
    (schema_dir / "notes.txt").write_text("not a module", encoding="utf8")

    return schema_dir


def test_parser_defaults():
    args = setup_parser().parse_args([])

    assert args.input_file == ""
    assert args.input_dir == ""
    assert args.output_dir == "."
    assert not args.include_apiver
    assert not args.include_services
    assert not args.continue_onerror
    assert not args.skip_format
    assert not args.skip_pyright
    assert not args.recursive


def test_parser_flags():
    args = setup_parser().parse_args(["--include-apiver", "--no-format", "--no-pyright", "-r"])

    assert args.include_apiver
    assert args.skip_format
    assert args.skip_pyright
    assert args.recursive


def test_single_file(temp_output_dir):
    code = main(["--input-file", str(VPE_SCHEMA), "-o", str(temp_output_dir), "--no-format", "--no-pyright"])

    assert code == 0
    package_dir = temp_output_dir / "vpe"
    assert (package_dir / "vpe_binapi.py").exists()
    assert (package_dir / "__init__.py").read_text(encoding="utf8") == '"""Bindings for VPP binary API module \'vpe\'."""\n'
    assert (package_dir / "py.typed").exists()


def test_existing_init_is_kept(temp_output_dir):
    package_dir = temp_output_dir / "vpe"
    package_dir.mkdir()
    (package_dir / "__init__.py").write_text("from .vpe_binapi import *\n", encoding="utf8")

    code = main(["--input-file", str(VPE_SCHEMA), "-o", str(temp_output_dir), "--no-format", "--no-pyright"])

    assert code == 0
    assert (package_dir / "__init__.py").read_text(encoding="utf8") == "from .vpe_binapi import *\n"


def test_invalid_extension(tmp_path, temp_output_dir):
    schema = tmp_path / "vpe.json"
    schema.write_text(VPE_SCHEMA.read_text(encoding="utf8"), encoding="utf8")

    assert main(["--input-file", str(schema), "-o", str(temp_output_dir), "--no-pyright"]) == 1


def test_missing_input():
    assert main(["--no-pyright"]) == 1


def test_both_inputs(temp_schema_dir):
    args = ["--input-file", str(INTERFACE_SCHEMA), "--input-dir", str(temp_schema_dir), "--no-pyright"]
    assert main(args) == 1


def test_missing_input_file(tmp_path, temp_output_dir):
    missing = tmp_path / "missing.api.json"
    assert main(["--input-file", str(missing), "-o", str(temp_output_dir), "--no-pyright"]) == 1


def test_directory_stops_on_error(temp_schema_dir, temp_output_dir):
    args = ["--input-dir", str(temp_schema_dir), "-o", str(temp_output_dir), "--no-format", "--no-pyright"]
    assert main(args) == 1


def test_directory_continue_on_error(temp_schema_dir, temp_output_dir, caplog):
    args = [
        "--input-dir",
        str(temp_schema_dir),
        "-o",
        str(temp_output_dir),
        "--continue-onerror",
        "--no-format",
        "--no-pyright",
    ]

    assert main(args) == 0
    assert (temp_output_dir / "vpe" / "vpe_binapi.py").exists()
    assert not (temp_output_dir / "broken").exists()
    assert "broken.api.json" in caplog.text


def test_find_input_files(temp_schema_dir):
    nested = temp_schema_dir / "plugins"
    nested.mkdir()
    (nested / "acl.api.json").write_text("{}", encoding="utf8")

    flat = run.find_input_files(str(temp_schema_dir))
    assert [p.rsplit("/", 1)[-1] for p in flat] == ["broken.api.json", "vpe.api.json"]

    deep = run.find_input_files(str(temp_schema_dir), recursive=True)
    assert len(deep) == 3
    assert deep == sorted(deep)


def test_context_of_keyword_module():
    ctx = run.get_context("/in/class.api.json", "/out")

    assert ctx.module_name == "class"
    assert ctx.package_name == "classes"
    assert ctx.output_file == "/out/classes/classes_binapi.py"
    assert ctx.package_dir == "/out/classes"


def test_context_rejects_other_files():
    with pytest.raises(run.InvalidInputFileError):
        run.get_context("/in/vpe.api", "/out")


def test_format_without_ruff(monkeypatch):
    def missing(*args, **kwargs):
        raise FileNotFoundError("ruff")

    monkeypatch.setattr(subprocess, "run", missing)

    assert run.format_outputs("x=1\n") == "x=1\n"


def test_pyright_without_files(caplog):
    run.validate_with_pyright([])
    assert "No bindings to validate" in caplog.text


def test_pyright_missing(monkeypatch):
    def missing(*args, **kwargs):
        raise FileNotFoundError("pyright")

    monkeypatch.setattr(subprocess, "run", missing)

    with pytest.raises(run.PyrightValidationError, match="not installed"):
        run.validate_with_pyright(["bindings.py"])


def test_pyright_errors(monkeypatch):
    def failing(*args, **kwargs):
        return subprocess.CompletedProcess(args, 1, stdout="bindings.py:1:1 - error: broken\n", stderr="")

    monkeypatch.setattr(subprocess, "run", failing)

    with pytest.raises(run.PyrightValidationError, match="1 error"):
        run.validate_with_pyright(["bindings.py"])


def test_format_pipes_through_ruff(monkeypatch):
    calls = []

    def fake_ruff(command, input, **kwargs):
        calls.append(command[1])
        return subprocess.CompletedProcess(command, 0, stdout=f"{input}# {command[1]}\n", stderr="")

    monkeypatch.setattr(subprocess, "run", fake_ruff)

    assert run.format_outputs("x = 1\n") == "x = 1\n# check\n# format\n"
    assert calls == ["check", "format"]


def test_format_rejected_by_ruff(monkeypatch, caplog):
    def failing(command, **kwargs):
        raise subprocess.CalledProcessError(2, command, output="", stderr="error: invalid syntax\n")

    monkeypatch.setattr(subprocess, "run", failing)

    assert run.format_outputs("x = (\n") == "x = (\n"
    assert "invalid syntax" in caplog.text
