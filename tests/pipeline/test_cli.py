import io
import json
import sys

import pytest

from pseudoc.cli import main

LOOP_SOURCE = "for (i = 0; i < 5; i++) { print(i); }\n"
LOOP_PSEUDOCODE = "FOR i ← 0 TO 4\n   OUTPUT i\nNEXT i\n"


def run_cli(monkeypatch, *args, stdin=None):
    monkeypatch.setattr(sys, "argv", ["pseudoc", *args])
    if stdin is not None:
        monkeypatch.setattr(sys, "stdin", io.StringIO(stdin))
    main()


def write_source(tmp_path, name, content):
    path = tmp_path / name
    path.write_text(content, encoding="utf-8")
    return str(path)


def test_converts_file_to_stdout(monkeypatch, tmp_path, capsys):
    run_cli(monkeypatch, write_source(tmp_path, "Loop.java", LOOP_SOURCE))
    captured = capsys.readouterr()
    assert captured.out == LOOP_PSEUDOCODE
    assert "Conversion Successful" in captured.err


def test_language_is_inferred_from_extension(monkeypatch, tmp_path, capsys):
    run_cli(monkeypatch, write_source(tmp_path, "loop.ts", "let n: number = 3;\n"), "--no-comments")
    assert capsys.readouterr().out == "DECLARE n : INTEGER\nn ← 3\n"


def test_reads_stdin_with_explicit_language(monkeypatch, capsys):
    run_cli(monkeypatch, "-l", "js", stdin=LOOP_SOURCE)
    assert capsys.readouterr().out == LOOP_PSEUDOCODE


def test_writes_output_file_with_custom_indent(monkeypatch, tmp_path):
    output = tmp_path / "out" / "loop.txt"
    run_cli(monkeypatch, write_source(tmp_path, "Loop.java", LOOP_SOURCE), "-o", str(output), "--indent", "2")
    assert output.read_text(encoding="utf-8") == "FOR i ← 0 TO 4\n  OUTPUT i\nNEXT i\n"


def test_strict_mode_reports_warnings_with_diagnostics_flag(monkeypatch, tmp_path, capsys):
    run_cli(monkeypatch, write_source(tmp_path, "Main.java", "total = missing + 1;\n"), "--strict", "--diagnostics")
    assert "UNDECLARED_IDENTIFIER" in capsys.readouterr().err


def test_stop_after_stage_dumps_artifact(monkeypatch, tmp_path, capsys):
    source_path = write_source(tmp_path, "Loop.java", LOOP_SOURCE)
    run_cli(monkeypatch, source_path, "-c", "ir")
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "stage 'ir'" in captured.err

    artifact = json.loads((tmp_path / "Loop.ir.json").read_text(encoding="utf-8"))
    assert artifact["ir"]["kind"] == "program"
    assert artifact["ir"]["children"][0]["kind"] == "for_loop"


def test_missing_file_exits_with_status_1(monkeypatch, tmp_path, capsys):
    with pytest.raises(SystemExit) as excinfo:
        run_cli(monkeypatch, str(tmp_path / "Nope.java"))
    assert excinfo.value.code == 1
    assert "not found" in capsys.readouterr().err


def test_structural_errors_exit_with_status_1(monkeypatch, tmp_path, capsys):
    with pytest.raises(SystemExit) as excinfo:
        run_cli(monkeypatch, write_source(tmp_path, "Broken.java", "int a = (1;\n"))
    assert excinfo.value.code == 1
    captured = capsys.readouterr()
    assert captured.out.startswith("// ERROR[UNCLOSED_BRACKET]")
    assert "UNCLOSED_BRACKET" in captured.err


def test_validation_errors_exit_with_status_1(monkeypatch, tmp_path, capsys):
    with pytest.raises(SystemExit) as excinfo:
        run_cli(monkeypatch, write_source(tmp_path, "Bin.java", "\x00\x01\x02"))
    assert excinfo.value.code == 1
    assert "CONVERSION ERROR" in capsys.readouterr().err


def test_unknown_extension_requires_language(monkeypatch, tmp_path):
    with pytest.raises(SystemExit) as excinfo:
        run_cli(monkeypatch, write_source(tmp_path, "notes.txt", "x = 1;\n"))
    assert excinfo.value.code == 2
