import pytest

from stterm.cli import VERSION, main


def test_version(capsys):
    assert main(["-v"]) == 0
    assert capsys.readouterr().out.strip() == f"stterm {VERSION}"


def test_runs_command_and_prints_screen(capsys):
    assert main(["-g", "20x5", "-e", "/bin/sh", "-c", "printf hello"]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert len(lines) == 5
    assert lines[0] == "hello"


def test_positional_command(capsys):
    assert main(["-g", "30x3", "/bin/sh", "-c", "printf 'a\\nb'"]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines[:2] == ["a", "b"]


def test_escape_sequences_are_applied(capsys):
    assert main(["-g", "20x4", "-e", "/bin/sh", "-c", "printf 'abc\\033[2J\\033[3;1Hxy'"]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines[0] == ""
    assert lines[2] == "xy"


def test_failing_command_reports(capsys):
    assert main(["-g", "10x2", "-e", "/bin/sh", "-c", "exit 3"]) == 1
    assert "child exited with status 3" in capsys.readouterr().err


def test_bad_geometry():
    with pytest.raises(SystemExit) as info:
        main(["-g", "wide", "-e", "true"])
    assert info.value.code == 2


def test_missing_program(capsys):
    assert main(["-g", "10x2", "-e", "/nonexistent/program"]) == 1
    assert capsys.readouterr().err != ""