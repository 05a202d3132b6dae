"""
Tests for running Isabelle as a subprocess, with shell scripts standing in
for the isabelle executable.
"""
import os
import stat
from pathlib import Path

import pytest

from smtmv.config import ValidatorConfig
from smtmv.errors import ProverEnvironmentError
from smtmv.verification.prover_runner import IsabelleProcess, RunStatus, is_isabelle_available

pytestmark = pytest.mark.skipif(os.name != "posix", reason="needs /bin/sh")


def test_command_line(theory_root):
    """Test the isabelle process argument vector."""
    config = ValidatorConfig(isabelle="/opt/isabelle/bin/isabelle", logic="HOL", options=("a=1", "b"))
    argv = IsabelleProcess(config).command(theory_root)
    assert argv == [
        "/opt/isabelle/bin/isabelle", "process",
        "-d", str(theory_root),
        "-l", "HOL",
        "-o", "a=1", "-o", "b",
        "-T", "Validation",
    ]


def test_run_writes_theory_and_captures_output(fake_isabelle, theory_root, tmp_path):
    """Test that the theory file sits in the working directory of the run."""
    args_file = tmp_path / "args.txt"
    exe = fake_isabelle(f"""\
        echo "$@" > {args_file}
        cat Validation.thy
        echo "to stderr" >&2
        exit 0
    """)
    result = IsabelleProcess(ValidatorConfig(isabelle=exe)).run("theory Validation", theory_root)

    assert result.status is RunStatus.FINISHED
    assert result.returncode == 0
    assert "theory Validation" in result.stdout
    assert "to stderr" in result.stderr
    assert result.time_ms >= 0
    args = args_file.read_text().split()
    assert args[:3] == ["process", "-d", str(theory_root.resolve())]
    assert args[-2:] == ["-T", "Validation"]


def test_run_nonzero_exit(fake_isabelle, theory_root):
    exe = fake_isabelle("echo 'Bad theory'\nexit 1\n")
    result = IsabelleProcess(ValidatorConfig(isabelle=exe)).run("theory Validation", theory_root)
    assert result.status is RunStatus.FINISHED
    assert result.returncode == 1
    assert "Bad theory" in result.stdout


def test_run_timeout(fake_isabelle, theory_root):
    """Test that a run over the time limit is killed."""
    exe = fake_isabelle("sleep 10\n")
    result = IsabelleProcess(ValidatorConfig(isabelle=exe)).run("theory Validation", theory_root, timeout_s=0.5)
    assert result.status is RunStatus.TIMED_OUT
    assert result.returncode is None
    assert result.stdout == ""
    assert result.time_ms < 10000


def test_missing_executable(theory_root, tmp_path):
    """Test that a missing isabelle binary is an environment error."""
    config = ValidatorConfig(isabelle=str(tmp_path / "no-such-isabelle"))
    with pytest.raises(ProverEnvironmentError):
        IsabelleProcess(config).run("theory Validation", theory_root)


def test_unexecutable_format(theory_root, tmp_path):
    """Test that a file the OS cannot execute is an environment error."""
    exe = tmp_path / "isabelle"
    exe.write_text("not a program\n")
    exe.chmod(exe.stat().st_mode | stat.S_IXUSR)
    with pytest.raises(ProverEnvironmentError):
        IsabelleProcess(ValidatorConfig(isabelle=str(exe))).run("theory Validation", theory_root)


@pytest.mark.parametrize("body,status", [
    ("exit 0\n", RunStatus.FINISHED),
    ("kill -SEGV $$\n", RunStatus.FINISHED),
    ("exit 3\n", RunStatus.FINISHED),
    ("sleep 10\n", RunStatus.TIMED_OUT),
])
def test_scratch_directory_removed(fake_isabelle, theory_root, tmp_path, body, status):
    """Test that the working directory and theory file are gone after every run."""
    record = tmp_path / "cwd.txt"
    exe = fake_isabelle(f"pwd > {record}\n" + body)
    result = IsabelleProcess(ValidatorConfig(isabelle=exe)).run("theory Validation", theory_root, timeout_s=2)
    assert result.status is status
    scratch = Path(record.read_text().strip())
    assert scratch.name.startswith("smtmv-")
    assert not (scratch / "Validation.thy").exists()
    assert not scratch.exists()


def test_missing_theory_root(fake_isabelle, tmp_path):
    """Test that the theory root must be an existing directory."""
    exe = fake_isabelle("exit 0\n")
    with pytest.raises(ProverEnvironmentError):
        IsabelleProcess(ValidatorConfig(isabelle=exe)).run("theory Validation", tmp_path / "missing")


def test_is_isabelle_available(fake_isabelle, tmp_path):
    assert is_isabelle_available(fake_isabelle("exit 0\n"))
    assert not is_isabelle_available(str(tmp_path / "nothing"))
    assert not is_isabelle_available("smtmv-no-such-executable")
