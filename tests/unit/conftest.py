"""
Pytest configuration and fixtures for smtmv tests.
"""
import stat
import sys
import textwrap
from pathlib import Path

import pytest

# Add src to path for imports
src_path = Path(__file__).parent.parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from smtmv.smtlib.parser import SmtLibParser  # noqa: E402


@pytest.fixture
def parse():
    """Parse a formula (and optionally a model) with one fresh parser.

    Returns (formula, model, symbols); model is None without model text.
    """
    def _parse(formula_text, model_text=None):
        parser = SmtLibParser()
        formula = parser.parse_formula(formula_text)
        model = parser.parse_model(model_text) if model_text is not None else None
        return formula, model, parser.symbols
    return _parse


@pytest.fixture
def theory_root(tmp_path):
    """An empty directory standing in for an Isabelle session directory."""
    root = tmp_path / "theories"
    root.mkdir()
    return root


@pytest.fixture
def fake_isabelle(tmp_path):
    """Write an executable shell script standing in for ``isabelle``.

    The script body receives the Isabelle arguments as ``$@`` and runs in the
    scratch directory holding the theory file.
    """
    def _make(body, name="isabelle"):
        path = tmp_path / name
        path.write_text("#!/bin/sh\n" + textwrap.dedent(body))
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return str(path)
    return _make

