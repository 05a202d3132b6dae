"""
Tests for operator spellings and spec.json overrides.
"""
import json

import pytest

from smtmv.errors import ProverEnvironmentError, UnsupportedConstructError
from smtmv.translator import OperatorTable, TermTranslator
from smtmv.translator.operators import HELPERS, SECTION, helper_closure, helper_definition, helper_fact


def test_lookup_default():
    table = OperatorTable()
    spec = table.lookup("+")
    assert spec.mapsto == "+"
    assert spec.assoc == "left"
    assert "+" in table


def test_lookup_unknown_operator():
    with pytest.raises(UnsupportedConstructError):
        OperatorTable().lookup("fp.add")


def test_apply_overrides_section_form():
    """Test that overridden operators render as ((op) a b)."""
    table = OperatorTable()
    table.apply_overrides({"specs": {"Ints": {"+": {"mapsto": "plus", "assoc": "left"}}}})
    spec = table.lookup("+")
    assert spec.fixity == SECTION
    assert spec.mapsto == "plus"


def test_override_changes_translation(parse):
    formula, _, symbols = parse("(declare-const x Int) (assert (> (+ x x 1) 0))")
    table = OperatorTable()
    table.apply_overrides({"specs": {"Ints": {"+": {"mapsto": "plus", "assoc": "left"}}}})
    assert TermTranslator(symbols, table).translate(formula.assertions[0]) == (
        "(((plus) ((plus) x x) (1::int)) > (0::int))"
    )


def test_override_null_disables_operator():
    """Test that a null mapping removes the operator."""
    table = OperatorTable()
    table.apply_overrides({"specs": {"Ints": {"*": {"mapsto": None}}}})
    with pytest.raises(UnsupportedConstructError):
        table.lookup("*")


def test_override_unknown_operator_ignored():
    table = OperatorTable()
    table.apply_overrides({"specs": {"FloatingPoint": {"fp.add": {"mapsto": "fadd"}}}})
    assert "fp.add" not in table


def test_for_theory_root_reads_spec_json(theory_root):
    """Test loading spec.json from the theory root."""
    (theory_root / "spec.json").write_text(json.dumps(
        {"specs": {"Core": {"and": {"mapsto": "conj", "assoc": "right"}}}}
    ))
    table = OperatorTable.for_theory_root(theory_root)
    assert table.lookup("and").mapsto == "conj"


def test_for_theory_root_without_spec_json(theory_root):
    assert OperatorTable.for_theory_root(theory_root).lookup("and").mapsto == r"\<and>"
    assert OperatorTable.for_theory_root(None).lookup("and").mapsto == r"\<and>"


def test_invalid_spec_json(theory_root):
    """Test that an unreadable overrides file is an environment error."""
    (theory_root / "spec.json").write_text("{not json")
    with pytest.raises(ProverEnvironmentError):
        OperatorTable.for_theory_root(theory_root)


def test_helper_closure_adds_dependencies():
    """Test that helpers come with their dependencies, in prelude order."""
    assert helper_closure(["smt_mod"]) == ("smt_div", "smt_mod")
    assert helper_closure(["smt_bvashr", "smt_bvudiv"]) == ("smt_bvudiv", "smt_bvashr")
    assert helper_closure([]) == ()


def test_helper_definitions():
    for name in HELPERS:
        text = helper_definition(name)
        assert text.split(" ", 2)[:2] in (["definition", name], ["fun", name], ["function", name])
    assert "if 0 \\<le> b" in helper_definition("smt_div")
    assert "- 1" in helper_definition("smt_bvudiv")


def test_string_helper_closure():
    assert helper_closure(["smt_str_indexof"]) == ("smt_str_prefixof", "smt_str_find", "smt_str_indexof")
    assert helper_closure(["smt_str_at"]) == ("smt_str_substr", "smt_str_at")
    assert helper_closure(["smt_str_from_int"]) == ("smt_digits", "smt_str_from_int")


def test_helper_facts():
    """Test that recursive helpers unfold through their simp rules."""
    assert helper_fact("smt_div") == "smt_div_def"
    assert helper_fact("smt_str_prefixof") == "smt_str_prefixof_def"
    assert helper_fact("smt_str_contains") == "smt_str_contains.simps"
    assert helper_fact("smt_digits") == "smt_digits.simps"


@pytest.mark.parametrize("op,assertion,expected", [
    ("str.contains", '(assert (str.contains s "b"))', "((my_op) s ([CHR 0x62]::string))"),
    ("str.prefixof", '(assert (str.prefixof "a" s))', "((my_op) ([CHR 0x61]::string) s)"),
    ("str.indexof", "(assert (= (str.indexof s s 0) 1))", "(((my_op) s s (0::int)) = (1::int))"),
    ("str.<", "(assert (str.< s s s))", r"(((my_op) s s) \<and> ((my_op) s s))"),
])
def test_string_operator_override(parse, op, assertion, expected):
    """Test that spec.json entries reach the string operators."""
    formula, _, symbols = parse("(declare-const s String)" + assertion)
    table = OperatorTable()
    table.apply_overrides({"specs": {"Strings": {op: {"mapsto": "my_op", "chainable": op == "str.<"}}}})
    assert TermTranslator(symbols, table).translate(formula.assertions[0]) == expected
