"""
Tests for term translation to Isabelle inner syntax.
"""
import pytest

from smtmv.errors import UnsupportedConstructError
from smtmv.translator import TermTranslator, conjunction

DECLS = """
(declare-const x Int)
(declare-const y Int)
(declare-const r Real)
(declare-const p Bool)
(declare-const q Bool)
(declare-const s Bool)
(declare-const b (_ BitVec 8))
(declare-const a (Array Int Bool))
(declare-const str String)
(declare-fun f (Int Int) Int)
"""


@pytest.fixture
def translate(parse):
    """Translate the single assertion of DECLS plus ``assertion``."""
    def _translate(assertion):
        formula, _, symbols = parse(DECLS + assertion)
        return TermTranslator(symbols).translate(formula.assertions[-1])
    return _translate


@pytest.mark.parametrize("assertion,expected", [
    ("(assert (= (+ x 1) y))", "((x + (1::int)) = y)"),
    ("(assert (> (- x y 2) 0))", "(((x - y) - (2::int)) > (0::int))"),
    ("(assert (= (- x) (- 5)))", "((- x) = (- (5::int)))"),
    ("(assert (= (* x y) (f x 1)))", "((x * y) = (f x (1::int)))"),
    ("(assert (< r 1.5))", "(r < (1.5::real))"),
    ("(assert (<= (to_real x) r))", r"((real_of_int x) \<le> r)"),
    ("(assert (not p))", r"(\<not> p)"),
    ("(assert (xor p q))", r"(p \<noteq> q)"),
    ("(assert (= x (ite p 1 y)))", "(x = (if p then (1::int) else y))"),
])
def test_core_and_arithmetic(translate, assertion, expected):
    """Test operators of the Core and Ints/Reals theories."""
    assert translate(assertion) == expected


def test_right_associative_and(translate):
    assert translate("(assert (and p q s))") == r"(p \<and> (q \<and> s))"
    assert translate("(assert (=> p q s))") == r"(p \<longrightarrow> (q \<longrightarrow> s))"


def test_single_argument_and(translate):
    """Test that a one-argument infix application is its argument."""
    assert translate("(assert (and p))") == "p"


def test_chainable_comparison(translate):
    """Test that (< a b c) is (a < b) and (b < c)."""
    assert translate("(assert (< x y 3))") == r"((x < y) \<and> (y < (3::int)))"


def test_pairwise_distinct(translate):
    """Test that distinct compares every pair."""
    assert translate("(assert (distinct x y 3))") == (
        r"((x \<noteq> y) \<and> (x \<noteq> (3::int)) \<and> (y \<noteq> (3::int)))"
    )


def test_integer_division_helpers(parse):
    """Test div and mod use the SMT-LIB helper definitions."""
    formula, _, symbols = parse(DECLS + "(assert (= (div x 2) (mod y 3)))")
    tt = TermTranslator(symbols)
    (term,) = formula.assertions
    assert tt.translate(term) == "((smt_div x (2::int)) = (smt_mod y (3::int)))"
    assert tt.required_helpers(term) == ("smt_div", "smt_mod")


def test_no_helpers(parse):
    formula, _, symbols = parse(DECLS + "(assert (> x 0))")
    assert TermTranslator(symbols).required_helpers(formula.assertions[0]) == ()


@pytest.mark.parametrize("assertion,expected", [
    ("(assert (= (bvadd b #x01) b))", "((b + (1::8 word)) = b)"),
    ("(assert (bvult b #b00000011))", "(b < (3::8 word))"),
    ("(assert (bvslt b #x00))", "(word_sless b (0::8 word))"),
    ("(assert (= ((_ extract 3 0) b) #x1))", "((ucast (drop_bit 0 b) :: 4 word) = (1::4 word))"),
    ("(assert (= ((_ zero_extend 8) b) #x0001))", "((ucast b :: 16 word) = (1::16 word))"),
    ("(assert (= (concat b b) #x0101))", "((word_cat b b :: 16 word) = (257::16 word))"),
    ("(assert (= (bvudiv b #x02) b))", "((smt_bvudiv b (2::8 word)) = b)"),
])
def test_bitvectors(translate, assertion, expected):
    """Test FixedSizeBitVectors operators."""
    assert translate(assertion) == expected


@pytest.mark.parametrize("op", ["bvsdiv", "bvsrem", "bvsmod"])
def test_signed_division_unsupported(translate, op):
    """Test that signed bit-vector division has no translation."""
    with pytest.raises(UnsupportedConstructError):
        translate(f"(assert (= ({op} b #x02) b))")


def test_arrays(translate):
    """Test select, store and constant arrays."""
    assert translate("(assert (select (store a 1 true) 1))") == "((a((1::int) := True)) (1::int))"
    assert translate("(assert (= a ((as const (Array Int Bool)) false)))") == (
        r"(a = (\<lambda>_::int. False))"
    )


def test_string_literal(translate):
    """Test strings as lists of byte characters."""
    assert translate('(assert (= str "ab"))') == "(str = ([CHR 0x61, CHR 0x62]::string))"
    assert translate('(assert (= str ""))') == "(str = ([]::string))"
    assert translate('(assert (= (str.len str) 2))') == "((int (length str)) = (2::int))"


@pytest.mark.parametrize("assertion,expected", [
    ('(assert (= (str.at str 1) "b"))', "((smt_str_at str (1::int)) = ([CHR 0x62]::string))"),
    ("(assert (= (str.substr str 0 x) str))", "((smt_str_substr str (0::int) x) = str)"),
    ("(assert (str.prefixof str str))", "(smt_str_prefixof str str)"),
    ("(assert (str.suffixof str str))", "(smt_str_suffixof str str)"),
    ('(assert (str.contains str "a"))', "(smt_str_contains str ([CHR 0x61]::string))"),
    ("(assert (= (str.indexof str str x) 0))", "((smt_str_indexof str str x) = (0::int))"),
    ('(assert (= (str.replace str "a" "") str))',
     "((smt_str_replace str ([CHR 0x61]::string) ([]::string)) = str)"),
    ("(assert (str.< str str str))", r"((smt_str_lt str str) \<and> (smt_str_lt str str))"),
    ("(assert (str.<= str str))", "(smt_str_le str str)"),
    ("(assert (= (str.to_int str) x))", "((smt_str_to_int str) = x)"),
    ("(assert (= (str.from_int x) str))", "((smt_str_from_int x) = str)"),
])
def test_string_operators(translate, assertion, expected):
    """Test the Strings operators beyond concatenation and length."""
    assert translate(assertion) == expected


def test_string_helpers(parse):
    formula, _, symbols = parse(DECLS + '(assert (= (str.indexof (str.at str 0) "a" 0) 0))')
    (term,) = formula.assertions
    assert TermTranslator(symbols).required_helpers(term) == (
        "smt_str_substr", "smt_str_at", "smt_str_prefixof", "smt_str_find", "smt_str_indexof",
    )


def test_string_literal_above_latin1(translate):
    """Test that characters outside one byte are rejected."""
    with pytest.raises(UnsupportedConstructError):
        translate('(assert (= str "\\u{263a}"))')


def test_quantifier(translate):
    assert translate("(assert (forall ((k Int) (j Int)) (> k j)))") == (
        r"(\<forall>(k::int) (j::int). (k > j))"
    )
    assert translate("(assert (exists ((k Int)) (> k 0)))") == r"(\<exists>(k::int). (k > (0::int)))"


def test_quantifier_renames_shadowing_binder(translate):
    """Test that a binder never reuses the Isabelle name of a global."""
    assert translate("(assert (forall ((x Int)) (> x y)))") == r"(\<forall>(x'1::int). (x'1 > y))"


def test_let_translation(translate):
    assert translate("(assert (let ((k (+ x 1))) (> k y)))") == (
        "(let k = (x + (1::int)) in (k > y))"
    )


def test_let_swap_keeps_parallel_meaning(translate):
    """Test that renaming keeps Isabelle's sequential let from capturing."""
    assert translate("(assert (let ((x y) (y x)) (> x y)))") == (
        "(let x'1 = y; y'1 = x in (x'1 > y'1))"
    )


def test_annotation_is_transparent(translate):
    assert translate("(assert (! (> x 0) :named pos))") == "(x > (0::int))"


def test_escaped_symbol_names(parse):
    """Test that symbols Isabelle cannot take verbatim are escaped."""
    formula, _, symbols = parse("(declare-const x!0 Int) (declare-const |in| Int) (assert (> x!0 in))")
    assert TermTranslator(symbols).translate(formula.assertions[0]) == "(v_x_00210 > v_in)"


def test_translate_definition(parse):
    """Test definitions as lambda equations."""
    formula, model, symbols = parse(
        "(define-fun double ((n Int)) Int (* 2 n)) (declare-const x Int) (assert (= (double x) 4))",
        "((define-fun x () Int 2))",
    )
    tt = TermTranslator(symbols)
    assert tt.translate_definition(formula.definitions[0]) == (
        r"double = (\<lambda>(n::int). ((2::int) * n))"
    )
    assert tt.translate_definition(model.definitions[0]) == "x = (2::int)"


def test_conjunction():
    assert conjunction([]) == "True"
    assert conjunction(["p"]) == "p"
    assert conjunction(["p", "q"]) == r"(p \<and> q)"
