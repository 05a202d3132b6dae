"""
Tests for the SMT-LIB parser.
"""
import pytest

from smtmv.errors import (
    ModelConflictError,
    NoModelError,
    SmtSyntaxError,
    SortMismatchError,
    UndeclaredSymbolError,
    UnsupportedConstructError,
)
from smtmv.smtlib import (
    BOOL,
    INT,
    REAL,
    STRING,
    Annotation,
    DeclarationKind,
    FunctionApplication,
    Let,
    Literal,
    Quantifier,
    QuantifierKind,
    SmtLibParser,
    Sort,
    Variable,
    array,
    bitvec,
    sanitize_model,
)


def test_declarations_and_assertion(parse):
    """Test parsing declarations into the Symbol Table."""
    formula, _, symbols = parse("""
        (set-logic QF_LIA)
        (declare-const x Int)
        (declare-fun f (Int Bool) Real)
        (assert (> x 0))
        (check-sat)
    """)
    assert len(formula.assertions) == 1
    x = symbols.lookup("x")
    assert x.arg_sorts == () and x.result == INT
    f = symbols.lookup("f")
    assert f.arg_sorts == (INT, BOOL) and f.result == REAL
    assert f.kind is DeclarationKind.DECLARED

    (a,) = formula.assertions
    assert isinstance(a, FunctionApplication)
    assert a.name == ">"
    assert a.sort == BOOL
    assert a.args == (Variable("x", INT), Literal(0, INT))


def test_literals(parse):
    """Test sorts of spec constants."""
    formula, _, _ = parse("""
        (declare-const r Real)
        (declare-const b (_ BitVec 8))
        (declare-const c (_ BitVec 4))
        (declare-const s String)
        (assert (= r 1.5))
        (assert (= b #x0a))
        (assert (= c #b0101))
        (assert (= b (_ bv300 8)))
        (assert (= s "a\\u{62}"))
    """)
    lits = [a.args[1] for a in formula.assertions]
    assert lits[0] == Literal("1.5", REAL)
    assert lits[1] == Literal(10, bitvec(8))
    assert lits[2] == Literal(5, bitvec(4))
    assert lits[3] == Literal(300 % 256, bitvec(8))
    assert lits[4] == Literal("ab", STRING)


def test_negative_numeral_stays_application(parse):
    """Test that (- 5) is the unary minus applied to 5."""
    formula, _, _ = parse("(declare-const x Int) (assert (= x (- 5)))")
    neg = formula.assertions[0].args[1]
    assert isinstance(neg, FunctionApplication)
    assert neg.name == "-"
    assert neg.args == (Literal(5, INT),)


def test_indexed_operators(parse):
    """Test (_ extract i j) and (_ zero_extend n)."""
    formula, _, _ = parse("""
        (declare-const b (_ BitVec 8))
        (assert (= ((_ extract 3 0) b) #x1))
        (assert (= ((_ zero_extend 8) b) #x0001))
    """)
    ext = formula.assertions[0].args[0]
    assert ext.name == "extract"
    assert ext.indices == (3, 0)
    assert ext.sort == bitvec(4)
    zext = formula.assertions[1].args[0]
    assert zext.sort == bitvec(16)


def test_arrays_and_const(parse):
    """Test select/store and constant arrays."""
    formula, _, _ = parse("""
        (declare-const a (Array Int Bool))
        (assert (select (store a 1 true) 1))
        (assert (= a ((as const (Array Int Bool)) false)))
    """)
    sel = formula.assertions[0]
    assert sel.name == "select"
    assert sel.args[0].sort == array(INT, BOOL)
    const = formula.assertions[1].args[1]
    assert const.name == "const"
    assert const.sort == array(INT, BOOL)


def test_define_sort_alias(parse):
    """Test that define-sort aliases are expanded."""
    _, _, symbols = parse("""
        (define-sort Word () (_ BitVec 32))
        (define-sort Mem (I) (Array I Word))
        (declare-const m (Mem Int))
    """)
    assert symbols.lookup("m").result == array(INT, bitvec(32))


def test_user_sort(parse):
    """Test declare-sort with arity 0."""
    _, _, symbols = parse("(declare-sort U 0) (declare-fun g (U) U)")
    assert symbols.lookup("g").result == Sort("U")
    assert symbols.user_sorts == ["U"]


def test_let_quantifier_annotation(parse):
    """Test binders and annotations."""
    formula, _, _ = parse("""
        (declare-fun p (Int) Bool)
        (assert (let ((y 1) (z 2)) (> z y)))
        (assert (forall ((k Int)) (=> (p k) (exists ((j Int)) (> j k)))))
        (assert (! (p 0) :named first))
    """)
    let, forall, named = formula.assertions
    assert isinstance(let, Let)
    assert [n for n, _ in let.bindings] == ["y", "z"]
    assert let.body.args == (Variable("z", INT), Variable("y", INT))
    assert isinstance(forall, Quantifier)
    assert forall.kind is QuantifierKind.FORALL
    assert forall.bindings == (("k", INT),)
    assert isinstance(named, Annotation)
    assert named.attributes == ((":named", "first"),)
    assert named.sort == BOOL


def test_let_is_parallel(parse):
    """Test that let-bound terms are sorted in the enclosing scope."""
    formula, _, _ = parse("""
        (declare-const x Bool)
        (assert (let ((x 1) (y x)) (and y (= x 1))))
    """)
    let = formula.assertions[0]
    assert let.bindings[1][1] == Variable("x", BOOL)


def test_bound_variable_shadows_global(parse):
    """Test that a binder hides a global of the same name."""
    formula, _, _ = parse("""
        (declare-const x Bool)
        (assert (forall ((x Int)) (> x 0)))
    """)
    body = formula.assertions[0].body
    assert body.args[0] == Variable("x", INT)


def test_formula_define_fun(parse):
    """Test define-fun in the formula file."""
    formula, _, symbols = parse("""
        (define-fun double ((n Int)) Int (* 2 n))
        (assert (= (double 2) 4))
    """)
    (d,) = formula.definitions
    assert d.name == "double"
    assert d.params == (("n", INT),)
    assert symbols.lookup("double").kind is DeclarationKind.DEFINED


def test_model_parsing(parse):
    """Test model definitions and universe declarations."""
    _, model, symbols = parse(
        "(declare-sort U 0) (declare-const u U) (declare-const x Int) (assert (> x 0))",
        """sat
(
  ;; universe for U:
  ;;   U!val!0
  (declare-fun U!val!0 () U)
  (define-fun u () U U!val!0)
  (define-fun x () Int 3)
)""",
    )
    assert [d.name for d in model.definitions] == ["u", "x"]
    assert [d.name for d in model.declarations] == ["U!val!0"]
    assert symbols.lookup("x").kind is DeclarationKind.DEFINED


def test_model_forward_reference(parse):
    """Test a model entry referring to a helper printed after it."""
    _, model, _ = parse(
        "(declare-const a (Array Int Int)) (assert (= (select a 1) 5))",
        """(
  (define-fun a () (Array Int Int) (_ as-array k!0))
  (define-fun k!0 ((x!0 Int)) Int (ite (= x!0 1) 5 0))
)""",
    )
    a = model.definitions[0]
    assert a.body.name == "as-array"
    assert a.body.args == (Variable("k!0", INT),)
    assert a.body.sort == array(INT, INT)


def test_legacy_model_wrapper(parse):
    """Test the (model ...) wrapper older z3 versions print."""
    _, model, _ = parse(
        "(declare-const x Int) (assert (= x 1))",
        "(model (define-fun x () Int 1))",
    )
    assert [d.name for d in model.definitions] == ["x"]


def test_model_must_follow_formula():
    """Test that the model needs the formula's declarations."""
    with pytest.raises(RuntimeError):
        SmtLibParser().parse_model("(define-fun x () Int 1)")


def test_model_signature_conflict(parse):
    """Test that a model cannot change a declared signature."""
    with pytest.raises(SortMismatchError):
        parse("(declare-const x Int) (assert (> x 0))", "(define-fun x () Bool true)")


@pytest.mark.parametrize("model_text", [
    "((define-fun c () Int 7))",
    "((define-fun c () Int (+ 6 1)))",
    "((declare-fun c () Int))",
])
def test_model_redefining_formula_definition(parse, model_text):
    """Test that a model cannot replace what the formula itself defines."""
    with pytest.raises(ModelConflictError) as exc:
        parse("(define-fun c () Int 1) (assert (= c 7))", model_text)
    assert "'c'" in str(exc.value)


def test_model_repeating_formula_definition(parse):
    """Test that an identical copy of a formula definition is accepted and dropped."""
    formula, model, _ = parse(
        "(define-fun c () Int 1) (declare-const x Int) (assert (= c x))",
        "((define-fun c () Int 1) (define-fun x () Int 1))",
    )
    assert [d.name for d in model.definitions] == ["x"]
    assert [d.name for d in formula.definitions] == ["c"]


def test_integer_division_arities(parse):
    """Test that div chains to the left while mod stays binary."""
    formula, _, _ = parse("(declare-const a Int) (assert (= (div a 2 3) (mod a 2)))")
    (a,) = formula.assertions
    assert len(a.args[0].args) == 3
    assert len(a.args[1].args) == 2


@pytest.mark.parametrize("term,sort", [
    ("(str.at s 0)", STRING),
    ("(str.substr s 0 2)", STRING),
    ("(str.replace s s s)", STRING),
    ("(str.from_int 3)", STRING),
    ("(str.contains s s)", BOOL),
    ("(str.<= s s s)", BOOL),
    ("(str.indexof s s 0)", INT),
    ("(str.to_int s)", INT),
    ("(str.to.int s)", INT),
])
def test_string_operator_sorts(parse, term, sort):
    formula, _, _ = parse(f"(declare-const s String) (assert (= {term} {term}))")
    assert formula.assertions[0].args[0].sort == sort


def test_undeclared_symbol(parse):
    """Test that unknown symbols are reported with their position."""
    with pytest.raises(UndeclaredSymbolError) as exc:
        parse("(declare-const x Int)\n(assert (> y x))")
    assert exc.value.symbol == "y"
    assert exc.value.line == 2
    assert exc.value.column == 12


def test_undeclared_sort(parse):
    with pytest.raises(UndeclaredSymbolError):
        parse("(declare-const x Foo)")


@pytest.mark.parametrize("formula", [
    "(declare-const x Int) (assert (and x true))",
    "(declare-const x Int) (assert (= x true))",
    "(declare-const x Int) (assert (ite x 1 2))",
    "(declare-const x Int) (assert x)",
    "(declare-const x Int) (declare-const r Real) (assert (< x r))",
    "(declare-fun f (Int) Int) (assert (= (f true) 1))",
    "(declare-fun f (Int) Int) (assert (= (f 1 2) 1))",
    "(declare-const b (_ BitVec 8)) (assert (= ((_ extract 8 0) b) b))",
    "(declare-const b (_ BitVec 8)) (declare-const c (_ BitVec 4)) (assert (bvult b c))",
    "(define-fun f () Int true)",
    "(assert (forall ((x Int)) x))",
    "(declare-const a Int) (assert (= (mod a 2 3) 0))",
    "(declare-const a Int) (assert (= (mod a) 0))",
    "(declare-const a Int) (assert (= (abs a a) 0))",
    "(declare-const s String) (assert (= (str.at s s) s))",
    "(declare-const s String) (assert (str.prefixof s s s))",
    "(declare-const s String) (assert (= (str.substr s 0) s))",
    "(declare-const s String) (assert (= (str.to_int 1) 0))",
])
def test_sort_mismatch(parse, formula):
    """Test that ill-sorted terms are rejected."""
    with pytest.raises(SortMismatchError):
        parse(formula)


@pytest.mark.parametrize("formula", [
    "(push 1)",
    "(declare-datatypes ((L 0)) (((nil))))",
    "(define-fun-rec f ((x Int)) Int x)",
    "(declare-sort L 1)",
])
def test_unsupported_commands(parse, formula):
    with pytest.raises(UnsupportedConstructError):
        parse(formula)


@pytest.mark.parametrize("formula", [
    "assert",
    "(assert)",
    "(declare-const x Int) (assert ())",
    "(declare-const x Int) (assert (let ((x 1) (x 2)) true))",
    "(declare-const true Int)",
])
def test_syntax_errors(parse, formula):
    with pytest.raises(SmtSyntaxError):
        parse(formula)


@pytest.mark.parametrize("raw,expected", [
    ("sat\n((define-fun x () Int 1))", "(define-fun x () Int 1)"),
    ("sat\n(model (define-fun x () Int 1))", "(define-fun x () Int 1)"),
    ("  (define-fun x () Int 1)  \n", "(define-fun x () Int 1)"),
    ("sat\n(define-fun x () Int 1)", "(define-fun x () Int 1)"),
])
def test_sanitize_model(raw, expected):
    """Test stripping solver output around the model."""
    assert sanitize_model(raw) == expected


@pytest.mark.parametrize("raw", ["unsat", "unknown\n", "sat"])
def test_sanitize_model_without_model(raw):
    """Test that solver output without a model is rejected."""
    with pytest.raises(NoModelError):
        sanitize_model(raw)


def test_sanitize_model_warns_on_two_models(caplog):
    """Test the warning for concatenated solver outputs."""
    with caplog.at_level("WARNING"):
        sanitize_model("sat\n((define-fun x () Int 1))\nsat\n((define-fun x () Int 2))")
    assert "Multiple 'sat'" in caplog.text
