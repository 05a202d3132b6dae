"""
Z3 reference backend.

Decides the same question as the Isabelle checker directly on the term
trees: model definitions are expanded as macros, every other symbol stays
uninterpreted, and the formula is checked for validity.
"""
from functools import reduce
import logging
import time
from typing import Any, Callable, Dict, List, Optional, Sequence

import z3

from ..errors import ExecutionError, UnsupportedConstructError
from ..smtlib import theories
from ..smtlib.model import Definition, Formula, Model
from ..smtlib.sorts import Sort
from ..smtlib.symbols import SymbolTable
from ..smtlib.terms import (
    Annotation,
    FunctionApplication,
    Let,
    Literal,
    Quantifier,
    QuantifierKind,
    Term,
    Variable,
)
from .result import Verdict, VerdictKind

logger = logging.getLogger(__name__)

Env = Dict[str, Any]


def _chain(pair: Callable[[Any, Any], Any]) -> Callable[[Sequence[Any]], Any]:
    def build(args):
        return z3.And(*[pair(a, b) for a, b in zip(args, args[1:])])
    return build


def _left(op: Callable[[Any, Any], Any]) -> Callable[[Sequence[Any]], Any]:
    return lambda args: reduce(op, args)


def _unary(op: Callable[[Any], Any]) -> Callable[[Sequence[Any]], Any]:
    return lambda args: op(args[0])


def _binary(op: Callable[[Any, Any], Any]) -> Callable[[Sequence[Any]], Any]:
    return lambda args: op(args[0], args[1])


def _minus(args):
    if len(args) == 1:
        return -args[0]
    return reduce(lambda a, b: a - b, args)


def _implies(args):
    out = args[-1]
    for a in reversed(args[:-1]):
        out = z3.Implies(a, out)
    return out


_OPERATORS: Dict[str, Callable[[Sequence[Any]], Any]] = {
    # Core
    "not": _unary(z3.Not),
    "and": lambda args: z3.And(*args),
    "or": lambda args: z3.Or(*args),
    "xor": _left(z3.Xor),
    "=>": _implies,
    "=": _chain(lambda a, b: a == b),
    "distinct": lambda args: z3.Distinct(*args),
    "ite": lambda args: z3.If(args[0], args[1], args[2]),
    # Ints / Reals
    "+": _left(lambda a, b: a + b),
    "-": _minus,
    "*": _left(lambda a, b: a * b),
    "/": _left(lambda a, b: a / b),
    "div": _left(lambda a, b: a / b),
    "mod": _binary(lambda a, b: a % b),
    "abs": _unary(z3.Abs),
    "<": _chain(lambda a, b: a < b),
    "<=": _chain(lambda a, b: a <= b),
    ">": _chain(lambda a, b: a > b),
    ">=": _chain(lambda a, b: a >= b),
    "to_real": _unary(z3.ToReal),
    "to_int": _unary(z3.ToInt),
    "is_int": _unary(z3.IsInt),
    # FixedSizeBitVectors
    "bvnot": _unary(lambda a: ~a),
    "bvneg": _unary(lambda a: -a),
    "bvand": _left(lambda a, b: a & b),
    "bvor": _left(lambda a, b: a | b),
    "bvxor": _left(lambda a, b: a ^ b),
    "bvadd": _left(lambda a, b: a + b),
    "bvsub": _left(lambda a, b: a - b),
    "bvmul": _left(lambda a, b: a * b),
    "bvudiv": _binary(z3.UDiv),
    "bvurem": _binary(z3.URem),
    "bvsdiv": _binary(lambda a, b: a / b),
    "bvsrem": _binary(z3.SRem),
    "bvsmod": _binary(lambda a, b: a % b),
    "bvshl": _binary(lambda a, b: a << b),
    "bvlshr": _binary(z3.LShR),
    "bvashr": _binary(lambda a, b: a >> b),
    "bvult": _binary(z3.ULT),
    "bvule": _binary(z3.ULE),
    "bvugt": _binary(z3.UGT),
    "bvuge": _binary(z3.UGE),
    "bvslt": _binary(lambda a, b: a < b),
    "bvsle": _binary(lambda a, b: a <= b),
    "bvsgt": _binary(lambda a, b: a > b),
    "bvsge": _binary(lambda a, b: a >= b),
    "concat": lambda args: z3.Concat(*args),
    # ArraysEx
    "select": _binary(z3.Select),
    "store": lambda args: z3.Store(args[0], args[1], args[2]),
    # Strings
    "str.++": lambda args: z3.Concat(*args),
    "str.len": _unary(z3.Length),
    "str.at": _binary(lambda s, i: z3.SubString(s, i, 1)),
    "str.substr": lambda args: z3.SubString(args[0], args[1], args[2]),
    "str.prefixof": _binary(z3.PrefixOf),
    "str.suffixof": _binary(z3.SuffixOf),
    "str.contains": _binary(z3.Contains),
    "str.indexof": lambda args: z3.IndexOf(args[0], args[1], args[2]),
    "str.replace": lambda args: z3.Replace(args[0], args[1], args[2]),
    "str.<": _chain(lambda a, b: a < b),
    "str.<=": _chain(lambda a, b: a <= b),
    "str.to_int": _unary(z3.StrToInt),
    "str.from_int": _unary(z3.IntToStr),
    "str.to.int": _unary(z3.StrToInt),
    "int.to.str": _unary(z3.IntToStr),
}


class _Z3Builder:
    """Builds z3 expressions from term trees, expanding definitions in place."""

    def __init__(self, symbols: SymbolTable, definitions: Sequence[Definition]):
        self.symbols = symbols
        self.definitions: Dict[str, Definition] = {d.name: d for d in definitions}
        self._sorts: Dict[Sort, Any] = {}
        self._functions: Dict[str, Any] = {}
        self._expanding: List[str] = []

    def sort(self, sort: Sort) -> Any:
        """Translate a sort to a z3 sort."""
        cached = self._sorts.get(sort)
        if cached is not None:
            return cached
        if sort.name == "Bool":
            out = z3.BoolSort()
        elif sort.name == "Int":
            out = z3.IntSort()
        elif sort.name == "Real":
            out = z3.RealSort()
        elif sort.name == "String":
            out = z3.StringSort()
        elif sort.is_bitvec:
            out = z3.BitVecSort(sort.width)
        elif sort.is_array:
            out = z3.ArraySort(self.sort(sort.params[0]), self.sort(sort.params[1]))
        elif not sort.params and not sort.indices:
            out = z3.DeclareSort(sort.name)
        else:
            raise UnsupportedConstructError(str(sort), "sort")
        self._sorts[sort] = out
        return out

    def function(self, name: str) -> Any:
        """Uninterpreted z3 constant or function for a declared symbol."""
        fn = self._functions.get(name)
        if fn is None:
            decl = self.symbols.lookup(name)
            if decl.is_constant:
                fn = z3.Const(name, self.sort(decl.result))
            else:
                sorts = [self.sort(s) for s in decl.arg_sorts] + [self.sort(decl.result)]
                fn = z3.Function(name, *sorts)
            self._functions[name] = fn
        return fn

    def apply_user(self, name: str, args: Sequence[Any]) -> Any:
        definition = self.definitions.get(name)
        if definition is None:
            fn = self.function(name)
            return fn(*args) if args else fn
        if name in self._expanding:
            raise UnsupportedConstructError("recursive definition", name)
        self._expanding.append(name)
        try:
            env = {p: a for (p, _), a in zip(definition.params, args)}
            return self.build(definition.body, env)
        finally:
            self._expanding.pop()

    def build(self, term: Term, env: Optional[Env] = None) -> Any:
        env = env or {}

        if isinstance(term, Literal):
            return self._literal(term)
        if isinstance(term, Variable):
            if term.name in env:
                return env[term.name]
            return self.apply_user(term.name, ())
        if isinstance(term, FunctionApplication):
            return self._application(term, env)
        if isinstance(term, Let):
            inner = dict(env)
            for name, bound in term.bindings:
                inner[name] = self.build(bound, env)
            return self.build(term.body, inner)
        if isinstance(term, Quantifier):
            inner = dict(env)
            bound = []
            for name, sort in term.bindings:
                var = z3.FreshConst(self.sort(sort), prefix=name)
                inner[name] = var
                bound.append(var)
            body = self.build(term.body, inner)
            if term.kind is QuantifierKind.FORALL:
                return z3.ForAll(bound, body)
            return z3.Exists(bound, body)
        if isinstance(term, Annotation):
            return self.build(term.term, env)
        raise TypeError(f"Not a term: {term!r}")

    def _literal(self, lit: Literal) -> Any:
        if lit.sort.name == "Bool":
            return z3.BoolVal(lit.value)
        if lit.sort.name == "Int":
            return z3.IntVal(lit.value)
        if lit.sort.name == "Real":
            return z3.RealVal(lit.value)
        if lit.sort.name == "String":
            return z3.StringVal(lit.value)
        if lit.sort.is_bitvec:
            return z3.BitVecVal(lit.value, lit.sort.width)
        raise UnsupportedConstructError(str(lit.sort), "literal")

    def _application(self, app: FunctionApplication, env: Env) -> Any:
        if app.name == "as-array":
            fname = app.args[0].name
            index = z3.FreshConst(self.sort(app.sort.params[0]), prefix="i")
            return z3.Lambda([index], self.apply_user(fname, [index]))

        args = [self.build(a, env) for a in app.args]
        if not theories.is_builtin(app.name) and app.name in self.symbols:
            return self.apply_user(app.name, args)

        if app.name == "const":
            return z3.K(self.sort(app.sort.params[0]), args[0])
        if app.name == "extract":
            return z3.Extract(app.indices[0], app.indices[1], args[0])
        if app.name == "zero_extend":
            return z3.ZeroExt(app.indices[0], args[0])
        if app.name == "sign_extend":
            return z3.SignExt(app.indices[0], args[0])

        op = _OPERATORS.get(app.name)
        if op is None:
            raise UnsupportedConstructError(app.name, "operator")
        return op(args)


def _universe_constraints(builder: _Z3Builder, model: Model) -> List[Any]:
    """Model-declared elements of one sort denote distinct values."""
    by_sort: Dict[Sort, List[Any]] = {}
    for decl in model.declarations:
        if decl.is_constant:
            by_sort.setdefault(decl.result, []).append(builder.function(decl.name))
    return [z3.Distinct(*elems) for elems in by_sort.values() if len(elems) > 1]


class Z3ModelChecker:
    """Checks models with the z3 Python bindings.

    Example:
        >>> checker = Z3ModelChecker(timeout_s=10)
        >>> checker.check(formula, model, symbols)
        Verdict(kind=<VerdictKind.SATISFIED: 'sat'>, ...)
    """

    name = "z3"

    def __init__(self, timeout_s: Optional[float] = None):
        self.timeout_s = timeout_s

    def _solver(self) -> z3.Solver:
        solver = z3.Solver()
        if self.timeout_s is not None:
            solver.set("timeout", max(1, int(self.timeout_s * 1000)))
        return solver

    def check(self, formula: Formula, model: Model, symbols: SymbolTable) -> Verdict:
        """Check ``model`` against ``formula``.

        Satisfied if the formula holds under every interpretation of the
        symbols the model leaves open, Refuted if it holds under none.
        """
        start_time = time.time()
        definitions = Model(formula.definitions + model.definitions).effective()
        builder = _Z3Builder(symbols, definitions)
        try:
            phi = z3.And(*[builder.build(a) for a in formula.assertions]) if formula.assertions else z3.BoolVal(True)
            background = _universe_constraints(builder, model)

            solver = self._solver()
            solver.add(*background)
            solver.add(z3.Not(phi))
            result = solver.check()
            if result == z3.unsat:
                return self._verdict(VerdictKind.SATISFIED, start_time)

            reason = solver.reason_unknown() if result == z3.unknown else None
            solver = self._solver()
            solver.add(*background)
            solver.add(phi)
            result = solver.check()
        except z3.Z3Exception as e:
            raise ExecutionError(f"z3 rejected the obligation: {e}") from e

        if result == z3.unsat:
            return self._verdict(VerdictKind.REFUTED, start_time)
        if result == z3.unknown:
            reason = solver.reason_unknown()
        if reason in ("timeout", "canceled"):
            reason = "timeout"
        return self._verdict(VerdictKind.INDETERMINATE, start_time,
                             reason or "the model does not fix the formula's value")

    def _verdict(self, kind: VerdictKind, start_time: float, diagnostic: Optional[str] = None) -> Verdict:
        elapsed_ms = (time.time() - start_time) * 1000
        logger.debug("z3 verdict %s in %.2fms", kind.value, elapsed_ms)
        return Verdict(kind, diagnostic, prover_name=self.name, prover_time_ms=elapsed_ms)
