"""
Term translator from SMT-LIB term trees to Isabelle/HOL inner syntax.
"""
from itertools import combinations
import logging
from typing import List, Optional, Set, Tuple

from ..errors import UnsupportedConstructError
from ..smtlib import theories
from ..smtlib.model import Definition
from ..smtlib.sorts import BOOL, INT, REAL, STRING
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
    free_symbols,
    iter_applications,
)
from .names import BinderScope, escape_identifier
from .operators import INFIX, PREFIX, SECTION, TEMPLATE, OperatorSpec, OperatorTable, helper_closure
from .type_translator import TypeTranslator

logger = logging.getLogger(__name__)

_QUANTIFIERS = {
    QuantifierKind.FORALL: r"\<forall>",
    QuantifierKind.EXISTS: r"\<exists>",
}


def conjunction(parts: List[str]) -> str:
    """Isabelle conjunction of already-translated Bool terms."""
    if not parts:
        return "True"
    if len(parts) == 1:
        return parts[0]
    return "(" + r" \<and> ".join(parts) + ")"


class TermTranslator:
    """Translates parsed terms into Isabelle inner syntax.

    Translation is structural recursion; binder renaming is threaded through
    an immutable ``BinderScope`` instead of translator state.

    Example:
        >>> tt = TermTranslator(symbols)
        >>> tt.translate(formula.assertions[0])
        '((x + (1::int)) = y)'
    """

    def __init__(self, symbols: SymbolTable, operators: Optional[OperatorTable] = None,
                 types: Optional[TypeTranslator] = None):
        """Initialize translator.

        Args:
            symbols: Symbol Table filled by the parser
            operators: Operator spellings (defaults if omitted)
            types: Sort translator (built from the table's user sorts if omitted)
        """
        self.symbols = symbols
        self.operators = operators or OperatorTable()
        self.types = types or TypeTranslator(symbols.user_sorts)

    def root_scope(self) -> BinderScope:
        """Scope at the top of an obligation: every global name is taken."""
        return BinderScope(taken=(escape_identifier(d.name) for d in self.symbols))

    # ------------------------------------------------------------------
    # Terms
    # ------------------------------------------------------------------

    def translate(self, term: Term, scope: Optional[BinderScope] = None) -> str:
        """Translate ``term`` to Isabelle text.

        Raises:
            UnsupportedConstructError: On an operator or sort without translation
        """
        if scope is None:
            scope = self.root_scope()

        if isinstance(term, Literal):
            return self._literal(term)
        if isinstance(term, Variable):
            return self._name(term.name, scope)
        if isinstance(term, FunctionApplication):
            return self._application(term, scope)
        if isinstance(term, Let):
            return self._let(term, scope)
        if isinstance(term, Quantifier):
            return self._quantifier(term, scope)
        if isinstance(term, Annotation):
            return self.translate(term.term, scope)
        raise TypeError(f"Not a term: {term!r}")

    def _name(self, name: str, scope: BinderScope) -> str:
        bound = scope.lookup(name)
        return bound if bound is not None else escape_identifier(name)

    def _literal(self, lit: Literal) -> str:
        if lit.sort == BOOL:
            return "True" if lit.value else "False"
        if lit.sort == INT:
            return f"({lit.value}::int)"
        if lit.sort == REAL:
            return f"({lit.value}::real)"
        if lit.sort.is_bitvec:
            return f"({lit.value}::{self.types.translate_bitvec(lit.sort.width)})"
        if lit.sort == STRING:
            return self._string(lit.value)
        raise UnsupportedConstructError(str(lit.sort), "literal")

    def _string(self, value: str) -> str:
        # HOL's char is a byte
        for ch in value:
            if ord(ch) > 0xFF:
                raise UnsupportedConstructError("string literal", f"code point U+{ord(ch):04X} above U+00FF")
        chars = ", ".join(f"CHR 0x{ord(ch):02X}" for ch in value)
        return f"([{chars}]::string)"

    def _application(self, app: FunctionApplication, scope: BinderScope) -> str:
        args = [self.translate(a, scope) for a in app.args]

        if not theories.is_builtin(app.name) and app.name in self.symbols:
            return "(" + " ".join([escape_identifier(app.name)] + args) + ")"

        spec = self.operators.lookup(app.name)
        if spec.fixity == TEMPLATE:
            fields = {"type": self.types.translate(app.sort)}
            for i, idx in enumerate(app.indices):
                fields[f"i{i}"] = idx
            if app.sort.is_array:
                fields["index"] = self.types.translate(app.sort.params[0])
            return spec.mapsto.format(*args, **fields)

        if len(args) == 1:
            if spec.unary is not None:
                return spec.unary.format(args[0])
            if spec.fixity == INFIX:
                return args[0]
            return f"({spec.mapsto} {args[0]})"

        if spec.pairwise:
            return conjunction([self._binary(spec, a, b) for a, b in combinations(args, 2)])
        if spec.chainable:
            return conjunction([self._binary(spec, a, b) for a, b in zip(args, args[1:])])
        if spec.assoc == "right":
            out = args[-1]
            for a in reversed(args[:-1]):
                out = self._binary(spec, a, out)
            return out
        if spec.fixity == PREFIX and spec.assoc is None:
            return "(" + " ".join([spec.mapsto] + args) + ")"
        if spec.fixity == SECTION and spec.assoc is None:
            return "(" + " ".join([f"({spec.mapsto})"] + args) + ")"
        out = args[0]
        for a in args[1:]:
            out = self._binary(spec, out, a)
        return out

    @staticmethod
    def _binary(spec: OperatorSpec, a: str, b: str) -> str:
        if spec.fixity == INFIX:
            return f"({a} {spec.mapsto} {b})"
        if spec.fixity == SECTION:
            return f"(({spec.mapsto}) {a} {b})"
        return f"({spec.mapsto} {a} {b})"

    def _let(self, term: Let, scope: BinderScope) -> str:
        # Isabelle's let is sequential: a binder must not capture a name a
        # sibling's bound term refers to.
        bound = [self.translate(t, scope) for _, t in term.bindings]
        sibling_refs = [
            {self._name(s, scope) for s in free_symbols(t)} for _, t in term.bindings
        ]

        chosen: List[Tuple[str, str]] = []
        for i, (name, _) in enumerate(term.bindings):
            avoid: Set[str] = {n for _, n in chosen}
            for j, refs in enumerate(sibling_refs):
                if j != i:
                    avoid |= refs
            chosen.append((name, scope.fresh(name, avoid)))

        inner = scope.bind(chosen)
        eqs = "; ".join(f"{isa} = {rhs}" for (_, isa), rhs in zip(chosen, bound))
        return f"(let {eqs} in {self.translate(term.body, inner)})"

    def _binders(self, bindings, scope: BinderScope) -> Tuple[str, BinderScope]:
        chosen: List[Tuple[str, str]] = []
        parts = []
        for name, sort in bindings:
            isa = scope.fresh(name, {n for _, n in chosen})
            chosen.append((name, isa))
            parts.append(f"({isa}::{self.types.translate(sort)})")
        return " ".join(parts), scope.bind(chosen)

    def _quantifier(self, term: Quantifier, scope: BinderScope) -> str:
        binders, inner = self._binders(term.bindings, scope)
        body = self.translate(term.body, inner)
        return f"({_QUANTIFIERS[term.kind]}{binders}. {body})"

    # ------------------------------------------------------------------
    # Definitions and helpers
    # ------------------------------------------------------------------

    def translate_definition(self, definition: Definition) -> str:
        """Equation ``f = (\\<lambda>params. body)`` for a definition."""
        scope = self.root_scope()
        name = escape_identifier(definition.name)
        if not definition.params:
            return f"{name} = {self.translate(definition.body, scope)}"
        binders, inner = self._binders(definition.params, scope)
        return f"{name} = (\\<lambda>{binders}. {self.translate(definition.body, inner)})"

    def required_helpers(self, term: Term) -> Tuple[str, ...]:
        """Prelude definitions the translation of ``term`` refers to."""
        names = []
        for app in iter_applications(term):
            if theories.is_builtin(app.name) and app.name in self.operators:
                names.extend(self.operators.lookup(app.name).helpers)
        return helper_closure(names)
