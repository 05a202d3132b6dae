"""
SMT-LIB Parser - s-expressions to typed term trees.

Parses formula text (declarations and assertions) and model text (function
definitions as printed by ``(get-model)``) over one shared Symbol Table. The
formula must be parsed before the model so that the model sees its
declarations.

Sort checking is structural: every node gets a sort from its literal, its
declaration or its operator's signature, and operands are compared against
what the declaration or operator expects.
"""
import logging
from typing import Dict, List, Optional, Set, Tuple, Type

from ..errors import (
    ModelConflictError,
    ParseError,
    SmtSyntaxError,
    SortMismatchError,
    UndeclaredSymbolError,
    UnsupportedConstructError,
)
from . import theories
from .model import Definition, Formula, Model, sanitize_model
from .sexpr import SExpr, SList, Token, position_of, read_sexprs
from .sorts import BOOL, INT, REAL, STRING, Sort, array, bitvec, make_builtin
from .symbols import Declaration, DeclarationKind, SortAlias, SymbolTable
from .terms import (
    Annotation,
    FunctionApplication,
    Let,
    Literal,
    Quantifier,
    QuantifierKind,
    Term,
    Variable,
)

logger = logging.getLogger(__name__)

Scope = Dict[str, Sort]

# Commands that do not contribute to the formula.
_IGNORED_COMMANDS = {
    "set-logic", "set-info", "set-option", "check-sat", "get-model", "get-value",
    "get-info", "get-option", "get-assertions", "get-assignment", "get-unsat-core",
    "get-proof", "echo", "exit",
}


def _fail(cls: Type[ParseError], message: str, node: SExpr):
    line, column, offset = position_of(node)
    raise cls(message, line, column, offset)


def _render(expr: SExpr) -> str:
    """Text of an s-expression, used for attribute values and messages."""
    if isinstance(expr, Token):
        if expr.type == "SYMBOL" and expr.quoted:
            return f"|{expr.value}|"
        if expr.type == "STRING":
            return '"' + expr.value.replace('"', '""') + '"'
        return expr.value
    return "(" + " ".join(_render(e) for e in expr.items) + ")"


def _is_symbol(expr: SExpr, value: Optional[str] = None) -> bool:
    return isinstance(expr, Token) and expr.type == "SYMBOL" and (value is None or expr.value == value)


class SmtLibParser:
    """Recursive descent parser over SMT-LIB s-expressions.

    One instance parses one formula/model pair; its Symbol Table is not meant
    to be shared with other pairs.
    """

    def __init__(self, symbols: Optional[SymbolTable] = None):
        self.symbols = symbols if symbols is not None else SymbolTable()
        self._formula_parsed = False
        self._formula_definitions: Dict[str, Definition] = {}

    # ========================================================================
    # PUBLIC API
    # ========================================================================

    def parse_formula(self, text: str) -> Formula:
        """Parse formula text into its assertions and definitions.

        Raises:
            SmtSyntaxError: On malformed s-expressions or commands
            UndeclaredSymbolError: On a reference to an unknown symbol
            SortMismatchError: On ill-sorted applications
            UnsupportedConstructError: On commands outside the supported set
        """
        assertions: List[Term] = []
        definitions: List[Definition] = []

        for cmd in read_sexprs(text):
            head = self._command_head(cmd)
            if head in _IGNORED_COMMANDS:
                continue
            if head == "assert":
                self._expect_len(cmd, 2)
                term = self.parse_term(cmd.items[1], {})
                if term.sort != BOOL:
                    _fail(SortMismatchError, f"Assertion has sort {term.sort}, expected Bool", cmd.items[1])
                assertions.append(term)
            elif head == "define-fun":
                definition = self._define_fun(cmd, in_model=False)
                self._formula_definitions[definition.name] = definition
                definitions.append(definition)
            elif not self._declaration_command(head, cmd):
                raise UnsupportedConstructError(head, f"command at line {cmd.line}")

        self._formula_parsed = True
        logger.debug("Parsed formula: %d assertion(s), %d definition(s), %d symbol(s)",
                     len(assertions), len(definitions), len(self.symbols))
        return Formula(tuple(assertions), tuple(definitions))

    def parse_model(self, text: str) -> Model:
        """Parse model text (raw solver output is accepted) into a Model.

        The formula must have been parsed by this parser first.
        """
        if not self._formula_parsed:
            raise RuntimeError("The formula must be parsed before the model")

        commands = self._unwrap_model(read_sexprs(sanitize_model(text)))

        # Register all model signatures first: solvers print helper functions
        # (e.g. z3's k!0 behind an as-array) after the entries that use them.
        for cmd in commands:
            if self._command_head(cmd) == "define-fun":
                self._register_signature(cmd)

        definitions: List[Definition] = []
        declarations: List[Declaration] = []
        for cmd in commands:
            head = self._command_head(cmd)
            if head == "define-fun":
                definition = self._define_fun(cmd, in_model=True)
                if definition.name not in self._formula_definitions:
                    definitions.append(definition)
            elif head in ("declare-fun", "declare-const"):
                if len(cmd.items) > 1 and _is_symbol(cmd.items[1]) and cmd.items[1].value in self._formula_definitions:
                    _fail(ModelConflictError,
                          f"Model declares '{cmd.items[1].value}', which the formula defines", cmd.items[1])
                self._declaration_command(head, cmd)
                declarations.append(self.symbols.lookup(cmd.items[1].value))
            elif head == "declare-sort":
                self._declaration_command(head, cmd)
            else:
                raise UnsupportedConstructError(head, f"model command at line {cmd.line}")

        logger.debug("Parsed model: %d definition(s)", len(definitions))
        return Model(tuple(definitions), tuple(declarations))

    # ========================================================================
    # COMMANDS
    # ========================================================================

    def _command_head(self, cmd: SExpr) -> str:
        if not isinstance(cmd, SList):
            _fail(SmtSyntaxError, f"Expected a command, got '{_render(cmd)}'", cmd)
        head = cmd.head_symbol()
        if head is None:
            _fail(SmtSyntaxError, "Command must start with a symbol", cmd)
        return head

    def _expect_len(self, cmd: SList, n: int):
        if len(cmd.items) != n:
            _fail(SmtSyntaxError, f"'{cmd.head_symbol()}' expects {n - 1} argument(s)", cmd)

    def _symbol_name(self, expr: SExpr, what: str = "symbol") -> str:
        if not _is_symbol(expr):
            _fail(SmtSyntaxError, f"Expected {what}, got '{_render(expr)}'", expr)
        return expr.value

    def _unwrap_model(self, top: List[SExpr]) -> List[SExpr]:
        if len(top) == 1 and isinstance(top[0], SList):
            only = top[0]
            if only.head_symbol() == "model":
                return only.items[1:]
            if all(isinstance(e, SList) for e in only.items):
                return only.items
        return top

    def _declaration_command(self, head: str, cmd: SList) -> bool:
        """Handle sort and symbol declarations; False if ``head`` is not one."""
        if head == "declare-sort":
            if len(cmd.items) not in (2, 3):
                _fail(SmtSyntaxError, "'declare-sort' expects a name and an optional arity", cmd)
            name = self._symbol_name(cmd.items[1], "sort name")
            arity = self._numeral(cmd.items[2]) if len(cmd.items) == 3 else 0
            if arity != 0:
                raise UnsupportedConstructError("declare-sort", f"parametric sort {name} of arity {arity}")
            self.symbols.declare_sort(name, arity)
            return True

        if head == "define-sort":
            self._expect_len(cmd, 4)
            name = self._symbol_name(cmd.items[1], "sort name")
            if not isinstance(cmd.items[2], SList):
                _fail(SmtSyntaxError, "'define-sort' expects a parameter list", cmd.items[2])
            params = tuple(self._symbol_name(p, "sort parameter") for p in cmd.items[2].items)
            body = self.parse_sort(cmd.items[3], set(params))
            self.symbols.define_sort(name, SortAlias(params, body))
            return True

        if head == "declare-fun":
            self._expect_len(cmd, 4)
            if not isinstance(cmd.items[2], SList):
                _fail(SmtSyntaxError, "'declare-fun' expects a list of argument sorts", cmd.items[2])
            arg_sorts = tuple(self.parse_sort(s) for s in cmd.items[2].items)
            self._declare(cmd.items[1], arg_sorts, self.parse_sort(cmd.items[3]), DeclarationKind.DECLARED)
            return True

        if head == "declare-const":
            self._expect_len(cmd, 3)
            self._declare(cmd.items[1], (), self.parse_sort(cmd.items[2]), DeclarationKind.DECLARED)
            return True

        return False

    def _declare(self, name_expr: SExpr, arg_sorts, result: Sort, kind: DeclarationKind) -> Declaration:
        name = self._symbol_name(name_expr)
        if theories.is_builtin(name):
            _fail(SmtSyntaxError, f"Cannot redeclare built-in symbol '{name}'", name_expr)
        decl = Declaration(name, tuple(arg_sorts), result, kind)
        prev = self.symbols.lookup(name)
        if prev is not None and not prev.same_signature(decl):
            _fail(SortMismatchError,
                  f"'{name}' redeclared with a different signature "
                  f"({self._signature_text(prev)} vs {self._signature_text(decl)})", name_expr)
        return self.symbols.declare(decl)

    @staticmethod
    def _signature_text(decl: Declaration) -> str:
        args = " ".join(str(s) for s in decl.arg_sorts)
        return f"({args}) {decl.result}"

    def _fun_header(self, cmd: SList) -> Tuple[Tuple[Tuple[str, Sort], ...], Sort]:
        self._expect_len(cmd, 5)
        params_expr = cmd.items[2]
        if not isinstance(params_expr, SList):
            _fail(SmtSyntaxError, "'define-fun' expects a parameter list", params_expr)
        params = tuple(self._sorted_var(p) for p in params_expr.items)
        return params, self.parse_sort(cmd.items[3])

    def _register_signature(self, cmd: SList):
        params, result = self._fun_header(cmd)
        self._declare(cmd.items[1], [s for _, s in params], result, DeclarationKind.DEFINED)

    def _define_fun(self, cmd: SList, in_model: bool) -> Definition:
        params, result = self._fun_header(cmd)
        scope = {}
        for name, sort in params:
            scope[name] = sort
        body = self.parse_term(cmd.items[4], scope)
        if body.sort != result:
            _fail(SortMismatchError,
                  f"Body of '{_render(cmd.items[1])}' has sort {body.sort}, expected {result}", cmd.items[4])
        decl = self._declare(cmd.items[1], [s for _, s in params], result, DeclarationKind.DEFINED)
        definition = Definition(decl, params, body)
        # A model may repeat a formula definition verbatim but never change it.
        if in_model and decl.name in self._formula_definitions:
            if self._formula_definitions[decl.name] != definition:
                _fail(ModelConflictError,
                      f"Model redefines '{decl.name}', which the formula defines", cmd.items[1])
        return definition

    def _sorted_var(self, expr: SExpr) -> Tuple[str, Sort]:
        if not isinstance(expr, SList) or len(expr.items) != 2:
            _fail(SmtSyntaxError, f"Expected (name sort), got '{_render(expr)}'", expr)
        return self._symbol_name(expr.items[0], "variable name"), self.parse_sort(expr.items[1])

    # ========================================================================
    # SORTS
    # ========================================================================

    def parse_sort(self, expr: SExpr, placeholders: Optional[Set[str]] = None) -> Sort:
        """Parse a sort expression, expanding ``define-sort`` aliases."""
        placeholders = placeholders or set()

        if _is_symbol(expr):
            name = expr.value
            if name in placeholders:
                return Sort(name)
            alias = self.symbols.get_alias(name)
            if alias is not None:
                if alias.params:
                    _fail(SortMismatchError, f"Sort alias '{name}' expects {len(alias.params)} argument(s)", expr)
                return alias.instantiate(())
            builtin = make_builtin(name, (), ())
            if builtin is not None:
                return builtin
            if self.symbols.sort_arity(name) == 0:
                return Sort(name)
            _fail(UndeclaredSymbolError, f"Undeclared sort: {name}", expr)

        if not isinstance(expr, SList) or not expr.items:
            _fail(SmtSyntaxError, f"Expected a sort, got '{_render(expr)}'", expr)

        if _is_symbol(expr.items[0], "_"):
            if len(expr.items) < 3 or not _is_symbol(expr.items[1]):
                _fail(SmtSyntaxError, f"Malformed indexed sort '{_render(expr)}'", expr)
            indices = tuple(self._numeral(i) for i in expr.items[2:])
            sort = make_builtin(expr.items[1].value, (), indices)
            if sort is None:
                raise UnsupportedConstructError(_render(expr), "indexed sort")
            return sort

        name = self._symbol_name(expr.items[0], "sort name")
        args = tuple(self.parse_sort(p, placeholders) for p in expr.items[1:])
        alias = self.symbols.get_alias(name)
        if alias is not None:
            if len(alias.params) != len(args):
                _fail(SortMismatchError, f"Sort alias '{name}' expects {len(alias.params)} argument(s)", expr)
            return alias.instantiate(args)
        sort = make_builtin(name, args, ())
        if sort is None:
            raise UnsupportedConstructError(_render(expr), "sort")
        return sort

    def _numeral(self, expr: SExpr) -> int:
        if not isinstance(expr, Token) or expr.type != "NUMERAL":
            _fail(SmtSyntaxError, f"Expected a numeral, got '{_render(expr)}'", expr)
        return int(expr.value)

    # ========================================================================
    # TERMS
    # ========================================================================

    def parse_term(self, expr: SExpr, scope: Scope) -> Term:
        """Parse a term with ``scope`` mapping bound variable names to sorts."""
        if isinstance(expr, Token):
            return self._parse_atom(expr, scope)

        if not expr.items:
            _fail(SmtSyntaxError, "Empty application '()'", expr)

        head = expr.items[0]
        if _is_symbol(head):
            name = head.value
            if name == "let":
                return self._parse_let(expr, scope)
            if name in ("forall", "exists"):
                return self._parse_quantifier(expr, scope)
            if name == "!":
                return self._parse_annotation(expr, scope)
            if name == "_":
                return self._parse_indexed_constant(expr)
            if name == "as":
                return self._parse_qualified(expr, scope)
            if name == "match":
                raise UnsupportedConstructError("match", f"line {expr.line}")
            args = [self.parse_term(a, scope) for a in expr.items[1:]]
            return self._apply(name, (), None, args, expr, scope)

        if isinstance(head, SList) and head.items:
            args = [self.parse_term(a, scope) for a in expr.items[1:]]
            if _is_symbol(head.items[0], "_"):
                name, indices = self._indexed_identifier(head)
                return self._apply(name, indices, None, args, expr, scope)
            if _is_symbol(head.items[0], "as"):
                if len(head.items) != 3:
                    _fail(SmtSyntaxError, f"Malformed qualified identifier '{_render(head)}'", head)
                qualifier = self.parse_sort(head.items[2])
                if _is_symbol(head.items[1]):
                    return self._apply(head.items[1].value, (), qualifier, args, expr, scope)
                if isinstance(head.items[1], SList) and _is_symbol(head.items[1].items[0], "_"):
                    name, indices = self._indexed_identifier(head.items[1])
                    return self._apply(name, indices, qualifier, args, expr, scope)

        _fail(SmtSyntaxError, f"Unexpected term '{_render(expr)}'", expr)

    def _parse_atom(self, tok: Token, scope: Scope) -> Term:
        if tok.type == "NUMERAL":
            return Literal(int(tok.value), INT)
        if tok.type == "DECIMAL":
            return Literal(tok.value, REAL)
        if tok.type == "HEXADECIMAL":
            digits = tok.value[2:]
            return Literal(int(digits, 16), bitvec(4 * len(digits)))
        if tok.type == "BINARY":
            digits = tok.value[2:]
            return Literal(int(digits, 2), bitvec(len(digits)))
        if tok.type == "STRING":
            return Literal(tok.value, STRING)
        if tok.type == "SYMBOL":
            return self._reference(tok.value, tok, scope)
        _fail(SmtSyntaxError, f"Unexpected token '{tok.value}'", tok)

    def _reference(self, name: str, node: SExpr, scope: Scope) -> Term:
        if name in scope:
            return Variable(name, scope[name])
        if name in theories.BOOLEAN_CONSTANTS:
            return Literal(theories.BOOLEAN_CONSTANTS[name], BOOL)
        decl = self.symbols.lookup(name)
        if decl is not None:
            if not decl.is_constant:
                _fail(SortMismatchError, f"'{name}' expects {len(decl.arg_sorts)} argument(s), got 0", node)
            return Variable(name, decl.result)
        if name in theories.BUILTIN_OPERATORS:
            _fail(SortMismatchError, f"'{name}' is an operator and needs arguments", node)
        line, column, offset = position_of(node)
        raise UndeclaredSymbolError(name, line, column, offset)

    def _indexed_identifier(self, expr: SList) -> Tuple[str, Tuple[int, ...]]:
        if len(expr.items) < 3 or not _is_symbol(expr.items[1]):
            _fail(SmtSyntaxError, f"Malformed indexed identifier '{_render(expr)}'", expr)
        name = expr.items[1].value
        if name == "as-array":
            return name, ()
        return name, tuple(self._numeral(i) for i in expr.items[2:])

    def _parse_indexed_constant(self, expr: SList) -> Term:
        if len(expr.items) == 3 and _is_symbol(expr.items[1]) and expr.items[1].value.startswith("bv"):
            digits = expr.items[1].value[2:]
            if digits.isdigit():
                width = self._numeral(expr.items[2])
                if width <= 0:
                    _fail(SortMismatchError, "Bit-vector width must be positive", expr.items[2])
                return Literal(int(digits) % (1 << width), bitvec(width))
        if len(expr.items) == 3 and _is_symbol(expr.items[1], "as-array"):
            # z3 prints array values as (_ as-array f) where f is a model
            # function; the array is that function.
            fname = self._symbol_name(expr.items[2], "function name")
            decl = self.symbols.lookup(fname)
            if decl is None:
                line, column, offset = position_of(expr.items[2])
                raise UndeclaredSymbolError(fname, line, column, offset)
            if len(decl.arg_sorts) != 1:
                raise UnsupportedConstructError("as-array", f"function {fname} of arity {len(decl.arg_sorts)}")
            sort = array(decl.arg_sorts[0], decl.result)
            return FunctionApplication("as-array", (Variable(fname, decl.result),), sort)
        name, _ = self._indexed_identifier(expr)
        _fail(SortMismatchError, f"Indexed operator '{name}' needs arguments", expr)

    def _parse_qualified(self, expr: SList, scope: Scope) -> Term:
        if len(expr.items) != 3 or not _is_symbol(expr.items[1]):
            _fail(SmtSyntaxError, f"Malformed qualified identifier '{_render(expr)}'", expr)
        sort = self.parse_sort(expr.items[2])
        term = self._reference(expr.items[1].value, expr.items[1], scope)
        if term.sort != sort:
            _fail(SortMismatchError, f"'{expr.items[1].value}' has sort {term.sort}, not {sort}", expr)
        return term

    def _apply(self, name: str, indices: Tuple[int, ...], qualifier: Optional[Sort],
               args: List[Term], node: SList, scope: Scope) -> Term:
        arg_sorts = [a.sort for a in args]

        if name in scope:
            _fail(SortMismatchError, f"Bound variable '{name}' cannot be applied to arguments", node)

        if name == "const" and qualifier is not None:
            if not qualifier.is_array or len(args) != 1:
                _fail(SortMismatchError, f"'(as const {qualifier})' expects an array sort and one value", node)
            if arg_sorts[0] != qualifier.params[1]:
                _fail(SortMismatchError,
                      f"Constant array value has sort {arg_sorts[0]}, expected {qualifier.params[1]}", node)
            return FunctionApplication("const", tuple(args), qualifier)

        decl = self.symbols.lookup(name)
        if decl is not None:
            if len(args) != len(decl.arg_sorts):
                _fail(SortMismatchError,
                      f"'{name}' expects {len(decl.arg_sorts)} argument(s), got {len(args)}", node)
            for i, (got, want) in enumerate(zip(arg_sorts, decl.arg_sorts), start=1):
                if got != want:
                    _fail(SortMismatchError, f"'{name}' argument {i} has sort {got}, expected {want}", node)
            result = decl.result
        elif name in theories.BUILTIN_OPERATORS:
            try:
                result = theories.result_sort(name, arg_sorts, indices)
            except theories.SignatureError as e:
                _fail(SortMismatchError, str(e), node)
        else:
            line, column, offset = position_of(node.items[0])
            raise UndeclaredSymbolError(name, line, column, offset)

        if qualifier is not None and qualifier != result:
            _fail(SortMismatchError, f"'{name}' has sort {result}, not {qualifier}", node)
        return FunctionApplication(name, tuple(args), result, indices)

    def _parse_let(self, expr: SList, scope: Scope) -> Term:
        if len(expr.items) != 3 or not isinstance(expr.items[1], SList) or not expr.items[1].items:
            _fail(SmtSyntaxError, "'let' expects a non-empty binding list and a body", expr)
        bindings = []
        seen = set()
        for b in expr.items[1].items:
            if not isinstance(b, SList) or len(b.items) != 2:
                _fail(SmtSyntaxError, f"Malformed let binding '{_render(b)}'", b)
            name = self._symbol_name(b.items[0], "variable name")
            if name in seen:
                _fail(SmtSyntaxError, f"Duplicate let binding '{name}'", b)
            seen.add(name)
            bindings.append((name, self.parse_term(b.items[1], scope)))
        inner = dict(scope)
        for name, bound in bindings:
            inner[name] = bound.sort
        return Let(tuple(bindings), self.parse_term(expr.items[2], inner))

    def _parse_quantifier(self, expr: SList, scope: Scope) -> Term:
        kind = QuantifierKind(expr.items[0].value)
        if len(expr.items) != 3 or not isinstance(expr.items[1], SList) or not expr.items[1].items:
            _fail(SmtSyntaxError, f"'{kind.value}' expects a non-empty variable list and a body", expr)
        bindings = tuple(self._sorted_var(v) for v in expr.items[1].items)
        inner = dict(scope)
        for name, sort in bindings:
            inner[name] = sort
        body = self.parse_term(expr.items[2], inner)
        if body.sort != BOOL:
            _fail(SortMismatchError, f"Quantifier body has sort {body.sort}, expected Bool", expr.items[2])
        return Quantifier(kind, bindings, body)

    def _parse_annotation(self, expr: SList, scope: Scope) -> Term:
        if len(expr.items) < 3:
            _fail(SmtSyntaxError, "'!' expects a term and at least one attribute", expr)
        term = self.parse_term(expr.items[1], scope)
        attributes = []
        rest = expr.items[2:]
        i = 0
        while i < len(rest):
            key = rest[i]
            if not isinstance(key, Token) or key.type != "KEYWORD":
                _fail(SmtSyntaxError, f"Expected an attribute keyword, got '{_render(key)}'", key)
            value = ""
            if i + 1 < len(rest) and not (isinstance(rest[i + 1], Token) and rest[i + 1].type == "KEYWORD"):
                value = _render(rest[i + 1])
                i += 1
            attributes.append((key.value, value))
            i += 1
        return Annotation(term, tuple(attributes))


def parse_pair(formula_text: str, model_text: str,
               symbols: Optional[SymbolTable] = None) -> Tuple[Formula, Model, SymbolTable]:
    """Parse a formula and then its model over one fresh Symbol Table."""
    parser = SmtLibParser(symbols)
    formula = parser.parse_formula(formula_text)
    model = parser.parse_model(model_text)
    return formula, model, parser.symbols
