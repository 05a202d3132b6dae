"""
Term trees for parsed SMT-LIB formulas and models.

Every node carries the sort the parser inferred for it. Nodes are immutable
and never shared; symbols refer to declarations by name only.
"""
from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Iterator, Tuple, Union

from .sorts import BOOL, Sort


class QuantifierKind(Enum):
    FORALL = "forall"
    EXISTS = "exists"


@dataclass(frozen=True)
class Literal:
    """Spec constant.

    ``value`` is a ``bool`` for ``true``/``false``, an ``int`` for numerals and
    bit-vector literals, the decimal text for ``Real`` decimals and the decoded
    string for ``String`` literals.
    """
    value: Union[bool, int, str]
    sort: Sort


@dataclass(frozen=True)
class Variable:
    """Reference to a bound variable or a nullary user symbol."""
    name: str
    sort: Sort


@dataclass(frozen=True)
class FunctionApplication:
    """Application of a built-in operator or user function.

    ``indices`` holds the numerals of an indexed identifier such as
    ``(_ extract 7 0)``.
    """
    name: str
    args: Tuple["Term", ...]
    sort: Sort
    indices: Tuple[int, ...] = ()


@dataclass(frozen=True)
class Let:
    """Parallel let: every bound term is evaluated in the enclosing scope."""
    bindings: Tuple[Tuple[str, "Term"], ...]
    body: "Term"

    @property
    def sort(self) -> Sort:
        return self.body.sort


@dataclass(frozen=True)
class Quantifier:
    kind: QuantifierKind
    bindings: Tuple[Tuple[str, Sort], ...]
    body: "Term"

    @property
    def sort(self) -> Sort:
        return BOOL


@dataclass(frozen=True)
class Annotation:
    """``(! term :attr value ...)``; attributes do not affect semantics."""
    term: "Term"
    attributes: Tuple[Tuple[str, str], ...] = ()

    @property
    def sort(self) -> Sort:
        return self.term.sort


Term = Union[Literal, Variable, FunctionApplication, Let, Quantifier, Annotation]


def free_symbols(term: Term) -> FrozenSet[str]:
    """Names occurring free in ``term`` (variables and applied functions)."""
    if isinstance(term, Literal):
        return frozenset()
    if isinstance(term, Variable):
        return frozenset({term.name})
    if isinstance(term, FunctionApplication):
        out = set()
        for arg in term.args:
            out |= free_symbols(arg)
        out.add(term.name)
        return frozenset(out)
    if isinstance(term, Let):
        out = set()
        for _, bound in term.bindings:
            out |= free_symbols(bound)
        names = {name for name, _ in term.bindings}
        return frozenset(out | (free_symbols(term.body) - names))
    if isinstance(term, Quantifier):
        names = {name for name, _ in term.bindings}
        return free_symbols(term.body) - names
    if isinstance(term, Annotation):
        return free_symbols(term.term)
    raise TypeError(f"Not a term: {term!r}")


def iter_applications(term: Term) -> Iterator[FunctionApplication]:
    """Yield every FunctionApplication node in ``term`` (pre-order)."""
    if isinstance(term, FunctionApplication):
        yield term
        for arg in term.args:
            yield from iter_applications(arg)
    elif isinstance(term, Let):
        for _, bound in term.bindings:
            yield from iter_applications(bound)
        yield from iter_applications(term.body)
    elif isinstance(term, Quantifier):
        yield from iter_applications(term.body)
    elif isinstance(term, Annotation):
        yield from iter_applications(term.term)
