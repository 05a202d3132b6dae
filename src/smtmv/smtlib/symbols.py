"""
Symbol Table and sort registry.

Holds the sorts and function signatures collected while parsing a formula and
its model. The formula is parsed first; the model then adds to the same table.
"""
from dataclasses import dataclass
from enum import Enum
import logging
from typing import Dict, Iterator, List, Optional, Tuple

from .sorts import BUILTIN_SORT_NAMES, Sort

logger = logging.getLogger(__name__)


class DeclarationKind(Enum):
    DECLARED = "declared"   # declare-fun / declare-const
    DEFINED = "defined"     # define-fun (formula or model)


@dataclass(frozen=True)
class Declaration:
    """Signature of a user symbol.

    Attributes:
        name: Symbol name as written in SMT-LIB (without quoting bars)
        arg_sorts: Parameter sorts, empty for constants
        result: Result sort
        kind: Whether the symbol was declared or defined
    """
    name: str
    arg_sorts: Tuple[Sort, ...]
    result: Sort
    kind: DeclarationKind = DeclarationKind.DECLARED

    @property
    def is_constant(self) -> bool:
        return not self.arg_sorts

    def same_signature(self, other: "Declaration") -> bool:
        return self.arg_sorts == other.arg_sorts and self.result == other.result


@dataclass(frozen=True)
class SortAlias:
    """``define-sort`` entry; ``params`` are placeholder sort names in ``body``."""
    params: Tuple[str, ...]
    body: Sort

    def instantiate(self, args: Tuple[Sort, ...]) -> Sort:
        mapping = dict(zip(self.params, args))
        return _substitute_sort(self.body, mapping)


def _substitute_sort(sort: Sort, mapping: Dict[str, Sort]) -> Sort:
    if not sort.params and not sort.indices and sort.name in mapping:
        return mapping[sort.name]
    if not sort.params:
        return sort
    return Sort(sort.name, tuple(_substitute_sort(p, mapping) for p in sort.params), sort.indices)


class SymbolTable:
    """Declared sorts and symbol signatures, keyed by name.

    Declarations keep their insertion order, which is the order the obligation
    declares them in.
    """

    def __init__(self):
        self._declarations: Dict[str, Declaration] = {}
        self._sorts: Dict[str, int] = {}
        self._aliases: Dict[str, SortAlias] = {}

    # ------------------------------------------------------------------
    # Sorts
    # ------------------------------------------------------------------

    def declare_sort(self, name: str, arity: int = 0) -> None:
        self._sorts[name] = arity

    def define_sort(self, name: str, alias: SortAlias) -> None:
        self._aliases[name] = alias

    def is_sort_name(self, name: str) -> bool:
        return name in self._sorts or name in self._aliases or name in BUILTIN_SORT_NAMES

    def sort_arity(self, name: str) -> Optional[int]:
        return self._sorts.get(name)

    def get_alias(self, name: str) -> Optional[SortAlias]:
        return self._aliases.get(name)

    @property
    def user_sorts(self) -> List[str]:
        return list(self._sorts)

    # ------------------------------------------------------------------
    # Symbols
    # ------------------------------------------------------------------

    def declare(self, decl: Declaration) -> Declaration:
        """Register ``decl``, replacing an earlier declaration of the same name."""
        prev = self._declarations.get(decl.name)
        if prev is not None:
            logger.debug("Redeclaring %s (%s -> %s)", decl.name, prev.kind.value, decl.kind.value)
        self._declarations[decl.name] = decl
        return decl

    def lookup(self, name: str) -> Optional[Declaration]:
        return self._declarations.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self._declarations

    def __iter__(self) -> Iterator[Declaration]:
        return iter(self._declarations.values())

    def __len__(self) -> int:
        return len(self._declarations)
