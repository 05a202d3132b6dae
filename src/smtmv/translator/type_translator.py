"""
Type translator from SMT-LIB sorts to Isabelle/HOL types.
"""
from typing import Dict, Iterable, List

from ..errors import UnsupportedConstructError
from ..smtlib.sorts import Sort
from .names import escape_type_variable


class TypeTranslator:
    """Translates SMT-LIB sorts to Isabelle/HOL type expressions.

    Mapping:
        Bool -> bool
        Int -> int
        Real -> real
        String -> string
        (_ BitVec N) -> N word
        (Array I E) -> (I => E)
        declared sort S -> type variable 'S
    """

    _BASIC = {
        "Bool": "bool",
        "Int": "int",
        "Real": "real",
        "String": "string",
    }

    def __init__(self, user_sorts: Iterable[str] = ()):
        """Initialize type translator.

        Args:
            user_sorts: Names of sorts introduced by ``declare-sort``
        """
        self._user_sorts = set(user_sorts)
        self._type_cache: Dict[Sort, str] = {}

    def translate(self, sort: Sort) -> str:
        """Translate a sort to an Isabelle type.

        Args:
            sort: Parsed sort

        Returns:
            Isabelle type text

        Raises:
            UnsupportedConstructError: If the sort has no Isabelle counterpart
        """
        cached = self._type_cache.get(sort)
        if cached is None:
            cached = self._translate(sort)
            self._type_cache[sort] = cached
        return cached

    def _translate(self, sort: Sort) -> str:
        if sort.name in self._BASIC and not sort.params and not sort.indices:
            return self._BASIC[sort.name]
        if sort.is_bitvec:
            return self.translate_bitvec(sort.width)
        if sort.is_array:
            return self.translate_array(sort.params[0], sort.params[1])
        if sort.name in self._user_sorts and not sort.params and not sort.indices:
            return escape_type_variable(sort.name)
        raise UnsupportedConstructError(str(sort), "sort")

    def translate_bitvec(self, width: int) -> str:
        return f"{width} word"

    def translate_array(self, index: Sort, element: Sort) -> str:
        """Arrays are total functions from index to element type."""
        return f"({self.translate(index)} \\<Rightarrow> {self.translate(element)})"

    def translate_signature(self, arg_sorts: Iterable[Sort], result: Sort) -> str:
        """Curried function type for a symbol signature."""
        parts: List[str] = [self.translate(s) for s in arg_sorts]
        parts.append(self.translate(result))
        return " \\<Rightarrow> ".join(parts)
