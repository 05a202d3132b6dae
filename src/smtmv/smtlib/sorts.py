"""
SMT-LIB sorts.

Sorts are compared structurally: two sorts are equal iff their names,
parameters and indices match.
"""
from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True)
class Sort:
    """A sort reference.

    Attributes:
        name: Sort symbol (``Bool``, ``Int``, ``BitVec``, ``Array``, or a user sort)
        params: Sort parameters (``Array`` index and element sorts)
        indices: Numeral indices (``BitVec`` width)
    """
    name: str
    params: Tuple["Sort", ...] = ()
    indices: Tuple[int, ...] = ()

    def __str__(self) -> str:
        if self.indices:
            head = f"(_ {self.name} {' '.join(str(i) for i in self.indices)})"
        else:
            head = self.name
        if self.params:
            return f"({head} {' '.join(str(p) for p in self.params)})"
        return head

    @property
    def is_bitvec(self) -> bool:
        return self.name == "BitVec" and len(self.indices) == 1

    @property
    def is_array(self) -> bool:
        return self.name == "Array" and len(self.params) == 2

    @property
    def width(self) -> int:
        """Bit width of a ``(_ BitVec n)`` sort."""
        if not self.is_bitvec:
            raise ValueError(f"Sort {self} is not a bit-vector sort")
        return self.indices[0]


BOOL = Sort("Bool")
INT = Sort("Int")
REAL = Sort("Real")
STRING = Sort("String")

BUILTIN_SORT_NAMES = frozenset({"Bool", "Int", "Real", "String", "BitVec", "Array"})


def bitvec(width: int) -> Sort:
    return Sort("BitVec", indices=(width,))


def array(index: Sort, element: Sort) -> Sort:
    return Sort("Array", params=(index, element))


def make_builtin(name: str, params: Tuple[Sort, ...], indices: Tuple[int, ...]) -> Optional[Sort]:
    """Build a built-in sort, or return None if the shape is not a built-in one."""
    if name in ("Bool", "Int", "Real", "String") and not params and not indices:
        return Sort(name)
    if name == "BitVec" and not params and len(indices) == 1 and indices[0] > 0:
        return bitvec(indices[0])
    if name == "Array" and len(params) == 2 and not indices:
        return array(params[0], params[1])
    return None
