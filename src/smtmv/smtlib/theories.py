"""
Sort signatures of the built-in SMT-LIB operators in the supported theory set.

Each rule takes the operator name, the argument sorts and the identifier
indices and returns the result sort, or raises ``SignatureError`` describing
the mismatch. The parser turns that into a ``SortMismatchError`` with source
position.
"""
from typing import Callable, Dict, Sequence, Tuple

from .sorts import BOOL, INT, REAL, STRING, Sort, bitvec

SignatureRule = Callable[[str, Sequence[Sort], Tuple[int, ...]], Sort]


class SignatureError(Exception):
    """Operand sorts (or arity) do not fit the operator."""


def _arity(op: str, args: Sequence[Sort], lo: int, hi: int = -1):
    if len(args) < lo or (hi >= 0 and len(args) > hi):
        if hi == lo:
            want = f"{lo}"
        elif hi < 0:
            want = f"at least {lo}"
        else:
            want = f"{lo} to {hi}"
        raise SignatureError(f"'{op}' expects {want} argument(s), got {len(args)}")


def _no_indices(op: str, indices: Tuple[int, ...]):
    if indices:
        raise SignatureError(f"'{op}' does not take indices")


def _all_same(op: str, args: Sequence[Sort]) -> Sort:
    first = args[0]
    for i, s in enumerate(args[1:], start=2):
        if s != first:
            raise SignatureError(f"'{op}' argument {i} has sort {s}, expected {first}")
    return first


def _bool_op(lo: int, hi: int = -1) -> SignatureRule:
    def rule(op, args, indices):
        _no_indices(op, indices)
        _arity(op, args, lo, hi)
        for i, s in enumerate(args, start=1):
            if s != BOOL:
                raise SignatureError(f"'{op}' argument {i} has sort {s}, expected Bool")
        return BOOL
    return rule


def _equality(op, args, indices):
    _no_indices(op, indices)
    _arity(op, args, 2)
    _all_same(op, args)
    return BOOL


def _ite(op, args, indices):
    _no_indices(op, indices)
    _arity(op, args, 3, 3)
    if args[0] != BOOL:
        raise SignatureError(f"'ite' condition has sort {args[0]}, expected Bool")
    if args[1] != args[2]:
        raise SignatureError(f"'ite' branches have different sorts: {args[1]} and {args[2]}")
    return args[1]


def _numeric(lo: int, result_bool: bool = False, sorts=(INT, REAL), hi: int = -1) -> SignatureRule:
    def rule(op, args, indices):
        _no_indices(op, indices)
        _arity(op, args, lo, hi)
        s = _all_same(op, args)
        if s not in sorts:
            allowed = " or ".join(str(x) for x in sorts)
            raise SignatureError(f"'{op}' expects {allowed} operands, got {s}")
        return BOOL if result_bool else s
    return rule


def _unary(arg: Sort, result: Sort) -> SignatureRule:
    def rule(op, args, indices):
        _no_indices(op, indices)
        _arity(op, args, 1, 1)
        if args[0] != arg:
            raise SignatureError(f"'{op}' expects a {arg} operand, got {args[0]}")
        return result
    return rule


def _bv(lo: int, hi: int = -1, result_bool: bool = False) -> SignatureRule:
    def rule(op, args, indices):
        _no_indices(op, indices)
        _arity(op, args, lo, hi)
        s = _all_same(op, args)
        if not s.is_bitvec:
            raise SignatureError(f"'{op}' expects bit-vector operands, got {s}")
        return BOOL if result_bool else s
    return rule


def _concat(op, args, indices):
    _no_indices(op, indices)
    _arity(op, args, 2, 2)
    for s in args:
        if not s.is_bitvec:
            raise SignatureError(f"'concat' expects bit-vector operands, got {s}")
    return bitvec(args[0].width + args[1].width)


def _extract(op, args, indices):
    _arity(op, args, 1, 1)
    if len(indices) != 2:
        raise SignatureError("'extract' takes two indices")
    hi, lo = indices
    s = args[0]
    if not s.is_bitvec:
        raise SignatureError(f"'extract' expects a bit-vector operand, got {s}")
    if not (0 <= lo <= hi < s.width):
        raise SignatureError(f"'extract' indices {hi} {lo} out of range for {s}")
    return bitvec(hi - lo + 1)


def _extend(op, args, indices):
    _arity(op, args, 1, 1)
    if len(indices) != 1:
        raise SignatureError(f"'{op}' takes one index")
    s = args[0]
    if not s.is_bitvec:
        raise SignatureError(f"'{op}' expects a bit-vector operand, got {s}")
    return bitvec(s.width + indices[0])


def _select(op, args, indices):
    _no_indices(op, indices)
    _arity(op, args, 2, 2)
    arr, idx = args
    if not arr.is_array:
        raise SignatureError(f"'select' expects an array, got {arr}")
    if idx != arr.params[0]:
        raise SignatureError(f"'select' index has sort {idx}, expected {arr.params[0]}")
    return arr.params[1]


def _store(op, args, indices):
    _no_indices(op, indices)
    _arity(op, args, 3, 3)
    arr, idx, val = args
    if not arr.is_array:
        raise SignatureError(f"'store' expects an array, got {arr}")
    if idx != arr.params[0]:
        raise SignatureError(f"'store' index has sort {idx}, expected {arr.params[0]}")
    if val != arr.params[1]:
        raise SignatureError(f"'store' value has sort {val}, expected {arr.params[1]}")
    return arr


def _strings(lo: int, hi: int = -1, result: Sort = STRING) -> SignatureRule:
    def rule(op, args, indices):
        _no_indices(op, indices)
        _arity(op, args, lo, hi)
        for i, s in enumerate(args, start=1):
            if s != STRING:
                raise SignatureError(f"'{op}' argument {i} has sort {s}, expected String")
        return result
    return rule


def _fixed(params: Tuple[Sort, ...], result: Sort) -> SignatureRule:
    def rule(op, args, indices):
        _no_indices(op, indices)
        _arity(op, args, len(params), len(params))
        for i, (s, want) in enumerate(zip(args, params), start=1):
            if s != want:
                raise SignatureError(f"'{op}' argument {i} has sort {s}, expected {want}")
        return result
    return rule


BUILTIN_OPERATORS: Dict[str, SignatureRule] = {
    # Core
    "not": _bool_op(1, 1),
    "and": _bool_op(1),
    "or": _bool_op(1),
    "xor": _bool_op(2),
    "=>": _bool_op(2),
    "=": _equality,
    "distinct": _equality,
    "ite": _ite,
    # Ints / Reals
    "+": _numeric(1),
    "-": _numeric(1),
    "*": _numeric(1),
    "/": _numeric(2, sorts=(REAL,)),
    "div": _numeric(2, sorts=(INT,)),
    "mod": _numeric(2, sorts=(INT,), hi=2),
    "abs": _unary(INT, INT),
    "<": _numeric(2, result_bool=True),
    "<=": _numeric(2, result_bool=True),
    ">": _numeric(2, result_bool=True),
    ">=": _numeric(2, result_bool=True),
    "to_real": _unary(INT, REAL),
    "to_int": _unary(REAL, INT),
    "is_int": _unary(REAL, BOOL),
    # FixedSizeBitVectors
    "bvnot": _bv(1, 1),
    "bvneg": _bv(1, 1),
    "bvand": _bv(2),
    "bvor": _bv(2),
    "bvxor": _bv(2),
    "bvadd": _bv(2),
    "bvsub": _bv(2, 2),
    "bvmul": _bv(2),
    "bvudiv": _bv(2, 2),
    "bvurem": _bv(2, 2),
    "bvsdiv": _bv(2, 2),
    "bvsrem": _bv(2, 2),
    "bvsmod": _bv(2, 2),
    "bvshl": _bv(2, 2),
    "bvlshr": _bv(2, 2),
    "bvashr": _bv(2, 2),
    "bvult": _bv(2, 2, result_bool=True),
    "bvule": _bv(2, 2, result_bool=True),
    "bvugt": _bv(2, 2, result_bool=True),
    "bvuge": _bv(2, 2, result_bool=True),
    "bvslt": _bv(2, 2, result_bool=True),
    "bvsle": _bv(2, 2, result_bool=True),
    "bvsgt": _bv(2, 2, result_bool=True),
    "bvsge": _bv(2, 2, result_bool=True),
    "concat": _concat,
    "extract": _extract,
    "zero_extend": _extend,
    "sign_extend": _extend,
    # ArraysEx
    "select": _select,
    "store": _store,
    # Strings
    "str.++": _strings(2),
    "str.len": _unary(STRING, INT),
    "str.at": _fixed((STRING, INT), STRING),
    "str.substr": _fixed((STRING, INT, INT), STRING),
    "str.prefixof": _strings(2, 2, BOOL),
    "str.suffixof": _strings(2, 2, BOOL),
    "str.contains": _strings(2, 2, BOOL),
    "str.indexof": _fixed((STRING, STRING, INT), INT),
    "str.replace": _strings(3, 3),
    "str.<": _strings(2, result=BOOL),
    "str.<=": _strings(2, result=BOOL),
    "str.to_int": _unary(STRING, INT),
    "str.from_int": _unary(INT, STRING),
    # names used before SMT-LIB 2.6
    "str.to.int": _unary(STRING, INT),
    "int.to.str": _unary(INT, STRING),
}

BOOLEAN_CONSTANTS = {"true": True, "false": False}

# Identifiers the parser builds applications for without a signature rule:
# ((as const (Array I E)) v) and z3's (_ as-array f).
SPECIAL_IDENTIFIERS = frozenset({"const", "as-array"})


def result_sort(op: str, args: Sequence[Sort], indices: Tuple[int, ...] = ()) -> Sort:
    """Result sort of built-in ``op`` applied to ``args``.

    Raises:
        KeyError: If ``op`` is not a built-in operator
        SignatureError: If the operands do not fit
    """
    return BUILTIN_OPERATORS[op](op, args, indices)


def is_builtin(op: str) -> bool:
    return op in BUILTIN_OPERATORS or op in BOOLEAN_CONSTANTS or op in SPECIAL_IDENTIFIERS
