"""
Isabelle spellings of the built-in SMT-LIB operators.

Each operator maps to an ``OperatorSpec`` that says how an application is
rendered:

- ``infix``: ``(a op b)``; n-ary applications are unrolled by ``assoc``
- ``prefix``: ``(f a b)``; n-ary applications are unrolled by ``assoc``
- ``section``: ``((op) a b)``, the form used for ``spec.json`` overrides
- ``template``: a format string over the translated arguments ``{0}``,
  ``{1}``, ..., the indices ``{i0}``, ``{i1}``, the result type ``{type}``
  and the array index type ``{index}``

Where SMT-LIB and HOL disagree (integer division, division by zero on bit
vectors, shift amounts, signed comparisons) the spelling refers to a helper
definition emitted into the theory prelude.
"""
from dataclasses import dataclass, replace
import json
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple, Union

from ..errors import ProverEnvironmentError, UnsupportedConstructError

logger = logging.getLogger(__name__)

INFIX = "infix"
PREFIX = "prefix"
SECTION = "section"
TEMPLATE = "template"

OVERRIDES_FILE = "spec.json"


@dataclass(frozen=True)
class OperatorSpec:
    """How one SMT-LIB operator is written in Isabelle.

    Attributes:
        mapsto: Isabelle spelling; None disables the operator
        fixity: One of ``infix``, ``prefix``, ``section``, ``template``
        assoc: ``left`` or ``right`` for n-ary operators
        chainable: ``(op a b c)`` means ``(op a b) and (op b c)``
        pairwise: ``(op a b c)`` means the operator holds for every pair
        unary: Template used for a single-argument application
        helpers: Prelude definitions the spelling refers to
    """
    mapsto: Optional[str]
    fixity: str = PREFIX
    assoc: Optional[str] = None
    chainable: bool = False
    pairwise: bool = False
    unary: Optional[str] = None
    helpers: Tuple[str, ...] = ()

    @property
    def enabled(self) -> bool:
        return self.mapsto is not None


def _infix(op: str, assoc: Optional[str] = None, **kw) -> OperatorSpec:
    return OperatorSpec(op, INFIX, assoc=assoc, **kw)


def _prefix(fn: str, assoc: Optional[str] = None, helpers: Tuple[str, ...] = ()) -> OperatorSpec:
    return OperatorSpec(fn, PREFIX, assoc=assoc, helpers=helpers)


def _template(text: str, helpers: Tuple[str, ...] = ()) -> OperatorSpec:
    return OperatorSpec(text, TEMPLATE, helpers=helpers)


DEFAULT_OPERATORS: Dict[str, OperatorSpec] = {
    # Core
    "not": _prefix(r"\<not>"),
    "and": _infix(r"\<and>", "right"),
    "or": _infix(r"\<or>", "right"),
    "=>": _infix(r"\<longrightarrow>", "right"),
    "xor": _infix(r"\<noteq>", "left"),
    "=": _infix("=", chainable=True),
    "distinct": _infix(r"\<noteq>", pairwise=True),
    "ite": _template("(if {0} then {1} else {2})"),
    # Ints / Reals
    "+": _infix("+", "left"),
    "-": _infix("-", "left", unary="(- {0})"),
    "*": _infix("*", "left"),
    "/": _infix("/", "left"),
    "div": _prefix("smt_div", "left", helpers=("smt_div",)),
    "mod": _prefix("smt_mod", helpers=("smt_mod",)),
    "abs": _prefix("abs"),
    "<": _infix("<", chainable=True),
    "<=": _infix(r"\<le>", chainable=True),
    ">": _infix(">", chainable=True),
    ">=": _infix(r"\<ge>", chainable=True),
    "to_real": _prefix("real_of_int"),
    "to_int": _prefix("floor"),
    "is_int": _template("(of_int (floor {0}) = {0})"),
    # FixedSizeBitVectors
    "bvnot": _prefix("Bit_Operations.not"),
    "bvneg": _template("(- {0})"),
    "bvand": _prefix("Bit_Operations.and", "left"),
    "bvor": _prefix("Bit_Operations.or", "left"),
    "bvxor": _prefix("Bit_Operations.xor", "left"),
    "bvadd": _infix("+", "left"),
    "bvsub": _infix("-", "left"),
    "bvmul": _infix("*", "left"),
    "bvudiv": _prefix("smt_bvudiv", helpers=("smt_bvudiv",)),
    "bvurem": _prefix("smt_bvurem", helpers=("smt_bvurem",)),
    "bvsdiv": OperatorSpec(None),
    "bvsrem": OperatorSpec(None),
    "bvsmod": OperatorSpec(None),
    "bvshl": _prefix("smt_bvshl", helpers=("smt_bvshl",)),
    "bvlshr": _prefix("smt_bvlshr", helpers=("smt_bvlshr",)),
    "bvashr": _prefix("smt_bvashr", helpers=("smt_bvashr",)),
    "bvult": _infix("<"),
    "bvule": _infix(r"\<le>"),
    "bvugt": _infix(">"),
    "bvuge": _infix(r"\<ge>"),
    "bvslt": _prefix("word_sless"),
    "bvsle": _prefix("word_sle"),
    "bvsgt": _prefix("smt_bvsgt", helpers=("smt_bvsgt",)),
    "bvsge": _prefix("smt_bvsge", helpers=("smt_bvsge",)),
    "concat": _template("(word_cat {0} {1} :: {type})"),
    "extract": _template("(ucast (drop_bit {i1} {0}) :: {type})"),
    "zero_extend": _template("(ucast {0} :: {type})"),
    "sign_extend": _template("(scast {0} :: {type})"),
    # ArraysEx
    "select": _template("({0} {1})"),
    "store": _template("({0}({1} := {2}))"),
    "const": _template(r"(\<lambda>_::{index}. {0})"),
    "as-array": _template("{0}"),
    # Strings
    "str.++": _infix("@", "left"),
    "str.len": _template("(int (length {0}))"),
    "str.at": _prefix("smt_str_at", helpers=("smt_str_at",)),
    "str.substr": _prefix("smt_str_substr", helpers=("smt_str_substr",)),
    "str.prefixof": _prefix("smt_str_prefixof", helpers=("smt_str_prefixof",)),
    "str.suffixof": _prefix("smt_str_suffixof", helpers=("smt_str_suffixof",)),
    "str.contains": _prefix("smt_str_contains", helpers=("smt_str_contains",)),
    "str.indexof": _prefix("smt_str_indexof", helpers=("smt_str_indexof",)),
    "str.replace": _prefix("smt_str_replace", helpers=("smt_str_replace",)),
    "str.<": OperatorSpec("smt_str_lt", chainable=True, helpers=("smt_str_lt",)),
    "str.<=": OperatorSpec("smt_str_le", chainable=True, helpers=("smt_str_le",)),
    "str.to_int": _prefix("smt_str_to_int", helpers=("smt_str_to_int",)),
    "str.from_int": _prefix("smt_str_from_int", helpers=("smt_str_from_int",)),
    "str.to.int": _prefix("smt_str_to_int", helpers=("smt_str_to_int",)),
    "int.to.str": _prefix("smt_str_from_int", helpers=("smt_str_from_int",)),
}


# Prelude definitions: name -> (dependencies, Isabelle text). Emitted in this
# order, so dependencies come first.
HELPERS: Dict[str, Tuple[Tuple[str, ...], str]] = {
    "smt_div": ((), r'''definition smt_div :: "int \<Rightarrow> int \<Rightarrow> int" where
  "smt_div a b = (if 0 \<le> b then a div b else - (a div (- b)))"'''),
    "smt_mod": (("smt_div",), r'''definition smt_mod :: "int \<Rightarrow> int \<Rightarrow> int" where
  "smt_mod a b = a - b * smt_div a b"'''),
    "smt_bvudiv": ((), r'''definition smt_bvudiv :: "'a::len word \<Rightarrow> 'a word \<Rightarrow> 'a word" where
  "smt_bvudiv x y = (if y = 0 then - 1 else x div y)"'''),
    "smt_bvurem": ((), r'''definition smt_bvurem :: "'a::len word \<Rightarrow> 'a word \<Rightarrow> 'a word" where
  "smt_bvurem x y = (if y = 0 then x else x mod y)"'''),
    "smt_bvshl": ((), r'''definition smt_bvshl :: "'a::len word \<Rightarrow> 'a word \<Rightarrow> 'a word" where
  "smt_bvshl x y = push_bit (unat y) x"'''),
    "smt_bvlshr": ((), r'''definition smt_bvlshr :: "'a::len word \<Rightarrow> 'a word \<Rightarrow> 'a word" where
  "smt_bvlshr x y = drop_bit (unat y) x"'''),
    "smt_bvashr": ((), r'''definition smt_bvashr :: "'a::len word \<Rightarrow> 'a word \<Rightarrow> 'a word" where
  "smt_bvashr x y = signed_drop_bit (unat y) x"'''),
    "smt_bvsgt": ((), r'''definition smt_bvsgt :: "'a::len word \<Rightarrow> 'a word \<Rightarrow> bool" where
  "smt_bvsgt x y = word_sless y x"'''),
    "smt_bvsge": ((), r'''definition smt_bvsge :: "'a::len word \<Rightarrow> 'a word \<Rightarrow> bool" where
  "smt_bvsge x y = word_sle y x"'''),
    "smt_str_substr": ((), r'''definition smt_str_substr :: "string \<Rightarrow> int \<Rightarrow> int \<Rightarrow> string" where
  "smt_str_substr s i n = (if 0 \<le> i \<and> i < int (length s) \<and> 0 < n then take (nat n) (drop (nat i) s) else [])"'''),
    "smt_str_at": (("smt_str_substr",), r'''definition smt_str_at :: "string \<Rightarrow> int \<Rightarrow> string" where
  "smt_str_at s i = smt_str_substr s i 1"'''),
    "smt_str_prefixof": ((), r'''definition smt_str_prefixof :: "string \<Rightarrow> string \<Rightarrow> bool" where
  "smt_str_prefixof s t = (take (length s) t = s)"'''),
    "smt_str_suffixof": ((), r'''definition smt_str_suffixof :: "string \<Rightarrow> string \<Rightarrow> bool" where
  "smt_str_suffixof s t = (drop (length t - length s) t = s)"'''),
    "smt_str_contains": (("smt_str_prefixof",), r'''fun smt_str_contains :: "string \<Rightarrow> string \<Rightarrow> bool" where
  "smt_str_contains [] t = (t = [])"
| "smt_str_contains (c # s) t = (smt_str_prefixof t (c # s) \<or> smt_str_contains s t)"'''),
    "smt_str_find": (("smt_str_prefixof",), r'''fun smt_str_find :: "string \<Rightarrow> string \<Rightarrow> int \<Rightarrow> int" where
  "smt_str_find [] t n = (if t = [] then n else - 1)"
| "smt_str_find (c # s) t n = (if smt_str_prefixof t (c # s) then n else smt_str_find s t (n + 1))"'''),
    "smt_str_indexof": (("smt_str_find",), r'''definition smt_str_indexof :: "string \<Rightarrow> string \<Rightarrow> int \<Rightarrow> int" where
  "smt_str_indexof s t i = (if 0 \<le> i \<and> i \<le> int (length s) then smt_str_find (drop (nat i) s) t i else - 1)"'''),
    "smt_str_replace": (("smt_str_prefixof",), r'''fun smt_str_replace :: "string \<Rightarrow> string \<Rightarrow> string \<Rightarrow> string" where
  "smt_str_replace [] t u = (if t = [] then u else [])"
| "smt_str_replace (c # s) t u = (if smt_str_prefixof t (c # s) then u @ drop (length t) (c # s) else c # smt_str_replace s t u)"'''),
    "smt_str_lt": ((), r'''fun smt_str_lt :: "string \<Rightarrow> string \<Rightarrow> bool" where
  "smt_str_lt [] t = (t \<noteq> [])"
| "smt_str_lt (c # s) [] = False"
| "smt_str_lt (c # s) (d # t) = ((of_char c :: nat) < of_char d \<or> (c = d \<and> smt_str_lt s t))"'''),
    "smt_str_le": (("smt_str_lt",), r'''definition smt_str_le :: "string \<Rightarrow> string \<Rightarrow> bool" where
  "smt_str_le s t = (s = t \<or> smt_str_lt s t)"'''),
    "smt_str_to_int": ((), r'''definition smt_str_to_int :: "string \<Rightarrow> int" where
  "smt_str_to_int s = (if s \<noteq> [] \<and> (\<forall>c\<in>set s. 48 \<le> (of_char c :: int) \<and> (of_char c :: int) \<le> 57)
    then foldl (\<lambda>n c. 10 * n + (of_char c - 48)) 0 s else - 1)"'''),
    "smt_digits": ((), r'''function smt_digits :: "nat \<Rightarrow> string" where
  "smt_digits n = (if n < 10 then [char_of (48 + n)] else smt_digits (n div 10) @ [char_of (48 + n mod 10)])"
  by pat_completeness auto
termination by (relation "measure id") auto'''),
    "smt_str_from_int": (("smt_digits",), r'''definition smt_str_from_int :: "int \<Rightarrow> string" where
  "smt_str_from_int i = (if i < 0 then [] else smt_digits (nat i))"'''),
}


class OperatorTable:
    """Operator spellings, the defaults plus any theory-root overrides."""

    def __init__(self, specs: Optional[Dict[str, OperatorSpec]] = None):
        self._specs: Dict[str, OperatorSpec] = dict(DEFAULT_OPERATORS if specs is None else specs)

    @classmethod
    def for_theory_root(cls, theory_root: Union[str, Path, None]) -> "OperatorTable":
        """Default table, updated from ``spec.json`` in ``theory_root`` if present."""
        table = cls()
        if theory_root is None:
            return table
        path = Path(theory_root) / OVERRIDES_FILE
        if path.is_file():
            table.load_overrides(path)
        return table

    def load_overrides(self, path: Union[str, Path]) -> None:
        """Apply the operator entries of a ``spec.json`` file.

        Raises:
            ProverEnvironmentError: If the file cannot be read or is not valid JSON
        """
        try:
            data = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise ProverEnvironmentError(f"Cannot read operator overrides {path}: {e}") from e
        self.apply_overrides(data)
        logger.debug("Loaded operator overrides from %s", path)

    def apply_overrides(self, data: dict) -> None:
        """Update spellings from ``{"specs": {theory: {op: {...}}}}``.

        Overrides render in section form ``((op) a b)``. Only operators the
        parser knows can be overridden; others are ignored.
        """
        for theory, ops in (data.get("specs") or {}).items():
            for op, entry in ops.items():
                if op not in self._specs:
                    logger.debug("Ignoring override for unknown operator %s (%s)", op, theory)
                    continue
                mapsto = entry.get("mapsto")
                if mapsto is None:
                    self._specs[op] = replace(self._specs[op], mapsto=None)
                    continue
                self._specs[op] = OperatorSpec(
                    mapsto,
                    SECTION,
                    assoc=entry.get("assoc"),
                    chainable=bool(entry.get("chainable", False)),
                )

    def lookup(self, op: str) -> OperatorSpec:
        """Spelling of ``op``.

        Raises:
            UnsupportedConstructError: If ``op`` is unknown or disabled
        """
        spec = self._specs.get(op)
        if spec is None or not spec.enabled:
            raise UnsupportedConstructError(op, "operator")
        return spec

    def __contains__(self, op: str) -> bool:
        return op in self._specs


def helper_closure(names: Iterable[str]) -> Tuple[str, ...]:
    """``names`` plus their dependencies, in prelude order."""
    wanted = set()
    todo: List[str] = list(names)
    while todo:
        name = todo.pop()
        if name in wanted:
            continue
        wanted.add(name)
        todo.extend(HELPERS[name][0])
    return tuple(n for n in HELPERS if n in wanted)


def helper_definition(name: str) -> str:
    return HELPERS[name][1]


def helper_fact(name: str) -> str:
    """Name of the equations that unfold helper ``name`` in a proof."""
    if HELPERS[name][1].startswith("definition"):
        return f"{name}_def"
    return f"{name}.simps"
