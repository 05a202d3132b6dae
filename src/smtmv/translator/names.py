"""
Isabelle identifiers for SMT-LIB symbols.

SMT-LIB symbols may contain characters Isabelle identifiers cannot (``!``,
``.``, ``|``-quoted text) and may clash with HOL constants or Isar keywords.
``escape_identifier`` maps every symbol to a distinct Isabelle identifier:

- ``[A-Za-z][A-Za-z0-9]*`` names that are not reserved stay verbatim
- everything else becomes ``v_`` followed by an encoding that keeps ASCII
  letters and digits and writes any other code point, ``_`` included, as
  ``_hhhh`` (``_uhhhhhh`` above U+FFFF)

Verbatim names contain no ``_``, so they never collide with encoded ones. The
encoding is decodable, so the mapping is injective, and it never ends in ``_``
(Isabelle reserves such names for internal and Skolem constants). The empty
symbol ``||`` gets ``v__uempty``, which no other name encodes to.
"""
import re
from typing import Dict, FrozenSet, Iterable, Mapping, Optional, Tuple

RESERVED = frozenset({
    # Isar / inner syntax keywords
    "if", "then", "else", "let", "in", "case", "of", "o", "O", "div", "mod",
    "and", "or", "not", "lemma", "theory", "begin", "end", "assumes", "shows",
    "fixes", "where", "is", "for", "apply", "done", "by", "using", "unfolding",
    "defines", "obtains", "imports", "definition", "fun", "CHR", "SOME", "THE",
    "ALL", "EX", "LEAST", "GREATEST", "SUM", "PROD", "UN", "INT", "TYPE",
    "PROP", "CONST", "XCONST", "SIGMA", "MOST", "INFM", "UNIV", "Pi",
    # word bit operations from HOL-Library.Word
    "AND", "OR", "XOR", "NOT",
    # HOL constants the translation relies on
    "fst", "snd", "id", "True", "False", "undefined", "Suc", "abs", "min", "max",
    "dvd", "int", "nat", "real", "word", "floor", "ceiling", "length", "ucast",
    "scast", "unat", "uint", "sint", "push", "drop", "distinct", "model", "universe",
})

_VERBATIM = re.compile(r"[A-Za-z][A-Za-z0-9]*\Z")
_ALNUM = re.compile(r"[A-Za-z0-9]")
_EMPTY = "v__uempty"


def _encode(name: str) -> str:
    out = []
    for ch in name:
        if _ALNUM.match(ch):
            out.append(ch)
        elif ord(ch) > 0xFFFF:
            out.append(f"_u{ord(ch):06x}")
        else:
            out.append(f"_{ord(ch):04x}")
    return "".join(out)


def escape_identifier(name: str) -> str:
    """Isabelle identifier for the SMT-LIB symbol ``name``."""
    if not name:
        return _EMPTY
    if _VERBATIM.match(name) and name not in RESERVED:
        return name
    return "v_" + _encode(name)


def escape_type_variable(name: str) -> str:
    """Isabelle type variable standing for the uninterpreted sort ``name``."""
    return "'" + escape_identifier(name)


class BinderScope:
    """Mapping from SMT-LIB binder names to the Isabelle names in use.

    Scopes are immutable; entering a binder returns a new scope. ``taken``
    holds every Isabelle name visible at this point (global symbols and
    enclosing binders), which a new binder must not reuse.
    """

    def __init__(self, names: Optional[Mapping[str, str]] = None,
                 taken: Iterable[str] = ()):
        self._names: Dict[str, str] = dict(names or {})
        self._taken: FrozenSet[str] = frozenset(taken) | frozenset(self._names.values())

    def lookup(self, name: str) -> Optional[str]:
        return self._names.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self._names

    @property
    def taken(self) -> FrozenSet[str]:
        return self._taken

    def fresh(self, name: str, avoid: Iterable[str] = ()) -> str:
        """Isabelle name for a new binder ``name``.

        The escaped name is used unless it is reserved, visible in this scope
        or listed in ``avoid``; then ``'1``, ``'2``, ... is appended.
        """
        base = escape_identifier(name)
        avoid = self._taken | frozenset(avoid)
        if base not in avoid and base not in RESERVED:
            return base
        n = 1
        while f"{base}'{n}" in avoid:
            n += 1
        return f"{base}'{n}"

    def bind(self, pairs: Iterable[Tuple[str, str]]) -> "BinderScope":
        """New scope with the (SMT-LIB name, Isabelle name) ``pairs`` added."""
        names = dict(self._names)
        names.update(pairs)
        return BinderScope(names, self._taken | frozenset(names.values()))
