"""Isabelle theory generation for model validation.

The generated theory states "the model satisfies the formula" as one lemma:
the model's definitions are assumptions, the conjunction of the formula's
assertions is the goal. The theory is self-contained: it imports only
standard HOL sessions and carries its own helper definitions.

If the lemma is accepted the theory prints ``PROVED_MARKER``.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import re
from typing import Dict, List, Sequence, Set, Tuple

from ..config import ValidatorConfig
from ..smtlib import theories
from ..smtlib.model import Definition, Formula, Model
from ..smtlib.sorts import Sort
from ..smtlib.terms import free_symbols
from ..translator.names import escape_identifier
from ..translator.operators import helper_closure, helper_definition, helper_fact
from ..translator.term_translator import TermTranslator, conjunction

logger = logging.getLogger(__name__)

PROVED_MARKER = "smtmv: goal proved"
LEMMA_NAME = "validation"

_PLAIN_IMPORT = re.compile(r"[A-Za-z][A-Za-z0-9_]*\Z")


@dataclass(frozen=True)
class Lemma:
    """One lemma with its proof script.

    Attributes:
        name: Lemma name
        fixes: (name, type) for every symbol of the obligation
        assumptions: (label, propositions) groups
        goal: Proposition to show
        simp_add: Facts handed to the proof method
        method: ``simp`` or ``auto``
    """

    name: str
    fixes: Tuple[Tuple[str, str], ...]
    assumptions: Tuple[Tuple[str, Tuple[str, ...]], ...]
    goal: str
    simp_add: Tuple[str, ...] = ()
    method: str = "simp"

    def proof_method(self) -> str:
        if not self.simp_add:
            return self.method
        facts = " ".join(self.simp_add)
        if self.method == "auto":
            return f"(auto simp add: {facts})"
        return f"(simp add: {facts})"

    def to_isabelle(self) -> str:
        lines = [f"lemma {self.name}:"]
        for i, (name, typ) in enumerate(self.fixes):
            lead = "  fixes" if i == 0 else "    and"
            lines.append(f'{lead} {name} :: "{typ}"')
        for i, (label, props) in enumerate(self.assumptions):
            lead = "  assumes" if i == 0 else "    and"
            quoted = [f'"{p}"' for p in props]
            lines.append(f"{lead} {label}: {quoted[0]}")
            for q in quoted[1:]:
                lines.append(f"      {q}")
        lines.append(f'  shows "{self.goal}"')
        lines.append(f"  apply {self.proof_method()}")
        lines.append("  done")
        return "\n".join(lines)


@dataclass(frozen=True)
class Theory:
    """A complete theory file: imports, prelude definitions and the lemma."""

    name: str
    imports: Tuple[str, ...]
    prelude: Tuple[str, ...]
    lemma: Lemma

    def to_isabelle(self) -> str:
        imports = " ".join(i if _PLAIN_IMPORT.match(i) else f'"{i}"' for i in self.imports)
        parts = [f"theory {self.name}\n  imports {imports}\nbegin"]
        parts.extend(self.prelude)
        parts.append(self.lemma.to_isabelle())
        parts.append(f'ML \\<open>writeln "{PROVED_MARKER}"\\<close>')
        parts.append("end")
        return "\n\n".join(parts) + "\n"


def reachable_definitions(assertions, definitions: Sequence[Definition]) -> Tuple[Tuple[Definition, ...], Set[str]]:
    """Definitions the assertions reach, directly or through other definitions.

    Returns:
        The reached definitions in their given order, and every symbol name
        the obligation mentions
    """
    by_name: Dict[str, Definition] = {d.name: d for d in definitions}
    reached: Set[str] = set()
    todo: List[str] = []
    for a in assertions:
        todo.extend(free_symbols(a))
    while todo:
        name = todo.pop()
        if name in reached:
            continue
        reached.add(name)
        d = by_name.get(name)
        if d is not None:
            params = {p for p, _ in d.params}
            todo.extend(free_symbols(d.body) - params)
    return tuple(d for d in definitions if d.name in reached), reached


class ObligationAssembler:
    """Builds the validation theory for a parsed formula and model."""

    def __init__(self, translator: TermTranslator, config: ValidatorConfig):
        self.translator = translator
        self.config = config

    def assemble(self, formula: Formula, model: Model) -> Theory:
        """Build the theory stating that ``model`` satisfies ``formula``.

        Formula definitions come first and model definitions after them. The
        parser rejects a model that changes a formula definition, so a name
        defined twice here comes from the model alone. Definitions the
        formula does not reach are left out.

        Raises:
            UnsupportedConstructError: If a term or sort has no translation
        """
        tr = self.translator
        effective = Model(formula.definitions + model.definitions).effective()
        kept, reached = reachable_definitions(formula.assertions, effective)
        for d in effective:
            if d not in kept:
                logger.debug("Dropping definition of %s: not used by the formula", d.name)

        goals = [tr.translate(a) for a in formula.assertions]
        logger.info("Converted formula")
        equations = [tr.translate_definition(d) for d in kept]
        logger.info("Converted model")

        helpers: List[str] = []
        for a in formula.assertions:
            helpers.extend(tr.required_helpers(a))
        for d in kept:
            helpers.extend(tr.required_helpers(d.body))
        helpers = list(helper_closure(helpers))

        defined = {d.name for d in kept}
        used = [decl for decl in tr.symbols
                if decl.name in reached and not theories.is_builtin(decl.name)]
        fixes = [decl for decl in used if decl.name not in defined]
        fixes += [decl for decl in used if decl.name in defined]

        assumptions = []
        if equations:
            assumptions.append(("model", tuple(equations)))
        universe = self._universe(model, reached)
        if universe:
            assumptions.append(("universe", tuple(universe)))

        simp_add = tuple(label for label, _ in assumptions) + tuple(helper_fact(h) for h in helpers)
        lemma = Lemma(
            name=LEMMA_NAME,
            fixes=tuple((escape_identifier(d.name), tr.types.translate_signature(d.arg_sorts, d.result))
                        for d in fixes),
            assumptions=tuple(assumptions),
            goal=conjunction(goals),
            simp_add=simp_add,
            method=self.config.method,
        )
        return Theory(
            name=self.config.theory_name,
            imports=self.config.imports,
            prelude=tuple(helper_definition(h) for h in helpers),
            lemma=lemma,
        )

    def _universe(self, model: Model, reached: Set[str]) -> List[str]:
        # Universe elements a model declares for one sort are distinct values.
        by_sort: Dict[Sort, List[str]] = {}
        for decl in model.declarations:
            if decl.is_constant and decl.name in reached:
                by_sort.setdefault(decl.result, []).append(escape_identifier(decl.name))
        return [f"distinct [{', '.join(names)}]" for names in by_sort.values() if len(names) > 1]
