"""
Parsed formula and model containers.
"""
from dataclasses import dataclass
import logging
import re
from typing import Dict, Tuple

from ..errors import NoModelError
from .sorts import Sort
from .symbols import Declaration
from .terms import Term

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Definition:
    """A ``define-fun``: signature, parameter binders and defining body."""
    declaration: Declaration
    params: Tuple[Tuple[str, Sort], ...]
    body: Term

    @property
    def name(self) -> str:
        return self.declaration.name


@dataclass(frozen=True)
class Formula:
    """Assertions of a formula file, read as one conjunction.

    Attributes:
        assertions: Bool terms from ``assert`` commands, in file order
        definitions: ``define-fun`` commands of the formula file
    """
    assertions: Tuple[Term, ...] = ()
    definitions: Tuple[Definition, ...] = ()


@dataclass(frozen=True)
class Model:
    """Ordered interpretation of symbols, as produced by a solver.

    Attributes:
        definitions: ``define-fun`` entries in model order
        declarations: Extra uninterpreted values the model declares
            (e.g. universe elements of uninterpreted sorts)
    """
    definitions: Tuple[Definition, ...] = ()
    declarations: Tuple[Declaration, ...] = ()

    def effective(self) -> Tuple[Definition, ...]:
        """Definitions with later redefinitions of a name replacing earlier ones.

        A name keeps the position of its first definition.
        """
        out: Dict[str, Definition] = {}
        for d in self.definitions:
            if d.name in out:
                logger.debug("Model redefines %s; using the later definition", d.name)
            out[d.name] = d
        return tuple(out.values())

    def defined_names(self):
        return {d.name for d in self.definitions}


_NO_MODEL = re.compile(r"^(unsat|unknown)\b")
_SAT_LINE = re.compile(r"^\s*sat\s*$", re.MULTILINE)


def sanitize_model(text: str) -> str:
    """Extract the model commands from raw solver output.

    Strips a leading ``sat`` line together with the parentheses wrapping the
    model, and the ``model`` keyword older z3 versions print.

    Raises:
        NoModelError: If the output reports ``unsat``/``unknown`` or has no model
    """
    model = text.strip()
    if len(_SAT_LINE.findall(model)) > 1:
        logger.warning("Multiple 'sat' in model, did you provide two models?")

    m = _NO_MODEL.match(model)
    if m:
        raise NoModelError(f"Solver output reports '{m.group(1)}'; there is no model to check")
    if model == "sat":
        raise NoModelError("Solver output contains no model")

    if re.match(r"sat\s*\(", model):
        model = model[len("sat"):].strip()
        inner = model[1:-1].strip()
        if model.endswith(")") and (inner.startswith("(") or re.match(r"model\b", inner)):
            model = inner

    if re.match(r"model\b", model):
        model = model[len("model"):].strip()

    return model
