"""
Abstract interface for model checking backends.
"""
from typing import Protocol, runtime_checkable

from ..smtlib.model import Formula, Model
from ..smtlib.symbols import SymbolTable
from .result import Verdict


@runtime_checkable
class ModelChecker(Protocol):
    """Protocol for backends that decide whether a model satisfies a formula.

    This allows the Isabelle batch checker and the z3 reference checker to
    be used interchangeably over the same parsed input.
    """

    name: str

    def check(self, formula: Formula, model: Model, symbols: SymbolTable) -> Verdict:
        """Check ``model`` against ``formula``.

        Args:
            formula: Parsed assertions and formula definitions
            model: Parsed model definitions
            symbols: Symbol Table shared by formula and model

        Returns:
            Verdict with kind Satisfied, Refuted or Indeterminate
        """
        ...
