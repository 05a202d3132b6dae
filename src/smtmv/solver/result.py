"""
Verdict types.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class VerdictKind(Enum):
    """Outcome of checking a model against a formula."""
    SATISFIED = "sat"
    REFUTED = "unsat"
    INDETERMINATE = "unknown"


@dataclass(frozen=True)
class Verdict:
    """Result of one validation run.

    Attributes:
        kind: Satisfied, Refuted or Indeterminate
        diagnostic: Why the verdict is Indeterminate (e.g. ``timeout``), or
            an excerpt of the prover output
        prover_name: Backend that produced the verdict
        prover_time_ms: Time spent in the prover in milliseconds
    """
    kind: VerdictKind
    diagnostic: Optional[str] = None
    prover_name: str = "unknown"
    prover_time_ms: float = 0.0

    @property
    def holds(self) -> bool:
        """True if the model satisfies the formula."""
        return self.kind is VerdictKind.SATISFIED

    def __str__(self) -> str:
        return self.kind.value

    def describe(self) -> str:
        text = f"{self.kind.value} ({self.prover_name}, {self.prover_time_ms:.2f}ms)"
        if self.diagnostic:
            text += f": {self.diagnostic}"
        return text
