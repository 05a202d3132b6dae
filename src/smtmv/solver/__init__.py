"""Backend abstraction layer for model checking.

The Isabelle checker lives in ``smtmv.verification``; this package holds the
shared verdict types and the z3 reference checker.
"""

from .base import ModelChecker
from .result import Verdict, VerdictKind
from .z3_solver import Z3ModelChecker

__all__ = [
    "ModelChecker",
    "Verdict",
    "VerdictKind",
    "Z3ModelChecker",
]
