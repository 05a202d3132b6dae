"""Isabelle-based model validation.

Generates a validation theory, runs Isabelle in batch mode as a subprocess
and classifies its output.
"""

from .obligation import Lemma, Theory, ObligationAssembler, PROVED_MARKER
from .prover_runner import (
    RunStatus,
    ProverRunResult,
    TheoryProver,
    IsabelleProcess,
    is_isabelle_available,
)
from .classifier import classify
from .validator import (
    ValidationResult,
    ModelValidator,
    IsabelleModelChecker,
    make_checker,
    validate_files,
)

__all__ = [
    "Lemma",
    "Theory",
    "ObligationAssembler",
    "PROVED_MARKER",
    "RunStatus",
    "ProverRunResult",
    "TheoryProver",
    "IsabelleProcess",
    "is_isabelle_available",
    "classify",
    "ValidationResult",
    "ModelValidator",
    "IsabelleModelChecker",
    "make_checker",
    "validate_files",
]
