"""
SMT model validation through Isabelle/HOL.

This package checks whether a model produced by an SMT solver satisfies an
SMT-LIB formula by turning the question into an Isabelle lemma and proving
it in batch mode.
"""

__version__ = "0.1.0"

from .errors import (
    SmtmvError,
    ParseError,
    SmtSyntaxError,
    UndeclaredSymbolError,
    SortMismatchError,
    NoModelError,
    ModelConflictError,
    UnsupportedConstructError,
    ProverEnvironmentError,
    ExecutionError,
)
from .config import ValidatorConfig
from .smtlib import SmtLibParser, parse_pair
from .solver import Verdict, VerdictKind, Z3ModelChecker
from .verification import ModelValidator, ValidationResult, validate_files

__all__ = [
    "SmtmvError",
    "ParseError",
    "SmtSyntaxError",
    "UndeclaredSymbolError",
    "SortMismatchError",
    "NoModelError",
    "ModelConflictError",
    "UnsupportedConstructError",
    "ProverEnvironmentError",
    "ExecutionError",
    "ValidatorConfig",
    "SmtLibParser",
    "parse_pair",
    "Verdict",
    "VerdictKind",
    "Z3ModelChecker",
    "ModelValidator",
    "ValidationResult",
    "validate_files",
]
