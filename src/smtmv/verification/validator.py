"""High-level model validation API.

- Parse the formula, then the model, over a fresh Symbol Table
- Translate both and assemble the validation theory
- Run Isabelle on it in a scratch directory
- Classify the output as sat / unsat / unknown
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
from typing import Optional, Union

from ..config import ValidatorConfig
from ..smtlib.model import Formula, Model
from ..smtlib.parser import parse_pair
from ..smtlib.symbols import SymbolTable
from ..solver.base import ModelChecker
from ..solver.result import Verdict
from ..solver.z3_solver import Z3ModelChecker
from ..translator.operators import OperatorTable
from ..translator.term_translator import TermTranslator
from .classifier import classify
from .obligation import ObligationAssembler
from .prover_runner import IsabelleProcess, ProverRunResult, TheoryProver

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass(frozen=True)
class ValidationResult:
    """Result of validating one formula/model pair with Isabelle."""

    verdict: Verdict
    theory: str
    run: ProverRunResult

    @property
    def raw_stdout(self) -> str:
        return self.run.stdout

    @property
    def raw_stderr(self) -> str:
        return self.run.stderr


class ModelValidator:
    """Validates models through Isabelle.

    Instances share nothing between calls; every call builds its own Symbol
    Table and scratch directory.
    """

    def __init__(self, config: Optional[ValidatorConfig] = None, prover: Optional[TheoryProver] = None):
        self.config = config or ValidatorConfig()
        self.prover = prover or IsabelleProcess(self.config)

    def validate(self, formula_text: str, model_text: str, theory_root: PathLike) -> ValidationResult:
        """Check ``model_text`` against ``formula_text``.

        Raises:
            ParseError: On malformed, undeclared or ill-sorted input
            UnsupportedConstructError: On constructs without translation
            ProverEnvironmentError: If Isabelle cannot be run on ``theory_root``
            ExecutionError: If Isabelle rejects the theory
        """
        formula, model, symbols = parse_pair(formula_text, model_text)
        return self.validate_parsed(formula, model, symbols, theory_root)

    def validate_parsed(self, formula: Formula, model: Model, symbols: SymbolTable,
                        theory_root: PathLike) -> ValidationResult:
        return self.check_theory(self.build_theory(formula, model, symbols, theory_root), theory_root)

    def build_theory(self, formula: Formula, model: Model, symbols: SymbolTable,
                     theory_root: PathLike) -> str:
        """Validation theory text for a parsed pair."""
        translator = TermTranslator(symbols, OperatorTable.for_theory_root(theory_root))
        theory = ObligationAssembler(translator, self.config).assemble(formula, model).to_isabelle()
        logger.debug("Generated theory:\n%s", theory)
        return theory

    def check_theory(self, theory: str, theory_root: PathLike) -> ValidationResult:
        run = self.prover.run(theory, theory_root, self.config.timeout_s)
        verdict = classify(run)
        logger.info("Verdict: %s", verdict.describe())
        return ValidationResult(verdict, theory, run)


class IsabelleModelChecker:
    """``ModelChecker`` adapter over ``ModelValidator`` for a fixed theory root.

    The last generated theory is kept, also when the run fails, so callers
    can inspect it.
    """

    name = "isabelle"

    def __init__(self, theory_root: PathLike, config: Optional[ValidatorConfig] = None,
                 prover: Optional[TheoryProver] = None):
        self.theory_root = theory_root
        self.validator = ModelValidator(config, prover)
        self.last_theory: Optional[str] = None
        self.last_result: Optional[ValidationResult] = None

    def check(self, formula: Formula, model: Model, symbols: SymbolTable) -> Verdict:
        self.last_theory = self.validator.build_theory(formula, model, symbols, self.theory_root)
        self.last_result = self.validator.check_theory(self.last_theory, self.theory_root)
        return self.last_result.verdict


def make_checker(backend: str, theory_root: PathLike, config: Optional[ValidatorConfig] = None) -> ModelChecker:
    """Model checker for ``backend`` (``isabelle`` or ``z3``)."""
    config = config or ValidatorConfig()
    if backend == "isabelle":
        return IsabelleModelChecker(theory_root, config)
    if backend == "z3":
        return Z3ModelChecker(timeout_s=config.timeout_s)
    raise ValueError(f"Unknown backend: {backend}")


def _read(path: PathLike) -> str:
    return Path(path).read_text(encoding="utf-8")


def validate_files(formula_file: PathLike, model_file: PathLike, theory_root: PathLike,
                   config: Optional[ValidatorConfig] = None) -> ValidationResult:
    """Validate a model file against a formula file (both UTF-8)."""
    return ModelValidator(config).validate(_read(formula_file), _read(model_file), theory_root)
