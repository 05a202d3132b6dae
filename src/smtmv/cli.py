"""Command line entry point: ``smtmv FORMULA (--model FILE | --stdin) -T ROOT``.

Prints exactly one line, ``sat``, ``unsat`` or ``unknown``, on stdout.
Exit status: 0 verdict, 1 input error, 2 usage error, 3 environment error,
4 execution error.
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
import sys
from typing import Optional, Sequence

import smtmv as _smtmv_pkg

from .config import ValidatorConfig
from .errors import ExecutionError, ParseError, ProverEnvironmentError, UnsupportedConstructError
from .smtlib.parser import parse_pair
from .solver.result import VerdictKind
from .verification.validator import IsabelleModelChecker, make_checker

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_INPUT = 1
EXIT_USAGE = 2
EXIT_ENVIRONMENT = 3
EXIT_EXECUTION = 4

_VERDICT_MESSAGES = {
    VerdictKind.SATISFIED: "Model is valid",
    VerdictKind.REFUTED: "Model is not valid",
    VerdictKind.INDETERMINATE: "Unknown result",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="smtmv",
        description=f"Validate SMT-LIB models with Isabelle/HOL (v{_smtmv_pkg.__version__})",
    )
    parser.add_argument("formula", help="SMT-LIB formula file")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--model", help="Model file (raw solver output is accepted)")
    source.add_argument("--stdin", action="store_true", help="Read the model from stdin")
    parser.add_argument("-T", dest="theory_root", help="Isabelle theory root (session directory)")
    parser.add_argument("--timeout", type=float, help="Prover timeout in seconds (default: 60)")
    parser.add_argument("--backend", choices=["isabelle", "z3"], default="isabelle",
                        help="Checker to use (default: isabelle)")
    parser.add_argument("--isabelle", help="Isabelle executable (default: isabelle)")
    parser.add_argument("--logic", help="Isabelle logic session (default: HOL-Library)")
    parser.add_argument("--method", choices=["simp", "auto"], help="Proof method (default: simp)")
    parser.add_argument("--keep-theory", metavar="FILE", help="Write the generated theory to FILE")
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true", help="Log debug output")
    verbosity.add_argument("-q", "--quiet", action="store_true", help="Log warnings and errors only")
    return parser


def init_logging(verbose: bool = False, quiet: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.WARNING if quiet else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s", stream=sys.stderr, force=True)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.backend == "isabelle" and not args.theory_root:
        parser.error("-T ROOT is required with the isabelle backend")
    init_logging(args.verbose, args.quiet)

    try:
        config = ValidatorConfig.from_env(
            isabelle=args.isabelle,
            logic=args.logic,
            method=args.method,
            timeout_s=args.timeout,
        )
    except ValueError as e:
        parser.error(str(e))

    try:
        formula_text = Path(args.formula).read_text(encoding="utf-8")
        model_text = sys.stdin.read() if args.stdin else Path(args.model).read_text(encoding="utf-8")
    except OSError as e:
        logger.error("%s", e)
        return EXIT_INPUT

    try:
        formula, model, symbols = parse_pair(formula_text, model_text)
        checker = make_checker(args.backend, args.theory_root, config)
        try:
            verdict = checker.check(formula, model, symbols)
        finally:
            if args.keep_theory and isinstance(checker, IsabelleModelChecker) and checker.last_theory:
                Path(args.keep_theory).write_text(checker.last_theory, encoding="utf-8")
                logger.info("Wrote theory to %s", args.keep_theory)
    except (ParseError, UnsupportedConstructError) as e:
        logger.error("%s", e)
        return EXIT_INPUT
    except ProverEnvironmentError as e:
        logger.error("%s", e)
        return EXIT_ENVIRONMENT
    except ExecutionError as e:
        logger.error("%s\nSTDOUT:\n%s\nSTDERR:\n%s", e, e.stdout, e.stderr)
        return EXIT_EXECUTION

    logger.info(_VERDICT_MESSAGES[verdict.kind])
    print(verdict.kind.value)
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
