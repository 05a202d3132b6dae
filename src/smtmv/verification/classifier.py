"""Turn raw Isabelle output into a verdict.

Rules, first match wins:

1. timed out -> Indeterminate
2. exit 0 and the proved marker -> Satisfied
3. a refutation marker (``1. False`` left after simplification, or a
   Nitpick/Quickcheck counterexample) -> Refuted
4. "Failed to finish proof" / "Failed to apply proof method" -> Indeterminate
5. anything else -> ExecutionError
"""

from __future__ import annotations

import logging
import re

from ..errors import ExecutionError
from ..solver.result import Verdict, VerdictKind
from .obligation import PROVED_MARKER
from .prover_runner import ProverRunResult, RunStatus

logger = logging.getLogger(__name__)

_REFUTED = re.compile(
    r"^\s*1\. False\s*$"
    r"|Nitpick found a counterexample"
    r"|Quickcheck found a counterexample",
    re.MULTILINE,
)
_PROOF_FAILED = ("Failed to finish proof", "Failed to apply proof method")

EXCERPT_LINES = 20


def excerpt(text: str, lines: int = EXCERPT_LINES) -> str:
    """Last ``lines`` lines of ``text``."""
    return "\n".join(text.strip().splitlines()[-lines:])


def classify(run: ProverRunResult, prover_name: str = "isabelle") -> Verdict:
    """Verdict for a prover run.

    Raises:
        ExecutionError: If the output matches none of the known outcomes
    """
    if run.status is RunStatus.TIMED_OUT:
        return Verdict(VerdictKind.INDETERMINATE, "timeout", prover_name, run.time_ms)

    output = run.stdout + "\n" + run.stderr
    if run.returncode == 0 and PROVED_MARKER in output:
        return Verdict(VerdictKind.SATISFIED, None, prover_name, run.time_ms)

    if _REFUTED.search(output):
        logger.debug("Lemma is invalid")
        return Verdict(VerdictKind.REFUTED, excerpt(run.stdout), prover_name, run.time_ms)

    for marker in _PROOF_FAILED:
        if marker in output:
            logger.debug("Proof could not be finished: %s", marker)
            return Verdict(VerdictKind.INDETERMINATE, excerpt(run.stdout), prover_name, run.time_ms)

    if run.returncode == 0:
        message = "Isabelle finished without confirming the lemma"
    else:
        message = f"Isabelle process terminated with exit status {run.returncode}"
    raise ExecutionError(
        message,
        returncode=run.returncode,
        stdout=excerpt(run.stdout),
        stderr=excerpt(run.stderr),
    )
