"""Run Isabelle in batch mode over a generated theory.

Each run gets a scratch directory holding only the theory file; Isabelle is
started there with the theory root as session directory, so the logic's heap
image is found without building anything.
"""

from __future__ import annotations

from contextlib import suppress
from dataclasses import dataclass
from enum import Enum
import logging
import os
from pathlib import Path
import shutil
import signal
import subprocess
import tempfile
import time
from typing import List, Optional, Protocol, Union

from ..config import ValidatorConfig
from ..errors import ProverEnvironmentError

logger = logging.getLogger(__name__)


class RunStatus(Enum):
    FINISHED = "finished"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class ProverRunResult:
    """Raw outcome of one prover run.

    A timed-out run has no return code and no output.
    """

    status: RunStatus
    returncode: Optional[int]
    stdout: str
    stderr: str
    time_ms: float


class TheoryProver(Protocol):
    """Anything that can check a theory script against a theory root."""

    def run(self, script: str, theory_root: Union[str, Path],
            timeout_s: Optional[float] = None) -> ProverRunResult:
        ...


def is_isabelle_available(executable: str = "isabelle") -> bool:
    """Return True if the Isabelle executable appears runnable on this system."""
    if os.path.sep in executable or (os.path.altsep and os.path.altsep in executable):
        return os.path.exists(executable) and os.access(executable, os.X_OK)
    return shutil.which(executable) is not None


class IsabelleProcess:
    """Runs ``isabelle process`` on one theory at a time. No retries."""

    def __init__(self, config: Optional[ValidatorConfig] = None):
        self.config = config or ValidatorConfig()

    def command(self, theory_root: Union[str, Path]) -> List[str]:
        argv = [self.config.isabelle, "process", "-d", str(theory_root), "-l", self.config.logic]
        for opt in self.config.options:
            argv.extend(["-o", opt])
        argv.extend(["-T", self.config.theory_name])
        return argv

    def run(self, script: str, theory_root: Union[str, Path],
            timeout_s: Optional[float] = None) -> ProverRunResult:
        """Check ``script`` with Isabelle.

        Args:
            script: Theory text
            theory_root: Session directory passed to Isabelle as ``-d``
            timeout_s: Wall-clock limit (defaults to the configured timeout)

        Raises:
            ProverEnvironmentError: If the theory root is not a directory or
                Isabelle cannot be started
        """
        root = Path(theory_root)
        if not root.is_dir():
            raise ProverEnvironmentError(f"Theory root is not a directory: {root}")
        timeout_s = self.config.timeout_s if timeout_s is None else timeout_s
        argv = self.command(root.resolve())

        with tempfile.TemporaryDirectory(prefix="smtmv-") as td:
            thy_path = Path(td) / f"{self.config.theory_name}.thy"
            thy_path.write_text(script, encoding="utf-8")
            logger.info("Checking lemma with Isabelle")
            logger.debug("Running %s in %s", " ".join(argv), td)

            t0 = time.time()
            try:
                p = subprocess.Popen(
                    argv,
                    cwd=td,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE,
                    text=True,
                    start_new_session=True,
                )
            except OSError as e:
                raise ProverEnvironmentError(f"Cannot start Isabelle ({self.config.isabelle}): {e}") from e

            try:
                stdout, stderr = p.communicate(timeout=timeout_s)
            except subprocess.TimeoutExpired:
                self._kill(p)
                dt_ms = (time.time() - t0) * 1000.0
                logger.warning("Isabelle timed out after %.1fs", timeout_s)
                return ProverRunResult(RunStatus.TIMED_OUT, None, "", "", dt_ms)
            dt_ms = (time.time() - t0) * 1000.0

        logger.debug("Isabelle exited with %d after %.0fms", p.returncode, dt_ms)
        logger.debug("STDOUT:\n%s", stdout)
        if stderr:
            logger.debug("STDERR:\n%s", stderr)
        return ProverRunResult(RunStatus.FINISHED, p.returncode, stdout, stderr, dt_ms)

    @staticmethod
    def _kill(p: subprocess.Popen) -> None:
        # Isabelle forks a JVM and a poly process; take the whole group down.
        with suppress(ProcessLookupError):
            os.killpg(p.pid, signal.SIGKILL)
        p.communicate()
