"""Validator configuration.

Defaults can be overridden from the environment:

- ``$SMTMV_ISABELLE``: Isabelle executable
- ``$SMTMV_LOGIC``: logic session providing the heap image
- ``$SMTMV_TIMEOUT``: prover timeout in seconds
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from typing import Mapping, Optional, Tuple

DEFAULT_OPTIONS: Tuple[str, ...] = (
    "build_pide_reports=false",
    "pide_reports=false",
    "process_output_limit=1",
    "process_output_tail=1",
    "record_proofs=0",
    "parallel_proofs=0",
    "quick_and_dirty",
)

PROOF_METHODS = ("simp", "auto")


@dataclass(frozen=True)
class ValidatorConfig:
    """How obligations are written and how Isabelle is invoked."""

    isabelle: str = "isabelle"
    logic: str = "HOL-Library"
    imports: Tuple[str, ...] = ("Main", "HOL-Library.Word")
    theory_name: str = "Validation"
    method: str = "simp"
    timeout_s: float = 60.0
    options: Tuple[str, ...] = DEFAULT_OPTIONS

    def __post_init__(self):
        if self.method not in PROOF_METHODS:
            raise ValueError(f"Unknown proof method {self.method!r} (expected one of {', '.join(PROOF_METHODS)})")
        if self.timeout_s <= 0:
            raise ValueError(f"Timeout must be positive, got {self.timeout_s}")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides) -> "ValidatorConfig":
        """Defaults, then ``$SMTMV_*`` variables, then explicit ``overrides``.

        ``None`` overrides are ignored so CLI options can be passed through.
        """
        env = os.environ if environ is None else environ
        values = {}
        if env.get("SMTMV_ISABELLE"):
            values["isabelle"] = env["SMTMV_ISABELLE"]
        if env.get("SMTMV_LOGIC"):
            values["logic"] = env["SMTMV_LOGIC"]
        if env.get("SMTMV_TIMEOUT"):
            try:
                values["timeout_s"] = float(env["SMTMV_TIMEOUT"])
            except ValueError:
                raise ValueError(f"SMTMV_TIMEOUT is not a number: {env['SMTMV_TIMEOUT']!r}") from None
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
