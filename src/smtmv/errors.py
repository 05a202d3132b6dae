"""
Error types raised by the validation pipeline.

Parse and translation errors mean the input (or the pipeline) is malformed
and abort the run. A prover timeout is not an error; see
``RunStatus.TIMED_OUT``.
"""
from typing import Optional


class SmtmvError(Exception):
    """Base class for all smtmv errors."""


class ParseError(SmtmvError):
    """Base exception for errors found while reading SMT-LIB text.

    Attributes:
        message: Description of the problem
        line: 1-based line of the offending token (0 if unknown)
        column: 1-based column of the offending token (0 if unknown)
        offset: 0-based character offset into the input (-1 if unknown)
    """

    def __init__(self, message: str, line: int = 0, column: int = 0, offset: int = -1):
        self.message = message
        self.line = line
        self.column = column
        self.offset = offset
        if line:
            super().__init__(f"Line {line}, Col {column}: {message}")
        else:
            super().__init__(message)


class SmtSyntaxError(ParseError):
    """Malformed s-expression nesting or an unexpected token."""


class UndeclaredSymbolError(ParseError):
    """A symbol has no declaration, binder or built-in meaning."""

    def __init__(self, symbol: str, line: int = 0, column: int = 0, offset: int = -1):
        self.symbol = symbol
        super().__init__(f"Undeclared symbol: {symbol}", line, column, offset)


class SortMismatchError(ParseError):
    """An operand's sort disagrees with what the operator or declaration expects."""


class NoModelError(ParseError):
    """The solver output carries no model (e.g. it reported unsat)."""


class ModelConflictError(ParseError):
    """A model entry contradicts a definition made by the formula itself."""


class UnsupportedConstructError(SmtmvError):
    """An SMT-LIB operator, sort or command the translation does not model."""

    def __init__(self, construct: str, detail: str = ""):
        self.construct = construct
        msg = f"Unsupported SMT-LIB construct: {construct}"
        if detail:
            msg += f" ({detail})"
        super().__init__(msg)


class ProverEnvironmentError(SmtmvError, OSError):
    """The prover process could not be started (missing binary, bad theory root)."""


class ExecutionError(SmtmvError):
    """The prover terminated abnormally or rejected the generated theory.

    This signals a pipeline defect rather than a failed proof attempt.
    """

    def __init__(self, message: str, returncode: Optional[int] = None,
                 stdout: str = "", stderr: str = ""):
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        super().__init__(message)
