"""
SMT-LIB v2 front end: s-expressions, sorts, terms and the parser.
"""

from .sorts import Sort, BOOL, INT, REAL, STRING, bitvec, array
from .terms import (
    Literal,
    Variable,
    FunctionApplication,
    Let,
    Quantifier,
    QuantifierKind,
    Annotation,
    Term,
    free_symbols,
)
from .symbols import Declaration, DeclarationKind, SymbolTable
from .model import Definition, Formula, Model, sanitize_model
from .parser import SmtLibParser, parse_pair

__all__ = [
    "Sort",
    "BOOL",
    "INT",
    "REAL",
    "STRING",
    "bitvec",
    "array",
    "Literal",
    "Variable",
    "FunctionApplication",
    "Let",
    "Quantifier",
    "QuantifierKind",
    "Annotation",
    "Term",
    "free_symbols",
    "Declaration",
    "DeclarationKind",
    "SymbolTable",
    "Definition",
    "Formula",
    "Model",
    "sanitize_model",
    "SmtLibParser",
    "parse_pair",
]
