"""
Translation from SMT-LIB term trees to Isabelle/HOL.
"""

from .names import escape_identifier, escape_type_variable, BinderScope
from .operators import OperatorSpec, OperatorTable
from .type_translator import TypeTranslator
from .term_translator import TermTranslator, conjunction

__all__ = [
    "escape_identifier",
    "escape_type_variable",
    "BinderScope",
    "OperatorSpec",
    "OperatorTable",
    "TypeTranslator",
    "TermTranslator",
    "conjunction",
]
