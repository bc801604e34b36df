"""Variable environment, filter evaluation and formula reduction."""

from .ast import Argument, Command, FIdent, Filter, IdentArg, StringArg, parse_ident
from .environment import EnvironmentConfig, VariableEnvironment
from .evaluator import eval_filter, expand_template
from .formula import DepFormula, RawFormula, filter_deps

__all__ = [
    "Argument",
    "Command",
    "FIdent",
    "Filter",
    "IdentArg",
    "StringArg",
    "parse_ident",
    "EnvironmentConfig",
    "VariableEnvironment",
    "eval_filter",
    "expand_template",
    "DepFormula",
    "RawFormula",
    "filter_deps",
]
