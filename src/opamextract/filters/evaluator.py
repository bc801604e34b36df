"""Partial evaluation of filters and ``%{var}%`` templates.

Both operations work on an environment that may be incomplete. A filter that
cannot be decided because a variable is undefined counts as false; a
placeholder whose variable is undefined stays in the output verbatim, so a
later stage with more information can still expand it.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from opamextract.common.logging_utils import is_debug_enabled
from opamextract.filters.ast import (
    FAnd, FBool, FDefined, FIdent, FNot, FOp, FOr, FString, Filter, parse_ident,
)
from opamextract.filters.environment import Lookup, VariableEnvironment, VariableValue
from opamextract.versioning.constraint import relop_holds
from opamextract.versioning.models import PackageId
from opamextract.versioning.version import compare

__all__ = [
    "evaluate",
    "to_bool",
    "to_string",
    "eval_filter",
    "eval_with",
    "expand_template",
    "expand_with",
]

logger = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r"%\{([^}]*)\}%")


def to_bool(value: Optional[VariableValue]) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if value == "true":
        return True
    if value == "false":
        return False
    return None


def to_string(value: VariableValue) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return value


def _resolve_ident(ident: FIdent, lookup: Lookup) -> Optional[VariableValue]:
    value = lookup(ident)
    if ident.converter is None:
        return value
    then, otherwise = ident.converter
    if value is None:
        return otherwise
    flag = to_bool(value)
    if flag is None:
        # Only booleans convert.
        return None
    return then if flag else otherwise


def evaluate(filter_expr: Filter, lookup: Lookup) -> Optional[VariableValue]:
    """Three-valued evaluation; None means the result depends on undefined variables."""
    if isinstance(filter_expr, FBool):
        return filter_expr.value
    if isinstance(filter_expr, FString):
        return filter_expr.value
    if isinstance(filter_expr, FIdent):
        return _resolve_ident(filter_expr, lookup)
    if isinstance(filter_expr, FOp):
        left = evaluate(filter_expr.left, lookup)
        right = evaluate(filter_expr.right, lookup)
        if left is None or right is None:
            return None
        return relop_holds(filter_expr.op, compare(to_string(left), to_string(right)))
    if isinstance(filter_expr, FAnd):
        left = to_bool(evaluate(filter_expr.left, lookup))
        right = to_bool(evaluate(filter_expr.right, lookup))
        if left is False or right is False:
            return False
        if left is None or right is None:
            return None
        return True
    if isinstance(filter_expr, FOr):
        left = to_bool(evaluate(filter_expr.left, lookup))
        right = to_bool(evaluate(filter_expr.right, lookup))
        if left is True or right is True:
            return True
        if left is None or right is None:
            return None
        return False
    if isinstance(filter_expr, FNot):
        value = to_bool(evaluate(filter_expr.item, lookup))
        return None if value is None else not value
    if isinstance(filter_expr, FDefined):
        return evaluate(filter_expr.item, lookup) is not None
    raise TypeError(f"not a filter: {filter_expr!r}")


def eval_with(lookup: Lookup, filter_expr: Optional[Filter]) -> bool:
    """Decide a filter; a missing filter is true and an undecidable one false."""
    if filter_expr is None:
        return True
    return to_bool(evaluate(filter_expr, lookup)) is True


def eval_filter(env: VariableEnvironment, package: PackageId, filter_expr: Optional[Filter]) -> bool:
    """Evaluate ``filter_expr`` for ``package``; undefined variables make it false."""
    return eval_with(env.resolver(package), filter_expr)


def expand_with(lookup: Lookup, template: str) -> str:
    """Substitute every placeholder whose variable is defined."""
    if is_debug_enabled(logger):
        logger.debug("expanding string: %s", template)

    def substitute(match: "re.Match[str]") -> str:
        ident = parse_ident(match.group(1))
        if ident is None:
            return match.group(0)
        value = _resolve_ident(ident, lookup)
        if value is None:
            return match.group(0)
        return to_string(value)

    return _PLACEHOLDER.sub(substitute, template)


def expand_template(env: VariableEnvironment, package: PackageId, template: str) -> str:
    """Expand ``template`` for ``package``, keeping unresolved placeholders."""
    return expand_with(env.resolver(package), template)
