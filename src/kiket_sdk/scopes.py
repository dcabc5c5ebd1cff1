from __future__ import annotations

from typing import Any, Callable, Iterable, Sequence

from .errors import ScopeError

__all__ = ["WILDCARD_SCOPE", "ScopeChecker", "build_scope_checker", "check_scopes", "flatten_scopes"]

WILDCARD_SCOPE = "*"

ScopeChecker = Callable[..., bool]


def check_scopes(required: Iterable[str], granted: Iterable[str]) -> list[str]:
    """
    Return the required scopes missing from ``granted``.

    An empty list means authorized. A wildcard grant covers everything.
    Order follows ``required``; duplicates are dropped.
    """
    granted_set = set(granted)
    if WILDCARD_SCOPE in granted_set:
        return []
    missing: list[str] = []
    for scope in required:
        if scope not in granted_set and scope not in missing:
            missing.append(scope)
    return missing


def flatten_scopes(scopes: Iterable[Any]) -> list[str]:
    out: list[str] = []
    for scope in scopes:
        if isinstance(scope, (list, tuple, set, frozenset)):
            out.extend(flatten_scopes(scope))
        else:
            out.append(str(scope))
    return out


def build_scope_checker(available_scopes: Sequence[str]) -> ScopeChecker:
    """Build the ``require_scopes`` callable exposed to handler code."""
    available = list(available_scopes)

    def require_scopes(*required_scopes: Any) -> bool:
        required = flatten_scopes(required_scopes)
        missing = check_scopes(required, available)
        if missing:
            raise ScopeError(required, available, missing)
        return True

    return require_scopes
