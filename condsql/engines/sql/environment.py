"""
Variable environment for directive conditions.

Names are case-sensitive; a leading ``$`` is optional and stripped, so
``$flag`` and ``flag`` are the same variable. The engine-wide (global) layer
is frozen at construction; each render merges its local layer on top into a
fresh mapping.
"""

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any


def normalize_name(name: str) -> str:
    """``"$flag"`` -> ``"flag"``; other names are returned unchanged."""
    return name[1:] if name.startswith("$") else name


def _normalized(variables: Mapping[str, Any] | None) -> dict[str, Any]:
    if not variables:
        return {}
    return {normalize_name(str(k)): v for k, v in variables.items()}


class VariableEnvironment:
    """Global bindings plus per-call overrides (local wins on equal names)."""

    __slots__ = ("_globals",)

    def __init__(self, variables: Mapping[str, Any] | None = None) -> None:
        self._globals: Mapping[str, Any] = MappingProxyType(_normalized(variables))

    @property
    def globals(self) -> Mapping[str, Any]:
        """Read-only view of the global layer."""
        return self._globals

    def merged(self, variables: Mapping[str, Any] | None = None) -> Mapping[str, Any]:
        """New mapping of the global layer overlaid with *variables*."""
        env = dict(self._globals)
        env.update(_normalized(variables))
        return env

    def __repr__(self) -> str:
        return f"VariableEnvironment({dict(self._globals)!r})"
