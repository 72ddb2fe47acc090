"""Dependency discovery for a single rule execution."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Container, Mapping


class Deps:
    """Read-only view over rule values handed to a compute function.

    Every read of a registered rule key returns that rule's stored value and
    records the key as a dependency of the rule being executed. Reading a name
    that is not a registered rule returns ``None`` (or the supplied default)
    and records nothing.

    Values can be read by item or by attribute:

        >>> def total(deps):
        ...     return deps["price"] * deps.quantity

    A rule that has been registered but not evaluated yet reads as ``None``.
    """

    __slots__ = ("_accessed", "_registry", "_values")

    def __init__(self, registry: Container[str], values: Mapping[str, Any]) -> None:
        object.__setattr__(self, "_registry", registry)
        object.__setattr__(self, "_values", values)
        object.__setattr__(self, "_accessed", {})

    def get(self, key: str, default: Any = None) -> Any:
        """Read a rule value, recording the dependency if ``key`` is a rule."""
        if key not in self._registry:
            return default
        self._accessed[key] = None
        return self._values.get(key)

    def __getitem__(self, key: str) -> Any:
        return self.get(key)

    def __getattr__(self, name: str) -> Any:
        # Only reached for names that are not real attributes. Private names
        # are left to Python's protocols (copy, pickle, ...).
        if name.startswith("_"):
            raise AttributeError(name)
        return self.get(name)

    def __contains__(self, key: object) -> bool:
        return key in self._registry

    def __setattr__(self, name: str, value: Any) -> None:
        msg = f"Rule values are read-only; cannot assign '{name}'"
        raise AttributeError(msg)

    def __setitem__(self, key: str, value: Any) -> None:
        msg = f"Rule values are read-only; cannot assign '{key}'"
        raise TypeError(msg)

    def __repr__(self) -> str:
        return f"Deps(accessed={list(self._accessed)!r})"


# Attribute reads of these names resolve to Deps itself and never reach
# __getattr__, so they cannot be used as rule keys.
RESERVED_KEYS = frozenset(name for name in dir(Deps) if not name.startswith("_"))


def accessed_keys(deps: Deps) -> tuple[str, ...]:
    """Rule keys read through ``deps`` so far, in first-read order."""
    return tuple(deps._accessed)  # noqa: SLF001
