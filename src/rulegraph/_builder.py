from __future__ import annotations

import logging
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, TypeVar

from ._engine import Engine
from ._errors import DuplicateRuleError

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from ._config import EngineOptions

logger = logging.getLogger(__name__)

F = TypeVar("F", bound="Callable[..., Any]")


class RuleSet:
    """An ordered collection of rules, assembled before building an Engine.

    Rules can be added fluently or with a decorator:

        >>> rules = RuleSet("totals").add_rule("a", lambda: 2).add_rule("b", lambda: 3)
        >>> @rules.rule()
        ... def total(deps):
        ...     return deps.a + deps.b
        >>> rules.build().get("total")
        5

    Registration order is evaluation order during construction, so rules
    should normally be added after the rules they read.
    """

    def __init__(self, name: str = "rules") -> None:
        self.name = name
        self._rules: dict[str, Callable[..., Any]] = {}

    def add_rule(self, key: str, func: Callable[..., Any]) -> RuleSet:
        """Register ``func`` under ``key`` and return this rule set."""
        if key in self._rules:
            msg = f"Rule with key '{key}' already exists in rule set '{self.name}'."
            raise DuplicateRuleError(msg)
        self._rules[key] = func
        return self

    def rule(self, name: str | None = None) -> Callable[[F], F]:
        """Decorator to register a function as a rule.

        The rule key is ``name`` if given, otherwise the function's ``__name__``.
        The function itself is returned unchanged.
        """

        def decorator(func: F) -> F:
            key = name
            if key is None:
                key = getattr(func, "__name__", None)
                if not isinstance(key, str):
                    msg = "Function must have a valid name."
                    raise TypeError(msg)
            self.add_rule(key, func)
            return func

        return decorator

    @property
    def rules(self) -> Mapping[str, Callable[..., Any]]:
        return MappingProxyType(self._rules)

    def build(self, options: EngineOptions | None = None) -> Engine:
        """Construct an Engine from the rules registered so far."""
        logger.debug("Building engine from rule set '%s' (%d rules)", self.name, len(self._rules))
        return Engine(self._rules, options)

    def __contains__(self, key: object) -> bool:
        return key in self._rules

    def __len__(self) -> int:
        return len(self._rules)

    def __repr__(self) -> str:
        return f"RuleSet(name={self.name!r}, rules={list(self._rules)!r})"
