"""Reactive evaluation engine with dynamically discovered dependencies."""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, TypeAlias

from ._config import EngineOptions, OverridePolicy
from ._errors import CycleError, RuleNotEvaluatedError, UnknownRuleError
from ._graph import DependencyGraph
from ._tracking import RESERVED_KEYS, Deps, accessed_keys

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Mapping

logger = logging.getLogger(__name__)

Listener: TypeAlias = "Callable[[Any], object]"


def _takes_deps(key: str, func: Callable[..., Any]) -> bool:
    """Tell whether a compute function expects the deps argument.

    Deps is always passed positionally. Callables whose signature cannot be
    inspected are assumed to take it.

    Raises:
        TypeError: If ``func`` has keyword-only parameters without defaults,
            which a positional call can never fill.

    """
    try:
        sig = inspect.signature(func)
    except (TypeError, ValueError):
        return True
    params = sig.parameters.values()
    required_keywords = [p.name for p in params if p.kind is p.KEYWORD_ONLY and p.default is p.empty]
    if required_keywords:
        msg = (
            f"Rule '{key}' has required keyword-only parameters {required_keywords}; "
            "compute functions receive deps as their first positional argument"
        )
        raise TypeError(msg)
    return any(p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD, p.VAR_POSITIONAL) for p in params)


def _values_equal(old: Any, new: Any) -> bool:
    if old is new:
        return True
    try:
        return bool(old == new)
    except (TypeError, ValueError):
        # e.g. array-likes whose == is elementwise and has no truth value
        return False


@dataclass(frozen=True, slots=True)
class Rule:
    """A registered compute function.

    Attributes:
        key: The rule key.
        func: The compute function.
        takes_deps: Whether ``func`` is called with a Deps argument.

    """

    key: str
    func: Callable[..., Any]
    takes_deps: bool

    @classmethod
    def from_function(cls, key: str, func: Callable[..., Any]) -> Rule:
        if not isinstance(key, str):
            msg = f"Rule keys must be strings, got {type(key).__name__}: {key!r}"
            raise TypeError(msg)
        if not callable(func):
            msg = f"Rule '{key}' must be callable, got {type(func).__name__}"
            raise TypeError(msg)
        if key in RESERVED_KEYS:
            msg = f"Rule key '{key}' is reserved: deps.{key} is an attribute of Deps, not a rule read"
            raise ValueError(msg)
        return cls(key=key, func=func, takes_deps=_takes_deps(key, func))

    def compute(self, deps: Deps) -> Any:
        return self.func(deps) if self.takes_deps else self.func()


class Engine:
    """A set of rules whose values are kept up to date as their inputs change.

    Each rule is a compute function receiving a :class:`Deps` view. Whatever
    rules it reads become its dependencies; when one of them changes, the rule
    is recomputed, and so on down the graph. Propagation is synchronous and
    depth-first: by the time :meth:`set` returns, every affected rule has been
    recomputed and every listener called.

    Every rule is evaluated once, in the order given, during construction.

    Example:
        >>> engine = Engine({
        ...     "a": lambda: 2,
        ...     "b": lambda: 3,
        ...     "sum": lambda deps: deps.a + deps.b,
        ... })
        >>> engine.set("a", 10)
        >>> engine.get("sum")
        13

    Args:
        rules: Mapping from rule key to compute function.
        options: Behavioural switches; see EngineOptions.

    Raises:
        TypeError: If a key is not a string, a compute function is not
            callable, or it has required keyword-only parameters.
        ValueError: If a key is reserved (``get``), since ``deps.get`` is
            the Deps method rather than a rule read.

    """

    def __init__(
        self,
        rules: Mapping[str, Callable[..., Any]],
        options: EngineOptions | None = None,
    ) -> None:
        self._options = options if options is not None else EngineOptions()
        self._rules: dict[str, Rule] = {key: Rule.from_function(key, func) for key, func in rules.items()}
        self._values: dict[str, Any] = {}
        self._overrides: dict[str, Any] = {}
        self._listeners: dict[str, list[Listener]] = {}
        self._graph: DependencyGraph[str] = DependencyGraph()
        self._evaluating: list[str] = []

        for key in self._rules:
            self._graph.add_node(key)

        logger.debug("Evaluating %d rules", len(self._rules))
        for key in self._rules:
            self.evaluate(key)

    # --- introspection ---

    @property
    def options(self) -> EngineOptions:
        return self._options

    @property
    def rules(self) -> Mapping[str, Rule]:
        """Registered rules, in registration order."""
        return MappingProxyType(self._rules)

    @property
    def keys(self) -> tuple[str, ...]:
        return tuple(self._rules)

    @property
    def overrides(self) -> Mapping[str, Any]:
        """Values set through :meth:`set` that have not been reset."""
        return MappingProxyType(dict(self._overrides))

    @property
    def graph(self) -> DependencyGraph[str]:
        """A copy of the dependency graph discovered so far."""
        return self._graph.copy()

    def __contains__(self, key: object) -> bool:
        return key in self._rules

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self) -> Iterator[str]:
        return iter(self._rules)

    def _require(self, key: str) -> Rule:
        try:
            return self._rules[key]
        except KeyError:
            raise UnknownRuleError(key) from None

    # --- evaluation ---

    def evaluate(self, key: str) -> Any:
        """Run the compute function of ``key`` and propagate a changed result.

        The dependencies read during the run are added to the graph. When the
        result differs from the stored value (or no value was stored yet), it
        is stored and listeners and dependents are notified; an unchanged
        result notifies nobody.

        If the compute function raises, the exception propagates and neither
        the stored value nor the graph is modified.

        Returns:
            The value stored for ``key`` afterwards.

        Raises:
            UnknownRuleError: If ``key`` is not registered.
            CycleError: If ``key`` is already being evaluated further up the
                call chain and cycle detection is enabled.

        """
        rule = self._require(key)

        if self._options.override_policy is OverridePolicy.PRESERVE and key in self._overrides:
            logger.debug("Keeping override for %s", key)
            return self._values[key]

        if self._options.detect_cycles and key in self._evaluating:
            raise CycleError([*self._evaluating, key])

        self._evaluating.append(key)
        try:
            deps = Deps(self._rules, self._values)
            logger.debug("Evaluating %s", key)
            new_value = rule.compute(deps)
            self._record_dependencies(key, accessed_keys(deps))

            unset = key not in self._values
            if unset or not _values_equal(self._values[key], new_value):
                logger.debug("%s changed: %r -> %r", key, self._values.get(key), new_value)
                self._values[key] = new_value
                self._notify(key)
        finally:
            self._evaluating.pop()

        return self._values[key]

    def _record_dependencies(self, key: str, accessed: tuple[str, ...]) -> None:
        if self._options.prune_stale_edges:
            for upstream in self._graph.predecessors(key):
                if upstream not in accessed:
                    logger.debug("Dropping stale edge %s -> %s", upstream, key)
                    self._graph.remove_edge(upstream, key)
        for upstream in accessed:
            if self._graph.add_edge(upstream, key):
                logger.debug("Discovered edge %s -> %s", upstream, key)

    def _notify(self, key: str) -> None:
        value = self._values[key]
        for listener in tuple(self._listeners.get(key, ())):
            listener(value)
        for dependent in self._graph.successors(key):
            self.evaluate(dependent)

    # --- facade ---

    def get(self, key: str) -> Any:
        """Get the stored value of a rule. Never recomputes.

        Raises:
            UnknownRuleError: If ``key`` is not registered.
            RuleNotEvaluatedError: If ``key`` has no value yet, which can
                only happen while the engine is being constructed.

        """
        self._require(key)
        try:
            return self._values[key]
        except KeyError:
            raise RuleNotEvaluatedError(key) from None

    def set(self, key: str, value: Any) -> None:
        """Override the value of a rule and propagate it.

        Listeners and dependents are always notified, even when ``value``
        equals the stored value.

        Raises:
            UnknownRuleError: If ``key`` is not registered.

        """
        self._require(key)
        logger.debug("Override %s = %r", key, value)
        self._overrides[key] = value
        self._values[key] = value
        self._notify(key)

    def reset(self, key: str) -> Any:
        """Drop the manual override of ``key`` and recompute it.

        Returns:
            The recomputed value.

        Raises:
            UnknownRuleError: If ``key`` is not registered.

        """
        self._require(key)
        self._overrides.pop(key, None)
        return self.evaluate(key)

    def on_change(self, key: str, callback: Listener) -> None:
        """Call ``callback(value)`` every time ``key`` is notified.

        Callbacks accumulate in registration order; there is no unsubscribe.

        Raises:
            UnknownRuleError: If ``key`` is not registered.
            TypeError: If ``callback`` is not callable.

        """
        self._require(key)
        if not callable(callback):
            msg = f"Listener for '{key}' must be callable, got {type(callback).__name__}"
            raise TypeError(msg)
        self._listeners.setdefault(key, []).append(callback)

    def snapshot(self) -> Mapping[str, Any]:
        """Return a read-only shallow copy of all current values."""
        return MappingProxyType(dict(self._values))

    def __repr__(self) -> str:
        return f"Engine(rules={list(self._rules)!r})"
