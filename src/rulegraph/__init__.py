"""Reactive rule engine with dynamically discovered dependencies."""

__all__ = [
    "ConfigError",
    "CycleError",
    "DependencyGraph",
    "Deps",
    "DuplicateRuleError",
    "Engine",
    "EngineOptions",
    "OverridePolicy",
    "Rule",
    "RuleGraphConfig",
    "RuleGraphError",
    "RuleNotEvaluatedError",
    "RuleSet",
    "UnknownRuleError",
    "get_config",
    "load_config",
]

from ._builder import RuleSet
from ._config import EngineOptions, OverridePolicy, RuleGraphConfig, get_config, load_config
from ._engine import Engine, Rule
from ._errors import (
    ConfigError,
    CycleError,
    DuplicateRuleError,
    RuleGraphError,
    RuleNotEvaluatedError,
    UnknownRuleError,
)
from ._graph import DependencyGraph
from ._tracking import Deps
