"""Exception types raised by rulegraph."""

from collections.abc import Sequence


class RuleGraphError(Exception):
    """Base class for errors raised by rulegraph itself.

    Exceptions raised by compute functions and listeners are never wrapped;
    they propagate to the caller unchanged.
    """


class UnknownRuleError(RuleGraphError, KeyError):
    """A rule key that was never registered was accessed through the engine."""

    def __init__(self, key: object) -> None:
        super().__init__(key)
        self.key = key

    def __str__(self) -> str:
        return f"Unknown rule '{self.key}'"


class RuleNotEvaluatedError(RuleGraphError, LookupError):
    """A registered rule was read through the engine before its first evaluation.

    Only possible while the engine is still being constructed.
    """

    def __init__(self, key: str) -> None:
        super().__init__(f"Rule '{key}' has not been evaluated yet")
        self.key = key


class DuplicateRuleError(RuleGraphError, KeyError):
    """A rule key was registered twice in the same rule set."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class CycleError(RuleGraphError):
    """A rule was re-entered while it was still being evaluated.

    Attributes:
        chain: The keys being evaluated, outermost first, ending with the
            key that closed the cycle.

    """

    def __init__(self, chain: Sequence[object]) -> None:
        self.chain = list(chain)
        msg = "Dependency cycle detected: " + " -> ".join(map(str, chain))
        super().__init__(msg)


class ConfigError(RuleGraphError):
    """Error in rulegraph configuration."""
