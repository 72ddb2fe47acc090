"""Engine options and configuration loading from pyproject.toml."""

import tomllib
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import cast

from pydantic import BaseModel, ConfigDict, ValidationError

from ._errors import ConfigError


class OverridePolicy(StrEnum):
    """What happens when an overridden rule is asked to recompute."""

    # The compute function runs and may overwrite the manual value.
    RECOMPUTE = "recompute"
    # The manual value stands until reset() is called for the key.
    PRESERVE = "preserve"


class EngineOptions(BaseModel):
    """Behavioural switches for an Engine.

    The defaults reproduce plain dynamic tracking: edges only ever accumulate
    and a manual override may be overwritten by a later cascade.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    detect_cycles: bool = True
    prune_stale_edges: bool = False
    override_policy: OverridePolicy = OverridePolicy.RECOMPUTE


@dataclass(slots=True, frozen=True)
class ScriptSource:
    """Script path with optional variable name."""

    script: Path
    name: str | None = None


@dataclass(slots=True, frozen=True)
class ModuleSource:
    """Module path with variable name (e.g., 'examples.totals:rules')."""

    module_path: str


RuleSource = ScriptSource | ModuleSource


@dataclass(slots=True, frozen=True)
class RuleGraphConfig:
    """Configuration loaded from pyproject.toml.

    All relative paths are resolved from the project root (directory containing pyproject.toml).
    """

    rules: RuleSource | None = None
    options: EngineOptions = field(default_factory=EngineOptions)
    project_root: Path | None = None


def find_pyproject_toml(start_dir: Path | None = None) -> Path | None:
    """Find pyproject.toml by walking up from start_dir.

    Args:
        start_dir: Starting directory. Defaults to current working directory.

    Returns:
        Path to pyproject.toml if found, None otherwise.

    """
    if start_dir is None:
        start_dir = Path.cwd()

    current = start_dir.resolve()

    while True:
        candidate = current / "pyproject.toml"
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            return None
        current = parent


def _parse_rule_source(value: object, project_root: Path) -> RuleSource:
    """Parse the rules field from config.

    Raises:
        ConfigError: If the value format is invalid

    """
    if isinstance(value, str):
        if ":" not in value:
            msg = f"Invalid module path '{value}'. Expected format: 'module.path:variable_name'"
            raise ConfigError(msg)
        return ModuleSource(module_path=value)

    if isinstance(value, dict):
        value_dict = cast("dict[str, object]", value)
        script_value = value_dict.get("script")
        if not isinstance(script_value, str):
            msg = "Invalid [tool.rulegraph].rules: expected a table with a string 'script' key"
            raise ConfigError(msg)
        script_path = Path(script_value)
        if not script_path.is_absolute():
            script_path = project_root / script_path

        name = value_dict.get("name")
        if name is not None and not isinstance(name, str):
            msg = "Invalid [tool.rulegraph].rules.name: expected string"
            raise ConfigError(msg)

        return ScriptSource(script=script_path, name=name)

    msg = "Invalid [tool.rulegraph].rules configuration. Expected string or table with 'script' key."
    raise ConfigError(msg)


def load_config(pyproject_path: Path) -> RuleGraphConfig:
    """Load and validate [tool.rulegraph] config from pyproject.toml.

    Besides ``rules``, every key of the section is an EngineOptions field.

    Args:
        pyproject_path: Path to pyproject.toml

    Returns:
        Parsed RuleGraphConfig

    Raises:
        ConfigError: If the configuration is invalid

    """
    project_root = pyproject_path.parent

    with pyproject_path.open("rb") as f:
        try:
            data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            msg = f"Invalid TOML in {pyproject_path}: {e}"
            raise ConfigError(msg) from e

    section = dict(data.get("tool", {}).get("rulegraph", {}))
    if not section:
        return RuleGraphConfig(project_root=project_root)

    rule_source: RuleSource | None = None
    if "rules" in section:
        rule_source = _parse_rule_source(section.pop("rules"), project_root)

    try:
        options = EngineOptions.model_validate(section)
    except ValidationError as e:
        msg = f"Invalid [tool.rulegraph] options in {pyproject_path}: {e}"
        raise ConfigError(msg) from e

    return RuleGraphConfig(rules=rule_source, options=options, project_root=project_root)


def get_config() -> RuleGraphConfig:
    """Get config from pyproject.toml in current directory or parents.

    Returns:
        RuleGraphConfig (may be empty if no pyproject.toml or no [tool.rulegraph] section)

    """
    pyproject_path = find_pyproject_toml()
    if pyproject_path is None:
        return RuleGraphConfig()
    return load_config(pyproject_path)
