"""Locate the RuleSet a CLI command should evaluate."""

from __future__ import annotations

import importlib
import importlib.util
import logging
import sys
from typing import TYPE_CHECKING

from rulegraph._builder import RuleSet
from rulegraph._config import ModuleSource, ScriptSource

if TYPE_CHECKING:
    from pathlib import Path
    from types import ModuleType

    from rulegraph._config import RuleSource

logger = logging.getLogger(__name__)


def _rule_set_in(module: ModuleType, name: str | None, origin: str) -> RuleSet:
    """Pick a RuleSet out of an imported module.

    Without a name, the first RuleSet bound at module level wins, in
    definition order.
    """
    if name is None:
        for attr, obj in vars(module).items():
            if isinstance(obj, RuleSet):
                logger.debug("Found rule set '%s' in %s", attr, origin)
                return obj
        msg = f"Could not find RuleSet in {origin}, try using --rules"
        raise ValueError(msg)

    if name not in vars(module):
        msg = f"Could not find rule set '{name}' in {origin}"
        raise ValueError(msg)
    rules = vars(module)[name]
    if not isinstance(rules, RuleSet):
        msg = f"'{name}' in {origin} is not a RuleSet instance (got {type(rules).__name__})"
        raise TypeError(msg)
    return rules


def load_rules_from_script(script_path: Path, name: str | None = None) -> RuleSet:
    """Execute a standalone Python script and return a RuleSet it defines.

    The script's directory is put on ``sys.path`` while it runs, so it can
    import helper modules sitting next to it.

    Args:
        script_path: Path to the script.
        name: Name of the RuleSet variable. If None, the first RuleSet
            defined in the script is used.

    Raises:
        FileNotFoundError: If the script does not exist.
        ValueError: If no rule set is found or the named variable does not exist.
        TypeError: If the named variable is not a RuleSet.

    """
    path = script_path.resolve()
    if not path.is_file():
        msg = f"Script not found: {script_path}"
        raise FileNotFoundError(msg)

    spec = importlib.util.spec_from_file_location(path.stem, path)
    if spec is None or spec.loader is None:
        msg = f"Cannot load {script_path} as a Python module"
        raise ImportError(msg)
    module = importlib.util.module_from_spec(spec)

    script_dir = str(path.parent)
    added = script_dir not in sys.path
    if added:
        sys.path.insert(0, script_dir)
    try:
        spec.loader.exec_module(module)
    finally:
        if added:
            sys.path.remove(script_dir)

    return _rule_set_in(module, name, str(script_path))


def load_rules_from_module_path(module_path: str) -> RuleSet:
    """Import ``module.path:variable`` and return that RuleSet.

    Raises:
        ValueError: If the path has no ``:variable`` part or the variable is missing.
        TypeError: If the variable is not a RuleSet.

    """
    module_name, sep, var_name = module_path.partition(":")
    if not sep or not module_name or not var_name:
        msg = f"Module path must be in format 'module.path:variable_name', got '{module_path}'"
        raise ValueError(msg)
    return _rule_set_in(importlib.import_module(module_name), var_name, f"module '{module_name}'")


def load_rules_from_source(source: RuleSource) -> RuleSet:
    """Load a rule set from a configured RuleSource (script or module)."""
    match source:
        case ScriptSource(script=script, name=name):
            return load_rules_from_script(script, name)
        case ModuleSource(module_path=module_path):
            return load_rules_from_module_path(module_path)
