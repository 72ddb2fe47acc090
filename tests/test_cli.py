"""Tests for the rulegraph CLI."""

import sys
from pathlib import Path

import pytest
import typer
from typer.testing import CliRunner

from rulegraph._cli.discover import load_rules_from_module_path, load_rules_from_script
from rulegraph._cli.main import app, parse_assignment

runner = CliRunner()

TOTALS = """
import rulegraph as rg

rules = rg.RuleSet("totals")
rules.add_rule("a", lambda: 2).add_rule("b", lambda: 3)
rules.add_rule("sum", lambda deps: deps.a + deps.b)
rules.add_rule("doubleSum", lambda deps: deps.sum * 2)
"""

CYCLE = """
import rulegraph as rg

rules = rg.RuleSet("cycle")
rules.add_rule("a", lambda deps: (deps.b or 0) + 1)
rules.add_rule("b", lambda deps: (deps.a or 0) + 1)
"""


@pytest.fixture
def workdir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.chdir(tmp_path)
    return tmp_path


def _script(directory: Path, content: str) -> Path:
    # unique module names, module-path imports are cached in sys.modules
    path = directory / f"rules_{directory.name}.py"
    path.write_text(content)
    return path


class TestParseAssignment:
    """Tests for --set value parsing."""

    @pytest.mark.parametrize(
        ("assignment", "expected"),
        [
            ("n=3", ("n", 3)),
            ("ratio=0.5", ("ratio", 0.5)),
            ("flag=true", ("flag", True)),
            ("items=[1, 2]", ("items", [1, 2])),
            ("name=bob", ("name", "bob")),
            ("empty=", ("empty", "")),
            (" padded =1", ("padded", 1)),
        ],
    )
    def test_values(self, assignment: str, expected: tuple[str, object]) -> None:
        assert parse_assignment(assignment) == expected

    @pytest.mark.parametrize("assignment", ["novalue", "=3"])
    def test_invalid(self, assignment: str) -> None:
        with pytest.raises(typer.BadParameter):
            parse_assignment(assignment)


class TestDiscover:
    """Tests for loading rule sets."""

    def test_load_from_script_infers_rule_set(self, tmp_path: Path) -> None:
        rules = load_rules_from_script(_script(tmp_path, TOTALS))
        assert rules.name == "totals"
        assert len(rules) == 4

    def test_load_from_script_picks_first_defined(self, tmp_path: Path) -> None:
        script = _script(tmp_path, 'import rulegraph as rg\nzeta = rg.RuleSet("zeta")\nalpha = rg.RuleSet("alpha")\n')
        assert load_rules_from_script(script).name == "zeta"

    def test_load_from_script_by_name(self, tmp_path: Path) -> None:
        rules = load_rules_from_script(_script(tmp_path, TOTALS), "rules")
        assert "doubleSum" in rules

    def test_load_from_script_missing_name(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="Could not find rule set 'other'"):
            load_rules_from_script(_script(tmp_path, TOTALS), "other")

    def test_load_from_script_wrong_type(self, tmp_path: Path) -> None:
        with pytest.raises(TypeError, match="'value' in .* is not a RuleSet instance"):
            load_rules_from_script(_script(tmp_path, TOTALS + "\nvalue = 3\n"), "value")

    def test_load_from_script_without_rule_set(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="Could not find RuleSet"):
            load_rules_from_script(_script(tmp_path, "value = 3\n"))

    def test_load_from_missing_script(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError, match="Script not found"):
            load_rules_from_script(tmp_path / "missing_rules.py")

    def test_script_can_import_sibling_modules(self, tmp_path: Path) -> None:
        (tmp_path / f"prices_{tmp_path.name}.py").write_text("BASE = 4\n")
        script = _script(
            tmp_path,
            f"import rulegraph as rg\nfrom prices_{tmp_path.name} import BASE\n"
            'rules = rg.RuleSet("prices").add_rule("base", lambda: BASE)\n',
        )

        assert load_rules_from_script(script).build().get("base") == 4
        assert str(script.resolve().parent) not in sys.path

    def test_load_from_module_path(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        script = _script(tmp_path, TOTALS)
        monkeypatch.syspath_prepend(str(tmp_path))
        rules = load_rules_from_module_path(f"{script.stem}:rules")
        assert rules.name == "totals"

    def test_module_path_missing_variable(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        script = _script(tmp_path, TOTALS)
        monkeypatch.syspath_prepend(str(tmp_path))
        with pytest.raises(ValueError, match="Could not find rule set 'other'"):
            load_rules_from_module_path(f"{script.stem}:other")

    @pytest.mark.parametrize("module_path", ["examples.totals", "examples.totals:", ":rules"])
    def test_module_path_needs_module_and_variable(self, module_path: str) -> None:
        with pytest.raises(ValueError, match="module.path:variable_name"):
            load_rules_from_module_path(module_path)


class TestSnapshotCommand:
    """Tests for `rulegraph snapshot`."""

    def test_prints_values(self, workdir: Path) -> None:
        result = runner.invoke(app, ["snapshot", str(_script(workdir, TOTALS))])

        assert result.exit_code == 0, result.output
        assert "doubleSum" in result.output
        assert "10" in result.output
        assert "override" not in result.output

    def test_set_and_watch(self, workdir: Path) -> None:
        result = runner.invoke(
            app,
            ["snapshot", str(_script(workdir, TOTALS)), "--set", "a=10", "--watch", "doubleSum"],
        )

        assert result.exit_code == 0, result.output
        assert "doubleSum -> 26" in result.output
        assert "override" in result.output

    def test_set_unknown_rule(self, workdir: Path) -> None:
        result = runner.invoke(app, ["snapshot", str(_script(workdir, TOTALS)), "--set", "nope=1"])

        assert result.exit_code == 1
        assert "Unknown rule 'nope'" in result.output

    def test_malformed_set(self, workdir: Path) -> None:
        result = runner.invoke(app, ["snapshot", str(_script(workdir, TOTALS)), "--set", "a"])

        assert result.exit_code == 2

    def test_missing_script(self, workdir: Path) -> None:
        result = runner.invoke(app, ["snapshot", str(workdir / "missing_rules.py")])

        assert result.exit_code == 1

    def test_uses_configured_rules(self, workdir: Path) -> None:
        script = _script(workdir, TOTALS)
        (workdir / "pyproject.toml").write_text(f'[tool.rulegraph]\nrules = {{ script = "{script.name}" }}\n')

        result = runner.invoke(app, ["snapshot", "--set", "b=1"])

        assert result.exit_code == 0, result.output
        assert "Loading rules from config" in result.output

    def test_invalid_rule_key(self, workdir: Path) -> None:
        script = _script(workdir, 'import rulegraph as rg\nrules = rg.RuleSet().add_rule("get", lambda: 1)\n')

        result = runner.invoke(app, ["snapshot", str(script)])

        assert result.exit_code == 1
        assert "Rule key 'get' is reserved" in result.output

    def test_without_source_or_config(self, workdir: Path) -> None:
        result = runner.invoke(app, ["snapshot"])

        assert result.exit_code == 1
        assert "No rule set given" in result.output

    def test_invalid_config(self, workdir: Path) -> None:
        (workdir / "pyproject.toml").write_text("[tool.rulegraph]\nbatching = true\n")

        result = runner.invoke(app, ["snapshot", str(_script(workdir, TOTALS))])

        assert result.exit_code == 1


class TestGraphCommand:
    """Tests for `rulegraph graph`."""

    def test_prints_tree_and_order(self, workdir: Path) -> None:
        result = runner.invoke(app, ["graph", str(_script(workdir, TOTALS))])

        assert result.exit_code == 0, result.output
        assert "Evaluation order: a -> b -> sum -> doubleSum" in result.output

    def test_cycle_is_reported(self, workdir: Path) -> None:
        result = runner.invoke(app, ["graph", str(_script(workdir, CYCLE))])

        assert result.exit_code == 1
        assert "Dependency cycle detected" in result.output
