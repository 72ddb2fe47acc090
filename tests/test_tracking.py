"""Tests for the Deps tracking view."""

import pytest

from rulegraph import Deps
from rulegraph._tracking import RESERVED_KEYS, accessed_keys


@pytest.fixture
def deps() -> Deps:
    return Deps({"a", "b", "later"}, {"a": 1, "b": 2})


def test_item_read_returns_value_and_records(deps: Deps) -> None:
    assert deps["a"] == 1
    assert accessed_keys(deps) == ("a",)


def test_attribute_read_returns_value_and_records(deps: Deps) -> None:
    assert deps.b == 2
    assert accessed_keys(deps) == ("b",)


def test_reads_keep_first_read_order_without_duplicates(deps: Deps) -> None:
    _ = deps.b, deps.a, deps["b"]
    assert accessed_keys(deps) == ("b", "a")


def test_unregistered_key_reads_none_and_records_nothing(deps: Deps) -> None:
    assert deps["typo"] is None
    assert deps.typo is None
    assert deps.get("typo", 42) == 42
    assert accessed_keys(deps) == ()


def test_registered_but_unevaluated_key_reads_none_and_records(deps: Deps) -> None:
    assert deps.later is None
    assert accessed_keys(deps) == ("later",)


def test_get_default_only_applies_to_unregistered_keys(deps: Deps) -> None:
    assert deps.get("later", 7) is None


def test_contains_does_not_record(deps: Deps) -> None:
    assert "a" in deps
    assert "typo" not in deps
    assert accessed_keys(deps) == ()


def test_no_reads_for_constant_rule(deps: Deps) -> None:
    assert accessed_keys(deps) == ()


def test_is_read_only(deps: Deps) -> None:
    with pytest.raises(AttributeError, match="read-only"):
        deps.a = 5
    with pytest.raises(TypeError, match="read-only"):
        deps["a"] = 5
    assert deps.a == 1


def test_private_names_are_not_rule_reads(deps: Deps) -> None:
    with pytest.raises(AttributeError):
        _ = deps._missing
    assert not hasattr(deps, "__deepcopy__")
    assert accessed_keys(deps) == ()


def test_sees_values_stored_after_creation() -> None:
    values: dict[str, int] = {}
    deps = Deps({"a"}, values)
    values["a"] = 3
    assert deps.a == 3


def test_only_get_shadows_rule_reads() -> None:
    assert RESERVED_KEYS == frozenset({"get"})
    deps = Deps({"accessed", "keys"}, {"accessed": 1, "keys": 2})
    assert (deps.accessed, deps.keys) == (1, 2)
    assert accessed_keys(deps) == ("accessed", "keys")
