"""Two inputs, their sum, and the doubled sum."""

import rulegraph as rg

rules = rg.RuleSet("totals")
rules.add_rule("a", lambda: 2).add_rule("b", lambda: 3)


@rules.rule(name="sum")
def total(deps: rg.Deps) -> int:
    return deps.a + deps.b


@rules.rule()
def double_sum(deps: rg.Deps) -> int:
    return deps["sum"] * 2


if __name__ == "__main__":
    engine = rules.build()
    engine.on_change("double_sum", lambda value: print(f"double_sum changed to {value}"))
    print(dict(engine.snapshot()))
    engine.set("a", 10)
