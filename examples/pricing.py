"""Order pricing where the discount rule reads different inputs depending on the customer."""

import rulegraph as rg

pricing = rg.RuleSet("pricing")
pricing.add_rule("unit_price", lambda: 12.5)
pricing.add_rule("quantity", lambda: 4)
pricing.add_rule("member", lambda: False)
pricing.add_rule("member_rate", lambda: 0.1)
pricing.add_rule("bulk_rate", lambda: 0.05)


@pricing.rule()
def discount(deps: rg.Deps) -> float:
    # Members get the member rate; everyone else only qualifies for bulk pricing.
    if deps.member:
        return deps.member_rate
    return deps.bulk_rate if deps.quantity >= 10 else 0.0


@pricing.rule()
def subtotal(deps: rg.Deps) -> float:
    return deps.unit_price * deps.quantity


@pricing.rule()
def total(deps: rg.Deps) -> float:
    return round(deps.subtotal * (1 - deps.discount), 2)


if __name__ == "__main__":
    engine = pricing.build(rg.EngineOptions(prune_stale_edges=True))
    engine.on_change("total", lambda value: print(f"total: {value}"))
    engine.set("quantity", 12)
    engine.set("member", True)
