from composer.scenarios import DEFAULT_QUICK_SCENARIOS, QuickScenario, combine_scenarios, scenarios_by_id
from core.schema import WhatIfAdjustments


def test_presets_are_unique():
    lookup = scenarios_by_id()
    assert len(lookup) == len(DEFAULT_QUICK_SCENARIOS)
    assert {"retire-early", "market-downturn", "lean"} <= set(lookup)


def test_no_scenarios_leaves_sliders_alone():
    sliders = WhatIfAdjustments(expenses_percent=90.0, equity_percent=70.0)
    assert combine_scenarios(sliders, []) == sliders


def test_offsets_add():
    lookup = scenarios_by_id()
    combined = combine_scenarios(
        WhatIfAdjustments(retirement_age_offset=1, return_rate_offset=0.5),
        [lookup["retire-early"], lookup["work-longer"], lookup["market-downturn"]],
    )
    assert combined.retirement_age_offset == -1
    assert combined.return_rate_offset == -1.5


def test_percents_multiply_and_round():
    lookup = scenarios_by_id()
    combined = combine_scenarios(WhatIfAdjustments(expenses_percent=90.0), [lookup["lean"]])
    assert combined.expenses_percent == 72

    odd = QuickScenario(id="odd", name="Odd", expenses_percent=95.0)
    twice = combine_scenarios(WhatIfAdjustments(expenses_percent=101.0), [odd])
    # 101 * 0.95 = 95.95
    assert twice.expenses_percent == 96


def test_sliders_only_fields_survive():
    lookup = scenarios_by_id()
    sliders = WhatIfAdjustments(equity_percent=60.0, liquidation_threshold=5.0)
    combined = combine_scenarios(sliders, [lookup["save-more"]])
    assert combined.contribution_percent == 125
    assert combined.equity_percent == 60.0
    assert combined.liquidation_threshold == 5.0
    assert combined.has_changes()
