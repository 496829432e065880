import pytest

from subgame_cfr.config import Config
from subgame_cfr.prune import SubgamePruneCell

BEFORE = {7: [0.5, 0.25], 3: [0.125, 1.0]}


def make_cell(max_regret=0.0, iteration=0):
    return SubgamePruneCell(BEFORE, max_regret, iteration)


def test_construction_copies_and_sorts():
    prob_r = {k: list(v) for k, v in BEFORE.items()}
    cell = SubgamePruneCell(prob_r, 0.5, 4)
    prob_r[7][0] = 99.0
    assert cell.prob_r_history == BEFORE
    assert cell.prob_r_history4avr_update == BEFORE
    assert cell.prob_r_before_prune == [BEFORE[3], BEFORE[7]]
    assert cell.prune_times == 0
    assert cell.last_update_times == 4
    assert cell.max_regret_in_subgame == 0.5


def test_history_dicts_are_independent():
    cell = make_cell()
    cell.prob_r_history[3][0] = 42.0
    assert cell.prob_r_history4avr_update[3][0] == BEFORE[3][0]


def test_exempt_when_reach_unchanged_and_regret_small():
    cell = make_cell(max_regret=0.0)
    assert cell.check_exempt_condition(BEFORE, Config("kuhn_poker", "VCFR")) is True


def test_exempt_ignores_scaling_of_reach():
    cell = make_cell(max_regret=0.0)
    scaled = {k: [2 * x for x in v] for k, v in BEFORE.items()}
    assert cell.check_exempt_condition(scaled, Config("kuhn_poker", "VCFR")) is True


def test_not_exempt_when_regret_large():
    cell = make_cell(max_regret=1.0)
    assert cell.check_exempt_condition(BEFORE, Config("kuhn_poker", "VCFR")) is False


def test_not_exempt_when_reach_changes():
    cell = make_cell(max_regret=0.0)
    changed = {7: [0.5, 0.25], 3: [0.9, 0.01]}
    assert cell.check_exempt_condition(changed, Config("kuhn_poker", "VCFR")) is False


def test_thresholds_from_config_allow_exemption():
    cell = make_cell(max_regret=1.0)
    changed = {7: [0.5, 0.25], 3: [0.9, 0.01]}
    config = Config("kuhn_poker", "VCFR", subgame_prune=(True, True, 2.0, 100.0))
    assert cell.check_exempt_condition(changed, config) is True


def test_update_history_without_cfrplus():
    cell = make_cell()
    prob_r = {7: [1.0, 2.0], 3: [4.0, 8.0]}
    cell.update_prob_r_history(prob_r, False)
    assert cell.prob_r_history == {
        7: [BEFORE[7][0] + 1.0, BEFORE[7][1] + 2.0],
        3: [BEFORE[3][0] + 4.0, BEFORE[3][1] + 8.0],
    }
    assert cell.prob_r_history4avr_update == BEFORE
    assert cell.prune_times == 1


def test_update_history_with_cfrplus_scales_by_prune_times():
    cell = make_cell(iteration=0)
    prob_r = {7: [1.0, 2.0], 3: [4.0, 8.0]}
    cell.update_prob_r_history(prob_r, True)
    cell.update_prob_r_history(prob_r, True)
    assert prob_r == {7: [1.0, 2.0], 3: [4.0, 8.0]}
    assert cell.prune_times == 2
    for index in BEFORE:
        assert cell.prob_r_history[index] == pytest.approx(
            [b + 2 * p for b, p in zip(BEFORE[index], prob_r[index])]
        )
        assert cell.prob_r_history4avr_update[index] == pytest.approx(
            [b + 3 * p for b, p in zip(BEFORE[index], prob_r[index])]
        )


def test_update_history_missing_state_raises():
    cell = make_cell()
    with pytest.raises(KeyError):
        cell.update_prob_r_history({7: [1.0, 1.0]}, False)


def test_update_history_nan_raises():
    cell = make_cell()
    with pytest.raises(ValueError):
        cell.update_prob_r_history({7: [float("nan"), 1.0], 3: [1.0, 1.0]}, False)