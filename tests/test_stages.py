import pytest

from subgame_cfr.agents import RMAgent, StaticTrees, UgsAgent
from subgame_cfr.config import Config
from subgame_cfr.gametree import GameState, GameTrees, InfoSet, PubNode
from subgame_cfr.prune_agent import SubgamePruneAgent
from subgame_cfr.regret import RMCell
from subgame_cfr.stages import (
    compute_best_response,
    reset_gamestate_roots,
    run_stage1,
    set_prob_r2h_and_root,
    update_average_strategies,
    update_regrets,
)

LEFT_PAYOFF = [1.0, -1.0]
RIGHT_PAYOFF = [-1.0, 1.0]


def _infoset_tree():
    return [
        InfoSet(player=0, key="root", index=0, father=None, children=[1, 2], i2state=[0], pubnode=0),
        InfoSet(player=-1, key="left", index=1, father=0, children=[], i2state=[1], pubnode=1),
        InfoSet(player=-1, key="right", index=2, father=0, children=[], i2state=[2], pubnode=2),
    ]


def _game():
    pubnodes = [
        PubNode(infosets={0: [0], 1: [0]}, gamestates=[0], father=None, children=[1, 2], end_of_subtree=2),
        PubNode(infosets={0: [1], 1: [1]}, gamestates=[1], father=0, children=[], end_of_subtree=1),
        PubNode(infosets={0: [2], 1: [2]}, gamestates=[2], father=0, children=[], end_of_subtree=2),
    ]
    gamestates = [
        GameState(key="root", index=0, father=None, father_action=None, children=[1, 2],
                  state2i={0: 0, 1: 0}, pubnode=0, payoff=None, node_type="P", chance=None, player=0),
        GameState(key="left", index=1, father=0, father_action=0, children=[],
                  state2i={0: 1, 1: 1}, pubnode=1, payoff=list(LEFT_PAYOFF), node_type="T", chance=None, player=None),
        GameState(key="right", index=2, father=0, father_action=1, children=[],
                  state2i={0: 2, 1: 2}, pubnode=2, payoff=list(RIGHT_PAYOFF), node_type="T", chance=None, player=None),
    ]
    return GameTrees(pubnodes=pubnodes, infosets={0: _infoset_tree(), 1: _infoset_tree()}, gamestates=gamestates)


@pytest.fixture
def setup():
    trees = _game()
    return StaticTrees(trees), UgsAgent(trees), RMAgent(RMCell, trees)


def _pruned_agent(static_trees, ugs, rmc):
    spc = SubgamePruneAgent()
    config = Config.with_pruning("test_game", "VCFR", True, False, "results")
    spc.update_pruned_roots([0], static_trees, ugs, rmc, config)
    return spc


def test_stage1_splits_reach_between_children(setup):
    static_trees, ugs, rmc = setup
    run_stage1(static_trees, ugs, rmc, SubgamePruneAgent(), False)
    left, right = ugs.ugs[1], ugs.ugs[2]
    assert left.prob_r[0] + right.prob_r[0] == pytest.approx(ugs.ugs[0].prob_r[0])
    assert left.prob_r[1:] == ugs.ugs[0].prob_r[1:]


def test_stage1_root_utility_is_zero_sum(setup):
    static_trees, ugs, rmc = setup
    run_stage1(static_trees, ugs, rmc, SubgamePruneAgent(), False)
    assert sum(ugs.utility(0)) == pytest.approx(0.0)
    assert min(LEFT_PAYOFF[0], RIGHT_PAYOFF[0]) <= ugs.utility(0)[0] <= max(LEFT_PAYOFF[0], RIGHT_PAYOFF[0])


def test_regrets_favour_better_action(setup):
    static_trees, ugs, rmc = setup
    spc = SubgamePruneAgent()
    run_stage1(static_trees, ugs, rmc, spc, False)
    update_regrets(static_trees, ugs, rmc, spc)
    assert rmc.accu_regret(0, 0) == pytest.approx([1.0, -1.0])
    assert rmc.rmc[0][0].current_strategy() == [1.0, 0.0]


def test_regrets_skipped_under_pruning(setup):
    static_trees, ugs, rmc = setup
    spc = _pruned_agent(static_trees, ugs, rmc)
    run_stage1(static_trees, ugs, rmc, spc, False)
    update_regrets(static_trees, ugs, rmc, spc)
    assert rmc.accu_regret(0, 0) == [0.0, 0.0]


def test_average_update_weight_is_own_reach(setup):
    static_trees, ugs, rmc = setup
    spc = SubgamePruneAgent()
    run_stage1(static_trees, ugs, rmc, spc, False)
    update_average_strategies(static_trees, ugs, rmc, spc)
    cell = rmc.rmc[0][0]
    assert cell.weight == pytest.approx(ugs.realization_plan_for(0, 0))
    assert sum(cell.average_strategy()) == pytest.approx(1.0)


def test_average_update_skipped_under_pruning(setup):
    static_trees, ugs, rmc = setup
    spc = _pruned_agent(static_trees, ugs, rmc)
    update_average_strategies(static_trees, ugs, rmc, spc)
    assert rmc.rmc[0][0].weight == 0.0


def test_best_response_takes_best_payoff(setup):
    static_trees, ugs, rmc = setup
    compute_best_response(0, static_trees, ugs, rmc)
    assert ugs.utility(0) == pytest.approx(LEFT_PAYOFF)


def test_best_response_not_worse_than_current(setup):
    static_trees, ugs, rmc = setup
    run_stage1(static_trees, ugs, rmc, SubgamePruneAgent(), False)
    current = ugs.utility(0)[0]
    compute_best_response(0, static_trees, ugs, rmc)
    assert ugs.utility(0)[0] >= current


def test_best_response_of_idle_player_keeps_strategy(setup):
    static_trees, ugs, rmc = setup
    run_stage1(static_trees, ugs, rmc, SubgamePruneAgent(), False)
    current = ugs.utility(0)
    compute_best_response(1, static_trees, ugs, rmc)
    assert ugs.utility(0) == pytest.approx(current)


def test_set_prob_r2h_and_root_attaches_subtree(setup):
    static_trees, ugs, rmc = setup
    set_prob_r2h_and_root(static_trees, ugs, rmc, [0])
    assert [state.root for state in ugs.ugs] == [0, 0, 0]
    left, right = ugs.ugs[1], ugs.ugs[2]
    assert left.prob_r == ugs.ugs[0].prob_r
    assert left.prob_r2h[0] + right.prob_r2h[0] == pytest.approx(ugs.ugs[0].prob_r2h[0])


def test_reset_gamestate_roots_restores_own_roots(setup):
    static_trees, ugs, rmc = setup
    set_prob_r2h_and_root(static_trees, ugs, rmc, [0])
    reset_gamestate_roots(static_trees, ugs, [0])
    assert [state.root for state in ugs.ugs] == [0, 1, 2]