"""The passes of one CFR iteration over the public tree."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Sequence
from typing import TYPE_CHECKING

from .agents import br_strategy_for_pubnode, cv_for_infoset, strategy_for_pubnode

if TYPE_CHECKING:
    from .agents import RMAgent, StaticTrees, UgsAgent
    from .gametree import PubNode
    from .prune_agent import SubgamePruneAgent


def _levels(
    pubnodes: Sequence[PubNode],
    roots: Iterable[int],
    expand: Callable[[int], bool] = lambda index: True,
) -> Iterator[list[int]]:
    level = list(roots)
    while level:
        yield level
        level = [child for index in level if expand(index) for child in pubnodes[index].children]


def _apply(ugs_update: Callable[[int, Sequence[float]], None], strategies, clusters) -> None:
    for strategy, states in zip(strategies, clusters):
        for state in states:
            ugs_update(state, strategy)


def _propagate_reach(
    static_trees: StaticTrees,
    ugs: UgsAgent,
    rmc: RMAgent,
    levels: Iterable[list[int]],
    avr: bool,
) -> list[list[int]]:
    visited = []
    for level in levels:
        visited.append(level)
        for index in level:
            _apply(ugs.update_children_rp, *strategy_for_pubnode(static_trees, rmc, index, avr))
    return visited


def run_stage1(
    static_trees: StaticTrees,
    ugs: UgsAgent,
    rmc: RMAgent,
    spc: SubgamePruneAgent,
    avr: bool,
) -> None:
    """Forward pass of reach probabilities, then backward pass of utilities.

    Subtrees below pruned roots are skipped; avr selects the average strategy.
    """
    levels = _levels(
        static_trees.trees.pubnodes, [0], lambda index: not spc.pruned_roots_contain(index)
    )
    visited = _propagate_reach(static_trees, ugs, rmc, levels, avr)
    for level in reversed(visited):
        for index in level:
            _apply(ugs.update_self_utility, *strategy_for_pubnode(static_trees, rmc, index, avr))


def _outside_pruning(spc: SubgamePruneAgent, index: int) -> bool:
    return not (spc.check_under_pruned(index)[0] or spc.check_under_compensated(index)[0])


def update_average_strategies(
    static_trees: StaticTrees, ugs: UgsAgent, rmc: RMAgent, spc: SubgamePruneAgent
) -> None:
    """Blend current strategies into averages, weighted by own reach probability."""
    infoset_trees = static_trees.trees.infosets
    for index, pubnode in enumerate(static_trees.trees.pubnodes):
        if not _outside_pruning(spc, index) or static_trees.pubnode_type(index) != "P":
            continue
        p = static_trees.pubnode_player(index)
        for infoset_index in pubnode.infosets[p]:
            state = infoset_trees[p][infoset_index].i2state[0]
            weight = ugs.realization_plan_for(state, p, False, None)
            rmc.update_avr_strategy(p, infoset_index, weight, 1)


def _immediate_regret(
    static_trees: StaticTrees, ugs: UgsAgent, p: int, infoset_index: int
) -> list[float]:
    cv_i = cv_for_infoset(static_trees, ugs, p, infoset_index, None)
    children = static_trees.trees.infosets[p][infoset_index].children
    return [cv_for_infoset(static_trees, ugs, p, child, None) - cv_i for child in children]


def update_regrets(
    static_trees: StaticTrees, ugs: UgsAgent, rmc: RMAgent, spc: SubgamePruneAgent
) -> None:
    """Accumulate immediate regrets bottom-up outside pruned and compensated subgames."""
    pubnodes = static_trees.trees.pubnodes
    levels = list(
        _levels(
            pubnodes,
            [0],
            lambda index: not (
                spc.pruned_roots_contain(index) or spc.check_under_compensated(index)[0]
            ),
        )
    )
    for level in reversed(levels):
        for index in level:
            if not _outside_pruning(spc, index) or static_trees.pubnode_type(index) != "P":
                continue
            actor = static_trees.pubnode_player(index)
            for infoset_index in pubnodes[index].infosets[actor]:
                regret = _immediate_regret(static_trees, ugs, actor, infoset_index)
                rmc.update_accu_regret(actor, infoset_index, regret)


def compute_best_response(
    br_player: int, static_trees: StaticTrees, ugs: UgsAgent, rmc: RMAgent
) -> None:
    """Fill in utilities where br_player best-responds to the others' current strategies."""
    levels = _levels(static_trees.trees.pubnodes, [0])
    visited = _propagate_reach(static_trees, ugs, rmc, levels, False)
    for level in reversed(visited):
        for index in level:
            if static_trees.pubnode_player(index) == br_player:
                strategies, clusters = br_strategy_for_pubnode(static_trees, ugs, index)
            else:
                strategies, clusters = strategy_for_pubnode(static_trees, rmc, index, False)
            _apply(ugs.update_self_utility, strategies, clusters)


def reset_gamestate_roots(
    static_trees: StaticTrees, ugs: UgsAgent, compensate_roots: Iterable[int]
) -> None:
    """Make every game state below the given public roots its own root again."""
    pubnodes = static_trees.trees.pubnodes
    for pubnode_index in compensate_roots:
        for state in pubnodes[pubnode_index].gamestates:
            ugs.reset_gamestate_from_root(state)


def set_prob_r2h_and_root(
    static_trees: StaticTrees,
    ugs: UgsAgent,
    rmc: RMAgent,
    first_pruned_roots: Sequence[int],
) -> None:
    """Attach the states of newly pruned subgames to their roots and set pi(h|r)."""
    pubnodes = static_trees.trees.pubnodes
    for pubnode_index in first_pruned_roots:
        for state in pubnodes[pubnode_index].gamestates:
            ugs.update_gamestate_from_root(state)
    _propagate_reach(static_trees, ugs, rmc, _levels(pubnodes, first_pruned_roots), False)