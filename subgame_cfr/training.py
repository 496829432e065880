"""The CFR training loop with subgame pruning, check-free subgames and compensation."""

from __future__ import annotations

import copy
import math
import warnings
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from tqdm import tqdm

from .agents import cv_for_infoset, prob_r_for_pubnode
from .csvtool import write_csv
from .prune_agent import SubgamePruneAgent
from .stages import (
    compute_best_response,
    reset_gamestate_roots,
    run_stage1,
    set_prob_r2h_and_root,
    update_average_strategies,
    update_regrets,
)
from .util import flatten_outer, max_index, transpose

if TYPE_CHECKING:
    from .agents import HistoryProbR, RMAgent, StaticTrees, UgsAgent
    from .config import Config
    from .gametree import PubNode

CSV_HEADERS = (
    "Itera",
    "Exploitablity",
    "Expected_return-0",
    "Expected_return-1",
    "BR-0",
    "BR-1",
    "PrunedProp-pubnode",
    "CheckFreePRrop-pubnode",
    "PrunedProp-gamestate",
    "CheckFreePRrop-gamestate",
)


@dataclass
class TrainingLog:
    """Measurements taken at the checkpoints of a training run."""

    steps: list[int] = field(default_factory=list)
    exploitability: list[float] = field(default_factory=list)
    expected_returns: list[list[float]] = field(default_factory=list)
    best_response_returns: list[list[float]] = field(default_factory=list)
    prune_prop: list[list[float]] = field(default_factory=list)
    thresholds: list[float] = field(default_factory=list)
    accu_regret: list[list[float]] = field(default_factory=list)
    csv_path: Path | None = None


def _levels(pubnodes: Sequence[PubNode], roots: Iterable[int]) -> Iterator[list[int]]:
    level = list(roots)
    while level:
        yield level
        level = [child for index in level for child in pubnodes[index].children]


def _ieee_div(a: float, b: float) -> float:
    if b == 0:
        if a == 0 or math.isnan(a):
            return math.nan
        return math.copysign(math.inf, a) * math.copysign(1.0, b)
    return a / b


def _immediate_regret(
    static_trees: StaticTrees,
    ugs: UgsAgent,
    p: int,
    infoset_index: int,
    history_prob_r: HistoryProbR | None,
) -> list[float]:
    cv_i = cv_for_infoset(static_trees, ugs, p, infoset_index, history_prob_r)
    children = static_trees.trees.infosets[p][infoset_index].children
    return [cv_for_infoset(static_trees, ugs, p, child, history_prob_r) - cv_i for child in children]


def compute_expected_return(
    static_trees: StaticTrees, ugs: UgsAgent, rmc: RMAgent, spc: SubgamePruneAgent
) -> list[float]:
    """Utility of the root for every player under the current strategies."""
    run_stage1(static_trees, ugs, rmc, spc, False)
    return ugs.utility(0)


def compute_br_return(static_trees: StaticTrees, ugs: UgsAgent, rmc: RMAgent) -> list[float]:
    """Root utility of each of the two players when best-responding to the other."""
    returns = []
    for player in (0, 1):
        compute_best_response(player, static_trees, ugs, rmc)
        returns.append(ugs.utility(0)[player])
    return returns


def check_free_subgame_checking(
    static_trees: StaticTrees, ugs: UgsAgent, spc: SubgamePruneAgent, config: Config
) -> None:
    """Mark the pruned roots that meet the check-free condition."""
    check_free = set()
    for root in spc.pruned_subgame():
        prob_r = prob_r_for_pubnode(root, static_trees, ugs, None)
        if spc.check_check_free_node(root, prob_r, config):
            check_free.add(root)
    spc.update_check_free_roots(check_free, static_trees, config)


def rm_compensation(
    static_trees: StaticTrees,
    ugs: UgsAgent,
    rmc: RMAgent,
    spc: SubgamePruneAgent,
    config: Config,
) -> None:
    """Catch up the average strategies (and, for vanilla CFR, the regrets) of subgames leaving pruning."""
    pubnodes = static_trees.trees.pubnodes
    infoset_trees = static_trees.trees.infosets
    avr = config.algo_name == "CFR+"
    roots = spc.compensation_roots()
    for root in roots:
        history = spc.history_prob_r(root, avr)
        for level in _levels(pubnodes, [root]):
            for index in level:
                if static_trees.pubnode_type(index) != "P":
                    continue
                actor = static_trees.pubnode_player(index)
                for infoset_index in pubnodes[index].infosets[actor]:
                    state = infoset_trees[actor][infoset_index].i2state[0]
                    weight = ugs.realization_plan_for(state, actor, True, history)
                    rmc.update_avr_strategy(actor, infoset_index, weight, spc.prune_times(index))
                    regret = _immediate_regret(static_trees, ugs, actor, infoset_index, history)
                    if config.algo_name == "VCFR":
                        rmc.update_accu_regret(actor, infoset_index, regret)
    for root in roots:
        spc.remove(root)


def _satisfies_pruning(
    static_trees: StaticTrees,
    ugs: UgsAgent,
    rmc: RMAgent,
    spc: SubgamePruneAgent,
    index: int,
    config: Config,
) -> bool:
    if spc.whether_check_free(index)[0]:
        return True
    if static_trees.pubnode_type(index) != "P":
        return True
    pubnode = static_trees.trees.pubnodes[index]
    actor = static_trees.pubnode_player(index)
    found, root = spc.check_under_pruned(index)
    history = spc.history_prob_r(root, False) if found else None
    satisfied = True
    for p in range(2):
        for infoset_index in pubnode.infosets[p]:
            regret = _immediate_regret(static_trees, ugs, p, infoset_index, history)
            rmc.set_max_regret_for_subgame(actor, infoset_index, max_index(regret)[0])
            if not rmc.prune_constraint_check(p, infoset_index, regret, config):
                satisfied = False
                break
    return satisfied


def prune_constraint_checking(
    static_trees: StaticTrees,
    ugs: UgsAgent,
    rmc: RMAgent,
    spc: SubgamePruneAgent,
    config: Config,
) -> tuple[list[int], list[int]]:
    """Find the largest subgames whose strategies would not change and prune them.

    Walks the public tree bottom-up; a node becomes a candidate once all its
    children satisfy the pruning constraint. Returns the roots pruned for the
    first time and the roots that need compensation.
    """
    pubnodes = static_trees.trees.pubnodes
    candidates: dict[int, int] = {}
    pruned_roots: set[int] = set()
    for depth in reversed(range(static_trees.depth())):
        queue = static_trees.leaves_at_level(depth)
        queue.extend(
            index for index, votes in candidates.items() if len(pubnodes[index].children) == votes
        )
        candidates = {}
        for index in queue:
            father = pubnodes[index].father
            if father is not None:
                candidates[father] = 0
        for index in queue:
            if not _satisfies_pruning(static_trees, ugs, rmc, spc, index, config):
                continue
            pubnode = pubnodes[index]
            if pubnode.father is not None:
                candidates[pubnode.father] += 1
            pruned_roots.difference_update(pubnode.children)
            if pubnode.children:
                pruned_roots.add(index)
    return spc.update_pruned_roots(sorted(pruned_roots), static_trees, ugs, rmc, config)


def _prune_proportions(
    static_trees: StaticTrees, spc: SubgamePruneAgent, config: Config
) -> list[float]:
    (pruned_pub, pruned_states), (free_pub, free_states) = spc.total_pruned_nodes()
    trees = static_trees.trees
    pub_total = len(trees.pubnodes) - (0 if config.count_leaves else static_trees.num_publeaves())
    state_total = len(trees.gamestates) - (
        0 if config.count_leaves else static_trees.num_gamestate_leaves()
    )
    iteration = config.current_iteration
    return [
        _ieee_div(_ieee_div(float(count), float(total)), float(iteration))
        for count, total in (
            (pruned_pub, pub_total),
            (free_pub, pub_total),
            (pruned_states, state_total),
            (free_states, state_total),
        )
    ]


def _record_checkpoint(
    log: TrainingLog,
    step: int,
    threshold: float,
    static_trees: StaticTrees,
    ugs: UgsAgent,
    rmc: RMAgent,
    spc: SubgamePruneAgent,
    config: Config,
    record_accu_regret: Sequence[Sequence[int]],
) -> None:
    ugs = copy.deepcopy(ugs)
    spc = copy.deepcopy(spc)
    rmc = copy.deepcopy(rmc)
    log.accu_regret.append(
        [
            max_index(rmc.accu_regret(p, infoset_index))[0]
            for p in range(static_trees.num_player)
            for infoset_index in record_accu_regret[p]
        ]
    )
    spc.reset_compensate_for_test()
    rm_compensation(static_trees, ugs, rmc, spc, config)
    reset_gamestate_roots(static_trees, ugs, [0])
    log.steps.append(step)
    expected = compute_expected_return(static_trees, ugs, rmc, spc)
    best = compute_br_return(static_trees, ugs, rmc)
    log.exploitability.append((sum(best) - sum(expected)) / static_trees.num_player)
    log.thresholds.append(threshold)
    log.prune_prop.append(_prune_proportions(static_trees, spc, config))
    log.expected_returns.append(list(expected))
    log.best_response_returns.append(list(best))


def cfr_iteration(
    static_trees: StaticTrees,
    ugs: UgsAgent,
    rmc: RMAgent,
    epochs: int,
    config: Config,
    record_accu_regret: Sequence[Sequence[int]],
) -> TrainingLog:
    """Run CFR for the given number of iterations and write the measurements to CSV.

    Measurements are taken at iterations 0-9, then every 10, every 100 and so on.
    """
    spc = SubgamePruneAgent()
    log = TrainingLog()
    threshold = 1e-10
    every = 1
    for i in tqdm(range(epochs)):
        if i % every == 0:
            if every * 10 <= i:
                every *= 10
            _record_checkpoint(
                log, i, threshold, static_trees, ugs, rmc, spc, config, record_accu_regret
            )
        run_stage1(static_trees, ugs, rmc, spc, False)
        pruning, check_free = config.subgame_prune[0], config.subgame_prune[1]
        if pruning:
            spc.update_spc_cells(static_trees, ugs, config)
            if check_free:
                check_free_subgame_checking(static_trees, ugs, spc, config)
            first_pruned, compensate = prune_constraint_checking(static_trees, ugs, rmc, spc, config)
            rm_compensation(static_trees, ugs, rmc, spc, config)
            reset_gamestate_roots(static_trees, ugs, compensate)
            set_prob_r2h_and_root(static_trees, ugs, rmc, first_pruned)
        update_average_strategies(static_trees, ugs, rmc, spc)
        update_regrets(static_trees, ugs, rmc, spc)
        threshold = config.step()

    tables = [
        [[float(step)] for step in log.steps],
        [[value] for value in log.exploitability],
        log.expected_returns,
        log.best_response_returns,
        log.prune_prop,
    ]
    columns = transpose(flatten_outer(tables))
    path = Path(config.dir) / "csv" / config.game_name / config.algo_name / f"{config}.csv"
    try:
        write_csv(path, CSV_HEADERS, columns)
        log.csv_path = path
    except OSError as error:
        warnings.warn(f"could not write {path}: {error}", stacklevel=2)
    return log