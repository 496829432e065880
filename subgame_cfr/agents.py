"""Static trees, per-state utilities and regret-matching cells, with strategy lookups."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, Sequence
from typing import TYPE_CHECKING, Generic, TypeVar

from .gametree import GameTrees, PubNode, UtilityGameState, build_ugs
from .regret import UNSET_MAX_REGRET, RMCell, build_rmc
from .util import check_nan, matvec, max_index, multiple, transpose

if TYPE_CHECKING:
    from .config import Config

C = TypeVar("C", bound=RMCell)

HistoryProbR = Mapping[int, Sequence[float]]


def _bfs_levels(pubnodes: Sequence[PubNode], roots: Iterable[int] = (0,)) -> Iterator[list[int]]:
    level = list(roots)
    while level:
        yield level
        level = [child for index in level for child in pubnodes[index].children]


class StaticTrees:
    """The immutable game trees with a few derived lookups."""

    def __init__(self, trees: GameTrees) -> None:
        self.trees = trees
        self.num_player = len(trees.infosets)
        self._leaves_by_level = [
            [index for index in level if not trees.pubnodes[index].children]
            for level in _bfs_levels(trees.pubnodes)
        ]

    def pubnode_type(self, node_index: int) -> str:
        """Node type ('C', 'P' or 'T') of the public node's first game state."""
        first = self.trees.pubnodes[node_index].gamestates[0]
        return self.trees.gamestates[first].node_type

    def pubnode_player(self, node_index: int) -> int:
        """Acting player of the public node, or num_player + 1 if nobody acts."""
        first = self.trees.pubnodes[node_index].gamestates[0]
        player = self.trees.gamestates[first].player
        return self.num_player + 1 if player is None else player

    def depth(self) -> int:
        """Number of levels of the public tree."""
        return len(self._leaves_by_level)

    def leaves_at_level(self, level: int) -> list[int]:
        """Public leaves at the given depth."""
        return list(self._leaves_by_level[level])

    def nodes_rooted_at(self, pubnode_index: int) -> list[int]:
        """Indices from the node up to (not including) its end of subtree."""
        return list(range(pubnode_index, self.trees.pubnodes[pubnode_index].end_of_subtree))

    def num_publeaves(self) -> int:
        """Number of public leaves."""
        return sum(len(level) for level in self._leaves_by_level)

    def num_gamestate_leaves(self) -> int:
        """Number of game states held by public leaves."""
        return sum(
            len(self.trees.pubnodes[index].gamestates)
            for level in self._leaves_by_level
            for index in level
        )


class UgsAgent:
    """Utilities and reach probabilities of every game state."""

    def __init__(self, trees: GameTrees) -> None:
        self.ugs: list[UtilityGameState] = build_ugs(trees.gamestates)
        self._children = [list(gs.children) for gs in trees.gamestates]
        self._current_p = [2 if gs.player is None else gs.player for gs in trees.gamestates]

    def _subtree(self, root: int) -> Iterator[int]:
        level = [root]
        while level:
            yield from level
            level = [child for index in level for child in self._children[index]]

    def update_children_rp(self, index: int, strategy: Sequence[float]) -> None:
        """Pass the state's reach probabilities to its children through the strategy."""
        children = self._children[index]
        if len(children) != len(strategy):
            raise ValueError(
                f"state {index} has {len(children)} children but the strategy has {len(strategy)} entries"
            )
        parent = self.ugs[index]
        actor = self._current_p[index]
        for child_index, prob in zip(children, strategy):
            child = self.ugs[child_index]
            child.prob_r = list(parent.prob_r)
            child.prob_r2h = list(parent.prob_r2h)
            if child.root == child_index and parent.root == index:
                child.prob_r[actor] *= prob
            else:
                child.prob_r2h[actor] *= prob

    def update_self_utility(self, index: int, strategy: Sequence[float]) -> None:
        """Set the state's utility to the strategy-weighted utilities of its children."""
        child_utilities = [self.ugs[child].utility for child in self._children[index]]
        self.ugs[index].utility = matvec(transpose(child_utilities), strategy)

    def _history(self, gamestate_index: int, history_prob_r: HistoryProbR | None) -> Sequence[float]:
        if history_prob_r is None:
            raise ValueError("history reach probabilities are needed under subgame pruning")
        return history_prob_r[self.ugs[gamestate_index].root]

    def realization_plan_for(
        self,
        gamestate_index: int,
        player: int,
        subgame_prune: bool = False,
        history_prob_r: HistoryProbR | None = None,
    ) -> float:
        """The player's own contribution to the state's reach probability."""
        state = self.ugs[gamestate_index]
        if subgame_prune:
            return state.prob_r2h[player] * self._history(gamestate_index, history_prob_r)[player]
        return state.prob_r[player] * state.prob_r2h[player]

    def realization_plan_excluding(
        self,
        gamestate_index: int,
        player: int,
        subgame_prune: bool = False,
        history_prob_r: HistoryProbR | None = None,
    ) -> float:
        """Reach probability contributed by everyone (chance included) except the player."""
        state = self.ugs[gamestate_index]
        last = len(state.prob_r) - 1
        result = 1.0
        for p in range(len(state.prob_r)):
            if p == player:
                continue
            if subgame_prune and p != last:
                result *= self._history(gamestate_index, history_prob_r)[p] * state.prob_r2h[p]
            else:
                result *= state.prob_r[p] * state.prob_r2h[p]
            check_nan([result])
        return result

    def utility(self, index: int) -> list[float]:
        """A copy of the state's utility vector."""
        return list(self.ugs[index].utility)

    def update_gamestate_from_root(self, root_gamestate_index: int) -> None:
        """Mark every state of the subtree as belonging to the given root."""
        for index in self._subtree(root_gamestate_index):
            self.ugs[index].root = root_gamestate_index

    def reset_gamestate_from_root(self, root_gamestate_index: int) -> None:
        """Make every state of the subtree its own root again."""
        for index in self._subtree(root_gamestate_index):
            self.ugs[index].root = index

    def __str__(self) -> str:
        return "".join(
            f"index {index} {node}children {self._children[index]}\n"
            for index, node in enumerate(self.ugs)
        )


def _narrow_children_infoset(trees: GameTrees, p: int, infoset_index: int) -> list[int]:
    """Nearest descendant level of info-sets where player p acts again."""
    tree = trees.infosets[p]
    level = list(tree[infoset_index].children)
    while level:
        if tree[level[0]].player == p:
            return level
        level = [child for index in level for child in tree[index].children]
    return []


class RMAgent(Generic[C]):
    """Regret-matching cells of every info-set of every player."""

    def __init__(self, cell_type: type[C], trees: GameTrees) -> None:
        self.rmc: dict[int, list[C]] = {
            player: build_rmc(cell_type, tree) for player, tree in trees.infosets.items()
        }
        self._children: dict[int, dict[int, list[int]]] = {
            p: {
                index: _narrow_children_infoset(trees, p, index)
                for index in range(len(trees.infosets[p]))
            }
            for p in range(len(trees.infosets))
        }
        self.algo_name: str = cell_type.ALGO_NAME

    def _children_max_regrets(self, p: int, infoset_index: int) -> list[float]:
        cells = self.rmc[p]
        return [cells[child].max_regret for child in self._children[p][infoset_index]]

    def update_avr_strategy(self, p: int, infoset_index: int, weight: float, times: int) -> None:
        """Blend the current strategy into the average strategy."""
        self.rmc[p][infoset_index].average_update(weight, times)

    def update_accu_regret(self, p: int, infoset_index: int, regret: Sequence[float]) -> None:
        """Accumulate the immediate regret."""
        self.rmc[p][infoset_index].regret_match(regret)

    def accu_regret(self, p: int, infoset_index: int) -> list[float]:
        """A copy of the accumulated regret."""
        return list(self.rmc[p][infoset_index].accu_regret)

    def set_max_regret_for_subgame(self, p: int, infoset_index: int, max_regret: float) -> None:
        """Record the largest regret of the info-set and its nearest own descendants."""
        candidates = self._children_max_regrets(p, infoset_index)
        candidates.append(max_regret)
        self.rmc[p][infoset_index].max_regret = max_index(candidates)[0]

    def prune_constraint_check(
        self, p: int, infoset_index: int, regret: Sequence[float], config: Config
    ) -> bool:
        """Whether the info-set satisfies the pruning constraint."""
        return self.rmc[p][infoset_index].prune_constraint_check(regret, config)

    def max_regret_in_subgame(self, p: int, infoset_index: int) -> float:
        """Recorded max regret, falling back on the nearest own descendants if unset."""
        recorded = self.rmc[p][infoset_index].max_regret
        if recorded != UNSET_MAX_REGRET:
            return recorded
        candidates = self._children_max_regrets(p, infoset_index)
        if not candidates:
            return 0.0
        return max_index(candidates)[0]


def cv_for_infoset(
    static_trees: StaticTrees,
    ugs: UgsAgent,
    p: int,
    infoset_index: int,
    history_prob_r: HistoryProbR | None = None,
) -> float:
    """Counterfactual value of the info-set for player p."""
    subgame_prune = history_prob_r is not None
    states = static_trees.trees.infosets[p][infoset_index].i2state
    outside = [
        ugs.realization_plan_excluding(x, p, subgame_prune, history_prob_r) for x in states
    ]
    utilities = [ugs.ugs[x].utility[p] for x in states]
    check_nan(outside)
    check_nan(utilities)
    return multiple(utilities, outside)


def br_strategy_for_pubnode(
    static_trees: StaticTrees, ugs: UgsAgent, node_index: int
) -> tuple[list[list[float]], list[list[int]]]:
    """Best-response strategies of the acting player's info-sets and their game states."""
    node_type = static_trees.pubnode_type(node_index)
    if node_type != "P":
        raise ValueError(f"public node {node_index} is of type {node_type!r}, not a play node")
    actor = static_trees.pubnode_player(node_index)
    tree = static_trees.trees.infosets[actor]
    strategies: list[list[float]] = []
    clusters: list[list[int]] = []
    for infoset_index in static_trees.trees.pubnodes[node_index].infosets[actor]:
        infoset = tree[infoset_index]
        values = [cv_for_infoset(static_trees, ugs, actor, child) for child in infoset.children]
        _, best = max_index(values)
        strategies.append([1.0 if a == best else 0.0 for a in range(len(infoset.children))])
        clusters.append(list(infoset.i2state))
    return strategies, clusters


def strategy_for_pubnode(
    static_trees: StaticTrees, rmc: RMAgent, node_index: int, avr: bool
) -> tuple[list[list[float]], list[list[int]]]:
    """Strategies used at the public node (average or current) and their game states."""
    trees = static_trees.trees
    node = trees.pubnodes[node_index]
    node_type = static_trees.pubnode_type(node_index)
    strategies: list[list[float]] = []
    clusters: list[list[int]] = []
    if node_type == "C":
        for x in node.gamestates:
            chance = trees.gamestates[x].chance
            if chance is None:
                raise ValueError(f"chance state {x} has no action probabilities")
            strategies.append(list(chance))
            clusters.append([x])
    elif node_type != "T":
        actor = static_trees.pubnode_player(node_index)
        for i in node.infosets[actor]:
            cell = rmc.rmc[actor][i]
            strategies.append(cell.average_strategy() if avr else cell.current_strategy())
            clusters.append(list(trees.infosets[actor][i].i2state))
    return strategies, clusters


def prob_r_for_pubnode(
    pubnode_index: int,
    static_trees: StaticTrees,
    ugs: UgsAgent,
    history_prob_r: HistoryProbR | None = None,
) -> dict[int, list[float]]:
    """Each player's own reach probability of every game state of the public node."""
    return {
        x: [
            ugs.realization_plan_for(x, p, False, history_prob_r)
            for p in range(static_trees.num_player)
        ]
        for x in static_trees.trees.pubnodes[pubnode_index].gamestates
    }