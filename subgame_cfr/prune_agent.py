"""Bookkeeping of pruned, check-free and compensated subgames of the public tree."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import TYPE_CHECKING

from .agents import prob_r_for_pubnode
from .prune import SubgamePruneCell

if TYPE_CHECKING:
    from .agents import RMAgent, StaticTrees, UgsAgent
    from .config import Config


def _find_root(ranges: Mapping[int, tuple[int, int]], pubnode_index: int) -> tuple[bool, int]:
    for root, (first, last) in ranges.items():
        if first <= pubnode_index <= last:
            return True, root
    return False, 0


class SubgamePruneAgent:
    """Tracks the roots of pruned subgames and the public nodes below them.

    Each subgame is stored as an inclusive range of public node indices,
    from its root to the root's end of subtree.
    """

    def __init__(self) -> None:
        self._spc: dict[int, SubgamePruneCell] = {}
        self._pruned_roots: set[int] = set()
        self._pruned_nodes: dict[int, tuple[int, int]] = {}
        self._check_free_roots: set[int] = set()
        self._check_free_nodes: dict[int, tuple[int, int]] = {}
        self._compensate_roots: set[int] = set()
        self._compensate_nodes: dict[int, tuple[int, int]] = {}
        self._total_prune_nodes = [0, 0]
        self._total_check_free_nodes = [0, 0]

    def prune_times(self, pubnode_index: int) -> int:
        """How many iterations the subgame holding the node has been pruned."""
        found, root = self.check_under_pruned(pubnode_index)
        if not found:
            raise ValueError(f"public node {pubnode_index} is not in a pruned subgame")
        return self._spc[root].prune_times

    def history_prob_r(self, pubnode_index: int, avr: bool) -> dict[int, list[float]]:
        """Accumulated reach probabilities of a pruned root (CFR+ weighted if avr)."""
        cell = self._spc[pubnode_index]
        source = cell.prob_r_history4avr_update if avr else cell.prob_r_history
        return {index: list(values) for index, values in source.items()}

    def update_spc_cells(self, static_trees: StaticTrees, ugs: UgsAgent, config: Config) -> None:
        """Accumulate the current reach probabilities of every pruned root."""
        cfrplus = config.algo_name == "CFR+"
        for pubnode_index in self._pruned_roots:
            prob_r = prob_r_for_pubnode(pubnode_index, static_trees, ugs, None)
            self._spc[pubnode_index].update_prob_r_history(prob_r, cfrplus)

    def pruned_roots_contain(self, pubnode_index: int) -> bool:
        """Whether the node is the root of a pruned subgame."""
        return pubnode_index in self._pruned_roots

    def whether_check_free(self, pubnode_index: int) -> tuple[bool, int]:
        """Whether the node lies in a check-free subgame, and that subgame's root."""
        return _find_root(self._check_free_nodes, pubnode_index)

    def check_check_free_node(
        self, pubnode_index: int, prob_r: Mapping[int, Sequence[float]], config: Config
    ) -> bool:
        """Whether the pruned root meets the check-free condition."""
        return self._spc[pubnode_index].check_exempt_condition(prob_r, config)

    def pruned_subgame(self) -> set[int]:
        """A copy of the set of pruned roots."""
        return set(self._pruned_roots)

    def check_under_pruned(self, pubnode_index: int) -> tuple[bool, int]:
        """Whether the node lies in a pruned subgame, and that subgame's root."""
        return _find_root(self._pruned_nodes, pubnode_index)

    def check_under_compensated(self, pubnode_index: int) -> tuple[bool, int]:
        """Whether the node lies in a subgame awaiting compensation, and its root."""
        return _find_root(self._compensate_nodes, pubnode_index)

    def compensation_roots(self) -> set[int]:
        """A copy of the set of roots awaiting compensation."""
        return set(self._compensate_roots)

    def update_check_free_roots(
        self, check_free_roots: Iterable[int], static_trees: StaticTrees, config: Config
    ) -> None:
        """Replace the check-free roots and add their sizes to the running totals."""
        self._check_free_roots = set(check_free_roots)
        for root in [r for r in self._check_free_nodes if r not in self._check_free_roots]:
            del self._check_free_nodes[root]
        for root in self._check_free_roots:
            if root not in self._check_free_nodes:
                if root not in self._pruned_nodes:
                    raise ValueError(f"check-free root {root} is not a pruned root")
                self._check_free_nodes[root] = self._pruned_nodes[root]
        pubnodes = static_trees.trees.pubnodes
        for first, last in self._check_free_nodes.values():
            self._total_check_free_nodes[0] += last - first + 1
            self._total_check_free_nodes[1] += sum(
                len(pubnodes[index].gamestates) for index in range(first, last + 1)
            )
        if not config.count_leaves:
            for level in range(static_trees.depth()):
                for leaf in static_trees.leaves_at_level(level):
                    if self.whether_check_free(leaf)[0]:
                        self._total_check_free_nodes[0] -= 1
                        self._total_check_free_nodes[1] -= len(pubnodes[leaf].gamestates)

    def update_pruned_roots(
        self,
        pruned_roots: Sequence[int],
        static_trees: StaticTrees,
        ugs: UgsAgent,
        rmc: RMAgent,
        config: Config,
    ) -> tuple[list[int], list[int]]:
        """Install the new pruned roots.

        Returns the roots pruned for the first time and the formerly pruned
        roots that now need compensation.
        """
        if not config.count_leaves:
            raise ValueError("subgame pruning statistics require count_leaves")
        pubnodes = static_trees.trees.pubnodes
        new_roots = list(pruned_roots)
        self._compensate_roots.clear()
        self._compensate_nodes.clear()
        for root in self._pruned_roots:
            if root not in new_roots:
                self._compensate_roots.add(root)
                self._compensate_nodes[root] = (root, pubnodes[root].end_of_subtree)

        first_pruned_roots = []
        for root in new_roots:
            if root in self._spc:
                continue
            first_pruned_roots.append(root)
            max_regret = 0.0
            for p in range(static_trees.num_player):
                for infoset_index in pubnodes[root].infosets[p]:
                    max_regret = max(max_regret, rmc.max_regret_in_subgame(p, infoset_index))
            prob_r = prob_r_for_pubnode(root, static_trees, ugs, None)
            self._spc[root] = SubgamePruneCell(prob_r, max_regret, config.current_iteration)
            self._pruned_nodes[root] = (root, pubnodes[root].end_of_subtree)

        self._pruned_roots = set(new_roots)
        for first, last in self._pruned_nodes.values():
            self._total_prune_nodes[0] += last - first + 1
            self._total_prune_nodes[1] += sum(
                len(pubnodes[index].gamestates) for index in range(first, last + 1)
            )
        return first_pruned_roots, list(self._compensate_roots)

    def remove(self, pubnode_index: int) -> None:
        """Forget everything recorded about the subgame rooted at the node."""
        self._check_free_roots.discard(pubnode_index)
        self._check_free_nodes.pop(pubnode_index, None)
        self._pruned_nodes.pop(pubnode_index, None)
        self._pruned_roots.discard(pubnode_index)
        self._spc.pop(pubnode_index, None)

    def total_pruned_nodes(self) -> tuple[tuple[int, int], tuple[int, int]]:
        """Running totals ((pruned pubnodes, states), (check-free pubnodes, states))."""
        return tuple(self._total_prune_nodes), tuple(self._total_check_free_nodes)

    def reset_compensate_for_test(self) -> None:
        """Mark every pruned root as needing compensation."""
        self._compensate_roots = set(self._pruned_roots)