"""State kept for the root of a pruned subgame."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING

from .util import check_nan, compute_prob_r_kldist, dict_to_sorted_list

if TYPE_CHECKING:
    from .config import Config


def _copy_prob_r(prob_r: Mapping[int, Sequence[float]]) -> dict[int, list[float]]:
    return {index: list(values) for index, values in prob_r.items()}


class SubgamePruneCell:
    """Accumulated reach probabilities and bounds of one pruned subgame root.

    Reach probabilities are keyed by game state index, one value per player.
    """

    def __init__(
        self,
        prob_r_before_prune: Mapping[int, Sequence[float]],
        max_regret_in_subgame: float,
        current_iteration: int,
    ) -> None:
        self.prob_r_history = _copy_prob_r(prob_r_before_prune)
        self.prob_r_history4avr_update = _copy_prob_r(prob_r_before_prune)
        self.max_regret_in_subgame = max_regret_in_subgame
        self.prob_r_before_prune = [list(v) for v in dict_to_sorted_list(prob_r_before_prune)]
        self.prune_times = 0
        self.last_update_times = current_iteration

    def check_exempt_condition(self, prob_r: Mapping[int, Sequence[float]], config: Config) -> bool:
        """True if the subgame may stay pruned without checking its constraint."""
        _, _, regret_threshold, distance_threshold = config.subgame_prune
        if not self.max_regret_in_subgame < 1e-10 + regret_threshold:
            return False
        distance = compute_prob_r_kldist(dict_to_sorted_list(prob_r), self.prob_r_before_prune)
        return distance < 1e-8 + distance_threshold

    def update_prob_r_history(self, prob_r: Mapping[int, Sequence[float]], cfrplus: bool) -> None:
        """Accumulate this iteration's reach probabilities of the root's game states."""
        for index, accumulated in self.prob_r_history.items():
            for k, value in enumerate(prob_r[index][: len(accumulated)]):
                accumulated[k] += value
            check_nan(accumulated)
        if cfrplus:
            scale = (self.last_update_times + 1 + self.prune_times) / (self.last_update_times + 1)
            for index, accumulated in self.prob_r_history4avr_update.items():
                for k, value in enumerate(prob_r[index][: len(accumulated)]):
                    accumulated[k] += value * scale
                check_nan(accumulated)
        self.prune_times += 1