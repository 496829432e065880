"""Run configuration: game, algorithm, subgame pruning switches and thresholds."""

from __future__ import annotations

from dataclasses import dataclass, field

# game -> ((b, k) for CFR+, (b, k) for other algorithms)
_THRESHOLD_PARAMS: dict[str, tuple[tuple[float, float], tuple[float, float]]] = {
    "liars_dice": ((0.387, 0.9146), (0.2632, 0.6586)),
    "leduc_poker": ((1.0, 0.9124), (1.5, 0.6)),
    "my_leduc5": ((0.0, 1.5), (0.0, 1.5)),
    "tiny_bridge_2p": ((1.7, 1.5), (1.7, 1.5)),
    "tiny_hanabi": ((1.0, 1.0), (1.0, 1.0)),
}
_DEFAULT_PARAMS = (1.0, 1.0)


@dataclass
class Config:
    """Settings of one training run.

    subgame_prune holds (pruning enabled, check-free enabled,
    regret threshold, reach-probability distance threshold).
    """

    game_name: str
    algo_name: str
    count_leaves: bool = False
    dynamic_thre: bool = False
    dir: str = "./results"
    subgame_prune: tuple[bool, bool, float, float] = (False, False, 0.0, 0.0)
    _current_iteration: int = field(default=0, init=False, repr=False)

    @classmethod
    def with_pruning(cls, game_name, algo_name, count_leaves, dynamic_thre, dir) -> Config:
        """Configuration with subgame pruning but no check-free subgames."""
        return cls(
            game_name,
            algo_name,
            count_leaves,
            dynamic_thre,
            dir,
            subgame_prune=(True, False, 0.0, 0.0),
        )

    @classmethod
    def with_check_free(cls, game_name, algo_name, count_leaves, dynamic_thre, dir) -> Config:
        """Configuration with subgame pruning and check-free subgames."""
        return cls(
            game_name,
            algo_name,
            count_leaves,
            dynamic_thre,
            dir,
            subgame_prune=(True, True, 0.0, 0.0),
        )

    @property
    def current_iteration(self) -> int:
        """Number of completed iterations."""
        return self._current_iteration

    def dynamic_threshold(self) -> tuple[float, float]:
        """Return (b, k) of the dynamic check-free thresholds for this game and algorithm."""
        params = _THRESHOLD_PARAMS.get(self.game_name)
        if params is None:
            return _DEFAULT_PARAMS
        plus, other = params
        return plus if self.algo_name == "CFR+" else other

    def step(self) -> float:
        """Advance one iteration, update dynamic thresholds and return the regret threshold."""
        b, k = self.dynamic_threshold()
        self._current_iteration += 1
        if self.dynamic_thre:
            scale = 10.0**b * float(self._current_iteration) ** (-k)
            enabled, check_free, _, _ = self.subgame_prune
            self.subgame_prune = (enabled, check_free, 0.1 * scale, scale)
        return self.subgame_prune[2]

    def __str__(self) -> str:
        enabled, check_free, regret_thre, dist_thre = self.subgame_prune
        prune_cfg = (
            f"({str(enabled).lower()}, {str(check_free).lower()}, "
            f"{regret_thre:.8f}, {dist_thre:.8f})"
        )
        return (
            f"game_env{self.game_name}-algo-{self.algo_name}"
            f"-subgame_pruning_cfg-{prune_cfg}"
            f"-count_leaves-{str(self.count_leaves).lower()}"
            f"-dynamic_thresholds-{str(self.dynamic_thre).lower()}"
        )