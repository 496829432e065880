"""Regret-matching cells for vanilla CFR and CFR+."""

from __future__ import annotations

import sys
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeVar

from .gametree import InfoSet
from .util import check_nan, linear_combine

if TYPE_CHECKING:
    from .config import Config

UNSET_MAX_REGRET = sys.float_info.max

C = TypeVar("C", bound="RMCell")


def _uniform(size: int) -> list[float]:
    return [1.0 / size] * size if size else []


@dataclass
class RMCell:
    """Accumulated regret and average strategy of one info-set (vanilla CFR)."""

    ALGO_NAME = "VCFR"

    accu_regret: list[float]
    avr_prob: list[float]
    weight: float
    max_regret: float

    @classmethod
    def from_infoset(cls: type[C], infoset: InfoSet) -> C:
        """A fresh cell with one entry per action of the info-set."""
        num_actions = len(infoset.children)
        return cls(
            accu_regret=[0.0] * num_actions,
            avr_prob=_uniform(num_actions),
            weight=0.0,
            max_regret=UNSET_MAX_REGRET,
        )

    def current_strategy(self) -> list[float]:
        """Strategy proportional to positive accumulated regret, uniform if there is none."""
        total = sum(x for x in self.accu_regret if x > 0.0)
        if total > 1e-10:
            result = [x / total if x > 0.0 else 0.0 for x in self.accu_regret]
        else:
            result = _uniform(len(self.accu_regret))
        check_nan(result)
        return result

    def average_strategy(self) -> list[float]:
        """The accumulated average strategy."""
        check_nan(self.avr_prob)
        return list(self.avr_prob)

    def regret_match(self, regret: Sequence[float]) -> None:
        """Add the immediate regret to the accumulated regret."""
        self.accu_regret = [r + regret[i] for i, r in enumerate(self.accu_regret)]

    def average_update(self, weight: float, times: int = 1) -> None:
        """Blend the current strategy into the average with the given weight."""
        if self.weight + weight > 1e-10:
            self.avr_prob = linear_combine(self.avr_prob, self.current_strategy(), self.weight, weight)
        self.weight += weight

    def prune_constraint_check(self, regret: Sequence[float], config: Config) -> bool:
        """True if the immediate regret leaves the current strategy unchanged."""
        return all(
            (x > 0.0 and abs(regret[i]) <= 1e-10) or (x <= 0.0 and regret[i] <= -x + 1e-10)
            for i, x in enumerate(self.accu_regret)
        )

    def _fields_str(self) -> str:
        return (
            f"RMCell {{ accu_regret: {self.accu_regret!r}, avr_prob: {self.avr_prob!r}, "
            f"weight: {self.weight:.3f}, max_regret: {self.max_regret:.3f} }}"
        )

    def __str__(self) -> str:
        return self._fields_str()


@dataclass
class RMPlusCell(RMCell):
    """Regret-matching+ cell: regrets floored at zero, linearly weighted averaging."""

    ALGO_NAME = "CFR+"

    times: int = 1

    def regret_match(self, regret: Sequence[float]) -> None:
        """Add the immediate regret, flooring the accumulated regret at zero."""
        self.accu_regret = [
            r + regret[i] if r + regret[i] > 0.0 else 0.0 for i, r in enumerate(self.accu_regret)
        ]

    def average_update(self, weight: float, times: int = 1) -> None:
        """Blend the current strategy in, weighted by the iteration count so far."""
        weight = self.times * weight
        current = self.current_strategy()
        if self.weight + weight > 1e-10:
            self.avr_prob = linear_combine(self.avr_prob, current, self.weight, weight)
        self.weight += weight
        self.times += times
        check_nan(self.avr_prob)

    def __str__(self) -> str:
        return f"RMPlusCell {{ father: {self._fields_str()}, times: {self.times} }}"


def build_rmc(cell_type: type[C], infosets: Iterable[InfoSet]) -> list[C]:
    """One cell of the given type for every info-set of a tree."""
    return [cell_type.from_infoset(infoset) for infoset in infosets]