"""Game tree data model (public tree, info-set trees, game states) and its JSON storage."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any


@dataclass
class PubNode:
    """A node of the public tree."""

    infosets: dict[int, list[int]]
    gamestates: list[int]
    father: int | None
    children: list[int]
    end_of_subtree: int

    @classmethod
    def _from_json_obj(cls, obj: dict[str, Any]) -> PubNode:
        return cls(
            infosets={int(k): list(v) for k, v in obj["infosets"].items()},
            gamestates=list(obj["gamestates"]),
            father=obj["father"],
            children=list(obj["children"]),
            end_of_subtree=obj["end_of_subtree"],
        )

    def _to_json_obj(self) -> dict[str, Any]:
        return {
            "infosets": {str(k): list(v) for k, v in sorted(self.infosets.items())},
            "gamestates": list(self.gamestates),
            "father": self.father,
            "children": list(self.children),
            "end_of_subtree": self.end_of_subtree,
        }


@dataclass
class InfoSet:
    """A node of a player's info-set tree; player is -1 for chance."""

    player: int
    key: str
    index: int
    father: int | None
    children: list[int]
    i2state: list[int]
    pubnode: int

    @classmethod
    def _from_json_obj(cls, obj: dict[str, Any]) -> InfoSet:
        return cls(
            player=obj["player"],
            key=obj["key"],
            index=obj["index"],
            father=obj["fahter"],
            children=list(obj["children"]),
            i2state=list(obj["i2state"]),
            pubnode=obj["pubnode"],
        )

    def _to_json_obj(self) -> dict[str, Any]:
        return {
            "player": self.player,
            "key": self.key,
            "index": self.index,
            "fahter": self.father,
            "children": list(self.children),
            "i2state": list(self.i2state),
            "pubnode": self.pubnode,
        }


def _floats(values: list[Any] | None) -> list[float] | None:
    return None if values is None else [float(x) for x in values]


@dataclass
class GameState:
    """A node of the game state tree; node_type is 'C', 'P' or 'T'."""

    key: str
    index: int
    father: int | None
    father_action: int | None
    children: list[int]
    state2i: dict[int, int]
    pubnode: int
    payoff: list[float] | None
    node_type: str
    chance: list[float] | None
    player: int | None

    @classmethod
    def _from_json_obj(cls, obj: dict[str, Any]) -> GameState:
        return cls(
            key=obj["key"],
            index=obj["index"],
            father=obj["father"],
            father_action=obj["father_action"],
            children=list(obj["children"]),
            state2i={int(k): v for k, v in obj["state2i"].items()},
            pubnode=obj["pubnode"],
            payoff=_floats(obj["payoff"]),
            node_type=obj["node_type"],
            chance=_floats(obj["chance"]),
            player=obj["player"],
        )

    def _to_json_obj(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "index": self.index,
            "father": self.father,
            "father_action": self.father_action,
            "children": list(self.children),
            "state2i": {str(k): v for k, v in sorted(self.state2i.items())},
            "pubnode": self.pubnode,
            "payoff": self.payoff,
            "node_type": self.node_type,
            "chance": self.chance,
            "player": self.player,
        }


@dataclass
class UtilityGameState:
    """Mutable per-state values: utility u(h), pi(h|r), pi(r) and the root state index."""

    utility: list[float]
    prob_r2h: list[float]
    prob_r: list[float]
    root: int

    @classmethod
    def from_game_state(cls, gs: GameState, index: int) -> UtilityGameState:
        width = len(gs.state2i) + 1
        if not gs.children:
            if gs.payoff is None:
                raise ValueError(f"terminal game state {index} has no payoff")
            utility = list(gs.payoff)
        else:
            utility = [0.0] * len(gs.state2i)
        return cls(
            utility=utility,
            prob_r2h=[1.0] * width,
            prob_r=[1.0] * width,
            root=index,
        )

    def __str__(self) -> str:
        def fmt(values: list[float]) -> str:
            return ", ".join(f"{v:.3f}" for v in values)

        return (
            f"UtilityGameState {{ utitlity: [{fmt(self.utility)}], "
            f"prob_r2h: [{fmt(self.prob_r2h)}], prob_r: [{fmt(self.prob_r)}], "
            f"root: {self.root} }}"
        )


@dataclass
class GameTrees:
    """The public tree, the info-set trees by player and the game state tree."""

    pubnodes: list[PubNode]
    infosets: dict[int, list[InfoSet]]
    gamestates: list[GameState]


def build_ugs(game_states: list[GameState]) -> list[UtilityGameState]:
    """Create the utility state of every game state."""
    return [UtilityGameState.from_game_state(gs, index) for index, gs in enumerate(game_states)]


def from_json(file_name: str | Path) -> GameTrees:
    """Load trees stored as a JSON array [pubnodes, infosets, gamestates]."""
    data = json.loads(Path(file_name).read_text(encoding="utf-8"))
    if not isinstance(data, list) or len(data) != 3:
        raise ValueError(f"{file_name}: expected an array of three trees")
    pubnodes, infosets, gamestates = data
    return GameTrees(
        pubnodes=[PubNode._from_json_obj(obj) for obj in pubnodes],
        infosets={
            int(player): [InfoSet._from_json_obj(obj) for obj in tree]
            for player, tree in infosets.items()
        },
        gamestates=[GameState._from_json_obj(obj) for obj in gamestates],
    )


def to_json(trees: GameTrees, file_name: str | Path) -> None:
    """Store trees in the format read by from_json."""
    payload = [
        [node._to_json_obj() for node in trees.pubnodes],
        {
            str(player): [infoset._to_json_obj() for infoset in tree]
            for player, tree in sorted(trees.infosets.items())
        },
        [gs._to_json_obj() for gs in trees.gamestates],
    ]
    Path(file_name).write_text(json.dumps(payload, separators=(",", ":")), encoding="utf-8")