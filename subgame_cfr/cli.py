"""Command line entry point: load a game's trees and run CFR on them."""

from __future__ import annotations

import argparse
from collections.abc import Sequence
from pathlib import Path

from .agents import RMAgent, StaticTrees, UgsAgent
from .config import Config
from .gametree import from_json
from .regret import RMCell, RMPlusCell
from .training import cfr_iteration

GAMES = (
    "kuhn_poker",
    "tiny_hanabi",
    "tiny_bridge_2p",
    "leduc_poker",
    "liars_dice",
    "my_leduc5",
)
DEFAULT_TREES_DIR = "game_tree/tree_json"
_RECORDED_PER_PLAYER = 3


def select_recorded_infosets(static_trees: StaticTrees) -> list[list[int]]:
    """Pick up to three info-sets per player whose accumulated regret is recorded.

    Play nodes are visited in public-node order; a node's info-sets are taken
    until the acting player has three.
    """
    recorded: list[list[int]] = [[], []]
    for index, pubnode in enumerate(static_trees.trees.pubnodes):
        if static_trees.pubnode_type(index) == "P":
            p = static_trees.pubnode_player(index)
            for infoset_index in pubnode.infosets[p]:
                recorded[p].append(infoset_index)
                if len(recorded[p]) >= _RECORDED_PER_PLAYER:
                    break
        if all(len(chosen) >= _RECORDED_PER_PLAYER for chosen in recorded):
            break
    return recorded


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="SUBGAMEPRUNING",
        description="Run CFR or CFR+ with optional subgame pruning on a stored game tree.",
    )
    parser.add_argument("main", nargs="?", help="fill in 'main'")
    parser.add_argument("-a", "--algo", default="CFR", help="CFR/CFR+")
    parser.add_argument(
        "-g",
        "--game",
        type=int,
        default=0,
        choices=range(len(GAMES)),
        metavar="{0..%d}" % (len(GAMES) - 1),
        help="index of the game: " + ", ".join(f"{i}={name}" for i, name in enumerate(GAMES)),
    )
    parser.add_argument("-i", "--iter", type=int, default=100, dest="iterations")
    parser.add_argument(
        "-s", "--sp", action="store_true", dest="subgame_pruning", help="Enable Subgame Pruning"
    )
    parser.add_argument("-d", "--dir", default="./results", help="output dir")
    parser.add_argument(
        "-t",
        "--thread",
        type=int,
        default=0,
        dest="num_thread",
        help="num of thread (accepted for compatibility; passes run sequentially)",
    )
    parser.add_argument(
        "--trees",
        default=DEFAULT_TREES_DIR,
        help="directory holding <game>/trees_<game>.txt",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Parse the arguments, load the game trees and train."""
    args = _build_parser().parse_args(argv)
    if args.iterations < 0:
        raise SystemExit("the number of iterations must not be negative")

    game_name = GAMES[args.game]
    print(f"game env {game_name}")
    trees = from_json(Path(args.trees) / game_name / f"trees_{game_name}.txt")
    print(
        f"size of game state tree {len(trees.gamestates)}, "
        f"size of public tree {len(trees.pubnodes)}"
    )

    ugs = UgsAgent(trees)
    cell_type = RMPlusCell if args.algo == "CFR+" else RMCell
    rmc = RMAgent(cell_type, trees)
    static_trees = StaticTrees(trees)

    if args.subgame_pruning:
        config = Config.with_check_free(game_name, rmc.algo_name, True, True, args.dir)
    else:
        config = Config(game_name, rmc.algo_name, False, False, args.dir)
    print(f"config {config}")

    recorded = select_recorded_infosets(static_trees)
    cfr_iteration(static_trees, ugs, rmc, args.iterations + 1, config, recorded)
    return 0