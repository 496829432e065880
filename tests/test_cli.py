import csv
from pathlib import Path

import pytest

from subgame_cfr.agents import StaticTrees
from subgame_cfr.cli import GAMES, main, select_recorded_infosets
from subgame_cfr.gametree import GameState, GameTrees, InfoSet, PubNode, to_json


def _state(index, node_type, children, pubnode, player=None, payoff=None, father=None):
    return GameState(
        key=f"s{index}",
        index=index,
        father=father,
        father_action=None if father is None else index - 1,
        children=children,
        state2i={0: index, 1: index},
        pubnode=pubnode,
        payoff=payoff,
        node_type=node_type,
        chance=None,
        player=player,
    )


def _infoset_tree(actor_at_root):
    return [
        InfoSet(actor_at_root, "i0", 0, None, [1, 2], [0], 0),
        InfoSet(-1, "i1", 1, 0, [], [1], 1),
        InfoSet(-1, "i2", 2, 0, [], [2], 2),
    ]


def _tiny_game():
    pubnodes = [
        PubNode({0: [0], 1: [0]}, [0], None, [1, 2], 2),
        PubNode({0: [1], 1: [1]}, [1], 0, [], 1),
        PubNode({0: [2], 1: [2]}, [2], 0, [], 2),
    ]
    gamestates = [
        _state(0, "P", [1, 2], 0, player=0),
        _state(1, "T", [], 1, payoff=[1.0, -1.0], father=0),
        _state(2, "T", [], 2, payoff=[-1.0, 1.0], father=0),
    ]
    return GameTrees(pubnodes, {0: _infoset_tree(0), 1: _infoset_tree(0)}, gamestates)


def _wide_game(num_infosets):
    """A single play node of player 1 holding many info-sets, one state each."""
    states = list(range(num_infosets))
    pubnodes = [PubNode({0: [], 1: states}, states, None, [], 0)]
    gamestates = [_state(i, "P", [], 0, player=1, payoff=[0.0, 0.0]) for i in states]
    infosets = {
        0: [],
        1: [InfoSet(1, f"i{i}", i, None, [], [i], 0) for i in states],
    }
    return GameTrees(pubnodes, infosets, gamestates)


def _write_game(tmp_path, game_index=0):
    trees_dir = tmp_path / "trees"
    game = GAMES[game_index]
    target = trees_dir / game
    target.mkdir(parents=True)
    to_json(_tiny_game(), target / f"trees_{game}.txt")
    return trees_dir


def _read_csv(out_dir, game, algo):
    files = list((Path(out_dir) / "csv" / game / algo).glob("*.csv"))
    assert len(files) == 1
    with files[0].open(newline="", encoding="utf-8") as handle:
        return list(csv.reader(handle))


def test_select_recorded_infosets_tiny_game():
    assert select_recorded_infosets(StaticTrees(_tiny_game())) == [[0], []]


def test_select_recorded_infosets_caps_at_three():
    recorded = select_recorded_infosets(StaticTrees(_wide_game(5)))
    assert recorded[0] == []
    assert recorded[1] == [0, 1, 2]


def test_select_recorded_infosets_takes_all_when_few():
    recorded = select_recorded_infosets(StaticTrees(_wide_game(2)))
    assert recorded == [[], [0, 1]]


@pytest.mark.parametrize("algo", ["CFR", "CFR+"])
def test_main_writes_csv(tmp_path, algo, capsys):
    trees_dir = _write_game(tmp_path)
    out_dir = tmp_path / "results"
    code = main(
        ["main", "-a", algo, "-g", "0", "-i", "3", "-d", str(out_dir), "--trees", str(trees_dir)]
    )
    assert code == 0
    algo_name = "CFR+" if algo == "CFR+" else "VCFR"
    rows = _read_csv(out_dir, GAMES[0], algo_name)
    assert rows[0][0] == "Itera"
    assert rows[0][1] == "Exploitablity"
    assert len(rows[0]) == 10
    body = rows[1:]
    assert [float(row[0]) for row in body] == [0.0, 1.0, 2.0, 3.0]
    exploitability = [float(row[1]) for row in body]
    assert all(value >= -1e-9 for value in exploitability)
    assert exploitability[-1] <= exploitability[0] + 1e-9
    printed = capsys.readouterr().out
    assert "game env kuhn_poker" in printed
    assert "size of game state tree 3, size of public tree 3" in printed


def test_main_rejects_unknown_game(tmp_path):
    with pytest.raises(SystemExit) as info:
        main(["main", "-g", str(len(GAMES)), "--trees", str(tmp_path)])
    assert info.value.code == 2


def test_main_missing_tree_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        main(["main", "-g", "1", "-i", "0", "-d", str(tmp_path / "out"), "--trees", str(tmp_path)])