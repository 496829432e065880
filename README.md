# subgame_cfr

Counterfactual regret minimisation on pre-built public game trees, with
optional subgame pruning and check-free subgames.

It runs vanilla CFR or CFR+ on one of a fixed set of games, measures
exploitability at logarithmically spaced iterations, and writes the results
to a CSV file.

## Installation

```
pip install .
```

Python 3.10 or later is required. To run the tests, install the `test`
extra (`pip install .[test]`) and run `pytest`.

## Game trees

Each game is read from a JSON file at

```
<trees>/<game>/trees_<game>.txt
```

where `<trees>` defaults to `game_tree/tree_json`, relative to the working
directory. The file holds a JSON array of three things: the public tree
nodes, the information-set trees of each player (keyed by player), and the
game states. `subgame_cfr.gametree.from_json` reads such a file into a
`GameTrees` object, and `subgame_cfr.gametree.to_json` writes one.

The games are chosen by index:

| index | game            |
|-------|-----------------|
| 0     | kuhn_poker      |
| 1     | tiny_hanabi     |
| 2     | tiny_bridge_2p  |
| 3     | leduc_poker     |
| 4     | liars_dice      |
| 5     | my_leduc5       |

## Running

```
subgame-cfr main -g 0 -a CFR -i 100
```

The leading `main` is an optional positional word and may be left out.

Options:

- `-a`, `--algo`: `CFR+` selects CFR+; any other value (the default is
  `CFR`) selects vanilla CFR
- `-g`, `--game`: game index, 0 to 5 (default 0)
- `-i`, `--iter`: number of iterations (default 100); training runs this
  many plus one
- `-s`, `--sp`: turn on subgame pruning with check-free subgames and
  dynamic thresholds
- `-d`, `--dir`: output directory (default `./results`)
- `-t`, `--thread`: accepted, but has no effect; all passes run sequentially
- `--trees`: directory holding the game tree files
  (default `game_tree/tree_json`)

Measurements are taken at iterations 0 to 9, then every 10, every 100 and
so on. Results go to

```
<dir>/csv/<game>/<algorithm>/<config>.csv
```

where `<algorithm>` is `VCFR` or `CFR+` and `<config>` is the text form of
the run's `Config`. Each row holds the iteration, the exploitability, each
player's expected return and best-response return, and the fractions of
public nodes and game states that were pruned or check-free. If the file
cannot be written, a warning is issued and training still completes.

## Library use

```python
from subgame_cfr.gametree import from_json
from subgame_cfr.agents import StaticTrees, UgsAgent, RMAgent
from subgame_cfr.regret import RMCell
from subgame_cfr.config import Config
from subgame_cfr.training import cfr_iteration
from subgame_cfr.cli import select_recorded_infosets

trees = from_json("game_tree/tree_json/kuhn_poker/trees_kuhn_poker.txt")
ugs = UgsAgent(trees)
rmc = RMAgent(RMCell, trees)
static_trees = StaticTrees(trees)
config = Config("kuhn_poker", rmc.algo_name, False, False, "./results")
log = cfr_iteration(static_trees, ugs, rmc, 101, config, select_recorded_infosets(static_trees))
print(log.exploitability[-1], log.csv_path)
```

`cfr_iteration` returns a `TrainingLog` with the measured steps,
exploitability, expected and best-response returns, pruning proportions,
thresholds and the recorded accumulated regrets.

Use `RMPlusCell` instead of `RMCell` for CFR+. `Config.with_pruning` and
`Config.with_check_free` build configurations with subgame pruning turned
on, without and with check-free subgames.

Other modules:

- `subgame_cfr.stages`: the individual passes of one iteration (reach and
  utility propagation, average-strategy and regret updates, best response)
- `subgame_cfr.prune_agent`: `SubgamePruneAgent`, the bookkeeping of pruned,
  check-free and compensated subgames
- `subgame_cfr.util`: small numeric helpers on lists
- `subgame_cfr.csvtool.write_csv`: writes column-oriented data to CSV
- `subgame_cfr.plotting.plot_loss_curves`: draws curves against
  `data["iteration"]` on a log-scaled x axis (optionally log y) and saves an
  800x600 PNG

## What it does not do

The package does not build game trees from the rules of a game; it only
reads trees already stored in the JSON format above. Training does not draw
plots on its own; call `plot_loss_curves` on the `TrainingLog` values if
plots are wanted.