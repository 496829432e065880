"""Line plots of training curves against iteration on a logarithmic x axis."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from itertools import cycle
from pathlib import Path

from matplotlib.figure import Figure

_COLORS = ("#ff0000", "#0000ff", "#00ff00", "#ff00ff", "#00ffff", "#000000")
_X_KEY = "iteration"


def plot_loss_curves(
    data: Mapping[str, Sequence[float]],
    filename: str | Path,
    log_y: bool,
    plot_name: str,
    y_name: str,
) -> None:
    """Plot every series in data against data['iteration'] and save an 800x600 PNG."""
    path = Path(filename)
    path.parent.mkdir(parents=True, exist_ok=True)

    if _X_KEY not in data:
        raise ValueError(f"Missing key: '{_X_KEY}'")
    iteration = list(data[_X_KEY])
    if not iteration:
        raise ValueError("the iteration series is empty")
    series = {key: list(values) for key, values in data.items() if key != _X_KEY}
    if not series:
        raise ValueError("no series to plot")
    if any(not values for values in series.values()):
        raise ValueError("a series to plot is empty")

    x_min, x_max = min(iteration), max(iteration)
    y_min = min(min(values) for values in series.values())
    y_max = max(max(values) for values in series.values())
    if y_min <= 0.0:
        y_min = 1e-10

    fig = Figure(figsize=(8, 6), dpi=100)
    ax = fig.add_subplot()
    ax.set_title(plot_name, fontsize=30)
    ax.set_xscale("log")
    ax.set_xlabel("Iteration (Log Scale)")
    if log_y:
        ax.set_yscale("log")
        ax.set_ylabel(f"{y_name} (Log Scale)")
    else:
        ax.set_ylabel(y_name)

    for (key, values), color in zip(series.items(), cycle(_COLORS)):
        count = min(len(iteration), len(values))
        ax.plot(iteration[:count], values[:count], color=color, label=key)

    ax.set_xlim(x_min, x_max * 1.1)
    ax.set_ylim(y_min, y_max * 1.1)
    ax.legend(edgecolor="black")
    fig.savefig(path, format="png")