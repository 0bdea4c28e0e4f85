"""Learning-curve figure for a training run."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Mapping, Sequence


class PlotAdapter:
    """Epoch callback that draws the tracked metrics once the run is over.

    Nothing is collected or written unless ``enable_plots`` is set. Each name
    in ``metrics`` becomes one curve; epochs that lack a metric leave a gap.
    The figure is saved as ``<metrics joined by _>.png`` in ``run_dir``.
    """

    def __init__(
        self,
        run_dir: str | Path,
        enable_plots: bool = False,
        *,
        log_scale: bool = False,
        metrics: Sequence[str] = ("loss",),
    ):
        self.run_dir = Path(run_dir)
        self.enable_plots = enable_plots
        self.log_scale = log_scale
        self.metrics = tuple(metrics)
        self.curves: Dict[str, List[tuple]] = {name: [] for name in self.metrics}
        if enable_plots:
            self.run_dir.mkdir(parents=True, exist_ok=True)

    def on_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        if not self.enable_plots:
            return
        for name, points in self.curves.items():
            if name in metrics:
                points.append((epoch, float(metrics[name])))

    __call__ = on_epoch

    def close(self) -> Path | None:
        """Save the figure and return its path; ``None`` if nothing was drawn."""

        drawn = {name: points for name, points in self.curves.items() if points}
        if not self.enable_plots or not drawn:
            return None
        import matplotlib

        matplotlib.use("Agg", force=True)
        import matplotlib.pyplot as plt

        fig, ax = plt.subplots()
        for name, points in drawn.items():
            epochs, values = zip(*points)
            ax.plot(epochs, values, label=name, marker="o" if len(epochs) < 30 else None)
        if self.log_scale:
            ax.set_yscale("log")
        ax.set_xlabel("Epoch")
        ax.set_ylabel(self.metrics[0] if len(self.metrics) == 1 else "Value")
        if len(drawn) > 1:
            ax.legend()
        target = self.run_dir / f"{'_'.join(self.metrics)}.png"
        fig.savefig(target)
        plt.close(fig)
        return target


__all__ = ["PlotAdapter"]
