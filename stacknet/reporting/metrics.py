"""Epoch sinks that persist training and evaluation metrics.

Every sink receives ``(epoch, metrics)`` from the trainer's epoch callbacks.
Only real-valued entries are kept; strings, flags and arrays are dropped so
the JSONL and CSV views of a run always carry the same columns.
"""

from __future__ import annotations

import csv
import json
import numbers
from pathlib import Path
from typing import Dict, List, Mapping

from .artifacts import git_sha


def numeric_metrics(metrics: Mapping[str, object]) -> Dict[str, float]:
    return {
        name: float(value)
        for name, value in metrics.items()
        if isinstance(value, numbers.Real) and not isinstance(value, bool)
    }


class EpochSink:
    """Base for file sinks bound to one split of a run.

    The target file is emptied when the sink is created, so a rerun into the
    same directory never mixes records of two runs.
    """

    def __init__(self, path: str | Path, *, split: str) -> None:
        self.path = Path(path)
        self.split = split
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text("")

    def record(self, epoch: int, metrics: Mapping[str, object]) -> Dict[str, object]:
        row: Dict[str, object] = {"epoch": int(epoch), "split": self.split}
        row.update(numeric_metrics(metrics))
        return row

    def write(self, row: Dict[str, object]) -> None:
        raise NotImplementedError

    def on_epoch(self, epoch: int, metrics: Mapping[str, object]) -> None:
        self.write(self.record(epoch, metrics))

    def __call__(self, epoch: int, metrics: Mapping[str, object]) -> None:
        self.on_epoch(epoch, metrics)


class JsonlSink(EpochSink):
    """One JSON object per epoch, tagged with the run seed and commit."""

    def __init__(
        self,
        path: str | Path,
        *,
        split: str = "train",
        seed: int | None = None,
        sha: str | None = None,
    ) -> None:
        super().__init__(path, split=split)
        self.seed = seed
        self.sha = sha or git_sha()

    def record(self, epoch: int, metrics: Mapping[str, object]) -> Dict[str, object]:
        row = super().record(epoch, metrics)
        row.update(seed=self.seed, sha=self.sha)
        return row

    def write(self, row: Dict[str, object]) -> None:
        with self.path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(row) + "\n")


class CsvSink(EpochSink):
    # Columns come from the first epoch; metrics that appear later are ignored.

    def __init__(self, path: str | Path, *, split: str = "train") -> None:
        super().__init__(path, split=split)
        self.columns: List[str] | None = None

    def write(self, row: Dict[str, object]) -> None:
        first = self.columns is None
        if first:
            self.columns = sorted(row)
        with self.path.open("a", encoding="utf-8", newline="") as handle:
            writer = csv.DictWriter(handle, fieldnames=self.columns, extrasaction="ignore")
            if first:
                writer.writeheader()
            writer.writerow(row)


__all__ = ["EpochSink", "JsonlSink", "CsvSink", "numeric_metrics"]
