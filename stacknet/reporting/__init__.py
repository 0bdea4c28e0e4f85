"""Reporting utilities for training runs."""

from .artifacts import git_sha, write_manifest
from .metrics import CsvSink, EpochSink, JsonlSink, numeric_metrics
from .plots import PlotAdapter
from .summary import compute_auc, summarise, write_summary

__all__ = [
    "CsvSink",
    "EpochSink",
    "JsonlSink",
    "PlotAdapter",
    "compute_auc",
    "git_sha",
    "numeric_metrics",
    "summarise",
    "write_manifest",
    "write_summary",
]
