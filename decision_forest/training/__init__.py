"""Training support: progress reporters, parallel map and trial log.

Example Usage:
    >>> from decision_forest.training import ReporterList, TreeHistory, TreeProgressLogger
    >>>
    >>> history = TreeHistory()
    >>> forest = RandomForest(dataset, parms, reporter=ReporterList([TreeProgressLogger(10), history]))
    >>> print(f"Best tree score: {history.best_score:.4f}")
"""

from __future__ import annotations

from decision_forest.training.callbacks import (
    ReporterList,
    TrainingInterrupted,
    TrainReporter,
    TreeHistory,
    TreeProgressLogger,
)
from decision_forest.training.parallel import get_n_jobs, parallel_map
from decision_forest.training.run_log import write_trial_marker, write_trial_report

__all__ = [
    # Reporters
    "ReporterList",
    "TrainingInterrupted",
    "TrainReporter",
    "TreeHistory",
    "TreeProgressLogger",
    # Parallel
    "get_n_jobs",
    "parallel_map",
    # Trial log
    "write_trial_marker",
    "write_trial_report",
]
