"""Evaluation of forest predictions."""

from __future__ import annotations

from decision_forest.evaluation.metrics import (
    ClassMetric,
    best_indices,
    compute_best,
    evaluate_predictions,
)

__all__ = ["ClassMetric", "best_indices", "compute_best", "evaluate_predictions"]
