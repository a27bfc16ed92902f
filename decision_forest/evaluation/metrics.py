"""Evaluation metrics for forest predictions.

This module provides:
- Winning-column extraction from tally matrices (lowest index wins ties)
- Binary-style metrics where class 0 is negative and every other class is positive
"""

from __future__ import annotations

from enum import Enum
from typing import Callable

import numpy as np
from sklearn.metrics import confusion_matrix  # type: ignore

from decision_forest.utils import get_logger

logger = get_logger(__name__)


# ============================================================================
# TALLY HELPERS
# ============================================================================


def compute_best(matrix: np.ndarray, row: int) -> int:
    """Return the column with the highest value in one row.

    Ties go to the lowest column index.
    """
    return int(np.argmax(matrix[row]))


def best_indices(matrix: np.ndarray) -> np.ndarray:
    """Return the winning column of every row (lowest index on ties)."""
    matrix = np.asarray(matrix)
    if matrix.shape[0] == 0:
        return np.empty(0, dtype=np.intp)
    return np.argmax(matrix, axis=1)


# ============================================================================
# CONFUSION COUNTS
# ============================================================================


def true_positive(matrix: np.ndarray) -> int:
    """Positive predictions of the correct positive class."""
    return int(np.trace(matrix) - matrix[0, 0])


def true_negative(matrix: np.ndarray) -> int:
    return int(matrix[0, 0])


def false_positive(matrix: np.ndarray) -> int:
    """Positive predictions that are incorrect."""
    predicted_positive = int(matrix[:, 1:].sum())
    return predicted_positive - true_positive(matrix)


def false_negative(matrix: np.ndarray) -> int:
    """Negative predictions of positive examples."""
    return int(matrix[1:, 0].sum())


def _ratio(num: int, den: int) -> float:
    """Return 0.0 if the numerator is 0, else num / (num + den)."""
    if num <= 0:
        return 0.0
    return num / float(num + den)


# ============================================================================
# CLASS METRIC
# ============================================================================


class ClassMetric(str, Enum):
    """Metric computed from a classifier's confusion matrix."""

    # fraction of total results that are correct
    ACCURACY = "ACCURACY"
    # fraction of positive results that are correct
    PRECISION = "PRECISION"
    # fraction of negative results that are correct
    NPV = "NPV"
    # fraction of actual negatives that are correct
    SPECIFICITY = "SPECIFICITY"
    # fraction of actual positives that are correct
    SENSITIVITY = "SENSITIVITY"

    def compute(self, matrix: np.ndarray) -> float:
        """Compute this metric from a (true, predicted) confusion matrix."""
        return _METRICS[self](np.asarray(matrix))

    def get_value(self, expected: np.ndarray, predicted: np.ndarray, n_labels: int) -> float:
        """Compute this metric from expected and predicted class indices."""
        matrix = confusion_matrix(expected, predicted, labels=list(range(n_labels)))
        return self.compute(matrix)


_METRICS: dict[ClassMetric, Callable[[np.ndarray], float]] = {
    ClassMetric.ACCURACY: lambda m: _ratio(
        true_positive(m) + true_negative(m), false_positive(m) + false_negative(m)
    ),
    ClassMetric.PRECISION: lambda m: _ratio(true_positive(m), false_positive(m)),
    ClassMetric.NPV: lambda m: _ratio(true_negative(m), false_negative(m)),
    ClassMetric.SPECIFICITY: lambda m: _ratio(true_negative(m), false_positive(m)),
    ClassMetric.SENSITIVITY: lambda m: _ratio(true_positive(m), false_negative(m)),
}


def evaluate_predictions(tally: np.ndarray, expected: np.ndarray) -> dict[str, float]:
    """Compute every class metric for a tally matrix against expected labels.

    Args:
        tally: Prediction tally matrix (rows, labels).
        expected: Expected label matrix of the same shape.

    Returns:
        Dict mapping metric name to value.
    """
    tally = np.asarray(tally)
    expected = np.asarray(expected)
    if tally.shape != expected.shape:
        raise ValueError(f"Shape mismatch: tally {tally.shape}, expected {expected.shape}")
    n_labels = tally.shape[1]
    matrix = confusion_matrix(
        best_indices(expected), best_indices(tally), labels=list(range(n_labels))
    )
    results = {metric.value.lower(): metric.compute(matrix) for metric in ClassMetric}
    logger.debug("Evaluation: %s", results)
    return results
