"""Progress reporters for forest construction.

A reporter is told about every finished tree. The forest calls it under a
lock, so the reported tree counter always increases by exactly one.

This module provides reporters for:
- Progress logging
- Tree score history
- Fan-out to several reporters
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

import numpy as np

from decision_forest.utils import get_logger

logger = get_logger(__name__)


class TrainingInterrupted(Exception):
    """Raised by a reporter to signal that the user asked to stop."""


# ============================================================================
# REPORTER PROTOCOL
# ============================================================================


class TrainReporter(Protocol):
    """Protocol for training progress reporters."""

    def display_epoch(self, epoch: int, score: float, rating: float, saved: bool) -> None:
        """Called after each completed tree.

        Args:
            epoch: Number of trees completed so far.
            score: Score of the new tree (1 - training accuracy).
            rating: Secondary metric (always 0 for forests).
            saved: Whether a model was saved (always False for forests).

        Raises:
            TrainingInterrupted: To request cancellation. Forests log and
                ignore it.
        """
        ...


# ============================================================================
# PROGRESS LOGGER
# ============================================================================


@dataclass
class TreeProgressLogger:
    """Log build progress.

    Attributes:
        log_every: Log every N trees.
    """

    log_every: int = 1

    def display_epoch(self, epoch: int, score: float, rating: float, saved: bool) -> None:
        """Log the tree counter and score."""
        if epoch % self.log_every != 0:
            return
        logger.info("Tree %d - score=%.6f", epoch, score)


# ============================================================================
# TREE HISTORY
# ============================================================================


@dataclass
class TreeHistory:
    """Record the counter and score of every reported tree.

    Attributes:
        epochs: Tree counters in reporting order.
        scores: Tree scores in reporting order.
    """

    epochs: list[int] = field(default_factory=list)
    scores: list[float] = field(default_factory=list)

    def display_epoch(self, epoch: int, score: float, rating: float, saved: bool) -> None:
        """Record one tree."""
        self.epochs.append(epoch)
        self.scores.append(float(score))

    @property
    def best_score(self) -> float:
        """Return the lowest reported score."""
        if not self.scores:
            raise ValueError("No trees recorded")
        return float(np.min(self.scores))

    def get_best_epoch(self) -> int:
        """Return the tree counter of the lowest reported score."""
        if not self.scores:
            raise ValueError("No trees recorded")
        return self.epochs[int(np.argmin(self.scores))]


# ============================================================================
# REPORTER LIST
# ============================================================================


class ReporterList:
    """Forward progress to several reporters.

    Example:
        >>> history = TreeHistory()
        >>> reporters = ReporterList([TreeProgressLogger(log_every=10), history])
        >>> forest = RandomForest(dataset, parms, reporter=reporters)
    """

    def __init__(self, reporters: list[TrainReporter] | None = None) -> None:
        """Initialize reporter list.

        Args:
            reporters: List of reporters.
        """
        self.reporters = reporters or []

    def append(self, reporter: TrainReporter) -> None:
        """Add a reporter."""
        self.reporters.append(reporter)

    def display_epoch(self, epoch: int, score: float, rating: float, saved: bool) -> None:
        """Call display_epoch on all reporters.

        Every reporter is called even if an earlier one asks to stop; the
        first interruption is raised afterwards.
        """
        interrupted: TrainingInterrupted | None = None
        for reporter in self.reporters:
            try:
                reporter.display_epoch(epoch, score, rating, saved)
            except TrainingInterrupted as exc:
                if interrupted is None:
                    interrupted = exc
        if interrupted is not None:
            raise interrupted
