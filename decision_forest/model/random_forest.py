"""Random forest classifier.

A random forest is a set of decision trees, each trained on a randomly
selected sample of the full training set and a random feature subset at
each choice node. The forest predicts by unweighted plurality vote.

Construction order:
1. Initialize the randomizer against the training set.
2. Draw one seed per tree from the process-wide generator.
3. Pull one feature selector factory per tree from the factory iterator.
4. Build the trees in parallel; results keep submission order.

Steps 2 and 3 run before any worker starts, so a fixed process seed gives the
same forest regardless of thread scheduling.
"""

from __future__ import annotations

import threading
from itertools import islice
from pathlib import Path
from typing import Any, Iterable, Sequence

import numpy as np
import pandas as pd  # type: ignore[import-untyped]

from decision_forest.config import SEED_BOUND
from decision_forest.data.dataset import Dataset, flatten_features
from decision_forest.data.io import iter_tabbed_batches, write_predictions
from decision_forest.evaluation.metrics import best_indices
from decision_forest.model.base import BaseModel
from decision_forest.model.decision_tree import DecisionTree
from decision_forest.model.feature_selectors import (
    NormalTreeFeatureSelectorFactory,
    TreeFeatureSelectorFactory,
)
from decision_forest.model.parms import Parms
from decision_forest.model.persistence import ModelFormatError
from decision_forest.model.randomizers import Randomizer
from decision_forest.training.callbacks import TrainingInterrupted, TrainReporter
from decision_forest.training.parallel import parallel_map
from decision_forest.utils import get_logger

logger = get_logger(__name__)

# ============================================================================
# PROCESS-WIDE RANDOM SOURCE
# ============================================================================

_rng = np.random.default_rng()
_rng_lock = threading.Lock()


def set_seed(seed: int) -> None:
    """Reset the process-wide generator so later forests are reproducible."""
    global _rng
    with _rng_lock:
        _rng = np.random.default_rng(seed)


def next_seed() -> int:
    """Draw one 64-bit seed from the process-wide generator."""
    with _rng_lock:
        return int(_rng.integers(SEED_BOUND))


def draw_seeds(count: int) -> np.ndarray:
    """Draw ``count`` 64-bit seeds, in order, from the process-wide generator."""
    with _rng_lock:
        return _rng.integers(SEED_BOUND, size=count, dtype=np.int64)


# ============================================================================
# USEFUL FEATURES
# ============================================================================


def get_useful_features(dataset: Dataset) -> np.ndarray:
    """Compute the useful columns in a training set.

    A column is useful when some row differs from the first row. Column
    order is preserved.

    Args:
        dataset: Training set to scan.

    Returns:
        Array of the useful column indices.
    """
    features = dataset.features
    if features.shape[0] < 2:
        return np.empty(0, dtype=np.intp)
    flags = np.any(features[1:] != features[0], axis=0)
    return np.flatnonzero(flags)


# ============================================================================
# PROGRESS
# ============================================================================


class _TreeTracker:
    """Counts finished trees and forwards them to the reporter under a lock."""

    def __init__(self, reporter: TrainReporter | None) -> None:
        self.reporter = reporter
        self.trees_done = 0
        self.best_score = float("inf")
        self._lock = threading.Lock()

    def report(self, tree: DecisionTree) -> None:
        score = tree.score()
        with self._lock:
            self.trees_done += 1
            if score < self.best_score:
                self.best_score = score
            logger.debug(
                "Tree %d built: score=%.6f, best=%.6f", self.trees_done, score, self.best_score
            )
            if self.reporter is None:
                return
            try:
                self.reporter.display_epoch(self.trees_done, score, 0.0, False)
            except TrainingInterrupted as exc:
                logger.error("Progress reporter interrupted at tree %d: %s", self.trees_done, exc)


# ============================================================================
# RANDOM FOREST
# ============================================================================


class RandomForest(BaseModel):
    """Random forest built from a training set in one blocking call.

    Args:
        dataset: Training set.
        parms: Hyperparameters. Derived from the dataset shape when omitted.
        factories: Feature selector factories, one per tree. When omitted, the
            standard random-subset factory over the useful features is used.
        reporter: Progress reporter told about every finished tree.
        n_jobs: Number of worker threads (default: all cores).
    """

    REQUIRED_FIELDS = ("n_labels", "n_features", "trees")

    def __init__(
        self,
        dataset: Dataset,
        parms: Parms | None = None,
        factories: Iterable[TreeFeatureSelectorFactory] | None = None,
        reporter: TrainReporter | None = None,
        n_jobs: int | None = None,
    ) -> None:
        super().__init__(name="RandomForest")
        self.n_labels = dataset.num_outcomes
        self.n_features = dataset.num_inputs
        self.trees: list[DecisionTree] = []
        if parms is None:
            parms = Parms.from_dataset(dataset)
        if factories is None:
            useful = get_useful_features(dataset)
            factories = NormalTreeFeatureSelectorFactory.for_forest(next_seed(), useful, parms)
        self.trees = self._build_forest(dataset, parms, factories, reporter, n_jobs)
        self.is_fitted = True

    @staticmethod
    def _build_forest(
        dataset: Dataset,
        parms: Parms,
        factories: Iterable[TreeFeatureSelectorFactory],
        reporter: TrainReporter | None,
        n_jobs: int | None,
    ) -> list[DecisionTree]:
        n_trees = parms.num_trees
        if n_trees < 1:
            raise ValueError(f"A forest needs at least one tree, got num_trees={n_trees}")
        randomizer = parms.get_randomizer()
        logger.debug("Initializing randomizer for %d examples.", parms.num_examples)
        randomizer.initialize_data(dataset.num_outcomes, parms.num_examples, dataset)

        logger.debug("Initializing seeds for %d trees.", n_trees)
        seeds = draw_seeds(n_trees)

        # Factory iteration is sequential, so it is finished before the workers start.
        logger.debug("Creating factories.")
        factory_list = list(islice(iter(factories), n_trees))
        if len(factory_list) < n_trees:
            raise ValueError(
                f"Feature selector factories exhausted: {len(factory_list)} for {n_trees} trees"
            )

        tracker = _TreeTracker(reporter)

        def build_tree(i: int) -> DecisionTree:
            return RandomForest._build_tree(
                randomizer, int(seeds[i]), parms, factory_list[i], tracker
            )

        logger.debug("Creating trees.")
        trees = parallel_map(build_tree, range(n_trees), n_jobs=n_jobs)
        logger.info("Built %d trees (best score %.6f)", len(trees), tracker.best_score)
        return trees

    @staticmethod
    def _build_tree(
        randomizer: Randomizer,
        seed: int,
        parms: Parms,
        factory: TreeFeatureSelectorFactory,
        tracker: _TreeTracker,
    ) -> DecisionTree:
        """Build one tree from its own sample. Runs on a worker thread."""
        sample = randomizer.get_data(seed)
        tree = DecisionTree(sample, parms, factory)
        tracker.report(tree)
        return tree

    # ------------------------------------------------------------------
    # Prediction
    # ------------------------------------------------------------------

    def _check_features(self, features: np.ndarray) -> np.ndarray:
        features = np.asarray(flatten_features(features), dtype=np.float64)
        if features.ndim != 2 or features.shape[1] != self.n_features:
            raise ValueError(
                f"Expected feature rows of width {self.n_features}, got shape {features.shape}"
            )
        return features

    def predict(self, X: np.ndarray) -> np.ndarray:
        """Return the vote tally of every row.

        Args:
            X: Feature matrix (rows, features).

        Returns:
            Tally matrix (rows, labels) holding the number of trees voting for
            each label.
        """
        features = self._check_features(X)
        tally = np.zeros((features.shape[0], self.n_labels))
        for tree in self.trees:
            tree.vote(features, tally)
        return tally

    def predict_labels(self, X: np.ndarray) -> np.ndarray:
        """Return the winning label index of every row (lowest index on ties)."""
        return best_indices(self.predict(X))

    def get_accuracy(self, test_set: Dataset) -> float:
        """Return the fraction of test rows whose winning label matches the expected label."""
        if test_set.num_examples == 0:
            raise ValueError("Cannot compute accuracy of an empty testing set")
        predicted = self.predict_labels(test_set.features)
        return float(np.mean(predicted == best_indices(test_set.labels)))

    def compute_impact(self) -> np.ndarray:
        """Return the mean impact of each input feature over all trees."""
        impact = np.zeros(self.n_features)
        for tree in self.trees:
            tree.accumulate_impact(impact)
        impact /= len(self.trees)
        return impact

    def make_predictions(
        self,
        in_file: Path | str,
        out_file: Path | str,
        meta_cols: Sequence[str],
        labels: Sequence[str],
        exclude_cols: Sequence[str] = (),
    ) -> int:
        """Predict every row of a tab-delimited file.

        The output has the metadata columns followed by the predicted label name.

        Args:
            in_file: Input file of metadata and feature columns.
            out_file: Output file for the predictions.
            meta_cols: Metadata column names.
            labels: Label names, indexed by label column.
            exclude_cols: Input columns to ignore.

        Returns:
            Number of rows predicted.
        """
        if len(labels) != self.n_labels:
            raise ValueError(f"Expected {self.n_labels} label names, got {len(labels)}")
        count = 0
        header = True
        with open(out_file, "w", encoding="utf-8", newline="") as handle:
            batches = iter_tabbed_batches(in_file, meta_cols, exclude_cols=exclude_cols)
            for features, meta in batches:
                winners = self.predict_labels(features)
                write_predictions(handle, meta, [labels[i] for i in winners], header=header)
                header = False
                count += len(winners)
            if header:
                empty = pd.DataFrame({col: [] for col in meta_cols})
                write_predictions(handle, empty, [], header=True)
        logger.info("Wrote %d predictions to %s", count, out_file)
        return count

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _to_fields(self) -> dict[str, Any]:
        return {
            "n_labels": self.n_labels,
            "n_features": self.n_features,
            "trees": [tree.to_state() for tree in self.trees],
        }

    @classmethod
    def _from_fields(cls, fields: dict[str, Any]) -> "RandomForest":
        forest = cls.__new__(cls)
        BaseModel.__init__(forest, name="RandomForest")
        try:
            forest.n_labels = int(fields["n_labels"])
            forest.n_features = int(fields["n_features"])
            forest.trees = [DecisionTree.from_state(state) for state in fields["trees"]]
        except (KeyError, TypeError, ValueError, IndexError) as exc:
            raise ModelFormatError(f"Invalid forest contents: {exc}") from exc
        if not forest.trees:
            raise ModelFormatError("Invalid forest contents: no trees")
        for i, tree in enumerate(forest.trees):
            if tree.n_labels != forest.n_labels or tree.n_features != forest.n_features:
                raise ModelFormatError(
                    f"Invalid forest contents: tree {i} has {tree.n_labels} labels and "
                    f"{tree.n_features} features, forest has {forest.n_labels} and "
                    f"{forest.n_features}"
                )
        forest.is_fitted = True
        return forest

    def __len__(self) -> int:
        return len(self.trees)

