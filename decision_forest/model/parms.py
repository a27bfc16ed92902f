"""Hyperparameters for random forest construction."""

from __future__ import annotations

import math
from dataclasses import dataclass, replace

from decision_forest.config import (
    DEFAULT_LEAF_LIMIT,
    DEFAULT_MAX_DEPTH,
    DEFAULT_NUM_EXAMPLES,
    DEFAULT_NUM_FEATURES,
    DEFAULT_NUM_TREES,
    EXAMPLES_DIVISOR,
)
from decision_forest.data.dataset import Dataset
from decision_forest.model.randomizers import Randomizer, SamplingMethod


@dataclass(frozen=True)
class Parms:
    """Random forest hyperparameters.

    Values are not range-checked here; nonsensical settings surface when the
    forest is built.

    Attributes:
        num_trees: Number of trees to build.
        num_features: Number of features to test at each choice node.
        leaf_limit: Node size at or below which a leaf is formed.
        num_examples: Number of examples in each tree's training sample.
        method: How each tree's training sample is drawn.
        max_depth: Maximum permissible tree depth.
    """

    num_trees: int = DEFAULT_NUM_TREES
    num_features: int = DEFAULT_NUM_FEATURES
    leaf_limit: int = DEFAULT_LEAF_LIMIT
    num_examples: int = DEFAULT_NUM_EXAMPLES
    method: SamplingMethod = SamplingMethod.RANDOM
    max_depth: int = DEFAULT_MAX_DEPTH

    @classmethod
    def from_shape(cls, n_rows: int, n_inputs: int) -> "Parms":
        """Derive reasonable hyperparameters for a training set of a given shape.

        The per-node feature count is sqrt(inputs) + 1, raised to at least
        4 * inputs / trees and capped at half the inputs.

        Args:
            n_rows: Number of training rows.
            n_inputs: Number of feature columns.

        Returns:
            Hyperparameters sized for the training set.
        """
        num_trees = DEFAULT_NUM_TREES
        lower = n_inputs * 4 // num_trees
        middle = int(math.sqrt(n_inputs)) + 1
        upper = n_inputs // 2
        num_features = max(middle, lower)
        if num_features > upper:
            num_features = upper
        return cls(
            num_trees=num_trees,
            num_features=num_features,
            leaf_limit=DEFAULT_LEAF_LIMIT,
            num_examples=n_rows // EXAMPLES_DIVISOR,
            method=SamplingMethod.RANDOM,
            max_depth=2 * n_inputs,
        )

    @classmethod
    def from_dataset(cls, dataset: Dataset) -> "Parms":
        """Derive reasonable hyperparameters for a training set."""
        return cls.from_shape(dataset.num_examples, dataset.num_inputs)

    def with_num_trees(self, num_trees: int) -> "Parms":
        return replace(self, num_trees=num_trees)

    def with_num_features(self, num_features: int) -> "Parms":
        return replace(self, num_features=num_features)

    def with_leaf_limit(self, leaf_limit: int) -> "Parms":
        return replace(self, leaf_limit=leaf_limit)

    def with_num_examples(self, num_examples: int) -> "Parms":
        return replace(self, num_examples=num_examples)

    def with_method(self, method: SamplingMethod | str) -> "Parms":
        return replace(self, method=SamplingMethod(method))

    def with_max_depth(self, max_depth: int) -> "Parms":
        return replace(self, max_depth=max_depth)

    def get_randomizer(self) -> Randomizer:
        """Return a fresh randomizer for the configured sampling method."""
        return self.method.create()
