"""Sampling strategies that draw a training subset for each tree.

A randomizer is initialized once with the full training set and then asked
for one sample per tree. ``get_data`` only reads state set up by
``initialize_data`` and builds its own generator from the seed, so trees can
request samples concurrently.

Strategies:
- BALANCED: with replacement, equal numbers of each class
- UNIQUE: without replacement
- RANDOM: with replacement, following the source distribution
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable

import numpy as np

from decision_forest.data.dataset import Dataset
from decision_forest.utils import get_logger

logger = get_logger(__name__)


class Randomizer(ABC):
    """Base class for per-tree training set samplers."""

    def __init__(self) -> None:
        self.n_labels = 0
        self.samples_per_tree = 0
        self.dataset: Dataset | None = None

    def initialize_data(self, n_labels: int, samples_per_tree: int, dataset: Dataset) -> None:
        """Attach the full training set.

        Args:
            n_labels: Number of label columns.
            samples_per_tree: Number of rows in each sample.
            dataset: Full training set (never modified).
        """
        self.n_labels = n_labels
        self.samples_per_tree = samples_per_tree
        self.dataset = dataset
        self._setup()

    def _setup(self) -> None:
        """Hook for strategies that pre-process the training set."""

    def get_data(self, seed: int) -> Dataset:
        """Return the sample for one tree.

        Args:
            seed: Seed for this sample; equal seeds give equal samples.

        Returns:
            A new dataset built from rows of the training set.
        """
        if self.dataset is None:
            raise RuntimeError("Randomizer used before initialize_data")
        rng = np.random.default_rng(seed)
        return self.dataset.subset(self._select_rows(rng))

    @abstractmethod
    def _select_rows(self, rng: np.random.Generator) -> np.ndarray:
        """Choose the training set row indices of one sample."""


class ReplacingRandomizer(Randomizer):
    """Uniform draw with replacement from all rows."""

    def _select_rows(self, rng: np.random.Generator) -> np.ndarray:
        assert self.dataset is not None
        return rng.integers(0, self.dataset.num_examples, size=self.samples_per_tree)


class NonReplacingRandomizer(Randomizer):
    """Uniform draw of distinct rows."""

    def _setup(self) -> None:
        assert self.dataset is not None
        if self.samples_per_tree > self.dataset.num_examples:
            raise ValueError(
                f"Cannot draw {self.samples_per_tree} unique examples from "
                f"{self.dataset.num_examples} rows"
            )

    def _select_rows(self, rng: np.random.Generator) -> np.ndarray:
        assert self.dataset is not None
        return rng.choice(self.dataset.num_examples, size=self.samples_per_tree, replace=False)


class BalancedRandomizer(Randomizer):
    """Draw with replacement, giving every class the same number of rows."""

    def __init__(self) -> None:
        super().__init__()
        self.buckets: list[np.ndarray] = []
        self.counts: list[int] = []

    def _setup(self) -> None:
        assert self.dataset is not None
        classes = self.dataset.label_indices()
        buckets = [np.flatnonzero(classes == label) for label in range(self.n_labels)]
        # Classes absent from the training set cannot be sampled.
        self.buckets = [bucket for bucket in buckets if bucket.size > 0]
        if not self.buckets:
            self.counts = []
            return
        base, extra = divmod(self.samples_per_tree, len(self.buckets))
        self.counts = [base + (1 if i < extra else 0) for i in range(len(self.buckets))]
        logger.debug(
            "Balanced sampling: %d classes present, %s rows per class",
            len(self.buckets),
            self.counts,
        )

    def _select_rows(self, rng: np.random.Generator) -> np.ndarray:
        parts = [
            bucket[rng.integers(0, bucket.size, size=count)]
            for bucket, count in zip(self.buckets, self.counts)
        ]
        if not parts:
            return np.empty(0, dtype=np.intp)
        return np.concatenate(parts)


class SamplingMethod(str, Enum):
    """Type of randomization used to pick each tree's training set."""

    BALANCED = "BALANCED"
    UNIQUE = "UNIQUE"
    RANDOM = "RANDOM"

    @property
    def description(self) -> str:
        return _DESCRIPTIONS[self]

    def create(self) -> Randomizer:
        """Return a fresh randomizer for this method."""
        return RANDOMIZERS[self]()


_DESCRIPTIONS: dict[SamplingMethod, str] = {
    SamplingMethod.BALANCED: "Class-balanced example sets with replacement.",
    SamplingMethod.UNIQUE: "Random example sets without replacement.",
    SamplingMethod.RANDOM: "Random example sets with replacement.",
}

RANDOMIZERS: dict[SamplingMethod, Callable[[], Randomizer]] = {
    SamplingMethod.BALANCED: BalancedRandomizer,
    SamplingMethod.UNIQUE: NonReplacingRandomizer,
    SamplingMethod.RANDOM: ReplacingRandomizer,
}
