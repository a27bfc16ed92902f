"""Feature selection for tree nodes.

Each tree gets its own ``TreeFeatureSelectorFactory``, seeded from a single
top-level stream, and asks it for a ``FeatureSelector`` at every choice node.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterator, Sequence

import numpy as np

from decision_forest.config import FEATURE_SEED_OFFSET, SEED_BOUND
from decision_forest.model.parms import Parms
from decision_forest.utils import get_logger

logger = get_logger(__name__)


class FeatureSelector:
    """The candidate features a single tree node may split on.

    Args:
        idxes: Indices of the features eligible for selection.
        n_features: Number of distinct features to draw.
        rng: Generator of the owning tree.
    """

    def __init__(self, idxes: np.ndarray, n_features: int, rng: np.random.Generator) -> None:
        n_features = min(n_features, len(idxes))
        self.features: np.ndarray = rng.choice(idxes, size=n_features, replace=False)

    def __len__(self) -> int:
        return len(self.features)

    def __iter__(self) -> Iterator[int]:
        return (int(f) for f in self.features)


class TreeFeatureSelectorFactory(ABC):
    """Produces the feature selectors for one tree.

    A factory is used by exactly one tree build, so its generator is never
    shared between threads.
    """

    def __init__(self, seed: int) -> None:
        self._rng = np.random.default_rng(seed)

    @property
    def randomizer(self) -> np.random.Generator:
        return self._rng

    @abstractmethod
    def get_selector(self, depth: int) -> FeatureSelector:
        """Return the selector for a node at the given depth."""


class NormalTreeFeatureSelectorFactory(Iterator[TreeFeatureSelectorFactory]):
    """Iterator of per-tree factories that pick a random feature subset at each node.

    Args:
        seed: Seed of the stream the per-tree seeds are drawn from.
        idxes: Useful (non-constant) feature column indices.
        n_features: Number of features to select at each node.
        n_trees: Number of factories to produce.
    """

    class Builder(TreeFeatureSelectorFactory):
        """Per-tree factory returning a fresh random feature subset at every node."""

        def __init__(self, seed: int, idxes: np.ndarray, n_features: int) -> None:
            super().__init__(seed)
            self.idxes = idxes
            self.n_features = n_features

        def get_selector(self, depth: int) -> FeatureSelector:
            return FeatureSelector(self.idxes, self.n_features, self.randomizer)

    def __init__(
        self,
        seed: int,
        idxes: Sequence[int] | np.ndarray,
        n_features: int,
        n_trees: int,
    ) -> None:
        self.counter = 0
        self._rng = np.random.default_rng(seed)
        self.n_features = n_features
        self.n_trees = n_trees
        self.idxes = np.asarray(idxes, dtype=np.intp)
        self.idxes.setflags(write=False)

    def __iter__(self) -> "NormalTreeFeatureSelectorFactory":
        return self

    def __next__(self) -> TreeFeatureSelectorFactory:
        if self.counter >= self.n_trees:
            raise StopIteration
        self.counter += 1
        seed = int(self._rng.integers(SEED_BOUND))
        return self.Builder(seed, self.idxes, self.n_features)

    @classmethod
    def for_forest(
        cls,
        seed: int,
        useful_features: Sequence[int] | np.ndarray,
        parms: Parms,
    ) -> "NormalTreeFeatureSelectorFactory":
        """Build the factory iterator for a forest.

        If the configured feature count is not smaller than the number of
        useful features, it is cut to half the useful features (never below
        one while any useful feature exists).

        Args:
            seed: Processor seed; offset so it differs from the example-selection seed.
            useful_features: Useful feature column indices.
            parms: Forest hyperparameters.

        Returns:
            Iterator producing ``parms.num_trees`` factories.
        """
        n_useful = len(useful_features)
        n_features = parms.num_features
        if n_features >= n_useful:
            n_features = n_useful // 2
            logger.debug(
                "Features per node reduced to %d of %d useful features", n_features, n_useful
            )
        if n_useful > 0:
            n_features = max(n_features, 1)
        return cls(seed + FEATURE_SEED_OFFSET, useful_features, n_features, parms.num_trees)
