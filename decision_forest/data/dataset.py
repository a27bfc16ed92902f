"""In-memory labeled dataset used for training and testing forests."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np


def _frozen_matrix(values: np.ndarray | Sequence[Sequence[float]], name: str) -> np.ndarray:
    """Return a read-only 2-D float copy of ``values``."""
    matrix = np.array(values, dtype=np.float64)
    if matrix.ndim != 2:
        raise ValueError(f"{name} must be a 2-D matrix, got {matrix.ndim} dimensions")
    matrix.setflags(write=False)
    return matrix


def flatten_features(features: np.ndarray) -> np.ndarray:
    """Flatten a 4-D (rows, channels, 1, width) feature array to 2 dimensions.

    Args:
        features: Feature array, either already 2-D or in the 4-D layout
            used by convolutional readers.

    Returns:
        The feature rows as a (rows, channels * width) matrix.
    """
    features = np.asarray(features)
    if features.ndim == 4:
        return features.reshape(features.shape[0], features.shape[1] * features.shape[3])
    return features


@dataclass(frozen=True)
class Dataset:
    """A feature matrix paired with its one-hot (or soft) label matrix.

    Both matrices are copied and made read-only on construction, so a
    dataset can be shared between tree-building threads.

    Attributes:
        features: Input matrix of shape (rows, inputs).
        labels: Output matrix of shape (rows, outcomes).
    """

    features: np.ndarray
    labels: np.ndarray

    def __post_init__(self) -> None:
        features = _frozen_matrix(self.features, "features")
        labels = _frozen_matrix(self.labels, "labels")
        if features.shape[0] != labels.shape[0]:
            raise ValueError(
                f"Row count mismatch: {features.shape[0]} feature rows, "
                f"{labels.shape[0]} label rows"
            )
        object.__setattr__(self, "features", features)
        object.__setattr__(self, "labels", labels)

    @classmethod
    def from_label_indices(
        cls,
        features: np.ndarray | Sequence[Sequence[float]],
        indices: np.ndarray | Sequence[int],
        n_labels: int,
    ) -> "Dataset":
        """Build a dataset from class indices instead of a label matrix.

        Args:
            features: Input matrix.
            indices: Class index of each row.
            n_labels: Number of label columns.

        Returns:
            Dataset with a one-hot label matrix.
        """
        indices = np.asarray(indices, dtype=np.intp)
        if indices.size and (indices.min() < 0 or indices.max() >= n_labels):
            raise ValueError(f"Label indices must lie in [0, {n_labels})")
        labels = np.zeros((indices.shape[0], n_labels))
        labels[np.arange(indices.shape[0]), indices] = 1.0
        return cls(features=np.asarray(features), labels=labels)

    @property
    def num_examples(self) -> int:
        return int(self.features.shape[0])

    @property
    def num_inputs(self) -> int:
        return int(self.features.shape[1])

    @property
    def num_outcomes(self) -> int:
        return int(self.labels.shape[1])

    def label_indices(self) -> np.ndarray:
        """Return the winning label column of each row (lowest index on ties)."""
        return np.argmax(self.labels, axis=1)

    def subset(self, rows: np.ndarray | Sequence[int]) -> "Dataset":
        """Return a new dataset holding the given rows, in the given order."""
        rows = np.asarray(rows, dtype=np.intp)
        return Dataset(features=self.features[rows], labels=self.labels[rows])

    def __len__(self) -> int:
        return self.num_examples
