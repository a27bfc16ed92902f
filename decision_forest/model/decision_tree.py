"""Decision tree trained on one forest sample.

Nodes are stored in flat arrays. An interior node sends a row left when the
row's value for the node feature is at most the node threshold. A leaf has
feature -1 and carries the label it votes for.
"""

from __future__ import annotations

from typing import Any

import numpy as np

from decision_forest.data.dataset import Dataset
from decision_forest.model.feature_selectors import TreeFeatureSelectorFactory
from decision_forest.model.parms import Parms

LEAF = -1

# Gains below this are rounding noise, not a useful split
MIN_GAIN = 1e-12


def entropy(weights: np.ndarray) -> float:
    """Base-2 entropy of a vector of class weights."""
    total = weights.sum()
    if total <= 0:
        return 0.0
    probs = weights[weights > 0] / total
    return float(-(probs * np.log2(probs)).sum())


class DecisionTree:
    """A classification tree whose choice nodes use randomly selected features.

    Args:
        dataset: Training sample for this tree.
        parms: Forest hyperparameters (leaf limit, maximum depth).
        factory: Source of the candidate features at each node.
    """

    def __init__(self, dataset: Dataset, parms: Parms, factory: TreeFeatureSelectorFactory) -> None:
        self.n_features = dataset.num_inputs
        self.n_labels = dataset.num_outcomes
        self._feature: list[int] = []
        self._threshold: list[float] = []
        self._left: list[int] = []
        self._right: list[int] = []
        self._label: list[int] = []
        self.impact = np.zeros(self.n_features)
        self._build(dataset, parms, factory)
        self._freeze()
        if dataset.num_examples > 0:
            predicted = self.predict_indices(dataset.features)
            self._score = 1.0 - float(np.mean(predicted == dataset.label_indices()))
        else:
            self._score = 1.0

    def _new_node(self) -> int:
        self._feature.append(LEAF)
        self._threshold.append(0.0)
        self._left.append(LEAF)
        self._right.append(LEAF)
        self._label.append(0)
        return len(self._feature) - 1

    def _build(self, dataset: Dataset, parms: Parms, factory: TreeFeatureSelectorFactory) -> None:
        features = dataset.features
        labels = dataset.labels
        n_total = max(dataset.num_examples, 1)
        stack = [(self._new_node(), np.arange(dataset.num_examples), 0)]
        while stack:
            node, rows, depth = stack.pop()
            weights = labels[rows].sum(axis=0)
            self._label[node] = int(np.argmax(weights)) if weights.size else 0
            node_entropy = entropy(weights)
            if len(rows) <= parms.leaf_limit or depth >= parms.max_depth or node_entropy == 0.0:
                continue
            split = self._choose_split(features, labels, rows, node_entropy, factory, depth)
            if split is None:
                continue
            feature, threshold, gain, go_left = split
            self.impact[feature] += gain * len(rows) / n_total
            self._feature[node] = feature
            self._threshold[node] = threshold
            left = self._new_node()
            right = self._new_node()
            self._left[node] = left
            self._right[node] = right
            stack.append((right, rows[~go_left], depth + 1))
            stack.append((left, rows[go_left], depth + 1))

    @staticmethod
    def _choose_split(
        features: np.ndarray,
        labels: np.ndarray,
        rows: np.ndarray,
        node_entropy: float,
        factory: TreeFeatureSelectorFactory,
        depth: int,
    ) -> tuple[int, float, float, np.ndarray] | None:
        """Find the candidate feature whose mean split has the best information gain."""
        best: tuple[int, float, float, np.ndarray] | None = None
        n_rows = len(rows)
        node_labels = labels[rows]
        for feature in factory.get_selector(depth):
            values = features[rows, feature]
            threshold = float(values.mean())
            go_left = values <= threshold
            n_left = int(go_left.sum())
            if n_left == 0 or n_left == n_rows:
                continue
            children = (
                n_left * entropy(node_labels[go_left].sum(axis=0))
                + (n_rows - n_left) * entropy(node_labels[~go_left].sum(axis=0))
            ) / n_rows
            gain = node_entropy - children
            if gain > MIN_GAIN and (best is None or gain > best[2]):
                best = (feature, threshold, gain, go_left)
        return best

    def _freeze(self) -> None:
        self._feature_arr = np.asarray(self._feature, dtype=np.intp)
        self._threshold_arr = np.asarray(self._threshold, dtype=np.float64)
        self._left_arr = np.asarray(self._left, dtype=np.intp)
        self._right_arr = np.asarray(self._right, dtype=np.intp)
        self._label_arr = np.asarray(self._label, dtype=np.intp)
        del self._feature, self._threshold, self._left, self._right, self._label

    @property
    def node_count(self) -> int:
        return int(self._feature_arr.shape[0])

    def score(self) -> float:
        """Return 1 minus the tree's accuracy on its own training sample."""
        return self._score

    def predict_indices(self, features: np.ndarray) -> np.ndarray:
        """Return the label index of the leaf each row reaches."""
        n_rows = features.shape[0]
        nodes = np.zeros(n_rows, dtype=np.intp)
        active = np.flatnonzero(self._feature_arr[nodes] != LEAF)
        while active.size:
            current = nodes[active]
            values = features[active, self._feature_arr[current]]
            go_left = values <= self._threshold_arr[current]
            nodes[active] = np.where(go_left, self._left_arr[current], self._right_arr[current])
            active = active[self._feature_arr[nodes[active]] != LEAF]
        return self._label_arr[nodes]

    def vote(self, features: np.ndarray, tally: np.ndarray) -> None:
        """Add one vote per row to the tally column of the predicted label."""
        predicted = self.predict_indices(features)
        tally[np.arange(features.shape[0]), predicted] += 1

    def accumulate_impact(self, vector: np.ndarray) -> None:
        """Add this tree's per-feature impact to a running total."""
        vector += self.impact

    def to_state(self) -> dict[str, Any]:
        """Encode the tree as plain arrays and numbers."""
        return {
            "n_features": self.n_features,
            "n_labels": self.n_labels,
            "score": self._score,
            "feature": self._feature_arr.copy(),
            "threshold": self._threshold_arr.copy(),
            "left": self._left_arr.copy(),
            "right": self._right_arr.copy(),
            "label": self._label_arr.copy(),
            "impact": self.impact.copy(),
        }

    @classmethod
    def from_state(cls, state: dict[str, Any]) -> "DecisionTree":
        """Rebuild a tree encoded by ``to_state``.

        Raises:
            ValueError: If the arrays do not describe a well-formed tree.
        """
        tree = cls.__new__(cls)
        tree.n_features = int(state["n_features"])
        tree.n_labels = int(state["n_labels"])
        tree._score = float(state["score"])
        tree._feature_arr = np.asarray(state["feature"], dtype=np.intp)
        tree._threshold_arr = np.asarray(state["threshold"], dtype=np.float64)
        tree._left_arr = np.asarray(state["left"], dtype=np.intp)
        tree._right_arr = np.asarray(state["right"], dtype=np.intp)
        tree._label_arr = np.asarray(state["label"], dtype=np.intp)
        tree.impact = np.asarray(state["impact"], dtype=np.float64)
        tree._check_state()
        return tree

    def _check_state(self) -> None:
        arrays = (
            self._feature_arr,
            self._threshold_arr,
            self._left_arr,
            self._right_arr,
            self._label_arr,
        )
        if any(arr.ndim != 1 for arr in arrays) or len({arr.shape[0] for arr in arrays}) != 1:
            raise ValueError("Inconsistent decision tree state: node arrays differ in shape")
        n_nodes = self._feature_arr.shape[0]
        if n_nodes == 0:
            raise ValueError("Inconsistent decision tree state: no nodes")
        if self.n_features < 0 or self.n_labels < 1 or self.impact.shape != (self.n_features,):
            raise ValueError("Inconsistent decision tree state: bad feature or label count")
        if ((self._label_arr < 0) | (self._label_arr >= self.n_labels)).any():
            raise ValueError("Inconsistent decision tree state: leaf label out of range")
        interior = np.flatnonzero(self._feature_arr != LEAF)
        features = self._feature_arr[interior]
        if ((features < 0) | (features >= self.n_features)).any():
            raise ValueError("Inconsistent decision tree state: split feature out of range")
        # children are always stored after their parent, so traversal terminates
        for children in (self._left_arr[interior], self._right_arr[interior]):
            if ((children <= interior) | (children >= n_nodes)).any():
                raise ValueError("Inconsistent decision tree state: bad child index")
