"""Tests for decision_forest/model/feature_selectors.py module."""

from __future__ import annotations

import numpy as np
import pytest

from decision_forest.config import FEATURE_SEED_OFFSET
from decision_forest.model.feature_selectors import (
    FeatureSelector,
    NormalTreeFeatureSelectorFactory,
    TreeFeatureSelectorFactory,
)
from decision_forest.model.parms import Parms


class TestFeatureSelector:
    """Test cases for FeatureSelector."""

    def test_distinct_features_from_pool(self):
        idxes = np.array([1, 4, 6, 9, 12])
        selector = FeatureSelector(idxes, 3, np.random.default_rng(0))

        chosen = list(selector)
        assert len(selector) == 3
        assert len(set(chosen)) == 3
        assert set(chosen) <= set(idxes.tolist())

    def test_request_larger_than_pool(self):
        selector = FeatureSelector(np.array([2, 3]), 10, np.random.default_rng(0))
        assert sorted(selector) == [2, 3]

    def test_empty_pool(self):
        selector = FeatureSelector(np.array([], dtype=np.intp), 3, np.random.default_rng(0))
        assert list(selector) == []


class TestNormalTreeFeatureSelectorFactory:
    """Test cases for the per-tree factory iterator."""

    def test_produces_exactly_n_trees(self):
        factories = NormalTreeFeatureSelectorFactory(1, [0, 1, 2, 3], 2, 5)

        produced = list(factories)

        assert len(produced) == 5
        assert all(isinstance(f, TreeFeatureSelectorFactory) for f in produced)
        with pytest.raises(StopIteration):
            next(factories)

    def test_selectors_use_only_given_features(self):
        factories = NormalTreeFeatureSelectorFactory(9, [1, 5, 7], 2, 3)

        for factory in factories:
            for depth in range(4):
                selector = factory.get_selector(depth)
                assert len(selector) == 2
                assert set(selector) <= {1, 5, 7}

    def test_same_seed_same_sequence(self):
        def draws(seed):
            return [
                list(factory.get_selector(0))
                for factory in NormalTreeFeatureSelectorFactory(seed, range(20), 4, 6)
            ]

        assert draws(21) == draws(21)
        assert draws(21) != draws(22)

    def test_trees_get_different_streams(self):
        first, second = list(NormalTreeFeatureSelectorFactory(5, range(50), 5, 2))
        assert list(first.get_selector(0)) != list(second.get_selector(0))

    def test_for_forest_keeps_smaller_count(self):
        parms = Parms(num_trees=4, num_features=3)
        factories = NormalTreeFeatureSelectorFactory.for_forest(0, np.arange(10), parms)

        assert factories.n_features == 3
        assert factories.n_trees == 4

    def test_for_forest_halves_when_too_many(self):
        parms = Parms(num_trees=4, num_features=10)
        factories = NormalTreeFeatureSelectorFactory.for_forest(0, np.arange(10), parms)

        assert factories.n_features == 5

    def test_for_forest_single_useful_feature(self):
        """Half of one feature rounds to zero, so at least one is kept."""
        parms = Parms(num_trees=2, num_features=4)
        factories = NormalTreeFeatureSelectorFactory.for_forest(0, [3], parms)

        assert factories.n_features == 1
        assert list(next(factories).get_selector(0)) == [3]

    def test_for_forest_offsets_seed(self):
        parms = Parms(num_trees=3, num_features=2)
        offset = NormalTreeFeatureSelectorFactory.for_forest(100, np.arange(8), parms)
        direct = NormalTreeFeatureSelectorFactory(100 + FEATURE_SEED_OFFSET, np.arange(8), 2, 3)

        assert [list(f.get_selector(0)) for f in offset] == [
            list(f.get_selector(0)) for f in direct
        ]
