"""Tests for decision_forest/model/random_forest.py module."""

from __future__ import annotations

import os
import sys

import numpy as np
import pytest

# Add project root to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

from decision_forest.data.dataset import Dataset
from decision_forest.data.io import read_label_names, read_tabbed_dataset
from decision_forest.model.feature_selectors import FeatureSelector, TreeFeatureSelectorFactory
from decision_forest.model.parms import Parms
from decision_forest.model.random_forest import (
    RandomForest,
    draw_seeds,
    get_useful_features,
    next_seed,
    set_seed,
)
from decision_forest.model.randomizers import SamplingMethod
from decision_forest.training.callbacks import TrainingInterrupted, TreeHistory


class FailingFactory(TreeFeatureSelectorFactory):
    """Factory whose selectors cannot be built."""

    def get_selector(self, depth: int) -> FeatureSelector:
        raise RuntimeError("selector failure")


class TestSeeds:
    """Test cases for the process-wide random source."""

    def test_set_seed_repeats_draws(self):
        set_seed(12)
        first = [next_seed(), *draw_seeds(3).tolist()]
        set_seed(12)
        second = [next_seed(), *draw_seeds(3).tolist()]

        assert first == second

    def test_seeds_are_non_negative(self):
        set_seed(0)
        assert (draw_seeds(100) >= 0).all()


class TestGetUsefulFeatures:
    """Test cases for get_useful_features."""

    def test_constant_columns_dropped(self):
        features = np.array([[1.0, 5.0, 0.0, 2.0], [1.0, 6.0, 0.0, 2.0], [1.0, 5.0, 0.0, 3.0]])
        dataset = Dataset.from_label_indices(features, [0, 1, 0], 2)

        np.testing.assert_array_equal(get_useful_features(dataset), [1, 3])

    def test_single_row(self):
        dataset = Dataset.from_label_indices([[1.0, 2.0]], [0], 2)
        assert get_useful_features(dataset).size == 0

    def test_all_constant(self, imbalanced_dataset):
        useful = get_useful_features(imbalanced_dataset)
        np.testing.assert_array_equal(useful, [0])


class TestRandomForest:
    """Test cases for RandomForest."""

    def test_builds_requested_trees(self, informative_dataset, small_parms):
        forest = RandomForest(informative_dataset, small_parms, n_jobs=2)

        assert len(forest) == small_parms.num_trees
        assert forest.is_fitted
        assert forest.n_labels == 2
        assert forest.n_features == 3

    def test_tally_counts_every_tree(self, informative_dataset, informative_test_set, small_parms):
        forest = RandomForest(informative_dataset, small_parms)

        tally = forest.predict(informative_test_set.features)

        assert tally.shape == (informative_test_set.num_examples, 2)
        np.testing.assert_array_equal(tally.sum(axis=1), small_parms.num_trees)

    def test_accuracy_on_learnable_rule(self, informative_dataset, informative_test_set, small_parms):
        forest = RandomForest(informative_dataset, small_parms)

        assert forest.get_accuracy(informative_test_set) >= 0.9

    @pytest.mark.parametrize("method", list(SamplingMethod))
    def test_every_sampling_method(self, informative_dataset, informative_test_set, small_parms, method):
        forest = RandomForest(informative_dataset, small_parms.with_method(method))
        assert forest.get_accuracy(informative_test_set) >= 0.85

    def test_same_seed_same_forest(self, informative_dataset, informative_test_set, small_parms):
        set_seed(99)
        first = RandomForest(informative_dataset, small_parms, n_jobs=4)
        set_seed(99)
        second = RandomForest(informative_dataset, small_parms, n_jobs=2)

        np.testing.assert_array_equal(
            first.predict(informative_test_set.features),
            second.predict(informative_test_set.features),
        )
        assert [t.score() for t in first.trees] == [t.score() for t in second.trees]
        np.testing.assert_array_equal(first.compute_impact(), second.compute_impact())

    def test_identical_rows_identical_predictions(self, informative_dataset, small_parms):
        forest = RandomForest(informative_dataset, small_parms)
        rows = np.tile([[0.8, 0.1, 0.3]], (5, 1))

        labels = forest.predict_labels(rows)

        assert len(set(labels.tolist())) == 1
        assert labels[0] == 1

    def test_predict_accepts_4d_features(self, informative_dataset, informative_test_set, small_parms):
        forest = RandomForest(informative_dataset, small_parms)
        flat = informative_test_set.features
        stacked = flat.reshape(flat.shape[0], 3, 1, 1)

        np.testing.assert_array_equal(forest.predict(stacked), forest.predict(flat))

    def test_predict_wrong_width(self, informative_dataset, small_parms):
        forest = RandomForest(informative_dataset, small_parms)
        with pytest.raises(ValueError, match="width 3"):
            forest.predict(np.zeros((2, 2)))

    def test_accuracy_empty_test_set(self, informative_dataset, small_parms):
        forest = RandomForest(informative_dataset, small_parms)
        empty = Dataset(features=np.empty((0, 3)), labels=np.empty((0, 2)))

        with pytest.raises(ValueError, match="empty"):
            forest.get_accuracy(empty)

    def test_impact_favors_informative_feature(self, two_feature_dataset):
        parms = Parms(num_trees=30, num_features=2, num_examples=150, max_depth=6)
        forest = RandomForest(two_feature_dataset, parms)

        impact = forest.compute_impact()

        assert impact.shape == (2,)
        assert (impact >= 0).all()
        assert impact[0] > 3 * impact[1]

    def test_impact_is_mean_of_trees(self, informative_dataset, small_parms):
        forest = RandomForest(informative_dataset, small_parms)

        total = np.sum([tree.impact for tree in forest.trees], axis=0)

        np.testing.assert_allclose(forest.compute_impact(), total / len(forest))

    def test_impact_zero_for_constant_feature(self, tabbed_file, small_parms):
        dataset, feature_cols, _ = read_tabbed_dataset(tabbed_file, "class", meta_cols=["id"])
        forest = RandomForest(dataset, small_parms)

        impact = forest.compute_impact()

        assert impact[feature_cols.index("const")] == 0.0

    def test_default_parms(self, informative_dataset):
        forest = RandomForest(informative_dataset)
        assert len(forest) == Parms.from_dataset(informative_dataset).num_trees

    def test_reporter_sees_every_tree_in_order(self, informative_dataset, small_parms):
        history = TreeHistory()

        RandomForest(informative_dataset, small_parms, reporter=history, n_jobs=4)

        assert history.epochs == list(range(1, small_parms.num_trees + 1))
        assert all(0.0 <= score <= 1.0 for score in history.scores)

    def test_reporter_interruption_is_ignored(self, informative_dataset, small_parms, mocker):
        reporter = mocker.Mock()
        reporter.display_epoch.side_effect = TrainingInterrupted("stop requested")

        forest = RandomForest(informative_dataset, small_parms, reporter=reporter)

        assert len(forest) == small_parms.num_trees
        assert reporter.display_epoch.call_count == small_parms.num_trees
        epoch, score, rating, saved = reporter.display_epoch.call_args.args
        assert epoch == small_parms.num_trees
        assert rating == 0.0
        assert saved is False

    def test_tree_failure_propagates(self, informative_dataset, small_parms):
        parms = small_parms.with_num_trees(4)
        factories = [FailingFactory(seed) for seed in range(4)]

        with pytest.raises(RuntimeError, match="selector failure"):
            RandomForest(informative_dataset, parms, factories=factories, n_jobs=2)

    def test_factories_exhausted(self, informative_dataset, small_parms):
        parms = small_parms.with_num_trees(3)
        with pytest.raises(ValueError, match="exhausted"):
            RandomForest(informative_dataset, parms, factories=[FailingFactory(0)])

    def test_zero_trees_rejected(self, informative_dataset, small_parms):
        with pytest.raises(ValueError, match="at least one tree"):
            RandomForest(informative_dataset, small_parms.with_num_trees(0))

    def test_unique_sample_too_large(self, informative_dataset, small_parms):
        parms = small_parms.with_method(SamplingMethod.UNIQUE).with_num_examples(1000)
        with pytest.raises(ValueError, match="unique examples"):
            RandomForest(informative_dataset, parms)


class TestMakePredictions:
    """Test cases for batch prediction from a tab-delimited file."""

    @pytest.fixture
    def trained(self, tabbed_file, small_parms):
        labels = read_label_names(tabbed_file, "class")
        dataset, _, _ = read_tabbed_dataset(tabbed_file, "class", labels, ["id"])
        return RandomForest(dataset, small_parms), labels

    def test_writes_one_row_per_input(self, trained, tabbed_file, tmp_path):
        forest, labels = trained
        out_file = tmp_path / "out.tbl"

        count = forest.make_predictions(tabbed_file, out_file, ["id"], labels, exclude_cols=["class"])

        lines = out_file.read_text(encoding="utf-8").splitlines()
        assert count == 120
        assert lines[0] == "id\tpredicted"
        assert len(lines) == 121
        assert lines[1].startswith("row0\t")

    def test_predictions_match_training_labels(self, trained, tabbed_file, tmp_path):
        forest, labels = trained
        out_file = tmp_path / "out.tbl"

        forest.make_predictions(tabbed_file, out_file, ["id"], labels, exclude_cols=["class"])

        source = [line.split("\t") for line in tabbed_file.read_text().splitlines()[1:]]
        predicted = [line.split("\t")[1] for line in out_file.read_text().splitlines()[1:]]
        hits = sum(row[-1] == guess for row, guess in zip(source, predicted))
        assert hits / len(source) >= 0.9

    def test_header_only_input(self, trained, tmp_path):
        forest, labels = trained
        in_file = tmp_path / "empty.tbl"
        in_file.write_text("id\tx0\tx1\tconst\n", encoding="utf-8")
        out_file = tmp_path / "out.tbl"

        count = forest.make_predictions(in_file, out_file, ["id"], labels)

        assert count == 0
        assert out_file.read_text(encoding="utf-8").splitlines() == ["id\tpredicted"]

    def test_wrong_label_count(self, trained, tabbed_file, tmp_path):
        forest, _ = trained
        with pytest.raises(ValueError, match="label names"):
            forest.make_predictions(tabbed_file, tmp_path / "out.tbl", ["id"], ["only"])

    def test_missing_input(self, trained, tmp_path):
        forest, labels = trained
        with pytest.raises(FileNotFoundError):
            forest.make_predictions(tmp_path / "missing.tbl", tmp_path / "out.tbl", ["id"], labels)


if __name__ == "__main__":
    pytest.main([__file__, "-v", "--color=yes"])
