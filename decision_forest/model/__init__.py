"""Random forest model and its building blocks.

Submodules
----------
parms : Hyperparameters
randomizers : Per-tree training set sampling strategies
feature_selectors : Per-node feature subset selection
decision_tree : Single classification tree
random_forest : Ensemble construction, voting and impact
persistence : Versioned model file format
"""

from __future__ import annotations

from decision_forest.model.decision_tree import DecisionTree
from decision_forest.model.feature_selectors import (
    FeatureSelector,
    NormalTreeFeatureSelectorFactory,
    TreeFeatureSelectorFactory,
)
from decision_forest.model.parms import Parms
from decision_forest.model.persistence import ModelFormatError
from decision_forest.model.random_forest import RandomForest, get_useful_features, set_seed
from decision_forest.model.randomizers import (
    BalancedRandomizer,
    NonReplacingRandomizer,
    Randomizer,
    ReplacingRandomizer,
    SamplingMethod,
)

__all__ = [
    "BalancedRandomizer",
    "DecisionTree",
    "FeatureSelector",
    "ModelFormatError",
    "NonReplacingRandomizer",
    "NormalTreeFeatureSelectorFactory",
    "Parms",
    "RandomForest",
    "Randomizer",
    "ReplacingRandomizer",
    "SamplingMethod",
    "TreeFeatureSelectorFactory",
    "get_useful_features",
    "set_seed",
]
