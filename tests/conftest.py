from __future__ import annotations

import sys
from pathlib import Path

# Add project root to Python path for direct execution.
_script_dir = Path(__file__).parent
# Find project root by looking for .git, pyproject.toml, or setup.py
_project_root = _script_dir.parent
while _project_root != _project_root.parent:
    if (_project_root / ".git").exists() or (_project_root / "pyproject.toml").exists() or (_project_root / "setup.py").exists():
        break
    _project_root = _project_root.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

import numpy as np
import pytest  # type: ignore

from decision_forest.data.dataset import Dataset
from decision_forest.model.parms import Parms


@pytest.fixture
def informative_dataset():
    """Three features; the class is decided by feature 0 alone."""
    rng = np.random.default_rng(42)
    n_rows = 300
    x0 = rng.uniform(0, 1, n_rows)
    noise = rng.uniform(0, 1, (n_rows, 2))
    features = np.column_stack([x0, noise])
    classes = (x0 > 0.5).astype(int)
    return Dataset.from_label_indices(features, classes, 2)


@pytest.fixture
def informative_test_set():
    """Held-out rows following the same rule as informative_dataset."""
    rng = np.random.default_rng(7)
    n_rows = 200
    x0 = rng.uniform(0, 1, n_rows)
    noise = rng.uniform(0, 1, (n_rows, 2))
    features = np.column_stack([x0, noise])
    classes = (x0 > 0.5).astype(int)
    return Dataset.from_label_indices(features, classes, 2)


@pytest.fixture
def two_feature_dataset():
    """Feature 0 decides the class, feature 1 is noise."""
    rng = np.random.default_rng(3)
    n_rows = 200
    x0 = rng.uniform(0, 1, n_rows)
    x1 = rng.uniform(0, 1, n_rows)
    classes = (x0 > 0.5).astype(int)
    return Dataset.from_label_indices(np.column_stack([x0, x1]), classes, 2)


@pytest.fixture
def imbalanced_dataset():
    """Class 0 has 10 rows, class 1 has 1000; feature 0 is the row number."""
    classes = np.array([0] * 10 + [1] * 1000)
    features = np.column_stack([np.arange(len(classes)), np.ones(len(classes))])
    return Dataset.from_label_indices(features, classes, 2)


@pytest.fixture
def small_parms():
    """Small, fast forest settings."""
    return Parms(
        num_trees=20,
        num_features=2,
        leaf_limit=1,
        num_examples=100,
        max_depth=8,
    )


@pytest.fixture
def tabbed_file(tmp_path):
    """Write a small tab-delimited training file and return its path."""
    rng = np.random.default_rng(11)
    lines = ["id\tx0\tx1\tconst\tclass"]
    for i in range(120):
        x0 = rng.uniform(0, 1)
        x1 = rng.uniform(0, 1)
        label = "high" if x0 > 0.5 else "low"
        lines.append(f"row{i}\t{x0:.6f}\t{x1:.6f}\t1.0\t{label}")
    path = tmp_path / "train.tbl"
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path
