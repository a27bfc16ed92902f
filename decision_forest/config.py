"""Configuration for the random forest package.

This module centralizes the package parameters:
- Parallelization settings (n_jobs, backend)
- Hyperparameter defaults
- Model file format tags
- Tabular I/O settings
"""

from __future__ import annotations

import os

import numpy as np

# ============================================================================
# PARALLELIZATION SETTINGS
# ============================================================================

# Number of parallel jobs (-1 = all cores)
N_JOBS: int = -1 if os.cpu_count() else 1

# Backend for joblib parallelization. Trees share the training set and the
# progress lock, so workers must be threads.
JOBLIB_BACKEND: str = "threading"

# Verbosity level for joblib (0=silent, 10=verbose)
JOBLIB_VERBOSITY: int = 0

# ============================================================================
# HYPERPARAMETER DEFAULTS
# ============================================================================

DEFAULT_NUM_TREES: int = 50
DEFAULT_NUM_FEATURES: int = 10
DEFAULT_LEAF_LIMIT: int = 1
DEFAULT_NUM_EXAMPLES: int = 1000
DEFAULT_MAX_DEPTH: int = 50

# Fraction of the training rows used for each tree when derived from shape
EXAMPLES_DIVISOR: int = 5

# ============================================================================
# RANDOMIZATION
# ============================================================================

# Exclusive upper bound for per-tree seeds drawn from the top-level generator
SEED_BOUND: int = int(np.iinfo(np.int64).max)

# Added to the processor seed so feature selection does not reuse the
# example-selection stream
FEATURE_SEED_OFFSET: int = 3719

# ============================================================================
# MODEL FILE FORMAT
# ============================================================================

MODEL_FORMAT_NAME: str = "decision_forest.RandomForest"
MODEL_FORMAT_VERSION: int = 1

# ============================================================================
# TABULAR I/O
# ============================================================================

FIELD_SEPARATOR: str = "\t"
PREDICTION_COLUMN: str = "predicted"
PREDICTION_BATCH_SIZE: int = 1000

# Number of value ranges a continuous label is cut into for distribution
CONTINUOUS_LABEL_GROUPS: int = 10
