"""Datasets, tab-delimited I/O and label-distributed file rewriting."""

from __future__ import annotations

from decision_forest.data.dataset import Dataset, flatten_features
from decision_forest.data.distributed import (
    ContinuousWriter,
    DiscreteWriter,
    DistributedWriter,
    distribute_file,
    open_distributed,
)
from decision_forest.data.io import (
    iter_tabbed_batches,
    read_label_names,
    read_table,
    read_tabbed_dataset,
    validate_row_widths,
    write_predictions,
)

__all__ = [
    "ContinuousWriter",
    "Dataset",
    "DiscreteWriter",
    "DistributedWriter",
    "distribute_file",
    "flatten_features",
    "iter_tabbed_batches",
    "open_distributed",
    "read_label_names",
    "read_table",
    "read_tabbed_dataset",
    "validate_row_widths",
    "write_predictions",
]
