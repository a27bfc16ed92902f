"""Tab-delimited I/O for training sets and batch predictions."""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Iterator, Sequence, TextIO

import numpy as np
import pandas as pd  # type: ignore[import-untyped]

from decision_forest.config import FIELD_SEPARATOR, PREDICTION_BATCH_SIZE, PREDICTION_COLUMN
from decision_forest.data.dataset import Dataset
from decision_forest.utils import get_logger, validate_file_exists

logger = get_logger(__name__)


def validate_row_widths(path: Path | str) -> int:
    """Check that every data row has as many fields as the header.

    pandas pads short rows with empty strings when missing values are not
    converted, so the field counts are checked on the raw lines. Blank lines
    are skipped, as ``read_csv`` skips them.

    Returns:
        Number of header fields.
    """
    with open(path, encoding="utf-8") as handle:
        header = handle.readline().rstrip("\r\n")
        width = header.count(FIELD_SEPARATOR) + 1
        for line_no, line in enumerate(handle, start=2):
            line = line.rstrip("\r\n")
            if not line:
                continue
            fields = line.count(FIELD_SEPARATOR) + 1
            if fields < width:
                raise ValueError(
                    f"{path}: line {line_no} has fewer fields ({fields}) than the header ({width})"
                )
            if fields > width:
                raise ValueError(
                    f"{path}: line {line_no} has more fields ({fields}) than the header ({width})"
                )
    return width


def read_table(path: Path | str, **kwargs) -> pd.DataFrame | pd.io.parsers.TextFileReader:
    """Open a tab-delimited file after checking its row widths."""
    validate_file_exists(path, "Input file")
    validate_row_widths(path)
    try:
        return pd.read_csv(
            path,
            sep=FIELD_SEPARATOR,
            dtype=str,
            keep_default_na=False,
            quoting=csv.QUOTE_NONE,
            **kwargs,
        )
    except pd.errors.ParserError as exc:
        raise ValueError(f"Malformed row in {path}: {exc}") from exc


def _validate_columns(df: pd.DataFrame, required_columns: Sequence[str], path: Path | str) -> None:
    missing = [col for col in required_columns if col not in df.columns]
    if missing:
        raise ValueError(f"{path}: missing required columns: {missing}")


def _to_features(df: pd.DataFrame, columns: Sequence[str], path: Path | str) -> np.ndarray:
    try:
        return df.loc[:, list(columns)].astype(np.float64).to_numpy()
    except ValueError as exc:
        raise ValueError(f"{path}: non-numeric feature value: {exc}") from exc


def _sorted_labels(values: pd.Series) -> list[str]:
    return sorted(str(v) for v in values.unique())


def read_label_names(path: Path | str, label_col: str) -> list[str]:
    """Return the sorted distinct values of the label column."""
    df = read_table(path)
    _validate_columns(df, [label_col], path)
    return _sorted_labels(df[label_col])


def read_tabbed_dataset(
    path: Path | str,
    label_col: str,
    labels: Sequence[str] | None = None,
    meta_cols: Sequence[str] = (),
) -> tuple[Dataset, list[str], pd.DataFrame]:
    """Load a tab-delimited training or testing set.

    Every column that is neither the label column nor a metadata column is a
    feature column.

    Args:
        path: Input file with a header row.
        label_col: Name of the column holding the class label.
        labels: Ordered label names. Derived from the sorted distinct label
            values when omitted.
        meta_cols: Columns carried along but not used as features.

    Returns:
        Tuple of (dataset, feature column names, metadata frame).
    """
    df = read_table(path)
    _validate_columns(df, [label_col, *meta_cols], path)

    if labels is None:
        labels = _sorted_labels(df[label_col])
    label_map = {name: idx for idx, name in enumerate(labels)}
    unknown = sorted(set(df[label_col]) - set(label_map))
    if unknown:
        raise ValueError(f"{path}: label values not in label list: {unknown}")

    feature_cols = [c for c in df.columns if c != label_col and c not in meta_cols]
    features = _to_features(df, feature_cols, path)
    indices = df[label_col].map(label_map).to_numpy(dtype=np.intp)
    dataset = Dataset.from_label_indices(features, indices, len(labels))

    logger.info(
        "Loaded %d rows, %d features, %d labels from %s",
        dataset.num_examples,
        dataset.num_inputs,
        dataset.num_outcomes,
        path,
    )
    return dataset, feature_cols, df.loc[:, list(meta_cols)].reset_index(drop=True)


def iter_tabbed_batches(
    path: Path | str,
    meta_cols: Sequence[str],
    batch_size: int = PREDICTION_BATCH_SIZE,
    exclude_cols: Sequence[str] = (),
) -> Iterator[tuple[np.ndarray, pd.DataFrame]]:
    """Read a tab-delimited file in batches for prediction.

    Args:
        path: Input file with a header row.
        meta_cols: Metadata columns, returned separately from the features.
        batch_size: Rows per batch.
        exclude_cols: Extra columns that are neither metadata nor features.

    Yields:
        Tuples of (feature matrix, metadata frame) for each batch.
    """
    reader = read_table(path, chunksize=batch_size)
    with reader:
        try:
            for batch in reader:
                _validate_columns(batch, meta_cols, path)
                feature_cols = [
                    c for c in batch.columns if c not in meta_cols and c not in exclude_cols
                ]
                meta = batch.loc[:, list(meta_cols)].reset_index(drop=True)
                yield _to_features(batch, feature_cols, path), meta
        except pd.errors.ParserError as exc:
            raise ValueError(f"Malformed row in {path}: {exc}") from exc


def write_predictions(
    handle: TextIO,
    meta: pd.DataFrame,
    names: Sequence[str],
    header: bool,
) -> None:
    """Append metadata columns plus the predicted label name to an open file."""
    out = meta.copy()
    out[PREDICTION_COLUMN] = list(names)
    out.to_csv(handle, sep=FIELD_SEPARATOR, index=False, header=header, lineterminator="\n")
