"""Label-distributed rewriting of tab-delimited files.

A distributed writer buffers every data row in memory and, when closed,
writes them back out so that the values of one label column are spread as
evenly as possible through the file. Downstream readers that take the first
rows for testing, or read the file in batches, then see every class in
every part of the file.

Discrete labels are grouped by value. Continuous (regression) labels are
sorted and cut into ten groups of similar size.

Balancing limits every group to ``ceil(balanced * smallest)`` rows, where
``smallest`` is the size of the smallest group: 2.0 allows each group to be
twice the smallest, 0.5 half of it, and 0 disables the limit.

Example:
    >>> with open_distributed("out.tbl", "class", headers, seed=42) as writer:
    ...     for fields in rows:
    ...         writer.write(fields)
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Sequence

import numpy as np
import pandas as pd  # type: ignore[import-untyped]

from decision_forest.config import CONTINUOUS_LABEL_GROUPS, FIELD_SEPARATOR
from decision_forest.data.io import read_table
from decision_forest.utils import ensure_output_dir, get_logger

logger = get_logger(__name__)


class DistributedWriter(ABC):
    """Buffer tab-delimited rows and write them out with the label groups interleaved.

    Args:
        out_file: File to receive the output (written on ``close``).
        label: Name of the label column.
        headers: Column names of the header row.
        balanced: Maximum group size as a multiple of the smallest group, or 0.
        seed: Seed for the within-group shuffle.
    """

    def __init__(
        self,
        out_file: Path | str,
        label: str,
        headers: Sequence[str],
        balanced: float = 0.0,
        seed: int | None = None,
    ) -> None:
        headers = [str(h) for h in headers]
        if label not in headers:
            raise ValueError(f'Label column "{label}" not found in headers')
        self.out_file = Path(out_file)
        self.label_idx = headers.index(label)
        self.header = FIELD_SEPARATOR.join(headers)
        self.width = len(headers)
        self.balanced = balanced
        self.output_count = 0
        self.written_count = 0
        self._rng = np.random.default_rng(seed)
        self._closed = False

    def write(self, fields: Sequence[str]) -> None:
        """Queue one data row."""
        if len(fields) != self.width:
            first = fields[0] if len(fields) else ""
            raise ValueError(
                f"Incorrect number of fields ({len(fields)}, expected {self.width}) "
                f"in input line beginning with {first}"
            )
        line = FIELD_SEPARATOR.join(str(f) for f in fields)
        self._add(str(fields[self.label_idx]), line)
        self.output_count += 1

    @abstractmethod
    def _add(self, label: str, line: str) -> None:
        """Buffer a joined line under its label value."""

    @abstractmethod
    def _groups(self) -> list[list[str]]:
        """Return the buffered lines, one list per label group."""

    def ordered_lines(self) -> list[str]:
        """Return the data lines in output order."""
        groups = [self._shuffled(group) for group in self._groups() if group]
        if not groups:
            return []
        groups = _by_size(groups)
        if self.balanced > 0.0:
            limit = math.ceil(len(groups[-1]) * self.balanced)
            groups = _by_size([group[:limit] for group in groups[:-1]] + [groups[-1]])

        # One slot per row of the smallest group; the other groups are dealt
        # round-robin into the slots.
        smallest = groups[-1]
        slots = [[line] for line in smallest]
        for group in groups[:-1]:
            for i, line in enumerate(group):
                slots[i % len(slots)].append(line)
        return [line for slot in slots for line in slot]

    def _shuffled(self, group: list[str]) -> list[str]:
        return [group[i] for i in self._rng.permutation(len(group))]

    def close(self) -> None:
        """Write the header and every buffered row to the output file."""
        if self._closed:
            return
        self._closed = True
        lines = self.ordered_lines()
        self.written_count = len(lines)
        ensure_output_dir(self.out_file)
        with open(self.out_file, "w", encoding="utf-8", newline="") as handle:
            handle.write(self.header + "\n")
            for line in lines:
                handle.write(line + "\n")
        logger.info(
            "Wrote %d of %d buffered rows to %s", len(lines), self.output_count, self.out_file
        )

    def __enter__(self) -> "DistributedWriter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        # Nothing is written when the with-block failed.
        if exc_type is None:
            self.close()


def _by_size(groups: list[list[str]]) -> list[list[str]]:
    """Sort groups from largest to smallest, ties broken by their lines."""
    return sorted(groups, key=lambda group: (-len(group), group))


class DiscreteWriter(DistributedWriter):
    """Distributes rows by the exact value of a class label."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._buffer: dict[str, list[str]] = {}

    def _add(self, label: str, line: str) -> None:
        self._buffer.setdefault(label, []).append(line)

    def _groups(self) -> list[list[str]]:
        return list(self._buffer.values())


class ContinuousWriter(DistributedWriter):
    """Distributes rows by ranges of a numeric label."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._buffer: dict[float, list[str]] = {}

    def _add(self, label: str, line: str) -> None:
        try:
            value = float(label)
        except ValueError as exc:
            raise ValueError(f"Non-numeric label value {label!r} for a continuous label") from exc
        self._buffer.setdefault(value, []).append(line)

    def _groups(self) -> list[list[str]]:
        """Merge the label values, in ascending order, into groups of similar size.

        A group is closed once it reaches ``total // CONTINUOUS_LABEL_GROUPS + 1``
        rows; rows sharing a label value always stay in one group.
        """
        size = self.output_count // CONTINUOUS_LABEL_GROUPS + 1
        groups: list[list[str]] = [[]]
        for value in sorted(self._buffer):
            if len(groups[-1]) >= size:
                groups.append([])
            groups[-1].extend(self._buffer[value])
        return groups


def open_distributed(
    out_file: Path | str,
    label: str,
    headers: Sequence[str],
    continuous: bool = False,
    balanced: float = 0.0,
    seed: int | None = None,
) -> DistributedWriter:
    """Create the writer for a discrete or continuous label column."""
    writer_cls = ContinuousWriter if continuous else DiscreteWriter
    return writer_cls(out_file, label, headers, balanced=balanced, seed=seed)


def distribute_file(
    in_file: Path | str,
    out_file: Path | str,
    label: str,
    continuous: bool = False,
    balanced: float = 0.0,
    seed: int | None = None,
) -> int:
    """Rewrite a tab-delimited file with its label values distributed.

    Args:
        in_file: Input file with a header row.
        out_file: Output file.
        label: Name of the label column.
        continuous: True for a numeric (regression) label.
        balanced: Maximum group size as a multiple of the smallest group, or 0.
        seed: Seed for the within-group shuffle.

    Returns:
        Number of data rows written.
    """
    df: pd.DataFrame = read_table(in_file)
    writer = open_distributed(out_file, label, list(df.columns), continuous, balanced, seed)
    with writer:
        for fields in df.itertuples(index=False, name=None):
            writer.write(fields)
    return writer.written_count
