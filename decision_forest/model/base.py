"""Base model interface for all models."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, BinaryIO, TypeVar

import numpy as np

from decision_forest.model.persistence import dump_payload, load_payload, wrap_payload
from decision_forest.utils import get_logger

logger = get_logger(__name__)

M = TypeVar("M", bound="BaseModel")


class BaseModel(ABC):
    """
    Base interface for the models of this package.

    Every model implements:
    - predict(X): compute the class tally of each row
    - _to_fields() / _from_fields(): explicit encoding for persistence
    """

    #: Fields a saved model must contain
    REQUIRED_FIELDS: tuple[str, ...] = ()

    def __init__(self, name: str) -> None:
        """
        Initialize the model.

        Parameters
        ----------
        name : str
            Model name.
        """
        self.name = name
        self.is_fitted = False

    @abstractmethod
    def predict(self, X: np.ndarray) -> np.ndarray:
        """
        Compute predictions for new data.

        Parameters
        ----------
        X : np.ndarray
            Feature rows.

        Returns
        -------
        np.ndarray
            Predictions.
        """

    @abstractmethod
    def _to_fields(self) -> dict[str, Any]:
        """Return the persistent state of the model."""

    @classmethod
    @abstractmethod
    def _from_fields(cls: type[M], fields: dict[str, Any]) -> M:
        """Rebuild a model from its persistent state."""

    def save(self, path: Path | str) -> None:
        """
        Save the model to disk.

        Parameters
        ----------
        path : Path | str
            Destination file.
        """
        if not self.is_fitted:
            raise ValueError("Cannot save an unfitted model.")
        dump_payload(wrap_payload(self._to_fields()), path)
        logger.info("Model saved to %s", path)

    def dump(self, stream: BinaryIO) -> None:
        """Write the model to an open binary stream."""
        if not self.is_fitted:
            raise ValueError("Cannot save an unfitted model.")
        dump_payload(wrap_payload(self._to_fields()), stream)

    @classmethod
    def load(cls: type[M], path: Path | str) -> M:
        """
        Load a model from disk.

        Parameters
        ----------
        path : Path | str
            Saved model file.

        Returns
        -------
        BaseModel
            The loaded model.
        """
        return cls._from_fields(load_payload(path, cls.REQUIRED_FIELDS))

    @classmethod
    def load_stream(cls: type[M], stream: BinaryIO) -> M:
        """Read a model from an open binary stream."""
        return cls._from_fields(load_payload(stream, cls.REQUIRED_FIELDS))

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name='{self.name}', fitted={self.is_fitted})"
