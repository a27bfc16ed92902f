"""Versioned model file format.

A saved model is a joblib dump of a plain dict:

    {
        "format": MODEL_FORMAT_NAME,
        "version": MODEL_FORMAT_VERSION,
        ...model fields...
    }

Loading checks the format name and version before any model field is read,
so a file written by another program or another format version is rejected
with ``ModelFormatError``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, BinaryIO

import joblib  # type: ignore

from decision_forest.config import MODEL_FORMAT_NAME, MODEL_FORMAT_VERSION
from decision_forest.utils import ensure_output_dir, get_logger, validate_file_exists

logger = get_logger(__name__)


class ModelFormatError(ValueError):
    """Raised when a model file is corrupt or was written in another format."""


def wrap_payload(fields: dict[str, Any]) -> dict[str, Any]:
    """Tag model fields with the format name and version."""
    return {"format": MODEL_FORMAT_NAME, "version": MODEL_FORMAT_VERSION, **fields}


def check_payload(payload: Any, required: tuple[str, ...], source: str) -> dict[str, Any]:
    """Validate a loaded payload and return it.

    Args:
        payload: Object read from the model file.
        required: Model fields that must be present.
        source: Description of the file for error messages.

    Returns:
        The payload dict.
    """
    if not isinstance(payload, dict) or payload.get("format") != MODEL_FORMAT_NAME:
        raise ModelFormatError(f"Invalid format for {source}: not a {MODEL_FORMAT_NAME} model")
    version = payload.get("version")
    if version != MODEL_FORMAT_VERSION:
        raise ModelFormatError(
            f"Invalid format for {source}: version {version}, expected {MODEL_FORMAT_VERSION}"
        )
    missing = [key for key in required if key not in payload]
    if missing:
        raise ModelFormatError(f"Invalid format for {source}: missing fields {missing}")
    return payload


def dump_payload(payload: dict[str, Any], target: Path | str | BinaryIO) -> None:
    """Write a payload to a path or an open binary stream."""
    if isinstance(target, (str, Path)):
        ensure_output_dir(target)
    joblib.dump(payload, target)


def load_payload(source: Path | str | BinaryIO, required: tuple[str, ...]) -> dict[str, Any]:
    """Read and validate a payload from a path or an open binary stream.

    Raises:
        FileNotFoundError: If a path is given and does not exist.
        ModelFormatError: If the content is not a model of this format.
    """
    if isinstance(source, (str, Path)):
        validate_file_exists(source, "Model file")
        name = str(source)
    else:
        name = getattr(source, "name", "model stream")
    try:
        payload = joblib.load(source)
    except Exception as exc:
        # truncated or foreign blobs fail inside pickle, zlib, struct or numpy
        raise ModelFormatError(f"Invalid format for {name}: {exc}") from exc
    return check_payload(payload, required, name)
