"""
Content loading for the simulator.

Reads the face table and saved pipelines from JSON files on disk.
"""

import json
from collections.abc import Iterable
from importlib import resources
from pathlib import Path
from typing import Any

from dicesim.core.constants import CANONICAL_COLORS
from dicesim.core.error_handling import FaceTableError
from dicesim.core.logging import log_debug
from dicesim.dice.faces import FaceTable
from dicesim.pipeline.pipeline import Pipeline
from dicesim.pipeline.serialization import PipelineSerializer

DEFAULT_FACES_RESOURCE = "warcrow_dice_faces.json"


def load_face_table(
    path: Path | str,
    required_colors: Iterable[str] = CANONICAL_COLORS,
) -> FaceTable:
    """
    Loads and validates a face table from a JSON file.

    Args:
        path (Path | str): The JSON file mapping colors to their eight faces.
        required_colors (Iterable[str]): Colors that must be present.

    Returns:
        FaceTable: The validated table.

    Raises:
        FaceTableError: If the file cannot be read or fails validation.

    """
    try:
        data = _load_json_file(Path(path), dict, "face table")
    except ValueError as e:
        raise FaceTableError(str(e)) from e
    return FaceTable.from_dict(data, required_colors)


def load_default_face_table() -> FaceTable:
    """Loads the face table bundled with the package."""
    source = resources.files("dicesim.data").joinpath(DEFAULT_FACES_RESOURCE)
    try:
        data = json.loads(source.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise FaceTableError(f"Bundled face table is unreadable: {e}") from e
    return FaceTable.from_dict(data)


def load_pipeline_file(path: Path | str) -> Pipeline:
    """
    Loads a pipeline saved as a JSON list of serialized steps.

    Args:
        path (Path | str): The JSON file.

    Returns:
        Pipeline: The pipeline. Unrecognized steps are dropped.

    Raises:
        ValueError: If the file cannot be read or is not a list.

    """
    data = _load_json_file(Path(path), list, "pipeline")
    return PipelineSerializer.deserialize(data)


def save_pipeline_file(pipeline: Pipeline, path: Path | str) -> None:
    """Writes a pipeline as a JSON list of serialized steps."""
    with open(path, "w", encoding="utf-8") as f:
        json.dump(PipelineSerializer.serialize(pipeline), f, indent=2)


def _load_json_file(
    filepath: Path,
    expected_type: type,
    description: str,
) -> Any:
    """Helper to load and validate JSON files"""
    log_debug(f"Loading {description}", {"path": str(filepath)})
    try:
        if not filepath.exists():
            raise FileNotFoundError(f"File not found: {filepath}")
        if not filepath.is_file():
            raise ValueError(f"Not a file: {filepath}")
        with open(filepath, encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, expected_type):
            raise ValueError(
                f"Expected {expected_type.__name__} in {filepath}, got {type(data).__name__}"
            )
        return data
    except (json.JSONDecodeError, FileNotFoundError, ValueError) as e:
        raise ValueError(f"File {filepath} raised an error: {e}") from e
