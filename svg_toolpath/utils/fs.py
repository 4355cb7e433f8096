"""YAML helpers for the settings loader.

The conversion core never touches the filesystem; only
``configs.loader`` reads settings, through these two functions.
Both use PyYAML ``safe_load``.
"""

from pathlib import Path
from typing import Any, Union

import yaml


def load_yaml(path: Union[str, Path]) -> Any:
    """Parse a settings file; an empty file gives ``None``.

    Raises ``FileNotFoundError`` for a missing file and ``yaml.YAMLError``
    naming the file when it does not parse.
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Settings file not found: {path}")
    text = path.read_text(encoding="utf-8")
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise yaml.YAMLError(f"{path}: {exc}") from exc


def load_yaml_text(text: str) -> Any:
    """Parse settings held in memory."""
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise yaml.YAMLError(f"<text>: {exc}") from exc
