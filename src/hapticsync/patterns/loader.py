import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Union

import yaml

from ..common.exceptions import ConfigurationError, ExpressionError, ValidationError
from .base import Mode, Sequence
from .expressions import compile_expression
from .registry import ModeRegistry

logger = logging.getLogger(__name__)


def build_custom_mode(mode_id: str, data: Dict[str, Any]) -> Mode:
    """Build a mode from its plain mapping form.

    Patterns are expression strings compiled by the sandboxed evaluator.
    Patterns or sequences that fail to compile are skipped with a warning.
    """
    if not isinstance(data, dict):
        raise ValidationError(f"Custom mode '{mode_id}' must be a mapping")

    patterns = {}
    for name, source in (data.get("patterns") or {}).items():
        try:
            patterns[str(name).lower()] = compile_expression(source)
        except ExpressionError as e:
            logger.warning(f"Skipping pattern '{name}' of mode '{mode_id}': {e}")

    sequences = {}
    for name, raw in (data.get("sequences") or {}).items():
        try:
            sequences[str(name).lower()] = Sequence.from_dict(str(name).lower(), raw)
        except (ValidationError, TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Skipping sequence '{name}' of mode '{mode_id}': {e}")

    ui = data.get("ui") or {}
    multiplier = data.get("intensity_multiplier", data.get("intensityMultiplier", 1.0))
    return Mode(
        mode_id=mode_id,
        name=str(data.get("name", mode_id)),
        description=str(data.get("description", "")),
        patterns=patterns,
        sequences=sequences,
        default_enabled=bool(
            data.get("default_enabled", ui.get("defaultEnabled", False))
        ),
        intensity_multiplier=float(multiplier),
        builtin=False,
    )


def read_custom_modes(path: Union[str, Path]) -> Dict[str, Any]:
    """Read the raw custom mode mapping from a YAML or JSON file"""
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            if path.suffix.lower() == ".json":
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Failed to read custom modes {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Custom modes file {path} must contain a mapping")
    return data


def load_custom_modes(registry: ModeRegistry, path: Union[str, Path]) -> List[str]:
    """Register every custom mode in a file, returning the ids that loaded"""
    loaded = []
    for mode_id, data in read_custom_modes(path).items():
        mode_id = str(mode_id).lower()
        try:
            mode = build_custom_mode(mode_id, data)
        except (ValidationError, TypeError, ValueError) as e:
            logger.warning(f"Skipping custom mode '{mode_id}': {e}")
            continue
        if registry.register(mode):
            loaded.append(mode_id)

    if loaded:
        logger.info(f"Loaded {len(loaded)} custom modes from {path}")
    return loaded
