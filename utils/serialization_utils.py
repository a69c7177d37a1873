#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Serialization Utilities for TreeLab

Converts tree reports containing numpy scalars, pandas objects, enums and
category sets into JSON-compatible structures.
"""

import json
import logging
from enum import Enum
from pathlib import Path
from typing import Any, Union

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)


def make_json_serializable(obj: Any) -> Any:
    """
    Convert objects to JSON-serializable formats.

    This function recursively processes objects so that numpy types, pandas
    objects, enums and sets become their JSON-compatible equivalents.

    Args:
        obj: Object to make JSON serializable

    Returns:
        JSON-serializable version of the object
    """
    if obj is None:
        return None

    if isinstance(obj, (bool, int, float, str)):
        return obj

    if isinstance(obj, np.integer):
        return int(obj)
    elif isinstance(obj, np.floating):
        return float(obj)
    elif isinstance(obj, np.bool_):
        return bool(obj)
    elif isinstance(obj, np.ndarray):
        return [make_json_serializable(item) for item in obj.tolist()]

    elif isinstance(obj, Enum):
        return make_json_serializable(obj.value)

    elif isinstance(obj, Path):
        return str(obj)

    elif isinstance(obj, pd.Series):
        return make_json_serializable(obj.to_dict())

    elif isinstance(obj, pd.DataFrame):
        return make_json_serializable(obj.to_dict('records'))

    elif isinstance(obj, dict):
        return {_json_key(k): make_json_serializable(v) for k, v in obj.items()}

    elif isinstance(obj, (list, tuple)):
        return [make_json_serializable(item) for item in obj]

    elif isinstance(obj, (set, frozenset)):
        items = [make_json_serializable(item) for item in obj]
        try:
            return sorted(items)
        except TypeError:
            return sorted(items, key=str)

    else:
        logger.debug(f"Serializing object of type {type(obj).__name__} as a string")
        return str(obj)


def _json_key(key: Any) -> Union[str, int, float, bool, None]:
    key = make_json_serializable(key)
    if isinstance(key, (str, int, float, bool)) or key is None:
        return key
    return str(key)


def safe_json_dump(obj: Any, file_path: Union[str, Path], indent: int = 2) -> bool:
    """
    Safely dump an object to JSON file with proper error handling.

    Args:
        obj: Object to serialize
        file_path: Path to output file
        indent: JSON indentation

    Returns:
        True if successful, False otherwise
    """
    try:
        serializable_obj = make_json_serializable(obj)

        Path(file_path).parent.mkdir(parents=True, exist_ok=True)
        with open(file_path, 'w', encoding='utf-8') as f:
            json.dump(serializable_obj, f, indent=indent, ensure_ascii=False)

        logger.info(f"Wrote JSON to {file_path}")
        return True

    except (OSError, TypeError, ValueError) as e:
        logger.error(f"Error writing JSON to {file_path}: {e}")
        return False
