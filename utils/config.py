#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Configuration Module for TreeLab
Handles loading, validating, and saving application configuration
"""

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

from models.decision_tree import TreeBuilderConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = {
    "application": {
        "name": "TreeLab",
        "version": "1.0.0",
        "log_dir": "logs"
    },

    "decision_tree": {
        "criterion": None,  # None = "sse" for regression, "gini" for classification
        "min_samples_leaf": 5,  # float in (0, 1) = fraction of training rows
        "min_samples_split": 2,
        "min_impurity_decrease": 0.0,
        "max_depth": None,  # None = unlimited
        "candidate_features": None,  # None = all features
        "max_categories_exhaustive": 10,
        "n_jobs": 1
    },

    "pruning": {
        "measure": "impurity",  # Options: "impurity", "misclassification"
        "size": None,
        "alpha": None
    },

    "prediction": {
        "unseen_category_policy": "error"  # Options: "error", "left", "right", "majority"
    },

    "cross_validation": {
        "n_folds": 10,
        "seed": 1,
        "stratified": True,
        "sizes": None,  # None = every size up to the full tree
        "n_jobs": 1
    },

    "logging": {
        "level": "INFO",
        "console": True
    }
}

VALID_CRITERIA = [None, 'sse', 'gini', 'entropy', 'information_gain', 'misclassification']
VALID_MEASURES = ['impurity', 'misclassification']
VALID_POLICIES = ['error', 'left', 'right', 'majority']
VALID_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']


def get_config_path() -> Path:
    """
    Get the path to the configuration file

    Returns:
        Path to the configuration file
    """
    script_dir = Path(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

    config_path = script_dir / "config.json"

    return config_path


def load_configuration(path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """
    Load configuration from file, falling back to defaults if not found

    Args:
        path: Configuration file (default: config.json in the app directory)

    Returns:
        Configuration dictionary
    """
    config_path = Path(path) if path is not None else get_config_path()

    try:
        if config_path.exists():
            logger.info(f"Loading configuration from {config_path}")

            with open(config_path, 'r') as f:
                user_config = json.load(f)

            config = merge_configs(DEFAULT_CONFIG, user_config)

            logger.info("Configuration loaded successfully")
        else:
            logger.info("No configuration file found, using defaults")
            config = copy.deepcopy(DEFAULT_CONFIG)

            save_configuration(config, config_path)

        validate_configuration(config)

        return config

    except Exception as e:
        logger.error(f"Error loading configuration: {str(e)}", exc_info=True)
        logger.warning("Falling back to default configuration")
        return copy.deepcopy(DEFAULT_CONFIG)


def save_configuration(config: Dict[str, Any], path: Optional[Union[str, Path]] = None) -> bool:
    """
    Save configuration to file

    Args:
        config: Configuration dictionary
        path: Destination file (default: config.json in the app directory)

    Returns:
        True if saved successfully, False otherwise
    """
    config_path = Path(path) if path is not None else get_config_path()

    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, 'w') as f:
            json.dump(config, f, indent=4)

        logger.info(f"Configuration saved to {config_path}")
        return True

    except Exception as e:
        logger.error(f"Error saving configuration: {str(e)}", exc_info=True)
        return False


def merge_configs(default_config: Dict[str, Any], user_config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Recursively merge user configuration with defaults

    Args:
        default_config: Default configuration dictionary
        user_config: User configuration dictionary

    Returns:
        Merged configuration dictionary
    """
    merged = copy.deepcopy(default_config)

    for key, value in user_config.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = merge_configs(merged[key], value)
        else:
            merged[key] = value

    return merged


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_configuration(config: Dict[str, Any]) -> bool:
    """
    Validate configuration values and log warnings for invalid settings

    Invalid values are reset to their defaults.

    Args:
        config: Configuration dictionary

    Returns:
        True if all values are valid, False otherwise
    """
    valid = True

    dt_config = config.setdefault('decision_tree', {})
    dt_defaults = DEFAULT_CONFIG['decision_tree']

    criterion = dt_config.get('criterion')
    if criterion not in VALID_CRITERIA:
        logger.warning(f"Invalid criterion: {criterion}, using the task default instead")
        dt_config['criterion'] = None
        valid = False

    leaf = dt_config.get('min_samples_leaf')
    if not _is_number(leaf) or leaf <= 0 or (isinstance(leaf, float) and leaf > 1 and not leaf.is_integer()):
        logger.warning(f"Invalid min_samples_leaf: {leaf}, using {dt_defaults['min_samples_leaf']} instead")
        dt_config['min_samples_leaf'] = dt_defaults['min_samples_leaf']
        valid = False

    for param, min_val in [
        ('min_samples_split', 2),
        ('min_impurity_decrease', 0.0),
        ('max_categories_exhaustive', 1)
    ]:
        value = dt_config.get(param)
        if not _is_number(value) or value < min_val:
            logger.warning(f"Invalid {param}: {value}, using {dt_defaults[param]} instead")
            dt_config[param] = dt_defaults[param]
            valid = False

    max_depth = dt_config.get('max_depth')
    if max_depth is not None and (not isinstance(max_depth, int) or isinstance(max_depth, bool) or max_depth < 0):
        logger.warning(f"Invalid max_depth: {max_depth}, using no depth limit instead")
        dt_config['max_depth'] = None
        valid = False

    n_jobs = dt_config.get('n_jobs')
    if not isinstance(n_jobs, int) or isinstance(n_jobs, bool) or n_jobs == 0:
        logger.warning(f"Invalid n_jobs: {n_jobs}, using 1 instead")
        dt_config['n_jobs'] = 1
        valid = False

    pruning_config = config.setdefault('pruning', {})

    if pruning_config.get('measure') not in VALID_MEASURES:
        logger.warning(f"Invalid pruning measure: {pruning_config.get('measure')}, using 'impurity' instead")
        pruning_config['measure'] = 'impurity'
        valid = False

    size = pruning_config.get('size')
    if size is not None and (not isinstance(size, int) or isinstance(size, bool) or size < 1):
        logger.warning(f"Invalid pruning size: {size}, pruning disabled")
        pruning_config['size'] = None
        valid = False

    alpha = pruning_config.get('alpha')
    if alpha is not None and (not _is_number(alpha) or alpha < 0):
        logger.warning(f"Invalid pruning alpha: {alpha}, pruning disabled")
        pruning_config['alpha'] = None
        valid = False

    prediction_config = config.setdefault('prediction', {})

    if prediction_config.get('unseen_category_policy') not in VALID_POLICIES:
        logger.warning(f"Invalid unseen category policy: {prediction_config.get('unseen_category_policy')}, "
                       f"using 'error' instead")
        prediction_config['unseen_category_policy'] = 'error'
        valid = False

    cv_config = config.setdefault('cross_validation', {})
    cv_defaults = DEFAULT_CONFIG['cross_validation']

    for param, min_val in [
        ('n_folds', 2),
        ('seed', 0)
    ]:
        value = cv_config.get(param)
        if not isinstance(value, int) or isinstance(value, bool) or value < min_val:
            logger.warning(f"Invalid cross_validation.{param}: {value}, using {cv_defaults[param]} instead")
            cv_config[param] = cv_defaults[param]
            valid = False

    sizes = cv_config.get('sizes')
    if sizes is not None and (not isinstance(sizes, list)
                              or not all(isinstance(s, int) and s >= 1 for s in sizes)):
        logger.warning(f"Invalid cross_validation.sizes: {sizes}, using every size instead")
        cv_config['sizes'] = None
        valid = False

    logging_config = config.setdefault('logging', {})

    level = logging_config.get('level')
    if not isinstance(level, str) or level.upper() not in VALID_LEVELS:
        logger.warning(f"Invalid logging level: {level}, using 'INFO' instead")
        logging_config['level'] = 'INFO'
        valid = False

    return valid


def get_config_value(config: Dict[str, Any], key_path: str, default: Any = None) -> Any:
    """
    Get a configuration value using dot notation for nested dictionaries

    Args:
        config: Configuration dictionary
        key_path: Key path using dot notation (e.g., 'decision_tree.max_depth')
        default: Default value if key not found

    Returns:
        Configuration value or default if not found
    """
    keys = key_path.split('.')
    value = config

    try:
        for key in keys:
            value = value[key]
        return value
    except (KeyError, TypeError):
        return default


def set_config_value(config: Dict[str, Any], key_path: str, value: Any) -> bool:
    """
    Set a configuration value using dot notation for nested dictionaries

    Args:
        config: Configuration dictionary
        key_path: Key path using dot notation (e.g., 'decision_tree.max_depth')
        value: Value to set

    Returns:
        True if successful, False otherwise
    """
    keys = key_path.split('.')
    target = config

    try:
        for key in keys[:-1]:
            if key not in target or not isinstance(target[key], dict):
                target[key] = {}
            target = target[key]

        target[keys[-1]] = value
        return True
    except Exception as e:
        logger.error(f"Error setting config value {key_path}: {str(e)}")
        return False


def builder_config_from_config(config: Dict[str, Any]) -> TreeBuilderConfig:
    """
    Build tree growth parameters from the decision_tree section

    Args:
        config: Configuration dictionary

    Returns:
        TreeBuilderConfig
    """
    return TreeBuilderConfig.from_dict(dict(config.get('decision_tree', {})))
