#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Prediction Module for TreeLab
Routes observations from the root to a leaf and reads off the leaf value
"""

import logging
import math
from collections.abc import Mapping
from enum import Enum
from typing import Any, Optional, Union

import numpy as np
import pandas as pd

from models.errors import MissingFeatureError, TreeError, UnseenCategoryError
from models.node import ClassDistribution, TreeNode

logger = logging.getLogger(__name__)


class UnseenCategoryPolicy(Enum):
    """How to route a categorical value that a split never saw during training"""
    ERROR = "error"
    LEFT = "left"
    RIGHT = "right"
    MAJORITY = "majority"


def _resolve_policy(policy: Optional[Union[str, UnseenCategoryPolicy]]) -> UnseenCategoryPolicy:
    if policy is None:
        return UnseenCategoryPolicy.ERROR
    if isinstance(policy, UnseenCategoryPolicy):
        return policy
    try:
        return UnseenCategoryPolicy(str(policy).lower())
    except ValueError:
        valid = ", ".join(member.value for member in UnseenCategoryPolicy)
        raise TreeError(f"Unknown unseen category policy '{policy}', expected one of: {valid}")


def _is_missing(value: Any) -> bool:
    if value is None or value is pd.NA or value is pd.NaT:
        return True
    if isinstance(value, (float, np.floating)):
        return math.isnan(value)
    return False


def _feature_value(observation: Any, feature: str, feature_index: int, node_id: int) -> Any:
    """Look up a predictor by name in mappings and series, by position otherwise"""
    if isinstance(observation, (Mapping, pd.Series)):
        if feature not in observation:
            raise MissingFeatureError(feature, node_id)
        value = observation[feature]
    else:
        try:
            value = observation[feature_index]
        except (IndexError, KeyError, TypeError):
            raise MissingFeatureError(feature, node_id)

    if _is_missing(value):
        raise MissingFeatureError(feature, node_id)
    if isinstance(value, np.generic):
        value = value.item()
    return value


def apply(tree, observation: Any,
          unseen_category_policy: Optional[Union[str, UnseenCategoryPolicy]] = None) -> TreeNode:
    """
    Find the leaf an observation falls into

    Args:
        tree: Fitted tree
        observation: Mapping or Series keyed by feature name, or a positional sequence
        unseen_category_policy: Routing for categorical values unknown at a split

    Returns:
        Leaf node
    """
    policy = _resolve_policy(unseen_category_policy)
    node = tree.root
    while not node.is_leaf:
        split = node.split
        value = _feature_value(observation, split.feature, split.feature_index, node.node_id)

        try:
            goes_left = split.goes_left(value)
        except (TypeError, ValueError):
            raise TreeError(f"Value {value!r} of feature '{split.feature}' cannot be compared "
                            f"with threshold at node {node.node_id}")

        if goes_left is None:
            if policy is UnseenCategoryPolicy.ERROR:
                raise UnseenCategoryError(split.feature, value, node.node_id)
            if policy is UnseenCategoryPolicy.LEFT:
                goes_left = True
            elif policy is UnseenCategoryPolicy.RIGHT:
                goes_left = False
            else:
                goes_left = node.left.samples >= node.right.samples
            logger.debug(f"Unseen category {value!r} at node {node.node_id} routed "
                         f"{'left' if goes_left else 'right'} by policy {policy.value}")

        node = node.left if goes_left else node.right
    return node


def predict(tree, observation: Any,
            unseen_category_policy: Optional[Union[str, UnseenCategoryPolicy]] = None) -> Any:
    """Mean response (regression) or majority class (classification) of the observation's leaf"""
    return apply(tree, observation, unseen_category_policy).value.prediction


def predict_proba(tree, observation: Any,
                  unseen_category_policy: Optional[Union[str, UnseenCategoryPolicy]] = None) -> np.ndarray:
    """
    Class proportions of the observation's leaf

    Returns:
        Array aligned with ``tree.classes``
    """
    if not tree.classes:
        raise TreeError("Class probabilities are only available for classification trees")
    value = apply(tree, observation, unseen_category_policy).value
    if not isinstance(value, ClassDistribution):
        raise TreeError("Leaf does not hold a class distribution")
    return np.asarray(value.proportions, dtype=np.float64)


def predict_frame(tree, X: pd.DataFrame,
                  unseen_category_policy: Optional[Union[str, UnseenCategoryPolicy]] = None) -> np.ndarray:
    """
    Predict every row of a DataFrame

    Args:
        tree: Fitted tree
        X: Rows to predict, with columns named after the tree's features
        unseen_category_policy: Routing for categorical values unknown at a split

    Returns:
        Array of predictions in row order
    """
    policy = _resolve_policy(unseen_category_policy)
    predictions = [predict(tree, row, policy) for _, row in X.iterrows()]
    if tree.classes:
        return np.array(predictions, dtype=object)
    return np.array(predictions, dtype=np.float64)


def predict_proba_frame(tree, X: pd.DataFrame,
                        unseen_category_policy: Optional[Union[str, UnseenCategoryPolicy]] = None) -> pd.DataFrame:
    """
    Class proportions for every row of a DataFrame

    Returns:
        DataFrame indexed like X with one column per class
    """
    policy = _resolve_policy(unseen_category_policy)
    rows = [predict_proba(tree, row, policy) for _, row in X.iterrows()]
    return pd.DataFrame(np.vstack(rows) if rows else np.empty((0, len(tree.classes))),
                        index=X.index, columns=list(tree.classes))
