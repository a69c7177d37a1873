#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Performance Metrics Module for TreeLab
Test-error measures for regression and classification trees
"""

import logging
from typing import Any, Dict, Optional

import numpy as np
import pandas as pd
from sklearn.metrics import accuracy_score
from sklearn.metrics import mean_squared_error as sklearn_mean_squared_error

from models.prediction import predict_frame

logger = logging.getLogger(__name__)


def mean_squared_error(y_true, y_pred) -> float:
    """Mean squared prediction error"""
    y_true = np.asarray(y_true, dtype=np.float64)
    y_pred = np.asarray(y_pred, dtype=np.float64)
    if len(y_true) == 0:
        raise ValueError("Cannot compute an error on an empty sample")
    return float(sklearn_mean_squared_error(y_true, y_pred))


def misclassification_rate(y_true, y_pred) -> float:
    """Fraction of observations whose predicted class differs from the true class"""
    y_true = np.asarray(y_true, dtype=object)
    y_pred = np.asarray(y_pred, dtype=object)
    if len(y_true) == 0:
        raise ValueError("Cannot compute an error on an empty sample")
    return float(1.0 - accuracy_score(y_true, y_pred))


def tree_error(tree, X: pd.DataFrame, y: pd.Series,
               unseen_category_policy: Optional[str] = None) -> float:
    """
    Test error of a tree on a sample

    Args:
        tree: Fitted tree
        X: Predictors
        y: True response
        unseen_category_policy: Routing for categorical values unknown at a split

    Returns:
        Mean squared error (regression) or misclassification rate (classification)
    """
    predictions = predict_frame(tree, X, unseen_category_policy)
    if tree.classes:
        return misclassification_rate(y.to_numpy(dtype=object), predictions)
    return mean_squared_error(y.to_numpy(dtype=np.float64), predictions)


def evaluate_tree(tree, X: pd.DataFrame, y: pd.Series,
                  unseen_category_policy: Optional[str] = None) -> Dict[str, Any]:
    """
    Summary metrics of a tree on a sample

    Args:
        tree: Fitted tree
        X: Predictors
        y: True response
        unseen_category_policy: Routing for categorical values unknown at a split

    Returns:
        Dictionary of metrics including the tree's size
    """
    try:
        predictions = predict_frame(tree, X, unseen_category_policy)
        metrics: Dict[str, Any] = {
            'n_samples': len(y),
            'n_leaves': tree.n_leaves,
            'depth': tree.depth,
        }

        if tree.classes:
            y_true = y.to_numpy(dtype=object)
            metrics['misclassification_rate'] = misclassification_rate(y_true, predictions)
            metrics['accuracy'] = 1.0 - metrics['misclassification_rate']
            metrics['error'] = metrics['misclassification_rate']
        else:
            y_true = y.to_numpy(dtype=np.float64)
            metrics['mse'] = mean_squared_error(y_true, predictions)
            metrics['rmse'] = float(np.sqrt(metrics['mse']))
            metrics['error'] = metrics['mse']

        logger.info(f"Evaluated tree with {tree.n_leaves} leaves on {len(y)} samples: "
                    f"error={metrics['error']:.4f}")
        return metrics

    except Exception as e:
        logger.error(f"Error evaluating tree: {e}", exc_info=True)
        raise
