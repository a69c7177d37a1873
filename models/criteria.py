#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Split Criteria Module for TreeLab
Impurity measures and vectorized child-cost calculations used by the splitter
"""

import logging
from enum import Enum
from typing import Optional, Union

import numpy as np

from models.errors import TreeConfigurationError

logger = logging.getLogger(__name__)


class SplitCriterion(Enum):
    """Enumeration of splitting criteria for decision trees"""
    SSE = "sse"
    GINI = "gini"
    ENTROPY = "entropy"
    INFORMATION_GAIN = "information_gain"
    MISCLASSIFICATION = "misclassification"

    @property
    def is_regression(self) -> bool:
        return self is SplitCriterion.SSE

    @property
    def canonical(self) -> 'SplitCriterion':
        """Information gain is entropy reduction, so both share one impurity"""
        if self is SplitCriterion.INFORMATION_GAIN:
            return SplitCriterion.ENTROPY
        return self

    @classmethod
    def resolve(cls, value: Optional[Union[str, 'SplitCriterion']],
                classification: bool) -> 'SplitCriterion':
        """
        Turn a configured criterion into an enum member and check it fits the task

        Args:
            value: Criterion name, enum member, or None for the task default
            classification: Whether the tree is a classification tree

        Returns:
            SplitCriterion member
        """
        if value is None:
            return cls.GINI if classification else cls.SSE

        if isinstance(value, cls):
            criterion = value
        else:
            try:
                criterion = cls(str(value).lower())
            except ValueError:
                valid = ", ".join(member.value for member in cls)
                raise TreeConfigurationError(f"Unknown criterion '{value}', expected one of: {valid}")

        if criterion.is_regression and classification:
            raise TreeConfigurationError(f"Criterion '{criterion.value}' cannot be used for classification")
        if not criterion.is_regression and not classification:
            raise TreeConfigurationError(f"Criterion '{criterion.value}' cannot be used for regression")
        return criterion


def impurity_from_counts(counts: np.ndarray, criterion: SplitCriterion) -> np.ndarray:
    """
    Per-observation impurity of one or more class-count vectors

    Args:
        counts: Array of shape (..., n_classes)
        criterion: Classification criterion

    Returns:
        Impurity for each count vector; zero for empty vectors
    """
    counts = np.asarray(counts, dtype=np.float64)
    totals = counts.sum(axis=-1, keepdims=True)
    with np.errstate(divide='ignore', invalid='ignore'):
        proportions = np.where(totals > 0, counts / np.where(totals > 0, totals, 1.0), 0.0)

    criterion = criterion.canonical
    if criterion is SplitCriterion.GINI:
        impurity = 1.0 - np.sum(proportions ** 2, axis=-1)
    elif criterion is SplitCriterion.ENTROPY:
        with np.errstate(divide='ignore', invalid='ignore'):
            logs = np.where(proportions > 0, np.log2(np.where(proportions > 0, proportions, 1.0)), 0.0)
        impurity = -np.sum(proportions * logs, axis=-1)
    elif criterion is SplitCriterion.MISCLASSIFICATION:
        impurity = 1.0 - np.max(proportions, axis=-1)
    else:
        raise TreeConfigurationError(f"Criterion '{criterion.value}' is not a classification criterion")

    impurity = np.where(totals[..., 0] > 0, impurity, 0.0)
    return np.clip(impurity, 0.0, None)


def is_pure(response: np.ndarray) -> bool:
    """True when every response value (or class code) in the region is identical"""
    return len(response) == 0 or bool(np.all(response == response[0]))


def region_impurity(response: np.ndarray, criterion: SplitCriterion, n_classes: int = 0) -> float:
    """
    Impurity of a region: variance for regression, class impurity for classification

    A constant region has impurity exactly 0 even when floating-point
    averaging leaves a tiny positive variance.

    Args:
        response: Response values (floats) or class codes of the region
        criterion: Criterion used by the tree
        n_classes: Number of classes for classification

    Returns:
        Per-observation impurity
    """
    if is_pure(response):
        return 0.0
    if criterion.is_regression:
        centered = response - response.mean()
        return float(np.mean(centered ** 2))
    counts = np.bincount(response, minlength=n_classes)
    return float(impurity_from_counts(counts, criterion))


def sse_prefix_costs(sorted_response: np.ndarray) -> np.ndarray:
    """
    Sum-of-squares cost of every prefix/suffix cut of an ordered response

    Element ``i`` is the total cost with the first ``i + 1`` observations on
    the left. Cumulative sums run over the centered response to limit
    cancellation.

    Args:
        sorted_response: Response ordered by the candidate feature

    Returns:
        Array of length n - 1
    """
    n = len(sorted_response)
    centered = sorted_response - sorted_response.mean()
    sums = np.cumsum(centered)
    squares = np.cumsum(centered ** 2)
    left_n = np.arange(1, n, dtype=np.float64)
    right_n = n - left_n

    left_sum, left_sq = sums[:-1], squares[:-1]
    right_sum, right_sq = sums[-1] - left_sum, squares[-1] - left_sq

    left_cost = np.clip(left_sq - left_sum ** 2 / left_n, 0.0, None)
    right_cost = np.clip(right_sq - right_sum ** 2 / right_n, 0.0, None)
    return left_cost + right_cost


def class_prefix_costs(sorted_codes: np.ndarray, n_classes: int,
                       criterion: SplitCriterion) -> np.ndarray:
    """
    Count-weighted impurity of every prefix/suffix cut of ordered class codes

    Args:
        sorted_codes: Class codes ordered by the candidate feature
        n_classes: Number of classes
        criterion: Classification criterion

    Returns:
        Array of length n - 1 where element ``i`` has ``i + 1`` observations on the left
    """
    one_hot = np.zeros((len(sorted_codes), n_classes), dtype=np.float64)
    one_hot[np.arange(len(sorted_codes)), sorted_codes] = 1.0
    cumulative = np.cumsum(one_hot, axis=0)
    left_counts = cumulative[:-1]
    right_counts = cumulative[-1] - left_counts
    return grouped_costs(left_counts, right_counts, criterion)


def grouped_costs(left_counts: np.ndarray, right_counts: np.ndarray,
                  criterion: SplitCriterion) -> np.ndarray:
    """Total child cost for rows of left/right class-count vectors"""
    left_n = left_counts.sum(axis=-1)
    right_n = right_counts.sum(axis=-1)
    return (left_n * impurity_from_counts(left_counts, criterion)
            + right_n * impurity_from_counts(right_counts, criterion))


def grouped_sse(count: np.ndarray, total: np.ndarray, total_sq: np.ndarray) -> np.ndarray:
    """Sum of squares of groups given their size, sum and sum of squares"""
    with np.errstate(divide='ignore', invalid='ignore'):
        sse = np.where(count > 0, total_sq - total ** 2 / np.where(count > 0, count, 1.0), 0.0)
    return np.clip(sse, 0.0, None)
