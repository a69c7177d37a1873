#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Split Finder Module for TreeLab
Finds the best binary split of a region over numeric and categorical features
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import numpy as np
from joblib import Parallel, delayed

from data.dataset import Dataset
from models.criteria import (SplitCriterion, class_prefix_costs, grouped_costs, grouped_sse,
                             is_pure, region_impurity, sse_prefix_costs)
from models.errors import EmptyRegionError
from models.split_configuration import CategoricalSplit, NumericSplit, SplitConfiguration

logger = logging.getLogger(__name__)

GAIN_TOLERANCE = 1e-10


@dataclass
class SplitCandidate:
    """Best split found for a region"""
    rule: SplitConfiguration
    cost: float
    gain: float = 0.0
    left_indices: np.ndarray = field(default=None, repr=False)
    right_indices: np.ndarray = field(default=None, repr=False)

    @property
    def feature(self) -> str:
        return self.rule.feature

    @property
    def feature_index(self) -> int:
        return self.rule.feature_index


class SplitFinder:
    """Class for finding the impurity-minimizing split of a region"""

    def __init__(self, criterion: SplitCriterion, min_samples_leaf: int = 1,
                 max_categories_exhaustive: int = 10, n_jobs: int = 1):
        """
        Initialize the Split Finder

        Args:
            criterion: Splitting criterion
            min_samples_leaf: Minimum observations required in each child
            max_categories_exhaustive: Largest level count searched over all partitions
            n_jobs: Number of threads used across features (1 means sequential)
        """
        self.criterion = criterion
        self.min_samples_leaf = max(1, int(min_samples_leaf))
        self.max_categories_exhaustive = max_categories_exhaustive
        self.n_jobs = n_jobs

    def find_best_split(self, dataset: Dataset, region: Sequence[int],
                        candidate_features: Optional[Sequence[int]] = None) -> Optional[SplitCandidate]:
        """
        Find the split of a region with the lowest total child cost

        Args:
            dataset: Training dataset
            region: Row indices of the region
            candidate_features: Feature indices to consider (all when None)

        Returns:
            Best SplitCandidate, or None when no split reduces impurity
        """
        region = np.asarray(region, dtype=np.intp)
        n = len(region)
        if n == 0:
            raise EmptyRegionError("Cannot split an empty region")

        if n < 2 * self.min_samples_leaf:
            logger.debug(f"Region of {n} samples is too small for two leaves of {self.min_samples_leaf}")
            return None

        n_classes = len(dataset.classes)
        response = dataset.response[region]
        if is_pure(response):
            return None
        parent_impurity = region_impurity(response, self.criterion, n_classes)

        if candidate_features is None:
            features = list(range(dataset.n_features))
        else:
            features = sorted(set(candidate_features))

        if self.n_jobs != 1 and len(features) > 1:
            results = Parallel(n_jobs=self.n_jobs, backend='threading')(
                delayed(self._best_split_for_feature)(dataset, region, response, index)
                for index in features
            )
        else:
            results = [self._best_split_for_feature(dataset, region, response, index)
                       for index in features]

        best = None
        for candidate in results:
            if candidate is None:
                continue
            if best is None or candidate.cost < best.cost:
                best = candidate

        if best is None:
            return None

        best.gain = parent_impurity - best.cost / n
        if best.gain <= GAIN_TOLERANCE * parent_impurity:
            logger.debug(f"Best split on {best.feature} does not reduce impurity")
            return None

        return best

    def _best_split_for_feature(self, dataset: Dataset, region: np.ndarray,
                                response: np.ndarray, feature_index: int) -> Optional[SplitCandidate]:
        spec = dataset.features[feature_index]
        values = dataset.column(feature_index)[region]
        if spec.is_categorical:
            return self._best_categorical_split(spec, region, values, response, len(dataset.classes))
        return self._best_numerical_split(spec, region, values, response, len(dataset.classes))

    def _best_numerical_split(self, spec, region, values, response, n_classes) -> Optional[SplitCandidate]:
        """Evaluate every midpoint between distinct consecutive values"""
        n = len(values)
        order = np.argsort(values, kind='stable')
        sorted_values = values[order]
        sorted_response = response[order]

        if self.criterion.is_regression:
            costs = sse_prefix_costs(sorted_response)
        else:
            costs = class_prefix_costs(sorted_response, n_classes, self.criterion)

        left_sizes = np.arange(1, n)
        valid = ((sorted_values[1:] > sorted_values[:-1])
                 & (left_sizes >= self.min_samples_leaf)
                 & (n - left_sizes >= self.min_samples_leaf))
        if not valid.any():
            return None

        # argmin returns the first minimum, i.e. the lowest threshold
        position = int(np.argmin(np.where(valid, costs, np.inf)))
        lower, upper = sorted_values[position], sorted_values[position + 1]
        threshold = lower + (upper - lower) / 2.0
        if threshold <= lower:
            threshold = upper

        rule = NumericSplit(spec.name, spec.index, float(threshold))
        return SplitCandidate(rule, float(costs[position]),
                              left_indices=region[order[:position + 1]],
                              right_indices=region[order[position + 1:]])

    def _best_categorical_split(self, spec, region, codes, response, n_classes) -> Optional[SplitCandidate]:
        """Search binary partitions of the levels present in the region"""
        levels, level_index = np.unique(codes, return_inverse=True)
        m = len(levels)
        if m < 2:
            return None

        level_sizes = np.bincount(level_index, minlength=m).astype(np.float64)
        if self.criterion.is_regression:
            centered = response - response.mean()
            level_sums = np.bincount(level_index, weights=centered, minlength=m)
            level_squares = np.bincount(level_index, weights=centered ** 2, minlength=m)
        else:
            level_counts = np.zeros((m, n_classes), dtype=np.float64)
            np.add.at(level_counts, (level_index, response), 1.0)

        if m <= self.max_categories_exhaustive:
            membership = self._exhaustive_partitions(m)
        else:
            if self.criterion.is_regression:
                score = level_sums / level_sizes
            else:
                majority = int(np.argmax(level_counts.sum(axis=0)))
                score = level_counts[:, majority] / level_sizes
            ordering = np.argsort(score, kind='stable')
            membership = np.zeros((m - 1, m), dtype=bool)
            for cut in range(1, m):
                membership[cut - 1, ordering[:cut]] = True
            logger.debug(f"Feature {spec.name} has {m} levels, using ordered partitions")

        left_n = membership @ level_sizes
        right_n = len(codes) - left_n

        if self.criterion.is_regression:
            left_sum, left_sq = membership @ level_sums, membership @ level_squares
            costs = (grouped_sse(left_n, left_sum, left_sq)
                     + grouped_sse(right_n, level_sums.sum() - left_sum, level_squares.sum() - left_sq))
        else:
            left_counts = membership.astype(np.float64) @ level_counts
            costs = grouped_costs(left_counts, level_counts.sum(axis=0) - left_counts, self.criterion)

        valid = (left_n >= self.min_samples_leaf) & (right_n >= self.min_samples_leaf)
        if not valid.any():
            return None

        position = int(np.argmin(np.where(valid, costs, np.inf)))
        left_mask = membership[position]
        left_levels = [spec.categories[code] for code in levels[left_mask]]
        right_levels = [spec.categories[code] for code in levels[~left_mask]]

        rule = CategoricalSplit(spec.name, spec.index, frozenset(left_levels), frozenset(right_levels))
        goes_left = left_mask[level_index]
        return SplitCandidate(rule, float(costs[position]),
                              left_indices=region[goes_left],
                              right_indices=region[~goes_left])

    @staticmethod
    def _exhaustive_partitions(m: int) -> np.ndarray:
        """
        All 2^(m-1) - 1 two-way partitions of m levels with the first level on the left

        Row ``k`` puts level ``j + 1`` on the left when bit ``j`` of ``k`` is set.
        """
        n_partitions = 2 ** (m - 1) - 1
        bits = (np.arange(n_partitions)[:, None] >> np.arange(m - 1)[None, :]) & 1
        membership = np.ones((n_partitions, m), dtype=bool)
        membership[:, 1:] = bits.astype(bool)
        return membership
