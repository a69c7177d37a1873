#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Split Configuration Module for TreeLab
Binary split rules stored on internal nodes and used to route observations
"""

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Optional

import numpy as np

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SplitConfiguration(ABC):
    """Abstract base class for binary split rules"""
    feature: str
    feature_index: int

    @property
    @abstractmethod
    def split_type(self) -> str:
        """'numeric' or 'categorical'"""

    @abstractmethod
    def goes_left(self, value: Any) -> Optional[bool]:
        """
        Route a single predictor value

        Returns:
            True for the left child, False for the right child, None when the
            value cannot be routed by this rule
        """

    @abstractmethod
    def to_dict(self) -> Dict[str, Any]:
        """Convert to a plain dictionary"""

    @abstractmethod
    def describe(self, left: bool = True) -> str:
        """Human-readable condition for the left or right branch"""


@dataclass(frozen=True)
class NumericSplit(SplitConfiguration):
    """Numeric split: observations with value < threshold go left"""
    threshold: float = 0.0

    def __post_init__(self):
        if not isinstance(self.threshold, (int, float, np.integer, np.floating)):
            raise ValueError(f"Threshold must be numeric, got {type(self.threshold)}")
        if math.isnan(self.threshold) or math.isinf(self.threshold):
            raise ValueError(f"Threshold must be finite, got {self.threshold}")

    @property
    def split_type(self) -> str:
        return 'numeric'

    def goes_left(self, value: Any) -> Optional[bool]:
        return float(value) < self.threshold

    def to_dict(self) -> Dict[str, Any]:
        return {
            'split_type': self.split_type,
            'feature': self.feature,
            'feature_index': self.feature_index,
            'threshold': float(self.threshold),
        }

    def describe(self, left: bool = True) -> str:
        operator = '<' if left else '>='
        return f"{self.feature} {operator} {self.threshold:.6g}"


@dataclass(frozen=True)
class CategoricalSplit(SplitConfiguration):
    """Categorical split: values in left_categories go left, values in right_categories go right"""
    left_categories: FrozenSet[Any] = frozenset()
    right_categories: FrozenSet[Any] = frozenset()

    def __post_init__(self):
        object.__setattr__(self, 'left_categories', frozenset(self.left_categories))
        object.__setattr__(self, 'right_categories', frozenset(self.right_categories))
        if not self.left_categories or not self.right_categories:
            raise ValueError(f"Categorical split on {self.feature} needs categories on both sides")
        overlap = self.left_categories & self.right_categories
        if overlap:
            raise ValueError(f"Categories {sorted(map(str, overlap))} assigned to both sides")

    @property
    def split_type(self) -> str:
        return 'categorical'

    def goes_left(self, value: Any) -> Optional[bool]:
        if value in self.left_categories:
            return True
        if value in self.right_categories:
            return False
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'split_type': self.split_type,
            'feature': self.feature,
            'feature_index': self.feature_index,
            'left_categories': _ordered(self.left_categories),
            'right_categories': _ordered(self.right_categories),
        }

    def describe(self, left: bool = True) -> str:
        categories = _ordered(self.left_categories if left else self.right_categories)
        return f"{self.feature} in {{{', '.join(str(c) for c in categories)}}}"


def _ordered(categories: FrozenSet[Any]) -> list:
    try:
        return sorted(categories)
    except TypeError:
        return sorted(categories, key=str)
