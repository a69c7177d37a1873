#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Resampling Module for TreeLab
Seeded fold plans and validation splits built on scikit-learn splitters
"""

import logging
from typing import List, Optional, Sequence, Tuple

import numpy as np
from sklearn.model_selection import KFold, StratifiedKFold, train_test_split

logger = logging.getLogger(__name__)

FoldPlan = List[Tuple[np.ndarray, np.ndarray]]


def make_fold_plan(n_samples: int, n_folds: int, seed: int,
                   stratify: Optional[Sequence] = None) -> FoldPlan:
    """
    Partition row indices into shuffled folds

    Args:
        n_samples: Number of observations
        n_folds: Number of folds (at least 2)
        seed: Random seed for the shuffle
        stratify: Class labels to preserve class proportions across folds

    Returns:
        List of (train_indices, test_indices) pairs
    """
    if n_folds < 2:
        raise ValueError(f"n_folds must be at least 2, got {n_folds}")
    if n_folds > n_samples:
        raise ValueError(f"n_folds ({n_folds}) cannot exceed the number of samples ({n_samples})")

    indices = np.arange(n_samples)
    if stratify is not None:
        labels = np.asarray(stratify)
        if len(labels) != n_samples:
            raise ValueError("stratify must have one label per sample")
        splitter = StratifiedKFold(n_splits=n_folds, shuffle=True, random_state=seed)
        plan = [(train, test) for train, test in splitter.split(indices, labels)]
    else:
        splitter = KFold(n_splits=n_folds, shuffle=True, random_state=seed)
        plan = [(train, test) for train, test in splitter.split(indices)]

    logger.debug(f"Created {len(plan)}-fold plan over {n_samples} samples with seed {seed}")
    return plan


def validation_split(n_samples: int, test_size: float, seed: int,
                     stratify: Optional[Sequence] = None) -> Tuple[np.ndarray, np.ndarray]:
    """
    Single shuffled train/assessment split

    Args:
        n_samples: Number of observations
        test_size: Fraction (0, 1) or absolute number of assessment rows
        seed: Random seed for the shuffle
        stratify: Class labels to preserve class proportions

    Returns:
        Tuple of (train_indices, test_indices)
    """
    train, test = train_test_split(np.arange(n_samples), test_size=test_size,
                                   random_state=seed, shuffle=True, stratify=stratify)
    return np.sort(train), np.sort(test)
