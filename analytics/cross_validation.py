#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Cross Validation Module for TreeLab
Estimates test error of pruned subtrees by size across a fold plan
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from joblib import Parallel, delayed

from analytics.performance_metrics import tree_error
from data.dataset import Dataset
from models.decision_tree import TreeBuilderConfig, build
from models.tree_pruning import TreePruner

logger = logging.getLogger(__name__)


def _process_single_fold(fold: int, dataset: Dataset, train_idx: np.ndarray, test_idx: np.ndarray,
                         builder_config: TreeBuilderConfig, sizes: Sequence[int],
                         pruner: TreePruner, unseen_category_policy: str) -> List[Dict[str, float]]:
    """Grow on the training rows, then score each requested subtree size on the held-out rows"""
    tree = build(dataset.take(train_idx), builder_config)
    sequence = pruner.prune_sequence(tree)
    X_test, y_test = dataset.take(test_idx).to_frame()

    rows = []
    for size in sizes:
        if size >= tree.n_leaves:
            subtree = tree
        else:
            subtree = pruner.step_for_size(tree, size, sequence, warn=False).tree
        rows.append({
            'fold': fold,
            'size': size,
            'n_leaves': subtree.n_leaves,
            'error': tree_error(subtree, X_test, y_test, unseen_category_policy),
        })

    logger.debug(f"Fold {fold}: tree with {tree.n_leaves} leaves scored on {len(test_idx)} rows")
    return rows


def cross_validate_tree_sizes(dataset: Dataset, builder_config: Optional[TreeBuilderConfig],
                              fold_plan: Sequence[Tuple[np.ndarray, np.ndarray]],
                              sizes: Optional[Sequence[int]] = None,
                              pruner: Optional[TreePruner] = None, n_jobs: int = 1,
                              unseen_category_policy: str = 'majority') -> pd.DataFrame:
    """
    Held-out error of pruned subtrees for each fold and tree size

    Args:
        dataset: Full dataset
        builder_config: Growth parameters used in every fold
        fold_plan: List of (train_indices, test_indices) pairs
        sizes: Leaf counts to evaluate (1 up to the full-data tree's size when None)
        pruner: Pruner used to build each fold's sequence
        n_jobs: Number of folds processed concurrently
        unseen_category_policy: Routing for held-out categories unknown at a split

    Returns:
        DataFrame with columns fold, size, n_leaves and error
    """
    try:
        builder_config = builder_config or TreeBuilderConfig()
        pruner = pruner or TreePruner()

        if not fold_plan:
            raise ValueError("fold_plan must contain at least one fold")

        if sizes is None:
            full_tree = build(dataset, builder_config)
            sizes = list(range(1, full_tree.n_leaves + 1))
        else:
            sizes = sorted({int(size) for size in sizes})
            if not sizes or sizes[0] < 1:
                raise ValueError(f"Tree sizes must be positive, got {sizes}")

        logger.info(f"Cross-validating {len(sizes)} tree sizes over {len(fold_plan)} folds")

        if n_jobs != 1 and len(fold_plan) > 1:
            fold_rows = Parallel(n_jobs=n_jobs, backend='threading')(
                delayed(_process_single_fold)(fold, dataset, train_idx, test_idx, builder_config,
                                              sizes, pruner, unseen_category_policy)
                for fold, (train_idx, test_idx) in enumerate(fold_plan)
            )
        else:
            fold_rows = [_process_single_fold(fold, dataset, train_idx, test_idx, builder_config,
                                              sizes, pruner, unseen_category_policy)
                         for fold, (train_idx, test_idx) in enumerate(fold_plan)]

        frame = pd.DataFrame([row for rows in fold_rows for row in rows],
                             columns=['fold', 'size', 'n_leaves', 'error'])
        return frame

    except Exception as e:
        logger.error(f"Error cross-validating tree sizes: {e}", exc_info=True)
        raise


def summarize_cv(frame: pd.DataFrame) -> pd.DataFrame:
    """
    Aggregate fold errors per tree size

    Args:
        frame: Output of cross_validate_tree_sizes

    Returns:
        DataFrame indexed by size with columns mean, std, count and se
    """
    summary = frame.groupby('size')['error'].agg(['mean', 'std', 'count'])
    summary['std'] = summary['std'].fillna(0.0)
    summary['se'] = summary['std'] / np.sqrt(summary['count'])
    return summary


def select_best_size(summary: pd.DataFrame, one_se: bool = False) -> int:
    """
    Pick a tree size from a CV summary

    Args:
        summary: Output of summarize_cv
        one_se: Take the smallest size within one standard error of the minimum

    Returns:
        Selected number of leaves
    """
    if summary.empty:
        raise ValueError("Cannot select a size from an empty summary")

    ordered = summary.sort_index()
    best_error = ordered['mean'].min()
    if one_se:
        best_se = ordered.loc[ordered['mean'] == best_error, 'se'].iloc[0]
        eligible = ordered[ordered['mean'] <= best_error + best_se]
    else:
        eligible = ordered[ordered['mean'] == best_error]
    return int(eligible.index[0])
