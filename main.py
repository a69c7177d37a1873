#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Main entry point for TreeLab - Decision Tree Builder
Loads a CSV file, grows and prunes a tree, and optionally cross-validates tree size.

[main -> parse arguments -> dependent functions are load_configuration, configure_logging, BespokeTree, cross_validate_tree_sizes]
"""

import argparse
import logging
import sys
from typing import List, Optional

import pandas as pd

from analytics.cross_validation import cross_validate_tree_sizes, select_best_size, summarize_cv
from analytics.resampling import make_fold_plan
from data.dataset import DatasetError
from models.decision_tree import BespokeTree
from models.errors import TreeError
from utils.config import (DEFAULT_CONFIG, builder_config_from_config,
                          load_configuration, merge_configs, set_config_value, validate_configuration)
from utils.logging_utils import configure_logging, log_exception
from utils.serialization_utils import safe_json_dump

logger = logging.getLogger(__name__)


def _split_names(value: Optional[str]) -> Optional[List[str]]:
    if not value:
        return None
    return [name.strip() for name in value.split(',') if name.strip()]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='treelab',
        description="Grow, prune and cross-validate a decision tree on a CSV file.")
    parser.add_argument('data', help="path to a CSV file with a header row")
    parser.add_argument('--target', required=True, help="response column")
    parser.add_argument('--task', choices=['regression', 'classification'],
                        help="learning task (detected from the response when omitted)")
    parser.add_argument('--features', help="comma-separated predictor columns (default: all others)")
    parser.add_argument('--categorical', help="comma-separated columns to treat as categorical")
    parser.add_argument('--criterion',
                        choices=['sse', 'gini', 'entropy', 'information_gain', 'misclassification'])
    parser.add_argument('--min-samples-leaf', type=float, help="minimum child size, or a fraction below 1")
    parser.add_argument('--min-samples-split', type=int, help="smallest region that may be split")
    parser.add_argument('--max-depth', type=int)
    prune = parser.add_mutually_exclusive_group()
    prune.add_argument('--prune-size', type=int, help="number of leaves of the pruned tree")
    prune.add_argument('--prune-alpha', type=float, help="complexity penalty of the pruned tree")
    parser.add_argument('--cv-folds', type=int, help="cross-validate tree size over this many folds")
    parser.add_argument('--seed', type=int, help="seed for the fold plan")
    parser.add_argument('--output-json', help="write the selected tree as JSON to this path")
    parser.add_argument('--config', help="JSON configuration file")
    parser.add_argument('--log-dir', help="directory for log files")
    parser.add_argument('--verbose', action='store_true', help="log per-node DEBUG messages")
    return parser


def _apply_arguments(config: dict, args: argparse.Namespace) -> None:
    """Copy command-line overrides into the configuration"""
    overrides = [
        ('decision_tree.criterion', args.criterion),
        ('decision_tree.min_samples_split', args.min_samples_split),
        ('decision_tree.max_depth', args.max_depth),
        ('pruning.size', args.prune_size),
        ('pruning.alpha', args.prune_alpha),
        ('cross_validation.n_folds', args.cv_folds),
        ('cross_validation.seed', args.seed),
        ('application.log_dir', args.log_dir),
    ]
    if args.min_samples_leaf is not None:
        leaf = args.min_samples_leaf
        overrides.append(('decision_tree.min_samples_leaf', int(leaf) if leaf.is_integer() else leaf))
    for key_path, value in overrides:
        if value is not None:
            set_config_value(config, key_path, value)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Run the command-line tool

    Args:
        argv: Arguments (default: sys.argv[1:])

    Returns:
        Process exit code
    """
    args = build_parser().parse_args(argv)

    if args.config:
        config = load_configuration(args.config)
    else:
        config = merge_configs(DEFAULT_CONFIG, {})
    _apply_arguments(config, args)
    validate_configuration(config)

    configure_logging(config, verbose=args.verbose)

    try:
        logger.info(f"Reading {args.data}")
        frame = pd.read_csv(args.data)
        if args.target not in frame.columns:
            raise DatasetError(f"Target column '{args.target}' not found in {args.data}")

        features = _split_names(args.features) or [c for c in frame.columns if c != args.target]
        missing = [name for name in features if name not in frame.columns]
        if missing:
            raise DatasetError(f"Feature columns not found: {missing}")

        X, y = frame[features], frame[args.target]
        categorical = _split_names(args.categorical)

        model = BespokeTree(config).fit(X, y, task=args.task, categorical_features=categorical)

        print(f"Full tree ({model.full_tree_.n_leaves} leaves):")
        print(model.full_tree_.render())
        print()
        print("Pruning path:")
        print(model.pruning_path().to_string(index=False))

        if model.tree_ is not model.full_tree_:
            print()
            print(f"Pruned tree ({model.tree_.n_leaves} leaves):")
            print(model.tree_.render())

        print()
        print(f"Training error: {model.score(X, y):.6g}")

        if args.cv_folds:
            cv_config = config['cross_validation']
            dataset = model.dataset_
            stratify = dataset.response if dataset.is_classification and cv_config.get('stratified') else None
            plan = make_fold_plan(dataset.n_samples, cv_config['n_folds'], cv_config['seed'], stratify)
            results = cross_validate_tree_sizes(dataset, builder_config_from_config(config), plan,
                                                sizes=cv_config.get('sizes'), pruner=model.pruner,
                                                n_jobs=cv_config.get('n_jobs', 1))
            summary = summarize_cv(results)
            print()
            print("Cross-validated error by tree size:")
            print(summary.to_string())
            print(f"Best size: {select_best_size(summary)} "
                  f"(one-standard-error rule: {select_best_size(summary, one_se=True)})")

        if args.output_json and not safe_json_dump(model.tree_.to_dict(), args.output_json):
            return 1

        return 0

    except (TreeError, DatasetError, ValueError, OSError, KeyError) as e:
        log_exception(e, logger, context=f"Error running TreeLab on {args.data}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
