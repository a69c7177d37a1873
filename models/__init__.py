#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Models Module for TreeLab
Contains the splitter, tree builder, pruner and predictor
"""

from .criteria import SplitCriterion
from .node import TreeNode, MeanValue, ClassDistribution
from .split_configuration import SplitConfiguration, NumericSplit, CategoricalSplit
from .split_finder import SplitFinder, SplitCandidate
from .tree_pruning import TreePruner, PruningStep, prune_sequence, prune_to_size
from .prediction import UnseenCategoryPolicy, apply, predict, predict_proba
from .decision_tree import Tree, TreeBuilder, TreeBuilderConfig, BespokeTree, build
from .errors import (TreeError, EmptyRegionError, MissingFeatureError, UnseenCategoryError,
                     InvalidPruneSizeError, TreeConfigurationError)

__all__ = [
    'SplitCriterion', 'TreeNode', 'MeanValue', 'ClassDistribution',
    'SplitConfiguration', 'NumericSplit', 'CategoricalSplit',
    'SplitFinder', 'SplitCandidate',
    'TreePruner', 'PruningStep', 'prune_sequence', 'prune_to_size',
    'UnseenCategoryPolicy', 'apply', 'predict', 'predict_proba',
    'Tree', 'TreeBuilder', 'TreeBuilderConfig', 'BespokeTree', 'build',
    'TreeError', 'EmptyRegionError', 'MissingFeatureError', 'UnseenCategoryError',
    'InvalidPruneSizeError', 'TreeConfigurationError',
]
