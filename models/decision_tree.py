#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Decision Tree Module for TreeLab
Implements greedy top-down tree growth and the estimator facade
"""

import json
import logging
import math
from collections import deque
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, List, Optional, Sequence, Union

import numpy as np
import pandas as pd

from data.dataset import Dataset, FeatureSpec, TaskType
from models.criteria import SplitCriterion, region_impurity
from models.errors import TreeConfigurationError, TreeError
from models.node import ClassDistribution, MeanValue, TreeNode
from models.prediction import predict_frame, predict_proba_frame
from models.split_finder import SplitFinder
from models.tree_pruning import PruningStep, TreePruner
from utils.serialization_utils import make_json_serializable

logger = logging.getLogger(__name__)


@dataclass
class TreeBuilderConfig:
    """Parameters controlling tree growth"""
    criterion: Optional[Union[str, SplitCriterion]] = None
    min_samples_leaf: Union[int, float] = 5
    min_samples_split: int = 2
    min_impurity_decrease: float = 0.0
    max_depth: Optional[int] = None
    candidate_features: Optional[List[str]] = None
    max_categories_exhaustive: int = 10
    n_jobs: int = 1

    @classmethod
    def from_dict(cls, params: Dict[str, Any]) -> 'TreeBuilderConfig':
        """Build a config from a dictionary, ignoring unknown keys with a warning"""
        known = {f.name for f in fields(cls)}
        unknown = set(params) - known
        if unknown:
            logger.warning(f"Ignoring unknown tree parameters: {sorted(unknown)}")
        return cls(**{k: v for k, v in params.items() if k in known})

    def to_dict(self) -> Dict[str, Any]:
        params = asdict(self)
        if isinstance(self.criterion, SplitCriterion):
            params['criterion'] = self.criterion.value
        return params

    def resolve_min_samples_leaf(self, n_samples: int) -> int:
        """Absolute leaf size; a float in (0, 1) is a fraction of n_samples rounded up"""
        leaf = self.min_samples_leaf
        if isinstance(leaf, bool):
            raise TreeConfigurationError("min_samples_leaf must be a number")
        if isinstance(leaf, (float, np.floating)) and not float(leaf).is_integer():
            if not 0.0 < leaf < 1.0:
                raise TreeConfigurationError(f"Fractional min_samples_leaf must be in (0, 1), got {leaf}")
            return max(1, int(math.ceil(leaf * n_samples)))
        leaf = int(leaf)
        if leaf < 1:
            raise TreeConfigurationError(f"min_samples_leaf must be at least 1, got {leaf}")
        return leaf

    def validate(self, dataset: Dataset) -> Dict[str, Any]:
        """
        Check the parameters against the dataset before any split is attempted

        Args:
            dataset: Training dataset

        Returns:
            Resolved parameters: criterion enum, absolute leaf size and feature indices
        """
        criterion = SplitCriterion.resolve(self.criterion, dataset.is_classification)
        min_samples_leaf = self.resolve_min_samples_leaf(dataset.n_samples)
        if min_samples_leaf >= dataset.n_samples:
            raise TreeConfigurationError(f"min_samples_leaf ({min_samples_leaf}) must be smaller "
                                         f"than the number of samples ({dataset.n_samples})")
        if self.min_samples_split < 2:
            raise TreeConfigurationError(f"min_samples_split must be at least 2, got {self.min_samples_split}")
        if self.max_depth is not None and self.max_depth < 0:
            raise TreeConfigurationError(f"max_depth must be non-negative, got {self.max_depth}")
        if self.min_impurity_decrease < 0:
            raise TreeConfigurationError(f"min_impurity_decrease must be non-negative, "
                                         f"got {self.min_impurity_decrease}")
        if self.max_categories_exhaustive < 1:
            raise TreeConfigurationError(f"max_categories_exhaustive must be at least 1, "
                                         f"got {self.max_categories_exhaustive}")

        if self.candidate_features is None:
            feature_indices = list(range(dataset.n_features))
        else:
            names = dataset.feature_names
            unknown = [name for name in self.candidate_features if name not in names]
            if unknown:
                raise TreeConfigurationError(f"Unknown candidate features: {unknown}")
            feature_indices = sorted({names.index(name) for name in self.candidate_features})
            if not feature_indices:
                raise TreeConfigurationError("candidate_features must name at least one feature")

        return {
            'criterion': criterion,
            'min_samples_leaf': min_samples_leaf,
            'feature_indices': feature_indices,
        }


class Tree:
    """A fitted binary decision tree"""

    def __init__(self, root: TreeNode, n_samples: int, task: TaskType,
                 criterion: SplitCriterion, features: Sequence[FeatureSpec],
                 classes: Sequence[Any] = ()):
        self.root = root
        self.n_samples = n_samples
        self.task = task
        self.criterion = criterion
        self.features = list(features)
        self.classes = list(classes)

    @property
    def is_classification(self) -> bool:
        return self.task == TaskType.CLASSIFICATION

    @property
    def n_leaves(self) -> int:
        return len(self.leaves())

    @property
    def n_nodes(self) -> int:
        return len(self.root.get_subtree_nodes())

    @property
    def depth(self) -> int:
        return self.root.subtree_depth()

    def leaves(self) -> List[TreeNode]:
        """Leaf nodes, left to right"""
        return self.root.get_leaf_nodes()

    def nodes(self) -> List[TreeNode]:
        """All nodes in breadth-first order"""
        ordered = []
        queue = deque([self.root])
        while queue:
            node = queue.popleft()
            ordered.append(node)
            queue.extend(node.children)
        return ordered

    def get_node(self, node_id: int) -> TreeNode:
        node = self.root.get_node_by_id(node_id)
        if node is None:
            raise KeyError(f"Node {node_id} not found in tree")
        return node

    def copy(self) -> 'Tree':
        return Tree(self.root.recursive_copy(), self.n_samples, self.task,
                    self.criterion, self.features, self.classes)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Tree):
            return NotImplemented
        return (self.task == other.task and self.criterion == other.criterion
                and self.n_samples == other.n_samples and self.classes == other.classes
                and self.root.same_structure(other.root))

    __hash__ = None

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the tree to a dictionary for reporting

        Returns:
            Dictionary with tree metadata and the nested node structure
        """
        tree_dict = {
            'task': self.task.value,
            'criterion': self.criterion.value,
            'n_samples': self.n_samples,
            'n_leaves': self.n_leaves,
            'depth': self.depth,
            'features': [{'name': f.name, 'kind': f.kind.value, 'categories': list(f.categories)}
                         for f in self.features],
            'classes': self.classes,
            'root': self.root.to_dict(),
        }
        return make_json_serializable(tree_dict)

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    def render(self) -> str:
        """
        Text rendering of the tree, one line per node

        Returns:
            Indented tree description
        """
        output = []

        def visit(node: TreeNode, condition: str):
            indent = "  " * node.depth
            marker = " *" if node.is_leaf else ""
            output.append(f"{indent}{node.node_id}) {condition} n={node.samples} "
                          f"impurity={node.impurity:.4g} value={node.value}{marker}")
            if not node.is_leaf:
                visit(node.left, node.split.describe(left=True))
                visit(node.right, node.split.describe(left=False))

        visit(self.root, "root")
        return "\n".join(output)

    def __str__(self) -> str:
        return self.render()

    def __repr__(self) -> str:
        return (f"Tree(task={self.task.value}, criterion={self.criterion.value}, "
                f"leaves={self.n_leaves}, depth={self.depth})")


class TreeBuilder:
    """Grows a tree greedily, breadth first"""

    def __init__(self, config: Optional[TreeBuilderConfig] = None):
        """
        Initialize the builder

        Args:
            config: Growth parameters (defaults when None)
        """
        self.config = config or TreeBuilderConfig()

    def build(self, dataset: Dataset) -> Tree:
        """
        Grow a tree on a dataset

        Args:
            dataset: Training dataset

        Returns:
            Fitted Tree
        """
        try:
            resolved = self.config.validate(dataset)
            criterion = resolved['criterion']
            min_samples_leaf = resolved['min_samples_leaf']
            feature_indices = resolved['feature_indices']

            logger.info(f"Growing {dataset.task.value} tree on {dataset.n_samples} samples, "
                        f"{len(feature_indices)} features, criterion={criterion.value}, "
                        f"min_samples_leaf={min_samples_leaf}, min_samples_split={self.config.min_samples_split}")

            finder = SplitFinder(criterion, min_samples_leaf,
                                 self.config.max_categories_exhaustive, self.config.n_jobs)

            all_rows = np.arange(dataset.n_samples, dtype=np.intp)
            root = self._make_node(dataset, criterion, all_rows, node_id=0, depth=0)
            queue = deque([(root, all_rows)])
            next_id = 1

            while queue:
                node, region = queue.popleft()

                reason = self._stop_reason(node)
                if reason:
                    logger.debug(f"Node {node.node_id} is a leaf: {reason}")
                    continue

                candidate = finder.find_best_split(dataset, region, feature_indices)
                if candidate is None:
                    logger.debug(f"Node {node.node_id} is a leaf: no valid split")
                    continue

                if candidate.gain < self.config.min_impurity_decrease:
                    logger.debug(f"Node {node.node_id} is a leaf: gain {candidate.gain:.6g} "
                                 f"below {self.config.min_impurity_decrease}")
                    continue

                left = self._make_node(dataset, criterion, candidate.left_indices, next_id, node.depth + 1)
                right = self._make_node(dataset, criterion, candidate.right_indices, next_id + 1, node.depth + 1)
                next_id += 2

                node.set_split(candidate.rule, left, right)
                queue.append((left, candidate.left_indices))
                queue.append((right, candidate.right_indices))

            tree = Tree(root, dataset.n_samples, dataset.task, criterion, dataset.features, dataset.classes)
            logger.info(f"Grew decision tree: {tree.n_nodes} nodes, {tree.n_leaves} leaves, depth {tree.depth}")
            return tree

        except Exception as e:
            logger.error(f"Error building decision tree: {e}", exc_info=True)
            raise

    def _stop_reason(self, node: TreeNode) -> Optional[str]:
        if self.config.max_depth is not None and node.depth >= self.config.max_depth:
            return f"max_depth {self.config.max_depth} reached"
        if node.samples < self.config.min_samples_split:
            return f"{node.samples} samples below min_samples_split {self.config.min_samples_split}"
        if node.samples < 2:
            return "single observation"
        if node.impurity <= 0.0:
            return "pure region"
        return None

    @staticmethod
    def _make_node(dataset: Dataset, criterion: SplitCriterion, region: np.ndarray,
                   node_id: int, depth: int) -> TreeNode:
        response = dataset.response[region]
        impurity = region_impurity(response, criterion, len(dataset.classes))
        if dataset.is_classification:
            counts = np.bincount(response, minlength=len(dataset.classes))
            return TreeNode(node_id, depth, len(region), impurity,
                            ClassDistribution.from_counts(dataset.classes, counts), counts)
        return TreeNode(node_id, depth, len(region), impurity, MeanValue(float(response.mean())))


def build(dataset: Dataset, config: Optional[TreeBuilderConfig] = None) -> Tree:
    """Grow a tree on a dataset with the given configuration"""
    return TreeBuilder(config).build(dataset)


class BespokeTree:
    """
    Estimator facade over the builder, pruner and predictor

    Reads the ``decision_tree``, ``pruning`` and ``prediction`` sections of
    the application configuration.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None, **params):
        """
        Initialize the estimator

        Args:
            config: Configuration dictionary with model parameters
            **params: Builder parameters overriding the configuration
        """
        self.config = config or {}
        self.builder_config = TreeBuilderConfig.from_dict(dict(self.config.get('decision_tree', {})))
        pruning = self.config.get('pruning', {})
        self.pruner = TreePruner(measure=pruning.get('measure', 'impurity'))
        self.unseen_category_policy = self.config.get('prediction', {}).get('unseen_category_policy', 'error')
        if params:
            self.set_params(**params)

        self.dataset_: Optional[Dataset] = None
        self.full_tree_: Optional[Tree] = None
        self.tree_: Optional[Tree] = None
        self._sequence: Optional[List[PruningStep]] = None

    @property
    def is_fitted(self) -> bool:
        return self.tree_ is not None

    def _check_fitted(self):
        if not self.is_fitted:
            raise TreeError("Model is not fitted; call fit() first")

    def set_params(self, **params) -> 'BespokeTree':
        """
        Set model parameters

        Args:
            **params: Builder fields, 'pruning_measure' or 'unseen_category_policy'
        """
        known = {f.name for f in fields(TreeBuilderConfig)}
        for param, value in params.items():
            if param in known:
                setattr(self.builder_config, param, value)
            elif param == 'pruning_measure':
                self.pruner = TreePruner(measure=value)
            elif param == 'unseen_category_policy':
                self.unseen_category_policy = value
            else:
                raise TreeConfigurationError(f"Unknown parameter: {param}")

        logger.info(f"Updated model parameters: {', '.join(f'{p}={v}' for p, v in params.items())}")
        self._sequence = None
        return self

    def get_params(self) -> Dict[str, Any]:
        params = self.builder_config.to_dict()
        params['pruning_measure'] = self.pruner.measure
        params['unseen_category_policy'] = self.unseen_category_policy
        return params

    def fit(self, X: pd.DataFrame, y: pd.Series, task: Optional[str] = None,
            categorical_features: Optional[Sequence[str]] = None) -> 'BespokeTree':
        """
        Fit the decision tree to the data

        Args:
            X: Training features
            y: Response
            task: 'regression' or 'classification' (detected when None)
            categorical_features: Columns to treat as categorical

        Returns:
            Self (fitted model)
        """
        try:
            self.dataset_ = Dataset(X, y, task=task, categorical_features=categorical_features)
            self.full_tree_ = build(self.dataset_, self.builder_config)
            self.tree_ = self.full_tree_
            self._sequence = None

            pruning = self.config.get('pruning', {})
            if pruning.get('size') is not None or pruning.get('alpha') is not None:
                self.prune(size=pruning.get('size'), alpha=pruning.get('alpha'))
            return self

        except Exception as e:
            logger.error(f"Error fitting decision tree: {e}", exc_info=True)
            raise

    def pruning_sequence(self) -> List[PruningStep]:
        self._check_fitted()
        if self._sequence is None:
            self._sequence = self.pruner.prune_sequence(self.full_tree_)
        return self._sequence

    def prune(self, size: Optional[int] = None, alpha: Optional[float] = None) -> 'BespokeTree':
        """
        Replace the fitted tree by a subtree of the full tree

        Args:
            size: Number of leaves to keep
            alpha: Complexity penalty (used when size is None)

        Returns:
            Self
        """
        self._check_fitted()
        if size is not None and alpha is not None:
            raise TreeConfigurationError("Pass either size or alpha to prune, not both")
        if size is not None:
            self.tree_ = self.pruner.prune_to_size(self.full_tree_, int(size), self.pruning_sequence())
        elif alpha is not None:
            self.tree_ = self.pruner.prune_to_alpha(self.full_tree_, float(alpha), self.pruning_sequence())
        else:
            self.tree_ = self.full_tree_
        logger.info(f"Selected subtree with {self.tree_.n_leaves} leaves")
        return self

    def pruning_path(self) -> pd.DataFrame:
        return self.pruner.pruning_path(self.full_tree_, self.pruning_sequence())

    def predict(self, X: pd.DataFrame) -> np.ndarray:
        self._check_fitted()
        return predict_frame(self.tree_, X, self.unseen_category_policy)

    def predict_proba(self, X: pd.DataFrame) -> pd.DataFrame:
        self._check_fitted()
        return predict_proba_frame(self.tree_, X, self.unseen_category_policy)

    def score(self, X: pd.DataFrame, y: pd.Series) -> float:
        """
        Error of the fitted tree on a sample

        Returns:
            Mean squared error (regression) or misclassification rate (classification)
        """
        from analytics.performance_metrics import tree_error

        self._check_fitted()
        return tree_error(self.tree_, X, y, self.unseen_category_policy)

    def __repr__(self) -> str:
        params_str = ", ".join(f"{k}={v}" for k, v in self.get_params().items())
        return f"BespokeTree({params_str})"
