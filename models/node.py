#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Node Module for TreeLab
Represents nodes in the decision tree and the values they predict
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np

from models.split_configuration import SplitConfiguration
from utils.serialization_utils import make_json_serializable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MeanValue:
    """Regression node value: the mean response of the region"""
    mean: float

    @property
    def prediction(self) -> float:
        return self.mean

    def to_dict(self) -> Dict[str, Any]:
        return {'kind': 'mean', 'mean': float(self.mean)}

    def __str__(self) -> str:
        return f"{self.mean:.6g}"


@dataclass(frozen=True)
class ClassDistribution:
    """Classification node value: class proportions of the region"""
    classes: Tuple[Any, ...]
    proportions: Tuple[float, ...]

    @classmethod
    def from_counts(cls, classes: Sequence[Any], counts: Sequence[int]) -> 'ClassDistribution':
        counts = np.asarray(counts, dtype=np.float64)
        total = counts.sum()
        proportions = counts / total if total > 0 else np.zeros(len(counts))
        return cls(tuple(classes), tuple(float(p) for p in proportions))

    @property
    def prediction(self) -> Any:
        """Majority class; ties go to the first class in class order"""
        return self.classes[int(np.argmax(self.proportions))]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'kind': 'class_distribution',
            'prediction': self.prediction,
            'proportions': dict(zip(self.classes, self.proportions)),
        }

    def __str__(self) -> str:
        return f"{self.prediction} ({max(self.proportions):.2f})"


NodeValue = Union[MeanValue, ClassDistribution]


class TreeNode:
    """Class representing a node in a decision tree"""

    def __init__(self, node_id: int, depth: int = 0, samples: int = 0,
                 impurity: float = 0.0, value: Optional[NodeValue] = None,
                 class_counts: Optional[Sequence[int]] = None):
        """
        Initialize a tree node

        Args:
            node_id: Breadth-first creation index (0 for root)
            depth: Depth level in the tree (0 for root)
            samples: Number of training observations in the region
            impurity: Per-observation impurity of the region
            value: Prediction of the node if it were a leaf
            class_counts: Training class counts (classification only)
        """
        self.node_id = node_id
        self.depth = depth
        self.samples = samples
        self.impurity = impurity
        self.value = value
        self.class_counts = tuple(int(c) for c in class_counts) if class_counts is not None else None

        self.split: Optional[SplitConfiguration] = None
        self.children: List['TreeNode'] = []

    @property
    def is_leaf(self) -> bool:
        return self.split is None

    @property
    def left(self) -> Optional['TreeNode']:
        return self.children[0] if self.children else None

    @property
    def right(self) -> Optional['TreeNode']:
        return self.children[1] if self.children else None

    @property
    def prediction(self) -> Any:
        return self.value.prediction if self.value is not None else None

    def set_split(self, split: SplitConfiguration, left: 'TreeNode', right: 'TreeNode'):
        """Turn this node into an internal node with exactly two children"""
        if not self.is_leaf:
            raise ValueError(f"Node {self.node_id} is already split on {self.split.feature}")
        self.split = split
        self.children = [left, right]
        logger.debug(f"Node {self.node_id} split with {split.describe()} into {left.node_id}/{right.node_id}")

    def make_leaf(self):
        """Collapse this node, dropping its split and subtree"""
        self.split = None
        self.children = []

    def get_subtree_nodes(self) -> List['TreeNode']:
        """Get all nodes in the subtree rooted at this node, in preorder"""
        nodes = []
        stack = [self]
        while stack:
            node = stack.pop()
            nodes.append(node)
            stack.extend(reversed(node.children))
        return nodes

    def get_leaf_nodes(self) -> List['TreeNode']:
        """
        Get all leaf nodes in the subtree, left to right

        Returns:
            List of leaf nodes
        """
        return [node for node in self.get_subtree_nodes() if node.is_leaf]

    def get_node_by_id(self, node_id: int) -> Optional['TreeNode']:
        for node in self.get_subtree_nodes():
            if node.node_id == node_id:
                return node
        return None

    def subtree_depth(self) -> int:
        """Depth of the deepest leaf below this node, relative to this node"""
        return max(node.depth for node in self.get_subtree_nodes()) - self.depth

    def same_structure(self, other: 'TreeNode', rel_tol: float = 1e-9) -> bool:
        """
        Compare two subtrees: splits, thresholds, category sets and node statistics

        Args:
            other: Root of the other subtree
            rel_tol: Relative tolerance for impurity comparison

        Returns:
            True if both subtrees are structurally equal
        """
        pairs = [(self, other)]
        while pairs:
            a, b = pairs.pop()
            if not isinstance(b, TreeNode):
                return False
            if (a.node_id != b.node_id or a.samples != b.samples or a.split != b.split
                    or a.class_counts != b.class_counts or a.value != b.value
                    or len(a.children) != len(b.children)):
                return False
            if not np.isclose(a.impurity, b.impurity, rtol=rel_tol, atol=1e-12):
                return False
            pairs.extend(zip(a.children, b.children))
        return True

    def copy(self) -> 'TreeNode':
        """
        Create a copy of this node (without children)

        Returns:
            New TreeNode instance
        """
        node = TreeNode(self.node_id, self.depth, self.samples, self.impurity,
                        self.value, self.class_counts)
        node.split = self.split
        return node

    def recursive_copy(self) -> 'TreeNode':
        """
        Create a deep copy of this node including all children

        Returns:
            New TreeNode instance with copied children
        """
        node_copy = self.copy()
        node_copy.children = [child.recursive_copy() for child in self.children]
        return node_copy

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert node to dictionary for reporting

        Returns:
            Dictionary representation of the node
        """
        node_dict = {
            'node_id': self.node_id,
            'depth': self.depth,
            'is_leaf': self.is_leaf,
            'samples': self.samples,
            'impurity': self.impurity,
            'value': self.value.to_dict() if self.value is not None else None,
            'class_counts': list(self.class_counts) if self.class_counts is not None else None,
            'split': self.split.to_dict() if self.split is not None else None,
            'children': [child.to_dict() for child in self.children],
        }

        return make_json_serializable(node_dict)

    def __str__(self) -> str:
        if self.is_leaf:
            return f"Leaf {self.node_id}: {self.value} (n={self.samples})"
        return f"Node {self.node_id}: {self.split.describe()}"

    def __repr__(self) -> str:
        return (f"TreeNode(id={self.node_id}, depth={self.depth}, samples={self.samples}, "
                f"is_leaf={self.is_leaf}, split={self.split.describe() if self.split else None})")
