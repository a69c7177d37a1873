#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Tree Pruning Module for TreeLab
Implements weakest-link cost-complexity pruning and subtree selection
"""

import heapq
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd

from models.errors import InvalidPruneSizeError, TreeConfigurationError
from models.node import TreeNode

logger = logging.getLogger(__name__)

PRUNING_MEASURES = ('impurity', 'misclassification')


@dataclass
class PruningStep:
    """One subtree in the nested pruning sequence"""
    tree: Any
    n_leaves: int
    alpha: float
    training_cost: float
    collapsed_nodes: Tuple[int, ...] = ()


class TreePruner:
    """Class for cost-complexity pruning of decision trees"""

    def __init__(self, measure: str = 'impurity', tolerance: float = 1e-9):
        """
        Initialize TreePruner

        Args:
            measure: Training cost of a leaf, 'impurity' (samples times impurity)
                     or 'misclassification' (misclassified training count)
            tolerance: Relative tolerance for treating weakest links as tied
        """
        if measure not in PRUNING_MEASURES:
            raise TreeConfigurationError(f"Unknown pruning measure '{measure}', expected one of {PRUNING_MEASURES}")
        self.measure = measure
        self.tolerance = tolerance

    def node_cost(self, node: TreeNode) -> float:
        """
        Training cost R(t) of a node treated as a leaf

        Args:
            node: Tree node

        Returns:
            Cost of the node's region
        """
        if self.measure == 'misclassification':
            if node.class_counts is None:
                raise TreeConfigurationError("Misclassification pruning measure requires a classification tree")
            return float(node.samples - max(node.class_counts))
        return float(node.samples * node.impurity)

    def tree_cost(self, tree) -> float:
        """Total training cost of a tree's leaves"""
        return sum(self.node_cost(leaf) for leaf in tree.leaves())

    def prune_sequence(self, tree) -> List[PruningStep]:
        """
        Generate the nested sequence of optimally pruned subtrees

        Args:
            tree: Fully grown tree

        Returns:
            Steps ordered by strictly decreasing leaf count, ending with a single leaf
        """
        try:
            working = tree.copy()
            nodes = working.root.get_subtree_nodes()

            parents: Dict[int, Optional[TreeNode]] = {working.root.node_id: None}
            for node in nodes:
                for child in node.children:
                    parents[child.node_id] = node

            # subtree statistics R(T_t) and |leaves(T_t)|, filled bottom-up
            subtree_cost: Dict[int, float] = {}
            subtree_leaves: Dict[int, int] = {}
            for node in reversed(nodes):
                if node.is_leaf:
                    subtree_cost[node.node_id] = self.node_cost(node)
                    subtree_leaves[node.node_id] = 1
                else:
                    subtree_cost[node.node_id] = sum(subtree_cost[c.node_id] for c in node.children)
                    subtree_leaves[node.node_id] = sum(subtree_leaves[c.node_id] for c in node.children)

            versions: Dict[int, int] = {}
            heap: List[Tuple[float, int, int]] = []
            by_id = {node.node_id: node for node in nodes}

            def push(node: TreeNode):
                versions[node.node_id] = versions.get(node.node_id, 0) + 1
                heapq.heappush(heap, (self._weakest_link(node, subtree_cost, subtree_leaves),
                                      node.node_id, versions[node.node_id]))

            for node in nodes:
                if not node.is_leaf:
                    push(node)

            removed = set()

            def is_stale(entry: Tuple[float, int, int]) -> bool:
                _, node_id, version = entry
                return (node_id in removed or by_id[node_id].is_leaf
                        or versions[node_id] != version)

            root_id = working.root.node_id
            steps = [PruningStep(tree.copy(), subtree_leaves[root_id], 0.0, subtree_cost[root_id])]
            alpha = 0.0

            while not working.root.is_leaf:
                while heap and is_stale(heap[0]):
                    heapq.heappop(heap)

                g_min = heap[0][0]
                limit = g_min + self.tolerance * max(abs(g_min), 1.0)
                batch = []
                while heap and (is_stale(heap[0]) or heap[0][0] <= limit):
                    entry = heapq.heappop(heap)
                    if not is_stale(entry):
                        batch.append(entry[1])

                collapsed = []
                # ancestors have smaller breadth-first ids, so they collapse first
                for node_id in sorted(batch):
                    if node_id in removed:
                        continue
                    self._collapse(by_id[node_id], parents, subtree_cost, subtree_leaves, removed, push)
                    collapsed.append(node_id)

                alpha = max(alpha, g_min)
                steps.append(PruningStep(working.copy(), subtree_leaves[root_id], alpha,
                                         subtree_cost[root_id], tuple(collapsed)))
                logger.debug(f"Collapsed nodes {collapsed} at alpha={alpha:.6g}, "
                             f"{subtree_leaves[root_id]} leaves remain")

            logger.info(f"Generated pruning sequence with {len(steps)} subtrees "
                        f"from {steps[0].n_leaves} leaves")
            return steps

        except Exception as e:
            logger.error(f"Error generating pruning sequence: {e}", exc_info=True)
            raise

    def _weakest_link(self, node: TreeNode, subtree_cost: Dict[int, float],
                      subtree_leaves: Dict[int, int]) -> float:
        """g(t) = (R(t) - R(T_t)) / (|leaves(T_t)| - 1)"""
        leaves = subtree_leaves[node.node_id]
        if leaves <= 1:
            return float('inf')
        return (self.node_cost(node) - subtree_cost[node.node_id]) / (leaves - 1)

    def _collapse(self, node: TreeNode, parents, subtree_cost, subtree_leaves, removed, push):
        cost_delta = self.node_cost(node) - subtree_cost[node.node_id]
        leaves_delta = subtree_leaves[node.node_id] - 1

        for descendant in node.get_subtree_nodes()[1:]:
            removed.add(descendant.node_id)
        node.make_leaf()
        subtree_cost[node.node_id] = self.node_cost(node)
        subtree_leaves[node.node_id] = 1

        ancestor = parents[node.node_id]
        while ancestor is not None:
            subtree_cost[ancestor.node_id] += cost_delta
            subtree_leaves[ancestor.node_id] -= leaves_delta
            push(ancestor)
            ancestor = parents[ancestor.node_id]

    def prune_to_size(self, tree, size: int, sequence: Optional[List[PruningStep]] = None):
        """
        Select the subtree with the requested number of leaves

        When no subtree in the sequence has exactly ``size`` leaves, the
        smallest subtree with more leaves is returned and a warning is logged.

        Args:
            tree: Fully grown tree
            size: Requested number of leaves
            sequence: Precomputed pruning sequence of ``tree``

        Returns:
            Pruned tree
        """
        return self.step_for_size(tree, size, sequence).tree

    def step_for_size(self, tree, size: int, sequence: Optional[List[PruningStep]] = None,
                      warn: bool = True) -> PruningStep:
        """Pruning step used by prune_to_size"""
        if size < 1 or size > tree.n_leaves:
            raise InvalidPruneSizeError(f"Requested size {size} is outside [1, {tree.n_leaves}]")

        if sequence is None:
            sequence = self.prune_sequence(tree)

        for step in sequence:
            if step.n_leaves == size:
                return step

        larger = [step for step in sequence if step.n_leaves > size]
        chosen = min(larger, key=lambda step: step.n_leaves)
        if warn:
            logger.warning(f"No subtree with exactly {size} leaves; using {chosen.n_leaves} leaves")
        return chosen

    def prune_to_alpha(self, tree, alpha: float, sequence: Optional[List[PruningStep]] = None):
        """
        Select the subtree that is optimal for a complexity penalty

        Args:
            tree: Fully grown tree
            alpha: Non-negative complexity penalty
            sequence: Precomputed pruning sequence of ``tree``

        Returns:
            Last subtree in the sequence whose alpha does not exceed ``alpha``
        """
        if alpha < 0:
            raise InvalidPruneSizeError(f"Complexity penalty must be non-negative, got {alpha}")

        if sequence is None:
            sequence = self.prune_sequence(tree)

        chosen = sequence[0]
        for step in sequence:
            if step.alpha <= alpha:
                chosen = step
        return chosen.tree

    def pruning_path(self, tree, sequence: Optional[List[PruningStep]] = None) -> pd.DataFrame:
        """
        Tabulate the pruning sequence

        Returns:
            DataFrame with columns n_leaves, alpha and training_cost
        """
        if sequence is None:
            sequence = self.prune_sequence(tree)
        return pd.DataFrame({
            'n_leaves': [step.n_leaves for step in sequence],
            'alpha': [step.alpha for step in sequence],
            'training_cost': [step.training_cost for step in sequence],
        })


_default_pruner = TreePruner()


def prune_sequence(tree) -> List[PruningStep]:
    """Pruning sequence of a tree using the impurity measure"""
    return _default_pruner.prune_sequence(tree)


def prune_to_size(tree, size: int):
    """Subtree with ``size`` leaves using the impurity measure"""
    return _default_pruner.prune_to_size(tree, size)
