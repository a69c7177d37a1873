import logging

import pandas as pd
import pytest

from data.dataset import Dataset
from models.decision_tree import TreeBuilderConfig, build
from models.errors import InvalidPruneSizeError, TreeConfigurationError
from models.tree_pruning import TreePruner, prune_sequence, prune_to_size


@pytest.fixture
def step_tree(step_dataset):
    return build(step_dataset, TreeBuilderConfig(min_samples_leaf=1))


@pytest.fixture
def hitters_full_tree(hitters_dataset):
    return build(hitters_dataset, TreeBuilderConfig(min_samples_leaf=5))


def test_step_tree_sequence(step_tree):
    steps = prune_sequence(step_tree)
    assert [step.n_leaves for step in steps] == [4, 2, 1]
    assert [step.alpha for step in steps] == pytest.approx([0.0, 0.5, 100.0])
    assert [step.training_cost for step in steps] == pytest.approx([0.0, 1.0, 101.0])


def test_tied_weakest_links_collapse_together(step_tree):
    steps = prune_sequence(step_tree)
    assert steps[1].collapsed_nodes == (1, 2)
    assert steps[2].collapsed_nodes == (0,)


def test_sequence_is_monotone(hitters_full_tree):
    steps = TreePruner().prune_sequence(hitters_full_tree)
    leaves = [step.n_leaves for step in steps]
    alphas = [step.alpha for step in steps]
    costs = [step.training_cost for step in steps]
    assert all(a > b for a, b in zip(leaves, leaves[1:]))
    assert all(a <= b for a, b in zip(alphas, alphas[1:]))
    assert all(a <= b + 1e-9 for a, b in zip(costs, costs[1:]))
    assert leaves[-1] == 1
    for step in steps:
        assert step.tree.n_leaves == step.n_leaves


def test_pruning_does_not_modify_input(hitters_full_tree):
    before = hitters_full_tree.copy()
    prune_sequence(hitters_full_tree)
    assert hitters_full_tree == before


def test_prune_to_full_size_returns_same_tree(hitters_full_tree):
    assert prune_to_size(hitters_full_tree, hitters_full_tree.n_leaves) == hitters_full_tree


def test_prune_to_one_leaf_gives_global_mean(hitters_dataset, hitters_full_tree):
    stump = prune_to_size(hitters_full_tree, 1)
    assert stump.n_leaves == 1
    assert stump.root.value.mean == pytest.approx(hitters_dataset.response.mean())


def test_prune_to_one_leaf_gives_majority_class():
    X = pd.DataFrame({'x': [float(i) for i in range(9)]})
    y = pd.Series(['a', 'a', 'b', 'a', 'b', 'b', 'a', 'b', 'b'])
    tree = build(Dataset(X, y), TreeBuilderConfig(min_samples_leaf=1))
    stump = prune_to_size(tree, 1)
    assert stump.root.value.prediction == 'b'


def test_missing_size_rounds_up_with_warning(step_tree, caplog):
    with caplog.at_level(logging.WARNING, logger='models.tree_pruning'):
        pruned = prune_to_size(step_tree, 3)
    assert pruned.n_leaves == 4
    assert any('exactly 3 leaves' in record.getMessage() for record in caplog.records)


@pytest.mark.parametrize('size', [0, 5])
def test_out_of_range_size_raises(step_tree, size):
    with pytest.raises(InvalidPruneSizeError):
        prune_to_size(step_tree, size)


def test_prune_to_alpha(step_tree):
    pruner = TreePruner()
    assert pruner.prune_to_alpha(step_tree, 0.4).n_leaves == 4
    assert pruner.prune_to_alpha(step_tree, 0.5).n_leaves == 2
    assert pruner.prune_to_alpha(step_tree, 99.0).n_leaves == 2
    assert pruner.prune_to_alpha(step_tree, 100.0).n_leaves == 1
    with pytest.raises(InvalidPruneSizeError):
        pruner.prune_to_alpha(step_tree, -1.0)


def test_pruning_path(step_tree):
    path = TreePruner().pruning_path(step_tree)
    assert list(path.columns) == ['n_leaves', 'alpha', 'training_cost']
    assert list(path['n_leaves']) == [4, 2, 1]


def test_single_leaf_tree_has_one_step(step_dataset):
    stump = build(step_dataset, TreeBuilderConfig(max_depth=0, min_samples_leaf=1))
    steps = prune_sequence(stump)
    assert len(steps) == 1
    assert prune_to_size(stump, 1) == stump


def test_misclassification_measure(separable_dataset):
    tree = build(separable_dataset, TreeBuilderConfig(min_samples_leaf=1))
    steps = TreePruner(measure='misclassification').prune_sequence(tree)
    assert [step.n_leaves for step in steps] == [2, 1]
    assert steps[1].alpha == pytest.approx(10.0)
    assert steps[1].training_cost == pytest.approx(10.0)


def test_misclassification_measure_needs_classes(step_tree):
    with pytest.raises(TreeConfigurationError):
        TreePruner(measure='misclassification').prune_sequence(step_tree)


def test_unknown_measure():
    with pytest.raises(TreeConfigurationError):
        TreePruner(measure='deviance')
