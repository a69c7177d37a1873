import numpy as np
import pandas as pd
import pytest

from analytics.cross_validation import cross_validate_tree_sizes, select_best_size, summarize_cv
from analytics.performance_metrics import evaluate_tree, mean_squared_error, misclassification_rate, tree_error
from analytics.resampling import make_fold_plan, validation_split
from models.decision_tree import TreeBuilderConfig, build


def test_fold_plan_partitions_rows():
    plan = make_fold_plan(23, 5, seed=7)
    assert len(plan) == 5
    tested = np.concatenate([test for _, test in plan])
    assert sorted(tested) == list(range(23))
    for train, test in plan:
        assert not set(train) & set(test)
        assert len(train) + len(test) == 23


def test_fold_plan_is_seeded():
    first = make_fold_plan(30, 3, seed=1)
    again = make_fold_plan(30, 3, seed=1)
    other = make_fold_plan(30, 3, seed=2)
    assert all(np.array_equal(a[1], b[1]) for a, b in zip(first, again))
    assert not all(np.array_equal(a[1], b[1]) for a, b in zip(first, other))


def test_stratified_fold_plan_balances_classes():
    labels = np.array([0] * 10 + [1] * 10)
    for _, test in make_fold_plan(20, 5, seed=0, stratify=labels):
        assert labels[test].sum() == 2


@pytest.mark.parametrize('n_samples, n_folds', [(10, 1), (3, 4)])
def test_fold_plan_rejects_bad_fold_counts(n_samples, n_folds):
    with pytest.raises(ValueError):
        make_fold_plan(n_samples, n_folds, seed=0)


def test_validation_split():
    train, test = validation_split(263, 0.5, seed=1)
    assert len(train) + len(test) == 263
    assert not set(train) & set(test)
    assert np.array_equal(test, validation_split(263, 0.5, seed=1)[1])


def test_metrics():
    assert mean_squared_error([1.0, 2.0], [1.0, 4.0]) == pytest.approx(2.0)
    assert misclassification_rate(['a', 'b', 'b', 'a'], ['a', 'b', 'a', 'a']) == pytest.approx(0.25)
    with pytest.raises(ValueError):
        mean_squared_error([], [])


def test_tree_error_and_evaluation(hitters_dataset):
    tree = build(hitters_dataset, TreeBuilderConfig(min_samples_split=100))
    X, y = hitters_dataset.to_frame()
    assert tree_error(tree, X, y) < 0.01
    metrics = evaluate_tree(tree, X, y)
    assert metrics['n_leaves'] == 3
    assert metrics['error'] == pytest.approx(metrics['mse'])
    assert metrics['rmse'] == pytest.approx(np.sqrt(metrics['mse']))


def test_classification_evaluation(separable_dataset):
    tree = build(separable_dataset, TreeBuilderConfig(min_samples_leaf=1))
    X, y = separable_dataset.to_frame()
    metrics = evaluate_tree(tree, X, y)
    assert metrics['misclassification_rate'] == 0.0
    assert metrics['accuracy'] == 1.0


def test_cross_validate_tree_sizes(hitters_dataset):
    plan = make_fold_plan(hitters_dataset.n_samples, 5, seed=3)
    frame = cross_validate_tree_sizes(hitters_dataset, TreeBuilderConfig(min_samples_split=100),
                                      plan, sizes=[1, 2, 3, 50])
    assert list(frame.columns) == ['fold', 'size', 'n_leaves', 'error']
    assert len(frame) == 5 * 4
    assert (frame['n_leaves'] <= frame['size']).all()

    summary = summarize_cv(frame)
    assert list(summary.index) == [1, 2, 3, 50]
    assert (summary['count'] == 5).all()
    assert summary.loc[3, 'mean'] < summary.loc[2, 'mean'] < summary.loc[1, 'mean']
    assert select_best_size(summary, one_se=True) == 3


def test_default_sizes_cover_full_tree(step_dataset):
    plan = [(np.array([0, 1, 2, 3]), np.array([0, 1, 2, 3]))]
    frame = cross_validate_tree_sizes(step_dataset, TreeBuilderConfig(min_samples_leaf=1), plan)
    assert list(frame['size']) == [1, 2, 3, 4]
    assert list(frame['n_leaves']) == [1, 2, 4, 4]
    assert frame.loc[frame['size'] == 4, 'error'].iloc[0] == 0.0


def test_parallel_folds_match_sequential(hitters_dataset):
    plan = make_fold_plan(hitters_dataset.n_samples, 4, seed=5)
    config = TreeBuilderConfig(min_samples_split=100)
    sequential = cross_validate_tree_sizes(hitters_dataset, config, plan, sizes=[1, 2, 3])
    parallel = cross_validate_tree_sizes(hitters_dataset, config, plan, sizes=[1, 2, 3], n_jobs=2)
    pd.testing.assert_frame_equal(sequential, parallel)


def test_select_best_size():
    summary = pd.DataFrame({
        'mean': [0.50, 0.21, 0.20, 0.25],
        'std': [0.0, 0.0, 0.0, 0.0],
        'count': [5, 5, 5, 5],
        'se': [0.01, 0.02, 0.02, 0.02],
    }, index=pd.Index([1, 2, 3, 4], name='size'))
    assert select_best_size(summary) == 3
    assert select_best_size(summary, one_se=True) == 2


def test_cross_validation_rejects_bad_sizes(step_dataset):
    plan = [(np.array([0, 1, 2]), np.array([3]))]
    with pytest.raises(ValueError):
        cross_validate_tree_sizes(step_dataset, TreeBuilderConfig(min_samples_leaf=1), plan, sizes=[0, 2])
