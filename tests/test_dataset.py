import numpy as np
import pandas as pd
import pytest

from data.dataset import Dataset, DatasetError, FeatureKind, TaskType


def test_detects_regression_and_numeric_features(hitters_dataset):
    assert hitters_dataset.task == TaskType.REGRESSION
    assert hitters_dataset.feature_names == ['years', 'hits']
    assert all(spec.kind == FeatureKind.NUMERIC for spec in hitters_dataset.features)
    assert len(hitters_dataset) == 263
    assert hitters_dataset.classes == []


def test_detects_classification_and_sorts_classes(separable_dataset):
    assert separable_dataset.task == TaskType.CLASSIFICATION
    assert separable_dataset.classes == ['no', 'yes']
    assert list(separable_dataset.response[:3]) == [0, 0, 0]
    assert list(separable_dataset.response[-3:]) == [1, 1, 1]


def test_object_columns_are_categorical_with_sorted_levels(color_frame):
    dataset = Dataset(color_frame[['color', 'size']], color_frame['y'])
    color = dataset.features[0]
    assert color.kind == FeatureKind.CATEGORICAL
    assert color.categories == ('blue', 'green', 'red')
    assert list(dataset.column(0)[:3]) == [2, 1, 0]


def test_pandas_categorical_keeps_dtype_order():
    X = pd.DataFrame({'grade': pd.Categorical(['b', 'a', 'c', 'a'], categories=['c', 'b', 'a'])})
    dataset = Dataset(X, pd.Series([1.0, 2.0, 3.0, 4.0]))
    assert dataset.features[0].categories == ('c', 'b', 'a')


def test_forced_categorical_and_explicit_task():
    X = pd.DataFrame({'code': [1, 2, 1, 2]})
    y = pd.Series([0, 1, 0, 1])
    dataset = Dataset(X, y, task='classification', categorical_features=['code'])
    assert dataset.features[0].is_categorical
    assert dataset.is_classification
    assert dataset.classes == [0, 1]


@pytest.mark.parametrize('task', ['Regression', ' REGRESSION ', TaskType.REGRESSION])
def test_task_name_is_case_insensitive(task):
    dataset = Dataset(pd.DataFrame({'x': [1.0, 2.0, 3.0]}), pd.Series([1.0, 2.0, 3.0]), task=task)
    assert dataset.task == TaskType.REGRESSION


def test_unknown_task_raises():
    with pytest.raises(DatasetError, match='Unknown task'):
        Dataset(pd.DataFrame({'x': [1.0, 2.0]}), pd.Series([1.0, 2.0]), task='ranking')


def test_bool_response_is_classification():
    dataset = Dataset(pd.DataFrame({'x': [1.0, 2.0, 3.0]}), pd.Series([True, False, True]))
    assert dataset.task == TaskType.CLASSIFICATION
    assert dataset.classes == [False, True]


@pytest.mark.parametrize('X, y, message', [
    (pd.DataFrame({'x': [1.0, 2.0]}), pd.Series([1.0]), 'same length'),
    (pd.DataFrame({'x': []}), pd.Series([], dtype=float), 'no observations'),
    (pd.DataFrame(index=range(3)), pd.Series([1.0, 2.0, 3.0]), 'no predictor'),
    (pd.DataFrame({'x': [1.0, np.nan]}), pd.Series([1.0, 2.0]), 'missing values'),
    (pd.DataFrame({'x': [1.0, 2.0]}), pd.Series([1.0, None]), 'missing values'),
    (pd.DataFrame({'x': [1.0, 2.0]}), pd.Series(['a', 'a']), 'at least 2 classes'),
])
def test_invalid_input_raises(X, y, message):
    with pytest.raises(DatasetError, match=message):
        Dataset(X, y)


def test_rejects_non_frame_input():
    with pytest.raises(DatasetError):
        Dataset([[1.0]], pd.Series([1.0]))


def test_unknown_categorical_feature():
    with pytest.raises(DatasetError, match='Unknown categorical'):
        Dataset(pd.DataFrame({'x': [1.0, 2.0]}), pd.Series([1.0, 2.0]), categorical_features=['z'])


def test_take_keeps_schema_and_classes(separable_dataset):
    subset = separable_dataset.take([0, 1, 2])
    assert len(subset) == 3
    assert subset.classes == ['no', 'yes']
    assert subset.features is separable_dataset.features
    assert list(subset.response_labels()) == ['no', 'no', 'no']


def test_to_frame_decodes_categories(color_frame):
    dataset = Dataset(color_frame[['color', 'size']], color_frame['y'])
    X, y = dataset.take([0, 1]).to_frame()
    assert list(X['color']) == ['red', 'green']
    assert list(y) == [1.0, 10.0]
    assert y.name == 'y'


def test_feature_index_lookup(hitters_dataset):
    assert hitters_dataset.feature_index('hits') == 1
    with pytest.raises(DatasetError):
        hitters_dataset.feature_index('walks')
