#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Dataset Module for TreeLab
Validates a rectangular feature frame plus a response and encodes it for tree growth
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)


class DatasetError(ValueError):
    """Raised when the supplied data cannot be used to build a tree"""


class TaskType(Enum):
    """Enumeration of supported learning tasks"""
    REGRESSION = "regression"
    CLASSIFICATION = "classification"


class FeatureKind(Enum):
    """Enumeration of predictor kinds"""
    NUMERIC = "numeric"
    CATEGORICAL = "categorical"


@dataclass(frozen=True)
class FeatureSpec:
    """Schema entry for a single predictor"""
    name: str
    index: int
    kind: FeatureKind
    categories: Tuple[Any, ...] = ()

    @property
    def is_categorical(self) -> bool:
        return self.kind == FeatureKind.CATEGORICAL


def _sorted_levels(values: Iterable[Any]) -> List[Any]:
    levels = list(values)
    try:
        return sorted(levels)
    except TypeError:
        return sorted(levels, key=lambda v: (type(v).__name__, str(v)))


class Dataset:
    """
    Ordered observations with a fixed predictor schema and one response column

    Numeric predictors are stored as float64 columns, categorical predictors as
    integer codes into ``FeatureSpec.categories``. A classification response is
    stored as codes into ``classes``.
    """

    def __init__(self, X: pd.DataFrame, y: pd.Series,
                 task: Optional[Union[str, TaskType]] = None,
                 categorical_features: Optional[Sequence[str]] = None):
        """
        Initialize and validate the dataset

        Args:
            X: Predictor frame, one column per feature
            y: Response series aligned with X
            task: 'regression' or 'classification' (detected from y when None)
            categorical_features: Columns to treat as categorical regardless of dtype
        """
        if not isinstance(X, pd.DataFrame):
            raise DatasetError("X must be a pandas DataFrame")
        if not isinstance(y, pd.Series):
            raise DatasetError("y must be a pandas Series")
        if len(X) != len(y):
            raise DatasetError(f"X and y must have the same length, got {len(X)} and {len(y)}")
        if len(X) == 0:
            raise DatasetError("Dataset has no observations")
        if len(X.columns) == 0:
            raise DatasetError("Dataset has no predictor columns")

        missing_x = int(X.isna().sum().sum())
        if missing_x:
            raise DatasetError(f"X contains {missing_x} missing values; handle them before building a tree")
        missing_y = int(y.isna().sum())
        if missing_y:
            raise DatasetError(f"y contains {missing_y} missing values; handle them before building a tree")

        categorical_features = set(categorical_features or [])
        unknown = categorical_features - set(X.columns)
        if unknown:
            raise DatasetError(f"Unknown categorical features: {sorted(unknown)}")

        self.response_name = y.name
        self.task = self._resolve_task(y, task)

        self.features: List[FeatureSpec] = []
        self._columns: List[np.ndarray] = []
        for index, name in enumerate(X.columns):
            spec, column = self._encode_feature(X[name], str(name), index,
                                                force_categorical=name in categorical_features)
            self.features.append(spec)
            self._columns.append(column)

        if self.task == TaskType.CLASSIFICATION:
            self.classes: List[Any] = _sorted_levels(pd.unique(y))
            if len(self.classes) < 2:
                raise DatasetError(f"Classification response must have at least 2 classes, got {self.classes}")
            lookup = {label: code for code, label in enumerate(self.classes)}
            self.response = np.array([lookup[label] for label in y], dtype=np.intp)
        else:
            self.classes = []
            try:
                self.response = y.to_numpy(dtype=np.float64)
            except (TypeError, ValueError) as e:
                raise DatasetError(f"Regression response must be numeric: {e}") from e

        logger.debug(f"Dataset with {len(self)} rows, {len(self.features)} features, task {self.task.value}")

    @staticmethod
    def _resolve_task(y: pd.Series, task: Optional[Union[str, TaskType]]) -> TaskType:
        if isinstance(task, TaskType):
            return task
        if task is not None:
            try:
                return TaskType(str(task).strip().lower())
            except ValueError as e:
                raise DatasetError(f"Unknown task: {task}") from e

        if pd.api.types.is_numeric_dtype(y) and not pd.api.types.is_bool_dtype(y):
            return TaskType.REGRESSION
        return TaskType.CLASSIFICATION

    @staticmethod
    def _encode_feature(column: pd.Series, name: str, index: int,
                        force_categorical: bool) -> Tuple[FeatureSpec, np.ndarray]:
        is_categorical = (force_categorical or isinstance(column.dtype, pd.CategoricalDtype)
                          or pd.api.types.is_object_dtype(column)
                          or pd.api.types.is_string_dtype(column))

        if is_categorical:
            if isinstance(column.dtype, pd.CategoricalDtype):
                observed = set(column.unique())
                levels = [level for level in column.cat.categories if level in observed]
            else:
                levels = _sorted_levels(pd.unique(column))
            lookup = {level: code for code, level in enumerate(levels)}
            codes = np.array([lookup[value] for value in column], dtype=np.intp)
            return FeatureSpec(name, index, FeatureKind.CATEGORICAL, tuple(levels)), codes

        try:
            values = column.to_numpy(dtype=np.float64)
        except (TypeError, ValueError) as e:
            raise DatasetError(f"Feature '{name}' is not numeric: {e}") from e
        return FeatureSpec(name, index, FeatureKind.NUMERIC), values

    @classmethod
    def _from_parts(cls, features, columns, response, classes, task, response_name) -> 'Dataset':
        dataset = cls.__new__(cls)
        dataset.features = features
        dataset._columns = columns
        dataset.response = response
        dataset.classes = classes
        dataset.task = task
        dataset.response_name = response_name
        return dataset

    def __len__(self) -> int:
        return len(self.response)

    def __repr__(self) -> str:
        return f"Dataset(rows={len(self)}, features={self.feature_names}, task={self.task.value})"

    @property
    def n_samples(self) -> int:
        return len(self.response)

    @property
    def n_features(self) -> int:
        return len(self.features)

    @property
    def feature_names(self) -> List[str]:
        return [spec.name for spec in self.features]

    @property
    def is_classification(self) -> bool:
        return self.task == TaskType.CLASSIFICATION

    def column(self, feature_index: int) -> np.ndarray:
        """Encoded values of one predictor"""
        return self._columns[feature_index]

    def feature_index(self, name: str) -> int:
        """
        Look up the position of a feature by name

        Args:
            name: Feature name

        Returns:
            Index into ``features``
        """
        for spec in self.features:
            if spec.name == name:
                return spec.index
        raise DatasetError(f"Unknown feature: {name}")

    def take(self, indices: Sequence[int]) -> 'Dataset':
        """
        Select a subset of rows while keeping the schema, category and class lists

        Args:
            indices: Row positions to keep, in order

        Returns:
            New Dataset sharing the schema of this one
        """
        indices = np.asarray(indices, dtype=np.intp)
        if len(indices) == 0:
            raise DatasetError("Cannot take an empty subset of a dataset")
        return Dataset._from_parts(
            self.features,
            [column[indices] for column in self._columns],
            self.response[indices],
            self.classes,
            self.task,
            self.response_name,
        )

    def response_labels(self) -> np.ndarray:
        """Response in its original labels"""
        if self.is_classification:
            return np.asarray(self.classes, dtype=object)[self.response]
        return self.response.copy()

    def to_frame(self) -> Tuple[pd.DataFrame, pd.Series]:
        """
        Decode the dataset back to a feature frame and response series

        Returns:
            Tuple of (X, y) in original labels
        """
        data: Dict[str, Any] = {}
        for spec, column in zip(self.features, self._columns):
            if spec.is_categorical:
                data[spec.name] = pd.Categorical.from_codes(column, categories=list(spec.categories))
            else:
                data[spec.name] = column
        X = pd.DataFrame(data)
        y = pd.Series(self.response_labels(), name=self.response_name)
        if not self.is_classification:
            y = y.astype(np.float64)
        return X, y
