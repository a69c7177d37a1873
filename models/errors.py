#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Error Types for TreeLab
Exceptions raised while building, pruning and applying decision trees
"""


class TreeError(Exception):
    """Base class for decision tree errors"""


class EmptyRegionError(TreeError):
    """Raised when the splitter is asked to split a region with no observations"""


class MissingFeatureError(TreeError):
    """Raised when an observation lacks a predictor value required by a split"""

    def __init__(self, feature: str, node_id: int = None):
        self.feature = feature
        self.node_id = node_id
        message = f"Observation is missing a value for feature '{feature}'"
        if node_id is not None:
            message += f" (required at node {node_id})"
        super().__init__(message)


class UnseenCategoryError(TreeError):
    """Raised when a categorical value was not observed at a split during training"""

    def __init__(self, feature: str, value, node_id: int = None):
        self.feature = feature
        self.value = value
        self.node_id = node_id
        message = f"Category {value!r} of feature '{feature}' was not seen during training"
        if node_id is not None:
            message += f" at node {node_id}"
        super().__init__(message)


class InvalidPruneSizeError(TreeError, ValueError):
    """Raised when a requested subtree size or complexity penalty is out of range"""


class TreeConfigurationError(TreeError, ValueError):
    """Raised when builder parameters are inconsistent with each other or the data"""
