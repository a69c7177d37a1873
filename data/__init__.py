#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Data Module for TreeLab
Validates and encodes training data
"""

from .dataset import Dataset, DatasetError, FeatureKind, FeatureSpec, TaskType

__all__ = ['Dataset', 'DatasetError', 'FeatureKind', 'FeatureSpec', 'TaskType']
