#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Utils Module for TreeLab
Common utility functions and classes used across the application
"""

from .logging_utils import setup_logging, configure_logging, log_exception
from .serialization_utils import make_json_serializable, safe_json_dump

__all__ = [
    'setup_logging',
    'configure_logging',
    'log_exception',
    'make_json_serializable',
    'safe_json_dump'
]
