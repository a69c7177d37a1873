#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Analytics Module for TreeLab
Error metrics, fold plans and tree-size cross-validation
"""
