#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: BSD-3-Clause

""" scikit-hubminer: Hubness-aware exact k-nearest neighbor analysis in Python.

This file is part of the scikit-hubminer package.
The scikit-hubminer package is licensed under the terms the BSD 3-Clause license.
Package metadata and dependencies are declared in setup.cfg.
"""

import setuptools

if __name__ == "__main__":
    setuptools.setup()
