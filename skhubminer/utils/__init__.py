# -*- coding: utf-8 -*-
# SPDX-License-Identifier: BSD-3-Clause
