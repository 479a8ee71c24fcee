# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
__version__ = "0.4.0"
__version_tuple__ = (0, 4, 0)
