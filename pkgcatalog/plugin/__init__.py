# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
from pluggy import HookimplMarker

hookimpl = HookimplMarker("pkgcatalog")

__all__ = ["hookimpl"]
