# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
from typing import Optional

from loguru import logger

import pkgcatalog.plugin
from pkgcatalog.distro import Distro, distro_from_os_release
from pkgcatalog.source import FileResolver

# checked in order; the first file that names a distro wins
OS_RELEASE_PATHS = ("/etc/os-release", "/usr/lib/os-release")


@pkgcatalog.plugin.hookimpl
def short_name() -> str:
    return "os-release"


@pkgcatalog.plugin.hookimpl
def identify_distro(resolver: FileResolver) -> Optional[Distro]:
    for path in OS_RELEASE_PATHS:
        for location in resolver.files_by_path(path):
            distro = distro_from_os_release(resolver.read_text(location))
            if distro is not None:
                logger.debug(f"found distro {distro} in {location}")
                return distro
    return None
