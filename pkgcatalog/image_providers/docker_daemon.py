# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
import os
import shutil
import subprocess
import threading
from typing import Optional

from loguru import logger

import pkgcatalog.plugin
from pkgcatalog.configmanager import ConfigManager
from pkgcatalog.errors import OperationCancelled

# how often a running `docker save` is checked for cancellation, in seconds
POLL_INTERVAL = 0.2


@pkgcatalog.plugin.hookimpl
def short_name() -> str:
    return "docker-daemon"


def _archive_name(reference: str) -> str:
    return "".join(c if c.isalnum() or c in "-_." else "_" for c in reference) + ".tar"


@pkgcatalog.plugin.hookimpl
def fetch_image(reference: str, destination: str, cancel: threading.Event) -> Optional[str]:
    """Save an image from the local docker daemon with `docker save`."""
    if not ConfigManager().get("image", "enable_docker_daemon"):
        logger.debug("docker daemon image provider is disabled")
        return None
    docker = shutil.which("docker")
    if docker is None:
        logger.debug("docker executable not found")
        return None

    archive = os.path.join(destination, _archive_name(reference))
    logger.info(f"saving image {reference} from the docker daemon")
    with subprocess.Popen(
        [docker, "save", "--output", archive, reference],
        stdout=subprocess.DEVNULL,
        stderr=subprocess.PIPE,
    ) as proc:
        while True:
            if cancel is not None and cancel.is_set():
                proc.kill()
                proc.communicate()
                raise OperationCancelled(f"cancelled while saving image {reference}")
            try:
                # reads stderr while waiting
                _, errors = proc.communicate(timeout=POLL_INTERVAL)
                break
            except subprocess.TimeoutExpired:
                continue
        stderr = errors.decode("utf-8", errors="replace").strip()
    if proc.returncode != 0:
        logger.warning(f"docker save {reference} failed: {stderr}")
        return None
    return archive
