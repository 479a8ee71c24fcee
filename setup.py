# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT

from setuptools import find_namespace_packages, setup

setup(
    name="pkgcatalog",
    version="0.4.0",
    description="Catalog the software packages installed in directories and container images",
    license="MIT",
    python_requires=">=3.8",
    packages=find_namespace_packages(include=["pkgcatalog", "pkgcatalog.*"]),
    install_requires=[
        "click>=8.0",
        "cyclonedx-python-lib>=5.0,<7",
        "dataclasses-json>=0.5.7",
        "license-expression>=30.0",
        "loguru",
        "packageurl-python",
        "pluggy",
        "spdx-tools>=0.8",
        "tomlkit",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
    entry_points={
        "console_scripts": [
            "pkgcatalog=pkgcatalog.__main__:main",
        ],
    },
)
