# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
from functools import lru_cache
from typing import Iterable, Optional

from license_expression import ExpressionError, get_spdx_licensing
from loguru import logger

# the declared license is explicitly "no license"
NONE = "NONE"
# nothing is known about the license
NOASSERTION = "NOASSERTION"

# common free-text values mapped to SPDX identifiers
LICENSE_ALIASES = {
    "Apache 2.0": "Apache-2.0",
    "Apache License 2.0": "Apache-2.0",
    "Apache License, Version 2.0": "Apache-2.0",
    "Apache Software License": "Apache-2.0",
    "BSD": "BSD-3-Clause",
    "BSD License": "BSD-3-Clause",
    "GPL": "GPL-2.0-or-later",
    "GPL-2": "GPL-2.0-only",
    "GPL-3": "GPL-3.0-only",
    "LGPL-2.1": "LGPL-2.1-only",
    "MIT License": "MIT",
    "ISC License": "ISC",
    "Mozilla Public License 2.0": "MPL-2.0",
    "Python Software Foundation License": "PSF-2.0",
}


@lru_cache(maxsize=1)
def _licensing():
    return get_spdx_licensing()


@lru_cache(maxsize=1024)
def normalize(value: str) -> Optional[str]:
    """Normalize a license string to a valid SPDX expression.

    Returns None when the value is empty or cannot be parsed as an SPDX expression.
    """
    if not value:
        return None
    value = value.strip()
    if value.upper() in ("", "UNKNOWN"):
        return None
    if value.upper() in (NONE, NOASSERTION):
        return value.upper()
    value = LICENSE_ALIASES.get(value, value)
    try:
        parsed = _licensing().parse(value, validate=True)
    except ExpressionError as e:
        logger.debug(f"could not normalize license {value!r}: {e}")
        return None
    if parsed is None:
        return None
    return str(parsed)


def expression(licenses: Iterable[str]) -> Optional[str]:
    """Combine a package's licenses into one SPDX expression joined with AND.

    Unparseable entries are left out; None is returned if nothing usable remains.
    """
    parts = []
    for lic in licenses:
        normalized = normalize(lic)
        if normalized is None or normalized in parts:
            continue
        if normalized in (NONE, NOASSERTION):
            continue
        parts.append(normalized)
    if not parts:
        return None
    if len(parts) == 1:
        return parts[0]
    return " AND ".join(f"({p})" if " " in p else p for p in sorted(parts))


def split_expression(value: str) -> list:
    """Split an SPDX expression back into package-level license entries.

    A simple expression stays a single entry; compound AND expressions become one
    entry per operand so that a written-then-read package keeps its license list.
    """
    if not value or value in (NONE, NOASSERTION):
        return [value] if value == NONE else []
    licensing = _licensing()
    try:
        parsed = licensing.parse(value)
    except ExpressionError as e:
        logger.debug(f"could not parse license expression {value!r}: {e}")
        return [value]
    if parsed is None:
        return []
    return [str(operand) for operand in _and_operands(parsed, licensing.AND)]


def _and_operands(parsed, and_type) -> list:
    if not isinstance(parsed, and_type):
        return [parsed]
    operands = []
    for arg in parsed.args:
        operands.extend(_and_operands(arg, and_type))
    return operands
