# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from dataclasses_json import config, dataclass_json


@dataclass_json
@dataclass(frozen=True)
class Distro:
    """Linux distribution identified within a source."""

    name: str
    version: str = ""
    id_like: List[str] = field(default_factory=list, metadata=config(field_name="idLike"))

    def __str__(self) -> str:
        return f"{self.name} {self.version}".strip()


def parse_os_release(content: str) -> Dict[str, str]:
    """Parse the KEY=value lines of an os-release file."""
    values = {}
    for line in content.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
            value = value[1:-1]
        values[key.strip()] = value
    return values


def distro_from_os_release(content: str) -> Optional[Distro]:
    values = parse_os_release(content)
    name = values.get("ID", "").lower()
    if not name:
        return None
    version = values.get("VERSION_ID", "")
    id_like = sorted(values.get("ID_LIKE", "").split())
    return Distro(name=name, version=version, id_like=id_like)
