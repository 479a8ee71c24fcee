# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from typing import List, Optional

from dataclasses_json import LetterCase, dataclass_json

from ._image import Image
from ._scheme import Scheme


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class LayerMetadata:
    media_type: str
    digest: str
    size: int


# pylint: disable=too-many-instance-attributes
@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class ImageMetadata:
    user_input: str
    image_id: str = ""
    manifest_digest: str = ""
    media_type: str = ""
    tags: List[str] = field(default_factory=list)
    repo_digests: List[str] = field(default_factory=list)
    image_size: int = 0
    layers: List[LayerMetadata] = field(default_factory=list)
    architecture: str = ""
    os: str = ""

    @classmethod
    def from_image(cls, img: Image) -> ImageMetadata:
        return cls(
            user_input=img.user_input,
            image_id=img.id,
            manifest_digest=img.manifest_digest,
            media_type=img.media_type,
            tags=list(img.tags),
            repo_digests=list(img.repo_digests),
            image_size=img.size,
            layers=[
                LayerMetadata(media_type=layer.media_type, digest=layer.digest, size=layer.size)
                for layer in img.layers
            ],
            architecture=img.architecture,
            os=img.os,
        )


@dataclass(frozen=True)
class SourceMetadata:
    """Describes what was cataloged: exactly one of `path` or `image_metadata` is set."""

    scheme: Scheme
    path: Optional[str] = None
    image_metadata: Optional[ImageMetadata] = None

    def __post_init__(self):
        if self.scheme == Scheme.DIRECTORY:
            if self.path is None or self.image_metadata is not None:
                raise ValueError("directory source metadata requires a path and no image metadata")
        elif self.scheme == Scheme.IMAGE:
            if self.image_metadata is None or self.path is not None:
                raise ValueError("image source metadata requires image metadata and no path")
        else:
            raise ValueError(f"unknown source scheme: {self.scheme!r}")

    @property
    def id(self) -> str:
        """Stable identifier for the source, used as a relationship endpoint."""
        if self.scheme == Scheme.DIRECTORY:
            identity = [self.scheme.value, self.path]
        else:
            identity = [self.scheme.value, self.image_metadata.image_id or self.image_metadata.user_input]
        digest = hashlib.sha256(json.dumps(identity).encode("utf-8")).hexdigest()
        return digest[:16]

    @property
    def name(self) -> str:
        if self.scheme == Scheme.DIRECTORY:
            return self.path
        return self.image_metadata.user_input
