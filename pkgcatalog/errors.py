# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
"""Error types raised (or recorded) while cataloging a source."""

from __future__ import annotations

from typing import Any, Optional


class CatalogError(RuntimeError):
    """Base class for all pkgcatalog errors."""


class SourceUnavailable(CatalogError):
    """Raised when user input cannot be resolved to a directory or an image."""

    def __init__(self, user_input: str, reason: str) -> None:
        self.user_input = user_input
        self.reason = reason
        super().__init__(f"unable to use source {user_input!r}: {reason}")


class InvalidScope(CatalogError):
    """Raised when a resolver scope is incompatible with the source scheme."""

    def __init__(self, scope: Any, scheme: Any) -> None:
        self.scope = scope
        self.scheme = scheme
        super().__init__(f"bad scope provided for {scheme} source: {scope!r}")


class OperationCancelled(CatalogError):
    """Raised when the caller-supplied cancellation event was set."""


class AnalyzerFailure(CatalogError):
    """A single analyzer failed; recorded as a warning, never fatal to the run."""

    def __init__(self, analyzer: str, cause: BaseException) -> None:
        self.analyzer = analyzer
        self.cause = cause
        super().__init__(f"analyzer {analyzer!r} failed: {cause}")


class DecodeError(CatalogError):
    """Raised when an input document is malformed."""

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        self.field = field
        if field:
            message = f"{message} (field: {field})"
        super().__init__(message)


class UnsupportedSchema(CatalogError):
    """Raised when a document declares a schema version that cannot be decoded."""

    def __init__(self, version: Optional[str], supported: str = "") -> None:
        self.version = version
        msg = f"unsupported schema version: {version!r}"
        if supported:
            msg += f" (supported: {supported})"
        super().__init__(msg)


class DuplicateIdentityConflict(CatalogError):
    """Two observations share an id but disagree on descriptive fields.

    This is a data-quality record; the first observation wins and the run continues.
    """

    def __init__(self, package_id: str, field: str, kept: Any, dropped: Any) -> None:
        self.package_id = package_id
        self.field = field
        self.kept = kept
        self.dropped = dropped
        super().__init__(
            f"package {package_id}: conflicting {field} ({kept!r} kept, {dropped!r} dropped)"
        )


class DanglingRelationshipError(ValueError):
    """Raised when a relationship endpoint is unknown to the catalog and source."""

    def __init__(self, relationship: Any, endpoint: str) -> None:
        self.relationship = relationship
        self.endpoint = endpoint
        super().__init__(f"relationship endpoint {endpoint!r} is not a known entity: {relationship}")
