# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union

import pluggy
from loguru import logger

from pkgcatalog.configmanager import ConfigManager
from pkgcatalog.distro import Distro
from pkgcatalog.document import Descriptor, Document
from pkgcatalog.errors import AnalyzerFailure, OperationCancelled
from pkgcatalog.pkg import Catalog, Package
from pkgcatalog.plugin.manager import plugin_short_name
from pkgcatalog.relationships import build_relationships
from pkgcatalog.source import FileResolver, Scope, Source, new_source


@dataclass
class CatalogResult:
    catalog: Catalog
    distro: Optional[Distro] = None
    warnings: List[AnalyzerFailure] = field(default_factory=list)


def _check_cancel(cancel: Optional[threading.Event]) -> None:
    if cancel is not None and cancel.is_set():
        raise OperationCancelled("cataloging was cancelled")


def analyzer_name(pm: pluggy.PluginManager, hookimpl) -> str:
    return plugin_short_name(pm, hookimpl.plugin) or hookimpl.plugin_name


def identify_distro(pm: pluggy.PluginManager, resolver: FileResolver) -> Optional[Distro]:
    distro = pm.hook.identify_distro(resolver=resolver)
    if distro is None:
        logger.info("no Linux distribution identified")
    else:
        logger.info(f"identified distro: {distro}")
    return distro


def run_catalogers(
    pm: pluggy.PluginManager,
    resolver: FileResolver,
    distro: Optional[Distro] = None,
    parallelism: Optional[int] = None,
    cancel: Optional[threading.Event] = None,
) -> Tuple[Catalog, List[AnalyzerFailure]]:
    """Run every `catalog_packages` implementation and merge the results into one catalog.

    Analyzers run concurrently, but their results are only added once all of them have
    finished, in plugin registration order. Identical inputs therefore always produce
    the same catalog, including which observation wins a duplicate-identity conflict.

    Returns:
        Tuple[Catalog, List[AnalyzerFailure]]: The catalog and the analyzers that failed.
    """
    cancel = cancel or threading.Event()
    if parallelism is None:
        parallelism = ConfigManager().get("core", "parallelism")
    workers = max(1, int(parallelism or 1))
    hookimpls = pm.hook.catalog_packages.get_hookimpls()
    hook_args = {"resolver": resolver, "distro": distro, "cancel": cancel}
    _check_cancel(cancel)

    logger.info(f"running {len(hookimpls)} analyzers with {workers} workers")
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="analyzer") as executor:
        futures = [
            (
                analyzer_name(pm, impl),
                executor.submit(
                    impl.function, **{k: v for k, v in hook_args.items() if k in impl.argnames}
                ),
            )
            for impl in hookimpls
        ]
    _check_cancel(cancel)

    catalog = Catalog()
    failures: List[AnalyzerFailure] = []
    for name, future in futures:
        try:
            packages: Optional[List[Package]] = future.result()
        except OperationCancelled:
            raise
        except Exception as e:  # pylint: disable=broad-exception-caught
            failure = AnalyzerFailure(name, e)
            logger.warning(str(failure))
            failures.append(failure)
            continue
        found = 0
        for package in packages or []:
            if not package.found_by:
                package.found_by = name
            catalog.add(package)
            found += 1
        logger.debug(f"analyzer {name} found {found} packages")
    logger.info(f"cataloged {len(catalog)} unique packages")
    return catalog, failures


def catalog_source(
    pm: pluggy.PluginManager,
    source: Source,
    scope: Union[Scope, str, None] = None,
    parallelism: Optional[int] = None,
    cancel: Optional[threading.Event] = None,
) -> CatalogResult:
    """Identify the distro of a source and catalog its packages in the given scope."""
    if scope is None:
        scope = ConfigManager().get("core", "scope")
    resolver = source.file_resolver(scope)
    # distro detection always looks at the final filesystem
    distro_resolver = source.file_resolver(Scope.SQUASHED) if scope != Scope.SQUASHED else resolver
    distro = identify_distro(pm, distro_resolver)
    catalog, failures = run_catalogers(pm, resolver, distro, parallelism=parallelism, cancel=cancel)
    return CatalogResult(catalog=catalog, distro=distro, warnings=failures)


def create_document(
    pm: pluggy.PluginManager,
    user_input: str,
    scope: Union[Scope, str, None] = None,
    parallelism: Optional[int] = None,
    cancel: Optional[threading.Event] = None,
) -> Tuple[Document, CatalogResult]:
    """Catalog the source named by `user_input` and assemble the resulting document.

    The source (and any image data materialized for it) is released before returning,
    whether or not cataloging succeeded.

    Raises:
        CatalogError: If the source is unusable, the scope is invalid or the run was cancelled.
    """
    with new_source(user_input, pm=pm, cancel=cancel) as source:
        result = catalog_source(pm, source, scope, parallelism=parallelism, cancel=cancel)
        relationships = build_relationships(pm, result.catalog, source.metadata)
        document = Document.create(
            catalog=result.catalog,
            source=source.metadata,
            distro=result.distro,
            descriptor=Descriptor.current(),
            relationships=relationships,
        )
    return document, result
