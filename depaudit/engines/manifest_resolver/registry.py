"""Resolver registry — map manifest basenames to resolvers and discover them."""

from __future__ import annotations

import os
from pathlib import Path, PurePath
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from depaudit.engines.manifest_resolver.models import Dependency, Ecosystem, Issue
from depaudit.exceptions import UnknownManifestError

if TYPE_CHECKING:
    from depaudit.engines.manifest_resolver.resolver import Resolver


@runtime_checkable
class ManifestResolver(Protocol):
    """Interface that every format resolver must satisfy."""

    ecosystem: Ecosystem
    file_names: list[str]

    def resolve(
        self, ctx: Resolver, location: str, include_test: bool
    ) -> tuple[list[Dependency], list[Issue]]: ...


RESOLVER_REGISTRY: dict[str, ManifestResolver] = {}

# Directories that hold vendored or generated copies of other projects.
_SKIP_DIRS = frozenset({".git", ".hg", ".svn", "node_modules", "vendor", "target", ".tox"})


def register_resolver(resolver: ManifestResolver) -> None:
    """Register a resolver instance under each of its canonical basenames."""
    for name in resolver.file_names:
        RESOLVER_REGISTRY[name] = resolver


def basename(location: str) -> str:
    return PurePath(location.replace("\\", "/")).name


def lookup(location: str) -> ManifestResolver:
    """Return the resolver for *location*'s basename.

    Raises ``UnknownManifestError`` when the basename is not registered.
    """
    resolver = RESOLVER_REGISTRY.get(basename(location))
    if resolver is None:
        raise UnknownManifestError(location)
    return resolver


def manifest_ecosystem(location: str) -> Ecosystem:
    resolver = RESOLVER_REGISTRY.get(basename(location))
    return resolver.ecosystem if resolver is not None else Ecosystem.UNKNOWN


def discover_manifests(repo_path: Path) -> list[Path]:
    """Walk the repo and return every file with a registered basename.

    Nested ``pom.xml`` files are left out: the outermost POM reaches its
    modules through ``<modules>``.
    """
    matches: list[Path] = []
    pom_dirs: set[Path] = set()
    for dirpath, dirnames, filenames in os.walk(repo_path):
        dirnames[:] = sorted(d for d in dirnames if d not in _SKIP_DIRS)
        current = Path(dirpath)
        for filename in sorted(filenames):
            if filename not in RESOLVER_REGISTRY:
                continue
            if filename == "pom.xml":
                if any(parent in pom_dirs for parent in current.parents):
                    continue
                pom_dirs.add(current)
            matches.append(current / filename)
    return matches
