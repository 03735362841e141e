"""Resolver for Maven pom.xml hierarchies.

Static declarations are read from every descriptor of a (multi-module) build,
then reconciled against what Maven itself resolves for each module:

1. decode each POM into a normalized map and store it in a descriptor arena,
   following ``<modules>`` through the file reader;
2. link children to parents by coordinate;
3. walk each tree depth-first, substituting ``${...}`` variables, folding the
   candidates, and correcting versions from the inherited
   dependency-management table and from ``mvn dependency:resolve``.

A build failure on a root descriptor is fatal. Below the root it is recorded
as an issue and the nearest ancestor's Maven output is used instead.
"""

from __future__ import annotations

import os
from collections.abc import Iterable
from typing import TYPE_CHECKING

import structlog

from depaudit.engines.manifest_resolver.maven.build_tool import ResolvedArtifact
from depaudit.engines.manifest_resolver.maven.descriptor import (
    DescriptorArena,
    ProjectDescriptor,
    extract_candidates,
    substitute_variables,
)
from depaudit.engines.manifest_resolver.maven.xmlmap import xml_to_map
from depaudit.engines.manifest_resolver.models import Dependency, Ecosystem, Issue
from depaudit.engines.manifest_resolver.registry import register_resolver
from depaudit.exceptions import BuildToolError, ResolveError

if TYPE_CHECKING:
    from depaudit.engines.manifest_resolver.resolver import Resolver

log = structlog.get_logger("depaudit.maven")

POM_FILE = "pom.xml"


def reconcile(
    deps: list[Dependency],
    managed: dict[str, str],
    ground_truth: list[ResolvedArtifact] | None,
    issues: list[Issue],
) -> list[Dependency]:
    """Correct declared versions from management overrides and Maven's output."""
    resolved: dict[str, str] = {}
    for artifact in ground_truth or []:
        resolved.setdefault(artifact.artifact_id.lower(), artifact.version.lower())

    result: list[Dependency] = []
    for dep in deps:
        override = managed.get(dep.name)
        if override and dep.version != override:
            issues.append(Issue.version_mismatch(dep.name, dep.version, override))
            dep = dep.with_version(override)
        actual = resolved.get(dep.name)
        if actual is not None and dep.version != actual:
            issues.append(Issue.version_mismatch(dep.name, dep.version, actual))
            dep = dep.with_version(actual)
        result.append(dep)
    return result


def module_location(location: str, module: str) -> str:
    directory = os.path.dirname(location)
    if module.endswith(".xml"):
        return os.path.normpath(os.path.join(directory, module))
    return os.path.normpath(os.path.join(directory, module, POM_FILE))


class PomXmlResolver:
    ecosystem = Ecosystem.JAVA
    file_names = [POM_FILE]

    def resolve(
        self, ctx: Resolver, location: str, include_test: bool
    ) -> tuple[list[Dependency], list[Issue]]:
        return self.resolve_collection(ctx, [location], include_test)

    def resolve_collection(
        self, ctx: Resolver, locations: Iterable[str], include_test: bool
    ) -> tuple[list[Dependency], list[Issue]]:
        arena = self.load(ctx, locations)
        arena.link()

        deps: list[Dependency] = []
        issues: list[Issue] = []
        for root in arena.roots():
            try:
                root_deps, root_issues = self._walk(ctx, arena, root, {}, None, include_test)
            except ResolveError as exc:
                exc.issues = issues + exc.issues
                raise
            deps += root_deps
            issues += root_issues

        issues += [Issue.missing_version(d.name) for d in deps if not d.version]
        return deps, issues

    @staticmethod
    def load(ctx: Resolver, locations: Iterable[str]) -> DescriptorArena:
        """Parse every POM reachable from *locations* into a flat arena."""
        arena = DescriptorArena()
        pending = list(locations)
        seen: set[str] = set()
        while pending:
            location = pending.pop(0)
            key = os.path.normpath(location)
            if key in seen:
                continue
            seen.add(key)
            descriptor = ProjectDescriptor.from_map(location, xml_to_map(location, ctx.read(location)))
            arena.add(descriptor)
            pending += [module_location(location, m) for m in descriptor.modules]
        log.debug("maven.descriptors_loaded", count=len(arena))
        return arena

    def _walk(
        self,
        ctx: Resolver,
        arena: DescriptorArena,
        index: int,
        managed: dict[str, str],
        previous: list[ResolvedArtifact] | None,
        include_test: bool,
    ) -> tuple[list[Dependency], list[Issue]]:
        descriptor = arena[index]
        project, issues = substitute_variables(arena, index)
        candidates, own_managed = extract_candidates(project, include_test)
        deps = [Dependency(c.artifact_id, c.version, Ecosystem.JAVA) for c in candidates]

        try:
            ground_truth = ctx.build_tool.resolve(descriptor.directory)
        except BuildToolError as exc:
            if descriptor.parent is None:
                raise BuildToolError(str(exc), issues) from exc
            log.warning(
                "maven.build_failed",
                artifact=descriptor.artifact_id,
                directory=descriptor.directory,
                error=str(exc),
            )
            issues.append(Issue.build_failure(descriptor.artifact_id))
            ground_truth = previous

        deps = reconcile(deps, managed, ground_truth, issues)

        child_managed = dict(managed)
        for item in own_managed:
            if item.version:
                child_managed[item.artifact_id.lower()] = item.version.lower()
        for child in descriptor.children:
            try:
                child_deps, child_issues = self._walk(
                    ctx, arena, child, child_managed, ground_truth, include_test
                )
            except ResolveError as exc:
                exc.issues = issues + exc.issues
                raise
            deps += child_deps
            issues += child_issues
        return deps, issues


register_resolver(PomXmlResolver())
