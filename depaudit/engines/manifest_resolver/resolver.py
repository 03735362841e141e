"""Resolver — dispatch manifests to format resolvers and fold batch results."""

from __future__ import annotations

import asyncio
import os
from collections.abc import Iterable, Sequence

import structlog

# Ensure resolvers are registered before any dispatch runs.
import depaudit.engines.manifest_resolver.parsers  # noqa: F401
from depaudit.engines.manifest_resolver.maven.build_tool import BuildTool, MavenRunner
from depaudit.engines.manifest_resolver.models import (
    Dependency,
    Issue,
    ResolveReport,
    remove_exact_duplicates,
    sort_dependencies,
    sort_issues,
)
from depaudit.engines.manifest_resolver.parsers.pom_xml import PomXmlResolver
from depaudit.engines.manifest_resolver.reader import FileReader, LocalFileReader
from depaudit.engines.manifest_resolver.registry import lookup
from depaudit.exceptions import ManifestParseError, ResolveError

log = structlog.get_logger("depaudit.resolver")

Outcome = tuple[str, "tuple[list[Dependency], list[Issue]] | ResolveError"]


class Resolver:
    """Resolution context: the injected file reader and build tool.

    Stateless apart from those two collaborators, so one instance may be
    shared by concurrent callers as long as the reader allows it.
    """

    def __init__(
        self,
        reader: FileReader | None = None,
        build_tool: BuildTool | None = None,
    ) -> None:
        self.reader = reader or LocalFileReader()
        self.build_tool = build_tool or MavenRunner()

    def read(self, location: str) -> bytes:
        return self.reader.read(location)

    def read_text(self, location: str) -> str:
        try:
            return self.read(location).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ManifestParseError(location, f"not valid UTF-8: {exc}") from exc

    def resolve(
        self, location: str, include_test: bool = False
    ) -> tuple[list[Dependency], list[Issue]]:
        """Resolve one manifest into sorted dependencies and sorted issues."""
        resolver = lookup(location)
        log.debug("resolver.dispatch", location=location, ecosystem=resolver.ecosystem.value)
        deps, issues = resolver.resolve(self, location, include_test)
        return sort_dependencies(deps), sort_issues(issues)

    def resolve_pom_collection(
        self, locations: Iterable[str], include_test: bool = False
    ) -> tuple[list[Dependency], list[Issue]]:
        """Resolve an explicit set of POM files as one hierarchy."""
        deps, issues = PomXmlResolver().resolve_collection(self, locations, include_test)
        return sort_dependencies(deps), sort_issues(issues)


def build_report(outcomes: Iterable[Outcome]) -> ResolveReport:
    """Fold per-file outcomes: dedup + sort dependencies, sort issues."""
    deps: list[Dependency] = []
    issues: list[Issue] = []
    errors: dict[str, str] = {}
    for location, outcome in outcomes:
        if isinstance(outcome, ResolveError):
            errors[location] = str(outcome)
            issues += outcome.issues
            continue
        file_deps, file_issues = outcome
        deps += file_deps
        issues += file_issues

    unique, duplicates = remove_exact_duplicates(deps)
    return ResolveReport(
        dependencies=sort_dependencies(unique),
        issues=sort_issues(issues),
        duplicates=duplicates,
        errors=errors,
    )


async def resolve_many(
    resolver: Resolver,
    locations: Sequence[str],
    include_test: bool = False,
    concurrency: int | None = None,
) -> ResolveReport:
    """Resolve *locations* in worker threads and fold them into one report.

    A failing file contributes its accumulated issues and an entry in
    ``report.errors``; the remaining files still resolve.
    """
    limit = concurrency or int(os.environ.get("DEPAUDIT_CONCURRENCY", "4"))
    semaphore = asyncio.Semaphore(limit)

    async def _one(location: str) -> Outcome:
        async with semaphore:
            try:
                result = await asyncio.to_thread(resolver.resolve, location, include_test)
            except ResolveError as exc:
                log.warning("resolver.file_failed", location=location, error=str(exc))
                return location, exc
            return location, result

    outcomes = await asyncio.gather(*(_one(loc) for loc in locations))
    report = build_report(outcomes)
    log.info(
        "resolver.batch_done",
        files=len(locations),
        dependencies=len(report.dependencies),
        issues=len(report.issues),
        errors=len(report.errors),
    )
    return report
