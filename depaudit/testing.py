"""Test doubles for depaudit — use in unit / integration tests.

Usage::

    from depaudit.testing import FakeBuildTool, MemoryFileReader

    reader = MemoryFileReader({"app/requirements.txt": "click==6.6\n"})
    resolver = Resolver(reader, FakeBuildTool())
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from depaudit.engines.manifest_resolver.maven.build_tool import ResolvedArtifact, parse_report
from depaudit.exceptions import BuildToolError, FileReadError


class MemoryFileReader:
    """File reader backed by in-memory fixtures keyed by location."""

    def __init__(self, files: Mapping[str, str | bytes] | None = None) -> None:
        self._files = dict(files or {})
        self._reads: list[str] = []

    @property
    def reads(self) -> list[str]:
        """Locations requested so far, in order."""
        return self._reads

    def add(self, location: str, content: str | bytes) -> None:
        self._files[location] = content

    def read(self, location: str) -> bytes:
        self._reads.append(location)
        if location not in self._files:
            raise FileReadError(f"no fixture for {location}")
        content = self._files[location]
        return content.encode("utf-8") if isinstance(content, str) else content


class FakeBuildTool:
    """Drop-in replacement for MavenRunner.

    Parameters
    ----------
    reports:
        Per-directory ground truth, either a list of ``ResolvedArtifact`` or
        raw ``mvn dependency:resolve`` output that is parsed like the real one.
        Directories without an entry resolve to an empty list.
    failing:
        Directories whose invocation raises ``BuildToolError``.
    """

    def __init__(
        self,
        reports: Mapping[str, list[ResolvedArtifact] | str] | None = None,
        *,
        failing: Iterable[str] = (),
    ) -> None:
        self._reports = dict(reports or {})
        self._failing = set(failing)
        self._calls: list[str] = []

    @property
    def calls(self) -> list[str]:
        return self._calls

    def resolve(self, directory: str) -> list[ResolvedArtifact]:
        self._calls.append(directory)
        if directory in self._failing:
            raise BuildToolError(f"Unable to generate maven report at {directory}")
        report = self._reports.get(directory, [])
        if isinstance(report, str):
            return parse_report(report)
        return list(report)
