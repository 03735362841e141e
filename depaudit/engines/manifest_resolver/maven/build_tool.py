"""Maven invocation — ground-truth dependency versions from ``mvn dependency:resolve``."""

from __future__ import annotations

import os
import re
import subprocess
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Protocol

import structlog

from depaudit.exceptions import BuildToolError

log = structlog.get_logger("depaudit.maven")

RESOLVED_BANNER = "The following files have been resolved:"
SUCCESS_MARKER = "BUILD SUCCESS"

_INFO_PREFIX_RE = re.compile(r"^\[INFO\] ?")
# a plain dashed rule, or a reactor module header such as "-----< g:core >-----"
_SEPARATOR_RE = re.compile(r"^-{3,}")


@dataclass(frozen=True)
class ResolvedArtifact:
    """One ``group:artifact:packaging:version`` line of the resolve report."""

    group_id: str
    artifact_id: str
    packaging: str
    version: str
    scope: str = ""


class ToolGuard:
    """A named advisory lock serializing access to a shared tool cache.

    Held only for the duration of one external call.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._lock = threading.Lock()

    @contextmanager
    def hold(self) -> Iterator[None]:
        with self._lock:
            log.debug("guard.acquired", guard=self.name)
            try:
                yield
            finally:
                log.debug("guard.released", guard=self.name)


# Every runner in the process shares the local ~/.m2 repository by default.
MAVEN_GUARD = ToolGuard("maven-local-repository")


class BuildTool(Protocol):
    """Ground-truth provider for the POM resolver."""

    def resolve(self, directory: str) -> list[ResolvedArtifact]: ...


def _parse_artifact(line: str) -> ResolvedArtifact:
    # newer Maven appends " -- module foo" or "(optional)" after the coordinate
    parts = line.split()[0].split(":")
    if len(parts) < 4:
        raise BuildToolError(f"malformed resolved-artifact line: {line!r}")
    if len(parts) == 4:
        group, artifact, packaging, version = parts
        scope = ""
    elif len(parts) == 5:
        group, artifact, packaging, version, scope = parts
    else:
        group, artifact, packaging, _classifier, version, scope = parts[:6]
    return ResolvedArtifact(group, artifact, packaging, version, scope)


def parse_report(output: str) -> list[ResolvedArtifact]:
    """Parse the stdout of ``mvn dependency:resolve``.

    Raises ``BuildToolError`` when the success marker is absent. A report
    without the resolved-files banner yields an empty list. In a reactor
    build only the first (root) module's block is read.
    """
    if SUCCESS_MARKER not in output:
        raise BuildToolError("Maven build failure. Check authentication")
    lines = [_INFO_PREFIX_RE.sub("", raw.rstrip("\r")).strip() for raw in output.splitlines()]
    try:
        start = lines.index(RESOLVED_BANNER) + 1
    except ValueError:
        return []

    artifacts: list[ResolvedArtifact] = []
    for line in lines[start:]:
        if _SEPARATOR_RE.match(line):
            break
        if not line or line == "none":
            continue
        artifacts.append(_parse_artifact(line))
    return artifacts


def _env_timeout() -> float | None:
    value = os.environ.get("DEPAUDIT_MVN_TIMEOUT")
    return float(value) if value else None


class MavenRunner:
    """Runs ``mvn -f <dir> dependency:resolve`` behind a :class:`ToolGuard`."""

    def __init__(
        self,
        executable: str | None = None,
        *,
        timeout: float | None = None,
        guard: ToolGuard = MAVEN_GUARD,
    ) -> None:
        self.executable = executable or os.environ.get("DEPAUDIT_MVN_BIN", "mvn")
        self.timeout = timeout if timeout is not None else _env_timeout()
        self.guard = guard

    def resolve(self, directory: str) -> list[ResolvedArtifact]:
        cmd = [self.executable, "-f", directory, "dependency:resolve"]
        log.info("maven.invoke", directory=directory)
        with self.guard.hold():
            try:
                result = subprocess.run(cmd, capture_output=True, text=True, timeout=self.timeout)
            except FileNotFoundError:
                raise BuildToolError(f"{self.executable} not found on PATH")
            except subprocess.TimeoutExpired:
                raise BuildToolError(f"{self.executable} timed out after {self.timeout}s")

        if result.returncode != 0:
            raise BuildToolError(
                f"Unable to generate maven report at {directory} "
                f"(rc={result.returncode}): {result.stdout[-1000:]}"
            )
        return parse_report(result.stdout)
