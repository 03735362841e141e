"""Resolver for pip requirements.txt files."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

import structlog

from depaudit.engines.manifest_resolver.models import Dependency, Ecosystem, Issue
from depaudit.engines.manifest_resolver.registry import basename, register_resolver
from depaudit.exceptions import FileReadError, ManifestParseError

if TYPE_CHECKING:
    from depaudit.engines.manifest_resolver.resolver import Resolver

log = structlog.get_logger("depaudit.resolver")

# git+https://github.com/org/repo.git@v1.0#egg=name -> ("repo", "v1.0")
_VCS_RE = re.compile(
    r"^git(?:\+(?:https?|ssh|git))?://"  # scheme
    r"[^/]+/"  # host
    r"(?:[^@#]*/)?"  # org / group path
    r"([^/@#]+?)(?:\.git)?"  # repository name
    r"(?:@([^#]+))?"  # ref
    r"(?:#.*)?$",
)

# name, optional comparator, rest of line as the version
_PLAIN_RE = re.compile(r"^([^>=<]+)(<=|>=|==)?(.+)?$")

_INLINE_COMMENT_RE = re.compile(r"\s+#.*$")

MAIN_FILE = "requirements.txt"
DEV_FILE = "requirements-dev.txt"


def clean_line(raw: str) -> str | None:
    """Strip a requirements line, or return None when it declares nothing."""
    line = raw.strip()
    if not line or line.startswith("#") or "lib/python" in line:
        return None
    if line.startswith(("-e ", "--editable ")):
        line = _INLINE_COMMENT_RE.sub("", line.split(None, 1)[1])
        # local paths and file: URLs name no published package
        return line if _VCS_RE.match(line) else None
    elif line.startswith("-"):
        # -r includes, -c constraints, --index-url and friends
        return None
    return _INLINE_COMMENT_RE.sub("", line)


def parse_vcs_line(line: str) -> Dependency | None:
    """Parse a VCS URL; the name comes from the URL path, not ``#egg=``."""
    m = _VCS_RE.match(line)
    if not m:
        return None
    return Dependency(m.group(1), m.group(2) or "", Ecosystem.PYTHON)


def parse_plain_line(line: str, issues: list[Issue]) -> Dependency | None:
    """Parse ``name[comparator][version]``, recording weak pins in *issues*."""
    line = line.split(";", 1)[0].strip()
    m = _PLAIN_RE.match(line)
    if not m:
        return None
    name = m.group(1).strip()
    comparator = m.group(2) or ""
    version = (m.group(3) or "").strip()
    if comparator != "==":
        issues.append(Issue.weak_version(name, version, comparator))
    return Dependency(name, version, Ecosystem.PYTHON)


class RequirementsTxtResolver:
    ecosystem = Ecosystem.PYTHON
    file_names = [MAIN_FILE, DEV_FILE]

    def resolve(
        self, ctx: Resolver, location: str, include_test: bool
    ) -> tuple[list[Dependency], list[Issue]]:
        deps, issues = self.parse(location, ctx.read_text(location))
        if include_test and basename(location) == MAIN_FILE:
            dev_location = location[: -len(MAIN_FILE)] + DEV_FILE
            try:
                dev_text = ctx.read_text(dev_location)
            except FileReadError:
                log.debug("resolver.companion_missing", location=dev_location)
            else:
                dev_deps, dev_issues = self.parse(dev_location, dev_text, issues)
                deps.extend(dev_deps)
                issues = dev_issues
        return deps, issues

    @staticmethod
    def parse(
        location: str, content: str, issues: list[Issue] | None = None
    ) -> tuple[list[Dependency], list[Issue]]:
        deps: list[Dependency] = []
        issues = list(issues or [])
        for lineno, raw_line in enumerate(content.splitlines(), start=1):
            line = clean_line(raw_line)
            if line is None:
                continue
            dep = parse_vcs_line(line) or parse_plain_line(line, issues)
            if dep is None:
                raise ManifestParseError(location, f"line {lineno}: {raw_line.strip()!r}", issues)
            deps.append(dep)
        return deps, issues


register_resolver(RequirementsTxtResolver())
