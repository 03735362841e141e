"""Data models for the manifest resolver engine."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from urllib.parse import unquote


class Ecosystem(str, Enum):
    """Package-management conventions understood by the resolvers."""

    JAVA = "java"
    JAVASCRIPT = "javascript"
    GO = "go"
    PYTHON = "python"
    CONDA = "conda"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, text: str) -> Ecosystem:
        """Map free text (e.g. ``"JavaStack"``) to an ecosystem, else UNKNOWN."""
        text = text.strip().lower()
        if text.endswith("stack"):
            text = text[: -len("stack")]
        try:
            return cls(text)
        except ValueError:
            return cls.UNKNOWN

    def __str__(self) -> str:
        return self.value


def _escape(field_value: str) -> str:
    """Percent-encode the characters that delimit full-string segments."""
    return field_value.replace("%", "%25").replace(":", "%3A")


@dataclass(frozen=True)
class Dependency:
    """A single (name, version, ecosystem) record.

    Name, version and project are lowercased on construction, so equality
    is case-insensitive. An empty version means "unknown".
    """

    name: str
    version: str = ""
    ecosystem: Ecosystem = Ecosystem.UNKNOWN
    project: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", self.name.strip().lower())
        object.__setattr__(self, "version", (self.version or "").strip().lower())
        object.__setattr__(self, "project", (self.project or "").strip().lower())
        if not isinstance(self.ecosystem, Ecosystem):
            object.__setattr__(self, "ecosystem", Ecosystem.parse(str(self.ecosystem)))

    @classmethod
    def from_string(cls, text: str) -> Dependency:
        """Rebuild a dependency from its short or full string form.

        Accepted shapes::

            name
            name:version
            name:version:ecosystem
            name:version:project:ecosystem

        A ``:`` or ``%`` inside a segment is percent-encoded, as
        :meth:`full_string` writes it.
        """
        parts = [unquote(part) for part in text.split(":")]
        if len(parts) == 1:
            return cls(parts[0])
        if len(parts) == 2:
            return cls(parts[0], parts[1])
        if len(parts) == 3:
            return cls(parts[0], parts[1], Ecosystem.parse(parts[2]))
        if len(parts) == 4:
            return cls(parts[0], parts[1], Ecosystem.parse(parts[3]), project=parts[2])
        raise ValueError(f"bad dependency string {text!r}: {len(parts)} segments")

    def simple_equals(self, other: Dependency) -> bool:
        return self.name == other.name and self.version == other.version

    def full_equals(self, other: Dependency) -> bool:
        return (
            self.simple_equals(other)
            and self.ecosystem == other.ecosystem
            and self.project == other.project
        )

    def with_version(self, version: str) -> Dependency:
        return replace(self, version=version)

    def full_string(self) -> str:
        name, version = _escape(self.name), _escape(self.version)
        if self.project:
            return f"{name}:{version}:{_escape(self.project)}:{self.ecosystem.value}"
        return f"{name}:{version}:{self.ecosystem.value}"

    @property
    def sort_key(self) -> tuple[str, str]:
        return (self.ecosystem.value, self.name)

    def __str__(self) -> str:
        return f"{self.name}:{self.version}"


@dataclass(frozen=True, order=True)
class Issue:
    """An immutable, human-readable advisory finding."""

    message: str

    @classmethod
    def missing_version(cls, name: str) -> Issue:
        return cls(f"Package [{name}] is missing a version")

    @classmethod
    def weak_version(cls, name: str, version: str, tag: str) -> Issue:
        return cls(f"Version [{version}] on package [{name}] is not definite. Tag: [{tag}]")

    @classmethod
    def version_mismatch(cls, name: str, declared: str, resolved: str) -> Issue:
        return cls(
            f"Version mismatch on package [{name}]: "
            f"[{declared or 'NONE'}] [{resolved or 'NONE'}]"
        )

    @classmethod
    def unused_variable(cls, key: str, value: str) -> Issue:
        return cls(f"Unused variable [${{{key}}}] with value [{value}]")

    @classmethod
    def unknown_sha(cls, name: str, sha: str) -> Issue:
        return cls(f"Unknown sha [{sha}] for package [{name}]")

    @classmethod
    def build_failure(cls, artifact: str) -> Issue:
        return cls(f"Failed to build [{artifact}] with maven")

    def __str__(self) -> str:
        return self.message


# ── collection utilities ─────────────────────────────────────────────────


def sort_dependencies(deps: Iterable[Dependency]) -> list[Dependency]:
    """Stable sort by ecosystem, then name."""
    return sorted(deps, key=lambda d: d.sort_key)


def sort_issues(issues: Iterable[Issue]) -> list[Issue]:
    return sorted(issues)


def remove_exact_duplicates(
    deps: Iterable[Dependency],
) -> tuple[list[Dependency], list[Dependency]]:
    """Split *deps* into (unique, duplicates) keyed by ``full_string()``.

    The first occurrence of each key is kept; every later repeat lands in
    the duplicates list.
    """
    seen: set[str] = set()
    unique: list[Dependency] = []
    duplicates: list[Dependency] = []
    for dep in deps:
        key = dep.full_string()
        if key in seen:
            duplicates.append(dep)
            continue
        seen.add(key)
        unique.append(dep)
    return unique, duplicates


def remove_exceptions(deps: Iterable[Dependency], patterns: Iterable[str]) -> list[Dependency]:
    """Drop dependencies whose name matches any of the regex *patterns*."""
    compiled = [re.compile(p) for p in patterns]
    return [d for d in deps if not any(r.search(d.name) for r in compiled)]


def condense_bundles(
    deps: Iterable[Dependency], bundles: Mapping[str, Iterable[str]]
) -> list[Dependency]:
    """Collapse bundle members into one ``bundle:version`` entry per version.

    Grouping is per project scope; a dependency that belongs to no bundle is
    kept unchanged. Each bundle yields one entry for every distinct version
    seen among its members within that project.
    """
    members = {name: list(names) for name, names in bundles.items()}
    result: list[Dependency] = []
    by_project: dict[str, list[Dependency]] = {}
    for dep in deps:
        by_project.setdefault(dep.project, []).append(dep)

    for project, project_deps in by_project.items():
        ecosystem = project_deps[0].ecosystem
        versions: dict[str, list[str]] = {name: [] for name in members}
        for dep in project_deps:
            owners = [b for b, names in members.items() if dep.name in names]
            if not owners:
                result.append(dep)
                continue
            for bundle in owners:
                if dep.version not in versions[bundle]:
                    versions[bundle].append(dep.version)
        for bundle, seen_versions in versions.items():
            for version in seen_versions:
                result.append(Dependency(bundle, version, ecosystem, project=project))
    return result


@dataclass
class ResolveReport:
    """Folded result of resolving many manifests."""

    dependencies: list[Dependency] = field(default_factory=list)
    issues: list[Issue] = field(default_factory=list)
    duplicates: list[Dependency] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)
