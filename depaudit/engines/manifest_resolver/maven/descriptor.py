"""Project descriptors, the descriptor arena, and variable substitution.

Descriptors are parsed flat into a :class:`DescriptorArena` first; a second
pass links parents and children by index.  Nothing holds a reference to
another descriptor object, only integer indexes into the arena.
"""

from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass, field

from depaudit.engines.manifest_resolver.maven.xmlmap import as_list, mapping, normalize_project
from depaudit.engines.manifest_resolver.models import Issue
from depaudit.exceptions import ManifestParseError

_PLACEHOLDER_RE = re.compile(r"\$\{([^}]+)\}")

# Declared but conventionally consumed by plugins, never by the POM itself.
RESERVED_PROPERTIES = frozenset({"java.version"})

_MAX_EXPANSION_DEPTH = 10


@dataclass
class Coordinate:
    """groupId / artifactId / version / scope of one POM element."""

    group_id: str = ""
    artifact_id: str = ""
    version: str = ""
    scope: str = ""

    @classmethod
    def from_map(cls, value: object) -> Coordinate | None:
        if not isinstance(value, dict):
            return None
        return cls(
            group_id=_text(value.get("groupId")),
            artifact_id=_text(value.get("artifactId")),
            version=_text(value.get("version")),
            scope=_text(value.get("scope")),
        )

    def __str__(self) -> str:
        return f"{self.group_id}:{self.artifact_id}:{self.version}"


def _text(value: object) -> str:
    return value.strip() if isinstance(value, str) else ""


def coordinates(node: dict, *path: str) -> list[Coordinate]:
    """Decode the (already normalized) list at *path* under *node*."""
    for key in path[:-1]:
        node = mapping(node.get(key))
    items = (Coordinate.from_map(v) for v in as_list(node.get(path[-1])))
    return [c for c in items if c is not None and c.artifact_id]


@dataclass
class ProjectDescriptor:
    location: str
    raw: dict
    coordinate: Coordinate
    packaging: str = "jar"
    parent_ref: Coordinate | None = None
    properties: dict[str, str] = field(default_factory=dict)
    modules: list[str] = field(default_factory=list)
    parent: int | None = None
    children: list[int] = field(default_factory=list)

    @classmethod
    def from_map(cls, location: str, document: dict) -> ProjectDescriptor:
        project = normalize_project(mapping(document.get("project")))
        return cls(
            location=location,
            raw=project,
            coordinate=Coordinate.from_map(project) or Coordinate(),
            packaging=_text(project.get("packaging")) or "jar",
            parent_ref=Coordinate.from_map(project.get("parent")),
            properties={
                k: v for k, v in mapping(project.get("properties")).items() if isinstance(v, str)
            },
            modules=[m for m in as_list(mapping(project.get("modules")).get("module")) if isinstance(m, str)],
        )

    @property
    def directory(self) -> str:
        return os.path.dirname(self.location) or "."

    @property
    def group_id(self) -> str:
        if self.coordinate.group_id:
            return self.coordinate.group_id
        return self.parent_ref.group_id if self.parent_ref else ""

    @property
    def version(self) -> str:
        if self.coordinate.version:
            return self.coordinate.version
        return self.parent_ref.version if self.parent_ref else ""

    @property
    def artifact_id(self) -> str:
        return self.coordinate.artifact_id

    def matches(self, ref: Coordinate) -> bool:
        """Whether *ref* (a child's ``<parent>``) identifies this descriptor."""
        inherited_group = self.parent_ref.group_id if self.parent_ref else None
        if ref.group_id not in (self.coordinate.group_id, inherited_group):
            return False
        if ref.artifact_id != self.artifact_id:
            return False
        if ref.version and self.version and "${" not in ref.version + self.version:
            return ref.version == self.version
        return True


class DescriptorArena:
    """Owns every descriptor of one resolve; links are arena indexes."""

    def __init__(self) -> None:
        self._descriptors: list[ProjectDescriptor] = []

    def __len__(self) -> int:
        return len(self._descriptors)

    def __getitem__(self, index: int) -> ProjectDescriptor:
        return self._descriptors[index]

    def add(self, descriptor: ProjectDescriptor) -> int:
        self._descriptors.append(descriptor)
        return len(self._descriptors) - 1

    def link(self) -> None:
        """Attach each descriptor to the first other descriptor its parent names."""
        for index, descriptor in enumerate(self._descriptors):
            ref = descriptor.parent_ref
            if ref is None:
                continue
            for candidate_index, candidate in enumerate(self._descriptors):
                if candidate_index == index or not candidate.matches(ref):
                    continue
                if index in self.ancestors(candidate_index):
                    continue
                descriptor.parent = candidate_index
                candidate.children.append(index)
                break

    def roots(self) -> list[int]:
        return [i for i, d in enumerate(self._descriptors) if d.parent is None]

    def ancestors(self, index: int) -> list[int]:
        """Ancestor indexes, nearest first."""
        chain: list[int] = []
        current = self._descriptors[index].parent
        while current is not None and current not in chain:
            chain.append(current)
            current = self._descriptors[current].parent
        return chain

    def effective_properties(self, index: int) -> dict[str, str]:
        """Own properties overlaid on the ancestor chain, nearest wins."""
        merged: dict[str, str] = {}
        for ancestor in reversed(self.ancestors(index)):
            merged.update(self._descriptors[ancestor].properties)
        merged.update(self._descriptors[index].properties)
        return merged


def implicit_properties(descriptor: ProjectDescriptor) -> dict[str, str]:
    """Built-in ``project.*`` coordinates available to every POM."""
    values = {
        "project.groupId": descriptor.group_id,
        "project.artifactId": descriptor.artifact_id,
        "project.version": descriptor.version,
        "project.packaging": descriptor.packaging,
    }
    if descriptor.parent_ref is not None:
        values["project.parent.groupId"] = descriptor.parent_ref.group_id
        values["project.parent.artifactId"] = descriptor.parent_ref.artifact_id
        values["project.parent.version"] = descriptor.parent_ref.version
    return {k: v for k, v in values.items() if v}


def _lookup(key: str, values: dict[str, str]) -> str | None:
    if key in values:
        return values[key]
    if key.startswith("env."):
        return os.environ.get(key[len("env.") :])
    return None


def _expand(text: str, values: dict[str, str], depth: int = 0) -> str:
    if depth >= _MAX_EXPANSION_DEPTH:
        return text

    def _replace(m: re.Match) -> str:
        value = _lookup(m.group(1), values)
        if value is None:
            return m.group(0)
        return _expand(value, values, depth + 1)

    return _PLACEHOLDER_RE.sub(_replace, text)


def substitute_variables(arena: DescriptorArena, index: int) -> tuple[dict, list[Issue]]:
    """Replace every ``${key}`` across the serialized descriptor.

    Returns the substituted project map and one unused-variable issue per
    declared property that no placeholder in the descriptor references.
    """
    descriptor = arena[index]
    declared = arena.effective_properties(index)
    serialized = json.dumps(descriptor.raw)

    issues = [
        Issue.unused_variable(key, value)
        for key, value in declared.items()
        if key not in RESERVED_PROPERTIES and f"${{{key}}}" not in serialized
    ]

    values = {**implicit_properties(descriptor), **declared}

    def _replace(m: re.Match) -> str:
        value = _lookup(m.group(1), values)
        if value is None:
            return m.group(0)
        # keep the JSON document valid whatever the property holds
        return json.dumps(_expand(value, values))[1:-1]

    try:
        substituted = json.loads(_PLACEHOLDER_RE.sub(_replace, serialized))
    except json.JSONDecodeError as exc:
        raise ManifestParseError(descriptor.location, f"variable substitution: {exc}", issues) from exc
    return substituted, issues


def extract_candidates(
    project: dict, include_test: bool
) -> tuple[list[Coordinate], list[Coordinate]]:
    """Fold dependencies, plugins, parent and managed entries into one list.

    Returns ``(candidates, managed)``; ``managed`` is the descriptor's own
    dependency-management table, which is also part of ``candidates``.
    """
    dependencies = coordinates(project, "dependencies", "dependency")
    plugins = coordinates(project, "build", "plugins", "plugin")
    for profile in as_list(mapping(project.get("profiles")).get("profile")):
        dependencies += coordinates(profile, "dependencies", "dependency")
        plugins += coordinates(profile, "build", "plugins", "plugin")
    managed = coordinates(project, "dependencyManagement", "dependencies", "dependency")

    candidates = dependencies + plugins
    parent = Coordinate.from_map(project.get("parent"))
    if parent is not None and parent.artifact_id:
        candidates.append(parent)
    candidates += managed
    if not include_test:
        candidates = [c for c in candidates if c.scope != "test"]
    return candidates, managed
