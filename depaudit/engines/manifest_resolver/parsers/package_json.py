"""Resolver for npm package.json manifests."""

from __future__ import annotations

import json
import re
from typing import TYPE_CHECKING

from depaudit.engines.manifest_resolver.models import Dependency, Ecosystem, Issue
from depaudit.engines.manifest_resolver.registry import register_resolver
from depaudit.exceptions import ManifestParseError

if TYPE_CHECKING:
    from depaudit.engines.manifest_resolver.resolver import Resolver

# git+ssh://git@github.com/org/repo.git#v1.2.0 -> "v1.2.0"
_GIT_RE = re.compile(r"^git(?:\+(?:https?|ssh|git))?://[^#]+?(?:#(.+))?$")

# Longest comparators first so ">=" is not read as ">".
_COMPARATOR_RE = re.compile(r"^(>=|<=|>|<|~|\^)")


def split_version_spec(name: str, spec: str, issues: list[Issue]) -> str:
    """Return the bare version of an npm *spec*, flagging range comparators."""
    spec = spec.strip()
    m = _GIT_RE.match(spec)
    if m:
        return m.group(1) or ""
    m = _COMPARATOR_RE.match(spec)
    if m:
        issues.append(Issue.weak_version(name, spec, m.group(1)))
        return spec[m.end() :]
    return spec


class PackageJsonResolver:
    ecosystem = Ecosystem.JAVASCRIPT
    file_names = ["package.json"]

    def resolve(
        self, ctx: Resolver, location: str, include_test: bool
    ) -> tuple[list[Dependency], list[Issue]]:
        try:
            data = json.loads(ctx.read_text(location))
        except json.JSONDecodeError as exc:
            raise ManifestParseError(location, str(exc)) from exc
        if not isinstance(data, dict):
            raise ManifestParseError(location, "top-level JSON value is not an object")

        dep_map = self._section(location, data, "dependencies")
        if include_test:
            # dev entries win on name collisions
            dep_map.update(self._section(location, data, "devDependencies"))

        deps: list[Dependency] = []
        issues: list[Issue] = []
        for name, spec in dep_map.items():
            version = split_version_spec(name, str(spec), issues)
            deps.append(Dependency(name, version, Ecosystem.JAVASCRIPT))
        return deps, issues

    @staticmethod
    def _section(location: str, data: dict, key: str) -> dict:
        section = data.get(key) or {}
        if not isinstance(section, dict):
            raise ManifestParseError(location, f"'{key}' is not an object")
        return dict(section)


register_resolver(PackageJsonResolver())
