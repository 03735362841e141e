"""Resolver for conda-build meta.yaml recipes.

Jinja2 placeholders (``{{ version }}``) are not evaluated: they pass through
literally as part of the version text. Statement lines such as
``{% set version = "1.0" %}`` are dropped before the YAML is loaded.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from depaudit.engines.manifest_resolver.models import Dependency, Ecosystem, Issue
from depaudit.engines.manifest_resolver.parsers.glide_yaml import load_text_yaml
from depaudit.engines.manifest_resolver.registry import register_resolver
from depaudit.exceptions import ManifestParseError

if TYPE_CHECKING:
    from depaudit.engines.manifest_resolver.resolver import Resolver

_STATEMENT_RE = re.compile(r"^\s*\{%.*%\}\s*$")

# "key: {{ expr }}" or "- {{ expr }}" -- a value that opens with a placeholder
_LEADING_PLACEHOLDER_RE = re.compile(r"^(\s*(?:-\s+)?(?:[^\s:#'\"{][^:#]*:\s+)?)(\{\{.*?)(\s+#.*)?$")

_TOKEN_RE = re.compile(r"\{\{.*?\}\}|\S+")


def strip_template(content: str) -> str:
    """Make a templated recipe loadable as plain YAML without evaluating it."""
    lines: list[str] = []
    for line in content.splitlines():
        if _STATEMENT_RE.match(line):
            continue
        m = _LEADING_PLACEHOLDER_RE.match(line)
        if m:
            value = m.group(2).rstrip().replace("'", "''")
            line = f"{m.group(1)}'{value}'"
        lines.append(line)
    return "\n".join(lines)


def split_requirement(entry: str) -> tuple[str, str]:
    """Split ``name [version] [build]`` into (name, "version=build")."""
    tokens = _TOKEN_RE.findall(entry)
    if not tokens:
        return "", ""
    return tokens[0], "=".join(tokens[1:])


class MetaYamlResolver:
    ecosystem = Ecosystem.CONDA
    file_names = ["meta.yaml"]

    def resolve(
        self, ctx: Resolver, location: str, include_test: bool
    ) -> tuple[list[Dependency], list[Issue]]:
        recipe = load_text_yaml(location, strip_template(ctx.read_text(location))) or {}
        if not isinstance(recipe, dict):
            raise ManifestParseError(location, "recipe is not a mapping")

        requirements = recipe.get("requirements") or {}
        if not isinstance(requirements, dict):
            raise ManifestParseError(location, "'requirements' is not a mapping")
        entries = self._list(location, requirements, "build") + self._list(
            location, requirements, "run"
        )
        if include_test:
            test_section = recipe.get("test") or {}
            if isinstance(test_section, dict):
                entries += self._list(location, test_section, "requires")

        deps: list[Dependency] = []
        issues: list[Issue] = []
        seen: set[tuple[str, str]] = set()
        for entry in entries:
            name, version = split_requirement(entry)
            if not name or (name, version) in seen:
                continue
            seen.add((name, version))
            if not version:
                issues.append(Issue.missing_version(name))
            deps.append(Dependency(name, version, Ecosystem.CONDA))
        return deps, issues

    @staticmethod
    def _list(location: str, section: dict, key: str) -> list[str]:
        value = section.get(key) or []
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise ManifestParseError(location, f"'{key}' is not a list of strings")
        return value


register_resolver(MetaYamlResolver())
