"""Resolver for Conda environment.yml files."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

import structlog

from depaudit.engines.manifest_resolver.models import Dependency, Ecosystem, Issue
from depaudit.engines.manifest_resolver.parsers.glide_yaml import load_text_yaml
from depaudit.engines.manifest_resolver.parsers.requirements_txt import (
    clean_line,
    parse_plain_line,
    parse_vcs_line,
)
from depaudit.engines.manifest_resolver.registry import basename, register_resolver
from depaudit.exceptions import FileReadError, ManifestParseError

if TYPE_CHECKING:
    from depaudit.engines.manifest_resolver.resolver import Resolver

log = structlog.get_logger("depaudit.resolver")

_CONDA_RE = re.compile(r"^([^>=<]+)(<=|>=|=)?(.+)?$")

MAIN_FILE = "environment.yml"
DEV_FILE = "environment-dev.yml"


def parse_conda_spec(spec: str, issues: list[Issue]) -> Dependency | None:
    """Parse one bare Conda spec such as ``numpy=1.14.0=py27_blas_openblas_200``."""
    spec = spec.strip()
    tokens = spec.split()
    if len(tokens) > 1 and not re.search(r"[<>=]", spec):
        # "numpy 1.14.0 py27_0" is an exact match-spec
        return Dependency(tokens[0], "=".join(tokens[1:]), Ecosystem.CONDA)
    m = _CONDA_RE.match(spec)
    if not m:
        return None
    name = m.group(1).strip()
    comparator = m.group(2) or ""
    version = (m.group(3) or "").strip()
    if comparator != "=":
        issues.append(Issue.weak_version(name, version, comparator))
    return Dependency(name, version, Ecosystem.CONDA)


def split_entries(location: str, doc: object) -> tuple[list[str], list[str]]:
    """Split the ``dependencies`` list into (conda specs, pip lines)."""
    if doc is None:
        return [], []
    if not isinstance(doc, dict):
        raise ManifestParseError(location, "environment is not a mapping")
    entries = doc.get("dependencies") or []
    if not isinstance(entries, list):
        raise ManifestParseError(location, "'dependencies' is not a list")

    conda_specs: list[str] = []
    pip_lines: list[str] = []
    for entry in entries:
        if isinstance(entry, str):
            conda_specs.append(entry)
        elif isinstance(entry, dict):
            if "pip" not in entry:
                raise ManifestParseError(location, "mapping entry without a 'pip' key")
            pip_entries = entry["pip"] or []
            if not isinstance(pip_entries, list):
                raise ManifestParseError(location, "'pip' entry is not a list")
            for pip_entry in pip_entries:
                if not isinstance(pip_entry, str):
                    raise ManifestParseError(location, "pip dependency is not a string")
                pip_lines.append(pip_entry)
        else:
            raise ManifestParseError(location, f"unexpected dependency entry {entry!r}")
    return conda_specs, pip_lines


class EnvironmentYmlResolver:
    ecosystem = Ecosystem.CONDA
    file_names = [MAIN_FILE, DEV_FILE]

    def resolve(
        self, ctx: Resolver, location: str, include_test: bool
    ) -> tuple[list[Dependency], list[Issue]]:
        deps: list[Dependency] = []
        issues: list[Issue] = []
        self._parse(location, ctx.read_text(location), deps, issues)
        if include_test and basename(location) == MAIN_FILE:
            dev_location = location[: -len(MAIN_FILE)] + DEV_FILE
            try:
                dev_text = ctx.read_text(dev_location)
            except FileReadError:
                log.debug("resolver.companion_missing", location=dev_location)
            else:
                self._parse(dev_location, dev_text, deps, issues)
        return deps, issues

    @staticmethod
    def _parse(location: str, content: str, deps: list[Dependency], issues: list[Issue]) -> None:
        conda_specs, pip_lines = split_entries(location, load_text_yaml(location, content))
        for spec in conda_specs:
            dep = parse_conda_spec(spec, issues)
            if dep is None:
                raise ManifestParseError(location, f"bad conda spec {spec!r}", issues)
            deps.append(dep)
        for raw_line in pip_lines:
            line = clean_line(raw_line)
            if line is None:
                continue
            if parse_vcs_line(line) is not None:
                log.debug("conda.pip_vcs_skipped", location=location, line=line)
                continue
            dep = parse_plain_line(line, issues)
            if dep is None:
                raise ManifestParseError(location, f"bad pip line {raw_line!r}", issues)
            deps.append(dep)


register_resolver(EnvironmentYmlResolver())
