"""Resolver for Glide (glide.yaml + glide.lock) Go manifests."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

import structlog
import yaml

from depaudit.engines.manifest_resolver.models import Dependency, Ecosystem, Issue
from depaudit.engines.manifest_resolver.registry import register_resolver
from depaudit.exceptions import FileReadError, ManifestParseError

if TYPE_CHECKING:
    from depaudit.engines.manifest_resolver.resolver import Resolver

log = structlog.get_logger("depaudit.resolver")

_COMMIT_RE = re.compile(r"^[0-9a-f]{7,40}$")


def load_text_yaml(location: str, content: str) -> object:
    """Load YAML keeping every scalar as text (``1.10`` stays ``"1.10"``)."""
    try:
        return yaml.load(content, Loader=yaml.BaseLoader)
    except yaml.YAMLError as exc:
        raise ManifestParseError(location, str(exc)) from exc


def _entries(location: str, doc: dict, key: str, name_key: str) -> list[tuple[str, str]]:
    entries = doc.get(key) or []
    if not isinstance(entries, list):
        raise ManifestParseError(location, f"'{key}' is not a list")
    result: list[tuple[str, str]] = []
    for entry in entries:
        if not isinstance(entry, dict) or not entry.get(name_key):
            raise ManifestParseError(location, f"'{key}' entry without '{name_key}'")
        result.append((entry[name_key], entry.get("version") or ""))
    return result


class GlideYamlResolver:
    ecosystem = Ecosystem.GO
    file_names = ["glide.yaml"]

    def resolve(
        self, ctx: Resolver, location: str, include_test: bool
    ) -> tuple[list[Dependency], list[Issue]]:
        manifest = load_text_yaml(location, ctx.read_text(location)) or {}
        if not isinstance(manifest, dict):
            raise ManifestParseError(location, "manifest is not a mapping")

        lock_location = location[: -len(".yaml")] + ".lock"
        try:
            lock = load_text_yaml(lock_location, ctx.read_text(lock_location)) or {}
        except FileReadError:
            log.warning("glide.lock_missing", location=lock_location)
            lock = {}
        if not isinstance(lock, dict):
            raise ManifestParseError(lock_location, "lock file is not a mapping")

        imports = _entries(location, manifest, "import", "package")
        locked = _entries(lock_location, lock, "imports", "name")
        if include_test:
            imports += _entries(location, manifest, "testImport", "package")
            locked += _entries(lock_location, lock, "testImports", "name")
        revisions = {}
        for name, revision in locked:
            revisions.setdefault(name, revision)

        deps: list[Dependency] = []
        issues: list[Issue] = []
        for name, version in imports:
            # A stated manifest version is trusted; the lock only backfills.
            if not version:
                issues.append(Issue.missing_version(name))
                version = revisions.get(name, "")
                if version and not _COMMIT_RE.match(version.lower()):
                    issues.append(Issue.unknown_sha(name, version))
            deps.append(Dependency(name, version, Ecosystem.GO))
        return deps, issues


register_resolver(GlideYamlResolver())
