"""Tests for the Glide manifest + lock resolver."""

from __future__ import annotations

import pytest

from depaudit.engines.manifest_resolver.models import Dependency, Ecosystem, Issue
from depaudit.exceptions import ManifestParseError

MANIFEST = "svc/glide.yaml"
LOCK = "svc/glide.lock"

GLIDE_YAML = """\
package: some/cool/place
import:
  - package: dep_one
    version: abc
  - package: dep_two
    version: 1.3
    subpackages:
    - dont_include
testImport:
  - package: dep_three
"""

SHA = "a1b2c3d4e5f6a1b2c3d4e5f6a1b2c3d4e5f6a1b2"

GLIDE_LOCK = f"""\
hash: 1234
updated: 2018-01-01T00:00:00Z
imports:
  - name: dep_one
    version: 0123456789abcdef0123456789abcdef01234567
  - name: dep_two
    version: 1.2
testImports:
  - name: dep_three
    version: {SHA}
"""


def _go(name: str, version: str = "") -> Dependency:
    return Dependency(name, version, Ecosystem.GO)


# ── resolver ─────────────────────────────────────────────────────────────


class TestGlideYamlResolver:
    def test_with_test_imports(self, reader, resolver):
        reader.add(MANIFEST, GLIDE_YAML)
        reader.add(LOCK, GLIDE_LOCK)
        deps, issues = resolver.resolve(MANIFEST, include_test=True)
        assert deps == [_go("dep_one", "abc"), _go("dep_three", SHA), _go("dep_two", "1.3")]
        assert issues == [Issue.missing_version("dep_three")]

    def test_without_test_imports(self, reader, resolver):
        reader.add(MANIFEST, GLIDE_YAML)
        reader.add(LOCK, GLIDE_LOCK)
        deps, issues = resolver.resolve(MANIFEST)
        assert deps == [_go("dep_one", "abc"), _go("dep_two", "1.3")]
        assert issues == []

    def test_manifest_version_is_not_checked_against_lock(self, reader, resolver):
        # dep_two is 1.3 in the manifest and 1.2 in the lock
        reader.add(MANIFEST, GLIDE_YAML)
        reader.add(LOCK, GLIDE_LOCK)
        deps, _ = resolver.resolve(MANIFEST)
        assert _go("dep_two", "1.3") in deps

    def test_missing_lock_is_empty(self, reader, resolver):
        reader.add(MANIFEST, GLIDE_YAML)
        deps, issues = resolver.resolve(MANIFEST, include_test=True)
        assert _go("dep_three") in deps
        assert issues == [Issue.missing_version("dep_three")]

    def test_non_hex_lock_revision(self, reader, resolver):
        reader.add(MANIFEST, GLIDE_YAML)
        reader.add(LOCK, "imports: []\ntestImports:\n  - name: dep_three\n    version: v2.0.0\n")
        deps, issues = resolver.resolve(MANIFEST, include_test=True)
        assert _go("dep_three", "v2.0.0") in deps
        assert issues == [
            Issue.missing_version("dep_three"),
            Issue.unknown_sha("dep_three", "v2.0.0"),
        ]

    def test_versions_stay_text(self, reader, resolver):
        reader.add(MANIFEST, "import:\n  - package: dep\n    version: 1.10\n")
        reader.add(LOCK, "imports: []\n")
        deps, _ = resolver.resolve(MANIFEST)
        assert deps == [_go("dep", "1.10")]

    def test_malformed_yaml(self, reader, resolver):
        reader.add(MANIFEST, "import: [unclosed\n")
        with pytest.raises(ManifestParseError):
            resolver.resolve(MANIFEST)

    def test_entry_without_package(self, reader, resolver):
        reader.add(MANIFEST, "import:\n  - version: 1.0\n")
        reader.add(LOCK, "imports: []\n")
        with pytest.raises(ManifestParseError):
            resolver.resolve(MANIFEST)
