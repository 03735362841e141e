"""Tests for dispatch, discovery and batch resolution."""

from __future__ import annotations

import pytest

from depaudit.engines.manifest_resolver import (
    Dependency,
    Ecosystem,
    Issue,
    Resolver,
    resolve_many,
)
from depaudit.engines.manifest_resolver.maven import MavenRunner
from depaudit.engines.manifest_resolver.reader import FileReader, LocalFileReader
from depaudit.engines.manifest_resolver.registry import (
    RESOLVER_REGISTRY,
    basename,
    discover_manifests,
    manifest_ecosystem,
)
from depaudit.engines.manifest_resolver.resolver import build_report
from depaudit.exceptions import (
    FileReadError,
    ManifestParseError,
    ResolveError,
    UnknownManifestError,
)
from depaudit.testing import MemoryFileReader


def _py(name: str, version: str = "") -> Dependency:
    return Dependency(name, version, Ecosystem.PYTHON)


# ── registry ─────────────────────────────────────────────────────────────


class TestRegistry:
    def test_all_formats_registered(self):
        expected = {
            "requirements.txt",
            "requirements-dev.txt",
            "package.json",
            "glide.yaml",
            "environment.yml",
            "environment-dev.yml",
            "meta.yaml",
            "pom.xml",
        }
        assert expected == set(RESOLVER_REGISTRY)

    @pytest.mark.parametrize(
        "location,ecosystem",
        [
            ("svc/pom.xml", Ecosystem.JAVA),
            ("web/package.json", Ecosystem.JAVASCRIPT),
            ("go/glide.yaml", Ecosystem.GO),
            ("requirements-dev.txt", Ecosystem.PYTHON),
            ("env/environment-dev.yml", Ecosystem.CONDA),
            ("recipe/meta.yaml", Ecosystem.CONDA),
            ("README.md", Ecosystem.UNKNOWN),
        ],
    )
    def test_manifest_ecosystem(self, location, ecosystem):
        assert manifest_ecosystem(location) is ecosystem

    def test_basename_handles_backslashes(self):
        assert basename("C:\\repo\\app\\requirements.txt") == "requirements.txt"

    def test_discover_manifests(self, tmp_path):
        (tmp_path / "requirements.txt").write_text("flask==2.0\n")
        (tmp_path / "README.md").write_text("# readme\n")
        (tmp_path / "web").mkdir()
        (tmp_path / "web" / "package.json").write_text("{}")
        (tmp_path / "node_modules" / "left-pad").mkdir(parents=True)
        (tmp_path / "node_modules" / "left-pad" / "package.json").write_text("{}")
        (tmp_path / "proj" / "core").mkdir(parents=True)
        (tmp_path / "proj" / "pom.xml").write_text("<project/>")
        (tmp_path / "proj" / "core" / "pom.xml").write_text("<project/>")

        found = {p.relative_to(tmp_path).as_posix() for p in discover_manifests(tmp_path)}
        assert found == {"requirements.txt", "web/package.json", "proj/pom.xml"}

    def test_discover_returns_paths(self, tmp_path):
        (tmp_path / "meta.yaml").write_text("package: {}\n")
        assert discover_manifests(tmp_path) == [tmp_path / "meta.yaml"]


# ── file reader ──────────────────────────────────────────────────────────


class TestFileReaders:
    def test_local_reader(self, tmp_path):
        path = tmp_path / "requirements.txt"
        path.write_bytes(b"click==6.6\n")
        assert LocalFileReader().read(str(path)) == b"click==6.6\n"

    def test_local_reader_missing(self, tmp_path):
        with pytest.raises(FileReadError):
            LocalFileReader().read(str(tmp_path / "nope.txt"))

    def test_readers_satisfy_protocol(self):
        assert isinstance(LocalFileReader(), FileReader)
        assert isinstance(MemoryFileReader(), FileReader)

    def test_default_collaborators(self):
        resolver = Resolver()
        assert isinstance(resolver.reader, LocalFileReader)
        assert isinstance(resolver.build_tool, MavenRunner)


# ── dispatch ─────────────────────────────────────────────────────────────


class TestResolver:
    def test_unknown_manifest(self, resolver):
        with pytest.raises(UnknownManifestError) as exc_info:
            resolver.resolve("app/setup.cfg")
        assert exc_info.value.issues == []

    def test_missing_file(self, resolver):
        with pytest.raises(FileReadError):
            resolver.resolve("app/requirements.txt")

    def test_dispatch_by_basename(self, reader, resolver):
        reader.add("a/b/package.json", '{"dependencies": {"left-pad": "1.3.0"}}')
        deps, issues = resolver.resolve("a/b/package.json")
        assert deps == [Dependency("left-pad", "1.3.0", Ecosystem.JAVASCRIPT)]
        assert issues == []

    def test_invalid_utf8_is_a_parse_error(self, reader, resolver):
        reader.add("x/requirements.txt", b"click==6.6\n\xff\xfe\n")
        with pytest.raises(ManifestParseError, match="not valid UTF-8"):
            resolver.resolve("x/requirements.txt")

    def test_local_files(self, tmp_path):
        path = tmp_path / "requirements.txt"
        path.write_text("click==6.6\n")
        deps, _ = Resolver(build_tool=MavenRunner("mvn")).resolve(str(path))
        assert deps == [_py("click", "6.6")]


# ── batch resolution ─────────────────────────────────────────────────────


class TestResolveMany:
    @pytest.fixture
    def files(self, reader):
        reader.add("a/requirements.txt", "click==6.6\nkcilc>=0.6\n")
        reader.add("b/requirements.txt", "click==6.6\n")
        reader.add("c/requirements.txt", "flask>=1.0\n==bad\n")
        return reader

    @pytest.mark.asyncio
    async def test_merges_and_deduplicates(self, files, resolver):
        report = await resolve_many(resolver, ["a/requirements.txt", "b/requirements.txt"])
        assert report.dependencies == [_py("click", "6.6"), _py("kcilc", "0.6")]
        assert report.duplicates == [_py("click", "6.6")]
        assert report.issues == [Issue.weak_version("kcilc", "0.6", ">=")]
        assert report.errors == {}

    @pytest.mark.asyncio
    async def test_failures_keep_issues(self, files, resolver):
        report = await resolve_many(
            resolver,
            ["a/requirements.txt", "c/requirements.txt", "d/setup.cfg"],
            concurrency=2,
        )
        assert set(report.errors) == {"c/requirements.txt", "d/setup.cfg"}
        assert report.issues == [
            Issue.weak_version("kcilc", "0.6", ">="),
            Issue.weak_version("flask", "1.0", ">="),
        ]
        assert report.dependencies == [_py("click", "6.6"), _py("kcilc", "0.6")]

    @pytest.mark.asyncio
    async def test_empty_batch(self, resolver):
        report = await resolve_many(resolver, [])
        assert report.dependencies == []
        assert report.errors == {}

    @pytest.mark.asyncio
    async def test_concurrency_from_env(self, files, resolver, monkeypatch):
        monkeypatch.setenv("DEPAUDIT_CONCURRENCY", "1")
        report = await resolve_many(resolver, ["a/requirements.txt", "b/requirements.txt"])
        assert len(report.dependencies) == 2

    def test_build_report_is_order_independent(self):
        outcomes = [
            ("a", ([_py("b", "1"), _py("a", "1")], [Issue("z")])),
            ("b", ([_py("a", "1")], [Issue("y")])),
            ("c", ResolveError("boom", [Issue("x")])),
        ]
        forward = build_report(outcomes)
        backward = build_report(list(reversed(outcomes)))
        assert forward.dependencies == backward.dependencies == [_py("a", "1"), _py("b", "1")]
        assert forward.issues == backward.issues == [Issue("x"), Issue("y"), Issue("z")]
        assert forward.errors == {"c": "boom"}


def test_reader_is_path_agnostic():
    reader = MemoryFileReader({"x/requirements.txt": b"a==1\n"})
    assert Resolver(reader).resolve("x/requirements.txt")[0] == [_py("a", "1")]
