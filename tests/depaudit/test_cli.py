"""Tests for the depaudit CLI (no pom.xml fixtures, so Maven is never invoked)."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import pytest
import structlog
from click.testing import CliRunner

from depaudit.cli import main


@pytest.fixture(autouse=True)
def _no_logging_setup():
    with patch("depaudit.cli.setup_logging"), structlog.testing.capture_logs():
        yield


# ── scan ──


class TestScan:
    def test_directory_as_json(self, tmp_path: Path):
        (tmp_path / "requirements.txt").write_text("click==6.6\nkcilc>=0.6\n")
        (tmp_path / "web").mkdir()
        (tmp_path / "web" / "package.json").write_text('{"dependencies": {"left-pad": "1.3.0"}}')

        result = CliRunner().invoke(main, ["scan", str(tmp_path), "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["dependencies"] == [
            {"name": "left-pad", "version": "1.3.0", "ecosystem": "javascript"},
            {"name": "click", "version": "6.6", "ecosystem": "python"},
            {"name": "kcilc", "version": "0.6", "ecosystem": "python"},
        ]
        assert data["issues"] == ["Version [0.6] on package [kcilc] is not definite. Tag: [>=]"]
        assert data["errors"] == {}

    def test_single_file_text_output(self, tmp_path: Path):
        manifest = tmp_path / "requirements.txt"
        manifest.write_text("pytides\n")
        result = CliRunner().invoke(main, ["scan", str(manifest)])
        assert result.exit_code == 0
        assert "pytides (unknown)" in result.output
        assert "Issues (1):" in result.output

    def test_include_test(self, tmp_path: Path):
        (tmp_path / "requirements.txt").write_text("click==6.6\n")
        (tmp_path / "requirements-dev.txt").write_text("pytest==8.0\n")
        result = CliRunner().invoke(main, ["scan", str(tmp_path / "requirements.txt"), "--test"])
        assert result.exit_code == 0
        assert "pytest 8.0" in result.output

    def test_parse_error_exits_nonzero(self, tmp_path: Path):
        (tmp_path / "package.json").write_text("not json{{{")
        result = CliRunner().invoke(main, ["scan", str(tmp_path)])
        assert result.exit_code == 1
        assert "cannot parse" in result.output

    def test_empty_directory(self, tmp_path: Path):
        result = CliRunner().invoke(main, ["scan", str(tmp_path)])
        assert result.exit_code == 0
        assert "No dependencies found." in result.output

    def test_missing_target(self, tmp_path: Path):
        result = CliRunner().invoke(main, ["scan", str(tmp_path / "nope")])
        assert result.exit_code != 0


# ── formats ──


class TestFormats:
    def test_lists_registered_names(self):
        result = CliRunner().invoke(main, ["formats"])
        assert result.exit_code == 0
        assert "pom.xml" in result.output
        assert "environment-dev.yml" in result.output
