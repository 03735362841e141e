"""Shared fixtures for depaudit tests.

Resolvers read through an in-memory file reader and a fake Maven, so no
test touches the real file system (beyond ``tmp_path``) or runs ``mvn``.
"""

import pytest

from depaudit.engines.manifest_resolver import Resolver
from depaudit.testing import FakeBuildTool, MemoryFileReader


@pytest.fixture
def reader():
    return MemoryFileReader()


@pytest.fixture
def build_tool():
    return FakeBuildTool()


@pytest.fixture
def resolver(reader, build_tool):
    return Resolver(reader, build_tool)
