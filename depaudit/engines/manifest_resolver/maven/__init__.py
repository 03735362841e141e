"""Maven POM hierarchy support for the pom.xml resolver."""

from depaudit.engines.manifest_resolver.maven.build_tool import (
    MAVEN_GUARD,
    BuildTool,
    MavenRunner,
    ResolvedArtifact,
    ToolGuard,
)

__all__ = ["MAVEN_GUARD", "BuildTool", "MavenRunner", "ResolvedArtifact", "ToolGuard"]
