"""Manifest resolvers — auto-registered on import."""

from depaudit.engines.manifest_resolver.parsers import (
    environment_yml,  # noqa: F401
    glide_yaml,  # noqa: F401
    meta_yaml,  # noqa: F401
    package_json,  # noqa: F401
    pom_xml,  # noqa: F401
    requirements_txt,  # noqa: F401
)
