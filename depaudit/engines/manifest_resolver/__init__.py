"""Manifest resolver engine — normalized dependencies and issues from manifests."""

from depaudit.engines.manifest_resolver.models import (
    Dependency,
    Ecosystem,
    Issue,
    ResolveReport,
)
from depaudit.engines.manifest_resolver.resolver import Resolver, resolve_many

__all__ = ["Dependency", "Ecosystem", "Issue", "ResolveReport", "Resolver", "resolve_many"]
