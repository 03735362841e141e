"""CLI entry point for standalone usage: depaudit.

Subcommands:
    depaudit scan /path/to/repo                 # discover and resolve every manifest
    depaudit scan /path/to/repo/package.json    # a single manifest
    depaudit scan /path/to/repo --test --json   # include test / dev dependencies, JSON out
    depaudit formats                            # list recognized manifest names
"""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path

import click

from depaudit.core.logging import setup_logging
from depaudit.engines.manifest_resolver import ResolveReport, Resolver, resolve_many
from depaudit.engines.manifest_resolver.registry import RESOLVER_REGISTRY, discover_manifests


def _report_to_dict(report: ResolveReport) -> dict:
    return {
        "dependencies": [
            {"name": d.name, "version": d.version, "ecosystem": d.ecosystem.value}
            for d in report.dependencies
        ],
        "issues": [str(i) for i in report.issues],
        "errors": report.errors,
    }


def _echo_report(report: ResolveReport) -> None:
    if not report.dependencies:
        click.echo("No dependencies found.")
    else:
        click.echo(f"Found {len(report.dependencies)} dependencies\n")
        ecosystem = None
        for d in report.dependencies:
            if d.ecosystem != ecosystem:
                ecosystem = d.ecosystem
                click.echo(f"  {ecosystem.value}")
            click.echo(f"    {d.name} {d.version or '(unknown)'}")
        click.echo()

    if report.issues:
        click.echo(f"Issues ({len(report.issues)}):")
        for issue in report.issues:
            click.echo(f"  - {issue}")
        click.echo()


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging")
def main(verbose: bool) -> None:
    """depaudit: resolve declared dependencies from package manifests."""
    setup_logging("DEBUG" if verbose else None)


@main.command("scan")
@click.argument("target", type=click.Path(exists=True))
@click.option("--test", "include_test", is_flag=True, help="Include test / dev dependencies")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.option("--concurrency", type=int, default=None, help="Manifests resolved in parallel")
def scan(target: str, include_test: bool, as_json: bool, concurrency: int | None) -> None:
    """Resolve a manifest file, or every manifest found under a directory."""
    path = Path(target).resolve()
    if path.is_dir():
        locations = [str(p) for p in discover_manifests(path)]
    else:
        locations = [str(path)]

    report = asyncio.run(resolve_many(Resolver(), locations, include_test, concurrency))
    if as_json:
        click.echo(json.dumps(_report_to_dict(report), indent=2))
    else:
        _echo_report(report)

    for location, error in sorted(report.errors.items()):
        click.echo(f"Error: {location}: {error}", err=True)
    if report.errors:
        sys.exit(1)


@main.command("formats")
def formats() -> None:
    """List the manifest file names depaudit recognizes."""
    for name, resolver in sorted(RESOLVER_REGISTRY.items()):
        click.echo(f"{name:<24} {resolver.ecosystem.value}")
