"""XML to structural map decoding for Maven POM files.

A generic XML → dict decoding cannot tell "one ``<dependency>``" from "a list
of ``<dependency>`` elements": a single child decodes to a mapping, repeated
children to a list.  :func:`normalize_project` removes that ambiguity once,
before typed decoding, by coercing every known list container into a list.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET

from depaudit.exceptions import ManifestParseError

# Containers whose leaf element may repeat, relative to <project> or <profile>.
_PROJECT_LIST_PATHS: tuple[tuple[str, ...], ...] = (
    ("dependencies", "dependency"),
    ("dependencyManagement", "dependencies", "dependency"),
    ("build", "plugins", "plugin"),
    ("build", "pluginManagement", "plugins", "plugin"),
    ("modules", "module"),
)
_PROFILE_LIST_PATHS: tuple[tuple[str, ...], ...] = (
    ("dependencies", "dependency"),
    ("build", "plugins", "plugin"),
    ("build", "pluginManagement", "plugins", "plugin"),
)


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def element_to_value(element: ET.Element) -> dict | str:
    """Decode *element* into text (leaf) or a dict (repeated tags → list)."""
    children = list(element)
    if not children:
        return (element.text or "").strip()
    result: dict = {}
    for child in children:
        key = _local_name(child.tag)
        value = element_to_value(child)
        if key not in result:
            result[key] = value
        elif isinstance(result[key], list):
            result[key].append(value)
        else:
            result[key] = [result[key], value]
    return result


def xml_to_map(location: str, data: bytes) -> dict:
    """Decode a POM document into ``{"project": {...}}``."""
    try:
        root = ET.fromstring(data)
    except ET.ParseError as exc:
        raise ManifestParseError(location, str(exc)) from exc
    tag = _local_name(root.tag)
    if tag != "project":
        raise ManifestParseError(location, f"root element is <{tag}>, expected <project>")
    value = element_to_value(root)
    return {tag: value if isinstance(value, dict) else {}}


def as_list(value: object) -> list:
    """Wrap a singleton in a list; empty text and None become ``[]``."""
    if value is None or value == "":
        return []
    if isinstance(value, list):
        return value
    return [value]


def mapping(value: object) -> dict:
    return value if isinstance(value, dict) else {}


def _coerce(node: dict, path: tuple[str, ...]) -> None:
    *parents, leaf = path
    for key in parents:
        child = node.get(key)
        if not isinstance(child, dict):
            return
        node = child
    node[leaf] = as_list(node.get(leaf))


def normalize_project(project: dict) -> dict:
    """Coerce the list containers of a decoded ``<project>`` in place."""
    for path in _PROJECT_LIST_PATHS:
        _coerce(project, path)
    profiles = project.get("profiles")
    if isinstance(profiles, dict):
        profiles["profile"] = [p for p in as_list(profiles.get("profile")) if isinstance(p, dict)]
        for profile in profiles["profile"]:
            for path in _PROFILE_LIST_PATHS:
                _coerce(profile, path)
    properties = project.get("properties")
    if properties is not None and not isinstance(properties, dict):
        project["properties"] = {}
    return project
