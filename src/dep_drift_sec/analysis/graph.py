"""Dependency graph construction from package.json + package-lock.json.

The lockfile's ``packages`` map is keyed by install path (``""`` is the
project root, ``node_modules/a/node_modules/b`` is ``b`` nested under
``a``). Parent links are recovered from two signals that different npm
versions populate unevenly: the nesting of install paths, and the
``dependencies``/``devDependencies``/``optionalDependencies`` each entry
declares. Both are folded into one name → parents mapping.
"""

import logging
from collections.abc import Iterable, Iterator, Mapping
from typing import Any, Optional, Union

from pydantic import ValidationError

from dep_drift_sec.models import (
    DependencyGraph,
    DependencyNode,
    Environment,
    NodeMetadata,
    RawProjectData,
    RegistryMetadata,
)

logger = logging.getLogger(__name__)

NODE_MODULES = "node_modules/"
DEFAULT_ROOT_NAME = "root"

_DIRECT_SECTIONS = ("dependencies", "devDependencies")
_DECLARED_SECTIONS = ("dependencies", "devDependencies", "optionalDependencies")

MetadataInput = Union[RegistryMetadata, Mapping[str, Any], None]


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def root_name(manifest: Mapping[str, Any]) -> str:
    """Project name from the manifest, ``"root"`` when absent."""
    name = manifest.get("name")
    return name if isinstance(name, str) and name else DEFAULT_ROOT_NAME


def lock_packages(project: RawProjectData) -> dict[str, dict[str, Any]]:
    """The lockfile's ``packages`` map, with non-object entries dropped."""
    packages = _as_dict(project.package_lock.get("packages"))
    return {path: entry for path, entry in packages.items() if isinstance(entry, dict)}


def _package_name(path: str) -> str:
    return path.split(NODE_MODULES)[-1]


def package_names(project: RawProjectData) -> list[str]:
    """Distinct installed package names, in lockfile order."""
    names: dict[str, None] = {}
    for path in lock_packages(project):
        if path.startswith(NODE_MODULES):
            name = _package_name(path)
            if name:
                names.setdefault(name, None)
    return list(names)


def direct_dependencies(manifest: Mapping[str, Any]) -> dict[str, Any]:
    """Union of the manifest's dependencies and devDependencies."""
    direct: dict[str, Any] = {}
    for section in _DIRECT_SECTIONS:
        direct.update(_as_dict(manifest.get(section)))
    return direct


# ── Parent reconstruction ─────────────────────────────────────────────────

def _parent_edges(
    packages: Mapping[str, Mapping[str, Any]], project_name: str
) -> Iterator[tuple[str, str]]:
    """Yield ``(child, parent)`` pairs from both lockfile signals."""
    for path, entry in packages.items():
        segments = path.split(NODE_MODULES)
        if len(segments) > 2:
            yield segments[-1], segments[-2].removesuffix("/")

        current = project_name if path == "" else _package_name(path)
        for section in _DECLARED_SECTIONS:
            for child in _as_dict(entry.get(section)):
                yield child, current


def build_parent_map(
    packages: Mapping[str, Mapping[str, Any]], project_name: str
) -> dict[str, list[str]]:
    """Fold parent edges into name → parents, deduplicated in first-seen order."""
    parents: dict[str, dict[str, None]] = {}
    for child, parent in _parent_edges(packages, project_name):
        parents.setdefault(child, {}).setdefault(parent, None)
    return {child: list(seen) for child, seen in parents.items()}


# ── Metadata projection ───────────────────────────────────────────────────

def _coerce_metadata(name: str, raw: MetadataInput) -> Optional[RegistryMetadata]:
    if raw is None or isinstance(raw, RegistryMetadata):
        return raw
    try:
        return RegistryMetadata.model_validate(raw)
    except ValidationError as e:
        logger.warning("Ignoring malformed registry metadata for %s: %s", name, e)
        return None


def project_metadata(meta: Optional[RegistryMetadata]) -> NodeMetadata:
    """Reduce a registry packument to the facts the analyzers use."""
    if meta is None:
        return NodeMetadata()

    latest = meta.dist_tags.get("latest")
    last_publish = meta.time.get(latest) if isinstance(latest, str) else None

    return NodeMetadata(
        last_publish=last_publish if isinstance(last_publish, str) else None,
        maintainers=len(meta.maintainers) if meta.maintainers is not None else None,
        deprecated=meta.deprecated,
        description=meta.description,
    )


# ── Graph ─────────────────────────────────────────────────────────────────

def _nodes(
    packages: Mapping[str, Mapping[str, Any]],
    direct: Mapping[str, Any],
    parent_map: Mapping[str, list[str]],
    metadata_by_name: Mapping[str, MetadataInput],
    project_name: str,
) -> Iterable[DependencyNode]:
    for path, entry in packages.items():
        if not path.startswith(NODE_MODULES):
            continue
        name = _package_name(path)
        if not name:
            continue

        lock_version = entry.get("version")
        resolved = lock_version if isinstance(lock_version, str) else ""
        requested = direct.get(name)
        is_direct = name in direct

        yield DependencyNode(
            name=name,
            version=requested if is_direct and isinstance(requested, str) and requested else resolved,
            resolved_version=resolved,
            transitive=not is_direct,
            introduced_by=[p for p in parent_map.get(name, []) if p != project_name],
            metadata=project_metadata(_coerce_metadata(name, metadata_by_name.get(name))),
        )


def build_dependency_graph(
    project: RawProjectData,
    metadata_by_name: Optional[Mapping[str, MetadataInput]] = None,
    environment: Union[Environment, str] = Environment.local,
) -> DependencyGraph:
    """Normalize raw manifest + lockfile data into a DependencyGraph.

    One node is produced per lockfile entry installed under
    ``node_modules/``, so a package nested at several paths appears once
    per installed copy. Missing fields degrade to "unknown"; nothing here
    raises on parseable input.

    Args:
        project: Parsed package.json and package-lock.json.
        metadata_by_name: Registry metadata keyed by package name. Names
            without an entry get empty metadata.
        environment: Where the scan runs (local, ci or prod).
    """
    manifest = project.package_json
    project_name = root_name(manifest)
    packages = lock_packages(project)

    dependencies = list(
        _nodes(
            packages,
            direct_dependencies(manifest),
            build_parent_map(packages, project_name),
            metadata_by_name or {},
            project_name,
        )
    )
    logger.debug("Built graph for %s with %d nodes", project_name, len(dependencies))

    return DependencyGraph(
        root=project_name,
        environment=Environment(environment),
        dependencies=dependencies,
    )
