"""Dependency drift — loose ranges and duplicated resolved versions."""

from collections.abc import Callable, Iterable

from dep_drift_sec.models import (
    DependencyGraph,
    DependencyNode,
    DriftIssue,
    DriftIssueGroup,
    DriftIssueType,
)

RangeClassifier = Callable[[str], bool]

LOOSE_RANGE_PREFIXES = ("^", "~")


def is_loose_range(version: str) -> bool:
    """True for caret and tilde ranges, which let npm float to newer releases."""
    return version.startswith(LOOSE_RANGE_PREFIXES)


def _range_usage_issue(node: DependencyNode) -> DriftIssue:
    declared = node.version
    pin = "Pin it to an exact version"
    if node.resolved_version:
        pin += f' (e.g. "{node.resolved_version}")'
    return DriftIssue(
        dependency_name=node.name,
        type=DriftIssueType.range_usage,
        expected=declared,
        actual=declared,
        reason=(
            f'"{node.name}" is declared as "{declared}", which is a range rather than an '
            "exact version, so a fresh install can pick up a newer release than the "
            f"one you tested. {pin} so every install resolves the same code."
        ),
    )


def _transitive_drift_issue(name: str, versions: list[str]) -> DriftIssue:
    listed = ", ".join(versions)
    return DriftIssue(
        dependency_name=name,
        type=DriftIssueType.transitive_drift,
        expected=versions[0],
        actual=listed,
        reason=(
            f'Several versions of "{name}" are installed ({listed}). This usually '
            "means packages in the tree ask for incompatible ranges of it; the "
            "duplicates grow the install and can behave differently at runtime."
        ),
    )


def _resolved_versions(nodes: Iterable[DependencyNode]) -> dict[str, list[str]]:
    """Distinct resolved versions per name, in first-seen order."""
    versions: dict[str, dict[str, None]] = {}
    for node in nodes:
        versions.setdefault(node.name, {}).setdefault(node.resolved_version, None)
    return {name: list(seen) for name, seen in versions.items()}


def detect_drift(
    graph: DependencyGraph,
    classifier: RangeClassifier = is_loose_range,
) -> list[DriftIssueGroup]:
    """Find version drift and group it per dependency name.

    Two rules, merged per name:

    - range usage: a direct dependency whose declared version the
      ``classifier`` considers loose (flagged once per name);
    - transitive drift: one name resolved to more than one version
      anywhere in the graph.

    Groups follow the order in which names first appear in the graph and
    copy ``transitive``/``introduced_by`` from that first node. Names with
    no finding produce no group.
    """
    first_nodes: dict[str, DependencyNode] = {}
    issues: dict[str, list[DriftIssue]] = {}

    for node in graph.dependencies:
        first_nodes.setdefault(node.name, node)
        if node.transitive or not classifier(node.version):
            continue
        found = issues.setdefault(node.name, [])
        if not any(i.type == DriftIssueType.range_usage for i in found):
            found.append(_range_usage_issue(node))

    for name, versions in _resolved_versions(graph.dependencies).items():
        if len(versions) > 1:
            issues.setdefault(name, []).append(_transitive_drift_issue(name, versions))

    return [
        DriftIssueGroup(
            dependency_name=name,
            transitive=node.transitive,
            introduced_by=list(node.introduced_by),
            issues=issues[name],
        )
        for name, node in first_nodes.items()
        if issues.get(name)
    ]
