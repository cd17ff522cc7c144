"""Supply-chain heuristics — deprecated, unmaintained, single-maintainer packages.

These are signals derived from registry metadata, not a vulnerability
lookup. Missing metadata means "unknown" and never produces a finding.
"""

import calendar
import logging
import math
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field

from dep_drift_sec.models import (
    DependencyGraph,
    DependencyNode,
    RiskLevel,
    SecurityIssue,
    SecurityIssueGroup,
    SecurityIssueType,
)

logger = logging.getLogger(__name__)

UNMAINTAINED_AFTER_MONTHS = 18
AVERAGE_MONTH_DAYS = 30.44
SECONDS_PER_DAY = 24 * 60 * 60


class SecurityPolicy(BaseModel):
    """Thresholds for the heuristics, with an injectable clock."""

    now: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    unmaintained_after_months: int = UNMAINTAINED_AFTER_MONTHS
    average_month_days: float = AVERAGE_MONTH_DAYS

    @property
    def reference_time(self) -> datetime:
        return _as_utc(self.now)

    @property
    def unmaintained_cutoff(self) -> datetime:
        """Publishes strictly before this instant count as unmaintained."""
        return months_before(self.reference_time, self.unmaintained_after_months)


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def months_before(moment: datetime, months: int) -> datetime:
    """Calendar subtraction; the day is clamped to the target month's length."""
    year, month_index = divmod(moment.month - 1 - months, 12)
    year += moment.year
    month = month_index + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def parse_timestamp(value: str) -> Optional[datetime]:
    """Parse an ISO-8601 registry timestamp, or None if unparseable."""
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (ValueError, TypeError):
        return None
    return _as_utc(parsed)


def first_occurrences(nodes: Iterable[DependencyNode]) -> list[DependencyNode]:
    """One node per name: the first in graph order wins, later copies are ignored."""
    seen: dict[str, DependencyNode] = {}
    for node in nodes:
        seen.setdefault(node.name, node)
    return list(seen.values())


# ── Heuristics ────────────────────────────────────────────────────────────

def _deprecated(node: DependencyNode) -> Optional[SecurityIssue]:
    message = node.metadata.deprecated
    if not message:
        return None
    return SecurityIssue(
        type=SecurityIssueType.deprecated,
        risk_level=RiskLevel.high,
        reason=(
            f'The author of "{node.name}" has deprecated it: "{message}". '
            "Deprecated packages stop receiving fixes; plan a move to a maintained "
            "alternative."
        ),
        details={
            "message": message,
            "latestVersion": node.resolved_version,
            "description": node.metadata.description,
        },
    )


def _unmaintained(node: DependencyNode, policy: SecurityPolicy) -> Optional[SecurityIssue]:
    raw = node.metadata.last_publish
    if not raw:
        return None
    published = parse_timestamp(raw)
    if published is None:
        logger.debug("Unparseable publish time for %s: %r", node.name, raw)
        return None
    if published >= policy.unmaintained_cutoff:
        return None

    elapsed_days = (policy.reference_time - published).total_seconds() / SECONDS_PER_DAY
    months = math.floor(elapsed_days / policy.average_month_days + 0.5)
    last_update = published.date().isoformat()
    return SecurityIssue(
        type=SecurityIssueType.unmaintained,
        risk_level=RiskLevel.medium,
        reason=(
            f'"{node.name}" was last published on {last_update}, more than '
            f"{policy.unmaintained_after_months} months ago. Packages that no longer "
            "ship releases may carry unpatched vulnerabilities or break on newer "
            "Node.js versions."
        ),
        details={
            "lastUpdate": last_update,
            "monthsSinceLastUpdate": months,
            "version": node.resolved_version,
            "description": node.metadata.description,
        },
    )


def _single_maintainer(node: DependencyNode) -> Optional[SecurityIssue]:
    if node.metadata.maintainers != 1:
        return None
    return SecurityIssue(
        type=SecurityIssueType.single_maintainer,
        risk_level=RiskLevel.low,
        reason=(
            f'"{node.name}" has a single maintainer. If that person steps away or '
            "their account is compromised, nobody else can publish a fix."
        ),
        details={
            "maintainerCount": 1,
            "description": node.metadata.description,
        },
    )


def overall_risk(issues: Iterable[SecurityIssue]) -> RiskLevel:
    """Highest risk level among the issues (low when there are none)."""
    return max((i.risk_level for i in issues), key=lambda r: r.rank, default=RiskLevel.low)


def analyze_security(
    graph: DependencyGraph,
    policy: Optional[SecurityPolicy] = None,
) -> list[SecurityIssueGroup]:
    """Evaluate every dependency name once and group the heuristics that fire."""
    policy = policy or SecurityPolicy()
    groups: list[SecurityIssueGroup] = []

    for node in first_occurrences(graph.dependencies):
        candidates = (
            _deprecated(node),
            _unmaintained(node, policy),
            _single_maintainer(node),
        )
        issues = [i for i in candidates if i is not None]
        if not issues:
            continue

        groups.append(
            SecurityIssueGroup(
                dependency_name=node.name,
                transitive=node.transitive,
                introduced_by=list(node.introduced_by),
                description=node.metadata.description,
                issues=issues,
                overall_risk=overall_risk(issues),
            )
        )

    return groups
