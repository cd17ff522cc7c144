"""Tests for analysis/security.py — supply-chain heuristics."""

from datetime import datetime, timedelta, timezone

import pytest

from dep_drift_sec.analysis.security import (
    SecurityPolicy,
    analyze_security,
    first_occurrences,
    months_before,
    overall_risk,
    parse_timestamp,
)
from dep_drift_sec.models import (
    DependencyGraph,
    DependencyNode,
    NodeMetadata,
    RiskLevel,
    SecurityIssueType,
)

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def policy():
    return SecurityPolicy(now=NOW)


def _node(name="pkg", transitive=False, introduced_by=(), version="1.0.0", **meta):
    return DependencyNode(
        name=name,
        version=version,
        resolved_version=version,
        transitive=transitive,
        introduced_by=list(introduced_by),
        metadata=NodeMetadata(**meta),
    )


def _graph(*nodes):
    return DependencyGraph(root="test", dependencies=list(nodes))


def _months_ago(months: float) -> str:
    return (NOW - timedelta(days=months * 30.44)).isoformat()


class TestHeuristics:
    def test_all_three_grouped(self, policy):
        graph = _graph(
            _node(
                "risky-pkg",
                transitive=True,
                introduced_by=["parent-a"],
                deprecated="This is obsolete",
                last_publish=_months_ago(25),
                maintainers=1,
            )
        )
        groups = analyze_security(graph, policy)
        assert len(groups) == 1
        group = groups[0]
        assert group.dependency_name == "risky-pkg"
        assert [i.type for i in group.issues] == [
            SecurityIssueType.deprecated,
            SecurityIssueType.unmaintained,
            SecurityIssueType.single_maintainer,
        ]
        assert group.overall_risk == RiskLevel.high
        assert group.transitive is True
        assert group.introduced_by == ["parent-a"]

    def test_unmaintained_dominates_single_maintainer(self, policy):
        graph = _graph(_node(maintainers=1, last_publish=_months_ago(24)))
        groups = analyze_security(graph, policy)
        assert groups[0].overall_risk == RiskLevel.medium

    def test_single_maintainer_only_is_low(self, policy):
        groups = analyze_security(_graph(_node(maintainers=1, last_publish=_months_ago(1))), policy)
        assert len(groups[0].issues) == 1
        assert groups[0].issues[0].risk_level == RiskLevel.low
        assert groups[0].overall_risk == RiskLevel.low

    def test_deprecated_details(self, policy):
        graph = _graph(_node(version="2.3.4", deprecated="use other", description="old lib"))
        group = analyze_security(graph, policy)[0]
        issue = group.issues[0]
        assert issue.risk_level == RiskLevel.high
        assert issue.details == {
            "message": "use other",
            "latestVersion": "2.3.4",
            "description": "old lib",
        }
        assert group.description == "old lib"

    def test_empty_deprecation_message_is_ignored(self, policy):
        assert analyze_security(_graph(_node(deprecated="")), policy) == []

    def test_unmaintained_details(self, policy):
        graph = _graph(_node(last_publish="2023-01-10T08:00:00.000Z"))
        issue = analyze_security(graph, policy)[0].issues[0]
        assert issue.type == SecurityIssueType.unmaintained
        assert issue.risk_level == RiskLevel.medium
        assert issue.details["lastUpdate"] == "2023-01-10"
        assert issue.details["monthsSinceLastUpdate"] == 29

    def test_recent_publish_is_fine(self, policy):
        assert analyze_security(_graph(_node(last_publish=_months_ago(17))), policy) == []

    def test_cutoff_is_strict(self, policy):
        cutoff = policy.unmaintained_cutoff
        at_cutoff = _node("edge", last_publish=cutoff.isoformat())
        just_before = _node("old", last_publish=(cutoff - timedelta(seconds=1)).isoformat())
        groups = analyze_security(_graph(at_cutoff, just_before), policy)
        assert [g.dependency_name for g in groups] == ["old"]

    def test_unparseable_timestamp_is_unknown(self, policy):
        assert analyze_security(_graph(_node(last_publish="not a date")), policy) == []

    def test_two_maintainers_is_fine(self, policy):
        assert analyze_security(_graph(_node(maintainers=2)), policy) == []

    def test_no_metadata_is_excluded(self, policy):
        assert analyze_security(_graph(_node()), policy) == []

    def test_empty_graph(self, policy):
        assert analyze_security(_graph(), policy) == []

    def test_default_policy_uses_current_time(self):
        graph = _graph(_node(last_publish="2001-01-01T00:00:00Z"))
        assert analyze_security(graph)[0].overall_risk == RiskLevel.medium


class TestFirstOccurrenceWins:
    def test_later_duplicates_ignored(self, policy):
        graph = _graph(
            _node("dup", version="1.0.0"),
            _node("dup", version="2.0.0", deprecated="gone"),
        )
        assert analyze_security(graph, policy) == []

    def test_first_occurrences_preserves_order(self):
        nodes = [_node("a"), _node("b"), _node("a", version="9.9.9")]
        kept = first_occurrences(nodes)
        assert [n.name for n in kept] == ["a", "b"]
        assert kept[0].resolved_version == "1.0.0"


class TestHelpers:
    def test_months_before_crosses_years(self):
        assert months_before(datetime(2025, 3, 10), 18) == datetime(2023, 9, 10)

    def test_months_before_clamps_day(self):
        assert months_before(datetime(2025, 8, 31), 18) == datetime(2024, 2, 29)

    def test_parse_timestamp_zulu(self):
        parsed = parse_timestamp("2020-02-03T04:05:06.789Z")
        assert parsed.tzinfo is not None
        assert parsed.year == 2020

    def test_parse_timestamp_naive_assumed_utc(self):
        assert parse_timestamp("2020-02-03T04:05:06").tzinfo == timezone.utc

    def test_parse_timestamp_invalid(self):
        assert parse_timestamp("yesterday") is None

    def test_overall_risk_ordering(self, policy):
        graph = _graph(_node(deprecated="x", maintainers=1))
        assert overall_risk(analyze_security(graph, policy)[0].issues) == RiskLevel.high
        assert overall_risk([]) == RiskLevel.low

    def test_naive_now_treated_as_utc(self):
        policy = SecurityPolicy(now=datetime(2025, 6, 15, 12, 0))
        assert policy.reference_time == NOW
