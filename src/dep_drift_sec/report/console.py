"""Plain-text console rendering of a ScanResult."""

from dep_drift_sec.models import (
    DriftIssueGroup,
    RecommendedAction,
    RiskLevel,
    ScanResult,
    SecurityIssue,
    SecurityIssueGroup,
)

_IMPACT = {
    RiskLevel.high: (
        "This package is deprecated or critical; replace it before it becomes "
        "a security problem."
    ),
    RiskLevel.medium: (
        "This package looks unmaintained; it may hide vulnerabilities or "
        "compatibility issues."
    ),
    RiskLevel.low: "This package carries minor supply-chain risk (e.g. a single maintainer).",
}

_DRIFT_IMPACT = (
    "Its installed version can change between machines, which leads to "
    '"works on my machine" bugs.'
)


def _label(group: DriftIssueGroup | SecurityIssueGroup) -> str:
    kind = "[TRANSITIVE]" if group.transitive else "[DIRECT]"
    via = ""
    if group.transitive and group.introduced_by:
        via = f" (via {', '.join(group.introduced_by)})"
    return f"{kind} {group.dependency_name}{via}"


def _format_details(issue: SecurityIssue) -> str:
    if not issue.details:
        return ""
    parts = [
        f"{key}: {value}"
        for key, value in issue.details.items()
        if key != "description" and value is not None
    ]
    return ", ".join(parts)


def _drift_section(groups: list[DriftIssueGroup]) -> list[str]:
    lines = ["--- Dependency Drift ---"]
    for group in groups:
        lines.append(_label(group))
        lines.append(f"  Impact: {_DRIFT_IMPACT}")
        for issue in group.issues:
            lines.append(f"  - [{issue.type.value.upper()}] {issue.reason}")
            lines.append(f"    Expected: {issue.expected}, Actual: {issue.actual}")
        lines.append("")
    return lines


def _security_section(groups: list[SecurityIssueGroup]) -> list[str]:
    lines = ["--- Security Heuristics ---"]
    for group in groups:
        lines.append(f"[{group.overall_risk.value.upper()}] {_label(group)}")
        lines.append(f"  Impact: {_IMPACT[group.overall_risk]}")
        if group.description:
            lines.append(f"  Description: {group.description}")
        for issue in group.issues:
            lines.append(f"  - [{issue.type.value.upper()}] {issue.reason}")
            details = _format_details(issue)
            if details:
                lines.append(f"      Details: {details}")
        lines.append("")
    return lines


def format_console_report(result: ScanResult) -> str:
    """Render a human-readable report."""
    summary = result.summary
    action = summary.recommended_action or RecommendedAction.allow

    lines = [
        "",
        "=== dep-drift-sec Analysis ===",
        f"Risk Level: {summary.risk_level.value.upper()}",
        f"Action:     {action.value.upper()}",
        f"Reason:     {summary.risk_reason or 'N/A'}",
        "",
        f"Drift Issues: {summary.drift_count}",
        f"Security Issues: {summary.security_count}",
        "",
    ]

    if result.drift:
        lines.extend(_drift_section(result.drift))
    if result.security:
        lines.extend(_security_section(result.security))

    if summary.drift_count == 0 and summary.security_count == 0:
        lines.append("No issues detected. Your dependencies are healthy!")

    lines.append("")
    lines.append(f"Recommended Exit Code: {summary.recommended_exit_code}")
    return "\n".join(lines) + "\n"
