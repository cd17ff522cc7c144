"""Report summary — counters, overall risk, recommended action and exit code."""

from dep_drift_sec.models import (
    DriftIssueGroup,
    RecommendedAction,
    ReportSummary,
    RiskLevel,
    SecurityIssueGroup,
)

EXIT_CLEAN = 0
EXIT_DRIFT = 1
EXIT_SECURITY = 2
EXIT_DRIFT_AND_SECURITY = 3
EXIT_INTERNAL_ERROR = 4

HEALTHY_REASON = "No significant risks detected. Your dependencies appear healthy."


def recommended_exit_code(drift_count: int, security_count: int) -> int:
    """0 clean, 1 drift only, 2 security only, 3 both."""
    if drift_count > 0 and security_count > 0:
        return EXIT_DRIFT_AND_SECURITY
    if drift_count > 0:
        return EXIT_DRIFT
    if security_count > 0:
        return EXIT_SECURITY
    return EXIT_CLEAN


def _risk_reason(
    drift_groups: list[DriftIssueGroup],
    security_groups: list[SecurityIssueGroup],
) -> str:
    security_names = {g.dependency_name for g in security_groups}
    affected = security_names | {g.dependency_name for g in drift_groups}
    if not affected:
        return HEALTHY_REASON

    transitive = sum(1 for g in security_groups if g.transitive) + sum(
        1 for g in drift_groups if g.transitive and g.dependency_name not in security_names
    )
    count = len(affected)
    subject = "dependencies have" if count > 1 else "dependency has"
    suffix = f" ({transitive} transitive)" if transitive else ""
    return (
        f"{count} {subject} security or drift issues{suffix}, "
        "increasing breakage and security risk."
    )


def build_summary(
    drift_groups: list[DriftIssueGroup],
    security_groups: list[SecurityIssueGroup],
) -> ReportSummary:
    """Aggregate analyzer output into the report summary.

    Risk is high (block) if any security group is high; medium (warn) if
    any security group is medium or any drift exists; low (allow)
    otherwise.
    """
    drift_count = sum(len(g.issues) for g in drift_groups)
    security_count = len(security_groups)
    risks = {g.overall_risk for g in security_groups}

    if RiskLevel.high in risks:
        risk, action = RiskLevel.high, RecommendedAction.block
    elif RiskLevel.medium in risks or drift_groups:
        risk, action = RiskLevel.medium, RecommendedAction.warn
    else:
        risk, action = RiskLevel.low, RecommendedAction.allow

    return ReportSummary(
        drift_count=drift_count,
        security_count=security_count,
        risk_level=risk,
        risk_reason=_risk_reason(drift_groups, security_groups),
        recommended_action=action,
        recommended_exit_code=recommended_exit_code(drift_count, security_count),
    )
