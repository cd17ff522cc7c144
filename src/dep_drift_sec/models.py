"""Data models for dep-drift-sec."""

from datetime import datetime
from enum import Enum
from typing import Any, Literal, Optional, Union
from uuid import UUID

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    field_validator,
)
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ── Enumerations ──────────────────────────────────────────────────────────

class RiskLevel(str, Enum):
    """Severity of a security heuristic, ordered low < medium < high."""

    low = "low"
    medium = "medium"
    high = "high"

    @property
    def rank(self) -> int:
        return _RISK_RANK[self]


_RISK_RANK = {RiskLevel.low: 0, RiskLevel.medium: 1, RiskLevel.high: 2}


class RecommendedAction(str, Enum):
    """Policy verdict derived from the aggregated findings."""

    allow = "allow"
    warn = "warn"
    block = "block"


class Environment(str, Enum):
    """Where the scan runs."""

    local = "local"
    ci = "ci"
    prod = "prod"


class DriftIssueType(str, Enum):
    range_usage = "range-usage"
    transitive_drift = "transitive-drift"
    version_mismatch = "version-mismatch"


class SecurityIssueType(str, Enum):
    deprecated = "deprecated"
    unmaintained = "unmaintained"
    single_maintainer = "single-maintainer"


# ── Raw inputs ────────────────────────────────────────────────────────────

class RawProjectData(BaseModel):
    """Parsed package.json and package-lock.json, before normalization."""

    package_json: dict[str, Any] = Field(default_factory=dict)
    package_lock: dict[str, Any] = Field(default_factory=dict)


class RegistryMetadata(BaseModel):
    """The subset of an npm registry packument this tool reads."""

    name: str = ""
    dist_tags: dict[str, Any] = Field(default_factory=dict, alias="dist-tags")
    time: dict[str, Any] = Field(default_factory=dict)
    maintainers: Optional[list[Any]] = None
    deprecated: Optional[str] = None
    description: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)

    @field_validator(
        "name", "dist_tags", "time", "maintainers", "deprecated", "description", mode="wrap"
    )
    @classmethod
    def _unknown_on_malformed(cls, value: Any, handler, info: ValidationInfo) -> Any:
        # A malformed field degrades to its default without discarding the rest.
        try:
            return handler(value)
        except ValidationError:
            return cls.model_fields[info.field_name].get_default(call_default_factory=True)


# ── Dependency graph ──────────────────────────────────────────────────────

class NodeMetadata(_CamelModel):
    """Registry facts relevant to analysis. Missing means unknown."""

    last_publish: Optional[str] = None  # ISO-8601, publish time of dist-tags.latest
    maintainers: Optional[int] = None
    deprecated: Optional[str] = None
    description: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class DependencyNode(_CamelModel):
    """One installed package instance from the lockfile."""

    name: str = Field(min_length=1)
    version: str  # manifest range for direct deps, lockfile version otherwise
    resolved_version: str
    transitive: bool
    introduced_by: list[str] = Field(default_factory=list)
    metadata: NodeMetadata = Field(default_factory=NodeMetadata)

    model_config = ConfigDict(frozen=True)


class DependencyGraph(_CamelModel):
    """Normalized dependency graph, read-only once built."""

    root: str
    environment: Environment = Environment.local
    dependencies: list[DependencyNode] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


# ── Drift findings ────────────────────────────────────────────────────────

class DriftIssue(_CamelModel):
    """A single version-drift finding."""

    dependency_name: str
    type: DriftIssueType
    expected: str
    actual: str
    reason: str


class DriftIssueGroup(_CamelModel):
    """All drift findings for one dependency name."""

    dependency_name: str
    transitive: bool = False
    introduced_by: list[str] = Field(default_factory=list)
    issues: list[DriftIssue] = Field(min_length=1)


# ── Security findings ─────────────────────────────────────────────────────

DetailValue = Union[bool, int, float, str, None]


class SecurityIssue(_CamelModel):
    """A single supply-chain heuristic that fired."""

    type: SecurityIssueType
    risk_level: RiskLevel
    reason: str
    details: Optional[dict[str, DetailValue]] = None


class SecurityIssueGroup(_CamelModel):
    """All heuristics that fired for one dependency name."""

    dependency_name: str
    transitive: bool = False
    introduced_by: list[str] = Field(default_factory=list)
    description: Optional[str] = None
    issues: list[SecurityIssue] = Field(min_length=1)
    overall_risk: RiskLevel


# ── Versioned report ──────────────────────────────────────────────────────

class ScanMetadata(_CamelModel):
    """Identity of one scan run."""

    schema_version: Literal["1.0"] = "1.0"
    scan_id: UUID
    project_name: str
    project_id: str
    generated_at: datetime


class ReportSummary(_CamelModel):
    """Aggregate counters and the recommended verdict."""

    drift_count: int = 0
    security_count: int = 0
    risk_level: RiskLevel = RiskLevel.low
    risk_reason: Optional[str] = None
    recommended_action: Optional[RecommendedAction] = None
    recommended_exit_code: int = 0


class ScanResult(_CamelModel):
    """Complete, versioned result of a scan (schema 1.0)."""

    meta: ScanMetadata
    summary: ReportSummary
    drift: list[DriftIssueGroup] = Field(default_factory=list)
    security: list[SecurityIssueGroup] = Field(default_factory=list)
