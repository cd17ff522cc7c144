"""Scan orchestration.

Loads the project, fetches registry metadata, builds the dependency graph,
runs both analyzers and assembles the versioned ScanResult.
"""

import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional, Union
from uuid import uuid4

from dep_drift_sec.analysis.drift import detect_drift
from dep_drift_sec.analysis.graph import MetadataInput, build_dependency_graph, package_names
from dep_drift_sec.analysis.security import SecurityPolicy, analyze_security
from dep_drift_sec.analysis.summary import build_summary
from dep_drift_sec.loader import load_project_data, project_id
from dep_drift_sec.models import (
    Environment,
    RawProjectData,
    ScanMetadata,
    ScanResult,
)
from dep_drift_sec.registry import NpmRegistryFetcher

logger = logging.getLogger(__name__)


def _project_name(project: RawProjectData) -> str:
    name = project.package_json.get("name")
    return name if isinstance(name, str) and name else "unknown"


class Scanner:
    """End-to-end drift and supply-chain scan of one npm project."""

    def __init__(
        self,
        fetcher: Optional[NpmRegistryFetcher] = None,
        policy: Optional[SecurityPolicy] = None,
        on_status: Optional[Callable[[str], None]] = None,
    ) -> None:
        self._fetcher = fetcher or NpmRegistryFetcher()
        self._policy = policy
        self._on_status = on_status or (lambda _: None)

    def _status(self, msg: str) -> None:
        logger.debug(msg)
        self._on_status(msg)

    async def close(self) -> None:
        await self._fetcher.close()

    def analyze(
        self,
        project: RawProjectData,
        metadata_by_name: Mapping[str, MetadataInput],
        environment: Union[Environment, str] = Environment.local,
    ) -> ScanResult:
        """Run graph construction and both analyzers on already-loaded data."""
        graph = build_dependency_graph(project, metadata_by_name, environment)

        self._status("Analyzing drift and security …")
        drift = detect_drift(graph)
        security = analyze_security(graph, self._policy)

        return ScanResult(
            meta=ScanMetadata(
                scan_id=uuid4(),
                project_name=_project_name(project),
                project_id=project_id(project),
                generated_at=datetime.now(timezone.utc),
            ),
            summary=build_summary(drift, security),
            drift=drift,
            security=security,
        )

    async def scan(
        self,
        project_path: Union[str, Path],
        environment: Union[Environment, str] = Environment.local,
    ) -> ScanResult:
        """Scan the project at ``project_path``."""
        self._status("Loading package.json and package-lock.json …")
        project = load_project_data(project_path)

        names = package_names(project)
        self._status(f"Fetching registry metadata for {len(names)} packages …")
        metadata = await self._fetcher.fetch_all(names)

        result = self.analyze(project, metadata, environment)
        self._status("Done!")
        return result
