"""Filesystem adapter: read package.json and package-lock.json."""

import hashlib
import json
import logging
from pathlib import Path
from typing import Any, Union

from dep_drift_sec.models import RawProjectData

logger = logging.getLogger(__name__)

MANIFEST_FILE = "package.json"
LOCKFILE_FILE = "package-lock.json"


class ProjectLoadError(Exception):
    """The manifest or lockfile could not be read or parsed."""


def _read_json(path: Path) -> dict[str, Any]:
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"{path.name} must contain a JSON object")
    return data


def load_project_data(project_path: Union[str, Path]) -> RawProjectData:
    """Load the manifest and lockfile from a project directory."""
    root = Path(project_path)
    try:
        manifest = _read_json(root / MANIFEST_FILE)
        lockfile = _read_json(root / LOCKFILE_FILE)
    except (OSError, ValueError) as e:
        raise ProjectLoadError(f"Failed to load project data from {root}: {e}") from e

    logger.debug("Loaded %s (lockfileVersion %s)", root, lockfile.get("lockfileVersion"))
    return RawProjectData(package_json=manifest, package_lock=lockfile)


def project_id(project: RawProjectData) -> str:
    """Stable project identifier: SHA-256 of the compact lockfile JSON."""
    content = json.dumps(project.package_lock, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(content.encode("utf-8")).hexdigest()
