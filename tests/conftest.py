"""Pytest configuration and fixtures."""

import json

import pytest


@pytest.fixture
def sample_manifest():
    """A package.json with one loose and one pinned direct dependency."""
    return {
        "name": "demo-app",
        "version": "1.0.0",
        "dependencies": {"express": "^4.18.2"},
        "devDependencies": {"lodash": "4.17.21"},
    }


@pytest.fixture
def sample_lockfile():
    """A lockfile mixing flat (declared deps) and nested (path) topology."""
    return {
        "name": "demo-app",
        "lockfileVersion": 3,
        "packages": {
            "": {
                "name": "demo-app",
                "dependencies": {"express": "^4.18.2"},
                "devDependencies": {"lodash": "4.17.21"},
            },
            "node_modules/express": {
                "version": "4.18.2",
                "dependencies": {"debug": "2.6.9", "qs": "6.11.0"},
            },
            "node_modules/debug": {"version": "2.6.9"},
            "node_modules/qs": {"version": "6.11.0"},
            "node_modules/lodash": {"version": "4.17.21"},
            "node_modules/express/node_modules/qs": {"version": "6.5.3"},
        },
    }


@pytest.fixture
def project_dir(tmp_path, sample_manifest, sample_lockfile):
    """A project directory containing package.json and package-lock.json."""
    (tmp_path / "package.json").write_text(json.dumps(sample_manifest))
    (tmp_path / "package-lock.json").write_text(json.dumps(sample_lockfile))
    return tmp_path
