"""Pytest configuration and fixtures."""

import shutil
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from droneteams.core import Settings
from droneteams.core.pipeline import Author, Build, Commit, PipelineContext, Repo, System


NOW = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test artifacts."""
    dirpath = tempfile.mkdtemp()
    yield Path(dirpath)
    shutil.rmtree(dirpath, ignore_errors=True)


@pytest.fixture
def now():
    """Fixed clock for build-time rendering."""
    return NOW


def make_pipeline(**build_overrides) -> PipelineContext:
    build = {
        "number": 42,
        "status": "success",
        "event": "push",
        "branch": "main",
        "deploy_to": "",
        "created": NOW - timedelta(minutes=2, seconds=5),
    }
    build.update(build_overrides)
    return PipelineContext(
        build=Build(**build),
        commit=Commit(
            author=Author(name="Jane Doe", email="jane@example.com", username="jdoe"),
            message="Fix flaky test",
            link="https://git.example.com/acme/api/commit/abc123",
            ref="refs/heads/main",
        ),
        repo=Repo(
            slug="acme/api",
            link="https://git.example.com/acme/api",
            owner="acme",
            name="api",
        ),
        system=System(host="drone.example.com", proto="https"),
    )


@pytest.fixture
def pipeline_factory():
    """Factory for pipelines with build field overrides."""
    return make_pipeline


@pytest.fixture
def pipeline():
    """A successful push build."""
    return make_pipeline()


@pytest.fixture
def settings():
    """Settings with a webhook and one custom fact."""
    return Settings(webhook="https://hook", custom_facts=["env:prod"])
