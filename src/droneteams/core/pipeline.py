"""
PipelineContext — read-only snapshot of the build being reported.

Drone exposes build, commit, repository and system metadata to plugins
through ``DRONE_*`` environment variables; ``PipelineContext.from_environ``
collects them into frozen models.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Mapping

from pydantic import BaseModel, ConfigDict, Field


def _now() -> datetime:
    return datetime.now(timezone.utc)


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class Build(_Frozen):
    number: int = 0
    status: str = ""
    event: str = ""  # push, pull_request, tag, promote, ...
    branch: str = ""
    tag: str = ""
    deploy_to: str = ""
    created: datetime = Field(default_factory=_now)
    failed_steps: tuple[str, ...] = ()


class Author(_Frozen):
    name: str = ""
    email: str = ""
    username: str = ""


class Commit(_Frozen):
    author: Author = Field(default_factory=Author)
    message: str = ""
    link: str = ""
    ref: str = ""


class Repo(_Frozen):
    slug: str = ""
    link: str = ""
    owner: str = ""
    name: str = ""


class System(_Frozen):
    host: str = ""
    proto: str = "https"


class PipelineContext(_Frozen):
    """Build, commit, repo and system metadata for one execution."""

    build: Build = Field(default_factory=Build)
    commit: Commit = Field(default_factory=Commit)
    repo: Repo = Field(default_factory=Repo)
    system: System = Field(default_factory=System)

    @classmethod
    def from_environ(cls, environ: Mapping[str, str]) -> PipelineContext:
        """Build a context from Drone's ``DRONE_*`` environment variables."""

        def get(*names: str, default: str = "") -> str:
            for name in names:
                value = environ.get(name, "")
                if value:
                    return value
            return default

        created = get("DRONE_BUILD_CREATED")
        failed = get("DRONE_FAILED_STEPS")

        return cls(
            build=Build(
                number=int(get("DRONE_BUILD_NUMBER", default="0")),
                status=get("DRONE_BUILD_STATUS"),
                event=get("DRONE_BUILD_EVENT"),
                branch=get("DRONE_BRANCH", "DRONE_COMMIT_BRANCH"),
                tag=get("DRONE_TAG"),
                deploy_to=get("DRONE_DEPLOY_TO"),
                created=(
                    datetime.fromtimestamp(int(created), tz=timezone.utc)
                    if created
                    else _now()
                ),
                failed_steps=tuple(s.strip() for s in failed.split(",") if s.strip()),
            ),
            commit=Commit(
                author=Author(
                    name=get("DRONE_COMMIT_AUTHOR_NAME"),
                    email=get("DRONE_COMMIT_AUTHOR_EMAIL"),
                    username=get("DRONE_COMMIT_AUTHOR"),
                ),
                message=get("DRONE_COMMIT_MESSAGE"),
                link=get("DRONE_COMMIT_LINK"),
                ref=get("DRONE_COMMIT_REF"),
            ),
            repo=Repo(
                slug=get("DRONE_REPO"),
                link=get("DRONE_REPO_LINK"),
                owner=get("DRONE_REPO_OWNER", "DRONE_REPO_NAMESPACE"),
                name=get("DRONE_REPO_NAME"),
            ),
            system=System(
                host=get("DRONE_SYSTEM_HOST"),
                proto=get("DRONE_SYSTEM_PROTO", default="https"),
            ),
        )
