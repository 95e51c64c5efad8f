"""End-to-end plugin tests: validate, build, deliver over a mock transport."""

import json

import httpx
import pytest

from droneteams.core import ConfigurationError, LogsSettings, Settings
from droneteams.notifications.dispatcher import DeliveryError
from droneteams.plugin import Plugin


class Recorder:
    """MockTransport handler recording requests, routed by URL."""

    def __init__(self, routes: dict | None = None):
        self.routes = routes or {}
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(str(request.url))
        if route is None:
            return httpx.Response(200, text="1")
        if isinstance(route, Exception):
            raise route
        return route

    def posted(self) -> list[dict]:
        return [json.loads(r.content) for r in self.requests if r.method == "POST"]


def _facts(payload: dict) -> list[tuple[str, str]]:
    return [(f["name"], f["value"]) for f in payload["sections"][0]["facts"]]


def _actions(payload: dict) -> list[str]:
    return [a["name"] for a in payload["potentialAction"]]


class TestScenarios:
    @pytest.mark.asyncio
    async def test_successful_push(self, pipeline, now):
        recorder = Recorder()
        plugin = Plugin(
            Settings(webhook="https://hook.example.com/teams", custom_facts=["env:prod"]),
            pipeline,
            environ={},
            transport=httpx.MockTransport(recorder),
        )

        await plugin.run(now=now)

        [payload] = recorder.posted()
        assert str(recorder.requests[0].url) == "https://hook.example.com/teams"
        assert payload["themeColor"] == "96FF33"
        assert _facts(payload) == [
            ("Build Number", "42"),
            ("Git Author", 'Jane Doe "jane@example.com" (jdoe)'),
            ("Commit Message", "Fix flaky test"),
            ("env", "prod"),
        ]
        assert _actions(payload) == ["Open repository", "Open commit diff"]

    @pytest.mark.asyncio
    async def test_failed_push_without_logs(self, pipeline_factory, now):
        recorder = Recorder()
        pipeline = pipeline_factory(status="failure", failed_steps=["build", "test"])
        plugin = Plugin(
            Settings(webhook="https://hook.example.com/teams", custom_facts=["env:prod"]),
            pipeline,
            environ={},
            transport=httpx.MockTransport(recorder),
        )

        await plugin.run(now=now)

        assert len(recorder.requests) == 1
        [payload] = recorder.posted()
        assert payload["themeColor"] == "FF5733"
        assert ("Failed Build Steps", "build test") in _facts(payload)
        assert "Open build pipeline" in _actions(payload)
        assert payload["sections"][0]["activitySubtitle"] == "FAILURE"

    @pytest.mark.asyncio
    async def test_failed_push_with_logs(self, pipeline_factory, now):
        build_url = "https://drone.example.com/api/repos/acme/api/builds/42"
        recorder = Recorder({
            build_url: httpx.Response(200, json={
                "number": 42,
                "status": "failure",
                "stages": [{
                    "number": 1,
                    "name": "default",
                    "status": "failure",
                    "steps": [{"number": 2, "name": "test", "status": "failure", "exit_code": 1}],
                }],
            }),
            f"{build_url}/logs/1/1": httpx.Response(200, json=[
                {"proc": "test", "pos": 0, "out": "FAIL"},
            ]),
        })
        pipeline = pipeline_factory(status="failure", failed_steps=["test"])
        plugin = Plugin(
            Settings(webhook="https://hook.example.com/teams", logs=LogsSettings(on_error=True, auth_token="t")),
            pipeline,
            environ={},
            transport=httpx.MockTransport(recorder),
        )

        await plugin.run(now=now)

        assert [r.method for r in recorder.requests] == ["GET", "GET", "POST"]
        [payload] = recorder.posted()
        assert _facts(payload)[-1] == ("Log for default/test", "Command #0: test\nResult: FAIL")

    @pytest.mark.asyncio
    async def test_log_fetch_failure_still_delivers(self, pipeline_factory, now):
        build_url = "https://drone.example.com/api/repos/acme/api/builds/42"
        recorder = Recorder({build_url: httpx.Response(401)})
        pipeline = pipeline_factory(status="failure", failed_steps=["test"])
        plugin = Plugin(
            Settings(webhook="https://hook.example.com/teams", logs=LogsSettings(on_error=True, auth_token="t")),
            pipeline,
            environ={},
            transport=httpx.MockTransport(recorder),
        )

        card = await plugin.run(now=now)

        [payload] = recorder.posted()
        assert _facts(payload)[-1] == ("Failed Build Steps", "test")
        assert card.fact("Failed Build Steps") == "test"


class TestValidation:
    def test_branch_webhook_from_environ(self, pipeline):
        plugin = Plugin(Settings(), pipeline, environ={"main_teams_webhook": "https://main-hook"})
        settings = plugin.validate()
        assert settings.webhook == "https://main-hook"
        assert settings.status == "success"

    def test_missing_webhook(self, pipeline):
        with pytest.raises(ConfigurationError):
            Plugin(Settings(), pipeline, environ={}).validate()

    @pytest.mark.asyncio
    async def test_run_fails_before_any_request(self, pipeline):
        recorder = Recorder()
        plugin = Plugin(Settings(), pipeline, environ={}, transport=httpx.MockTransport(recorder))
        with pytest.raises(ConfigurationError):
            await plugin.run()
        assert recorder.requests == []


class TestDelivery:
    @pytest.mark.asyncio
    async def test_refused_connection(self, pipeline, now):
        recorder = Recorder({"https://hook.example.com/teams": httpx.ConnectError("connection refused")})
        plugin = Plugin(
            Settings(webhook="https://hook.example.com/teams"),
            pipeline,
            environ={},
            transport=httpx.MockTransport(recorder),
        )

        with pytest.raises(DeliveryError):
            await plugin.run(now=now)

        assert len(recorder.requests) == 1

    @pytest.mark.asyncio
    async def test_commit_link_from_environ(self, pipeline, now):
        pipeline = pipeline.model_copy(
            update={"commit": pipeline.commit.model_copy(update={"link": ""})}
        )
        recorder = Recorder()
        plugin = Plugin(
            Settings(webhook="https://hook.example.com/teams"),
            pipeline,
            environ={"DRONE_COMMIT_LINK": "https://git.example.com/acme/api/compare/a...b"},
            transport=httpx.MockTransport(recorder),
        )

        await plugin.run(now=now)

        [payload] = recorder.posted()
        diff = payload["potentialAction"][1]
        assert diff["name"] == "Open commit diff"
        assert diff["targets"][0]["uri"].endswith("/compare/a...b")

    @pytest.mark.asyncio
    async def test_malformed_webhook_is_delivery_error(self, pipeline, now):
        plugin = Plugin(Settings(webhook="http://[::1/x"), pipeline, environ={})

        with pytest.raises(DeliveryError):
            await plugin.run(now=now)
