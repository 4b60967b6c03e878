"""Tests for the HTTP API."""

import asyncio
import json

from fastapi.testclient import TestClient

from site_cloner.api.app import _event_stream, create_app
from site_cloner.domain.clone import CloneRequest, Published
from site_cloner.domain.errors import RemoteUITimeout
from site_cloner.services.progress import ProgressChannel
from tests.conftest import PUBLISHED_HOST, RESULT_URL, FakeRemoteUI


def _frames(body: str) -> list[dict[str, object]]:
    return [
        json.loads(line[len("data: ") :])
        for line in body.splitlines()
        if line.startswith("data: ")
    ]


def test_health(container) -> None:
    with TestClient(create_app(container)) as client:
        response = client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "message": "Server is running"}


def test_stream_requires_url(container, launcher) -> None:
    with TestClient(create_app(container)) as client:
        response = client.get("/api/clone-stream")

    assert response.status_code == 400
    assert response.json() == {"error": "URL is required"}
    assert launcher.sessions == []


def test_stream_rejects_invalid_url(container, launcher) -> None:
    with TestClient(create_app(container)) as client:
        response = client.get("/api/clone-stream", params={"url": "not a url"})

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid URL format"}
    assert launcher.sessions == []


def test_stream_reports_full_session(container, launcher) -> None:
    with TestClient(create_app(container)) as client:
        response = client.get(
            "/api/clone-stream",
            params={"url": "https://example.com", "prompt": "Make it blue"},
        )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    assert response.headers["cache-control"] == "no-cache"
    frames = _frames(response.text)
    assert frames[0] == {
        "type": "status",
        "message": "Starting clone process...",
        "step": 1,
    }
    types = [frame["type"] for frame in frames]
    assert types.count("complete") == 1
    assert types.index("preview_ready") < types.index("complete")
    complete = frames[-1]
    assert complete["type"] == "complete"
    assert complete["success"] is True
    assert complete["publishedUrl"] == f"https://{PUBLISHED_HOST}"
    assert complete["editUrl"] == RESULT_URL
    assert str(complete["screenshot"]).startswith("/screenshots/")
    assert launcher.sessions[0].closed is True


def test_stream_ends_with_error_on_failure(container, remote_ui) -> None:
    remote_ui.failures["goto"] = RemoteUITimeout("navigation timed out")

    with TestClient(create_app(container)) as client:
        response = client.get(
            "/api/clone-stream", params={"url": "https://example.com"}
        )

    frames = _frames(response.text)
    assert frames[-1]["type"] == "error"
    assert "navigation timed out" in str(frames[-1]["error"])
    assert [frame["type"] for frame in frames].count("error") == 1


def test_screenshots_are_served(container, settings) -> None:
    with TestClient(create_app(container)) as client:
        (settings.screenshots_dir / "clone-final-1.png").write_bytes(b"png")
        response = client.get("/screenshots/clone-final-1.png")

    assert response.status_code == 200
    assert response.content == b"png"


def test_post_clone_points_at_stream(container, launcher) -> None:
    with TestClient(create_app(container)) as client:
        response = client.post(
            "/api/clone",
            json={"url": "https://example.com/a?b=1", "prompt": "dark mode"},
        )

    assert response.status_code == 200
    body = response.json()
    assert body["streamUrl"] == (
        "/api/clone-stream?url=https%3A%2F%2Fexample.com%2Fa%3Fb%3D1"
        "&prompt=dark%20mode"
    )
    assert "clone-stream" in body["message"]
    assert launcher.sessions == []


def test_post_clone_requires_url(container) -> None:
    with TestClient(create_app(container)) as client:
        response = client.post("/api/clone", json={})

    assert response.status_code == 400
    assert response.json() == {"error": "URL is required"}


def _hold_navigation(ui: FakeRemoteUI) -> asyncio.Event:
    """Make the session hang on its first navigation until the gate opens."""
    gate = asyncio.Event()
    navigate = ui.goto

    async def held_goto(url: str, timeout_ms: int) -> None:
        await gate.wait()
        await navigate(url, timeout_ms)

    ui.goto = held_goto  # type: ignore[method-assign]
    return gate


def test_disconnect_cancels_session_when_configured(
    container, launcher, remote_ui
) -> None:
    async def scenario() -> asyncio.Task:
        _hold_navigation(remote_ui)
        channel = ProgressChannel()
        task = asyncio.create_task(
            container.clone_service.run(
                CloneRequest(target_url="https://example.com"), channel
            )
        )
        stream = _event_stream(channel, task, cancel_on_disconnect=True)
        first = await anext(stream)
        assert '"Starting clone process..."' in first
        await stream.aclose()
        await asyncio.gather(task, return_exceptions=True)
        return task

    task = asyncio.run(scenario())

    assert task.cancelled() is True
    assert launcher.sessions[0].closed is True


def test_disconnect_leaves_session_running_by_default(
    container, launcher, remote_ui
) -> None:
    async def scenario() -> tuple[asyncio.Task, ProgressChannel]:
        gate = _hold_navigation(remote_ui)
        channel = ProgressChannel()
        task = asyncio.create_task(
            container.clone_service.run(
                CloneRequest(target_url="https://example.com"), channel
            )
        )
        stream = _event_stream(channel, task, cancel_on_disconnect=False)
        await anext(stream)
        await stream.aclose()
        assert task.done() is False
        gate.set()
        await task
        return task, channel

    task, channel = asyncio.run(scenario())

    assert task.cancelled() is False
    assert isinstance(task.result(), Published)
    assert channel.terminated is False
    assert launcher.sessions[0].closed is True


def test_crashed_session_ends_stream_with_one_error(container, monkeypatch) -> None:
    async def crash(request: CloneRequest, channel: ProgressChannel) -> None:
        raise RuntimeError("worker exploded")

    monkeypatch.setattr(container.clone_service, "run", crash)

    with TestClient(create_app(container)) as client:
        response = client.get(
            "/api/clone-stream", params={"url": "https://example.com"}
        )

    frames = _frames(response.text)
    assert frames == [
        {
            "type": "error",
            "error": "Failed to clone website: worker exploded",
            "details": None,
        }
    ]


def test_shutdown_cancels_running_sessions(container, launcher, remote_ui) -> None:
    app = create_app(container)

    async def scenario() -> asyncio.Task:
        _hold_navigation(remote_ui)
        async with app.router.lifespan_context(app):
            task = asyncio.create_task(
                container.clone_service.run(
                    CloneRequest(target_url="https://example.com"), ProgressChannel()
                )
            )
            app.state.sessions.add(task)
            await asyncio.sleep(0)
            assert launcher.sessions
        return task

    task = asyncio.run(scenario())

    assert task.cancelled() is True
    assert launcher.sessions[0].closed is True
