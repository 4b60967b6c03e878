"""FastAPI application factory."""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from urllib.parse import quote

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from fastapi.staticfiles import StaticFiles

from site_cloner.api.models import CloneSubmission
from site_cloner.app_logging import configure_logging
from site_cloner.config import parse_cors_origins
from site_cloner.containers import AppContainer
from site_cloner.domain.clone import CloneRequest, Outcome
from site_cloner.domain.errors import InvalidRequestError
from site_cloner.domain.events import ErrorEvent
from site_cloner.services.progress import ProgressChannel

logger = logging.getLogger(__name__)

STREAM_HEADERS = {"Cache-Control": "no-cache", "Connection": "keep-alive"}


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    settings = container.settings
    configure_logging(
        settings.log_level, secrets=[settings.anima_password.get_secret_value()]
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        running: set[asyncio.Task[Outcome]] = app.state.sessions
        for task in running:
            task.cancel()
        if running:
            logger.info("Cancelling %d running clone sessions", len(running))
            await asyncio.gather(*running, return_exceptions=True)
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container
    app.state.sessions = set()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=parse_cors_origins(settings.cors_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )
    settings.screenshots_dir.mkdir(parents=True, exist_ok=True)
    app.mount(
        settings.screenshots_prefix,
        StaticFiles(directory=settings.screenshots_dir),
        name="screenshots",
    )

    @app.get("/api/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok", "message": "Server is running"}

    @app.get("/api/clone-stream", response_model=None)
    async def clone_stream(
        request: Request, url: str | None = None, prompt: str | None = None
    ) -> StreamingResponse | JSONResponse:
        """Run a clone session and stream its progress as server-sent events."""
        try:
            clone_request = CloneRequest.parse(url, prompt)
        except InvalidRequestError as exc:
            return JSONResponse({"error": str(exc)}, status_code=400)

        state_container: AppContainer = request.app.state.container
        channel = ProgressChannel()
        task = asyncio.create_task(
            state_container.clone_service.run(clone_request, channel)
        )
        sessions: set[asyncio.Task[Outcome]] = request.app.state.sessions
        sessions.add(task)
        task.add_done_callback(sessions.discard)
        task.add_done_callback(lambda done: _end_stream(channel, done))
        return StreamingResponse(
            _event_stream(
                channel, task, state_container.settings.cancel_on_disconnect
            ),
            media_type="text/event-stream",
            headers=STREAM_HEADERS,
        )

    @app.post("/api/clone", response_model=None)
    async def clone(submission: CloneSubmission) -> dict[str, str] | JSONResponse:
        """Point non-streaming callers at the streaming endpoint."""
        if not submission.url:
            return JSONResponse({"error": "URL is required"}, status_code=400)
        stream_url = f"/api/clone-stream?url={quote(submission.url, safe='')}"
        if submission.prompt:
            stream_url += f"&prompt={quote(submission.prompt, safe='')}"
        return {
            "message": (
                "Please use the streaming endpoint: "
                "GET /api/clone-stream?url=<your-url>"
            ),
            "streamUrl": stream_url,
        }

    return app


async def _event_stream(
    channel: ProgressChannel,
    task: asyncio.Task[Outcome],
    cancel_on_disconnect: bool,
) -> AsyncIterator[str]:
    """Render channel events as ``data:`` frames until the stream ends."""
    try:
        async for event in channel.events():
            yield f"data: {event.to_json()}\n\n"
    finally:
        if not channel.terminated:
            channel.disconnect()
            if cancel_on_disconnect and not task.done():
                logger.info("Caller disconnected, cancelling clone session")
                task.cancel()
            elif not task.done():
                logger.info("Caller disconnected, clone session keeps running")


def _end_stream(channel: ProgressChannel, task: asyncio.Task[Outcome]) -> None:
    """Make sure the stream ends when a session task finishes."""
    if channel.terminated:
        return
    if task.cancelled():
        channel.disconnect()
        return
    exc = task.exception()
    if exc is None:
        channel.disconnect()
        return
    logger.error("Clone session crashed: %s", exc)
    channel.emit(ErrorEvent(error=f"Failed to clone website: {exc}"))
