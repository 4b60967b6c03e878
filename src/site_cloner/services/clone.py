"""Runs clone sessions, one browser per session."""

import logging
import time
import traceback
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from site_cloner.domain.clone import CloneRequest, Credentials, Failed, Outcome, Phase
from site_cloner.domain.errors import RemoteUIError
from site_cloner.domain.events import ErrorEvent, StatusEvent
from site_cloner.services.artifacts import ArtifactCapturer
from site_cloner.services.markup import PlatformMarkup
from site_cloner.services.progress import ProgressChannel
from site_cloner.services.publishing import PublishRetryController, PublishTimings
from site_cloner.services.signals import SignalExtractor
from site_cloner.services.ui import BrowserLauncher, RemoteUI
from site_cloner.services.workflow import WorkflowDriver, WorkflowTimings

logger = logging.getLogger(__name__)


@dataclass
class CloneService:
    """Owns the browser lifecycle around a workflow driver."""

    launcher: BrowserLauncher
    credentials: Credentials
    platform_url: str
    screenshots_dir: Path
    screenshots_prefix: str = "/screenshots"
    idle_before_close_seconds: float = 120.0
    markup: PlatformMarkup = field(default_factory=PlatformMarkup)
    workflow_timings: WorkflowTimings = field(default_factory=WorkflowTimings)
    publish_timings: PublishTimings = field(default_factory=PublishTimings)
    clock: Callable[[], float] = time.monotonic

    def build_driver(
        self, ui: RemoteUI, request: CloneRequest, channel: ProgressChannel
    ) -> WorkflowDriver:
        """Create a driver with its own capturer and publisher."""
        capturer = ArtifactCapturer(
            directory=self.screenshots_dir, url_prefix=self.screenshots_prefix
        )
        publisher = PublishRetryController(
            markup=self.markup, capturer=capturer, timings=self.publish_timings
        )
        return WorkflowDriver(
            ui=ui,
            request=request,
            channel=channel,
            credentials=self.credentials,
            capturer=capturer,
            publisher=publisher,
            platform_url=self.platform_url,
            markup=self.markup,
            extractor=SignalExtractor(),
            timings=self.workflow_timings,
            clock=self.clock,
        )

    async def run(self, request: CloneRequest, channel: ProgressChannel) -> Outcome:
        """Run one session and always release its browser."""
        logger.info("Starting clone process for: %s", request.target_url)
        channel.emit(
            StatusEvent(message="Starting clone process...", step=Phase.INIT.step)
        )
        try:
            session = await self.launcher.launch()
        except Exception as exc:  # noqa: BLE001
            logger.exception("Could not launch browser")
            channel.emit(
                ErrorEvent(
                    error=f"Failed to clone website: {exc}",
                    details=traceback.format_exc(),
                )
            )
            return Failed(reason=str(exc))

        try:
            driver = self.build_driver(session.ui, request, channel)
            outcome = await driver.run()
            if not isinstance(outcome, Failed):
                await self._idle(session.ui)
            return outcome
        finally:
            await session.close()
            logger.info("Browser closed for %s", request.target_url)

    async def _idle(self, ui: RemoteUI) -> None:
        if self.idle_before_close_seconds <= 0:
            return
        logger.info(
            "Process complete! Browser will remain open for %.0f seconds",
            self.idle_before_close_seconds,
        )
        try:
            await ui.pause(self.idle_before_close_seconds)
        except RemoteUIError as exc:
            logger.warning("Browser went away while idling: %s", exc)
