"""Phase-sequenced driver for one clone session."""

import logging
import time
import traceback
from collections.abc import Callable
from dataclasses import dataclass, field

from site_cloner.domain.clone import (
    ArtifactRecord,
    CloneRequest,
    Credentials,
    Failed,
    Outcome,
    Phase,
    PreviewOnly,
    ProgressSnapshot,
    Published,
)
from site_cloner.domain.errors import RemoteUIError, RemoteUITimeout
from site_cloner.domain.events import (
    CompleteEvent,
    ErrorEvent,
    PreviewReadyEvent,
    ProgressEvent,
    StatusEvent,
)
from site_cloner.services.artifacts import ArtifactCapturer
from site_cloner.services.markup import PlatformMarkup
from site_cloner.services.progress import ProgressChannel
from site_cloner.services.publishing import PublishRetryController
from site_cloner.services.signals import Marker, MarkerProbe, SignalExtractor
from site_cloner.services.ui import RemoteUI

logger = logging.getLogger(__name__)

PUBLISHED_MESSAGE = "Landing page generated and published successfully!"
PREVIEW_ONLY_MESSAGE = (
    "Landing page generated! Publish could not be completed, preview shown below."
)
NO_PREVIEW_MESSAGE = "Generation process completed (check platform for results)"


@dataclass(frozen=True)
class WorkflowTimings:
    """Fixed waits and ceilings of the workflow, in seconds."""

    navigation_timeout: float = 60.0
    after_navigation: float = 3.0
    compose_click_pause: float = 0.3
    compose_menu_pause: float = 1.0
    compose_settle: float = 3.0
    after_submit: float = 2.0
    after_login_click: float = 2.0
    sign_in_settle: float = 5.0
    monitor_start_delay: float = 5.0
    poll_interval: float = 3.0
    monitor_ceiling: float = 35 * 60.0
    progress_capture_every: float = 30.0
    preview_pause: float = 3.0
    edits_check_delay: float = 10.0
    edits_timeout: float = 600.0
    after_edits: float = 2.0
    loading_timeout: float = 120.0
    preview_settle: float = 5.0


def _millis(seconds: float) -> int:
    return int(seconds * 1000)


@dataclass
class WorkflowDriver:
    """Walks one session from navigation to a terminal outcome.

    Every phase change goes through ``_advance``, which refuses to move
    backwards, so a session visits an ordered subset of ``Phase``.
    """

    ui: RemoteUI
    request: CloneRequest
    channel: ProgressChannel
    credentials: Credentials
    capturer: ArtifactCapturer
    publisher: PublishRetryController
    platform_url: str
    markup: PlatformMarkup = field(default_factory=PlatformMarkup)
    extractor: SignalExtractor = field(default_factory=SignalExtractor)
    timings: WorkflowTimings = field(default_factory=WorkflowTimings)
    clock: Callable[[], float] = time.monotonic
    phase: Phase = field(default=Phase.INIT, init=False)
    history: list[Phase] = field(default_factory=lambda: [Phase.INIT], init=False)
    artifact: ArtifactRecord = field(default_factory=ArtifactRecord, init=False)
    _last_snapshot: ProgressSnapshot | None = field(default=None, init=False)

    async def run(self) -> Outcome:
        """Run the whole workflow and emit exactly one terminal event."""
        try:
            return await self._run()
        except Exception as exc:  # noqa: BLE001
            logger.exception("Error during cloning")
            if self.phase.can_advance_to(Phase.FAILED):
                self._advance(Phase.FAILED)
            self.channel.emit(
                ErrorEvent(
                    error=f"Failed to clone website: {exc}",
                    details=traceback.format_exc(),
                )
            )
            return Failed(reason=str(exc))

    async def _run(self) -> Outcome:
        await self._navigate()
        self._advance(Phase.NAVIGATED)
        await self._submit()
        self._advance(Phase.SUBMITTED)

        logger.info("Checking if login is required...")
        if await self.ui.is_role_visible(
            self.markup.login_button_role, self.markup.login_button_name
        ):
            await self._authenticate()
            logger.info("Navigating back to platform after login")
            await self._navigate()
            self._status("Submitting...", Phase.RESUBMITTED)
            await self._submit()
            self._advance(Phase.RESUBMITTED)

        preview_ready = await self._monitor()
        if preview_ready:
            await self._finish_preview()
        return await self._complete(preview_ready)

    async def _navigate(self) -> None:
        logger.info("Navigating to platform...")
        await self.ui.goto(
            self.platform_url, _millis(self.timings.navigation_timeout)
        )
        await self.ui.pause(self.timings.after_navigation)

    async def _submit(self) -> None:
        logger.info("Entering URL: %s", self.request.target_url)
        await self._fill_target_url()
        if self.request.has_instructions:
            await self._compose_instructions()
        logger.info("Clicking submit...")
        await self.ui.click_by_test_id(self.markup.submit_test_id)
        await self.ui.pause(self.timings.after_submit)

    async def _fill_target_url(self) -> None:
        await self.ui.click_by_role(
            self.markup.url_field_role, self.markup.url_field_name
        )
        await self.ui.fill_by_role(
            self.markup.url_field_role,
            self.request.target_url,
            self.markup.url_field_name,
        )

    async def _compose_instructions(self) -> None:
        self._status("Adding custom instructions...")
        logger.info(
            "Adding custom instructions: %s...", self.request.instructions[:50]
        )
        markup = self.markup
        try:
            await self.ui.click_by_role(markup.paragraph_role, index=1)
            await self.ui.pause(self.timings.compose_click_pause)
            await self.ui.click_by_role(markup.paragraph_role, index=0)
            await self.ui.pause(self.timings.compose_click_pause)
            await self.ui.fill_by_role(
                markup.instructions_field_role,
                self.request.instructions.strip() + "\n\n\n",
            )
            await self.ui.type_by_role(
                markup.instructions_field_role, markup.command_trigger
            )
            await self.ui.pause(self.timings.compose_menu_pause)
            await self.ui.click_by_text(markup.clone_command_text)
            await self._fill_target_url()
            await self.ui.pause(self.timings.compose_settle)
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Could not add instructions, continuing without them: %s", exc
            )

    async def _authenticate(self) -> None:
        self._advance(Phase.AUTH_CHALLENGED)
        logger.info("Login required. Signing in...")
        if not self.credentials.is_configured:
            logger.warning("Login required but platform credentials are not configured")
        markup = self.markup
        await self.ui.click_by_role(markup.login_button_role, markup.login_button_name)
        await self.ui.pause(self.timings.after_login_click)
        await self.ui.click_by_role("textbox", markup.email_field_name)
        await self.ui.fill_by_role(
            "textbox", self.credentials.identity, markup.email_field_name
        )
        await self.ui.click_by_role("textbox", markup.password_field_name)
        await self.ui.fill_by_role(
            "textbox", self.credentials.secret, markup.password_field_name
        )
        await self.ui.click_by_role("button", markup.sign_in_button_name)
        # Success is not verified; a failed login surfaces as a monitoring timeout.
        await self.ui.pause(self.timings.sign_in_settle)
        self._advance(Phase.AUTHENTICATED)

    async def _monitor(self) -> bool:
        self._advance(Phase.MONITORING)
        self._status("Generation process started! Monitoring progress...")
        await self.ui.pause(self.timings.monitor_start_delay)
        logger.info("Current URL: %s", self.ui.current_url())

        started = self.clock()
        next_capture = 0.0
        while self.clock() - started < self.timings.monitor_ceiling:
            try:
                if self.markup.is_result_url(self.ui.current_url()):
                    return self._preview_ready()
                await self._report_progress()
                elapsed = self.clock() - started
                if elapsed >= next_capture:
                    while next_capture <= elapsed:
                        next_capture += self.timings.progress_capture_every
                    await self._capture("progress")
            except RemoteUIError as exc:
                logger.debug("Ignoring monitoring error: %s", exc)
            await self.ui.pause(self.timings.poll_interval)

        if self.markup.is_result_url(self.ui.current_url()):
            return self._preview_ready()
        logger.warning("Monitoring ceiling reached without a result page")
        return False

    def _preview_ready(self) -> bool:
        self._advance(Phase.PREVIEW_READY)
        self._status("Preview is ready!")
        logger.info("Preview is ready!")
        return True

    async def _report_progress(self) -> None:
        blocks = await self.ui.text_blocks(self.markup.progress_text_selector)
        signal = self.extractor.extract(blocks)
        if signal is None:
            return
        snapshot = ProgressSnapshot(
            message=signal.message, percent=signal.percent, step=self.phase.step
        )
        if snapshot.same_signal(self._last_snapshot):
            return
        self._last_snapshot = snapshot
        self.channel.emit(
            ProgressEvent(
                message=snapshot.message,
                progress=snapshot.percent,
                step=snapshot.step,
            )
        )
        logger.info("Progress: %s", snapshot.message)

    async def _finish_preview(self) -> None:
        try:
            await self._settle_preview()
            await self._capture_preview()
            await self._publish()
        except Exception:  # noqa: BLE001
            logger.exception("Error during publish process")
            self._status("Publish process encountered an issue. Showing preview.")

    async def _settle_preview(self) -> None:
        probe = MarkerProbe(self.markup)
        await self.ui.pause(self.timings.preview_pause)
        self._status("Waiting before checking edits...")
        await self.ui.pause(self.timings.edits_check_delay)

        self._status("Checking if edits are complete...")
        if await probe.is_present(self.ui, Marker.EDITS_IN_PROGRESS):
            self._advance(Phase.EDITS_SETTLING)
            self._status(
                f'Waiting for "{self.markup.edits_marker_text}" to complete '
                "before publishing..."
            )
            try:
                await probe.wait_cleared(
                    self.ui,
                    Marker.EDITS_IN_PROGRESS,
                    _millis(self.timings.edits_timeout),
                )
                self._status("Edits complete. Proceeding to publish...")
                await self.ui.pause(self.timings.after_edits)
            except RemoteUITimeout:
                logger.warning("Timed out waiting for edits to finish, proceeding")

        self._status("Waiting for preview to load...")
        if await probe.is_present(self.ui, Marker.CONTENT_LOADING):
            self._advance(Phase.CONTENT_LOADING)
            self._status(
                f'Waiting for "{self.markup.loading_marker_text}" to complete...'
            )
            try:
                await probe.wait_cleared(
                    self.ui,
                    Marker.CONTENT_LOADING,
                    _millis(self.timings.loading_timeout),
                )
            except RemoteUITimeout:
                logger.warning("Timed out waiting for preview to load, proceeding")

        self._status("Preview settling...")
        await self.ui.pause(self.timings.preview_settle)

    async def _capture_preview(self) -> None:
        path = await self._capture(
            "preview", clip_selector=self.markup.preview_frame_selector
        )
        self._advance(Phase.PREVIEW_CAPTURED)
        if path is None:
            return
        self.artifact.preview_screenshot_path = path
        self.channel.emit(
            PreviewReadyEvent(
                preview_screenshot=path,
                message="Preview ready. Publishing your site...",
            )
        )
        logger.info("Preview sent to caller, starting publish")

    async def _publish(self) -> None:
        self._advance(Phase.PUBLISHING)
        result = await self.publisher.publish(self.ui, self._publish_status)
        self.artifact.screenshot_paths.extend(result.screenshot_paths)
        if result.published:
            self.artifact.published_url = result.url
            self._advance(Phase.PUBLISHED)
            return
        self._advance(Phase.PUBLISH_FAILED)
        self._status("Publish could not be completed. Showing preview.")

    async def _publish_status(self, message: str) -> None:
        self._status(message)

    async def _complete(self, preview_ready: bool) -> Outcome:
        self.artifact.final_screenshot_path = await self._capture("clone-final")
        self.artifact.edit_url = self.ui.current_url()
        self._advance(Phase.COMPLETE)

        artifact = self.artifact
        outcome: Outcome
        if artifact.published_url:
            outcome = Published(url=artifact.published_url, artifact=artifact)
            message = PUBLISHED_MESSAGE
        else:
            outcome = PreviewOnly(artifact=artifact, preview_ready=preview_ready)
            message = PREVIEW_ONLY_MESSAGE if preview_ready else NO_PREVIEW_MESSAGE

        self.channel.emit(
            CompleteEvent(
                screenshot=artifact.final_screenshot_path,
                preview_screenshot=artifact.preview_screenshot_path,
                edit_url=artifact.edit_url,
                published_url=artifact.published_url,
                message=message,
            )
        )
        logger.info("Generation complete! Final URL: %s", artifact.edit_url)
        return outcome

    async def _capture(self, kind: str, clip_selector: str | None = None) -> str | None:
        path = await self.capturer.try_capture(self.ui, kind, clip_selector)
        if path is not None:
            self.artifact.screenshot_paths.append(path)
        return path

    def _status(self, message: str, phase: Phase | None = None) -> None:
        step = (phase or self.phase).step
        self.channel.emit(StatusEvent(message=message, step=step))

    def _advance(self, target: Phase) -> None:
        if not self.phase.can_advance_to(target):
            raise RuntimeError(
                f"Illegal phase transition {self.phase.name} -> {target.name}"
            )
        logger.debug("Phase %s -> %s", self.phase.name, target.name)
        self.phase = target
        self.history.append(target)
