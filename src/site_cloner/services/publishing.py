"""Bounded publish attempts and published address recovery."""

import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Protocol

from site_cloner.domain.errors import RemoteUIError, RemoteUITimeout
from site_cloner.services.artifacts import ArtifactCapturer
from site_cloner.services.markup import PlatformMarkup
from site_cloner.services.signals import Marker, MarkerProbe
from site_cloner.services.ui import RemoteUI

logger = logging.getLogger(__name__)

StatusCallback = Callable[[str], Awaitable[None]]

MAX_PUBLISH_ATTEMPTS = 2


class AddressRule(Protocol):
    """One strategy for reading the published address off the page."""

    name: str

    async def extract(self, ui: RemoteUI, markup: PlatformMarkup) -> str | None:
        """Return the bare published host, if found."""


@dataclass(frozen=True)
class StyledElementRule:
    """Read the highlighted domain element of the publish panel."""

    name: str = "styled-element"

    async def extract(self, ui: RemoteUI, markup: PlatformMarkup) -> str | None:
        text = await ui.text_of(markup.published_domain_selector)
        if text and markup.published_domain_suffix in text:
            return text.strip()
        return None


@dataclass(frozen=True)
class DocumentScanRule:
    """Scan the document for a short text node carrying the domain suffix."""

    name: str = "document-scan"

    async def extract(self, ui: RemoteUI, markup: PlatformMarkup) -> str | None:
        for text in await ui.text_blocks(markup.published_scan_selector):
            if markup.published_domain_suffix in text and " " not in text:
                return text.strip()
        return None


@dataclass(frozen=True)
class PublishTimings:
    """Waits used around each publish attempt, in seconds."""

    retry_pause: float = 3.0
    after_trigger: float = 2.0
    live_badge_timeout: float = 60.0
    after_badge: float = 3.0
    after_details_open: float = 2.0


@dataclass(frozen=True)
class PublishResult:
    """Outcome of the publish controller."""

    url: str | None
    attempts: int
    screenshot_paths: tuple[str, ...] = ()

    @property
    def published(self) -> bool:
        return self.url is not None


@dataclass
class PublishRetryController:
    """Clicks through the publish panel up to ``max_attempts`` times."""

    markup: PlatformMarkup
    capturer: ArtifactCapturer
    max_attempts: int = MAX_PUBLISH_ATTEMPTS
    timings: PublishTimings = field(default_factory=PublishTimings)
    rules: Sequence[AddressRule] = field(
        default_factory=lambda: (StyledElementRule(), DocumentScanRule())
    )

    async def publish(self, ui: RemoteUI, on_status: StatusCallback) -> PublishResult:
        """Publish the current project and return the recovered address."""
        probe = MarkerProbe(self.markup)
        screenshots: list[str] = []
        attempts = 0
        for attempt in range(1, self.max_attempts + 1):
            attempts = attempt
            try:
                url = await self._attempt(ui, probe, attempt, on_status, screenshots)
            except Exception as exc:  # noqa: BLE001
                logger.warning("Publish attempt %d failed: %s", attempt, exc)
                continue
            if url is not None:
                await on_status(f"Website published at: {url}")
                logger.info("Website published at: %s", url)
                return PublishResult(
                    url=url, attempts=attempts, screenshot_paths=tuple(screenshots)
                )
        logger.warning("Publish failed after %d attempts", attempts)
        return PublishResult(
            url=None, attempts=attempts, screenshot_paths=tuple(screenshots)
        )

    async def _attempt(
        self,
        ui: RemoteUI,
        probe: MarkerProbe,
        attempt: int,
        on_status: StatusCallback,
        screenshots: list[str],
    ) -> str | None:
        if attempt > 1:
            await on_status(
                f"Retrying publish (attempt {attempt}/{self.max_attempts})..."
            )
            logger.info("Retrying publish - attempt %d/%d", attempt, self.max_attempts)
            await ui.pause(self.timings.retry_pause)

        await ui.click_selector(self.markup.publish_trigger_selector)
        await ui.pause(self.timings.after_trigger)

        await on_status("Publishing website...")
        await ui.click_selector(self.markup.publish_confirm_selector)

        await on_status("Waiting for publish to complete...")
        try:
            await probe.wait_shown(
                ui, Marker.LIVE_BADGE, int(self.timings.live_badge_timeout * 1000)
            )
            logger.info("LIVE badge appeared")
        except RemoteUITimeout:
            logger.warning("LIVE badge not found on attempt %d", attempt)
        await ui.pause(self.timings.after_badge)

        await on_status("Opening published details...")
        await self._open_details(ui)

        sheet = await self.capturer.try_capture(ui, "publish-sheet")
        if sheet is not None:
            screenshots.append(sheet)

        host = await self._extract_host(ui)
        return f"https://{host}" if host else None

    async def _open_details(self, ui: RemoteUI) -> None:
        if await ui.is_selector_visible(self.markup.published_domain_selector):
            return
        try:
            await ui.click_selector(self.markup.publish_trigger_selector)
            await ui.pause(self.timings.after_details_open)
        except RemoteUIError as exc:
            logger.warning("Could not open published details: %s", exc)

    async def _extract_host(self, ui: RemoteUI) -> str | None:
        for rule in self.rules:
            try:
                host = await rule.extract(ui, self.markup)
            except RemoteUIError as exc:
                logger.warning("Address rule %s failed: %s", rule.name, exc)
                continue
            if host:
                logger.info("Published address found by %s rule", rule.name)
                return host
        return None
