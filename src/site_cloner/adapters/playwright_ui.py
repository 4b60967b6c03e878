"""Playwright-backed remote UI adapter and browser launcher."""

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from playwright.async_api import Browser, Locator, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from site_cloner.config import Settings
from site_cloner.domain.errors import RemoteUIError, RemoteUITimeout
from site_cloner.services.ui import Box, RemoteUI

logger = logging.getLogger(__name__)

DOCKER_CHROMIUM_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--disable-software-rasterizer",
]
BOUNDING_BOX_TIMEOUT_MS = 5000


@contextmanager
def _translate_errors(action: str) -> Iterator[None]:
    try:
        yield
    except PlaywrightTimeoutError as exc:
        raise RemoteUITimeout(f"{action} timed out: {exc}") from exc
    except PlaywrightError as exc:
        raise RemoteUIError(f"{action} failed: {exc}") from exc


@dataclass
class PlaywrightRemoteUI(RemoteUI):
    """Remote UI actions on a single Playwright page."""

    page: Page

    def _by_role(self, role: str, name: str | None) -> Locator:
        if name is None:
            return self.page.get_by_role(role)  # type: ignore[arg-type]
        return self.page.get_by_role(role, name=name)  # type: ignore[arg-type]

    async def goto(self, url: str, timeout_ms: int) -> None:
        with _translate_errors(f"navigate to {url}"):
            await self.page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)

    def current_url(self) -> str:
        return self.page.url

    async def pause(self, seconds: float) -> None:
        with _translate_errors("wait"):
            await self.page.wait_for_timeout(seconds * 1000)

    async def click_by_role(
        self, role: str, name: str | None = None, index: int = 0
    ) -> None:
        with _translate_errors(f"click {role} {name or ''}".strip()):
            await self._by_role(role, name).nth(index).click()

    async def fill_by_role(
        self, role: str, value: str, name: str | None = None
    ) -> None:
        with _translate_errors(f"fill {role} {name or ''}".strip()):
            await self._by_role(role, name).first.fill(value)

    async def type_by_role(self, role: str, text: str, name: str | None = None) -> None:
        with _translate_errors(f"type into {role} {name or ''}".strip()):
            await self._by_role(role, name).first.press_sequentially(text)

    async def click_by_test_id(self, test_id: str) -> None:
        with _translate_errors(f"click test id {test_id}"):
            await self.page.get_by_test_id(test_id).click()

    async def click_by_text(self, text: str) -> None:
        with _translate_errors(f"click text {text!r}"):
            await self.page.get_by_text(text).first.click()

    async def click_selector(self, selector: str) -> None:
        with _translate_errors(f"click {selector}"):
            await self.page.locator(selector).first.click()

    async def is_role_visible(self, role: str, name: str | None = None) -> bool:
        return await _is_visible(self._by_role(role, name).first)

    async def is_text_visible(self, text: str) -> bool:
        return await _is_visible(self.page.get_by_text(text).first)

    async def is_selector_visible(self, selector: str) -> bool:
        return await _is_visible(self.page.locator(selector).first)

    async def wait_for_text_hidden(self, text: str, timeout_ms: int) -> None:
        with _translate_errors(f"wait for {text!r} to disappear"):
            await self.page.get_by_text(text).first.wait_for(
                state="hidden", timeout=timeout_ms
            )

    async def wait_for_selector(self, selector: str, timeout_ms: int) -> None:
        with _translate_errors(f"wait for {selector}"):
            await self.page.wait_for_selector(selector, timeout=timeout_ms)

    async def bounding_box(self, selector: str) -> Box | None:
        with _translate_errors(f"measure {selector}"):
            box = await self.page.locator(selector).first.bounding_box(
                timeout=BOUNDING_BOX_TIMEOUT_MS
            )
        if box is None:
            return None
        return Box(x=box["x"], y=box["y"], width=box["width"], height=box["height"])

    async def screenshot(self, path: Path, clip: Box | None = None) -> None:
        options: dict[str, Any] = {"path": str(path), "full_page": False}
        if clip is not None:
            options["clip"] = {
                "x": clip.x,
                "y": clip.y,
                "width": clip.width,
                "height": clip.height,
            }
        with _translate_errors(f"screenshot {path.name}"):
            await self.page.screenshot(**options)

    async def text_blocks(self, selector: str) -> list[str]:
        with _translate_errors(f"read text of {selector}"):
            return await self.page.locator(selector).all_text_contents()

    async def text_of(self, selector: str) -> str | None:
        locator = self.page.locator(selector).first
        if not await _is_visible(locator):
            return None
        with _translate_errors(f"read text of {selector}"):
            return await locator.text_content()


async def _is_visible(locator: Locator) -> bool:
    try:
        return await locator.is_visible()
    except PlaywrightError:
        return False


@dataclass(eq=False)
class PlaywrightBrowserSession:
    """A Chromium browser, its Playwright driver and the page being driven."""

    playwright: Playwright
    browser: Browser
    ui: PlaywrightRemoteUI
    on_close: Callable[["PlaywrightBrowserSession"], None] | None = None
    closed: bool = False

    async def close(self) -> None:
        """Close the browser and stop Playwright; never raises."""
        if self.closed:
            return
        self.closed = True
        try:
            await self.browser.close()
        except PlaywrightError as exc:
            logger.warning("Error while closing browser: %s", exc)
        finally:
            try:
                await self.playwright.stop()
            except PlaywrightError as exc:
                logger.warning("Error while stopping Playwright: %s", exc)
            if self.on_close is not None:
                self.on_close(self)


@dataclass
class PlaywrightBrowserLauncher:
    """Launches one Chromium instance per clone session."""

    headless: bool = True
    docker: bool = False
    slow_mo_ms: int = 0
    viewport_width: int = 1920
    viewport_height: int = 1080
    sessions: set[PlaywrightBrowserSession] = field(default_factory=set)

    @classmethod
    def create(cls, settings: Settings) -> "PlaywrightBrowserLauncher":
        """Create a launcher from application settings."""
        return cls(
            headless=settings.headless,
            docker=settings.docker,
            slow_mo_ms=settings.slow_mo_ms,
            viewport_width=settings.viewport_width,
            viewport_height=settings.viewport_height,
        )

    def launch_options(self) -> dict[str, Any]:
        """Return keyword arguments for ``chromium.launch``."""
        options: dict[str, Any] = {
            "headless": self.headless,
            "slow_mo": self.slow_mo_ms,
        }
        if self.docker:
            options["args"] = list(DOCKER_CHROMIUM_ARGS)
        return options

    async def launch(self) -> PlaywrightBrowserSession:
        """Start Playwright, launch Chromium and open a page."""
        logger.info(
            "Launching browser (%s)...", "headless" if self.headless else "headful"
        )
        playwright = await async_playwright().start()
        try:
            browser = await playwright.chromium.launch(**self.launch_options())
        except PlaywrightError as exc:
            await playwright.stop()
            raise RemoteUIError(f"Could not launch browser: {exc}") from exc
        try:
            context = await browser.new_context(
                viewport={"width": self.viewport_width, "height": self.viewport_height}
            )
            page = await context.new_page()
        except PlaywrightError as exc:
            await browser.close()
            await playwright.stop()
            raise RemoteUIError(f"Could not open a page: {exc}") from exc
        session = PlaywrightBrowserSession(
            playwright=playwright,
            browser=browser,
            ui=PlaywrightRemoteUI(page),
            on_close=self.sessions.discard,
        )
        self.sessions.add(session)
        return session

    async def close(self) -> None:
        """Close sessions still open, e.g. at application shutdown."""
        for session in list(self.sessions):
            await session.close()
