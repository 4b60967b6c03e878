"""Intent-level interface to the remote platform UI."""

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol


@dataclass(frozen=True)
class Box:
    """Page region in CSS pixels."""

    x: float
    y: float
    width: float
    height: float

    @property
    def is_visible_area(self) -> bool:
        return self.width > 0 and self.height > 0


class RemoteUI(Protocol):
    """Actions against a controllable browser page.

    Every action reports failure as ``RemoteUIError`` and every bounded wait
    that runs out of time as ``RemoteUITimeout``. The ``is_*_visible`` probes
    never raise.
    """

    async def goto(self, url: str, timeout_ms: int) -> None:
        """Navigate to url and wait for the DOM to be ready."""

    def current_url(self) -> str:
        """Return the page's current location."""

    async def pause(self, seconds: float) -> None:
        """Wait a fixed amount of time."""

    async def click_by_role(
        self, role: str, name: str | None = None, index: int = 0
    ) -> None:
        """Click the index-th element with the given ARIA role and name."""

    async def fill_by_role(
        self, role: str, value: str, name: str | None = None
    ) -> None:
        """Replace the value of the element with the given role and name."""

    async def type_by_role(self, role: str, text: str, name: str | None = None) -> None:
        """Type text key by key into the element with the given role and name."""

    async def click_by_test_id(self, test_id: str) -> None:
        """Click the element carrying the given test id."""

    async def click_by_text(self, text: str) -> None:
        """Click the element showing the given text."""

    async def click_selector(self, selector: str) -> None:
        """Click the first element matching a CSS selector."""

    async def is_role_visible(self, role: str, name: str | None = None) -> bool:
        """Return whether an element with the role and name is visible."""

    async def is_text_visible(self, text: str) -> bool:
        """Return whether the given text is visible."""

    async def is_selector_visible(self, selector: str) -> bool:
        """Return whether the first element matching selector is visible."""

    async def wait_for_text_hidden(self, text: str, timeout_ms: int) -> None:
        """Wait until the given text is no longer visible."""

    async def wait_for_selector(self, selector: str, timeout_ms: int) -> None:
        """Wait until an element matching selector appears."""

    async def bounding_box(self, selector: str) -> Box | None:
        """Return the region of the first element matching selector."""

    async def screenshot(self, path: Path, clip: Box | None = None) -> None:
        """Write a viewport screenshot, optionally clipped, to path."""

    async def text_blocks(self, selector: str) -> list[str]:
        """Return the text content of every element matching selector."""

    async def text_of(self, selector: str) -> str | None:
        """Return the text of the first visible element matching selector."""


class BrowserSession(Protocol):
    """One exclusively owned browser with a single page."""

    ui: RemoteUI

    async def close(self) -> None:
        """Release the browser."""


class BrowserLauncher(Protocol):
    """Factory for browser sessions."""

    async def launch(self) -> BrowserSession:
        """Start a new browser session."""

    async def close(self) -> None:
        """Close every session that is still open."""
