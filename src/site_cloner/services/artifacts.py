"""Timestamped screenshot capture."""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from site_cloner.domain.errors import RemoteUIError
from site_cloner.services.ui import RemoteUI

logger = logging.getLogger(__name__)


def _epoch_millis() -> int:
    return int(time.time() * 1000)


# Last stamp handed out per output directory, across all capturers.
_last_millis_by_directory: dict[Path, int] = {}


@dataclass
class ArtifactCapturer:
    """Writes ``<kind>-<epoch-millis>.png`` files and returns their public paths."""

    directory: Path
    url_prefix: str = "/screenshots"
    clock_ms: Callable[[], int] = _epoch_millis

    def __post_init__(self) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        self.url_prefix = "/" + self.url_prefix.strip("/")

    async def capture(
        self, ui: RemoteUI, kind: str, clip_selector: str | None = None
    ) -> str:
        """Capture the viewport, clipped to clip_selector when it resolves.

        Falls back to a whole-viewport capture when the region cannot be
        resolved or the clipped capture fails.
        """
        filename = self._filename(kind)
        path = self.directory / filename
        if clip_selector is not None:
            try:
                box = await ui.bounding_box(clip_selector)
                if box is not None and box.is_visible_area:
                    await ui.screenshot(path, clip=box)
                    logger.info("Captured %s from %s region", filename, clip_selector)
                    return self.public_path(filename)
            except RemoteUIError as exc:
                logger.warning(
                    "Clipped capture failed, using viewport capture: %s", exc
                )
        await ui.screenshot(path)
        logger.info("Captured %s", filename)
        return self.public_path(filename)

    async def try_capture(
        self, ui: RemoteUI, kind: str, clip_selector: str | None = None
    ) -> str | None:
        """Capture like ``capture`` but return None instead of raising."""
        try:
            return await self.capture(ui, kind, clip_selector)
        except RemoteUIError as exc:
            logger.warning("Could not capture %s screenshot: %s", kind, exc)
            return None

    def public_path(self, filename: str) -> str:
        """Return the path under which a capture is served."""
        return f"{self.url_prefix}/{filename}"

    def _filename(self, kind: str) -> str:
        key = self.directory.resolve()
        millis = max(self.clock_ms(), _last_millis_by_directory.get(key, 0) + 1)
        _last_millis_by_directory[key] = millis
        return f"{kind}-{millis}.png"
