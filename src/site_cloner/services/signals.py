"""Heuristic progress signals scraped from the platform's rendered text."""

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from site_cloner.services.markup import PlatformMarkup
from site_cloner.services.ui import RemoteUI


_PERCENT_PATTERN = re.compile(r"(\d+)%")

DEFAULT_MILESTONE_PHRASES: tuple[str, ...] = (
    "Creating visual direction",
    "Scanning page elements",
    "Project structure",
    "Let's build",
)


@dataclass(frozen=True)
class Signal:
    """Progress information read from one page snapshot."""

    text: str
    percent: int | None = None

    @property
    def message(self) -> str:
        if self.percent is None:
            return self.text
        return f"{self.text} ({self.percent}%)"


class SignalRule(Protocol):
    """One extraction strategy tried against the page text blocks."""

    def match(self, blocks: Sequence[str]) -> Signal | None:
        """Return a signal when the rule recognizes the blocks."""


@dataclass(frozen=True)
class PercentRule:
    """First block containing a ``<number>%`` pattern."""

    def match(self, blocks: Sequence[str]) -> Signal | None:
        for block in blocks:
            found = _PERCENT_PATTERN.search(block)
            if found:
                percent = min(int(found.group(1)), 100)
                return Signal(text=block.strip(), percent=percent)
        return None


@dataclass(frozen=True)
class MilestoneRule:
    """First block containing one of the known milestone phrases."""

    phrases: tuple[str, ...] = DEFAULT_MILESTONE_PHRASES
    max_length: int = 100

    def match(self, blocks: Sequence[str]) -> Signal | None:
        for block in blocks:
            for phrase in self.phrases:
                if phrase in block:
                    return Signal(text=block.strip()[: self.max_length])
        return None


@dataclass
class SignalExtractor:
    """Runs an ordered list of rules; the first rule that matches wins."""

    rules: list[SignalRule] = field(
        default_factory=lambda: [PercentRule(), MilestoneRule()]
    )

    def extract(self, blocks: Iterable[str]) -> Signal | None:
        """Return the first signal found in the page text, if any."""
        snapshot = [block for block in blocks if block]
        for rule in self.rules:
            signal = rule.match(snapshot)
            if signal is not None:
                return signal
        return None


class Marker(Enum):
    """Milestones the workflow waits on after the result page opens."""

    EDITS_IN_PROGRESS = "edits_in_progress"
    CONTENT_LOADING = "content_loading"
    LIVE_BADGE = "live_badge"


@dataclass(frozen=True)
class MarkerProbe:
    """Recognizes milestone markers on the page."""

    markup: PlatformMarkup

    async def is_present(self, ui: RemoteUI, marker: Marker) -> bool:
        """Return whether the marker is currently shown."""
        if marker is Marker.LIVE_BADGE:
            return await ui.is_selector_visible(self.markup.live_badge_selector)
        return await ui.is_text_visible(self._marker_text(marker))

    async def wait_cleared(self, ui: RemoteUI, marker: Marker, timeout_ms: int) -> None:
        """Wait until a text marker disappears."""
        await ui.wait_for_text_hidden(self._marker_text(marker), timeout_ms)

    async def wait_shown(self, ui: RemoteUI, marker: Marker, timeout_ms: int) -> None:
        """Wait until a badge marker appears."""
        if marker is not Marker.LIVE_BADGE:
            raise ValueError(f"{marker.value} is not a badge marker")
        await ui.wait_for_selector(self.markup.live_badge_selector, timeout_ms)

    def _marker_text(self, marker: Marker) -> str:
        if marker is Marker.EDITS_IN_PROGRESS:
            return self.markup.edits_marker_text
        if marker is Marker.CONTENT_LOADING:
            return self.markup.loading_marker_text
        raise ValueError(f"{marker.value} is not a text marker")
