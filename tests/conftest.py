"""Shared test fixtures."""

from dataclasses import dataclass, field
from pathlib import Path

import pytest

from site_cloner.config import Settings
from site_cloner.containers import AppContainer
from site_cloner.domain.clone import CloneRequest, Credentials
from site_cloner.domain.errors import RemoteUIError, RemoteUITimeout
from site_cloner.services.artifacts import ArtifactCapturer
from site_cloner.services.clone import CloneService
from site_cloner.services.markup import PlatformMarkup
from site_cloner.services.progress import ProgressChannel
from site_cloner.services.publishing import PublishRetryController
from site_cloner.services.ui import BrowserLauncher, BrowserSession, Box, RemoteUI
from site_cloner.services.workflow import WorkflowDriver

MARKUP = PlatformMarkup()
PLATFORM_URL = "https://dev.animaapp.com/"
RESULT_URL = "https://dev.animaapp.com/chat/project-123"
PUBLISHED_HOST = "bright-site.dev.animaapp.io"


@dataclass
class FakeClock:
    """Monotonic clock advanced by the fake UI's pauses."""

    now: float = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@dataclass
class FakeRemoteUI(RemoteUI):
    """Scripted stand-in for the remote platform."""

    clock: FakeClock = field(default_factory=FakeClock)
    url: str = "about:blank"
    login_visible: bool = False
    result_after_polls: int | None = 2
    progress_blocks: list[list[str]] = field(
        default_factory=lambda: [
            ["Scanning page elements: 31%"],
            ["Creating visual direction"],
        ]
    )
    edits_visible: bool = False
    loading_visible: bool = False
    stuck_texts: set[str] = field(default_factory=set)
    badge_appears: bool = True
    preview_box: Box | None = field(
        default_factory=lambda: Box(x=400, y=80, width=1200, height=900)
    )
    publish_hosts: list[str | None] = field(
        default_factory=lambda: [PUBLISHED_HOST]
    )
    scan_texts: list[str] = field(default_factory=list)
    failures: dict[str, Exception] = field(default_factory=dict)
    failing_publish_attempts: set[int] = field(default_factory=set)
    calls: list[tuple] = field(default_factory=list)
    screenshots: list[tuple[str, Box | None]] = field(default_factory=list)
    pauses: list[float] = field(default_factory=list)
    polls: int = 0
    submissions: int = 0
    publish_attempts: int = 0

    def _maybe_fail(self, action: str) -> None:
        error = self.failures.get(action)
        if error is not None:
            raise error

    def _current_host(self) -> str | None:
        if not self.publish_hosts or self.publish_attempts == 0:
            return None
        index = min(self.publish_attempts, len(self.publish_hosts)) - 1
        return self.publish_hosts[index]

    async def goto(self, url: str, timeout_ms: int) -> None:
        self.calls.append(("goto", url, timeout_ms))
        self._maybe_fail("goto")
        self.url = url

    def current_url(self) -> str:
        ready_after = self.result_after_polls
        if ready_after is not None and self.polls >= ready_after:
            return RESULT_URL
        return self.url

    async def pause(self, seconds: float) -> None:
        self._maybe_fail("pause")
        self.pauses.append(seconds)
        self.clock.advance(seconds)

    async def click_by_role(
        self, role: str, name: str | None = None, index: int = 0
    ) -> None:
        self.calls.append(("click_by_role", role, name, index))
        self._maybe_fail(f"click:{name or role}")
        if role == "button" and name == MARKUP.sign_in_button_name:
            self.login_visible = False

    async def fill_by_role(
        self, role: str, value: str, name: str | None = None
    ) -> None:
        self.calls.append(("fill_by_role", role, name, value))
        self._maybe_fail(f"fill:{name or role}")

    async def type_by_role(self, role: str, text: str, name: str | None = None) -> None:
        self.calls.append(("type_by_role", role, name, text))

    async def click_by_test_id(self, test_id: str) -> None:
        self.calls.append(("click_by_test_id", test_id))
        self._maybe_fail("submit")
        self.submissions += 1

    async def click_by_text(self, text: str) -> None:
        self.calls.append(("click_by_text", text))
        self._maybe_fail("click_by_text")

    async def click_selector(self, selector: str) -> None:
        self.calls.append(("click_selector", selector))
        if selector == MARKUP.publish_confirm_selector:
            self.publish_attempts += 1
            if self.publish_attempts in self.failing_publish_attempts:
                raise RemoteUIError("publish button detached")

    async def is_role_visible(self, role: str, name: str | None = None) -> bool:
        if name == MARKUP.login_button_name:
            return self.login_visible
        return False

    async def is_text_visible(self, text: str) -> bool:
        if text == MARKUP.edits_marker_text:
            return self.edits_visible
        if text == MARKUP.loading_marker_text:
            return self.loading_visible
        return False

    async def is_selector_visible(self, selector: str) -> bool:
        if selector == MARKUP.published_domain_selector:
            return self._current_host() is not None
        if selector == MARKUP.live_badge_selector:
            return self.badge_appears
        return False

    async def wait_for_text_hidden(self, text: str, timeout_ms: int) -> None:
        self.calls.append(("wait_for_text_hidden", text, timeout_ms))
        if text in self.stuck_texts:
            self.clock.advance(timeout_ms / 1000)
            raise RemoteUITimeout(f"{text} still visible")
        if text == MARKUP.edits_marker_text:
            self.edits_visible = False
        if text == MARKUP.loading_marker_text:
            self.loading_visible = False

    async def wait_for_selector(self, selector: str, timeout_ms: int) -> None:
        self.calls.append(("wait_for_selector", selector, timeout_ms))
        if selector == MARKUP.live_badge_selector and not self.badge_appears:
            self.clock.advance(timeout_ms / 1000)
            raise RemoteUITimeout("badge never appeared")

    async def bounding_box(self, selector: str) -> Box | None:
        self._maybe_fail("bounding_box")
        return self.preview_box

    async def screenshot(self, path: Path, clip: Box | None = None) -> None:
        self._maybe_fail("screenshot")
        path.write_bytes(b"\x89PNG\r\n\x1a\nfake")
        self.screenshots.append((path.name, clip))

    async def text_blocks(self, selector: str) -> list[str]:
        if selector == MARKUP.progress_text_selector:
            self.polls += 1
            self._maybe_fail("text_blocks")
            if not self.progress_blocks:
                return []
            index = min(self.polls, len(self.progress_blocks)) - 1
            return self.progress_blocks[index]
        return list(self.scan_texts)

    async def text_of(self, selector: str) -> str | None:
        if selector == MARKUP.published_domain_selector:
            return self._current_host()
        return None

    def count(self, name: str) -> int:
        return sum(1 for call in self.calls if call[0] == name)


@dataclass
class FakeBrowserSession(BrowserSession):
    """Browser session wrapping a fake UI."""

    ui: FakeRemoteUI
    closed: bool = False

    async def close(self) -> None:
        self.closed = True


@dataclass
class FakeBrowserLauncher(BrowserLauncher):
    """Launcher handing out sessions around one fake UI."""

    ui: FakeRemoteUI
    error: Exception | None = None
    sessions: list[FakeBrowserSession] = field(default_factory=list)

    async def launch(self) -> FakeBrowserSession:
        if self.error is not None:
            raise self.error
        session = FakeBrowserSession(ui=self.ui)
        self.sessions.append(session)
        return session

    async def close(self) -> None:
        for session in self.sessions:
            await session.close()


def make_driver(
    ui: FakeRemoteUI,
    screenshots_dir: Path,
    request: CloneRequest | None = None,
    channel: ProgressChannel | None = None,
) -> WorkflowDriver:
    capturer = ArtifactCapturer(directory=screenshots_dir)
    return WorkflowDriver(
        ui=ui,
        request=request or CloneRequest(target_url="https://example.com"),
        channel=channel or ProgressChannel(),
        credentials=Credentials(identity="user@example.com", secret="s3cret-pass"),
        capturer=capturer,
        publisher=PublishRetryController(markup=MARKUP, capturer=capturer),
        platform_url=PLATFORM_URL,
        markup=MARKUP,
        clock=ui.clock,
    )


async def collect(channel: ProgressChannel) -> list[dict[str, object]]:
    """Drain a terminated channel into wire-format dicts."""
    return [event.model_dump(by_alias=True) async for event in channel.events()]


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        anima_email="user@example.com",
        anima_password="s3cret-pass",
        screenshots_dir=tmp_path / "screenshots",
        idle_before_close_seconds=0,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def remote_ui(clock: FakeClock) -> FakeRemoteUI:
    return FakeRemoteUI(clock=clock)


@pytest.fixture
def launcher(remote_ui: FakeRemoteUI) -> FakeBrowserLauncher:
    return FakeBrowserLauncher(ui=remote_ui)


@pytest.fixture
def container(
    settings: Settings, launcher: FakeBrowserLauncher, clock: FakeClock
) -> AppContainer:
    clone_service = CloneService(
        launcher=launcher,
        credentials=settings.credentials(),
        platform_url=settings.platform_url,
        screenshots_dir=settings.screenshots_dir,
        screenshots_prefix=settings.screenshots_prefix,
        idle_before_close_seconds=settings.idle_before_close_seconds,
        markup=MARKUP,
        clock=clock,
    )

    async def close_resources() -> None:
        await launcher.close()

    return AppContainer(
        settings=settings,
        launcher=launcher,
        clone_service=clone_service,
        close_resources=close_resources,
    )
