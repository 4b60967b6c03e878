"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from site_cloner.adapters.playwright_ui import PlaywrightBrowserLauncher
from site_cloner.config import Settings
from site_cloner.services.clone import CloneService
from site_cloner.services.markup import PlatformMarkup
from site_cloner.services.ui import BrowserLauncher


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    launcher: BrowserLauncher
    clone_service: CloneService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    launcher = PlaywrightBrowserLauncher.create(resolved_settings)
    clone_service = CloneService(
        launcher=launcher,
        credentials=resolved_settings.credentials(),
        platform_url=resolved_settings.platform_url,
        screenshots_dir=resolved_settings.screenshots_dir,
        screenshots_prefix=resolved_settings.screenshots_prefix,
        idle_before_close_seconds=resolved_settings.idle_before_close_seconds,
        markup=PlatformMarkup(
            published_domain_suffix=resolved_settings.published_domain_suffix
        ),
    )

    async def close_resources() -> None:
        await launcher.close()

    return AppContainer(
        settings=resolved_settings,
        launcher=launcher,
        clone_service=clone_service,
        close_resources=close_resources,
    )
