"""Tests for container wiring."""

import asyncio

from site_cloner.adapters.playwright_ui import PlaywrightBrowserLauncher
from site_cloner.containers import build_container


def test_build_container_creates_services(settings) -> None:
    container = build_container(settings)

    assert container.clone_service is not None
    assert isinstance(container.launcher, PlaywrightBrowserLauncher)
    assert container.clone_service.credentials.identity == "user@example.com"
    assert container.clone_service.markup.published_domain_suffix == (
        settings.published_domain_suffix
    )
    asyncio.run(container.close_resources())
