"""ASGI entrypoint for the site cloner API."""

from site_cloner.api.app import create_app
from site_cloner.containers import build_container

app = create_app(build_container())
