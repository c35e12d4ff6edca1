"""ASGI entrypoint for the listen-together API."""

from listen_together.api.app import create_app
from listen_together.containers import build_container

app = create_app(build_container())
