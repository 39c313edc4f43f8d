"""ASGI entrypoint for the body tracker API."""

from body_tracker.api.app import create_app
from body_tracker.containers import build_container

app = create_app(build_container())
