"""ASGI entrypoint for the DeLorean API."""

from delorean.api.app import create_app
from delorean.containers import build_container

app = create_app(build_container())
