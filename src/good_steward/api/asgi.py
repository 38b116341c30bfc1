"""ASGI entrypoint for the Good Steward API."""

from good_steward.api.app import create_app
from good_steward.containers import build_container

app = create_app(build_container())
