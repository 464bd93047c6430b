"""ASGI entrypoint for the instructor portal API."""

from instructor_portal.api.app import create_app
from instructor_portal.containers import build_container

app = create_app(build_container())
