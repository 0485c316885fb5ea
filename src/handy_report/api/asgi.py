"""ASGI entrypoint for the report API."""

from handy_report.api.app import create_app
from handy_report.containers import build_container

app = create_app(build_container())
