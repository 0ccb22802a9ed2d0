"""ASGI entrypoint for the physique planner API."""

from physique_planner.api.app import create_app
from physique_planner.containers import build_container

app = create_app(build_container())
