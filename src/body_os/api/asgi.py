"""ASGI entrypoint for the Body OS API."""

from body_os.api.app import create_app
from body_os.containers import build_container

app = create_app(build_container())
