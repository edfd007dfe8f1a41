"""Reflex configuration for the trace viewer app."""

import os

import reflex as rx
from reflex.config import LogLevel

DEV_MODE = os.environ.get("TRACE_VIEWER_DEV", "false").lower() == "true"
BACKEND_PORT = int(os.environ.get("TRACE_VIEWER_BACKEND_PORT", "8002"))

config = rx.Config(
    app_name="trace_viewer",
    plugins=[
        rx.plugins.TailwindV4Plugin(),
        rx.plugins.SitemapPlugin(),
    ],
    frontend_port=int(os.environ.get("TRACE_VIEWER_FRONTEND_PORT", "3000")),
    backend_port=BACKEND_PORT,
    backend_host="0.0.0.0",
    # Reflex's own backend, not the trace server (TRACE_VIEWER_ENDPOINT)
    api_url=os.environ.get("REFLEX_API_URL", f"http://localhost:{BACKEND_PORT}"),
    env_file=".env",
    loglevel=LogLevel.DEBUG if DEV_MODE else LogLevel.INFO,
    telemetry_enabled=False,
)
