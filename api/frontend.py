"""
Serves the built single-page frontend.

Files under the dist directory are served as-is. Every other GET outside
/api gets index.html so the client-side router can render it; the login
callback lands on /dashboard and failed logins on /?error=...

Must be mounted after every API router: the fallback route matches any path.
"""

import logging
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles

from api.base import json_error, ErrorCodes

logger = logging.getLogger(__name__)


def _is_api_path(path: str) -> bool:
    return path == "api" or path.startswith("api/")


def mount_frontend(app: FastAPI, dist_dir: Path) -> None:
    """Serve dist_dir's files with an index.html fallback for client routes."""
    dist_dir = dist_dir.resolve()
    index = dist_dir / "index.html"
    if not index.is_file():
        logger.warning(f"Frontend entrypoint missing: {index}")

    assets = dist_dir / "assets"
    if assets.is_dir():
        app.mount("/assets", StaticFiles(directory=assets), name="assets")

    @app.get("/{path:path}", include_in_schema=False)
    async def serve_frontend(path: str, request: Request):
        if _is_api_path(path):
            return json_error(404, ErrorCodes.NOT_FOUND, "Not found", request)

        if path:
            candidate = (dist_dir / path).resolve()
            if candidate.is_relative_to(dist_dir) and candidate.is_file():
                return FileResponse(candidate)

        if not index.is_file():
            return json_error(404, ErrorCodes.NOT_FOUND, "Frontend not built", request)
        return FileResponse(index)

    logger.info(f"Serving frontend from {dist_dir}")
