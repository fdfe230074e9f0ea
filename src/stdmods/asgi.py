"""ASGI app that serves the public directory and an import-map page."""

from __future__ import annotations

import asyncio
import logging
import mimetypes
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

from stdmods.importmap import generate_import_map
from stdmods.manifest import load_manifest
from stdmods.plugins import ASSET_MANIFEST_FILENAME
from stdmods.views import render_index

Scope = dict[str, Any]
Receive = Callable[[], Awaitable[dict[str, Any]]]
Send = Callable[[dict[str, Any]], Awaitable[None]]

logger = logging.getLogger(__name__)

_CONTENT_TYPES = {
    ".mjs": "text/javascript",
    ".js": "text/javascript",
    ".json": "application/json",
    ".html": "text/html; charset=utf-8",
}


def _content_type(path: Path) -> str:
    known = _CONTENT_TYPES.get(path.suffix)
    if known is not None:
        return known
    guessed, _ = mimetypes.guess_type(path.name)
    return guessed or "application/octet-stream"


def _static_path(public_dir: Path, request_path: str) -> Path | None:
    candidate = (public_dir / request_path.lstrip("/")).resolve()
    try:
        candidate.relative_to(public_dir)
    except ValueError:
        return None
    if not candidate.is_file():
        return None
    return candidate


async def _respond(
    send: Send,
    status: int,
    body: bytes,
    content_type: str,
    *,
    head: bool = False,
) -> None:
    headers = [
        (b"content-type", content_type.encode("latin-1")),
        (b"content-length", str(len(body)).encode("latin-1")),
    ]
    await send({"type": "http.response.start", "status": status, "headers": headers})
    await send({"type": "http.response.body", "body": b"" if head else body})


def create_app(
    public_dir: Path,
    manifest_name: str = ASSET_MANIFEST_FILENAME,
    title: str = "stdmods",
) -> Callable[[Scope, Receive, Send], Awaitable[None]]:
    """Build the app; the manifest is read once here and never reloaded."""
    root = public_dir.resolve()
    manifest = load_manifest(root / manifest_name)
    index_html = render_index(manifest, generate_import_map(manifest), title).encode(
        "utf-8"
    )

    async def app(scope: Scope, receive: Receive, send: Send) -> None:
        scope_type = scope.get("type")
        if scope_type == "lifespan":
            while True:
                event = await receive()
                if event.get("type") == "lifespan.startup":
                    await send({"type": "lifespan.startup.complete"})
                elif event.get("type") == "lifespan.shutdown":
                    await send({"type": "lifespan.shutdown.complete"})
                    return
        if scope_type != "http":
            raise RuntimeError(f"Unsupported ASGI scope '{scope_type}'")

        method = scope.get("method", "GET")
        path = scope.get("path", "/")
        if method not in {"GET", "HEAD"}:
            await _respond(send, 405, b"Method Not Allowed", "text/plain")
            return
        head = method == "HEAD"
        if path in {"/", "/index.html"}:
            await _respond(send, 200, index_html, _CONTENT_TYPES[".html"], head=head)
            return
        static = _static_path(root, path)
        if static is None:
            logger.debug("No static file for %s", path)
            await _respond(send, 404, b"Not Found", "text/plain", head=head)
            return
        body = await asyncio.to_thread(static.read_bytes)
        await _respond(send, 200, body, _content_type(static), head=head)

    return app
