"""
Static client asset endpoints
"""

import asyncio
from pathlib import Path

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse, Response

from .logging_config import get_logger, log_action


CONTENT_TYPES = {
    ".html": "text/html",
    ".css": "text/css",
    ".js": "application/javascript",
    ".json": "application/json",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
}
DEFAULT_CONTENT_TYPE = "text/plain"
INDEX_FILE = "index.html"
# Registered on the asset routes so unmatched requests of any method get a 404
ANY_METHOD = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]

logger = get_logger("deposit_slip.assets")

router = APIRouter()


def content_type_for(path: Path) -> str:
    return CONTENT_TYPES.get(path.suffix.lower(), DEFAULT_CONTENT_TYPE)


def resolve_asset(static_dir: Path, asset_path: str):
    """Resolve a request path inside the static directory, None if it escapes or is missing"""
    root = static_dir.resolve()
    try:
        target = (root / asset_path).resolve()
        if target != root and root not in target.parents:
            return None
        if not target.is_file():
            return None
    except (OSError, ValueError):
        return None
    return target


def not_found() -> Response:
    return PlainTextResponse("404 Not Found", status_code=404)


async def serve_asset(request: Request, asset_path: str) -> Response:
    if request.method != "GET":
        return not_found()

    target = resolve_asset(request.app.state.static_dir, asset_path)
    if target is None:
        return not_found()

    try:
        content = await asyncio.to_thread(target.read_bytes)
    except OSError:
        log_action(
            logger, "error", f"Failed to read asset {asset_path}",
            action="serve_asset", resource=f"asset:{asset_path}", exc_info=True
        )
        return PlainTextResponse("500 Internal Server Error", status_code=500)

    return Response(content=content, media_type=content_type_for(target))


@router.api_route("/", methods=ANY_METHOD, include_in_schema=False)
async def get_index(request: Request):
    """Serve the deposit slip form"""
    return await serve_asset(request, INDEX_FILE)


@router.api_route("/{asset_path:path}", methods=ANY_METHOD, include_in_schema=False)
async def get_asset(asset_path: str, request: Request):
    """Serve a named client asset; anything else falls through to 404"""
    return await serve_asset(request, asset_path)
