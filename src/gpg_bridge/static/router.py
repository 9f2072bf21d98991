"""
静态内容路由：固定的路径到文件映射，其它路径或非 GET 方法一律 404。
"""

from pathlib import Path

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import FileResponse

ASSETS_DIR = Path(__file__).resolve().parent / "assets"

STATIC_ROUTES = {
    "/": ("index.html", "text/html"),
    "/index.html": ("index.html", "text/html"),
    "/favicon.svg": ("favicon.svg", "image/svg+xml"),
    "/logo.svg": ("logo.svg", "image/svg+xml"),
}

router = APIRouter(tags=["Static"])


@router.api_route(
    "/{path:path}",
    methods=["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    include_in_schema=False,
)
async def static_file(request: Request, path: str):
    entry = STATIC_ROUTES.get("/" + path)
    if request.method != "GET" or entry is None:
        raise HTTPException(status_code=404, detail="Not Found")
    name, media_type = entry
    return FileResponse(path=ASSETS_DIR / name, media_type=media_type)
