from __future__ import annotations

import logging
import urllib.parse
from pathlib import Path

from fastapi import FastAPI, HTTPException, Query, Request, Response
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.templating import Jinja2Templates

from .errors import EpubError
from .service import get_asset, get_chapter
from .storage import asset_base_url, epub_path, is_valid_book_id, library_dir

BASE_DIR = Path(__file__).resolve().parent.parent
TEMPLATES_DIR = BASE_DIR / "templates"

app = FastAPI(title="folio")

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
logger = logging.getLogger("folio.web")


def _no_store_headers() -> dict[str, str]:
    return {
        "Cache-Control": "no-store, max-age=0",
        "CDN-Cache-Control": "no-store",
        "Pragma": "no-cache",
        "Expires": "0",
    }


def _edge_bypass_browser_revalidate_headers() -> dict[str, str]:
    # Browser may store, but must revalidate with origin; CDN must not cache.
    return {
        "Cache-Control": "private, no-cache, must-revalidate",
        "CDN-Cache-Control": "no-store",
        "Pragma": "no-cache",
    }


def _chapter_failure(message: str) -> JSONResponse:
    return JSONResponse(
        {"success": False, "message": message},
        status_code=404,
        headers=_no_store_headers(),
    )


@app.get("/api/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/api/books/{book_id}/chapter")
def chapter(book_id: str, index: str = Query(default="0")) -> JSONResponse:
    if not is_valid_book_id(book_id):
        return _chapter_failure("Invalid book id")
    try:
        chapter_index = int(index)
    except (TypeError, ValueError):
        return _chapter_failure(f"Invalid chapter index: {index}")
    archive = epub_path(library_dir(), book_id)
    try:
        fragment = get_chapter(archive, book_id, chapter_index, base_url=asset_base_url())
    except EpubError as exc:
        return _chapter_failure(str(exc))
    return JSONResponse(
        {
            "success": True,
            "html": fragment.html,
            "chapterIndex": fragment.chapter_index,
            "totalChapters": fragment.total_chapters,
        },
        headers=_no_store_headers(),
    )


@app.get("/api/books/{book_id}/asset")
def asset(book_id: str, path: str = Query(default="")) -> Response:
    if not path:
        raise HTTPException(status_code=404, detail="Asset path missing")
    if not is_valid_book_id(book_id):
        raise HTTPException(status_code=404, detail="Invalid book id")
    archive = epub_path(library_dir(), book_id)
    try:
        item = get_asset(archive, path)
    except EpubError as exc:
        logger.debug("asset request %r for book %s rejected: %s", path, book_id, exc)
        raise HTTPException(status_code=404, detail="Item not found")
    return Response(
        content=item.content,
        media_type=item.media_type,
        headers=_edge_bypass_browser_revalidate_headers(),
    )


@app.get("/books/{book_id}/read", response_class=HTMLResponse)
async def reader(request: Request, book_id: str) -> HTMLResponse:
    if not is_valid_book_id(book_id):
        raise HTTPException(status_code=404, detail="Invalid book id")
    if not epub_path(library_dir(), book_id).is_file():
        raise HTTPException(status_code=404, detail="EPUB missing")
    quoted = urllib.parse.quote(book_id, safe="")
    return templates.TemplateResponse(
        request,
        "reader.html",
        {
            "book_id": book_id,
            "chapter_url": f"/api/books/{quoted}/chapter",
        },
        headers=_no_store_headers(),
    )
