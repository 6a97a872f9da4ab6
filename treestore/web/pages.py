from pathlib import Path

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from treestore.domain.errors import MalformedDataError
from treestore.features.render.html import render_html

router = APIRouter(tags=["pages"])

templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent.parent / "templates"))

logger = structlog.get_logger()


async def _page(request: Request, name: str) -> HTMLResponse:
    trees = request.app.state.trees
    try:
        resolved = await trees.resolve_bookmark(name)
    except MalformedDataError as e:
        logger.error("page_malformed_data", name=name, key=e.key)
        return templates.TemplateResponse(
            request, "page.html", {"title": name, "error": "malformed_node"}, status_code=500
        )
    except OSError as e:
        logger.error("page_storage_error", name=name, error=str(e))
        return templates.TemplateResponse(
            request, "page.html", {"title": name, "error": "storage_error"}, status_code=500
        )

    # Unbound bookmarks and empty trees both render as an empty page.
    return templates.TemplateResponse(
        request, "page.html", {"title": name, "error": None, "body": render_html(resolved)}
    )


@router.get("/", response_class=HTMLResponse)
async def home(request: Request) -> HTMLResponse:
    return await _page(request, request.app.state.cfg.home_bookmark)


@router.get("/b/{name}", response_class=HTMLResponse)
async def bookmark_page(request: Request, name: str) -> HTMLResponse:
    return await _page(request, name)
