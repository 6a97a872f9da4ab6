from typing import Any

import structlog
from fastapi import APIRouter, Body, HTTPException, Request
from pydantic import BaseModel

from treestore.domain.errors import InvalidIdentifierError, MalformedDataError
from treestore.domain.nodes import node_to_wire
from treestore.domain.validation import parse_node
from treestore.features.resolution.service import TreeService

router = APIRouter(prefix="/api", tags=["trees"])

logger = structlog.get_logger()


class BookmarkBinding(BaseModel):
    id: str


def _trees(request: Request) -> TreeService:
    return request.app.state.trees


def _malformed(e: MalformedDataError) -> HTTPException:
    return HTTPException(
        status_code=500,
        detail={"error": "malformed_node", "key": e.key, "issues": [i.__dict__ for i in e.issues]},
    )


@router.post("/nodes")
def store_node(request: Request, body: Any = Body(...)) -> dict[str, str]:
    try:
        node = parse_node(body)
    except MalformedDataError as e:
        raise HTTPException(
            status_code=422,
            detail={"error": "invalid_node", "issues": [i.__dict__ for i in e.issues]},
        )
    return {"id": _trees(request).store_node(node)}


@router.get("/nodes/{object_id}")
def get_node(request: Request, object_id: str) -> Any:
    try:
        node = _trees(request).get_node(object_id)
    except InvalidIdentifierError:
        raise HTTPException(status_code=400, detail="invalid_identifier")
    except MalformedDataError as e:
        raise _malformed(e)
    if node is None:
        raise HTTPException(status_code=404, detail="node_not_found")
    return node_to_wire(node)


@router.put("/bookmarks/{name}")
def bind_bookmark(request: Request, name: str, body: BookmarkBinding) -> dict[str, str]:
    try:
        _trees(request).bind_bookmark(name, body.id)
    except InvalidIdentifierError:
        raise HTTPException(status_code=400, detail="invalid_identifier")
    return {"name": name, "id": body.id}


@router.get("/bookmarks/{name}")
def get_bookmark(request: Request, name: str) -> dict[str, str]:
    try:
        object_id = _trees(request).lookup_bookmark(name)
    except MalformedDataError as e:
        raise _malformed(e)
    if object_id is None:
        raise HTTPException(status_code=404, detail="bookmark_not_found")
    return {"name": name, "id": object_id}


@router.get("/bookmarks/{name}/resolved")
async def resolve_bookmark(request: Request, name: str) -> dict[str, Any]:
    try:
        res = await _trees(request).resolve_bookmark_detailed(name)
    except MalformedDataError as e:
        raise _malformed(e)
    except OSError as e:
        logger.error("storage_error", name=name, error=str(e))
        raise HTTPException(status_code=500, detail="storage_error")

    if res is None:
        return {"name": name, "id": None, "node": None, "dangling": [], "cycles": [], "truncated": 0}
    return {
        "name": name,
        "id": res.root_id,
        "node": None if res.node is None else node_to_wire(res.node),
        "dangling": res.dangling,
        "cycles": res.cycles,
        "truncated": res.truncated,
    }
