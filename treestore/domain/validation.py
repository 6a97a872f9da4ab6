from __future__ import annotations

from typing import Any

from pydantic import TypeAdapter, ValidationError

from treestore.domain.errors import MalformedNodeError, ValidationIssue
from treestore.domain.nodes import Node

_NODE_ADAPTER: TypeAdapter[Node] = TypeAdapter(Node)


def _to_issues(e: ValidationError) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    for err in e.errors():
        loc = err.get("loc") or []
        path = ".".join(str(p) for p in loc)
        issues.append(
            ValidationIssue(
                code=str(err.get("type") or "validation_error"),
                path=path,
                message=str(err.get("msg") or "invalid"),
            )
        )
    return issues


def parse_node(data: Any, *, object_id: str = "<inline>") -> Node:
    try:
        return _NODE_ADAPTER.validate_python(data)
    except ValidationError as e:
        raise MalformedNodeError(object_id, _to_issues(e))


def parse_node_json(raw: bytes, *, object_id: str) -> Node:
    try:
        return _NODE_ADAPTER.validate_json(raw)
    except ValidationError as e:
        raise MalformedNodeError(object_id, _to_issues(e))
