"""Document tree nodes.

A stored tree is a closed set of variants, discriminated on the wire by the
`type` field:

- a bare string leaf
- `OText` / `OView` containers with ordered children and optional styles
- `ORefNode`, an indirection to another stored node by content identifier
- `OSwitchNode`, conditional branches picked by a condition evaluator

Resolved trees reuse the container models; they simply never contain
`RefNode` or `SwitchNode` anywhere below the root.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, SerializerFunctionWrapHandler, model_serializer

# Optional node fields left out of the wire form when unset.
_OMIT_WHEN_NONE = frozenset({"key", "style", "fallback"})


class Style(BaseModel):
    """Opaque style entry. Only `type` is required; everything else is kept as is."""

    model_config = ConfigDict(extra="allow", frozen=True)

    type: str


class _NodeModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    @model_serializer(mode="wrap")
    def serialize_wire(self, handler: SerializerFunctionWrapHandler) -> dict[str, Any]:
        data = handler(self)
        return {k: v for k, v in data.items() if not (k in _OMIT_WHEN_NONE and v is None)}


class TextNode(_NodeModel):
    type: Literal["OText"] = "OText"
    key: str | None = None
    children: list[Node]
    style: list[Style] | None = None


class ViewNode(_NodeModel):
    type: Literal["OView"] = "OView"
    key: str | None = None
    children: list[Node]
    style: list[Style] | None = None


class RefNode(_NodeModel):
    type: Literal["ORefNode"] = "ORefNode"
    key: str | None = None
    id: str = Field(pattern=r"^[0-9a-f]+$")


class SwitchBranch(_NodeModel):
    condition: Any = None
    value: Node


class SwitchNode(_NodeModel):
    type: Literal["OSwitchNode"] = "OSwitchNode"
    key: str | None = None
    conditions: list[SwitchBranch] = Field(default_factory=list)
    fallback: Node | None = None


Node = Union[
    str,
    Annotated[Union[TextNode, ViewNode, RefNode, SwitchNode], Field(discriminator="type")],
]

# Same shapes as Node, minus RefNode and SwitchNode at every depth.
ResolvedNode = Union[str, TextNode, ViewNode]

for _model in (TextNode, ViewNode, SwitchBranch, SwitchNode):
    _model.model_rebuild()


def node_to_wire(node: Node) -> Any:
    """JSON-compatible form of `node`; unset optional fields are omitted."""
    if isinstance(node, str):
        return node
    return node.model_dump(mode="json")


def iter_nodes(node: Node) -> Iterator[Node]:
    """Depth-first walk over `node` and everything nested inside it."""
    yield node
    if isinstance(node, (TextNode, ViewNode)):
        for child in node.children:
            yield from iter_nodes(child)
    elif isinstance(node, SwitchNode):
        for branch in node.conditions:
            yield from iter_nodes(branch.value)
        if node.fallback is not None:
            yield from iter_nodes(node.fallback)


def is_reference_free(node: Node) -> bool:
    return not any(isinstance(n, (RefNode, SwitchNode)) for n in iter_nodes(node))


def text(*children: Node, style: list[Style] | None = None, key: str | None = None) -> TextNode:
    return TextNode(children=list(children), style=style, key=key)


def view(*children: Node, style: list[Style] | None = None, key: str | None = None) -> ViewNode:
    return ViewNode(children=list(children), style=style, key=key)


def ref(object_id: str, key: str | None = None) -> RefNode:
    return RefNode(id=object_id, key=key)
