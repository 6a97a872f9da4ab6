import asyncio

import structlog

from treestore.config import AppConfig
from treestore.domain.conditions import ConditionEvaluator, build_evaluator
from treestore.domain.nodes import Node, ResolvedNode
from treestore.features.resolution.resolver import Resolution, Resolver
from treestore.infra.bookmarks import BookmarkStore
from treestore.infra.storage import ObjectStore

logger = structlog.get_logger()


class TreeService:
    def __init__(
        self,
        *,
        objects: ObjectStore,
        bookmarks: BookmarkStore,
        evaluator: ConditionEvaluator | None = None,
        max_depth: int = 256,
        max_nodes: int = 100_000,
    ) -> None:
        self._objects = objects
        self._bookmarks = bookmarks
        self._resolver = Resolver(objects, evaluator, max_depth=max_depth, max_nodes=max_nodes)

    @classmethod
    def from_config(cls, cfg: AppConfig) -> "TreeService":
        return cls(
            objects=ObjectStore(cfg.objects_dir, algorithm=cfg.hash_algorithm),
            bookmarks=BookmarkStore(cfg.bookmarks_dir, algorithm=cfg.hash_algorithm),
            evaluator=build_evaluator(cfg.condition_evaluator),
            max_depth=cfg.max_depth,
            max_nodes=cfg.max_nodes,
        )

    @property
    def objects(self) -> ObjectStore:
        return self._objects

    @property
    def bookmarks(self) -> BookmarkStore:
        return self._bookmarks

    def store_node(self, node: Node) -> str:
        return self._objects.put_json(node)

    def get_node(self, object_id: str) -> Node | None:
        return self._objects.get_json(object_id)

    def bind_bookmark(self, name: str, object_id: str) -> None:
        self._bookmarks.set(name, object_id)

    def lookup_bookmark(self, name: str) -> str | None:
        return self._bookmarks.get(name)

    async def resolve_bookmark_detailed(self, name: str) -> Resolution | None:
        object_id = await asyncio.to_thread(self._bookmarks.get, name)
        if object_id is None:
            logger.info("bookmark_unbound", name=name)
            return None
        return await self._resolver.resolve_id(object_id)

    async def resolve_bookmark(self, name: str) -> ResolvedNode | None:
        resolution = await self.resolve_bookmark_detailed(name)
        if resolution is None:
            return None
        return resolution.node
