"""Turns a stored node graph into a reference-free tree.

`Ref` nodes are replaced by the node stored under their identifier and
`Switch` nodes by the value of their first branch whose condition holds.
Missing targets, cycles and over-deep or over-large trees drop only the
affected branch; malformed stored data and storage failures abort the whole
resolution.

Store reads for the refs of a container are issued together, then children
are resolved in order. A ref whose sub-tree resolved without pruning a cycle
or truncating anything is memoized for the rest of the run, so shared
sub-trees are built once no matter how many paths reach them.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

import structlog

from treestore.domain.conditions import ConditionEvaluator, NeverEvaluator
from treestore.domain.errors import CycleDetectedError, InvalidIdentifierError
from treestore.domain.nodes import (
    Node,
    RefNode,
    ResolvedNode,
    SwitchNode,
    TextNode,
    ViewNode,
)
from treestore.infra.storage import ObjectStore

logger = structlog.get_logger()


@dataclass
class Resolution:
    node: ResolvedNode | None
    root_id: str | None = None
    dangling: list[str] = field(default_factory=list)
    cycles: list[str] = field(default_factory=list)
    truncated: int = 0
    loads: int = 0
    visited: int = 0

    @property
    def complete(self) -> bool:
        return not self.dangling and not self.cycles and not self.truncated


@dataclass(frozen=True)
class _Outcome:
    node: ResolvedNode | None
    # Depth below this node of its deepest container; -1 when nothing nests.
    height: int = -1
    # False once a cycle was pruned or a branch truncated underneath.
    clean: bool = True


_PRUNED = _Outcome(None, clean=False)


@dataclass
class _Run:
    resolution: Resolution
    # In-flight loads shared by every Ref to the same id within one resolution.
    pending: dict[str, asyncio.Future[Node | None]] = field(default_factory=dict)
    # Clean ref outcomes by id. A clean sub-tree reaches no cycle, so it
    # resolves the same way from any path.
    memo: dict[str, _Outcome] = field(default_factory=dict)


class Resolver:
    def __init__(
        self,
        store: ObjectStore,
        evaluator: ConditionEvaluator | None = None,
        *,
        max_depth: int = 256,
        max_nodes: int = 100_000,
    ) -> None:
        self._store = store
        self._evaluator = evaluator or NeverEvaluator()
        self._max_depth = max_depth
        self._max_nodes = max_nodes

    async def resolve(self, node: Node) -> Resolution:
        run = _Run(resolution=Resolution(node=None))
        try:
            run.resolution.node = (await self._resolve(node, (), 0, run)).node
        finally:
            self._cancel_pending(run)
        self._log_done(run.resolution)
        return run.resolution

    async def resolve_id(self, object_id: str) -> Resolution | None:
        """Resolve the node stored under `object_id`, or None when it is absent."""
        run = _Run(resolution=Resolution(node=None, root_id=object_id))
        try:
            root = await self._load(object_id, run)
            if root is None:
                logger.info("root_not_found", object_id=object_id)
                return None
            run.resolution.node = (await self._resolve(root, (object_id,), 0, run)).node
        finally:
            self._cancel_pending(run)
        self._log_done(run.resolution)
        return run.resolution

    async def _resolve(
        self,
        node: Node,
        path: tuple[str, ...],
        depth: int,
        run: _Run,
    ) -> _Outcome:
        if isinstance(node, str):
            return _Outcome(node)

        run.resolution.visited += 1
        if depth > self._max_depth:
            logger.warning("resolve_depth_exceeded", max_depth=self._max_depth, path=list(path))
            run.resolution.truncated += 1
            return _PRUNED
        if run.resolution.visited > self._max_nodes:
            if run.resolution.visited == self._max_nodes + 1:
                logger.warning("resolve_node_budget_exceeded", max_nodes=self._max_nodes)
            run.resolution.truncated += 1
            return _PRUNED

        if isinstance(node, RefNode):
            return await self._resolve_ref(node, path, depth, run)

        if isinstance(node, SwitchNode):
            return await self._resolve_switch(node, path, depth, run)

        if isinstance(node, (TextNode, ViewNode)):
            for child in node.children:
                if isinstance(child, RefNode) and child.id not in path and child.id not in run.memo:
                    self._prefetch(child.id, run)

            outcomes = [await self._resolve(child, path, depth + 1, run) for child in node.children]
            return _Outcome(
                node.model_copy(update={"children": [o.node for o in outcomes if o.node is not None]}),
                height=1 + max((o.height for o in outcomes), default=-1),
                clean=all(o.clean for o in outcomes),
            )

        raise TypeError(f"Unsupported node type: {type(node).__name__}")

    async def _resolve_ref(
        self,
        node: RefNode,
        path: tuple[str, ...],
        depth: int,
        run: _Run,
    ) -> _Outcome:
        try:
            _check_not_on_path(node.id, path)
        except CycleDetectedError as e:
            logger.warning("ref_cycle_detected", object_id=e.object_id, path=list(e.path))
            run.resolution.cycles.append(e.object_id)
            return _Outcome(None, height=0, clean=False)

        cached = run.memo.get(node.id)
        if cached is not None and depth + cached.height <= self._max_depth:
            return cached

        try:
            target = await self._load(node.id, run)
        except InvalidIdentifierError:
            logger.warning("ref_invalid_identifier", object_id=node.id)
            run.resolution.dangling.append(node.id)
            return _Outcome(None, height=0)

        if target is None:
            logger.info("ref_dangling", object_id=node.id)
            run.resolution.dangling.append(node.id)
            return _Outcome(None, height=0)

        inner = await self._resolve(target, path + (node.id,), depth + 1, run)
        outcome = _Outcome(inner.node, height=max(0, 1 + inner.height), clean=inner.clean)
        if outcome.clean:
            run.memo[node.id] = outcome
        return outcome

    async def _resolve_switch(
        self,
        node: SwitchNode,
        path: tuple[str, ...],
        depth: int,
        run: _Run,
    ) -> _Outcome:
        chosen: Node | None = node.fallback
        for branch in node.conditions:
            if await self._evaluator.evaluate(branch.condition):
                chosen = branch.value
                break
        if chosen is None:
            return _Outcome(None, height=0)

        inner = await self._resolve(chosen, path, depth + 1, run)
        return _Outcome(inner.node, height=max(0, 1 + inner.height), clean=inner.clean)

    def _prefetch(self, object_id: str, run: _Run) -> asyncio.Future[Node | None]:
        pending = run.pending.get(object_id)
        if pending is None:
            pending = asyncio.ensure_future(asyncio.to_thread(self._store.get_json, object_id))
            run.pending[object_id] = pending
            run.resolution.loads += 1
        return pending

    async def _load(self, object_id: str, run: _Run) -> Node | None:
        return await self._prefetch(object_id, run)

    @staticmethod
    def _cancel_pending(run: _Run) -> None:
        for pending in run.pending.values():
            if not pending.done():
                pending.cancel()
            elif not pending.cancelled():
                # Mark failures as retrieved; the first awaiter already raised them.
                pending.exception()

    @staticmethod
    def _log_done(resolution: Resolution) -> None:
        logger.info(
            "tree_resolved",
            root_id=resolution.root_id,
            loads=resolution.loads,
            visited=resolution.visited,
            dangling=len(resolution.dangling),
            cycles=len(resolution.cycles),
            truncated=resolution.truncated,
        )


def _check_not_on_path(object_id: str, path: tuple[str, ...]) -> None:
    if object_id in path:
        raise CycleDetectedError(object_id, path + (object_id,))
