import asyncio
import time
from pathlib import Path
from typing import Any

import pytest

from treestore.domain.conditions import LiteralEvaluator
from treestore.domain.errors import MalformedNodeError
from treestore.domain.nodes import (
    Node,
    SwitchBranch,
    SwitchNode,
    TextNode,
    ViewNode,
    is_reference_free,
    ref,
    text,
    view,
)
from treestore.features.resolution.resolver import Resolver
from treestore.infra.storage import ObjectStore, encode_node


def _plant(store_root: Path, object_id: str, node: Node) -> None:
    """Write `node` under an arbitrary id, bypassing content addressing."""
    store_root.mkdir(parents=True, exist_ok=True)
    (store_root / object_id).write_bytes(encode_node(node))


class CountingStore(ObjectStore):
    def __init__(self, root: Path, delays: dict[str, float] | None = None) -> None:
        super().__init__(root)
        self.calls: list[str] = []
        self._delays = delays or {}

    def get_json(self, object_id: str) -> Node | None:
        self.calls.append(object_id)
        time.sleep(self._delays.get(object_id, 0))
        return super().get_json(object_id)


class RecordingEvaluator:
    def __init__(self) -> None:
        self.seen: list[Any] = []

    async def evaluate(self, condition: Any) -> bool:
        self.seen.append(condition)
        return condition == "yes"


def test_leaf_is_returned_unchanged(objects: ObjectStore) -> None:
    res = asyncio.run(Resolver(objects).resolve("hello"))

    assert res.node == "hello"
    assert res.complete


def test_refs_are_substituted(objects: ObjectStore) -> None:
    leaf_id = objects.put_json("Bar")
    inner_id = objects.put_json(text("inner", ref(leaf_id)))

    res = asyncio.run(Resolver(objects).resolve(view("Foo", ref(inner_id), "Baz")))

    assert res.node == view("Foo", text("inner", "Bar"), "Baz")
    assert is_reference_free(res.node)
    assert res.loads == 2


def test_container_fields_pass_through(objects: ObjectStore) -> None:
    leaf_id = objects.put_json("x")
    node = ViewNode(key="root", children=[ref(leaf_id)], style=[{"type": "OBackgroundColorStyle", "color": "green"}])

    res = asyncio.run(Resolver(objects).resolve(node))

    assert isinstance(res.node, ViewNode)
    assert res.node.key == "root"
    assert res.node.style == node.style
    assert res.node.children == ["x"]


def test_dangling_ref_is_dropped(objects: ObjectStore) -> None:
    missing = "0" * 40

    res = asyncio.run(Resolver(objects).resolve(view("a", ref(missing), text("b"))))

    assert res.node == view("a", text("b"))
    assert res.dangling == [missing]
    assert not res.complete


def test_ref_with_wrong_width_is_dangling(objects: ObjectStore) -> None:
    res = asyncio.run(Resolver(objects).resolve(view(ref("abc"), "ok")))

    assert res.node == view("ok")
    assert res.dangling == ["abc"]


def test_cycle_through_two_objects_terminates(tmp_path: Path) -> None:
    root = tmp_path / "objects"
    a, b = "a" * 40, "b" * 40
    _plant(root, a, view("A", ref(b)))
    _plant(root, b, text("B", ref(a)))

    res = asyncio.run(Resolver(ObjectStore(root)).resolve_id(a))

    assert res is not None
    assert res.node == view("A", text("B"))
    assert res.cycles == [a]


def test_self_reference_only_drops_the_cyclic_branch(tmp_path: Path) -> None:
    root = tmp_path / "objects"
    c = "c" * 40
    _plant(root, c, view(ref(c), "sibling"))

    res = asyncio.run(Resolver(ObjectStore(root)).resolve_id(c))

    assert res is not None
    assert res.node == view("sibling")
    assert res.cycles == [c]


def test_same_ref_twice_on_different_paths_is_not_a_cycle(objects: ObjectStore) -> None:
    shared = objects.put_json(text("shared"))
    mid = objects.put_json(view(ref(shared)))

    res = asyncio.run(Resolver(objects).resolve(view(ref(shared), ref(mid))))

    assert res.node == view(text("shared"), view(text("shared")))
    assert res.cycles == []


def test_child_order_is_preserved_under_concurrency(tmp_path: Path) -> None:
    seed = ObjectStore(tmp_path)
    ids = [seed.put_json(f"c{i}") for i in range(3)]
    # First child is the slowest to load.
    store = CountingStore(tmp_path, delays={ids[0]: 0.2, ids[1]: 0.1, ids[2]: 0.0})

    res = asyncio.run(Resolver(store).resolve(view(*(ref(i) for i in ids))))

    assert res.node == view("c0", "c1", "c2")


def test_repeated_refs_share_one_load(tmp_path: Path) -> None:
    store = CountingStore(tmp_path)
    leaf_id = store.put_json("same")

    res = asyncio.run(Resolver(store).resolve(view(ref(leaf_id), text(ref(leaf_id)), ref(leaf_id))))

    assert res.node == view("same", text("same"), "same")
    assert store.calls == [leaf_id]
    assert res.loads == 1


def test_switch_takes_first_true_branch(objects: ObjectStore) -> None:
    node = SwitchNode(
        conditions=[
            SwitchBranch(condition=False, value="X"),
            SwitchBranch(condition=True, value="Y"),
            SwitchBranch(condition=True, value="Z"),
        ]
    )

    res = asyncio.run(Resolver(objects, LiteralEvaluator()).resolve(node))

    assert res.node == "Y"


def test_switch_without_match_yields_nothing(objects: ObjectStore) -> None:
    node = SwitchNode(conditions=[SwitchBranch(condition=False, value="X")])

    res = asyncio.run(Resolver(objects, LiteralEvaluator()).resolve(view("a", node)))

    assert res.node == view("a")


def test_switch_falls_back(objects: ObjectStore) -> None:
    node = SwitchNode(conditions=[SwitchBranch(condition=False, value="X")], fallback=text("fb"))

    res = asyncio.run(Resolver(objects, LiteralEvaluator()).resolve(node))

    assert res.node == text("fb")


def test_default_evaluator_never_fires(objects: ObjectStore) -> None:
    node = SwitchNode(conditions=[SwitchBranch(condition=True, value="Y")])

    res = asyncio.run(Resolver(objects).resolve(node))

    assert res.node is None


def test_switch_values_are_resolved(objects: ObjectStore) -> None:
    target = objects.put_json(text("picked"))
    evaluator = RecordingEvaluator()
    node = SwitchNode(
        conditions=[
            SwitchBranch(condition="no", value="X"),
            SwitchBranch(condition="yes", value=ref(target)),
        ]
    )

    res = asyncio.run(Resolver(objects, evaluator).resolve(node))

    assert res.node == text("picked")
    assert evaluator.seen == ["no", "yes"]


def test_literal_evaluator_understands_boolean_items() -> None:
    ev = LiteralEvaluator()

    assert asyncio.run(ev.evaluate({"type": "OBoolean", "value": True})) is True
    assert asyncio.run(ev.evaluate({"type": "OBoolean", "value": False})) is False
    assert asyncio.run(ev.evaluate({"comingSoon": True})) is False


def test_depth_limit_truncates_branch(objects: ObjectStore) -> None:
    deep = view(view(view(view("deep"))))

    res = asyncio.run(Resolver(objects, max_depth=2).resolve(view("shallow", deep)))

    assert isinstance(res.node, ViewNode)
    assert res.node.children[0] == "shallow"
    assert res.truncated == 1


def test_malformed_target_aborts_resolution(objects: ObjectStore) -> None:
    bad = objects.put(b"{not json")

    with pytest.raises(MalformedNodeError):
        asyncio.run(Resolver(objects).resolve(view("a", ref(bad))))


def test_resolve_id_of_absent_root_is_none(objects: ObjectStore) -> None:
    assert asyncio.run(Resolver(objects).resolve_id("f" * 40)) is None


def test_resolved_text_children_stay_text(objects: ObjectStore) -> None:
    leaf_id = objects.put_json("x")

    res = asyncio.run(Resolver(objects).resolve(text("a", ref(leaf_id))))

    assert isinstance(res.node, TextNode)
    assert res.node.children == ["a", "x"]


def test_diamond_ladder_loads_each_object_once(objects: ObjectStore) -> None:
    cur = objects.put_json(text("leaf"))
    for _ in range(20):
        cur = objects.put_json(view(ref(cur), ref(cur)))

    res = asyncio.run(Resolver(objects).resolve_id(cur))

    assert res is not None
    assert res.complete
    assert res.loads == 21
    assert isinstance(res.node, ViewNode)
    assert res.node.children[0] is res.node.children[1]


def test_shared_subtree_is_truncated_again_when_reached_deeper(objects: ObjectStore) -> None:
    shared = objects.put_json(view(view("s")))
    root = view(ref(shared), view(view(ref(shared))))

    res = asyncio.run(Resolver(objects, max_depth=3).resolve(root))

    assert res.node == view(view(view("s")), view(view()))
    assert res.truncated == 1
    assert res.loads == 1


def test_node_budget_truncates_remaining_siblings(objects: ObjectStore) -> None:
    root = view(text("a"), text("b"), text("c"), text("d"))

    res = asyncio.run(Resolver(objects, max_nodes=3).resolve(root))

    assert res.node == view(text("a"), text("b"))
    assert res.truncated == 2
    assert not res.complete


def test_storage_failure_aborts_resolution(objects: ObjectStore, monkeypatch: pytest.MonkeyPatch) -> None:
    target = objects.put_json(text("x"))

    def broken(self: ObjectStore, object_id: str) -> Node | None:
        raise OSError("disk gone")

    monkeypatch.setattr(ObjectStore, "get_json", broken)

    with pytest.raises(OSError):
        asyncio.run(Resolver(objects).resolve(view("a", ref(target))))
