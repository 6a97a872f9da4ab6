import structlog

from treestore.domain.nodes import Style, ref, text, view
from treestore.features.resolution.service import TreeService

logger = structlog.get_logger()


def seed_demo(trees: TreeService, bookmark: str = "home") -> str:
    """Store a small two-object tree and point `bookmark` at its root."""

    inner_id = trees.store_node(
        text(
            "Inner refd node!",
            style=[Style(type="OBackgroundColorStyle", color="blue")],
        )
    )
    root_id = trees.store_node(
        view(
            text(
                "Foo",
                ref(inner_id, key="the_ref"),
                text("Bar", style=[Style(type="OColorStyle", color="red")]),
                "Baz",
            ),
            style=[Style(type="OBackgroundColorStyle", color="green")],
        )
    )
    trees.bind_bookmark(bookmark, root_id)
    logger.info("demo_seeded", bookmark=bookmark, root_id=root_id, inner_id=inner_id)
    return root_id
