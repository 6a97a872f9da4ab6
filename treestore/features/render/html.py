import colorsys
import re
from typing import Any

from markupsafe import Markup, escape

from treestore.domain.nodes import ResolvedNode, Style, TextNode, ViewNode

_CSS_PROPERTY = {
    "OColorStyle": "color",
    "OBackgroundColorStyle": "background-color",
}

# Views only honour background colors.
_VIEW_STYLES = {"OBackgroundColorStyle"}

# Named colours and hex literals.
_COLOR_TOKEN_RE = re.compile(r"#?[A-Za-z0-9]+")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def css_color(color: Any) -> str | None:
    if isinstance(color, str):
        return color if _COLOR_TOKEN_RE.fullmatch(color) else None
    if not isinstance(color, dict):
        return None

    kind = color.get("type")
    if kind == "RGBColor":
        rgb = (color.get("r", 0), color.get("g", 0), color.get("b", 0))
        if not all(_is_number(c) for c in rgb):
            return None
    elif kind == "HSVColor":
        hsv = (color.get("h", 0), color.get("s", 0), color.get("v", 0))
        if not all(_is_number(c) for c in hsv):
            return None
        r, g, b = colorsys.hsv_to_rgb(hsv[0] / 360.0, hsv[1], hsv[2])
        rgb = (round(r * 255), round(g * 255), round(b * 255))
    else:
        return None

    alpha = color.get("alpha")
    if alpha is None:
        return "rgb({}, {}, {})".format(*rgb)
    if not _is_number(alpha):
        return None
    return "rgba({}, {}, {}, {})".format(*rgb, alpha)


def _style_attr(styles: list[Style] | None, allowed: set[str] | None = None) -> str:
    declarations: dict[str, str] = {}
    for style in styles or []:
        if allowed is not None and style.type not in allowed:
            continue
        prop = _CSS_PROPERTY.get(style.type)
        value = css_color(getattr(style, "color", None))
        if prop and value:
            declarations[prop] = value
    return ";".join(f"{k}:{v}" for k, v in declarations.items())


def _open_tag(tag: str, node: TextNode | ViewNode, style: str) -> Markup:
    attrs = Markup("")
    if style:
        attrs += Markup(' style="{}"').format(style)
    if node.key is not None:
        attrs += Markup(' data-key="{}"').format(node.key)
    return Markup("<{}{}>").format(Markup(tag), attrs)


def render_node(node: ResolvedNode) -> Markup:
    if isinstance(node, str):
        return escape(node)
    if isinstance(node, TextNode):
        body = Markup("").join(render_node(c) for c in node.children)
        return _open_tag("span", node, _style_attr(node.style)) + body + Markup("</span>")
    if isinstance(node, ViewNode):
        body = Markup("").join(render_node(c) for c in node.children)
        return _open_tag("div", node, _style_attr(node.style, _VIEW_STYLES)) + body + Markup("</div>")
    raise TypeError(f"Cannot render unresolved node: {type(node).__name__}")


def render_html(node: ResolvedNode | None) -> str:
    if node is None:
        return ""
    return str(render_node(node))
