"""Vector backend: DrawPlan -> self-contained SVG document."""

from xml.sax.saxutils import escape

from qrcraft.geometry import Circle, DrawOp, DrawPlan, OpKind
from qrcraft.logging import audit, get_logger, trace

log = get_logger("vector")

SVG_NS = "http://www.w3.org/2000/svg"


def _num(value: float) -> str:
    """Compact number text: 10 -> "10", 3.5 -> "3.5", 1/3 -> "0.3333"."""
    text = f"{value:.4f}".rstrip("0").rstrip(".")
    return "0" if text in ("", "-0") else text


def _attr(value: str) -> str:
    return escape(value, {'"': "&quot;"})


def _shape_element(op: DrawOp) -> str:
    shape = op.shape
    fill = _attr(op.fill or "none")
    if isinstance(shape, Circle):
        return f'<circle cx="{_num(shape.cx)}" cy="{_num(shape.cy)}" r="{_num(shape.r)}" fill="{fill}"/>'
    rx = f' rx="{_num(shape.radius)}"' if shape.radius else ""
    return (
        f'<rect x="{_num(shape.x)}" y="{_num(shape.y)}" '
        f'width="{_num(shape.width)}" height="{_num(shape.height)}"{rx} fill="{fill}"/>'
    )


@trace
def render_svg(plan: DrawPlan, logo_href: str | None = None) -> str:
    """Serialise every op of *plan* as one SVG document.

    The ``LOGO_IMAGE`` op is written only when *logo_href* is given;
    pass a data URI to keep the document self-contained.
    """
    size = _num(plan.canvas_size)
    parts = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        f'<svg xmlns="{SVG_NS}" width="{size}" height="{size}" viewBox="0 0 {size} {size}">',
    ]
    for op in plan.ops:
        if op.kind is OpKind.LOGO_IMAGE:
            if logo_href:
                box = op.shape
                parts.append(
                    f'<image href="{_attr(logo_href)}" x="{_num(box.x)}" y="{_num(box.y)}" '
                    f'width="{_num(box.width)}" height="{_num(box.height)}"/>'
                )
            continue
        parts.append(_shape_element(op))
    parts.append("</svg>")

    doc = "\n".join(parts)
    audit("vector.rendered", logger=log, canvas=plan.canvas_size,
          elements=len(parts) - 3, logo=bool(logo_href), bytes=len(doc.encode("utf-8")))
    return doc
