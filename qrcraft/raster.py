"""Raster backend: DrawPlan -> Pillow image.

The module grid and the logo are painted in two separate steps so the
grid can be shown before the logo has finished decoding.
"""

import io

from PIL import Image, ImageDraw

from qrcraft.geometry import Circle, DrawOp, DrawPlan, OpKind, Rect
from qrcraft.logging import audit, get_logger, trace
from qrcraft.logo import LoadedLogo

log = get_logger("raster")


def _box(rect: Rect) -> list[int]:
    # Pillow boxes are inclusive of the far edge
    x0, y0 = round(rect.x), round(rect.y)
    x1, y1 = round(rect.x + rect.width) - 1, round(rect.y + rect.height) - 1
    return [x0, y0, max(x0, x1), max(y0, y1)]


def _dot_box(circle: Circle, scale: int) -> list[int]:
    # at most scale - 1 pixels across, so adjacent dots keep a light pixel between them
    d = max(1, min(round(2 * circle.r), scale - 1))
    offset = (scale - d + 1) // 2
    x0 = round(circle.cx - scale / 2) + offset
    y0 = round(circle.cy - scale / 2) + offset
    return [x0, y0, x0 + d - 1, y0 + d - 1]


def _paint_op(draw: ImageDraw.ImageDraw, op: DrawOp, scale: int) -> None:
    shape = op.shape
    if isinstance(shape, Circle):
        box = _dot_box(shape, scale)
        if box[2] - box[0] < 2:
            # one or two pixels across: a square dot
            draw.rectangle(box, fill=op.fill)
        else:
            draw.ellipse(box, fill=op.fill)
    elif shape.radius:
        draw.rounded_rectangle(_box(shape), radius=shape.radius, fill=op.fill)
    else:
        draw.rectangle(_box(shape), fill=op.fill)


@trace
def paint_modules(plan: DrawPlan) -> Image.Image:
    """Paint the background and every dark module. Logo ops are left for ``composite_logo``."""
    img = Image.new("RGB", (plan.canvas_size, plan.canvas_size))
    draw = ImageDraw.Draw(img)
    painted = 0
    for op in plan.ops:
        if op.kind in (OpKind.BACKGROUND, OpKind.MODULE):
            _paint_op(draw, op, plan.scale)
            painted += op.kind is OpKind.MODULE
    audit("raster.painted", logger=log, canvas=plan.canvas_size,
          modules=painted, style=plan.style.value)
    return img


@trace
def composite_logo(image: Image.Image, plan: DrawPlan, logo: LoadedLogo) -> Image.Image:
    """Paint the logo plate, then paste the logo scaled into its box. Modifies *image* in place."""
    plate, box = plan.logo_plate, plan.logo_image
    if plate is None or box is None:
        return image

    _paint_op(ImageDraw.Draw(image), plate, plan.scale)

    side = max(1, round(box.shape.width))
    resized = logo.image.resize((side, side), Image.LANCZOS)
    image.paste(resized, (round(box.shape.x), round(box.shape.y)), resized)

    audit("raster.logo_composited", logger=log, canvas=plan.canvas_size,
          logo_px=side, source=f"{logo.width}x{logo.height}")
    return image


def render_raster(plan: DrawPlan, logo: LoadedLogo | None = None) -> Image.Image:
    """Module grid plus, when given, the logo composite."""
    img = paint_modules(plan)
    if logo is not None:
        composite_logo(img, plan, logo)
    return img


def to_png_bytes(image: Image.Image) -> bytes:
    buf = io.BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue()
