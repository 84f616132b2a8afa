"""Geometry planner shared by the raster and vector renderers.

``plan_geometry`` turns a module matrix plus style options into a single
ordered list of draw ops. Both backends translate the same ops, so every
coordinate, size and radius is computed here and only here.

Coordinates are canvas pixels, origin top-left::

    canvas_size = (N + 2 * margin) * scale
    module (row, col) origin = ((col + margin) * scale, (row + margin) * scale)

The logo box is a square of ``canvas_size * logo_size`` centred on the
canvas. The plate beneath it grows by half a module on every side and is
rounded with radius ``scale``. Nothing here checks the logo against the
symbol's error-correction budget; see ``Session.advisories``.
"""

from dataclasses import dataclass
from enum import Enum

from qrcraft.logging import audit, get_logger, trace
from qrcraft.matrix import ModuleMatrix
from qrcraft.models import ModuleStyle, StyleOptions

log = get_logger("geometry")

ROUNDED_RADIUS_RATIO = 0.35
DOT_DIAMETER_RATIO = 0.85  # smaller than the cell so neighbouring dots stay apart


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float
    radius: float = 0.0


@dataclass(frozen=True)
class Circle:
    cx: float
    cy: float
    r: float


class OpKind(str, Enum):
    BACKGROUND = "background"
    MODULE = "module"
    LOGO_PLATE = "logo_plate"
    LOGO_IMAGE = "logo_image"


@dataclass(frozen=True)
class DrawOp:
    kind: OpKind
    shape: Rect | Circle
    fill: str | None = None
    row: int | None = None
    col: int | None = None


@dataclass(frozen=True)
class DrawPlan:
    canvas_size: int
    scale: int
    margin: int
    matrix_size: int
    style: ModuleStyle
    ops: tuple[DrawOp, ...]

    def of_kind(self, kind: OpKind) -> list[DrawOp]:
        return [op for op in self.ops if op.kind is kind]

    @property
    def modules(self) -> list[DrawOp]:
        return self.of_kind(OpKind.MODULE)

    @property
    def logo_plate(self) -> DrawOp | None:
        found = self.of_kind(OpKind.LOGO_PLATE)
        return found[0] if found else None

    @property
    def logo_image(self) -> DrawOp | None:
        found = self.of_kind(OpKind.LOGO_IMAGE)
        return found[0] if found else None


def module_shape(row: int, col: int, margin: int, scale: int, style: ModuleStyle) -> Rect | Circle:
    """Shape of the dark module at (row, col)."""
    x = (col + margin) * scale
    y = (row + margin) * scale
    if style is ModuleStyle.DOTS:
        return Circle(cx=x + scale / 2, cy=y + scale / 2, r=scale * DOT_DIAMETER_RATIO / 2)
    if style is ModuleStyle.ROUNDED:
        return Rect(x, y, scale, scale, radius=scale * ROUNDED_RADIUS_RATIO)
    return Rect(x, y, scale, scale)


def logo_boxes(canvas_size: int, scale: int, logo_size: float) -> tuple[Rect, Rect]:
    """Return ``(plate, image)`` rects for a logo covering *logo_size* of the canvas width."""
    side = canvas_size * logo_size
    pos = (canvas_size - side) / 2
    image = Rect(pos, pos, side, side)
    plate = Rect(pos - scale / 2, pos - scale / 2, side + scale, side + scale, radius=scale)
    return plate, image


@trace
def plan_geometry(matrix: ModuleMatrix, style: StyleOptions) -> DrawPlan:
    """Compute every draw op for *matrix* rendered with *style*."""
    style.validate()
    n = matrix.size
    m, s = style.margin, style.scale
    canvas_size = (n + 2 * m) * s

    ops = [DrawOp(OpKind.BACKGROUND, Rect(0, 0, canvas_size, canvas_size), fill=style.color_light)]
    for row, col in matrix.dark_modules():
        ops.append(DrawOp(
            OpKind.MODULE,
            module_shape(row, col, m, s, style.style),
            fill=style.color_dark,
            row=row,
            col=col,
        ))

    if style.has_logo:
        plate, image = logo_boxes(canvas_size, s, style.logo_size)
        ops.append(DrawOp(OpKind.LOGO_PLATE, plate, fill=style.color_light))
        ops.append(DrawOp(OpKind.LOGO_IMAGE, image))

    plan = DrawPlan(
        canvas_size=canvas_size,
        scale=s,
        margin=m,
        matrix_size=n,
        style=style.style,
        ops=tuple(ops),
    )
    audit("geometry.planned", logger=log, matrix=n, canvas=canvas_size,
          style=style.style.value, modules=len(ops) - 1 - (2 if style.has_logo else 0),
          logo=style.has_logo)
    return plan
