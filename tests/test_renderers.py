import xml.etree.ElementTree as ET
from io import BytesIO

import pytest
from PIL import Image, ImageColor

from qrcraft.geometry import Circle, OpKind, plan_geometry
from qrcraft.logo import LogoLoader
from qrcraft.matrix import ModuleMatrix, QrcodeMatrixProvider
from qrcraft.models import ECCLevel, ModuleStyle, StyleOptions
from qrcraft.raster import paint_modules, render_raster, to_png_bytes
from qrcraft.vector import render_svg

SVG = "{http://www.w3.org/2000/svg}"
DARK = "#0f172a"
LIGHT = "#ffffff"


@pytest.fixture(scope="module")
def matrix():
    return QrcodeMatrixProvider().encode("https://example.com/consistency", ECCLevel.M)


def parse(doc):
    return ET.fromstring(doc.encode("utf-8"))


@pytest.mark.parametrize("style", list(ModuleStyle))
def test_vector_primitives_match_plan(matrix, style):
    plan = plan_geometry(matrix, StyleOptions(style=style, scale=10, margin=2))
    root = parse(render_svg(plan))

    size = str(plan.canvas_size)
    assert root.get("width") == size
    assert root.get("height") == size
    assert root.get("viewBox") == f"0 0 {size} {size}"

    elements = list(root)
    background, shapes = elements[0], elements[1:]
    assert background.tag == f"{SVG}rect"
    assert background.get("fill") == LIGHT
    assert len(shapes) == matrix.dark_count() == len(plan.modules)

    for el, op in zip(shapes, plan.modules):
        if isinstance(op.shape, Circle):
            assert el.tag == f"{SVG}circle"
            assert float(el.get("cx")) == pytest.approx(op.shape.cx)
            assert float(el.get("cy")) == pytest.approx(op.shape.cy)
            assert float(el.get("r")) == pytest.approx(op.shape.r)
        else:
            assert el.tag == f"{SVG}rect"
            assert float(el.get("x")) == pytest.approx(op.shape.x)
            assert float(el.get("y")) == pytest.approx(op.shape.y)
            assert float(el.get("width")) == pytest.approx(op.shape.width)
            assert float(el.get("rx", 0)) == pytest.approx(op.shape.radius, abs=1e-4)
        assert el.get("fill") == DARK


@pytest.mark.parametrize("scale", [4, 5, 6, 10])
@pytest.mark.parametrize("style", list(ModuleStyle))
def test_raster_paints_exactly_the_dark_modules(matrix, style, scale):
    plan = plan_geometry(matrix, StyleOptions(style=style, scale=scale, margin=2))
    img = paint_modules(plan)
    assert img.size == (plan.canvas_size, plan.canvas_size)

    dark, light = ImageColor.getrgb(DARK), ImageColor.getrgb(LIGHT)
    for row in range(matrix.size):
        for col in range(matrix.size):
            x, y = (col + 2) * scale, (row + 2) * scale
            expected = dark if matrix.get(row, col) else light
            assert img.getpixel((x + scale // 2, y + scale // 2)) == expected, (row, col)


@pytest.mark.parametrize("style, scale", [
    (ModuleStyle.ROUNDED, 10),
    (ModuleStyle.DOTS, 8),
    (ModuleStyle.DOTS, 10),
])
def test_shaped_modules_leave_cell_corners_clear(matrix, style, scale):
    plan = plan_geometry(matrix, StyleOptions(style=style, scale=scale, margin=2))
    img = paint_modules(plan)
    light = ImageColor.getrgb(LIGHT)
    for op in plan.modules:
        x, y = (op.col + 2) * scale, (op.row + 2) * scale
        assert img.getpixel((x, y)) == light


def test_square_modules_fill_the_cell(matrix):
    plan = plan_geometry(matrix, StyleOptions(scale=10, margin=2))
    img = paint_modules(plan)
    dark = ImageColor.getrgb(DARK)
    op = plan.modules[0]
    x, y = int(op.shape.x), int(op.shape.y)
    assert img.getpixel((x, y)) == dark
    assert img.getpixel((x + 9, y + 9)) == dark


def test_quiet_zone_stays_light(matrix):
    plan = plan_geometry(matrix, StyleOptions(scale=4, margin=3))
    img = paint_modules(plan)
    light = ImageColor.getrgb(LIGHT)
    for i in range(plan.canvas_size):
        assert img.getpixel((i, 0)) == light
        assert img.getpixel((0, i)) == light


def test_raster_logo_composite(matrix, logo_path):
    plan = plan_geometry(matrix, StyleOptions(scale=10, margin=2, logo_url=logo_path, logo_size=0.3))
    logo = LogoLoader().load(logo_path)

    grid_only = paint_modules(plan)
    composed = render_raster(plan, logo)

    centre = plan.canvas_size // 2
    assert composed.getpixel((centre, centre)) == (255, 0, 0)
    assert grid_only.getpixel((centre, centre)) != (255, 0, 0)

    # inside the plate, outside the logo box
    box = plan.logo_image.shape
    assert composed.getpixel((round(box.x) - 3, centre)) == ImageColor.getrgb(LIGHT)


def test_vector_logo_is_embedded(matrix, logo_path):
    plan = plan_geometry(matrix, StyleOptions(scale=10, margin=2, logo_url=logo_path))
    logo = LogoLoader().load(logo_path)
    root = parse(render_svg(plan, logo_href=logo.data_uri))

    plate, image = list(root)[-2:]
    assert plate.tag == f"{SVG}rect"
    assert float(plate.get("rx")) == 10
    assert float(plate.get("width")) == pytest.approx(plan.logo_plate.shape.width)
    assert image.tag == f"{SVG}image"
    assert image.get("href").startswith("data:image/png;base64,")
    assert float(image.get("width")) == pytest.approx(plan.logo_image.shape.width)


def test_vector_without_href_skips_image(matrix):
    plan = plan_geometry(matrix, StyleOptions(logo_url="missing.png"))
    root = parse(render_svg(plan))
    assert [el.tag for el in root][-1] == f"{SVG}rect"
    assert not root.findall(f"{SVG}image")


def test_vector_escapes_attribute_values(matrix):
    plan = plan_geometry(matrix, StyleOptions(logo_url="x"))
    doc = render_svg(plan, logo_href='a"b&c')
    assert parse(doc).findall(f"{SVG}image")[0].get("href") == 'a"b&c'


def test_png_bytes_round_trip_size(matrix):
    plan = plan_geometry(matrix, StyleOptions(scale=3, margin=1))
    data = to_png_bytes(paint_modules(plan))
    assert data.startswith(b"\x89PNG")
    assert Image.open(BytesIO(data)).size == (plan.canvas_size, plan.canvas_size)


@pytest.mark.parametrize("scale", [2, 3, 4, 5, 6, 8, 10])
def test_adjacent_dots_stay_apart(scale):
    pair = ModuleMatrix([[False, False, False], [True, True, False], [False, False, False]])
    plan = plan_geometry(pair, StyleOptions(style=ModuleStyle.DOTS, scale=scale, margin=0))
    img = paint_modules(plan)
    dark, light = ImageColor.getrgb(DARK), ImageColor.getrgb(LIGHT)

    # the first column of the right-hand cell separates the two dots
    assert all(img.getpixel((scale, y)) == light for y in range(scale, 2 * scale))
    for col in (0, 1):
        cell = img.crop((col * scale, scale, (col + 1) * scale, 2 * scale))
        assert dark in [color for _, color in cell.getcolors()]
