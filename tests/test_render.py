"""Canvas geometry and rasterizer tests."""

import numpy as np
import pytest
from PIL import Image

from identicon_encode import ConfigurationError
from identicon_render import RenderConfig, compute_layout, render, save_png

WHITE = (255, 255, 255)
GREEN = (75, 177, 53)


def _full(grid, on=True):
    return [[on] * grid for _ in range(grid)]


def test_layout_default_geometry():
    layout = compute_layout(420, 5, 8)
    assert layout.pad == 33
    assert layout.inner == 354, f"expected 420 - 2*33 = 354, got {layout.inner}"
    assert layout.edges == (33, 103, 174, 245, 316, 387)
    assert layout.cell_box(0, 0) == (33, 33, 103, 103)
    assert layout.cell_box(4, 4) == (316, 316, 387, 387)
    assert layout.min_cell() == 70


def test_layout_without_padding():
    layout = compute_layout(100, 5, 0)
    assert (layout.pad, layout.inner) == (0, 100)
    assert layout.edges == (0, 20, 40, 60, 80, 100)


def test_layout_edges_tile_drawable_square():
    for size, grid, padding in [(423, 5, 0), (7, 3, 0), (420, 21, 8), (4, 5, 0), (101, 8, 13)]:
        layout = compute_layout(size, grid, padding)
        assert layout.edges[0] == layout.pad
        assert layout.edges[-1] == size - layout.pad, f"{size}/{grid}/{padding} leaves a margin"
        widths = [b - a for a, b in zip(layout.edges, layout.edges[1:])]
        assert max(widths) - min(widths) <= 1, f"uneven cells {widths}"


def test_layout_rejects_bad_geometry():
    with pytest.raises(ConfigurationError):
        compute_layout(0, 5, 8)
    with pytest.raises(ConfigurationError):
        compute_layout(420, 0, 8)
    with pytest.raises(ConfigurationError):
        compute_layout(420, 5, 50)
    with pytest.raises(ConfigurationError):
        compute_layout(420, 5, -1)
    # 49% of 1px rounds to no padding, so the single pixel is drawable
    assert compute_layout(1, 1, 49).edges == (0, 1)


def test_layout_allows_cells_below_one_pixel():
    layout = compute_layout(4, 5, 0)
    assert layout.edges == (0, 0, 1, 2, 3, 4)
    assert layout.min_cell() == 0

    buf = render(GREEN, _full(5), 4, 0)
    assert buf.shape == (4, 4, 3)
    assert (buf == np.array(GREEN, dtype=np.uint8)).all()


def test_render_shape_and_dtype():
    buf = render(GREEN, _full(5, False), 64, 8)
    assert buf.shape == (64, 64, 3)
    assert buf.dtype == np.uint8
    assert (buf == 255).all(), "all-off pattern should be pure background"


def test_render_cells_and_padding():
    pattern = [[False] * 5 for _ in range(5)]
    pattern[0][0] = pattern[0][4] = True
    buf = render(GREEN, pattern, 420, 8)

    # buffer is indexed [y, x]
    assert tuple(buf[33, 33]) == GREEN
    assert tuple(buf[102, 102]) == GREEN
    assert tuple(buf[33, 386]) == GREEN
    assert tuple(buf[32, 33]) == WHITE, "padding row above the first cell"
    assert tuple(buf[33, 32]) == WHITE, "padding column left of the first cell"
    assert tuple(buf[33, 387]) == WHITE, "padding column right of the last cell"
    assert tuple(buf[103, 33]) == WHITE, "cell (1, 0) is off"
    assert tuple(buf[70, 140]) == WHITE, "cell (0, 1) is off"

    colored = (buf == np.array(GREEN, dtype=np.uint8)).all(axis=2).sum()
    assert colored == 70 * 70 + 71 * 70


def test_render_zero_padding_fills_edge_to_edge():
    for size, grid in [(100, 5), (423, 5), (7, 3), (50, 21)]:
        buf = render(GREEN, _full(grid), size, 0)
        assert tuple(buf[0, 0]) == GREEN, f"{size}/{grid}: top-left is background"
        assert tuple(buf[size - 1, size - 1]) == GREEN, f"{size}/{grid}: bottom-right is background"
        assert (buf == np.array(GREEN, dtype=np.uint8)).all(), f"{size}/{grid} leaves a border"


def test_render_grid_one():
    buf = render(GREEN, [[True]], 50, 10)
    # pad=5, inner=40, single 40px cell
    assert tuple(buf[5, 5]) == GREEN
    assert tuple(buf[44, 44]) == GREEN
    assert tuple(buf[4, 5]) == WHITE
    assert tuple(buf[45, 45]) == WHITE

    empty = render(GREEN, [[False]], 50, 10)
    assert (empty == 255).all()


def test_render_custom_background():
    cfg = RenderConfig(background=(10, 20, 30))
    buf = render(GREEN, _full(3, False), 30, 0, cfg)
    assert tuple(buf[0, 0]) == (10, 20, 30)


def test_render_rgba():
    pattern = [[True, False, True]] * 3
    buf = render(GREEN, pattern, 30, 0, RenderConfig(mode="RGBA"))
    assert buf.shape == (30, 30, 4)
    assert tuple(buf[0, 0]) == GREEN + (255,)
    assert tuple(buf[0, 15]) == WHITE + (255,)

    clear = render(GREEN, pattern, 30, 0, RenderConfig(mode="RGBA", transparent_background=True))
    assert clear[0, 15, 3] == 0
    assert clear[0, 0, 3] == 255


def test_render_rejects_bad_config():
    with pytest.raises(ConfigurationError):
        render(GREEN, _full(3), 30, 0, RenderConfig(mode="CMYK"))
    with pytest.raises(ConfigurationError):
        render(GREEN, _full(3), 30, 0, RenderConfig(transparent_background=True))
    with pytest.raises(ConfigurationError):
        render(GREEN, _full(3), 30, 0, RenderConfig(background=(0, 0, 300)))
    with pytest.raises(ConfigurationError):
        render(GREEN, [[True, False]], 30, 0)
    with pytest.raises(ConfigurationError):
        render(GREEN, _full(5), 420, 50)


def test_render_returns_fresh_buffer():
    a = render(GREEN, _full(3), 30, 0)
    b = render(GREEN, _full(3), 30, 0)
    a[:] = 0
    assert (b == np.array(GREEN, dtype=np.uint8)).all()


def test_save_png(tmp_path):
    buf = render(GREEN, [[True, False, True]] * 3, 60, 10)
    out = tmp_path / "icon.png"
    save_png(buf, out)

    with Image.open(out) as img:
        assert img.format == "PNG"
        assert img.size == (60, 60)
        assert np.array_equal(np.array(img.convert("RGB")), buf)


def test_save_png_rejects_bad_shape(tmp_path):
    with pytest.raises(ValueError):
        save_png(np.zeros((4, 4), dtype=np.uint8), tmp_path / "bad.png")
