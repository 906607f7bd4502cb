# identicon_render.py
#
# ============================================================
# Identicon Renderer: (color, pattern, geometry) -> pixel buffer -> PNG
# ============================================================
#
# Canvas layout (all integer pixels):
#
#   pad    = size * padding // 100          border on each side
#   inner  = size - 2 * pad                 drawable square
#   edge_k = pad + k * inner // grid        k = 0..grid, floored
#
# Cell k spans [edge_k, edge_k+1). Cells tile the drawable square with no
# seams and no leftover margin; sizes differ by at most one pixel. When
# inner < grid some cells are empty and draw nothing.
#
# Example: size=420, padding=8, grid=5
#   pad=33, inner=354, edges=33,103,174,245,316,387 -> pattern covers 33..386
#
# The pixel buffer is a numpy uint8 array, shape (size, size, 3) for RGB or
# (size, size, 4) for RGBA, row-major, origin at the top-left.
#
# ============================================================
# Dependencies
# ============================================================
# - Pillow (PIL): pip install pillow
# - numpy:        pip install numpy
#
# ============================================================

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Tuple

import numpy as np
from PIL import Image, ImageDraw

from identicon_encode import ConfigurationError

logger = logging.getLogger(__name__)


RGB = Tuple[int, int, int]


@dataclass(frozen=True)
class RenderConfig:
    """
    Rendering configuration (affects only the pixel buffer appearance).

    background:
      RGB fill for padding and "off" cells. White by default.

    mode:
      "RGB" -> 3 channels per pixel, "RGBA" -> 4 channels per pixel.

    transparent_background:
      RGBA only. Background pixels get alpha 0 instead of 255, so the icon
      can be composited over any UI color.
    """
    background: RGB = (255, 255, 255)
    mode: str = "RGB"
    transparent_background: bool = False

    def validate(self) -> None:
        if self.mode not in ("RGB", "RGBA"):
            raise ConfigurationError(f"mode must be 'RGB' or 'RGBA' (got {self.mode!r})")
        if len(self.background) != 3 or any(not (0 <= c <= 255) for c in self.background):
            raise ConfigurationError(f"background must be an RGB triple in 0..255 (got {self.background})")
        if self.transparent_background and self.mode != "RGBA":
            raise ConfigurationError("transparent_background requires mode='RGBA'")


@dataclass(frozen=True)
class Layout:
    size: int
    grid: int
    pad: int
    inner: int
    edges: Tuple[int, ...]

    def cell_box(self, row: int, col: int) -> Tuple[int, int, int, int]:
        """Pixel box (x0, y0, x1, y1) of one cell, end-exclusive. May be empty."""
        return self.edges[col], self.edges[row], self.edges[col + 1], self.edges[row + 1]

    def min_cell(self) -> int:
        """Narrowest cell side in pixels (0 when inner < grid)."""
        return min(b - a for a, b in zip(self.edges, self.edges[1:]))


def compute_layout(size: int, grid: int, padding: int) -> Layout:
    """
    Resolve canvas geometry.

    Cell edges are floored: edge k sits at pad + k * inner // grid, so cells
    tile the drawable square exactly and differ in size by at most one pixel.

    Raises ConfigurationError if:
      - size < 1 or grid < 1
      - padding is outside [0, 50)
      - the drawable square is empty
    """
    if size < 1:
        raise ConfigurationError(f"size must be >= 1 pixel (got {size})")
    if grid < 1:
        raise ConfigurationError(f"grid must be >= 1 (got {grid})")
    if not (0 <= padding < 50):
        raise ConfigurationError(f"padding must be within 0..49 percent (got {padding})")

    pad = size * padding // 100
    inner = size - 2 * pad
    if inner <= 0:
        raise ConfigurationError(
            f"padding={padding}% leaves no drawable area on a {size}px canvas"
        )

    edges = tuple(pad + k * inner // grid for k in range(grid + 1))
    return Layout(size=size, grid=grid, pad=pad, inner=inner, edges=edges)


def render(
    color: RGB,
    pattern: List[List[bool]],
    size: int,
    padding: int,
    cfg: RenderConfig = RenderConfig(),
) -> np.ndarray:
    """
    Rasterize a pattern into a fresh pixel buffer.

    Rendering rule:
      cell on  -> filled square in `color`
      cell off -> background
    Padding is always background.
    """
    cfg.validate()
    grid = len(pattern)
    if any(len(row) != grid for row in pattern):
        raise ConfigurationError("pattern must be a square grid")

    layout = compute_layout(size, grid, padding)

    if cfg.mode == "RGBA":
        bg_alpha = 0 if cfg.transparent_background else 255
        background = tuple(cfg.background) + (bg_alpha,)
        fill = tuple(color) + (255,)
    else:
        background = tuple(cfg.background)
        fill = tuple(color)

    img = Image.new(cfg.mode, (size, size), color=background)
    draw = ImageDraw.Draw(img)

    for row, cells in enumerate(pattern):
        for col, on in enumerate(cells):
            if not on:
                continue
            x0, y0, x1, y1 = layout.cell_box(row, col)
            if x1 <= x0 or y1 <= y0:
                continue
            # PIL rectangles are inclusive on both ends
            draw.rectangle([x0, y0, x1 - 1, y1 - 1], fill=fill)

    logger.debug(
        "rendered %dpx %s canvas: pad=%d inner=%d edges=%s",
        size, cfg.mode, layout.pad, layout.inner, layout.edges,
    )
    return np.array(img, dtype=np.uint8)


# ============================================================
# Image sink
# ============================================================

def save_png(buffer: np.ndarray, out_path) -> None:
    """Write an RGB or RGBA pixel buffer to a PNG file."""
    if buffer.ndim != 3 or buffer.shape[2] not in (3, 4):
        raise ValueError(f"expected an (H, W, 3|4) buffer, got shape {buffer.shape}")
    Image.fromarray(buffer).save(out_path, format="PNG")
