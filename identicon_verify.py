# identicon_verify.py
#
# ============================================================
# Identicon Verifier (Fail-Closed)
#   PNG -> sample grid x grid cells -> (color, pattern) -> compare with seed
# ============================================================
#
# Reads an identicon back from disk and checks that it is exactly the icon
# the given seed produces under the given geometry. The layout is computed
# with the same rounding rules as the renderer, so no localization is needed:
# the image must be a rendered identicon, not a photo.
#
# OUTPUT:
#   VERIFY OK      if size, pattern and color all match
#   VERIFY REJECT  with a reason otherwise
#
# Dependencies:
#   pip install opencv-python numpy
#
# ------------------------------------------------------------

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

import cv2
import numpy as np

from identicon import DEFAULT_GRID, DEFAULT_PADDING, DEFAULT_SIZE, IdenticonConfig
from identicon_encode import ConfigurationError, derive_color, derive_pattern, hash_seed, pattern_to_rows
from identicon_render import Layout, compute_layout

logger = logging.getLogger(__name__)


# =========================
# Settings
# =========================

# Side of the sampled patch relative to the cell side, centered in the cell.
SAMPLE_RATIO = 0.5

# A cell is "on" when any channel mean differs from the background by more than this.
ON_THRESHOLD = 24.0

# Max per-channel difference accepted between expected and sampled color.
COLOR_TOLERANCE = 2


@dataclass
class VerifyResult:
    ok: bool
    reason: str
    debug: Dict[str, Any] = field(default_factory=dict)


def read_rgb(path: str) -> np.ndarray:
    """Load an image as an (H, W, 3) uint8 RGB array. Alpha is dropped."""
    img = cv2.imread(str(path), cv2.IMREAD_COLOR)
    if img is None:
        raise ValueError(f"cannot read image: {path}")
    return cv2.cvtColor(img, cv2.COLOR_BGR2RGB)


def sample_cells(buffer: np.ndarray, layout: Layout, ratio: float = SAMPLE_RATIO) -> np.ndarray:
    """
    Mean RGB inside a centered square patch of every cell.

    Returns:
      float32 array of shape (grid, grid, 3)
    """
    n = layout.grid
    means = np.zeros((n, n, 3), dtype=np.float32)

    for r in range(n):
        for c in range(n):
            x0, y0, x1, y1 = layout.cell_box(r, c)
            half = max(1, int(min(x1 - x0, y1 - y0) * ratio)) // 2
            cx = (x0 + x1) // 2
            cy = (y0 + y1) // 2
            patch = buffer[max(y0, cy - half):min(y1, cy + half + 1),
                           max(x0, cx - half):min(x1, cx + half + 1), :3]
            means[r, c] = patch.reshape(-1, 3).mean(axis=0)

    return means


def extract_pattern(
    means: np.ndarray,
    background: Tuple[int, int, int] = (255, 255, 255),
    threshold: float = ON_THRESHOLD,
) -> Tuple[List[List[bool]], Optional[Tuple[int, int, int]]]:
    """
    Classify cell means into on/off and estimate the foreground color.

    Returns:
      pattern: grid x grid booleans
      color:   rounded mean color of the "on" cells, or None if none are on
    """
    bg = np.array(background, dtype=np.float32)
    diff = np.abs(means - bg).max(axis=2)
    on = diff > threshold

    pattern = [[bool(v) for v in row] for row in on]
    if not on.any():
        return pattern, None

    fg = means[on].mean(axis=0)
    color = tuple(int(round(float(v))) for v in fg)
    return pattern, color


def verify_identicon(
    path: str,
    seed: str,
    config: IdenticonConfig = IdenticonConfig(),
) -> VerifyResult:
    """
    Fail-closed check that the image at `path` is the identicon of `seed`.

    Order of checks:
      1) every cell is at least one pixel wide
      2) derived color is distinguishable from the background
      3) image readable
      4) image is size x size
      5) sampled pattern == derived pattern
      6) sampled color within COLOR_TOLERANCE of derived color
    """
    try:
        config.validate()
        layout = compute_layout(config.size, config.grid, config.padding)
    except ConfigurationError as e:
        return VerifyResult(False, f"REJECT: invalid configuration ({e})")

    if layout.min_cell() < 1:
        return VerifyResult(False, "REJECT: cells smaller than one pixel cannot be sampled")

    digest = hash_seed(seed)
    expected_color = derive_color(digest, config.color_min, config.color_max)
    expected_pattern = derive_pattern(digest, config.grid)

    background = config.render_cfg.background
    contrast = max(abs(a - b) for a, b in zip(expected_color, background))
    if contrast <= ON_THRESHOLD:
        return VerifyResult(
            False,
            "REJECT: derived color is too close to the background to verify",
            {"expected_color": expected_color, "background": background},
        )

    try:
        buffer = read_rgb(path)
    except ValueError as e:
        return VerifyResult(False, f"REJECT: {e}", {"path": str(path)})

    h, w = buffer.shape[:2]
    if (h, w) != (config.size, config.size):
        return VerifyResult(
            False,
            f"REJECT: image is {w}x{h}, expected {config.size}x{config.size}",
            {"shape": buffer.shape},
        )

    means = sample_cells(buffer, layout)
    pattern, color = extract_pattern(means, background)

    debug = {
        "expected_pattern": pattern_to_rows(expected_pattern),
        "sampled_pattern": pattern_to_rows(pattern),
        "expected_color": expected_color,
        "sampled_color": color,
    }

    if pattern != expected_pattern:
        return VerifyResult(False, "REJECT: pattern mismatch", debug)

    if color is not None:
        delta = max(abs(a - b) for a, b in zip(color, expected_color))
        debug["color_delta"] = delta
        if delta > COLOR_TOLERANCE:
            return VerifyResult(False, "REJECT: color mismatch", debug)

    logger.debug("verified %s against seed %r", path, seed)
    return VerifyResult(True, "OK", debug)


# ============================================================
# CLI
# ============================================================

def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="identicon-verify",
        description="Check that a PNG is the identicon of a seed (fail-closed).",
    )
    parser.add_argument("image", type=str, help="Path to the identicon PNG.")
    parser.add_argument("seed", type=str, help="Seed the image is expected to encode.")
    parser.add_argument("-s", "--size", type=int, default=DEFAULT_SIZE, help=f"Default={DEFAULT_SIZE}.")
    parser.add_argument("-g", "--grid", type=int, default=DEFAULT_GRID, help=f"Default={DEFAULT_GRID}.")
    parser.add_argument("-p", "--padding", type=int, default=DEFAULT_PADDING, help=f"Default={DEFAULT_PADDING}.")
    args = parser.parse_args(argv)

    config = IdenticonConfig(size=args.size, grid=args.grid, padding=args.padding)
    res = verify_identicon(args.image, args.seed, config)

    if res.ok:
        print("VERIFY OK")
        print("  color  :", "#%02x%02x%02x" % res.debug["expected_color"])
        print("  pattern:", " ".join(res.debug["expected_pattern"]))
        return 0

    print("VERIFY REJECT")
    print("  reason :", res.reason)
    return 1


if __name__ == "__main__":
    sys.exit(main())
