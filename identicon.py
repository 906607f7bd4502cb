# identicon.py
#
# ============================================================
# Identicon Generator: seed string -> PNG
# ============================================================
#
# Pipeline:
#   1) digest  = SHA-256(seed)                      (identicon_encode)
#   2) color   = digest[0..2] rescaled into 50..200 (identicon_encode)
#   3) pattern = digest[3..31] bits, mirrored        (identicon_encode)
#   4) buffer  = rasterized color + pattern + pad    (identicon_render)
#   5) PNG written by Pillow                         (identicon_render)
#
# Same (seed, size, grid, padding) -> byte-identical pixel buffer, always.
#
# CLI:
#   identicon alice
#   identicon alice -o alice.png -s 256 -g 7 -p 10
#
# ============================================================

from __future__ import annotations

import argparse
import hashlib
import logging
import re
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from identicon_encode import (
    COLOR_MAX,
    COLOR_MIN,
    PATTERN_POOL_BITS,
    ConfigurationError,
    bits_needed,
    derive_color,
    derive_pattern,
    hash_seed,
    pattern_to_rows,
)
from identicon_render import RenderConfig, compute_layout, render, save_png

logger = logging.getLogger(__name__)


# =========================
# Defaults
# =========================
DEFAULT_SIZE = 420
DEFAULT_GRID = 5
DEFAULT_PADDING = 8

# Seeds matching this (and short enough) are used directly as file names.
SAFE_NAME_RE = re.compile(r"[\w-]+")
SAFE_NAME_MAX_BYTES = 64


@dataclass(frozen=True)
class IdenticonConfig:
    """
    Generation parameters, validated once at entry.

    size:
      Side of the square image in pixels.

    grid:
      Cells per side. Only ceil(grid/2) columns are derived; the rest mirror.
      Largest supported value is 21 (the half-grid must fit in 232 digest bits).

    padding:
      Border on each side, as a percentage of size (0..49).

    color_min / color_max:
      Channel sub-range for the derived color.
    """
    size: int = DEFAULT_SIZE
    grid: int = DEFAULT_GRID
    padding: int = DEFAULT_PADDING
    color_min: int = COLOR_MIN
    color_max: int = COLOR_MAX
    render_cfg: RenderConfig = field(default_factory=RenderConfig)

    def validate(self) -> None:
        # geometry and render checks raise ConfigurationError on their own
        compute_layout(self.size, self.grid, self.padding)
        if bits_needed(self.grid) > PATTERN_POOL_BITS:
            raise ConfigurationError(
                f"grid={self.grid} needs {bits_needed(self.grid)} pattern bits "
                f"but the digest supplies {PATTERN_POOL_BITS}"
            )
        self.render_cfg.validate()
        if not (0 <= self.color_min <= self.color_max <= 255):
            raise ConfigurationError(
                f"color range must satisfy 0 <= min <= max <= 255 "
                f"(got {self.color_min}..{self.color_max})"
            )


@dataclass
class Identicon:
    seed: str
    digest: bytes
    color: Tuple[int, int, int]
    pattern: List[List[bool]]
    pixels: np.ndarray

    def meta(self) -> Dict[str, Any]:
        """Debug metadata, safe to print/log."""
        return {
            "seed": self.seed,
            "digest_hex": self.digest.hex(),
            "color": "#%02x%02x%02x" % self.color,
            "grid": len(self.pattern),
            "pattern": pattern_to_rows(self.pattern),
            "image_size": self.pixels.shape[0],
            "channels": self.pixels.shape[2],
        }


def create_identicon(seed: str, config: IdenticonConfig = IdenticonConfig()) -> Identicon:
    """
    Run the full pipeline and keep every intermediate value.

    Raises ConfigurationError for the first invalid parameter found.
    """
    config.validate()

    digest = hash_seed(seed)
    color = derive_color(digest, config.color_min, config.color_max)
    pattern = derive_pattern(digest, config.grid)
    pixels = render(color, pattern, config.size, config.padding, config.render_cfg)

    logger.debug("seed=%r color=%s pattern=%s", seed, color, pattern_to_rows(pattern))
    return Identicon(seed=seed, digest=digest, color=color, pattern=pattern, pixels=pixels)


def generate(
    seed: str,
    size: int = DEFAULT_SIZE,
    grid: int = DEFAULT_GRID,
    padding: int = DEFAULT_PADDING,
    cfg: Optional[RenderConfig] = None,
) -> np.ndarray:
    """Generate the pixel buffer for a seed."""
    config = IdenticonConfig(
        size=size,
        grid=grid,
        padding=padding,
        render_cfg=cfg if cfg is not None else RenderConfig(),
    )
    return create_identicon(seed, config).pixels


def default_output_path(seed: str) -> Path:
    """
    `<seed>.png` when the seed is a safe file name (letters, digits, '_', '-',
    at most 64 bytes), otherwise `<sha256 hex of seed>.png`.
    """
    if SAFE_NAME_RE.fullmatch(seed) and len(seed.encode("utf-8")) <= SAFE_NAME_MAX_BYTES:
        name = seed
    else:
        name = hashlib.sha256(seed.encode("utf-8")).hexdigest()
    return Path(f"{name}.png")


# ============================================================
# CLI entry point
# ============================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="identicon",
        description="Generate identicons from hashed seed strings.",
    )
    parser.add_argument("seed", type=str, help="Seed text (username, email, etc.) to generate the identicon from.")
    parser.add_argument("-o", "--output", type=Path, default=None,
                        help="Output file path. Default: <seed>.png, or <seed sha256>.png for unsafe names.")
    parser.add_argument("-s", "--size", type=int, default=DEFAULT_SIZE,
                        help=f"Size of the identicon in pixels. Default={DEFAULT_SIZE}.")
    parser.add_argument("-g", "--grid", type=int, default=DEFAULT_GRID,
                        help=f"Grid size for the pattern. Default={DEFAULT_GRID}.")
    parser.add_argument("-p", "--padding", type=int, default=DEFAULT_PADDING,
                        help=f"Padding as a percentage of size. Default={DEFAULT_PADDING}.")
    parser.add_argument("--rgba", action="store_true", help="Write a 4-channel RGBA image.")
    parser.add_argument("--transparent", action="store_true",
                        help="Transparent background (implies --rgba).")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log derived values.")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.seed:
        parser.error("seed must not be empty")

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    mode = "RGBA" if (args.rgba or args.transparent) else "RGB"
    config = IdenticonConfig(
        size=args.size,
        grid=args.grid,
        padding=args.padding,
        render_cfg=RenderConfig(mode=mode, transparent_background=args.transparent),
    )
    output_path = args.output if args.output is not None else default_output_path(args.seed)

    print("Generating identicon for seed:", args.seed)
    try:
        icon = create_identicon(args.seed, config)
    except ConfigurationError as e:
        print(f"error: failed to generate identicon: {e}", file=sys.stderr)
        return 1

    try:
        save_png(icon.pixels, output_path)
    except OSError as e:
        print(f"error: failed to save image: {e}", file=sys.stderr)
        return 1

    print("Identicon saved to:", output_path)

    if args.verbose:
        for k, v in icon.meta().items():
            logger.debug("  %s: %s", k, v)
    return 0


if __name__ == "__main__":
    sys.exit(main())
