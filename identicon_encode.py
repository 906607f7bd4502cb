# identicon_encode.py
#
# ============================================================
# Identicon Encoder: seed -> digest -> (color, symmetric grid)
# ============================================================
#
# INPUT : an arbitrary seed string (username, email, public key, ...)
# OUTPUT: one RGB color + a grid x grid boolean pattern, mirrored horizontally
#
# ============================================================
# Digest budget: 32 bytes = 256 bits (SHA-256)
# ============================================================
#
#   bytes 0..2   : color candidates (R, G, B)
#   bytes 3..31  : pattern pool, 29 bytes = 232 bits
#
# Only the left half of the grid (including the center column when the
# grid is odd) is read from the pool; the right half is a mirror copy.
#
#   cells needed = grid * ceil(grid / 2)
#
#   grid=5  -> 5 * 3  = 15 bits
#   grid=15 -> 15 * 8 = 120 bits
#   grid=21 -> 21 * 11 = 231 bits   (largest grid that fits)
#   grid=22 -> 22 * 11 = 242 bits   -> ConfigurationError
#
# Bits are consumed least significant bit first within each byte, bytes in
# order. Changing this order changes every icon ever generated.
#
# ============================================================
# Dependencies
# ============================================================
# - Python 3.8+ (hashlib only)
#
# ============================================================

from __future__ import annotations

import hashlib
import logging
from typing import List, Tuple

logger = logging.getLogger(__name__)


DIGEST_LEN = 32
COLOR_BYTES = 3
PATTERN_POOL_BITS = (DIGEST_LEN - COLOR_BYTES) * 8  # 232

# Channel sub-range; keeps cells away from the white background and from black.
COLOR_MIN = 50
COLOR_MAX = 200


class ConfigurationError(ValueError):
    """Raised when generation parameters cannot produce a valid identicon."""


# ============================================================
# Digest provider
# ============================================================

def hash_seed(seed: str) -> bytes:
    """SHA-256 over the UTF-8 bytes of the seed (always 32 bytes)."""
    return hashlib.sha256(seed.encode("utf-8")).digest()


# ============================================================
# Bit utilities
# ============================================================

def bytes_to_bits(data: bytes) -> List[int]:
    """
    Expand bytes into a flat bit list, LSB first within each byte.

    Example:
      b'\\x01\\x80' -> [1,0,0,0,0,0,0,0, 0,0,0,0,0,0,0,1]
    """
    return [(byte >> i) & 1 for byte in data for i in range(8)]


def half_width(grid: int) -> int:
    """Number of independently derived columns (center column included)."""
    return (grid + 1) // 2


def bits_needed(grid: int) -> int:
    return grid * half_width(grid)


def max_grid_size() -> int:
    """Largest grid whose half-grid fits in the pattern pool."""
    grid = 1
    while bits_needed(grid + 1) <= PATTERN_POOL_BITS:
        grid += 1
    return grid


# ============================================================
# Color deriver
# ============================================================

def derive_color(
    digest: bytes,
    low: int = COLOR_MIN,
    high: int = COLOR_MAX,
) -> Tuple[int, int, int]:
    """
    Map digest bytes 0..2 to an RGB color inside [low, high] per channel.

    Each channel is rescaled linearly with integer arithmetic:
      value' = low + value * (high - low) // 255

    So 0 -> low, 255 -> high, and the mapping is monotonic.

    Example (defaults 50..200):
      (43, 216, 6) -> (75, 177, 53)
    """
    if not (0 <= low <= high <= 255):
        raise ConfigurationError(
            f"color range must satisfy 0 <= low <= high <= 255 (got low={low}, high={high})"
        )
    if len(digest) < COLOR_BYTES:
        raise ConfigurationError(f"digest too short for a color: {len(digest)} bytes")

    span = high - low
    r, g, b = (low + digest[i] * span // 255 for i in range(COLOR_BYTES))
    return r, g, b


# ============================================================
# Pattern generator
# ============================================================

def derive_pattern(digest: bytes, grid: int) -> List[List[bool]]:
    """
    Build a grid x grid boolean pattern, mirrored about the vertical axis.

    Pipeline:
      1) Validate grid (>= 1, and the half-grid must fit in 232 bits)
      2) bits = bytes_to_bits(digest[3:])
      3) Fill the left half row-major: row 0 cols 0..half-1, row 1, ...
      4) Mirror each left cell (row, col) to (row, grid-1-col)

    Returns:
      pattern[row][col], row 0 at the top.
    """
    if grid < 1:
        raise ConfigurationError(f"grid must be >= 1 (got {grid})")

    needed = bits_needed(grid)
    pool = digest[COLOR_BYTES:]
    available = len(pool) * 8
    if needed > available:
        raise ConfigurationError(
            f"grid={grid} needs {needed} pattern bits but the digest supplies {available} "
            f"(largest supported grid is {max_grid_size()})"
        )

    bits = bytes_to_bits(pool)
    half = half_width(grid)
    pattern = [[False] * grid for _ in range(grid)]

    idx = 0
    for row in range(grid):
        for col in range(half):
            on = bits[idx] == 1
            idx += 1
            pattern[row][col] = on
            # odd grids: center column is its own mirror
            pattern[row][grid - 1 - col] = on

    logger.debug("derived %dx%d pattern from %d bits", grid, grid, needed)
    return pattern


def pattern_to_rows(pattern: List[List[bool]]) -> List[str]:
    """Render a pattern as '1'/'0' strings, one per row (debug/metadata)."""
    return ["".join("1" if on else "0" for on in row) for row in pattern]
