"""
symbol_mapper.py - Pick a palette symbol for a color

Two strategies:
  - perceptual: nearest palette entry in Lab space
  - heuristic:  HSV thresholds -> one of nine named categories
                (six 60-degree hue sectors plus black / gray / white)

The heuristic grayscale cutoff can vary with position ("inside-out"): a
larger saturation cutoff near the image center classifies more of the
core as flat gray/black/white, the edges keep their hues.
"""

import math

import numpy as np

from color_space import rgb_to_hsv, rgb_to_lab
from mosaic_config import HUE_SECTOR_NAMES, MosaicConfig


# Reference color of each heuristic category, used when the palette has no
# symbol with that name.
CATEGORY_COLORS = {
    "red": (255, 0, 0),
    "yellow": (255, 255, 0),
    "green": (0, 255, 0),
    "cyan": (0, 255, 255),
    "blue": (0, 0, 255),
    "purple": (128, 0, 255),
    "gray": (128, 128, 128),
    "black": (0, 0, 0),
    "white": (255, 255, 255),
}


# ─── Inside-out falloff ─────────────────────────────────────────────────────

def _smoothstep(d):
    return d * d * (3.0 - 2.0 * d)


FALLOFFS = {
    "linear": lambda d: d,
    "smooth": _smoothstep,
    "quadratic": lambda d: d * d,
    "flat": lambda d: 1.0,
}


def center_distance(nx, ny):
    """Distance of a normalized (0-1) position from the center; corners are 1."""
    d = math.hypot(nx - 0.5, ny - 0.5) / math.sqrt(0.5)
    return min(1.0, d)


def inside_out(center_value, edge_value, position, falloff="linear"):
    """
    Blend from *center_value* at the image center to *edge_value* at the
    corners. Without a position (or a center value) the edge value holds.
    """
    if position is None or center_value is None:
        return edge_value
    t = FALLOFFS[falloff](center_distance(*position))
    return center_value + (edge_value - center_value) * t


# ─── Heuristic classification ───────────────────────────────────────────────

def hue_sector(h, boundaries):
    """Name of the hue sector containing *h* (degrees); sectors may wrap 360."""
    h = h % 360.0
    n = len(boundaries)
    for i in range(n):
        start = boundaries[i] % 360.0
        width = (boundaries[(i + 1) % n] - boundaries[i]) % 360.0
        if (h - start) % 360.0 < width:
            return HUE_SECTOR_NAMES[i]
    return HUE_SECTOR_NAMES[0]


def classify_hsv(h, s, v, gray_saturation=0.18, black_value=0.22, white_value=0.82,
                 hue_boundaries=MosaicConfig.hue_boundaries):
    """Classify an HSV color (degrees, 0-1, 0-1) into a category name."""
    if s < gray_saturation:
        if v < black_value:
            return "black"
        if v > white_value:
            return "white"
        return "gray"
    return hue_sector(h, hue_boundaries)


# ─── Mapper ─────────────────────────────────────────────────────────────────

class SymbolMapper:
    """
    Resolves an RGB color to a palette index according to config.match_mode.

    position, when given, is the sample's (x, y) normalized to [0, 1] and
    only drives the inside-out grayscale cutoff of the heuristic mode.
    """

    def __init__(self, palette, config=None):
        self.palette = palette
        self.config = config or MosaicConfig()
        self.mode = self.config.match_mode
        self._category_index = {
            name: self._resolve_category(name) for name in CATEGORY_COLORS
        }

    def _resolve_category(self, name):
        idx = self.palette.index_of(name)
        if idx is None:
            idx = self.palette.nearest(CATEGORY_COLORS[name])
        return idx

    def gray_threshold(self, position=None):
        cfg = self.config
        return inside_out(cfg.gray_saturation_center, cfg.gray_saturation, position, cfg.falloff)

    def category(self, rgb, position=None):
        """Heuristic category name for an RGB color."""
        h, s, v = rgb_to_hsv(rgb)
        cfg = self.config
        return classify_hsv(h, s, v,
                            gray_saturation=self.gray_threshold(position),
                            black_value=cfg.black_value,
                            white_value=cfg.white_value,
                            hue_boundaries=cfg.hue_boundaries)

    def map(self, rgb, position=None):
        """Palette index for *rgb*."""
        if self.mode == "heuristic":
            return self._category_index[self.category(rgb, position)]
        return self.palette.nearest_lab(rgb_to_lab(rgb))

    def map_name(self, rgb, position=None):
        return self.palette[self.map(rgb, position)].name

    def map_many(self, colors):
        """Palette index for each color in an (N, 3) array, position-free."""
        colors = np.asarray(colors, dtype=np.float64).reshape(-1, 3)
        return [self.map(c) for c in colors]
