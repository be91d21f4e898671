"""
symbol_palette.py - Symbol assets and the fixed palette built from them

Each symbol (an emoji image) contributes one palette entry: its mean color
over non-transparent pixels, plus that color in Lab. The palette is built
once at startup and every later match runs against it.
"""

import os
import glob
import warnings
from typing import NamedTuple, Tuple

import numpy as np
from PIL import Image

from color_space import rgb_to_lab
from mosaic_errors import DegenerateAsset, EmptyPalette, InvalidImage


DEFAULT_ALPHA_CUTOFF = 10


def as_rgba(pixels):
    """
    Return *pixels* as a (H, W, 4) uint8 array. RGB input gets opaque alpha.
    Raises InvalidImage for empty or wrongly shaped buffers.
    """
    arr = np.asarray(pixels)
    if arr.ndim != 3 or arr.shape[2] not in (3, 4):
        raise InvalidImage(f"Expected an (H, W, 3|4) pixel buffer, got shape {arr.shape}")
    if arr.shape[0] < 1 or arr.shape[1] < 1:
        raise InvalidImage(f"Image has zero size: {arr.shape[1]}x{arr.shape[0]}")
    if arr.dtype != np.uint8:
        if not np.issubdtype(arr.dtype, np.number):
            raise InvalidImage(f"Pixel buffer must be numeric, got {arr.dtype}")
        arr = np.clip(arr, 0, 255).astype(np.uint8)
    if arr.shape[2] == 3:
        alpha = np.full(arr.shape[:2] + (1,), 255, dtype=np.uint8)
        arr = np.concatenate([arr, alpha], axis=2)
    return arr


def mean_rgb_of_image(rgba, alpha_cutoff=DEFAULT_ALPHA_CUTOFF):
    """
    Mean (R, G, B) over pixels whose alpha is above *alpha_cutoff*.
    Returns None when every pixel is filtered out.
    """
    visible = rgba[..., 3] > alpha_cutoff
    if not visible.any():
        return None
    return tuple(float(c) for c in rgba[..., :3][visible].mean(axis=0))


class SymbolAsset:
    """A symbol image (private copy) with its mean color computed once."""

    def __init__(self, name, pixels, alpha_cutoff=DEFAULT_ALPHA_CUTOFF):
        rgba = as_rgba(pixels).copy()
        self.name = name
        self.pixels = rgba
        self.alpha_cutoff = alpha_cutoff
        mean = mean_rgb_of_image(rgba, alpha_cutoff)
        self.degenerate = mean is None
        self.mean_rgb = (0.0, 0.0, 0.0) if mean is None else mean

    @property
    def size(self):
        return self.pixels.shape[1], self.pixels.shape[0]

    def __repr__(self):
        r, g, b = self.mean_rgb
        return f"SymbolAsset({self.name!r}, {self.size[0]}x{self.size[1]}, mean=({r:.0f}, {g:.0f}, {b:.0f}))"


class PaletteEntry(NamedTuple):
    name: str
    asset: SymbolAsset
    rgb: Tuple[float, float, float]
    lab: Tuple[float, float, float]


class Palette:
    """Ordered, fixed set of palette entries. Order breaks matching ties."""

    def __init__(self, entries):
        self._entries = tuple(entries)
        if not self._entries:
            raise EmptyPalette("A palette needs at least one symbol")
        self._labs = np.array([e.lab for e in self._entries], dtype=np.float64)
        self._index = {}
        for i, entry in enumerate(self._entries):
            self._index.setdefault(entry.name, i)

    def __len__(self):
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries)

    def __getitem__(self, i):
        return self._entries[i]

    @property
    def names(self):
        return [e.name for e in self._entries]

    def index_of(self, name):
        """Index of the first entry called *name*, or None."""
        return self._index.get(name)

    def nearest_lab(self, lab):
        """Index of the entry with minimum squared Lab distance (first wins)."""
        d = ((self._labs - np.asarray(lab, dtype=np.float64)) ** 2).sum(axis=1)
        return int(np.argmin(d))

    def nearest(self, rgb):
        """Index of the entry perceptually closest to an RGB color."""
        return self.nearest_lab(rgb_to_lab(rgb))


def build_palette(assets, alpha_cutoff=None):
    """
    Build the palette from *assets* (SymbolAsset list).

    A symbol with no visible pixels keeps mean (0, 0, 0) and raises a
    DegenerateAsset warning instead of aborting the build.
    """
    assets = list(assets)
    if not assets:
        raise EmptyPalette("No symbol assets supplied")

    entries = []
    for asset in assets:
        if alpha_cutoff is not None and alpha_cutoff != asset.alpha_cutoff:
            asset = SymbolAsset(asset.name, asset.pixels, alpha_cutoff)
        if asset.degenerate:
            warnings.warn(
                f"Symbol {asset.name!r} has no pixels above alpha {asset.alpha_cutoff}; "
                f"using (0, 0, 0) as its color",
                DegenerateAsset,
                stacklevel=2,
            )
        lab = tuple(float(v) for v in rgb_to_lab(asset.mean_rgb))
        entries.append(PaletteEntry(asset.name, asset, asset.mean_rgb, lab))
    return Palette(entries)


# ─── Load symbols from disk ─────────────────────────────────────────────────

def symbol_name_from_path(path):
    """'emoji_red.png' -> 'red'."""
    stem = os.path.splitext(os.path.basename(path))[0]
    return stem[len("emoji_"):] if stem.startswith("emoji_") else stem


def load_symbol_image(path):
    """Read an image file as an RGBA array. Decode failures become InvalidImage."""
    try:
        with Image.open(path) as img:
            return np.array(img.convert('RGBA'))
    except (OSError, ValueError) as e:
        raise InvalidImage(f"Cannot read symbol image {path}: {e}") from e


def load_symbols_from_dir(symbols_dir, names=None, alpha_cutoff=DEFAULT_ALPHA_CUTOFF):
    """
    Load symbol images from a directory.

    With *names*, each name is looked up as 'emoji_<name>.png' then
    '<name>.png', in that order, and missing names are skipped. Without
    names every PNG is loaded in sorted order.
    """
    if names:
        paths = []
        for name in names:
            for candidate in (f"emoji_{name}.png", f"{name}.png"):
                path = os.path.join(symbols_dir, candidate)
                if os.path.isfile(path):
                    paths.append(path)
                    break
    else:
        paths = sorted(glob.glob(os.path.join(symbols_dir, '*.png')))

    if not paths:
        raise EmptyPalette(f"No symbol images found in {symbols_dir}")

    return [SymbolAsset(symbol_name_from_path(p), load_symbol_image(p), alpha_cutoff)
            for p in paths]
