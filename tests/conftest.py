"""Shared test fixtures."""

from __future__ import annotations

import numpy as np
import pytest

from mosaic_config import SYMBOL_NAMES
from symbol_palette import SymbolAsset, build_palette


# Nominal colors for solid test symbols, one per default palette name.
SOLID_COLORS = {
    "red": (255, 0, 0),
    "yellow": (255, 255, 0),
    "green": (0, 200, 0),
    "cyan": (0, 255, 255),
    "blue": (0, 0, 255),
    "purple": (128, 0, 200),
    "gray": (128, 128, 128),
    "black": (0, 0, 0),
    "white": (255, 255, 255),
}


def solid_image(width, height, rgb, alpha=255):
    img = np.zeros((height, width, 4), dtype=np.uint8)
    img[..., :3] = rgb
    img[..., 3] = alpha
    return img


def solid_symbol(name, rgb, size=16, border=3):
    """A square of *rgb* surrounded by a fully transparent border."""
    img = np.zeros((size, size, 4), dtype=np.uint8)
    img[border:size - border, border:size - border, :3] = rgb
    img[border:size - border, border:size - border, 3] = 255
    return SymbolAsset(name, img)


@pytest.fixture
def solid_assets():
    return [solid_symbol(name, SOLID_COLORS[name]) for name in SYMBOL_NAMES]


@pytest.fixture
def palette(solid_assets):
    return build_palette(solid_assets)


@pytest.fixture
def two_tone_image():
    """Left half red, right half blue, 40x20."""
    img = solid_image(40, 20, (255, 0, 0))
    img[:, 20:, :3] = (0, 0, 255)
    return img
