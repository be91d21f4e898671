"""
color_space.py - Color conversions shared by the palette, mapper and segmenter

RGB values are 0-255 floats or ints. Every converter accepts a single
color (r, g, b) or any array whose last axis holds the three channels,
and returns the same shape back.

  - rgb_to_lab / lab_to_rgb: sRGB (D65) <-> CIE L*a*b*, exact formula
  - rgb_to_hsv / hsv_to_rgb: H in degrees [0, 360), S and V in [0, 1]
"""

import numpy as np
import cv2


# sRGB -> XYZ (D65)
_RGB_TO_XYZ = np.array([
    [0.4124564, 0.3575761, 0.1804375],
    [0.2126729, 0.7151522, 0.0721750],
    [0.0193339, 0.1191920, 0.9503041],
])
_XYZ_TO_RGB = np.linalg.inv(_RGB_TO_XYZ)

# D65 reference white
D65_WHITE = np.array([0.95047, 1.00000, 1.08883])

_LAB_EPSILON = 0.008856
_LAB_KAPPA = 7.787


# ─── Small helpers ──────────────────────────────────────────────────────────

def hex_to_rgb(hex_color):
    """Convert '#RRGGBB' to an (R, G, B) tuple."""
    h = hex_color.lstrip('#')
    if len(h) != 6:
        raise ValueError(f"Expected a #RRGGBB color, got {hex_color!r}")
    return tuple(int(h[i:i+2], 16) for i in (0, 2, 4))


def lerp_color(c1, c2, t):
    """Linearly interpolate between two RGB tuples by factor t in [0, 1]."""
    t = max(0.0, min(1.0, t))
    return tuple(int(a + (b - a) * t) for a, b in zip(c1, c2))


# ─── Lab ────────────────────────────────────────────────────────────────────

def srgb_to_linear(u):
    """sRGB 0..255 -> linear 0..1."""
    u = np.asarray(u, dtype=np.float64) / 255.0
    return np.where(u <= 0.04045, u / 12.92, ((u + 0.055) / 1.055) ** 2.4)


def linear_to_srgb(u):
    """Linear 0..1 -> sRGB 0..255 (unclipped)."""
    u = np.asarray(u, dtype=np.float64)
    low = u * 12.92
    high = 1.055 * np.power(np.maximum(u, 0.0), 1.0 / 2.4) - 0.055
    return np.where(u <= 0.0031308, low, high) * 255.0


def _lab_f(t):
    return np.where(t > _LAB_EPSILON, np.cbrt(t), _LAB_KAPPA * t + 16.0 / 116.0)


def _lab_f_inv(f):
    t = f ** 3
    return np.where(t > _LAB_EPSILON, t, (f - 16.0 / 116.0) / _LAB_KAPPA)


def rgb_to_lab(rgb):
    """
    Convert sRGB (0-255) to CIE Lab with a D65 white point.

    gamma-linearize -> sRGB-to-XYZ matrix -> divide by white -> cube root
    above the knee, linear segment below it.
    """
    linear = srgb_to_linear(rgb)
    xyz = linear @ _RGB_TO_XYZ.T
    f = _lab_f(xyz / D65_WHITE)
    fx, fy, fz = f[..., 0], f[..., 1], f[..., 2]
    lab = np.stack([116.0 * fy - 16.0, 500.0 * (fx - fy), 200.0 * (fy - fz)], axis=-1)
    return lab


def lab_to_rgb(lab):
    """Inverse of rgb_to_lab. Output is clipped to 0-255 floats."""
    lab = np.asarray(lab, dtype=np.float64)
    fy = (lab[..., 0] + 16.0) / 116.0
    fx = fy + lab[..., 1] / 500.0
    fz = fy - lab[..., 2] / 200.0
    xyz = _lab_f_inv(np.stack([fx, fy, fz], axis=-1)) * D65_WHITE
    rgb = linear_to_srgb(xyz @ _XYZ_TO_RGB.T)
    return np.clip(rgb, 0.0, 255.0)


# ─── HSV ────────────────────────────────────────────────────────────────────

def _as_float_image(values):
    arr = np.array(values, dtype=np.float32)
    shape = arr.shape
    return arr.reshape(1, -1, 3), shape


def rgb_to_hsv(rgb):
    """Convert RGB (0-255) to HSV with H in degrees, S and V in [0, 1]."""
    img, shape = _as_float_image(rgb)
    hsv = cv2.cvtColor(img / 255.0, cv2.COLOR_RGB2HSV)
    return hsv.reshape(shape).astype(np.float64)


def hsv_to_rgb(hsv):
    """Convert HSV (degrees, 0-1, 0-1) back to RGB floats in 0-255."""
    img, shape = _as_float_image(hsv)
    img[..., 0] = np.mod(img[..., 0], 360.0)
    rgb = cv2.cvtColor(img, cv2.COLOR_HSV2RGB) * 255.0
    return rgb.reshape(shape).astype(np.float64)


def brightness(rgb):
    """Mean channel value scaled to [0, 1]."""
    return np.asarray(rgb, dtype=np.float64).mean(axis=-1) / 255.0
