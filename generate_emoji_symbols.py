"""
generate_emoji_symbols.py - Draw the default color-coded emoji palette

Each symbol is a flat round face in one palette color on a transparent
background, with eyes and a smile in a darker (or, for dark faces, a
lighter) shade of the same color. The face dominates the area, so the
symbol's mean color stays close to its nominal color.

Files are written as emoji_<name>.png, which emoji_mosaic.py picks up
with --symbols-dir.

Usage:
    python generate_emoji_symbols.py --output ./emoji
    python generate_emoji_symbols.py --output ./emoji --size 128
    python generate_emoji_symbols.py --output ./emoji --color red=#E53935 --color blue=#1E63D6
"""

import os
import argparse

import numpy as np
from PIL import Image, ImageDraw

from color_space import hex_to_rgb, lerp_color
from mosaic_config import SYMBOL_NAMES
from symbol_palette import DEFAULT_ALPHA_CUTOFF, SymbolAsset


EMOJI_COLORS = {
    "red": (229, 57, 53),
    "yellow": (253, 216, 53),
    "green": (67, 160, 71),
    "cyan": (38, 198, 218),
    "blue": (30, 99, 214),
    "purple": (142, 68, 173),
    "gray": (150, 150, 150),
    "black": (33, 33, 33),
    "white": (250, 250, 250),
}

BLACK = (0, 0, 0)
WHITE = (255, 255, 255)

# Render at 4x and downsample for anti-aliased edges.
_SUPERSAMPLE = 4


def feature_color(face_rgb):
    """Darker shade on light faces, lighter shade on dark faces."""
    luma = 0.299 * face_rgb[0] + 0.587 * face_rgb[1] + 0.114 * face_rgb[2]
    if luma < 80:
        return lerp_color(face_rgb, WHITE, 0.45)
    return lerp_color(face_rgb, BLACK, 0.55)


def draw_emoji_face(face_rgb, size):
    """Return an RGBA PIL image of a smiling face in *face_rgb*."""
    s = size * _SUPERSAMPLE
    img = Image.new('RGBA', (s, s), (0, 0, 0, 0))
    draw = ImageDraw.Draw(img)

    margin = s * 0.04
    draw.ellipse([margin, margin, s - margin, s - margin], fill=tuple(face_rgb) + (255,))

    ink = feature_color(face_rgb) + (255,)
    eye_r = s * 0.06
    for ex in (0.35, 0.65):
        cx, cy = s * ex, s * 0.38
        draw.ellipse([cx - eye_r, cy - eye_r * 1.4, cx + eye_r, cy + eye_r * 1.4], fill=ink)

    mouth = [s * 0.28, s * 0.34, s * 0.72, s * 0.76]
    draw.arc(mouth, start=25, end=155, fill=ink, width=max(1, int(s * 0.05)))

    return img.resize((size, size), resample=Image.Resampling.LANCZOS)


def generate_symbols(size=72, names=None, colors=None, alpha_cutoff=DEFAULT_ALPHA_CUTOFF):
    """
    Build SymbolAssets for *names* (default: all nine) in memory.
    Unknown names need an entry in *colors*.
    """
    palette = dict(EMOJI_COLORS)
    palette.update(colors or {})
    names = list(names) if names else list(SYMBOL_NAMES)

    assets = []
    for name in names:
        if name not in palette:
            raise ValueError(f"No color for symbol {name!r}; pass it with --color {name}=#RRGGBB")
        img = draw_emoji_face(palette[name], size)
        assets.append(SymbolAsset(name, np.array(img), alpha_cutoff))
    return assets


def save_symbols(assets, output_dir):
    """Write each asset as emoji_<name>.png and return the paths."""
    os.makedirs(output_dir, exist_ok=True)
    paths = []
    for asset in assets:
        path = os.path.join(output_dir, f"emoji_{asset.name}.png")
        Image.fromarray(asset.pixels, 'RGBA').save(path)
        r, g, b = asset.mean_rgb
        print(f"  [OK] emoji_{asset.name}.png  mean=({r:.0f}, {g:.0f}, {b:.0f})")
        paths.append(path)
    return paths


def _named_color(text):
    name, _, hex_color = text.partition('=')
    if not name or not hex_color:
        raise argparse.ArgumentTypeError(f"expected NAME=#RRGGBB, got {text!r}")
    try:
        return name.strip(), hex_to_rgb(hex_color.strip())
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))


# ─── Main ────────────────────────────────────────────────────────────────────

def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Generate the default color-coded emoji symbols"
    )
    parser.add_argument(
        "--output", "-o", dest="output_dir", type=str, required=True,
        help="Folder to save generated emoji"
    )
    parser.add_argument(
        "--size", "-s", dest="size", type=int, default=72,
        help="Emoji size in pixels (default: 72)"
    )
    parser.add_argument(
        "--names", dest="names", type=str, default=",".join(SYMBOL_NAMES),
        help="Comma-separated symbol names to draw (default: all nine)"
    )
    parser.add_argument(
        "--color", "-c", dest="colors", type=_named_color, action="append", default=[],
        help="Override or add a symbol color, e.g. red=#FF0000 (repeatable)"
    )
    args = parser.parse_args(argv)

    names = [n.strip() for n in args.names.split(',') if n.strip()]

    print(f"=== Generate Emoji Symbols ===")
    print(f"Output: {os.path.abspath(args.output_dir)}")
    print(f"Size:   {args.size}x{args.size} px")
    print(f"Names:  {', '.join(names)}")
    print()

    try:
        assets = generate_symbols(args.size, names, dict(args.colors))
    except ValueError as e:
        parser.error(str(e))
    save_symbols(assets, args.output_dir)

    print(f"\nDone. Point emoji_mosaic.py's --symbols-dir to: {os.path.abspath(args.output_dir)}")


if __name__ == '__main__':
    main()
