"""
prepare_symbols.py - Turn a folder of images into emoji mosaic symbols

Each input image becomes a square RGBA PNG:
  1. Optionally key out a background color (pixels within a tolerance of
     it become fully transparent), for emoji exported on a flat backdrop.
  2. Fit the image inside a transparent square, centered, aspect kept.
  3. Resize to the symbol size and save as emoji_<name>.png.

Afterwards the palette is built from the prepared symbols and its mean
colors are printed, so a symbol with no visible pixels shows up before a
mosaic run.

Usage:
    python prepare_symbols.py --input ./raw_emoji --output ./emoji
    python prepare_symbols.py --input ./raw_emoji --output ./emoji --key-color "#FFFFFF" --tolerance 12
"""

import os
import argparse
import warnings

import numpy as np
from PIL import Image, ImageOps

from color_space import hex_to_rgb
from mosaic_errors import DegenerateAsset, MosaicError
from symbol_palette import build_palette, load_symbols_from_dir


SUPPORTED_EXTENSIONS = ('.png', '.jpg', '.jpeg', '.webp', '.bmp', '.gif')


def key_out_color(rgba, key_rgb, tolerance=10.0):
    """
    Make pixels within *tolerance* (RGB L2 distance) of *key_rgb* fully
    transparent. Other pixels keep their alpha.
    """
    out = rgba.copy()
    dist = np.sqrt(np.sum((rgba[..., :3].astype(np.float32) - np.array(key_rgb, dtype=np.float32)) ** 2, axis=2))
    out[..., 3] = np.where(dist <= tolerance, 0, rgba[..., 3]).astype(np.uint8)
    return out


def square_symbol(img, size):
    """Fit *img* (PIL RGBA) centered in a transparent size x size square."""
    fitted = ImageOps.contain(img, (size, size), method=Image.Resampling.LANCZOS)
    canvas = Image.new('RGBA', (size, size), (0, 0, 0, 0))
    canvas.paste(fitted, ((size - fitted.width) // 2, (size - fitted.height) // 2))
    return canvas


def prepare_symbol(image_path, output_path, size, key_rgb=None, tolerance=10.0):
    """Convert one image file into a square RGBA symbol PNG. Returns False if skipped."""
    try:
        with Image.open(image_path) as img:
            rgba = np.array(img.convert('RGBA'))
    except (OSError, ValueError) as e:
        print(f"  [SKIP] {os.path.basename(image_path)}: {e}")
        return False

    if key_rgb is not None:
        rgba = key_out_color(rgba, key_rgb, tolerance)

    square_symbol(Image.fromarray(rgba, 'RGBA'), size).save(output_path)
    print(f"  [OK] {os.path.basename(image_path)} -> {os.path.basename(output_path)}")
    return True


def report_palette(symbols_dir):
    """Build the palette from prepared symbols and print each mean color."""
    assets = load_symbols_from_dir(symbols_dir)
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always", DegenerateAsset)
        palette = build_palette(assets)

    print(f"\nPalette ({len(palette)} symbols):")
    for entry in palette:
        r, g, b = entry.rgb
        L, a, bb = entry.lab
        print(f"  {entry.name:<12} rgb=({r:5.1f}, {g:5.1f}, {b:5.1f})  lab=({L:5.1f}, {a:6.1f}, {bb:6.1f})")
    for w in caught:
        print(f"  WARNING: {w.message}")
    return palette


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Convert images into square RGBA symbols for the emoji mosaic"
    )
    parser.add_argument(
        "--input", "-i", dest="input_dir", type=str, required=True,
        help="Folder containing source images"
    )
    parser.add_argument(
        "--output", "-o", dest="output_dir", type=str, required=True,
        help="Folder to save symbols into"
    )
    parser.add_argument(
        "--size", "-s", dest="size", type=int, default=72,
        help="Symbol size in pixels (default: 72)"
    )
    parser.add_argument(
        "--key-color", "-k", dest="key_color", type=str, default=None,
        help="Background color to make transparent, e.g. #FFFFFF"
    )
    parser.add_argument(
        "--tolerance", dest="tolerance", type=float, default=10.0,
        help="RGB distance treated as the key color (default: 10)"
    )
    args = parser.parse_args(argv)

    if not os.path.isdir(args.input_dir):
        print(f"ERROR: Input folder does not exist: {args.input_dir}")
        return 1

    os.makedirs(args.output_dir, exist_ok=True)
    key_rgb = hex_to_rgb(args.key_color) if args.key_color else None

    print(f"=== Prepare Symbols ===")
    print(f"Input:  {os.path.abspath(args.input_dir)}")
    print(f"Output: {os.path.abspath(args.output_dir)}")
    print(f"Size:   {args.size}x{args.size} px")
    if key_rgb:
        print(f"Key:    {args.key_color} (tolerance {args.tolerance})")
    print()

    count = 0
    skipped = 0
    for filename in sorted(os.listdir(args.input_dir)):
        if not filename.lower().endswith(SUPPORTED_EXTENSIONS):
            skipped += 1
            continue
        base = os.path.splitext(filename)[0]
        if not base.startswith("emoji_"):
            base = "emoji_" + base
        output_path = os.path.join(args.output_dir, base + '.png')
        if prepare_symbol(os.path.join(args.input_dir, filename), output_path,
                          args.size, key_rgb, args.tolerance):
            count += 1
        else:
            skipped += 1

    print(f"\nConverted {count} images. Skipped {skipped} files.")

    try:
        report_palette(args.output_dir)
    except MosaicError as e:
        print(f"ERROR: {e}")
        return 1

    print(f"\nDone. Point emoji_mosaic.py's --symbols-dir to: {os.path.abspath(args.output_dir)}")
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
