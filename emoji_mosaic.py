"""
emoji_mosaic.py - Color-emoji mosaic generator

Rebuilds an image out of a small fixed palette of color-coded emoji so
that, seen from a distance, the symbols reproduce the image's colors.
Needs Pillow, OpenCV and NumPy.

How it works:
  1. Load the emoji palette and compute each emoji's mean color once
     (transparent pixels ignored), converted to Lab.
  2. Cover-crop the target onto a fixed canvas (scale to fill, center crop).
  3. Optionally segment the canvas into K color blocks (weighted k-means).
  4. Sample colors:
       grid    - one sample per cell of a MOSAIC_DIM x MOSAIC_DIM grid
       scatter - one sample every STRIDE px; bright samples are dropped
                 more often and drawn smaller
  5. Match each sample to an emoji (Lab nearest neighbour or HSV rules),
     or to its cluster's emoji when segmenting.
  6. Composite the emoji onto a white canvas (grid) or onto the image
     itself (scatter).

Usage:
    # ── Grid mosaic with the built-in emoji ──
    python emoji_mosaic.py --target photo.jpg --output ./output/photo_emoji.png

    # ── Finer grid, HSV matching with a flatter center ──
    python emoji_mosaic.py --target photo.jpg --output out.png --mosaic-dim 40 \
        --match-mode heuristic --gray-saturation-center 0.35

    # ── Scatter over the original, brightness-driven size ──
    python emoji_mosaic.py --target photo.jpg --output out.png --regime scatter --stride 12

    # ── Color blocks (k-means) with custom emoji ──
    python emoji_mosaic.py --target photo.jpg --output out.png --symbols-dir ./my_emoji \
        --use-clusters --clusters 12 --spatial-weight 0.8 --seed 7
"""

import os
import sys
import time
import argparse
import threading
from typing import NamedTuple, Tuple

import numpy as np
import cv2
from PIL import Image, ImageOps

from color_segment import segment_colors
from color_space import brightness, hex_to_rgb
from generate_emoji_symbols import generate_symbols
from mosaic_config import MosaicConfig, SYMBOL_NAMES
from mosaic_errors import InvalidImage, MosaicError, PipelineBusy
from symbol_mapper import SymbolMapper, inside_out
from symbol_palette import as_rgba, build_palette, load_symbols_from_dir


# ═══════════════════════════════════════════════════════════════════════════════
#  NORMALIZER
#
#  Cover semantics: scale uniformly until the target is filled, then crop
#  the overflow equally from both sides. Never letterboxes, never stretches.
# ═══════════════════════════════════════════════════════════════════════════════

def normalize_cover(pixels, target_width, target_height):
    """Scale-to-fill and center-crop *pixels* to exactly target_width x target_height."""
    if target_width < 1 or target_height < 1:
        raise InvalidImage(f"Target size must be positive, got {target_width}x{target_height}")
    src = as_rgba(pixels)
    src_h, src_w = src.shape[:2]

    scale = max(target_width / src_w, target_height / src_h)
    # Resize only the source window that survives the crop.
    win_w = min(src_w, max(1, int(round(target_width / scale))))
    win_h = min(src_h, max(1, int(round(target_height / scale))))
    x0 = (src_w - win_w) // 2
    y0 = (src_h - win_h) // 2
    window = src[y0:y0 + win_h, x0:x0 + win_w]

    if (win_w, win_h) == (target_width, target_height):
        return window.copy()
    interp = cv2.INTER_AREA if scale < 1 else cv2.INTER_LINEAR
    return cv2.resize(np.ascontiguousarray(window), (target_width, target_height), interpolation=interp)


# ═══════════════════════════════════════════════════════════════════════════════
#  CONTEXT
#
#  Everything that is fixed for the process lifetime: the config, the
#  palette (built once from the assets) and the mapper that uses it.
# ═══════════════════════════════════════════════════════════════════════════════

class MosaicContext:
    """Immutable per-process state passed into every pipeline stage."""

    def __init__(self, palette, config=None):
        self.config = (config or MosaicConfig()).validate()
        self.palette = palette
        self.mapper = SymbolMapper(palette, self.config)

    @classmethod
    def from_assets(cls, assets, config=None):
        config = (config or MosaicConfig()).validate()
        palette = build_palette(assets, alpha_cutoff=config.alpha_cutoff)
        return cls(palette, config)


class MosaicCell(NamedTuple):
    x: int  # sample location on the canvas
    y: int
    color: Tuple[float, float, float]
    symbol: int  # palette index
    box: Tuple[int, int, int, int]  # x0, y0, x1, y1 on the output

    @property
    def diameter(self):
        return self.box[2] - self.box[0]


# ─── Symbol resolution ──────────────────────────────────────────────────────

class ColorResolver:
    """Symbol from the sampled color."""

    def __init__(self, mapper):
        self.mapper = mapper

    def __call__(self, color, position):
        return self.mapper.map(color, position)


class ClusterResolver:
    """Symbol from the cluster under the sample; one lookup per cluster, built once."""

    def __init__(self, segmentation, mapper):
        self.segmentation = segmentation
        self.lookup = mapper.map_many(segmentation.mean_rgb)

    def __call__(self, color, position):
        seg = self.segmentation
        label = seg.label_at(position[0] * seg.width, position[1] * seg.height)
        return self.lookup[label]


def make_resolver(context, segmentation=None):
    if segmentation is not None:
        return ClusterResolver(segmentation, context.mapper)
    return ColorResolver(context.mapper)


# ═══════════════════════════════════════════════════════════════════════════════
#  SAMPLING
# ═══════════════════════════════════════════════════════════════════════════════

def downsample_grid(canvas, dim, blur_radius=0):
    """
    Average the canvas down to dim x dim cells, optionally blurring first.

    Returns (rgb, coverage). RGB is averaged premultiplied by alpha, so
    transparent pixels add no color. Coverage is the unblurred mean alpha
    of each cell; 0 means the cell is fully transparent.
    """
    rgba = canvas.astype(np.float32)
    alpha = rgba[..., 3:4] / 255.0
    premul = np.concatenate([rgba[..., :3] * alpha, alpha], axis=2)
    if blur_radius > 0:
        premul = cv2.GaussianBlur(premul, (0, 0), sigmaX=blur_radius)
    small = cv2.resize(premul, (dim, dim), interpolation=cv2.INTER_AREA)
    coverage = cv2.resize(np.ascontiguousarray(rgba[..., 3]), (dim, dim), interpolation=cv2.INTER_AREA)

    weight = small[..., 3:4]
    rgb = np.divide(small[..., :3], weight, out=np.zeros_like(small[..., :3]), where=weight > 0)
    return np.clip(rgb, 0.0, 255.0), coverage.reshape(dim, dim)


def local_mean_color(canvas, x, y, radius):
    """Mean RGB of the non-transparent pixels in a square window; None if all transparent."""
    h, w = canvas.shape[:2]
    x0, x1 = max(0, x - radius), min(w, x + radius + 1)
    y0, y1 = max(0, y - radius), min(h, y + radius + 1)
    patch = canvas[y0:y1, x0:x1]
    visible = patch[..., 3] > 0
    if not visible.any():
        return None
    return tuple(float(c) for c in patch[..., :3][visible].mean(axis=0))


def grid_sample_radius(config, cell_px, position):
    edge = config.sample_radius if config.sample_radius is not None else cell_px / 2.0
    return int(round(inside_out(config.sample_radius_center, edge, position, config.falloff)))


def plan_grid_cells(canvas, config, resolve):
    """One MosaicCell per non-transparent grid cell."""
    canvas_h, canvas_w = canvas.shape[:2]
    out_w, out_h = config.render_size
    dim = config.mosaic_dim
    cell_w = out_w / dim
    cell_h = out_h / dim
    pad_x = cell_w * config.padding_ratio
    pad_y = cell_h * config.padding_ratio

    small = coverage = None
    if config.color_sampling == "downsample":
        small, coverage = downsample_grid(canvas, dim, config.blur_radius)

    cells = []
    for gy in range(dim):
        for gx in range(dim):
            position = ((gx + 0.5) / dim, (gy + 0.5) / dim)
            sx = min(canvas_w - 1, int(position[0] * canvas_w))
            sy = min(canvas_h - 1, int(position[1] * canvas_h))

            if small is not None:
                if coverage[gy, gx] <= 0:
                    continue
                color = tuple(float(v) for v in small[gy, gx])
            else:
                if canvas[sy, sx, 3] <= 0:
                    continue
                radius = grid_sample_radius(config, canvas_w / dim, position)
                color = local_mean_color(canvas, sx, sy, radius)
                if color is None:
                    continue

            x0 = int(round(gx * cell_w + pad_x))
            y0 = int(round(gy * cell_h + pad_y))
            x1 = max(x0 + 1, int(round((gx + 1) * cell_w - pad_x)))
            y1 = max(y0 + 1, int(round((gy + 1) * cell_h - pad_y)))
            cells.append(MosaicCell(sx, sy, color, resolve(color, position), (x0, y0, x1, y1)))
    return cells


def skip_probability(value, threshold, max_skip):
    """Zero up to *threshold*, then rising linearly to *max_skip* at full brightness."""
    if value <= threshold:
        return 0.0
    return max_skip * (value - threshold) / (1.0 - threshold)


def draw_diameter(value, min_diameter, max_diameter):
    """Darker samples get bigger symbols."""
    value = min(1.0, max(0.0, value))
    return max_diameter - (max_diameter - min_diameter) * value


def plan_scatter_cells(canvas, config, resolve, rng=None):
    """Strided samples with brightness-driven skipping and sizing."""
    canvas_h, canvas_w = canvas.shape[:2]
    out_w, out_h = config.render_size
    fx = out_w / canvas_w
    fy = out_h / canvas_h
    rng = rng if rng is not None else np.random.default_rng(config.seed)

    cells = []
    for y in range(config.stride // 2, canvas_h, config.stride):
        for x in range(config.stride // 2, canvas_w, config.stride):
            if canvas[y, x, 3] <= 0:
                continue
            color = local_mean_color(canvas, x, y, config.scatter_radius)
            if color is None:
                continue
            value = float(brightness(color))
            p = skip_probability(value, config.skip_threshold, config.max_skip)
            if p > 0 and rng.random() < p:
                continue

            position = ((x + 0.5) / canvas_w, (y + 0.5) / canvas_h)
            d = draw_diameter(value, config.min_diameter, config.max_diameter)
            w = max(1, int(round(d * fx)))
            h = max(1, int(round(d * fy)))
            x0 = int(round(x * fx - w / 2.0))
            y0 = int(round(y * fy - h / 2.0))
            cells.append(MosaicCell(x, y, color, resolve(color, position), (x0, y0, x0 + w, y0 + h)))
    return cells


# ═══════════════════════════════════════════════════════════════════════════════
#  COMPOSITING
# ═══════════════════════════════════════════════════════════════════════════════

class SymbolCache:
    """Palette symbols resized on demand, kept per (index, width, height)."""

    def __init__(self, palette):
        self.palette = palette
        self._cache = {}

    def get(self, index, width, height):
        key = (index, width, height)
        if key not in self._cache:
            src = self.palette[index].asset.pixels
            shrinking = width < src.shape[1] or height < src.shape[0]
            interp = cv2.INTER_AREA if shrinking else cv2.INTER_LINEAR
            self._cache[key] = cv2.resize(src, (width, height), interpolation=interp)
        return self._cache[key]


def paste_symbol(canvas, symbol, x0, y0):
    """Alpha-composite an RGBA *symbol* onto *canvas* at (x0, y0), clipped to the canvas."""
    H, W = canvas.shape[:2]
    h, w = symbol.shape[:2]
    cx0, cy0 = max(x0, 0), max(y0, 0)
    cx1, cy1 = min(x0 + w, W), min(y0 + h, H)
    if cx1 <= cx0 or cy1 <= cy0:
        return

    src = symbol[cy0 - y0:cy1 - y0, cx0 - x0:cx1 - x0].astype(np.float32)
    dst = canvas[cy0:cy1, cx0:cx1].astype(np.float32)
    alpha = src[..., 3:4] / 255.0
    dst[..., :3] = src[..., :3] * alpha + dst[..., :3] * (1.0 - alpha)
    dst[..., 3:4] = src[..., 3:4] + dst[..., 3:4] * (1.0 - alpha)
    canvas[cy0:cy1, cx0:cx1] = np.clip(np.rint(dst), 0, 255).astype(np.uint8)


def composite_cells(canvas, cells, palette):
    """Draw every planned cell onto *canvas* in place."""
    symbols = SymbolCache(palette)
    for cell in cells:
        x0, y0, x1, y1 = cell.box
        paste_symbol(canvas, symbols.get(cell.symbol, x1 - x0, y1 - y0), x0, y0)
    return canvas


# ═══════════════════════════════════════════════════════════════════════════════
#  MOSAIC ENGINE
# ═══════════════════════════════════════════════════════════════════════════════

def segment_canvas(canvas, config, verbose=False):
    """Run color-block segmentation on the canvas, downsampled to segment_size first."""
    small = canvas
    canvas_h, canvas_w = canvas.shape[:2]
    if config.segment_size and max(canvas_w, canvas_h) > config.segment_size:
        scale = config.segment_size / max(canvas_w, canvas_h)
        size = (max(1, int(round(canvas_w * scale))), max(1, int(round(canvas_h * scale))))
        small = cv2.resize(canvas, size, interpolation=cv2.INTER_AREA)

    return segment_colors(
        small,
        clusters=config.clusters,
        iterations=config.kmeans_iterations,
        spatial_weight=config.spatial_weight,
        sample_stride=config.cluster_sample_stride,
        rng=np.random.default_rng(config.seed),
        verbose=verbose,
    )


def render_mosaic(canvas, context, segmentation=None, verbose=False):
    """
    Render the mosaic for a normalized *canvas*. Returns a new RGBA array
    of config.render_size.
    """
    config = context.config
    out_w, out_h = config.render_size
    resolve = make_resolver(context, segmentation)

    if config.regime == "grid":
        cells = plan_grid_cells(canvas, config, resolve)
        out = np.empty((out_h, out_w, 4), dtype=np.uint8)
        out[:] = config.background
        total = config.mosaic_dim * config.mosaic_dim
        if verbose:
            print(f"  Grid: {config.mosaic_dim} x {config.mosaic_dim} = {total} cells, {len(cells)} drawn")
    else:
        cells = plan_scatter_cells(canvas, config, resolve)
        if (out_w, out_h) == (canvas.shape[1], canvas.shape[0]):
            out = canvas.copy()
        else:
            out = cv2.resize(canvas, (out_w, out_h), interpolation=cv2.INTER_LINEAR)
        if verbose:
            print(f"  Scatter: stride {config.stride} px, {len(cells)} symbols drawn")

    if verbose:
        print(f"  Output: {out_w} x {out_h} px")
    return composite_cells(out, cells, context.palette)


def build_mosaic(pixels, context, verbose=False):
    """Full pipeline: normalize -> (segment) -> map -> render."""
    config = context.config
    canvas = normalize_cover(pixels, config.target_width, config.target_height)
    segmentation = segment_canvas(canvas, config, verbose) if config.use_clusters else None
    return render_mosaic(canvas, context, segmentation, verbose)


class MosaicPipeline:
    """
    Runs build_mosaic for one context, one job at a time. A run started
    while another is in flight raises PipelineBusy.
    """

    def __init__(self, context):
        self.context = context
        self._running = threading.Lock()

    def run(self, pixels, verbose=False):
        if not self._running.acquire(blocking=False):
            raise PipelineBusy("A mosaic is already being processed; try again when it finishes")
        try:
            return build_mosaic(pixels, self.context, verbose=verbose)
        finally:
            self._running.release()


# ─── Image I/O ──────────────────────────────────────────────────────────────

def load_image_rgba(path):
    """Decode an image file into an RGBA array (EXIF orientation applied)."""
    try:
        with Image.open(path) as img:
            img = ImageOps.exif_transpose(img)
            return np.array(img.convert('RGBA'))
    except (OSError, ValueError) as e:
        raise InvalidImage(f"Cannot decode {path}: {e}") from e


def save_mosaic(mosaic, output_path):
    """Save an RGBA mosaic. JPEG output drops alpha."""
    img = Image.fromarray(mosaic, 'RGBA')
    if os.path.splitext(output_path)[1].lower() in ('.jpg', '.jpeg'):
        img = img.convert('RGB')
    img.save(output_path)


def load_assets(symbols_dir, names, symbol_size, alpha_cutoff):
    if symbols_dir:
        return load_symbols_from_dir(symbols_dir, names, alpha_cutoff=alpha_cutoff)
    return generate_symbols(symbol_size, names=names, alpha_cutoff=alpha_cutoff)


# ─── Main ────────────────────────────────────────────────────────────────────

def _size_pair(text):
    parts = text.lower().split('x')
    if len(parts) != 2:
        raise argparse.ArgumentTypeError(f"expected WIDTHxHEIGHT, got {text!r}")
    return int(parts[0]), int(parts[1])


def _hue_list(text):
    values = tuple(float(v) for v in text.split(','))
    if len(values) != 6:
        raise argparse.ArgumentTypeError("expected six comma-separated angles")
    return values


def build_parser():
    d = MosaicConfig()
    parser = argparse.ArgumentParser(description="Color-emoji mosaic generator")

    parser.add_argument("--target", "-t", type=str, required=True,
                        help="Image to recreate as an emoji mosaic")
    parser.add_argument("--output", "-o", type=str, required=True,
                        help="Output path (.png keeps transparency)")

    # Symbols
    parser.add_argument("--symbols-dir", dest="symbols_dir", type=str, default=None,
                        help="Folder of emoji PNGs (emoji_<name>.png); default: built-in emoji")
    parser.add_argument("--symbol-names", dest="symbol_names", type=str, default=",".join(SYMBOL_NAMES),
                        help="Comma-separated symbol names in palette order")
    parser.add_argument("--symbol-size", dest="symbol_size", type=int, default=72,
                        help="Pixel size of the built-in emoji (default: 72)")
    parser.add_argument("--alpha-cutoff", dest="alpha_cutoff", type=int, default=d.alpha_cutoff,
                        help=f"Ignore emoji pixels with alpha <= this (default: {d.alpha_cutoff})")

    # Canvas
    parser.add_argument("--size", type=int, default=d.target_width,
                        help=f"Square working canvas size (default: {d.target_width})")
    parser.add_argument("--output-size", dest="output_size", type=_size_pair, default=None,
                        help="Render at WIDTHxHEIGHT instead of the canvas size")

    # Regime
    parser.add_argument("--regime", choices=["grid", "scatter"], default=d.regime,
                        help=f"Sampling regime (default: {d.regime})")
    parser.add_argument("--mosaic-dim", dest="mosaic_dim", type=int, default=d.mosaic_dim,
                        help=f"Grid cells per side (default: {d.mosaic_dim})")
    parser.add_argument("--color-sampling", dest="color_sampling", choices=["downsample", "local"],
                        default=d.color_sampling, help="Per-cell color source (default: downsample)")
    parser.add_argument("--blur", dest="blur_radius", type=float, default=d.blur_radius,
                        help=f"Pre-blur radius before downsampling, 0 = off (default: {d.blur_radius})")
    parser.add_argument("--padding", dest="padding_ratio", type=float, default=d.padding_ratio,
                        help=f"Cell inset ratio (default: {d.padding_ratio})")
    parser.add_argument("--sample-radius", dest="sample_radius", type=int, default=None,
                        help="Local sampling radius in px (default: half a cell)")
    parser.add_argument("--sample-radius-center", dest="sample_radius_center", type=int, default=None,
                        help="Local sampling radius at the image center (inside-out)")
    parser.add_argument("--falloff", choices=["linear", "smooth", "quadratic", "flat"], default=d.falloff,
                        help="Center-to-edge blend for inside-out options (default: linear)")

    # Matching
    parser.add_argument("--match-mode", dest="match_mode", choices=["perceptual", "heuristic"],
                        default=d.match_mode, help="Lab nearest neighbour or HSV rules")
    parser.add_argument("--gray-saturation", dest="gray_saturation", type=float, default=d.gray_saturation)
    parser.add_argument("--gray-saturation-center", dest="gray_saturation_center", type=float, default=None)
    parser.add_argument("--black-value", dest="black_value", type=float, default=d.black_value)
    parser.add_argument("--white-value", dest="white_value", type=float, default=d.white_value)
    parser.add_argument("--hue-boundaries", dest="hue_boundaries", type=_hue_list, default=d.hue_boundaries,
                        help="Start angles of red,yellow,green,cyan,blue,purple")

    # Segmentation
    parser.add_argument("--use-clusters", dest="use_clusters", action="store_true",
                        help="Pick symbols per k-means color block instead of per sample")
    parser.add_argument("--clusters", type=int, default=d.clusters)
    parser.add_argument("--iterations", dest="kmeans_iterations", type=int, default=d.kmeans_iterations)
    parser.add_argument("--spatial-weight", dest="spatial_weight", type=float, default=d.spatial_weight)
    parser.add_argument("--cluster-stride", dest="cluster_sample_stride", type=int,
                        default=d.cluster_sample_stride)
    parser.add_argument("--segment-size", dest="segment_size", type=int, default=d.segment_size)
    parser.add_argument("--seed", type=int, default=None, help="Random seed (clustering and scatter)")

    # Scatter
    parser.add_argument("--stride", type=int, default=d.stride)
    parser.add_argument("--scatter-radius", dest="scatter_radius", type=int, default=d.scatter_radius)
    parser.add_argument("--min-diameter", dest="min_diameter", type=int, default=d.min_diameter)
    parser.add_argument("--max-diameter", dest="max_diameter", type=int, default=d.max_diameter)
    parser.add_argument("--skip-threshold", dest="skip_threshold", type=float, default=d.skip_threshold)
    parser.add_argument("--max-skip", dest="max_skip", type=float, default=d.max_skip)

    parser.add_argument("--background", type=str, default="#FFFFFF",
                        help="Grid background color (default: #FFFFFF)")
    return parser


def config_from_args(args):
    return MosaicConfig(
        target_width=args.size,
        target_height=args.size,
        output_size=args.output_size,
        regime=args.regime,
        mosaic_dim=args.mosaic_dim,
        color_sampling=args.color_sampling,
        blur_radius=args.blur_radius,
        padding_ratio=args.padding_ratio,
        sample_radius=args.sample_radius,
        sample_radius_center=args.sample_radius_center,
        falloff=args.falloff,
        alpha_cutoff=args.alpha_cutoff,
        match_mode=args.match_mode,
        gray_saturation=args.gray_saturation,
        gray_saturation_center=args.gray_saturation_center,
        black_value=args.black_value,
        white_value=args.white_value,
        hue_boundaries=tuple(args.hue_boundaries),
        use_clusters=args.use_clusters,
        clusters=args.clusters,
        kmeans_iterations=args.kmeans_iterations,
        spatial_weight=args.spatial_weight,
        cluster_sample_stride=args.cluster_sample_stride,
        segment_size=args.segment_size,
        seed=args.seed,
        stride=args.stride,
        scatter_radius=args.scatter_radius,
        min_diameter=args.min_diameter,
        max_diameter=args.max_diameter,
        skip_threshold=args.skip_threshold,
        max_skip=args.max_skip,
        background=hex_to_rgb(args.background) + (255,),
    ).validate()


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = config_from_args(args)
    except ValueError as e:
        parser.error(str(e))

    names = [n.strip() for n in args.symbol_names.split(',') if n.strip()]

    print("=" * 60)
    print("  EMOJI MOSAIC")
    print("=" * 60)
    print(f"  Target:  {args.target}")
    print(f"  Output:  {args.output}")
    print(f"  Canvas:  {config.target_width} x {config.target_height} px")
    print(f"  Regime:  {config.regime}" + (f" ({config.mosaic_dim} x {config.mosaic_dim})"
                                           if config.regime == "grid" else f" (stride {config.stride})"))
    print(f"  Match:   {config.match_mode}" + (f", {config.clusters} clusters" if config.use_clusters else ""))
    print()

    try:
        # ─── Step 1: Palette ─────────────────────────────────────────────
        print("Step 1: Building emoji palette...")
        start = time.time()
        assets = load_assets(args.symbols_dir, names, args.symbol_size, config.alpha_cutoff)
        context = MosaicContext.from_assets(assets, config)
        for entry in context.palette:
            r, g, b = entry.rgb
            L, a, bb = entry.lab
            print(f"  {entry.name:<8} rgb=({r:5.1f}, {g:5.1f}, {b:5.1f})  lab=({L:5.1f}, {a:6.1f}, {bb:6.1f})")
        print(f"  {len(context.palette)} symbols ready ({time.time() - start:.1f}s)")

        # ─── Step 2: Target ──────────────────────────────────────────────
        print("\nStep 2: Loading target image...")
        pixels = load_image_rgba(args.target)
        print(f"  Target size: {pixels.shape[1]} x {pixels.shape[0]} px")

        # ─── Step 3: Mosaic ──────────────────────────────────────────────
        print("\nStep 3: Building mosaic...")
        start = time.time()
        mosaic = MosaicPipeline(context).run(pixels, verbose=True)
        print(f"  Built in {time.time() - start:.1f}s")
    except MosaicError as e:
        print(f"ERROR: {e}")
        sys.exit(1)

    os.makedirs(os.path.dirname(args.output) or '.', exist_ok=True)
    save_mosaic(mosaic, args.output)
    print(f"\nDone! Saved: {args.output}")
    print(f"  Mosaic size: {mosaic.shape[1]} x {mosaic.shape[0]} px")


if __name__ == '__main__':
    main()
