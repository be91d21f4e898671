"""Tests for normalization, rendering and the end-to-end pipeline."""

import threading

import numpy as np
import pytest
from PIL import Image

import emoji_mosaic
from conftest import solid_image
from emoji_mosaic import (
    ClusterResolver,
    MosaicContext,
    MosaicPipeline,
    build_mosaic,
    downsample_grid,
    draw_diameter,
    load_image_rgba,
    normalize_cover,
    paste_symbol,
    plan_grid_cells,
    plan_scatter_cells,
    render_mosaic,
    segment_canvas,
    skip_probability,
)
from mosaic_config import MosaicConfig
from mosaic_errors import InvalidImage, PipelineBusy


def _context(assets, **options):
    return MosaicContext.from_assets(assets, MosaicConfig(**options))


# ─── Normalizer ─────────────────────────────────────────────────────────────

@pytest.mark.parametrize("src, target", [
    ((640, 480), (900, 900)),
    ((300, 1200), (900, 900)),
    ((1, 1), (50, 30)),
    ((1000, 10), (64, 64)),
    ((900, 900), (900, 900)),
    ((37, 91), (20, 45)),
])
def test_normalize_output_size(src, target):
    img = solid_image(src[0], src[1], (10, 20, 30))
    out = normalize_cover(img, *target)
    assert out.shape == (target[1], target[0], 4)
    assert out.dtype == np.uint8


def test_normalize_crops_symmetrically_without_distortion():
    # 200x100: left quarter red, middle half green, right quarter blue.
    img = solid_image(200, 100, (0, 255, 0))
    img[:, :50, :3] = (255, 0, 0)
    img[:, 150:, :3] = (0, 0, 255)
    out = normalize_cover(img, 100, 100)
    # Scale 1.0 on both axes: only the middle 100 columns survive.
    assert (out[..., :3] == (0, 255, 0)).all()


def test_normalize_scales_uniformly():
    # A 20x10 image with a 10x10 red square on the left.
    img = solid_image(20, 10, (255, 255, 255))
    img[:, :10, :3] = (255, 0, 0)
    out = normalize_cover(img, 40, 40)
    # Scale 4 -> 80x40, crop 20 px each side: red fills the left 20 columns.
    assert (out[5:35, 2:14, :3] == (255, 0, 0)).all()
    assert (out[5:35, 22:38, :3] == (255, 255, 255)).all()


def test_normalize_rejects_degenerate_input():
    with pytest.raises(InvalidImage):
        normalize_cover(np.zeros((0, 10, 4), dtype=np.uint8), 10, 10)
    with pytest.raises(InvalidImage):
        normalize_cover(solid_image(4, 4, (0, 0, 0)), 0, 10)


@pytest.mark.parametrize("src", [(40000, 1), (1, 40000), (5000, 3)])
def test_normalize_extreme_aspect_ratio(src):
    out = normalize_cover(solid_image(src[0], src[1], (10, 200, 30)), 90, 90)
    assert out.shape == (90, 90, 4)
    assert (out == (10, 200, 30, 255)).all()


def test_normalize_strip_keeps_its_center():
    # Scale 45: only the middle 2x2 source window reaches the canvas.
    img = solid_image(3000, 2, (255, 0, 0))
    img[:, 1499:1501, :3] = (0, 0, 255)
    out = normalize_cover(img, 90, 90)
    assert (out[..., :3] == (0, 0, 255)).all()


# ─── Grid regime ────────────────────────────────────────────────────────────

def test_solid_red_grid_uses_red_symbol_everywhere(solid_assets):
    ctx = _context(solid_assets, target_width=120, target_height=120, mosaic_dim=6)
    canvas = normalize_cover(solid_image(300, 200, (255, 0, 0)), 120, 120)
    cells = plan_grid_cells(canvas, ctx.config, emoji_mosaic.make_resolver(ctx))
    assert len(cells) == 36
    assert {ctx.palette[c.symbol].name for c in cells} == {"red"}


@pytest.mark.parametrize("mode", ["perceptual", "heuristic"])
@pytest.mark.parametrize("regime", ["grid", "scatter"])
def test_end_to_end_solid_red(solid_assets, mode, regime):
    ctx = _context(solid_assets, target_width=90, target_height=90, mosaic_dim=9,
                   match_mode=mode, regime=regime, stride=10, seed=1)
    out = build_mosaic(solid_image(150, 90, (255, 0, 0)), ctx)
    assert out.shape == (90, 90, 4)
    canvas = normalize_cover(solid_image(150, 90, (255, 0, 0)), 90, 90)
    planner = plan_grid_cells if regime == "grid" else plan_scatter_cells
    cells = planner(canvas, ctx.config, emoji_mosaic.make_resolver(ctx))
    assert cells
    assert {ctx.palette[c.symbol].name for c in cells} == {"red"}


def test_grid_cells_respect_padding(solid_assets):
    ctx = _context(solid_assets, target_width=100, target_height=100, mosaic_dim=2, padding_ratio=0.1)
    canvas = solid_image(100, 100, (0, 0, 255))
    cells = plan_grid_cells(canvas, ctx.config, emoji_mosaic.make_resolver(ctx))
    assert cells[0].box == (5, 5, 45, 45)
    assert cells[3].box == (55, 55, 95, 95)


def test_transparent_cells_are_skipped(solid_assets):
    ctx = _context(solid_assets, target_width=40, target_height=40, mosaic_dim=4,
                   blur_radius=0, padding_ratio=0.0)
    img = solid_image(40, 40, (0, 0, 255))
    img[:, :20, 3] = 0
    out = build_mosaic(img, ctx)
    # The left half keeps the untouched white background.
    assert (out[:, :20] == (255, 255, 255, 255)).all()
    assert not (out[:, 20:] == (255, 255, 255, 255)).all(axis=2).all()


def test_local_sampling_skips_transparent_anchor(solid_assets):
    ctx = _context(solid_assets, target_width=40, target_height=40, mosaic_dim=4,
                   color_sampling="local", sample_radius=3, sample_radius_center=8)
    img = solid_image(40, 40, (0, 200, 0))
    img[:20, :20, 3] = 0
    cells = plan_grid_cells(img, ctx.config, emoji_mosaic.make_resolver(ctx))
    assert len(cells) == 12
    assert {ctx.palette[c.symbol].name for c in cells} == {"green"}


def _half_transparent_cell():
    # Left half opaque yellow, right half fully transparent blue.
    img = solid_image(20, 20, (255, 255, 0))
    img[:, 10:] = (0, 0, 255, 0)
    return img


@pytest.mark.parametrize("blur", [0.0, 1.0, 3.0])
def test_downsample_ignores_transparent_color(blur):
    rgb, coverage = downsample_grid(_half_transparent_cell(), 1, blur)
    assert rgb[0, 0] == pytest.approx([255.0, 255.0, 0.0], abs=0.5)
    assert coverage[0, 0] == pytest.approx(127.5)


@pytest.mark.parametrize("mode", ["perceptual", "heuristic"])
def test_half_transparent_cell_uses_visible_color(solid_assets, mode):
    ctx = _context(solid_assets, target_width=20, target_height=20, mosaic_dim=1, match_mode=mode)
    cells = plan_grid_cells(_half_transparent_cell(), ctx.config, emoji_mosaic.make_resolver(ctx))
    assert len(cells) == 1
    assert cells[0].color == pytest.approx((255.0, 255.0, 0.0), abs=0.5)
    assert ctx.palette[cells[0].symbol].name == "yellow"


def test_grid_draws_symbol_into_cell(solid_assets):
    ctx = _context(solid_assets, target_width=32, target_height=32, mosaic_dim=2,
                   padding_ratio=0.0, blur_radius=0)
    out = build_mosaic(solid_image(32, 32, (0, 0, 255)), ctx)
    # Solid symbols have a transparent 3/16 border; the middle of each cell is blue.
    assert tuple(out[8, 8]) == (0, 0, 255, 255)
    assert tuple(out[0, 0]) == (255, 255, 255, 255)


def test_output_size_override(solid_assets):
    ctx = _context(solid_assets, target_width=60, target_height=60, output_size=(30, 45), mosaic_dim=3)
    out = build_mosaic(solid_image(80, 80, (0, 0, 0)), ctx)
    assert out.shape == (45, 30, 4)


# ─── Scatter regime ─────────────────────────────────────────────────────────

def test_skip_probability_and_diameter():
    assert skip_probability(0.5, 0.7, 0.8) == 0.0
    assert skip_probability(1.0, 0.7, 0.8) == pytest.approx(0.8)
    assert skip_probability(0.85, 0.7, 0.8) == pytest.approx(0.4)
    assert draw_diameter(0.0, 10, 30) == 30
    assert draw_diameter(1.0, 10, 30) == 10
    assert draw_diameter(0.5, 10, 30) == 20


def test_scatter_dark_image_draws_every_sample_large(solid_assets):
    ctx = _context(solid_assets, target_width=50, target_height=50, regime="scatter", stride=10,
                   min_diameter=4, max_diameter=12)
    canvas = solid_image(50, 50, (0, 0, 0))
    cells = plan_scatter_cells(canvas, ctx.config, emoji_mosaic.make_resolver(ctx))
    assert len(cells) == 25
    assert all(c.diameter == 12 for c in cells)
    assert (cells[0].x, cells[0].y) == (5, 5)


def test_scatter_bright_image_is_sparser(solid_assets):
    ctx = _context(solid_assets, target_width=100, target_height=100, regime="scatter", stride=5,
                   skip_threshold=0.5, max_skip=0.9, seed=11)
    canvas = solid_image(100, 100, (255, 255, 255))
    cells = plan_scatter_cells(canvas, ctx.config, emoji_mosaic.make_resolver(ctx))
    assert 0 < len(cells) < 400
    assert all(c.diameter == ctx.config.min_diameter for c in cells)


def test_scatter_is_reproducible_with_seed(solid_assets):
    ctx = _context(solid_assets, target_width=60, target_height=60, regime="scatter", stride=4,
                   skip_threshold=0.2, seed=5)
    img = solid_image(60, 60, (200, 200, 120))
    assert np.array_equal(build_mosaic(img, ctx), build_mosaic(img, ctx))


def test_scatter_keeps_original_as_background(solid_assets):
    ctx = _context(solid_assets, target_width=40, target_height=40, regime="scatter", stride=40,
                   min_diameter=4, max_diameter=4)
    img = solid_image(40, 40, (0, 0, 0))
    img[..., 3] = 255
    out = build_mosaic(img, ctx)
    assert tuple(out[0, 0]) == (0, 0, 0, 255)


def test_scatter_skips_transparent_samples(solid_assets):
    ctx = _context(solid_assets, target_width=30, target_height=30, regime="scatter", stride=10)
    img = solid_image(30, 30, (0, 0, 255), alpha=0)
    cells = plan_scatter_cells(img, ctx.config, emoji_mosaic.make_resolver(ctx))
    assert cells == []
    assert np.array_equal(build_mosaic(img, ctx), img)


def test_scatter_positions_are_pixel_centers(solid_assets):
    ctx = _context(solid_assets, target_width=40, target_height=20, regime="scatter", stride=10)
    seen = []

    def resolve(color, position):
        seen.append(position)
        return 0

    plan_scatter_cells(solid_image(40, 20, (0, 0, 0)), ctx.config, resolve)
    assert seen[0] == pytest.approx((5.5 / 40, 5.5 / 20))
    assert seen[-1] == pytest.approx((35.5 / 40, 15.5 / 20))


# ─── Compositing ────────────────────────────────────────────────────────────

def test_paste_symbol_blends_and_clips():
    canvas = np.zeros((4, 4, 4), dtype=np.uint8)
    canvas[:] = (0, 0, 0, 255)
    symbol = np.zeros((2, 2, 4), dtype=np.uint8)
    symbol[:] = (200, 100, 50, 255)
    symbol[1, 1, 3] = 0
    paste_symbol(canvas, symbol, 3, 3)
    assert tuple(canvas[3, 3]) == (200, 100, 50, 255)
    paste_symbol(canvas, symbol, -1, -1)
    assert tuple(canvas[0, 0]) == (0, 0, 0, 255)  # transparent corner of the symbol
    paste_symbol(canvas, symbol, 10, 10)


# ─── Clusters ───────────────────────────────────────────────────────────────

def test_cluster_resolver_precomputes_lookup(solid_assets, two_tone_image):
    ctx = _context(solid_assets, target_width=40, target_height=20, clusters=2, spatial_weight=0.0,
                   seed=3, use_clusters=True, segment_size=None)
    seg = segment_canvas(two_tone_image, ctx.config)
    resolver = ClusterResolver(seg, ctx.mapper)
    assert len(resolver.lookup) == 2
    names = {ctx.palette[resolver(None, (0.1, 0.5))].name, ctx.palette[resolver(None, (0.9, 0.5))].name}
    assert names <= {"red", "blue", "purple"}
    assert resolver.lookup == ctx.mapper.map_many(seg.mean_rgb)


def test_clustered_mosaic_on_solid_red(solid_assets):
    ctx = _context(solid_assets, target_width=60, target_height=60, mosaic_dim=5,
                   use_clusters=True, clusters=3, seed=0)
    img = solid_image(60, 60, (255, 0, 0))
    canvas = normalize_cover(img, 60, 60)
    seg = segment_canvas(canvas, ctx.config)
    cells = plan_grid_cells(canvas, ctx.config, emoji_mosaic.make_resolver(ctx, seg))
    assert {ctx.palette[c.symbol].name for c in cells} == {"red"}
    assert render_mosaic(canvas, ctx, seg).shape == (60, 60, 4)


def test_segment_canvas_downsamples():
    cfg = MosaicConfig(target_width=200, target_height=100, segment_size=50, clusters=2, seed=0)
    seg = segment_canvas(solid_image(200, 100, (1, 2, 3)), cfg)
    assert (seg.width, seg.height) == (50, 25)


# ─── Pipeline ───────────────────────────────────────────────────────────────

def test_pipeline_rejects_invalid_image_before_work(solid_assets):
    pipeline = MosaicPipeline(_context(solid_assets, target_width=20, target_height=20))
    with pytest.raises(InvalidImage):
        pipeline.run(np.zeros((0, 0, 4), dtype=np.uint8))


def test_pipeline_rejects_overlapping_runs(solid_assets, monkeypatch):
    pipeline = MosaicPipeline(_context(solid_assets, target_width=20, target_height=20))
    entered = threading.Event()
    release = threading.Event()
    real_build = emoji_mosaic.build_mosaic

    def slow_build(pixels, context, verbose=False):
        entered.set()
        release.wait(5)
        return real_build(pixels, context, verbose)

    monkeypatch.setattr(emoji_mosaic, "build_mosaic", slow_build)
    results = []
    worker = threading.Thread(target=lambda: results.append(pipeline.run(solid_image(20, 20, (9, 9, 9)))))
    worker.start()
    assert entered.wait(5)
    with pytest.raises(PipelineBusy):
        pipeline.run(solid_image(20, 20, (9, 9, 9)))
    release.set()
    worker.join(5)
    assert results and results[0].shape == (20, 20, 4)
    # Free again once the first run finishes.
    assert pipeline.run(solid_image(20, 20, (9, 9, 9))).shape == (20, 20, 4)


def test_load_image_rgba(tmp_path):
    path = tmp_path / "in.png"
    Image.new('RGB', (7, 5), (1, 2, 3)).save(path)
    arr = load_image_rgba(str(path))
    assert arr.shape == (5, 7, 4)
    assert tuple(arr[0, 0]) == (1, 2, 3, 255)
    bad = tmp_path / "bad.png"
    bad.write_bytes(b"garbage")
    with pytest.raises(InvalidImage):
        load_image_rgba(str(bad))
