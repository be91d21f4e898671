"""Mosaic configuration: every tunable of the pipeline in one place."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional, Tuple


SYMBOL_NAMES = ("red", "yellow", "green", "cyan", "blue", "purple", "gray", "black", "white")
HUE_SECTOR_NAMES = ("red", "yellow", "green", "cyan", "blue", "purple")

REGIMES = ("grid", "scatter")
COLOR_SAMPLING = ("downsample", "local")
MATCH_MODES = ("perceptual", "heuristic")
FALLOFF_NAMES = ("linear", "smooth", "quadratic", "flat")


@dataclass(frozen=True)
class MosaicConfig:
    """Controls normalization, clustering, symbol matching and rendering."""

    # Working canvas (cover crop target)
    target_width: int = 900
    target_height: int = 900
    # (width, height) of the rendered output; None = same as the canvas
    output_size: Optional[Tuple[int, int]] = None

    # "grid" = one symbol per cell, "scatter" = strided, brightness-modulated
    regime: str = "grid"

    # Grid regime
    mosaic_dim: int = 26
    color_sampling: str = "downsample"
    blur_radius: float = 1.0  # 0 = off
    padding_ratio: float = 0.06  # 0 = symbols touch
    sample_radius: Optional[int] = None  # local sampling; None = half a cell
    sample_radius_center: Optional[int] = None  # inside-out radius at the center

    # Shape of every inside-out blend (distance from center -> weight)
    falloff: str = "linear"

    # Symbol assets
    alpha_cutoff: int = 10

    # Symbol matching
    match_mode: str = "perceptual"
    gray_saturation: float = 0.18
    gray_saturation_center: Optional[float] = None
    black_value: float = 0.22
    white_value: float = 0.82
    # Start angle of red, yellow, green, cyan, blue, purple (degrees)
    hue_boundaries: Tuple[float, ...] = (315.0, 15.0, 75.0, 135.0, 195.0, 255.0)

    # Color-block segmentation
    use_clusters: bool = False
    clusters: int = 9
    kmeans_iterations: int = 10
    spatial_weight: float = 0.5
    cluster_sample_stride: int = 4
    segment_size: Optional[int] = 160  # downsample before clustering; None = full canvas
    seed: Optional[int] = None

    # Scatter regime
    stride: int = 14
    scatter_radius: int = 3
    min_diameter: int = 10
    max_diameter: int = 34
    skip_threshold: float = 0.7
    max_skip: float = 0.85

    background: Tuple[int, int, int, int] = (255, 255, 255, 255)

    @property
    def canvas_size(self):
        return self.target_width, self.target_height

    @property
    def render_size(self):
        return tuple(self.output_size) if self.output_size else self.canvas_size

    def with_options(self, **changes) -> "MosaicConfig":
        return replace(self, **changes).validate()

    def validate(self) -> "MosaicConfig":
        """Raise ValueError naming the first bad option; return self when valid."""
        def bad(name, why):
            raise ValueError(f"{name}: {why} (got {getattr(self, name)!r})")

        if self.target_width < 1:
            bad("target_width", "must be >= 1")
        if self.target_height < 1:
            bad("target_height", "must be >= 1")
        if self.output_size is not None:
            if len(self.output_size) != 2 or min(self.output_size) < 1:
                bad("output_size", "must be a (width, height) pair of positive ints")
        if self.regime not in REGIMES:
            bad("regime", f"must be one of {REGIMES}")
        if self.mosaic_dim < 1:
            bad("mosaic_dim", "must be >= 1")
        if self.color_sampling not in COLOR_SAMPLING:
            bad("color_sampling", f"must be one of {COLOR_SAMPLING}")
        if self.blur_radius < 0:
            bad("blur_radius", "must be >= 0")
        if not 0.0 <= self.padding_ratio < 0.5:
            bad("padding_ratio", "must be in [0, 0.5)")
        for name in ("sample_radius", "sample_radius_center"):
            value = getattr(self, name)
            if value is not None and value < 0:
                bad(name, "must be >= 0")
        if self.falloff not in FALLOFF_NAMES:
            bad("falloff", f"must be one of {FALLOFF_NAMES}")
        if not 0 <= self.alpha_cutoff <= 255:
            bad("alpha_cutoff", "must be in [0, 255]")
        if self.match_mode not in MATCH_MODES:
            bad("match_mode", f"must be one of {MATCH_MODES}")
        for name in ("gray_saturation", "black_value", "white_value"):
            if not 0.0 <= getattr(self, name) <= 1.0:
                bad(name, "must be in [0, 1]")
        if self.gray_saturation_center is not None and not 0.0 <= self.gray_saturation_center <= 1.0:
            bad("gray_saturation_center", "must be in [0, 1]")
        if self.black_value > self.white_value:
            bad("black_value", "must not exceed white_value")
        self._check_hue_boundaries()
        if self.clusters < 1:
            bad("clusters", "must be >= 1")
        if self.kmeans_iterations < 0:
            bad("kmeans_iterations", "must be >= 0")
        if self.spatial_weight < 0:
            bad("spatial_weight", "must be >= 0")
        if self.cluster_sample_stride < 1:
            bad("cluster_sample_stride", "must be >= 1")
        if self.segment_size is not None and self.segment_size < 1:
            bad("segment_size", "must be >= 1")
        if self.stride < 1:
            bad("stride", "must be >= 1")
        if self.scatter_radius < 0:
            bad("scatter_radius", "must be >= 0")
        if not 1 <= self.min_diameter <= self.max_diameter:
            bad("min_diameter", "must be >= 1 and <= max_diameter")
        if not 0.0 <= self.skip_threshold < 1.0:
            bad("skip_threshold", "must be in [0, 1)")
        if not 0.0 <= self.max_skip <= 1.0:
            bad("max_skip", "must be in [0, 1]")
        if len(self.background) != 4:
            bad("background", "must be an RGBA tuple")
        return self

    def _check_hue_boundaries(self):
        bounds = self.hue_boundaries
        if len(bounds) != len(HUE_SECTOR_NAMES):
            raise ValueError(f"hue_boundaries: need {len(HUE_SECTOR_NAMES)} start angles (got {bounds!r})")
        widths = [(bounds[(i + 1) % len(bounds)] - bounds[i]) % 360.0 for i in range(len(bounds))]
        # Sectors must be non-empty and go once around the circle.
        if min(widths) <= 0 or abs(sum(widths) - 360.0) > 1e-6:
            raise ValueError(f"hue_boundaries: must increase around the hue circle (got {bounds!r})")
