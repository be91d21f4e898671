"""
color_segment.py - Color-block segmentation with weighted k-means

Every pixel becomes a 5-D feature (r, g, b, x, y): channels normalized to
[0, 1], coordinates normalized to [0, 1] and multiplied by spatial_weight.
Weight 0 clusters on color alone; larger weights pull clusters into
contiguous blobs.

How it works:
  1. Seed K centers from K random pixels (with replacement).
  2. For a fixed number of iterations, label every sample_stride-th pixel
     with its nearest center and move each center to its members' mean.
     A center that wins no pixels is reseeded from a random pixel.
  3. Label every pixel once more, unstrided.
  4. Report each cluster's mean RGB from the original 0-255 values.

Randomness comes only from the injected numpy Generator, so a fixed seed
gives identical labels on every run.
"""

import time
from typing import NamedTuple

import numpy as np

from mosaic_errors import InvalidImage


class Segmentation(NamedTuple):
    labels: np.ndarray  # (width * height,) cluster index per pixel, row-major
    mean_rgb: np.ndarray  # (K, 3) float, 0-255
    centers: np.ndarray  # (K, 5) final normalized centers
    width: int
    height: int

    @property
    def clusters(self):
        return len(self.mean_rgb)

    @property
    def label_map(self):
        return self.labels.reshape(self.height, self.width)

    def label_at(self, x, y):
        """Label of pixel (x, y), clamped into the image."""
        x = min(max(int(x), 0), self.width - 1)
        y = min(max(int(y), 0), self.height - 1)
        return int(self.labels[y * self.width + x])


def build_features(rgb, spatial_weight):
    """
    (H, W, 3) pixels -> (H*W, 5) float features. An axis of length 1 maps
    every coordinate to 0.
    """
    h, w = rgb.shape[:2]
    color = rgb.reshape(-1, 3).astype(np.float64) / 255.0
    xs = np.arange(w, dtype=np.float64) / (w - 1) if w > 1 else np.zeros(w)
    ys = np.arange(h, dtype=np.float64) / (h - 1) if h > 1 else np.zeros(h)
    gx, gy = np.meshgrid(xs, ys)
    spatial = np.stack([gx.ravel(), gy.ravel()], axis=1) * spatial_weight
    return np.concatenate([color, spatial], axis=1)


def assign_labels(features, centers):
    """Index of the nearest center per row; ties go to the lowest index."""
    d2 = np.empty((features.shape[0], centers.shape[0]), dtype=np.float64)
    for k, center in enumerate(centers):
        diff = features - center
        d2[:, k] = np.einsum('ij,ij->i', diff, diff)
    return np.argmin(d2, axis=1)


def cluster_sums(features, labels, k):
    """Per-cluster feature sums and member counts."""
    counts = np.bincount(labels, minlength=k)
    sums = np.stack(
        [np.bincount(labels, weights=features[:, d], minlength=k) for d in range(features.shape[1])],
        axis=1,
    )
    return sums, counts


def segment_colors(pixels, clusters=9, iterations=10, spatial_weight=0.5, sample_stride=1,
                   rng=None, verbose=False):
    """
    Partition *pixels* ((H, W, 3|4) array) into *clusters* regions.

    Only the RGB channels take part. Returns a Segmentation.
    """
    if clusters < 1:
        raise ValueError(f"clusters must be >= 1, got {clusters}")
    if iterations < 0:
        raise ValueError(f"iterations must be >= 0, got {iterations}")
    if sample_stride < 1:
        raise ValueError(f"sample_stride must be >= 1, got {sample_stride}")

    arr = np.asarray(pixels)
    if arr.ndim != 3 or arr.shape[2] < 3:
        raise InvalidImage(f"Expected an (H, W, 3|4) pixel buffer, got shape {arr.shape}")
    height, width = arr.shape[:2]
    n = height * width
    if n == 0:
        raise InvalidImage("Cannot segment an image with zero pixels")

    rng = rng if rng is not None else np.random.default_rng()
    start = time.time()

    rgb = arr[..., :3]
    features = build_features(rgb, spatial_weight)
    centers = features[rng.integers(0, n, size=clusters)].copy()
    sampled = features[::sample_stride]

    for _ in range(iterations):
        labels = assign_labels(sampled, centers)
        sums, counts = cluster_sums(sampled, labels, clusters)
        for k in range(clusters):
            if counts[k] > 0:
                centers[k] = sums[k] / counts[k]
            else:
                centers[k] = features[rng.integers(0, n)]

    labels = assign_labels(features, centers)

    color_sums, counts = cluster_sums(rgb.reshape(-1, 3).astype(np.float64), labels, clusters)
    mean_rgb = np.empty((clusters, 3), dtype=np.float64)
    for k in range(clusters):
        if counts[k] > 0:
            mean_rgb[k] = color_sums[k] / counts[k]
        else:
            mean_rgb[k] = np.clip(centers[k, :3], 0.0, 1.0) * 255.0

    if verbose:
        used = int((counts > 0).sum())
        print(f"  Segmented {width}x{height} px into {used}/{clusters} clusters "
              f"({iterations} iterations, {time.time() - start:.1f}s)")

    return Segmentation(labels, mean_rgb, centers, width, height)
