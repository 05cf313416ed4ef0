"""
Adaptive foreground masking.

The foreground index combines how far a pixel is from the background with
the local texture (gradient magnitude); a threshold derived from the index
distribution of the image itself separates sample from background.
"""
import logging
import math

import numpy as np
from scipy import ndimage

from ..config import ThresholdConfig
from ..errors import ConfigError
from ..models.sample_mask import BackgroundStats, SampleMask
from .colour import as_rgb_image, grayscale
from .topology import refine_mask

logger = logging.getLogger(__name__)

_CENTRAL_DIFF = np.array([-1.0, 0.0, 1.0])


def _as_gray(image_or_gray) -> np.ndarray:
    arr = np.asarray(image_or_gray)
    if arr.ndim == 2:
        return arr.astype(np.float64)
    return grayscale(arr)


def ring_width(shape, border_fraction: float) -> int:
    """Width in pixels of the border ring sampled for the background."""
    if border_fraction <= 0:
        raise ConfigError(f"border_fraction must be > 0, got {border_fraction}")
    short = min(shape[0], shape[1])
    width = math.ceil(border_fraction * short)
    return max(1, min(width, (short + 1) // 2))


def estimate_background(image, border_fraction: float) -> BackgroundStats:
    """
    Grayscale statistics of a ring along the image border.

    Parameters
    ----------
    image : (H, W, 3) uint8 or (H, W) float
        RGB image, or an already computed grayscale array.
    border_fraction : float
        Ring width as a fraction of the shorter side, rounded up.

    Returns
    -------
    BackgroundStats
        Mean and population standard deviation of the ring pixels.
    """
    gray = _as_gray(image)
    H, W = gray.shape
    width = ring_width((H, W), border_fraction)

    ring = np.ones((H, W), dtype=bool)
    ring[width:H - width, width:W - width] = False
    vals = gray[ring]
    return BackgroundStats(mean=float(vals.mean()),
                           std=float(vals.std()),
                           pixel_count=int(vals.size),
                           ring_width=width)


def gradient_magnitude(image_or_gray) -> np.ndarray:
    """
    Central-difference gradient magnitude of the grayscale image.

    ``gx = g[y, x+1] - g[y, x-1]`` and ``gy = g[y+1, x] - g[y-1, x]``, with
    out-of-range neighbours replaced by the nearest edge pixel.
    """
    gray = _as_gray(image_or_gray)
    gx = ndimage.correlate1d(gray, _CENTRAL_DIFF, axis=1, mode="nearest")
    gy = ndimage.correlate1d(gray, _CENTRAL_DIFF, axis=0, mode="nearest")
    return np.hypot(gx, gy)


def foreground_index(gray, gradient, config: ThresholdConfig,
                     background_mean: float | None = None) -> np.ndarray:
    """
    Per-pixel foreground index.

    ``contrast * texture_weight + gradient * gradient_weight`` where contrast
    is ``255 - gray``, or ``|gray - background_mean|`` when
    ``config.background_relative`` is set.
    """
    gray = np.asarray(gray, dtype=np.float64)
    if config.background_relative:
        if background_mean is None:
            raise ValueError("background_relative masking needs a background mean")
        contrast = np.abs(gray - background_mean)
    else:
        contrast = 255.0 - gray
    return contrast * config.texture_weight + np.asarray(gradient) * config.gradient_weight


def adaptive_threshold(index, config: ThresholdConfig) -> float:
    """``clamp(mean + std_multiplier * std, min_threshold, max_threshold)``."""
    idx = np.asarray(index, dtype=np.float64)
    if idx.size == 0:
        return float(config.min_threshold)
    raw = idx.mean() + config.std_multiplier * idx.std()
    # +/-inf clamps to the bounds; only NaN has no meaningful position
    if np.isnan(raw):
        raw = config.min_threshold
    return float(min(max(raw, config.min_threshold), config.max_threshold))


def compute_raw_mask(image, config: ThresholdConfig | None = None, gradient=None) -> SampleMask:
    """
    Threshold the foreground index without any topology clean-up.

    ``gradient`` is an optional precomputed ``gradient_magnitude`` of the
    image, so callers that also need it for diagnostics compute it once.
    """
    config = config or ThresholdConfig()
    rgb = as_rgb_image(image)
    gray = grayscale(rgb)

    background = estimate_background(gray, config.border_fraction)
    if gradient is None:
        grad = gradient_magnitude(gray)
    else:
        grad = np.asarray(gradient, dtype=np.float64)
        if grad.shape != gray.shape:
            raise ValueError(f"Gradient shape {grad.shape} does not match image {gray.shape}")
    idx = foreground_index(gray, grad, config, background.mean)
    thr = adaptive_threshold(idx, config)
    data = idx > thr

    logger.debug(f"Background mean={background.mean:.1f} std={background.std:.1f} "
                 f"(ring {background.ring_width}px); threshold={thr:.2f}; "
                 f"raw foreground={int(data.sum())}/{data.size}")
    return SampleMask(data=data, threshold=thr, background=background)


def compute_mask(image, config: ThresholdConfig | None = None) -> SampleMask:
    """
    Compute the refined sample mask of an RGB image.

    Runs the adaptive threshold and then border removal, small-region
    filtering and hole closing.

    Raises
    ------
    InvalidImageError
        If the image is None, not (H, W, 3) or has zero area.
    """
    config = config or ThresholdConfig()
    raw = compute_raw_mask(image, config)
    return refine_mask(raw, config)
