"""
Per-pixel material classification.

Every foreground pixel is converted to HSV and scored against each catalog
material's hue/saturation/value ranges. Two colour heuristics run first:
pixels that look like gold or like a platinum-group metal are restricted to
the matching catalog group and given a minimum score.

All work is vectorised over the foreground pixels; ``workers > 1`` splits
the pixels into row bands scored on a thread pool.
"""
from concurrent.futures import ThreadPoolExecutor
import logging

import numpy as np

from ..config import ClassifierConfig
from ..models.results import BACKGROUND, UNCLASSIFIED, PixelLabels
from ..models.sample_mask import as_mask_array
from .colour import as_rgb_image, rgb_to_hsv

logger = logging.getLogger(__name__)


def _channels(rgb):
    arr = np.asarray(rgb, dtype=np.float64)
    return arr[..., 0], arr[..., 1], arr[..., 2]


def looks_like_gold(rgb, hsv) -> np.ndarray:
    """
    Gold colour heuristic.

    Warm, moderately saturated yellow: hue 35-75 degrees, saturation above
    0.15, value 0.25-0.98, red and green clearly above blue and close to
    each other, and bright enough in red or green.
    """
    r, g, b = _channels(rgb)
    hsv = np.asarray(hsv, dtype=np.float64)
    h, s, v = hsv[..., 0], hsv[..., 1], hsv[..., 2]
    return ((h >= 35.0) & (h <= 75.0)
            & (s > 0.15)
            & (v >= 0.25) & (v <= 0.98)
            & ((r + g) / 2.0 > b + 10.0)
            & (np.abs(r - g) < 60.0)
            & ((r >= 100.0) | (g >= 80.0))
            & (r >= 1.2 * b) & (g >= 1.1 * b))


def looks_like_pgm(rgb, hsv) -> np.ndarray:
    """
    Platinum-group metal heuristic: a neutral grey of medium brightness.

    Near-white (max > 250 and min > 240) and near-black (max < 60) pixels
    are excluded.
    """
    r, g, b = _channels(rgb)
    hsv = np.asarray(hsv, dtype=np.float64)
    s, v = hsv[..., 1], hsv[..., 2]
    mx = np.maximum(np.maximum(r, g), b)
    mn = np.minimum(np.minimum(r, g), b)
    near_white = (mx > 250.0) & (mn > 240.0)
    near_black = mx < 60.0
    return ((s < 0.20)
            & (v >= 0.20) & (v <= 0.95)
            & (mx - mn < 40.0)
            & ~near_white & ~near_black)


def _circular_distance(a, b):
    d = np.abs(a - b) % 360.0
    return np.minimum(d, 360.0 - d)


def _hue_score(h, lo, hi, falloff):
    if lo <= hi:
        inside = (h >= lo) & (h <= hi)
    else:
        inside = (h >= lo) | (h <= hi)
    dist = np.minimum(_circular_distance(h, lo), _circular_distance(h, hi))
    return np.where(inside, 1.0, np.clip(1.0 - dist / falloff, 0.0, 1.0))


def _linear_score(x, lo, hi, falloff):
    dist = np.where(x < lo, lo - x, np.where(x > hi, x - hi, 0.0))
    return np.clip(1.0 - dist / falloff, 0.0, 1.0)


def score_materials(hsv, materials, config: ClassifierConfig | None = None) -> np.ndarray:
    """
    Range-match score of each pixel against each material.

    Parameters
    ----------
    hsv : (N, 3) array
        Hue in degrees, saturation and value in 0-1.
    materials : sequence of MaterialDefinition
    config : ClassifierConfig, optional
        Supplies the per-axis falloff widths.

    Returns
    -------
    scores : (N, K) float64
        Mean of the three per-axis sub-scores. A sub-score is 1 inside the
        range and decays linearly to 0 over the falloff width outside it
        (hue distance measured along the shorter arc).
    """
    config = config or ClassifierConfig()
    hsv = np.asarray(hsv, dtype=np.float64).reshape(-1, 3)
    h, s, v = hsv[:, 0], hsv[:, 1], hsv[:, 2]

    scores = np.empty((hsv.shape[0], len(materials)), dtype=np.float64)
    for k, m in enumerate(materials):
        sh = _hue_score(h, m.hue_range[0], m.hue_range[1], config.hue_falloff)
        ss = _linear_score(s, m.saturation_range[0], m.saturation_range[1],
                           config.saturation_falloff)
        sv = _linear_score(v, m.value_range[0], m.value_range[1], config.value_falloff)
        scores[:, k] = (sh + ss + sv) / 3.0
    return scores


def _best_in(scores, cols):
    sub = scores[:, cols]
    j = np.argmax(sub, axis=1)
    return np.asarray(cols)[j], sub[np.arange(sub.shape[0]), j]


def _classify_pixels(rgb, hsv, materials, gold_cols, pgm_cols, config):
    """Classify a flat (N, 3) batch; returns (index int32, score float32)."""
    n = rgb.shape[0]
    index = np.full(n, UNCLASSIFIED, dtype=np.int32)
    score = np.zeros(n, dtype=np.float64)
    if n == 0:
        return index, score.astype(np.float32)

    scores = score_materials(hsv, materials, config)
    gold_hit = looks_like_gold(rgb, hsv)
    pgm_hit = looks_like_pgm(rgb, hsv) & ~gold_hit
    # a heuristic without a matching catalog group falls back to generic scoring
    gold = gold_hit if gold_cols else np.zeros(n, dtype=bool)
    pgm = pgm_hit if pgm_cols else np.zeros(n, dtype=bool)

    generic = ~(gold | pgm)
    if generic.any():
        s, v = hsv[generic, 1], hsv[generic, 2]
        gate = (s >= config.min_saturation) & (v >= config.min_value) & (v <= config.max_value)
        best = np.argmax(scores[generic], axis=1)
        best_score = scores[generic][np.arange(best.size), best]
        score[generic] = np.where(gate, best_score, 0.0)
        index[generic] = np.where(gate, best, UNCLASSIFIED)

    for flag, cols, floor in ((gold, gold_cols, config.gold_boost),
                              (pgm, pgm_cols, config.pgm_boost)):
        if flag.any():
            idx, best_score = _best_in(scores[flag], cols)
            index[flag] = idx
            score[flag] = np.maximum(best_score, floor)

    index[score < config.min_score] = UNCLASSIFIED
    return index, score.astype(np.float32)


def classify(image, mask, catalog, config: ClassifierConfig | None = None,
             workers: int = 1, check_catalog: bool = True) -> PixelLabels:
    """
    Classify every foreground pixel against the material catalog.

    Parameters
    ----------
    image : (H, W, 3) uint8 array
        RGB image.
    mask : SampleMask or (H, W) bool array
        Refined sample mask; only True pixels are classified.
    catalog : MaterialCatalog
    config : ClassifierConfig, optional
    workers : int
        Number of threads; the labels are identical for any value.
    check_catalog : bool
        Validate the catalog first. Callers that already validated it may
        pass False.

    Returns
    -------
    PixelLabels

    Raises
    ------
    ConfigError
        If the catalog is empty or holds an invalid range.
    """
    config = config or ClassifierConfig()
    if workers < 1:
        raise ValueError(f"workers must be >= 1, got {workers}")
    if check_catalog:
        catalog.validate()

    rgb = as_rgb_image(image)
    m = as_mask_array(mask)
    if m.shape != rgb.shape[:2]:
        raise ValueError(f"Mask shape {m.shape} does not match image {rgb.shape[:2]}")

    materials = catalog.all_materials()
    H, W = m.shape
    index = np.full((H, W), BACKGROUND, dtype=np.int32)
    score = np.zeros((H, W), dtype=np.float32)
    hsv_out = np.zeros((H, W, 3), dtype=np.float32)

    rows, cols = np.nonzero(m)
    if rows.size == 0:
        return PixelLabels(index=index, score=score, hsv=hsv_out, materials=materials)

    px_rgb = rgb[rows, cols]
    px_hsv = rgb_to_hsv(px_rgb)

    gold_cols = catalog.in_group(config.gold_group)
    pgm_cols = catalog.in_group(config.pgm_group)
    if not gold_cols and np.any(looks_like_gold(px_rgb, px_hsv)):
        logger.warning(f"No catalog material in gold group '{config.gold_group}'; "
                       f"gold-like pixels fall back to generic scoring")
    if not pgm_cols and np.any(looks_like_pgm(px_rgb, px_hsv)):
        logger.warning(f"No catalog material in PGM group '{config.pgm_group}'; "
                       f"PGM-like pixels fall back to generic scoring")

    # nonzero() is row-major, so contiguous chunks are row bands
    bands = np.array_split(np.arange(rows.size), min(workers, rows.size))
    if workers == 1:
        parts = [_classify_pixels(px_rgb, px_hsv, materials, gold_cols, pgm_cols, config)]
    else:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            parts = list(pool.map(
                lambda sel: _classify_pixels(px_rgb[sel], px_hsv[sel], materials,
                                             gold_cols, pgm_cols, config),
                bands))

    index[rows, cols] = np.concatenate([p[0] for p in parts])
    score[rows, cols] = np.concatenate([p[1] for p in parts])
    hsv_out[rows, cols] = px_hsv

    n_unclassified = int(np.count_nonzero(index == UNCLASSIFIED))
    logger.debug(f"Classified {rows.size - n_unclassified} of {rows.size} foreground "
                 f"pixels against {len(materials)} materials")
    return PixelLabels(index=index, score=score, hsv=hsv_out, materials=materials)
