"""
Connected-component clean-up of a binary sample mask.

All labelling is 8-connected and done with cv2.connectedComponentsWithStats
on the whole image.
"""
import logging

import cv2
import numpy as np

from ..models.sample_mask import SampleMask, as_mask_array

logger = logging.getLogger(__name__)


def _label(mask: np.ndarray):
    """Label True regions; returns (n_labels, labels, areas) with label 0 = False."""
    bw = mask.astype(np.uint8) * 255
    n, labels, stats, _ = cv2.connectedComponentsWithStats(bw, connectivity=8)
    return n, labels, stats[:, cv2.CC_STAT_AREA]


def _border_labels(labels: np.ndarray) -> np.ndarray:
    edge = np.concatenate([labels[0, :], labels[-1, :], labels[:, 0], labels[:, -1]])
    return np.unique(edge[edge > 0])


def remove_border_components(mask) -> np.ndarray:
    """Clear every foreground component with a pixel on the image boundary."""
    m = as_mask_array(mask)
    if not m.any():
        return m.copy()
    n, labels, _ = _label(m)
    touching = _border_labels(labels)
    out = m & ~np.isin(labels, touching)
    logger.debug(f"Border removal: {len(touching)} of {n - 1} components cleared")
    return out


def filter_small_regions(mask, min_region_size: int, keep_only_largest: bool = False) -> np.ndarray:
    """
    Drop foreground components smaller than ``min_region_size`` pixels.

    Parameters
    ----------
    mask : (H, W) bool array or SampleMask
    min_region_size : int
        Minimum area kept. 0 keeps every component.
    keep_only_largest : bool
        After size filtering keep only the largest component (ties resolve
        to the component found first in raster order).

    Returns
    -------
    (H, W) bool ndarray
    """
    m = as_mask_array(mask)
    if (min_region_size <= 0 and not keep_only_largest) or not m.any():
        return m.copy()

    n, labels, areas = _label(m)
    keep = np.zeros(n, dtype=bool)
    keep[1:] = areas[1:] >= min_region_size
    if keep_only_largest and keep.any():
        best = int(np.argmax(np.where(keep, areas, -1)))
        keep[:] = False
        keep[best] = True

    logger.debug(f"Region filter: kept {int(keep.sum())} of {n - 1} components "
                 f"(min size {min_region_size})")
    return keep[labels]


def close_small_holes(mask, max_hole_size: int) -> np.ndarray:
    """
    Fill enclosed background components of at most ``max_hole_size`` pixels.

    Background regions that touch the image border are never filled.
    ``max_hole_size = 0`` returns the mask unchanged.
    """
    m = as_mask_array(mask)
    if max_hole_size <= 0 or not m.any():
        return m.copy()

    n, labels, areas = _label(~m)
    fill = np.zeros(n, dtype=bool)
    fill[1:] = areas[1:] <= max_hole_size
    fill[_border_labels(labels)] = False

    logger.debug(f"Hole closing: filled {int(fill.sum())} of {n - 1} background regions")
    return m | fill[labels]


def refine_mask(mask, config):
    """
    Border removal, then small-region filtering, then hole closing.

    Returns a new SampleMask when given one, otherwise a bool ndarray.
    """
    out = remove_border_components(mask)
    out = filter_small_regions(out, config.min_region_size, config.keep_only_largest)
    out = close_small_holes(out, config.max_hole_size)
    if isinstance(mask, SampleMask):
        return mask.with_data(out)
    return out
