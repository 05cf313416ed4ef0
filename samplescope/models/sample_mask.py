"""
Foreground mask produced by the segmentation stage.
"""
from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class BackgroundStats:
    """Grayscale statistics of the border ring."""
    mean: float
    std: float
    pixel_count: int
    ring_width: int


@dataclass(frozen=True)
class SampleMask:
    """
    Boolean sample/background mask plus the statistics that produced it.

    Attributes
    ----------
    data : (H, W) bool ndarray
        True marks a sample (foreground) pixel.
    threshold : float
        Foreground-index threshold actually applied.
    background : BackgroundStats
        Border ring statistics of the source image.
    """
    data: np.ndarray
    threshold: float
    background: BackgroundStats

    @property
    def shape(self) -> tuple:
        return self.data.shape

    @property
    def foreground_pixels(self) -> int:
        return int(np.count_nonzero(self.data))

    @property
    def foreground_fraction(self) -> float:
        return self.foreground_pixels / self.data.size if self.data.size else 0.0

    def with_data(self, data: np.ndarray) -> "SampleMask":
        return SampleMask(data=np.asarray(data, dtype=bool),
                          threshold=self.threshold,
                          background=self.background)


def as_mask_array(mask) -> np.ndarray:
    """Return the boolean (H, W) array behind a SampleMask or array-like."""
    if isinstance(mask, SampleMask):
        return mask.data
    arr = np.asarray(mask)
    if arr.ndim != 2:
        raise ValueError(f"mask must be 2-D, got shape {arr.shape}")
    return arr.astype(bool, copy=False)
