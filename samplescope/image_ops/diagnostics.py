"""
Image quality indicators computed alongside an analysis.
"""
import numpy as np

from ..models.results import DiagnosticsResult
from ..models.sample_mask import as_mask_array
from .colour import as_rgb_image
from .masking import gradient_magnitude


def compute_diagnostics(image, mask, clip_margin: int = 5, gradient=None) -> DiagnosticsResult:
    """
    Focus, exposure clipping and sample coverage of an image.

    Parameters
    ----------
    image : (H, W, 3) uint8 array
    mask : SampleMask or (H, W) bool array
    clip_margin : int
        A pixel is clipped when any channel is below ``clip_margin`` or
        above ``255 - clip_margin``.
    gradient : (H, W) array, optional
        Precomputed gradient magnitude; computed from the image if omitted.

    Returns
    -------
    DiagnosticsResult
        ``focus_score`` is the mean foreground gradient over 255 (capped at
        1, 0 without foreground), ``clipping_fraction`` and
        ``foreground_fraction`` are shares of all pixels.
    """
    rgb = as_rgb_image(image)
    m = as_mask_array(mask)
    if m.shape != rgb.shape[:2]:
        raise ValueError(f"Mask shape {m.shape} does not match image {rgb.shape[:2]}")
    if not (0 <= clip_margin <= 127):
        raise ValueError(f"clip_margin must be in 0..127, got {clip_margin}")

    total = m.size
    n_fg = int(np.count_nonzero(m))

    if n_fg:
        grad = gradient_magnitude(rgb) if gradient is None else np.asarray(gradient)
        focus = min(1.0, float(grad[m].mean()) / 255.0)
    else:
        focus = 0.0

    clipped = ((rgb < clip_margin) | (rgb > 255 - clip_margin)).any(axis=2)
    return DiagnosticsResult(
        focus_score=focus,
        clipping_fraction=float(np.count_nonzero(clipped)) / total,
        foreground_fraction=n_fg / total,
    )
