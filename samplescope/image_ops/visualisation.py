"""
Preview images for masks, phase maps and single-material highlights.
"""
import matplotlib
import numpy as np

from ..models.results import BACKGROUND, PixelLabels
from ..models.sample_mask import as_mask_array
from .colour import as_rgb_image

OVERLAY_RGB = np.array([0, 90, 255], dtype=np.float64)


def material_colours(n: int) -> np.ndarray:
    """(n, 3) uint8 colours from tab20, wrapping every 20 materials."""
    cmap = matplotlib.colormaps["tab20"]
    return (np.array([cmap(i % 20)[:3] for i in range(n)]).reshape(-1, 3) * 255).astype(np.uint8)


def label_map_to_rgb(labels: PixelLabels) -> np.ndarray:
    """
    Colour a phase map.

    Parameters
    ----------
    labels : PixelLabels
        Classifier output. Colour ``k`` belongs to ``labels.materials[k]``
        so the same catalog always gives the same colours.

    Returns
    -------
    rgb8 : (H, W, 3) uint8
        Background and unclassified pixels are black.
    """
    idx = np.asarray(labels.index)
    if idx.ndim != 2:
        raise ValueError(f"label_map_to_rgb expects a 2-D index map; got {idx.shape}")

    H, W = idx.shape
    rgb = np.zeros((H, W, 3), dtype=np.uint8)
    K = len(labels.materials)
    if K == 0:
        return rgb

    valid = idx >= 0
    rgb[valid] = material_colours(K)[idx[valid]]
    return rgb


def mask_preview(image, mask, alpha: float = 0.5) -> np.ndarray:
    """
    Blend a blue overlay onto the background pixels of ``image``.

    ``alpha`` is the overlay weight in [0, 1]; sample pixels are unchanged.
    """
    if not (0.0 <= alpha <= 1.0):
        raise ValueError(f"alpha must be in [0, 1], got {alpha}")
    rgb = as_rgb_image(image)
    m = as_mask_array(mask)
    if m.shape != rgb.shape[:2]:
        raise ValueError(f"Mask shape {m.shape} does not match image {rgb.shape[:2]}")

    out = rgb.astype(np.float64)
    bg = ~m
    out[bg] = (1.0 - alpha) * out[bg] + alpha * OVERLAY_RGB
    return np.clip(np.rint(out), 0, 255).astype(np.uint8)


def target_heatmap(image, labels: PixelLabels, material_id: str, opacity: float = 0.6) -> np.ndarray:
    """
    Highlight one material over the original image.

    Parameters
    ----------
    image : (H, W, 3) uint8 array
        The analysed RGB image.
    labels : PixelLabels
        Classifier output for ``image``.
    material_id : str
        Id of the material to highlight (case-insensitive), e.g. ``"Au"``.
    opacity : float
        Blend weight in [0, 1] of the material's phase-map colour at full
        confidence.

    Returns
    -------
    rgb8 : (H, W, 3) uint8
        Target pixels are blended with the material colour at
        ``opacity * score``; background pixels are darkened to half
        brightness; other sample pixels (including unclassified ones) are
        desaturated halfway towards their grey level.
    """
    if not (0.0 <= opacity <= 1.0):
        raise ValueError(f"opacity must be in [0, 1], got {opacity}")
    rgb = as_rgb_image(image)
    idx = np.asarray(labels.index)
    if idx.shape != rgb.shape[:2]:
        raise ValueError(f"Label map shape {idx.shape} does not match image {rgb.shape[:2]}")

    key = str(material_id).casefold()
    ids = [m.id.casefold() for m in labels.materials]
    if key not in ids:
        raise ValueError(f"Material '{material_id}' is not in the label legend")
    k = ids.index(key)
    colour = material_colours(len(ids))[k].astype(np.float64)

    src = rgb.astype(np.float64)
    out = np.empty_like(src)

    bg = idx == BACKGROUND
    out[bg] = src[bg] * 0.5

    target = idx == k
    alpha = (opacity * np.asarray(labels.score, dtype=np.float64)[target])[:, None]
    out[target] = src[target] * (1.0 - alpha) + colour * alpha

    other = ~(bg | target)
    gray = np.floor(src[other] @ np.array([0.299, 0.587, 0.114]))[:, None]
    out[other] = (src[other] + gray) / 2.0

    return np.clip(np.floor(out), 0, 255).astype(np.uint8)
