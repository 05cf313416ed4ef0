"""
Colour-space helpers: image validation, grayscale and HSV conversion.
"""
import cv2
import numpy as np

from ..errors import InvalidImageError

# ITU-R BT.601 luma weights
GRAY_WEIGHTS = np.array([0.299, 0.587, 0.114])


def as_rgb_image(image) -> np.ndarray:
    """
    Validate an RGB image and return it as a uint8 (H, W, 3) array.

    Non-uint8 input is accepted when every value is a finite number in
    0..255; it is rounded to the nearest integer.

    Raises
    ------
    InvalidImageError
        For None, arrays that are not (H, W, 3), zero-area images or values
        outside 0..255.
    """
    if image is None:
        raise InvalidImageError("No image supplied")
    arr = np.asarray(image)
    if arr.ndim != 3 or arr.shape[2] != 3:
        raise InvalidImageError(f"Expected an (H, W, 3) RGB image, got shape {arr.shape}")
    if arr.shape[0] == 0 or arr.shape[1] == 0:
        raise InvalidImageError(f"Image has zero area: {arr.shape}")
    if arr.dtype == np.uint8:
        return arr
    if not (np.issubdtype(arr.dtype, np.number) or arr.dtype == bool):
        raise InvalidImageError(f"Unsupported image dtype {arr.dtype}")
    vals = arr.astype(float)
    if not np.all(np.isfinite(vals)) or vals.min() < 0 or vals.max() > 255:
        raise InvalidImageError("Image values must be finite and within 0..255")
    return np.rint(vals).astype(np.uint8)


def grayscale(image) -> np.ndarray:
    """(H, W) float64 luma, ``0.299 R + 0.587 G + 0.114 B``."""
    rgb = as_rgb_image(image)
    return rgb.astype(np.float64) @ GRAY_WEIGHTS


def rgb_to_hsv(rgb) -> np.ndarray:
    """
    Convert uint8 RGB to HSV.

    Parameters
    ----------
    rgb : (..., 3) array
        8-bit RGB values. Any leading shape is accepted (an image or a flat
        list of pixels).

    Returns
    -------
    hsv : (..., 3) float32
        Hue in degrees [0, 360), saturation and value in [0, 1].
        Achromatic pixels get hue 0; black gets saturation 0.
    """
    arr = np.asarray(rgb)
    if arr.shape[-1] != 3:
        raise ValueError(f"rgb_to_hsv expects a trailing channel axis of 3, got {arr.shape}")
    lead = arr.shape[:-1]
    if arr.size == 0:
        return np.zeros(lead + (3,), dtype=np.float32)

    # cv2 works on 2-D images; float input keeps hue in degrees
    flat = (arr.reshape(1, -1, 3).astype(np.float32) / 255.0)
    hsv = cv2.cvtColor(flat, cv2.COLOR_RGB2HSV).reshape(lead + (3,))
    hue = hsv[..., 0]
    hue[hue >= 360.0] -= 360.0
    return hsv
