"""
Shared fixtures: a small material catalog and synthetic microscope frames.
"""
import copy
import logging
import sys
from pathlib import Path

import numpy as np
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from samplescope.config import ThresholdConfig
from samplescope.models import MaterialCatalog

logging.getLogger("samplescope").setLevel(logging.DEBUG)

WHITE_BG = (250, 250, 250)
GOLD_RGB = (200, 180, 40)
PGM_RGB = (140, 142, 138)

CATALOG_DICT = {
    "metals": [
        {"id": "Au", "name": "Gold", "group": "gold",
         "optical": {"hsv": {"h": [35, 75], "s": [0.3, 1.0], "v": [0.4, 1.0]}}},
        {"id": "Pt", "name": "Platinum", "group": "PGM",
         "optical": {"hsv": {"h": [0, 360], "s": [0.0, 0.2], "v": [0.2, 0.92]}}},
        {"id": "Pd", "name": "Palladium", "group": "PGM",
         "optical": {"hsv": {"h": [0, 360], "s": [0.0, 0.15], "v": [0.3, 0.85]}}},
        {"id": "Cu", "name": "Copper", "group": "copper",
         "optical": {"hsv": {"h": [10, 30], "s": [0.4, 0.9], "v": [0.4, 0.9]}}},
    ],
    "crystals": [
        {"id": "Sil", "name": "Silicate", "group": "silicate",
         "optical": {"hsv": {"h": [180, 240], "s": [0.1, 0.5], "v": [0.3, 0.8]}}},
    ],
    "gems": [
        {"id": "Rb", "name": "Ruby", "group": "corundum",
         "optical": {"hsv": {"h": [340, 15], "s": [0.4, 1.0], "v": [0.2, 0.9]}}},
        {"id": "Em", "name": "Emerald", "group": "beryl",
         "optical": {"hsv": {"h": [120, 170], "s": [0.3, 1.0], "v": [0.2, 0.9]}}},
    ],
}


def make_image(h, w, background=WHITE_BG):
    img = np.empty((h, w, 3), dtype=np.uint8)
    img[:] = background
    return img


@pytest.fixture
def catalog_dict():
    # deep copy so tests can mutate it
    return copy.deepcopy(CATALOG_DICT)


@pytest.fixture
def catalog():
    return MaterialCatalog.from_dict(CATALOG_DICT)


@pytest.fixture
def patch_config():
    """Threshold settings for the small 8x8 patch frames."""
    return ThresholdConfig(texture_weight=1.0, gradient_weight=0.25, std_multiplier=1.0,
                           min_threshold=30.0, max_threshold=180.0, min_region_size=9)


@pytest.fixture
def scene_config():
    """Threshold settings for the 64x64 two-phase frame."""
    return ThresholdConfig(texture_weight=1.0, gradient_weight=0.25, std_multiplier=0.5,
                           min_threshold=30.0, max_threshold=180.0, min_region_size=20)


@pytest.fixture
def gold_patch_image():
    """8x8 near-white frame with a centred 3x3 gold patch at rows/cols 3..5."""
    img = make_image(8, 8)
    img[3:6, 3:6] = GOLD_RGB
    return img


@pytest.fixture
def uniform_gray_image():
    return make_image(10, 10, background=(128, 128, 128))


@pytest.fixture
def two_phase_image():
    """
    64x64 near-white frame holding a 32x32 grey (PGM-like) grain at rows/cols
    16..47 with a 12x12 gold inclusion at rows/cols 26..37.
    """
    img = make_image(64, 64)
    img[16:48, 16:48] = PGM_RGB
    img[26:38, 26:38] = GOLD_RGB
    return img


@pytest.fixture
def noisy_image():
    rng = np.random.default_rng(1234)
    img = make_image(48, 64)
    img[10:38, 12:50] = (120, 110, 60)
    noise = rng.integers(-12, 13, size=img.shape)
    return np.clip(img.astype(int) + noise, 0, 255).astype(np.uint8)
