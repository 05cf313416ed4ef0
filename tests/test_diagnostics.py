import numpy as np
import pytest

from conftest import make_image
from samplescope.image_ops.diagnostics import compute_diagnostics
from samplescope.image_ops.masking import gradient_magnitude


def test_no_foreground(uniform_gray_image):
    d = compute_diagnostics(uniform_gray_image, np.zeros((10, 10), dtype=bool))
    assert d.focus_score == 0.0
    assert d.foreground_fraction == 0.0
    assert d.clipping_fraction == 0.0


def test_foreground_fraction(gold_patch_image):
    mask = np.zeros((8, 8), dtype=bool)
    mask[3:6, 3:6] = True
    d = compute_diagnostics(gold_patch_image, mask)
    assert d.foreground_fraction == pytest.approx(9 / 64)


def test_focus_is_mean_foreground_gradient(gold_patch_image):
    mask = np.zeros((8, 8), dtype=bool)
    mask[3:6, 3:6] = True
    grad = gradient_magnitude(gold_patch_image)
    d = compute_diagnostics(gold_patch_image, mask)
    assert d.focus_score == pytest.approx(grad[mask].mean() / 255)
    # a precomputed gradient gives the same answer
    assert compute_diagnostics(gold_patch_image, mask, gradient=grad) == d


def test_focus_capped_at_one():
    img = make_image(6, 6, background=(0, 0, 0))
    img[:, ::2] = (255, 255, 255)
    grad = np.full((6, 6), 1000.0)
    d = compute_diagnostics(img, np.ones((6, 6), dtype=bool), gradient=grad)
    assert d.focus_score == 1.0


def test_clipping_fraction():
    img = make_image(4, 5, background=(120, 120, 120))
    img[0, 0] = (255, 120, 120)      # high clip
    img[1, 1] = (120, 2, 120)        # low clip
    img[2, 2] = (250, 120, 120)      # exactly at the margin: not clipped
    d = compute_diagnostics(img, np.zeros((4, 5), dtype=bool))
    assert d.clipping_fraction == pytest.approx(2 / 20)

    wider = compute_diagnostics(img, np.zeros((4, 5), dtype=bool), clip_margin=10)
    assert wider.clipping_fraction == pytest.approx(3 / 20)


def test_values_in_unit_range(noisy_image):
    d = compute_diagnostics(noisy_image, np.ones(noisy_image.shape[:2], dtype=bool))
    for value in (d.focus_score, d.clipping_fraction, d.foreground_fraction):
        assert 0.0 <= value <= 1.0


def test_shape_mismatch(gold_patch_image):
    with pytest.raises(ValueError):
        compute_diagnostics(gold_patch_image, np.zeros((3, 3), dtype=bool))
