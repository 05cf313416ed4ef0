import numpy as np
import pytest

from samplescope.config import ThresholdConfig
from samplescope.image_ops.topology import (
    close_small_holes,
    filter_small_regions,
    refine_mask,
    remove_border_components,
)
from samplescope.models import BackgroundStats, SampleMask


def _touches_border(mask):
    return mask[0].any() or mask[-1].any() or mask[:, 0].any() or mask[:, -1].any()


def test_border_components_removed():
    mask = np.zeros((10, 10), dtype=bool)
    mask[0:3, 0:3] = True        # touches corner
    mask[4:6, 4:6] = True        # interior
    mask[7:10, 8] = True         # touches bottom
    out = remove_border_components(mask)
    expected = np.zeros_like(mask)
    expected[4:6, 4:6] = True
    np.testing.assert_array_equal(out, expected)
    assert not _touches_border(out)


def test_border_removal_uses_eight_connectivity():
    mask = np.zeros((8, 8), dtype=bool)
    mask[1, 1] = True            # only diagonally linked to the border pixel
    mask[0, 0] = True
    mask[4, 4] = True
    out = remove_border_components(mask)
    assert not out[1, 1]
    assert out[4, 4]


def test_border_removal_random_masks_never_touch_border():
    rng = np.random.default_rng(7)
    for _ in range(5):
        mask = rng.random((30, 40)) > 0.6
        assert not _touches_border(remove_border_components(mask))


def test_min_region_size_zero_is_identity():
    rng = np.random.default_rng(3)
    mask = rng.random((20, 20)) > 0.5
    out = filter_small_regions(mask, 0)
    np.testing.assert_array_equal(out, mask)
    assert out is not mask


def test_small_regions_filtered():
    mask = np.zeros((12, 12), dtype=bool)
    mask[2:4, 2:4] = True        # area 4
    mask[6:10, 6:10] = True      # area 16
    out = filter_small_regions(mask, 5)
    assert not out[2:4, 2:4].any()
    assert out[6:10, 6:10].all()
    # area equal to the limit is kept
    assert filter_small_regions(mask, 4)[2:4, 2:4].all()


def test_keep_only_largest():
    mask = np.zeros((12, 12), dtype=bool)
    mask[1:3, 1:3] = True
    mask[5:10, 5:10] = True
    mask[1:4, 8:11] = True
    out = filter_small_regions(mask, 0, keep_only_largest=True)
    expected = np.zeros_like(mask)
    expected[5:10, 5:10] = True
    np.testing.assert_array_equal(out, expected)


def test_keep_only_largest_tie_goes_to_first_component():
    mask = np.zeros((10, 10), dtype=bool)
    mask[1:3, 1:3] = True
    mask[6:8, 6:8] = True
    out = filter_small_regions(mask, 0, keep_only_largest=True)
    assert out[1:3, 1:3].all()
    assert not out[6:8, 6:8].any()


def test_small_holes_closed_large_holes_kept():
    mask = np.zeros((20, 20), dtype=bool)
    mask[2:18, 2:18] = True
    mask[4:6, 4:6] = False       # 4-pixel hole
    mask[9:16, 9:16] = False     # 49-pixel hole
    out = close_small_holes(mask, 10)
    assert out[4:6, 4:6].all()
    assert not out[9:16, 9:16].any()

    # the default limit of 50 closes both
    assert close_small_holes(mask, 50)[9:16, 9:16].all()


def test_hole_closing_disabled_with_zero():
    mask = np.ones((6, 6), dtype=bool)
    mask[2, 2] = False
    np.testing.assert_array_equal(close_small_holes(mask, 0), mask)


def test_background_touching_border_is_not_a_hole():
    mask = np.zeros((6, 6), dtype=bool)
    mask[1:5, 1:5] = True
    out = close_small_holes(mask, 100)
    assert not out[0].any()


def test_refine_mask_keeps_sample_mask_metadata():
    data = np.zeros((12, 12), dtype=bool)
    data[0:2, 0:2] = True
    data[3:9, 3:9] = True
    data[5, 5] = False
    raw = SampleMask(data=data, threshold=42.0,
                     background=BackgroundStats(mean=250.0, std=1.0, pixel_count=44, ring_width=1))
    out = refine_mask(raw, ThresholdConfig(min_region_size=10))
    assert isinstance(out, SampleMask)
    assert out.threshold == 42.0
    assert out.background == raw.background
    expected = np.zeros_like(data)
    expected[3:9, 3:9] = True
    np.testing.assert_array_equal(out.data, expected)
    # input untouched
    assert not raw.data[5, 5]


def test_refine_mask_on_plain_array():
    data = np.zeros((5, 5), dtype=bool)
    out = refine_mask(data, ThresholdConfig())
    assert isinstance(out, np.ndarray)
    assert not out.any()


def test_rejects_non_2d_masks():
    with pytest.raises(ValueError):
        remove_border_components(np.zeros((3, 3, 3), dtype=bool))
