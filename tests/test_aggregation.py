import numpy as np
import pytest

from samplescope.image_ops.aggregation import aggregate
from samplescope.models import BACKGROUND, UNCLASSIFIED, PixelLabels


def _labels(catalog, index, score):
    index = np.asarray(index, dtype=np.int32)
    return PixelLabels(index=index,
                       score=np.asarray(score, dtype=np.float32),
                       hsv=np.zeros(index.shape + (3,), dtype=np.float32),
                       materials=catalog.all_materials())


def test_counts_shares_and_scores(catalog):
    # materials: 0 Au, 1 Pt, 2 Pd, 3 Cu, 4 Sil, 5 Rb, 6 Em
    index = [[0, 0, 1, UNCLASSIFIED],
             [4, 5, BACKGROUND, BACKGROUND]]
    score = [[0.9, 0.7, 0.8, 0.2],
             [0.5, 0.6, 0.0, 0.0]]
    result = aggregate(_labels(catalog, index, score))

    assert result.foreground_pixels == 6
    assert result.unclassified_pixels == 1
    assert [m.id for m in result.metals] == ["Au", "Pt"]
    assert [m.id for m in result.crystals] == ["Sil"]
    assert [m.id for m in result.gems] == ["Rb"]

    au = result.get("Au")
    assert au.pixel_count == 2
    assert au.pct_of_sample == pytest.approx(2 / 6)
    assert au.score == pytest.approx(0.8)
    assert au.estimated_ppm == pytest.approx(2 / 6 * 1e6)
    assert result.get("Sil").estimated_ppm is None
    assert result.get("Rb").estimated_ppm is None


def test_counts_add_up_to_foreground(catalog):
    rng = np.random.default_rng(11)
    index = rng.integers(-2, len(catalog), size=(30, 30))
    score = rng.random((30, 30))
    result = aggregate(_labels(catalog, index, score))
    assert result.classified_pixels + result.unclassified_pixels == result.foreground_pixels
    assert result.foreground_pixels == int((index != BACKGROUND).sum())
    assert sum(m.pct_of_sample for m in result.materials) <= 1.0 + 1e-9


def test_no_foreground_gives_empty_result(catalog):
    index = np.full((4, 4), BACKGROUND)
    result = aggregate(_labels(catalog, index, np.zeros((4, 4))))
    assert result.foreground_pixels == 0
    assert result.materials == ()
    assert result.diagnostics.focus_score == 0.0


def test_all_unclassified(catalog):
    index = np.full((3, 3), UNCLASSIFIED)
    result = aggregate(_labels(catalog, index, np.full((3, 3), 0.3)))
    assert result.materials == ()
    assert result.unclassified_pixels == 9


def test_to_dict_uses_camel_case(catalog):
    result = aggregate(_labels(catalog, [[0, 4]], [[1.0, 0.5]]))
    d = result.to_dict()
    assert set(d) == {"metals", "crystals", "gems", "diagnostics",
                      "foregroundPixels", "unclassifiedPixels"}
    metal = d["metals"][0]
    assert metal["pctOfSample"] == pytest.approx(0.5)
    assert metal["estimatedPpm"] == pytest.approx(500_000)
    assert "estimatedPpm" not in d["crystals"][0]
    assert set(d["diagnostics"]) == {"focusScore", "clippingFraction", "foregroundFraction"}
