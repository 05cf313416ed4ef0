import json

import numpy as np
import pytest

from conftest import make_image
from samplescope import analyze, analyze_scene
from samplescope.config import ClassifierConfig, ThresholdConfig
from samplescope.errors import AnalysisCancelled, ConfigError, InvalidImageError
from samplescope.interface.pipeline import CancellationToken
from samplescope.models import MaterialCatalog


def test_gold_patch_end_to_end(gold_patch_image, patch_config, catalog):
    scene = analyze_scene(gold_patch_image, patch_config, None, catalog)
    result = scene.result

    expected = np.zeros((8, 8), dtype=bool)
    expected[3:6, 3:6] = True
    np.testing.assert_array_equal(scene.mask.data, expected)

    assert result.foreground_pixels == 9
    assert [m.id for m in result.metals] == ["Au"]
    au = result.metals[0]
    assert au.pixel_count == 9
    assert au.pct_of_sample == pytest.approx(9 / 9)
    assert au.score >= 0.85
    assert result.crystals == ()
    assert result.gems == ()
    assert result.diagnostics.foreground_fraction == pytest.approx(9 / 64)


def test_uniform_gray_has_no_sample(uniform_gray_image, catalog):
    result = analyze(uniform_gray_image, None, None, catalog)
    assert result.diagnostics.foreground_fraction == 0.0
    assert result.diagnostics.focus_score == 0.0
    assert result.metals == () and result.crystals == () and result.gems == ()


def test_two_phase_coverage(two_phase_image, scene_config, catalog):
    result = analyze(two_phase_image, scene_config, ClassifierConfig(), catalog)
    assert result.foreground_pixels == 32 * 32
    assert result.unclassified_pixels == 0
    assert [m.id for m in result.metals] == ["Au", "Pt"]
    assert result.get("Au").pct_of_sample == pytest.approx(144 / 1024)
    assert result.get("Pt").pct_of_sample == pytest.approx(880 / 1024)
    assert result.get("Pt").score >= 0.70


def test_analyze_is_deterministic(noisy_image, catalog):
    a = analyze(noisy_image, None, None, catalog)
    b = analyze(noisy_image, None, None, catalog)
    assert a == b
    assert a.to_dict() == b.to_dict()


def test_counts_add_up(noisy_image, catalog):
    scene = analyze_scene(noisy_image, ThresholdConfig(min_region_size=0), None, catalog)
    r = scene.result
    assert r.classified_pixels + r.unclassified_pixels == r.foreground_pixels
    assert r.foreground_pixels == scene.mask.foreground_pixels
    assert scene.mask.shape == noisy_image.shape[:2]
    assert scene.labels.shape == noisy_image.shape[:2]


def test_workers_give_same_result(two_phase_image, scene_config, catalog):
    one = analyze(two_phase_image, scene_config, None, catalog)
    four = analyze(two_phase_image, scene_config, None, catalog, workers=4)
    assert one == four


@pytest.mark.parametrize("colour", [(0, 0, 0), (255, 255, 255)])
def test_extreme_images_are_well_formed(colour, catalog):
    scene = analyze_scene(make_image(16, 16, background=colour), None, None, catalog)
    cfg = ThresholdConfig()
    assert cfg.min_threshold <= scene.mask.threshold <= cfg.max_threshold
    assert scene.result.foreground_pixels == scene.mask.foreground_pixels


def test_invalid_image_raises_before_work(catalog):
    with pytest.raises(InvalidImageError):
        analyze(None, None, None, catalog)
    with pytest.raises(InvalidImageError):
        analyze(np.zeros((0, 5, 3), dtype=np.uint8), None, None, catalog)


def test_empty_catalog_raises(gold_patch_image):
    with pytest.raises(ConfigError):
        analyze(gold_patch_image, None, None, MaterialCatalog())


def test_cancelled_token_stops_analysis(gold_patch_image, catalog):
    token = CancellationToken()
    token.cancel()
    assert token.cancelled
    with pytest.raises(AnalysisCancelled):
        analyze(gold_patch_image, None, None, catalog, cancel_token=token)


def test_uncancelled_token_is_harmless(gold_patch_image, patch_config, catalog):
    token = CancellationToken()
    with_token = analyze(gold_patch_image, patch_config, None, catalog, cancel_token=token)
    assert with_token == analyze(gold_patch_image, patch_config, None, catalog)


def test_result_serialises(gold_patch_image, patch_config, catalog):
    d = analyze(gold_patch_image, patch_config, None, catalog).to_dict()
    text = json.dumps(d)
    assert '"pctOfSample": 1.0' in text
    assert d["metals"][0]["estimatedPpm"] == pytest.approx(1e6)


def test_gradient_and_catalog_check_run_once(monkeypatch, gold_patch_image, patch_config, catalog):
    import samplescope.image_ops.diagnostics as diagnostics_mod
    import samplescope.image_ops.masking as masking_mod
    import samplescope.interface.pipeline as pipeline_mod

    calls = {"gradient": 0, "validate": 0}
    real_gradient = masking_mod.gradient_magnitude
    real_validate = type(catalog).validate

    def counting_gradient(image_or_gray):
        calls["gradient"] += 1
        return real_gradient(image_or_gray)

    def counting_validate(self):
        calls["validate"] += 1
        return real_validate(self)

    for mod in (masking_mod, diagnostics_mod, pipeline_mod):
        monkeypatch.setattr(mod, "gradient_magnitude", counting_gradient)
    monkeypatch.setattr(type(catalog), "validate", counting_validate)

    result = analyze(gold_patch_image, patch_config, None, catalog)
    assert calls == {"gradient": 1, "validate": 1}
    assert result.diagnostics.focus_score > 0.0
