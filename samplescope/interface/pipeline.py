"""
The composed analysis: mask, classify, aggregate and diagnose one image.

analyze() is a pure function of its inputs. A CancellationToken may be
passed in; it is checked between stages so a scheduler can abandon a run
that has been superseded.
"""
from dataclasses import dataclass, replace
import logging
import threading
import time

from ..config import ClassifierConfig, ThresholdConfig
from ..errors import AnalysisCancelled
from ..image_ops.aggregation import aggregate
from ..image_ops.classification import classify
from ..image_ops.colour import as_rgb_image, grayscale
from ..image_ops.diagnostics import compute_diagnostics
from ..image_ops.masking import compute_raw_mask, gradient_magnitude
from ..image_ops.topology import refine_mask
from ..models.results import AnalysisResult, PixelLabels
from ..models.sample_mask import SampleMask

logger = logging.getLogger(__name__)


class CancellationToken:
    """Thread-safe flag that asks a running analysis to stop."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self):
        if self._event.is_set():
            raise AnalysisCancelled("Analysis cancelled")


@dataclass(frozen=True)
class SceneAnalysis:
    """Aggregated result plus the intermediate mask and labels."""
    result: AnalysisResult
    mask: SampleMask
    labels: PixelLabels


def _check(token):
    if token is not None:
        token.raise_if_cancelled()


def analyze_scene(image, threshold_config: ThresholdConfig | None, classifier_config: ClassifierConfig | None,
                  catalog, *, cancel_token: CancellationToken | None = None,
                  workers: int = 1) -> SceneAnalysis:
    """
    Run the full pipeline and keep the intermediate products.

    Raises
    ------
    InvalidImageError
        Before any stage runs, for None / wrong-shape / zero-area images.
    ConfigError
        For an empty or invalid catalog.
    AnalysisCancelled
        If ``cancel_token`` is cancelled between stages.
    """
    threshold_config = threshold_config or ThresholdConfig()
    classifier_config = classifier_config or ClassifierConfig()
    t0 = time.perf_counter()

    rgb = as_rgb_image(image)
    catalog.validate()
    _check(cancel_token)

    gradient = gradient_magnitude(grayscale(rgb))
    raw = compute_raw_mask(rgb, threshold_config, gradient=gradient)
    _check(cancel_token)
    mask = refine_mask(raw, threshold_config)
    _check(cancel_token)

    labels = classify(rgb, mask, catalog, classifier_config, workers=workers,
                      check_catalog=False)
    _check(cancel_token)

    result = aggregate(labels)
    diagnostics = compute_diagnostics(rgb, mask, gradient=gradient)
    result = replace(result, diagnostics=diagnostics)
    _check(cancel_token)

    logger.info(f"Analysed {rgb.shape[1]}x{rgb.shape[0]} image in "
                f"{time.perf_counter() - t0:.2f}s: {result.foreground_pixels} sample pixels, "
                f"{len(result.materials)} materials found")
    return SceneAnalysis(result=result, mask=mask, labels=labels)


def analyze(image, threshold_config: ThresholdConfig | None, classifier_config: ClassifierConfig | None,
            catalog, *, cancel_token: CancellationToken | None = None,
            workers: int = 1) -> AnalysisResult:
    """
    Segment and classify one RGB image.

    Parameters
    ----------
    image : (H, W, 3) uint8 array
    threshold_config : ThresholdConfig or None
        None uses the defaults.
    classifier_config : ClassifierConfig or None
        None uses the defaults.
    catalog : MaterialCatalog
    cancel_token : CancellationToken, optional
    workers : int
        Threads used by the classifier.

    Returns
    -------
    AnalysisResult
        Per-material coverage with diagnostics filled in.
    """
    return analyze_scene(image, threshold_config, classifier_config, catalog,
                         cancel_token=cancel_token, workers=workers).result
