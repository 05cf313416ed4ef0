"""
SampleScope package.

Segmentation and material classification for digital microscope images of
mineral and metal samples: the sample is separated from its background,
every sample pixel is matched against a catalog of optical (HSV)
signatures, and per-material coverage plus image-quality diagnostics are
reported.

Subpackages
-----------
- models
    Frozen data structures: MaterialDefinition, MaterialCatalog,
    SampleMask, PixelLabels and AnalysisResult.

- image_ops
    Pure array operations: colour conversion, adaptive masking, mask
    topology clean-up, classification, aggregation, diagnostics,
    consistency checks and preview images.

- interface
    The composed pipeline (analyze), the latest-wins frame scheduler and
    file helpers used by the command line.

Other modules
-------------
- config
    Default tuning values and the immutable ThresholdConfig /
    ClassifierConfig records built from them.

- errors
    ConfigError, InvalidImageError and AnalysisCancelled.

- main
    Command line entry point (``samplescope IMAGE_OR_FOLDER --catalog ...``).

Typical usage
-------------
    from samplescope import analyze, load_catalog, ThresholdConfig
    catalog = load_catalog("catalog.json")
    result = analyze(image, ThresholdConfig(), None, catalog)
    print(result.to_dict())
"""
from .config import ClassifierConfig, ThresholdConfig, load_config
from .errors import AnalysisCancelled, ConfigError, InvalidImageError
from .interface.pipeline import CancellationToken, analyze, analyze_scene
from .models import MaterialCatalog, MaterialDefinition, load_catalog

__all__ = [
    "analyze",
    "analyze_scene",
    "CancellationToken",
    "ThresholdConfig",
    "ClassifierConfig",
    "load_config",
    "MaterialCatalog",
    "MaterialDefinition",
    "load_catalog",
    "ConfigError",
    "InvalidImageError",
    "AnalysisCancelled",
]
