"""
Per-pixel labels and the aggregated analysis result.

PixelLabels keeps the classifier output as index/score arrays in the same
spirit as the mineral maps elsewhere (an index image plus a legend); the
per-pixel PixelLabel records are generated from it on demand.
"""
from collections.abc import Iterator
from dataclasses import dataclass, field

import numpy as np

# index sentinels in PixelLabels.index
UNCLASSIFIED = -1
BACKGROUND = -2


@dataclass(frozen=True)
class PixelLabel:
    """Classification of a single foreground pixel."""
    row: int
    col: int
    material_id: str | None
    score: float
    h: float
    s: float
    v: float

    @property
    def is_classified(self) -> bool:
        return self.material_id is not None


@dataclass(frozen=True)
class PixelLabels:
    """
    Classifier output for a whole image.

    Attributes
    ----------
    index : (H, W) int32 ndarray
        Index into ``materials``; UNCLASSIFIED (-1) for foreground pixels
        that were not accepted, BACKGROUND (-2) outside the mask.
    score : (H, W) float32 ndarray
        Final score of the assigned material (or best rejected score for
        unclassified pixels); 0 on background.
    hsv : (H, W, 3) float32 ndarray
        Hue (degrees), saturation and value of each pixel; 0 on background.
    materials : tuple[MaterialDefinition, ...]
        Legend, in catalog order (metals, crystals, gems).
    """
    index: np.ndarray
    score: np.ndarray
    hsv: np.ndarray
    materials: tuple = ()

    @property
    def shape(self) -> tuple:
        return self.index.shape

    @property
    def foreground(self) -> np.ndarray:
        return self.index != BACKGROUND

    @property
    def foreground_pixels(self) -> int:
        return int(np.count_nonzero(self.foreground))

    @property
    def unclassified_pixels(self) -> int:
        return int(np.count_nonzero(self.index == UNCLASSIFIED))

    def __len__(self):
        return self.foreground_pixels

    def __iter__(self) -> Iterator[PixelLabel]:
        rows, cols = np.nonzero(self.foreground)
        for r, c in zip(rows.tolist(), cols.tolist()):
            i = int(self.index[r, c])
            h, s, v = (float(x) for x in self.hsv[r, c])
            yield PixelLabel(
                row=r,
                col=c,
                material_id=self.materials[i].id if i >= 0 else None,
                score=float(self.score[r, c]),
                h=h, s=s, v=v,
            )

    def to_list(self) -> list[PixelLabel]:
        return list(self)


@dataclass(frozen=True)
class MaterialResult:
    """Coverage of one material within the sample."""
    id: str
    name: str
    group: str
    pixel_count: int
    pct_of_sample: float
    score: float
    estimated_ppm: float | None = None

    def to_dict(self) -> dict:
        out = {
            "id": self.id,
            "name": self.name,
            "group": self.group,
            "pixelCount": self.pixel_count,
            "pctOfSample": self.pct_of_sample,
            "score": self.score,
        }
        if self.estimated_ppm is not None:
            out["estimatedPpm"] = self.estimated_ppm
        return out


@dataclass(frozen=True)
class DiagnosticsResult:
    """Image quality indicators, all in [0, 1]."""
    focus_score: float = 0.0
    clipping_fraction: float = 0.0
    foreground_fraction: float = 0.0

    def to_dict(self) -> dict:
        return {
            "focusScore": self.focus_score,
            "clippingFraction": self.clipping_fraction,
            "foregroundFraction": self.foreground_fraction,
        }


@dataclass(frozen=True)
class AnalysisResult:
    """
    Aggregated output of one analysis.

    Only materials with at least one pixel are listed, in catalog order.
    """
    metals: tuple = ()
    crystals: tuple = ()
    gems: tuple = ()
    diagnostics: DiagnosticsResult = field(default_factory=DiagnosticsResult)
    foreground_pixels: int = 0
    unclassified_pixels: int = 0

    @property
    def materials(self) -> tuple:
        return self.metals + self.crystals + self.gems

    @property
    def classified_pixels(self) -> int:
        return sum(m.pixel_count for m in self.materials)

    def get(self, material_id):
        key = str(material_id).casefold()
        for m in self.materials:
            if m.id.casefold() == key:
                return m
        return None

    def to_dict(self) -> dict:
        return {
            "metals": [m.to_dict() for m in self.metals],
            "crystals": [m.to_dict() for m in self.crystals],
            "gems": [m.to_dict() for m in self.gems],
            "diagnostics": self.diagnostics.to_dict(),
            "foregroundPixels": self.foreground_pixels,
            "unclassifiedPixels": self.unclassified_pixels,
        }
