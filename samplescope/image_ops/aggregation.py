"""
Roll per-pixel labels up into per-material coverage.
"""
import numpy as np

from ..models.results import AnalysisResult, DiagnosticsResult, MaterialResult, PixelLabels

PPM_SCALE = 1_000_000


def aggregate(labels: PixelLabels) -> AnalysisResult:
    """
    Count pixels per material and summarise them.

    - ``pct_of_sample`` is the share of the foreground (0 with no foreground).
    - ``score`` is the mean per-pixel score of the material's pixels.
    - ``estimated_ppm`` (metals only) is ``pct_of_sample * 1e6``.
    - Materials with no pixels are omitted; catalog order is preserved.

    Diagnostics are left at zero; the pipeline fills them in.
    """
    fg = labels.foreground
    idx = labels.index[fg]
    pix_score = labels.score[fg].astype(np.float64)
    n_fg = int(idx.size)
    K = len(labels.materials)

    classified = idx >= 0
    counts = np.bincount(idx[classified], minlength=K)
    sums = np.bincount(idx[classified], weights=pix_score[classified], minlength=K)

    sections = {"metal": [], "crystal": [], "gem": []}
    for k, mat in enumerate(labels.materials):
        count = int(counts[k])
        if count == 0:
            continue
        pct = count / n_fg
        sections[mat.kind].append(MaterialResult(
            id=mat.id,
            name=mat.name,
            group=mat.group,
            pixel_count=count,
            pct_of_sample=pct,
            score=float(sums[k] / count),
            estimated_ppm=pct * PPM_SCALE if mat.kind == "metal" else None,
        ))

    return AnalysisResult(
        metals=tuple(sections["metal"]),
        crystals=tuple(sections["crystal"]),
        gems=tuple(sections["gem"]),
        diagnostics=DiagnosticsResult(),
        foreground_pixels=n_fg,
        unclassified_pixels=int(n_fg - classified.sum()),
    )
