"""
File-level helpers around the pure pipeline: loading images, discovering
folders of captures and writing results next to them.
Used by the command line tool; none of this is needed for in-memory use.
"""
import json
import logging
from pathlib import Path

import numpy as np
from PIL import Image, UnidentifiedImageError

from ..errors import InvalidImageError
from ..image_ops.visualisation import label_map_to_rgb, mask_preview, target_heatmap
from .pipeline import analyze_scene

logger = logging.getLogger(__name__)

IMAGE_SUFFIXES = {".png", ".jpg", ".jpeg", ".bmp", ".tif", ".tiff"}


#==== Loading =================================================================

def load_image(path) -> np.ndarray:
    """
    Read an image file as an (H, W, 3) uint8 RGB array.

    Any Pillow mode (palette, greyscale, RGBA, 16-bit ...) is converted to RGB.

    Raises
    ------
    InvalidImageError
        If the file is missing or not a readable image.
    """
    p = Path(path)
    try:
        with Image.open(p) as im:
            arr = np.asarray(im.convert("RGB"))
    except (OSError, UnidentifiedImageError) as e:
        logger.error(f"Could not read image {p}: {e}")
        raise InvalidImageError(f"Could not read image {p}: {e}") from e
    if arr.shape[0] == 0 or arr.shape[1] == 0:
        raise InvalidImageError(f"Image {p} has zero area")
    return arr


def discover_images(root, recursive: bool = False) -> list[Path]:
    """
    Image files under ``root`` (or ``root`` itself when it is a file).

    Parameters
    ----------
    root : Path or str
    recursive : bool
        Descend into subdirectories. Folders named like output folders
        (``*_samplescope``) are skipped to avoid re-analysing previews.

    Returns
    -------
    list[Path]
        Sorted, de-duplicated absolute paths.
    """
    root = Path(root)
    if root.is_file():
        return [root.resolve()]
    if not root.is_dir():
        raise NotADirectoryError(f"{root} is not a valid file or directory.")

    pattern = root.rglob("*") if recursive else root.glob("*")
    found = []
    for p in pattern:
        if not p.is_file() or p.suffix.lower() not in IMAGE_SUFFIXES:
            continue
        rel = p.relative_to(root).as_posix().lower()
        if "_samplescope" in rel:
            continue
        found.append(p.resolve())
    return sorted(set(found))


#==== Saving ==================================================================

def save_rgb(arr: np.ndarray, path) -> Path:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    Image.fromarray(np.ascontiguousarray(arr, dtype=np.uint8)).save(p)
    return p


def write_result_json(result, path, source=None) -> Path:
    """Write ``result.to_dict()`` (plus the source image path) as JSON."""
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    payload = result.to_dict()
    if source is not None:
        payload = {"source": str(source), **payload}
    with p.open("w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)
    return p


def output_dir_for(image_path, out_root=None) -> Path:
    """``out_root`` if given, else ``<image folder>/<image stem>_samplescope``."""
    image_path = Path(image_path)
    if out_root is not None:
        return Path(out_root)
    return image_path.parent / f"{image_path.stem}_samplescope"


#==== Analysis ================================================================

def analyse_file(image_path, catalog, threshold_config=None, classifier_config=None,
                 out_dir=None, save_mask: bool = False, workers: int = 1, targets=()):
    """
    Load, analyse and write the JSON result for a single image.

    With ``save_mask`` the mask overlay and phase map are written too; each id
    in ``targets`` adds a ``<stem>_<id>_target.png`` highlight of that material.

    Returns
    -------
    (AnalysisResult, list[Path])
        The result and every file written.
    """
    image_path = Path(image_path)
    image = load_image(image_path)
    scene = analyze_scene(image, threshold_config, classifier_config, catalog, workers=workers)

    out = output_dir_for(image_path, out_dir)
    written = [write_result_json(scene.result, out / f"{image_path.stem}_analysis.json",
                                 source=image_path)]
    if save_mask:
        written.append(save_rgb(mask_preview(image, scene.mask), out / f"{image_path.stem}_mask.png"))
        written.append(save_rgb(label_map_to_rgb(scene.labels), out / f"{image_path.stem}_phases.png"))
    for material_id in targets:
        heat = target_heatmap(image, scene.labels, material_id)
        written.append(save_rgb(heat, out / f"{image_path.stem}_{material_id}_target.png"))
    for p in written:
        logger.info(f"Wrote {p}")
    return scene.result, written


def analyse_path(path, catalog, threshold_config=None, classifier_config=None,
                 out_dir=None, recursive: bool = False, save_mask: bool = False,
                 workers: int = 1, targets=()) -> dict:
    """
    Analyse one image or every image in a folder.

    Images that cannot be read are logged and skipped; other errors
    propagate.

    Returns
    -------
    dict[Path, AnalysisResult]
    """
    images = discover_images(path, recursive=recursive)
    if not images:
        logger.warning(f"No images found under {path}")
    results = {}
    for i, img in enumerate(images, 1):
        logger.info(f"[{i}/{len(images)}] {img.name}")
        try:
            result, _ = analyse_file(img, catalog, threshold_config, classifier_config,
                                     out_dir=out_dir, save_mask=save_mask, workers=workers,
                                     targets=targets)
        except InvalidImageError as e:
            logger.warning(f"Skipping {img}: {e}")
            continue
        results[img] = result
    return results
