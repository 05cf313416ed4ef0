"""
Command line batch analysis.

Steps:
1) Load the material catalog and (optionally) a tuning config JSON.
2) Analyse one image, or every image in a folder.
3) Write an ``*_analysis.json`` per image (plus mask / phase-map previews
   with --save-mask, material highlights with --target) and log a
   per-material summary.
"""
import argparse
import logging
from pathlib import Path

from .config import ClassifierConfig, ThresholdConfig, load_config
from .errors import ConfigError
from .image_ops.consistency import check_consistency
from .interface.tools import analyse_path
from .models.material import DEFAULT_CATALOG, load_catalog

# simple logger
logger = logging.getLogger("samplescope")
if not logger.handlers:
    handler = logging.StreamHandler()
    fmt = logging.Formatter("[%(levelname)s] %(message)s")
    handler.setFormatter(fmt)
    logger.addHandler(handler)
logger.setLevel(logging.INFO)


def log_summary(name, result) -> None:
    """Log the per-material shares and consistency status of one result."""
    d = result.diagnostics
    logger.info(f"{name}: {result.foreground_pixels} sample pixels "
                f"({d.foreground_fraction:.1%} of image), "
                f"{result.unclassified_pixels} unclassified; "
                f"focus={d.focus_score:.2f} clipping={d.clipping_fraction:.1%}")
    for m in result.materials:
        ppm = f", ~{m.estimated_ppm:,.0f} ppm" if m.estimated_ppm is not None else ""
        logger.info(f"    {m.id:<8} {m.name:<20} {m.pct_of_sample:7.2%}  score={m.score:.2f}{ppm}")

    report = check_consistency(result)
    for alert in report.alerts:
        level = logging.WARNING if alert.severity in ("warning", "info") else logging.ERROR
        logger.log(level, f"    [{alert.code}] {alert.message}")
    logger.info(f"    status: {report.status}")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="samplescope",
        description="Segment microscope images and report material coverage.",
    )
    parser.add_argument("input", type=Path, help="Image file or folder of images.")
    parser.add_argument("--catalog", type=Path, default=DEFAULT_CATALOG,
                        help="Material catalog JSON (metals/crystals/gems). "
                             "Defaults to the bundled catalog.")
    parser.add_argument("--config", type=Path, default=None,
                        help="Tuning JSON with optional 'threshold'/'classifier' sections.")
    parser.add_argument("-o", "--output", type=Path, default=None,
                        help="Output folder (default: <image>_samplescope next to each image).")
    parser.add_argument("--recursive", action="store_true",
                        help="Descend into subfolders.")
    parser.add_argument("--save-mask", action="store_true",
                        help="Also write mask overlay and phase map PNGs.")
    parser.add_argument("--target", action="append", default=[], metavar="ID",
                        help="Write a highlight PNG for this material id (repeatable).")
    parser.add_argument("--strict-config", action="store_true",
                        help="Reject a config file that omits any parameter.")
    parser.add_argument("--workers", type=int, default=1,
                        help="Classifier threads per image.")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Debug logging.")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    if args.verbose:
        logger.setLevel(logging.DEBUG)

    try:
        catalog = load_catalog(args.catalog)
        catalog.validate()
        if args.config is not None:
            thr, cls = load_config(args.config, strict=args.strict_config)
        else:
            thr, cls = ThresholdConfig(), ClassifierConfig()
        unknown = [t for t in args.target if catalog.get(t) is None]
        if unknown:
            raise ConfigError(f"Unknown target material(s): {', '.join(unknown)}")
    except ConfigError as e:
        logger.error(f"Configuration rejected: {e}")
        return 2

    try:
        results = analyse_path(args.input, catalog, thr, cls, out_dir=args.output,
                               recursive=args.recursive, save_mask=args.save_mask,
                               workers=args.workers, targets=args.target)
    except NotADirectoryError as e:
        logger.error(str(e))
        return 2
    for path, result in results.items():
        log_summary(path.name, result)
    logger.info(f"Analysed {len(results)} image(s)")
    return 0 if results else 1


if __name__ == "__main__":
    raise SystemExit(main())
