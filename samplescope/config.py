"""
Default tuning parameters and the immutable configuration records built from them.

Stores the mask thresholding weights, the topology clean-up limits and the
classifier scoring constants shared by the image_ops and interface modules.

The dictionaries below are defaults only. Pipeline functions never read
module state: callers build a ThresholdConfig / ClassifierConfig and pass it
into every call.
"""
from dataclasses import asdict, dataclass, replace
import json
import logging
import math
from pathlib import Path

from .errors import ConfigError

logger = logging.getLogger(__name__)

threshold_defaults = {
    # foreground index = contrast * texture_weight + gradient * gradient_weight
    "texture_weight": 0.5,
    "gradient_weight": 0.15,
    # threshold = clamp(mean + std_multiplier * std, min, max), 0-255 domain
    "std_multiplier": 1.0,
    "min_threshold": 30.0,
    "max_threshold": 180.0,
    # background ring width as a fraction of the shorter image side
    "border_fraction": 0.05,
    # contrast against the ring mean instead of against white
    "background_relative": False,
    # topology clean-up
    "min_region_size": 100,
    "max_hole_size": 50,
    "keep_only_largest": False,
}

classifier_defaults = {
    "min_score": 0.45,
    "gold_boost": 0.85,
    "pgm_boost": 0.70,
    "gold_group": "gold",
    "pgm_group": "PGM",
    # linear falloff widths for out-of-range sub-scores
    "hue_falloff": 30.0,
    "saturation_falloff": 0.25,
    "value_falloff": 0.25,
    # gates for generic (non-boosted) scoring
    "min_saturation": 0.05,
    "min_value": 0.08,
    "max_value": 0.98,
}


def _check_keys(section, data, defaults):
    unknown = sorted(set(data) - set(defaults))
    if unknown:
        raise ConfigError(f"Unknown {section} parameter(s): {', '.join(unknown)}")


_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off")


def _cast(default, value, key):
    """
    Cast ``value`` to the type of ``default``.

    Strings are parsed; anything that would need silent repair (a bool for a
    number, a number for a bool, a fractional value for an int) is rejected.
    """
    ty = type(default)
    if ty is bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            low = value.strip().lower()
            if low in _TRUE:
                return True
            if low in _FALSE:
                return False
        raise ConfigError(f"{key}: cannot interpret {value!r} as a boolean")
    if isinstance(value, bool):
        raise ConfigError(f"{key}: expected {ty.__name__}, got boolean {value!r}")
    if ty is str:
        if not isinstance(value, str):
            raise ConfigError(f"{key}: expected a string, got {value!r}")
        return value
    try:
        num = float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{key}: cannot convert {value!r} to {ty.__name__}") from e
    if not math.isfinite(num):
        raise ConfigError(f"{key}: must be finite, got {value!r}")
    if ty is int:
        if not num.is_integer():
            raise ConfigError(f"{key}: expected an integer, got {value!r}")
        return int(num)
    return num


class _ConfigMixin:
    _defaults: dict = {}
    _section = ""

    @classmethod
    def from_dict(cls, data: dict | None, strict: bool = False):
        """
        Build a config from a mapping.

        Parameters
        ----------
        data : dict or None
            Parameter values; strings are parsed to the default's type.
        strict : bool
            Require every parameter to be present. Otherwise missing ones
            are filled from the defaults.

        Raises
        ------
        ConfigError
            On unknown or (in strict mode) missing keys, values that cannot be
            cast, or values outside their valid domain.
        """
        data = dict(data or {})
        _check_keys(cls._section, data, cls._defaults)
        if strict:
            missing = [k for k in cls._defaults if k not in data]
            if missing:
                raise ConfigError(f"Missing {cls._section} parameter(s): {', '.join(missing)}")
        values = {k: _cast(cls._defaults[k], data.get(k, v), k)
                  for k, v in cls._defaults.items()}
        return cls(**values)

    def _check_finite(self):
        for key, val in asdict(self).items():
            if isinstance(val, (int, float)) and not isinstance(val, bool) and not math.isfinite(val):
                raise ConfigError(f"{key} must be finite, got {val}")

    def with_value(self, key, value):
        """Return a copy with ``key`` set, cast to the type of its default."""
        if key not in self._defaults:
            raise KeyError(key)
        return replace(self, **{key: _cast(self._defaults[key], value, key)})

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class ThresholdConfig(_ConfigMixin):
    """
    Parameters for the adaptive foreground mask and its topology clean-up.

    Attributes
    ----------
    texture_weight, gradient_weight : float
        Non-negative weights of the contrast and gradient terms.
    std_multiplier : float
        ``k`` in ``mean + k * std``.
    min_threshold, max_threshold : float
        Clamp range of the threshold, ``0 <= min <= max <= 255``.
    border_fraction : float
        Background ring width as a fraction of the shorter side, in (0, 0.5].
    background_relative : bool
        Use ``|gray - ring mean|`` as the contrast term instead of ``255 - gray``.
    min_region_size : int
        Components smaller than this are dropped; 0 keeps everything.
    max_hole_size : int
        Enclosed background components up to this area are filled; 0 disables.
    keep_only_largest : bool
        Keep only the largest component after size filtering.
    """
    texture_weight: float = threshold_defaults["texture_weight"]
    gradient_weight: float = threshold_defaults["gradient_weight"]
    std_multiplier: float = threshold_defaults["std_multiplier"]
    min_threshold: float = threshold_defaults["min_threshold"]
    max_threshold: float = threshold_defaults["max_threshold"]
    border_fraction: float = threshold_defaults["border_fraction"]
    background_relative: bool = threshold_defaults["background_relative"]
    min_region_size: int = threshold_defaults["min_region_size"]
    max_hole_size: int = threshold_defaults["max_hole_size"]
    keep_only_largest: bool = threshold_defaults["keep_only_largest"]

    _defaults = threshold_defaults
    _section = "threshold"

    def __post_init__(self):
        self._check_finite()
        if self.texture_weight < 0 or self.gradient_weight < 0:
            raise ConfigError("texture_weight and gradient_weight must be >= 0")
        if not (0.0 <= self.min_threshold <= self.max_threshold <= 255.0):
            raise ConfigError(
                f"Need 0 <= min_threshold <= max_threshold <= 255, "
                f"got {self.min_threshold}, {self.max_threshold}")
        if not (0.0 < self.border_fraction <= 0.5):
            raise ConfigError(
                f"border_fraction must be in (0, 0.5], got {self.border_fraction}")
        if self.min_region_size < 0:
            raise ConfigError("min_region_size must be >= 0")
        if self.max_hole_size < 0:
            raise ConfigError("max_hole_size must be >= 0")


@dataclass(frozen=True)
class ClassifierConfig(_ConfigMixin):
    """
    Scoring constants for the per-pixel material classifier.

    ``gold_group`` and ``pgm_group`` name the catalog groups the boosted
    heuristics are restricted to (compared case-insensitively).
    """
    min_score: float = classifier_defaults["min_score"]
    gold_boost: float = classifier_defaults["gold_boost"]
    pgm_boost: float = classifier_defaults["pgm_boost"]
    gold_group: str = classifier_defaults["gold_group"]
    pgm_group: str = classifier_defaults["pgm_group"]
    hue_falloff: float = classifier_defaults["hue_falloff"]
    saturation_falloff: float = classifier_defaults["saturation_falloff"]
    value_falloff: float = classifier_defaults["value_falloff"]
    min_saturation: float = classifier_defaults["min_saturation"]
    min_value: float = classifier_defaults["min_value"]
    max_value: float = classifier_defaults["max_value"]

    _defaults = classifier_defaults
    _section = "classifier"

    def __post_init__(self):
        self._check_finite()
        for key in ("min_score", "gold_boost", "pgm_boost",
                    "min_saturation", "min_value", "max_value"):
            val = getattr(self, key)
            if not (0.0 <= val <= 1.0):
                raise ConfigError(f"{key} must be in [0, 1], got {val}")
        if self.min_value > self.max_value:
            raise ConfigError("min_value must not exceed max_value")
        for key in ("hue_falloff", "saturation_falloff", "value_falloff"):
            if getattr(self, key) <= 0:
                raise ConfigError(f"{key} must be > 0")
        if not self.gold_group.strip() or not self.pgm_group.strip():
            raise ConfigError("gold_group and pgm_group must be non-empty")


def load_config(path, strict: bool = False) -> tuple[ThresholdConfig, ClassifierConfig]:
    """
    Read a JSON file with ``"threshold"`` and ``"classifier"`` sections.

    Missing sections and keys fall back to the defaults unless ``strict`` is
    set, in which case both sections must list every parameter.
    """
    p = Path(path)
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Could not read config file {p}: {e}")
        raise ConfigError(f"Could not read config file {p}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"{p}: top level must be a JSON object")
    _check_keys("config", data, {"threshold": None, "classifier": None})

    try:
        if strict:
            missing = [s for s in ("threshold", "classifier") if s not in data]
            if missing:
                raise ConfigError(f"Missing config section(s): {', '.join(missing)}")
        thr = ThresholdConfig.from_dict(data.get("threshold"), strict=strict)
        cls = ClassifierConfig.from_dict(data.get("classifier"), strict=strict)
    except ConfigError as e:
        logger.error(f"{p}: {e}")
        raise
    logger.debug(f"Loaded config from {p}")
    return thr, cls
