"""
Material definitions and the catalog they are loaded into.

A catalog file is JSON shaped like::

    {
      "metals":   [{"id": "Au", "name": "Gold", "group": "gold",
                    "optical": {"hsv": {"h": [35, 75], "s": [0.3, 1.0], "v": [0.4, 1.0]}}},
                   ...],
      "crystals": [...],
      "gems":     [...]
    }

Hue bounds are degrees on the circle; a range with ``min > max`` wraps
through 0 (``[350, 10]``). Saturation and value are 0-1 fractions. Entries
are validated once at load and then shared read-only.
"""
from dataclasses import dataclass
import json
import logging
import math
from pathlib import Path

from ..errors import ConfigError

logger = logging.getLogger(__name__)

KINDS = ("metal", "crystal", "gem")
SECTIONS = {"metals": "metal", "crystals": "crystal", "gems": "gem"}

DEFAULT_CATALOG = Path(__file__).resolve().parent.parent / "data" / "catalog.json"

_ENTRY_KEYS = {"id", "name", "group", "optical"}
_HSV_KEYS = {"h", "s", "v"}


def _read_range(entry_id, axis, raw, lo, hi):
    """Parse a ``[min, max]`` pair and check it lies inside ``[lo, hi]``."""
    if not isinstance(raw, (list, tuple)) or len(raw) != 2:
        raise ConfigError(f"{entry_id}: '{axis}' must be a [min, max] pair, got {raw!r}")
    try:
        a, b = float(raw[0]), float(raw[1])
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{entry_id}: '{axis}' bounds must be numbers, got {raw!r}") from e
    if not (math.isfinite(a) and math.isfinite(b)):
        raise ConfigError(f"{entry_id}: '{axis}' bounds must be finite")
    if not (lo <= a <= hi and lo <= b <= hi):
        raise ConfigError(f"{entry_id}: '{axis}' bounds {raw!r} outside [{lo}, {hi}]")
    return a, b


@dataclass(frozen=True)
class MaterialDefinition:
    """
    Optical signature of one catalog material.

    Attributes
    ----------
    id : str
        Short unique identifier (e.g. 'Au').
    name : str
        Display name.
    group : str
        Classification group; the gold/PGM heuristics select on this.
    kind : str
        One of 'metal', 'crystal', 'gem'.
    hue_range : tuple[float, float]
        Degrees, 0-360. ``min > max`` wraps through 0.
    saturation_range, value_range : tuple[float, float]
        0-1 fractions, ``min <= max``.
    """
    id: str
    name: str
    group: str
    kind: str
    hue_range: tuple
    saturation_range: tuple
    value_range: tuple

    def __post_init__(self):
        self.validate()
        for name in ("hue_range", "saturation_range", "value_range"):
            lo, hi = getattr(self, name)
            object.__setattr__(self, name, (float(lo), float(hi)))

    @property
    def hue_wraps(self) -> bool:
        return self.hue_range[0] > self.hue_range[1]

    def validate(self):
        """Raise ConfigError if any field is missing or out of its domain."""
        if not isinstance(self.id, str) or not self.id.strip():
            raise ConfigError("Material id must be a non-empty string")
        if self.kind not in KINDS:
            raise ConfigError(f"{self.id}: kind must be one of {KINDS}, got {self.kind!r}")
        _read_range(self.id, "h", self.hue_range, 0.0, 360.0)
        for axis, rng in (("s", self.saturation_range), ("v", self.value_range)):
            a, b = _read_range(self.id, axis, rng, 0.0, 1.0)
            if a > b:
                raise ConfigError(f"{self.id}: '{axis}' min {a} exceeds max {b}")

    @classmethod
    def from_dict(cls, entry: dict, kind: str) -> "MaterialDefinition":
        """
        Build a definition from one catalog entry.

        Unknown or missing keys are rejected rather than defaulted.
        """
        if not isinstance(entry, dict):
            raise ConfigError(f"Catalog entry must be an object, got {type(entry).__name__}")
        entry_id = entry.get("id", "<missing id>")

        missing = sorted(_ENTRY_KEYS - set(entry))
        if missing:
            raise ConfigError(f"{entry_id}: missing field(s) {', '.join(missing)}")
        unknown = sorted(set(entry) - _ENTRY_KEYS)
        if unknown:
            raise ConfigError(f"{entry_id}: unknown field(s) {', '.join(unknown)}")

        optical = entry["optical"]
        if not isinstance(optical, dict) or set(optical) != {"hsv"}:
            raise ConfigError(f"{entry_id}: 'optical' must contain exactly an 'hsv' block")
        hsv = optical["hsv"]
        if not isinstance(hsv, dict) or set(hsv) != _HSV_KEYS:
            raise ConfigError(f"{entry_id}: 'optical.hsv' must contain exactly h, s and v")

        for key in ("id", "name", "group"):
            if not isinstance(entry[key], str):
                raise ConfigError(f"{entry_id}: '{key}' must be a string")

        return cls(
            id=entry["id"],
            name=entry["name"],
            group=entry["group"],
            kind=kind,
            hue_range=_read_range(entry_id, "h", hsv["h"], 0.0, 360.0),
            saturation_range=_read_range(entry_id, "s", hsv["s"], 0.0, 1.0),
            value_range=_read_range(entry_id, "v", hsv["v"], 0.0, 1.0),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "group": self.group,
            "optical": {"hsv": {"h": list(self.hue_range),
                                "s": list(self.saturation_range),
                                "v": list(self.value_range)}},
        }


@dataclass(frozen=True)
class MaterialCatalog:
    """
    Ordered, immutable set of materials partitioned by kind.

    Iteration order (metals, then crystals, then gems, each in file order)
    is the tie-break order used by the classifier.
    """
    metals: tuple = ()
    crystals: tuple = ()
    gems: tuple = ()

    def __post_init__(self):
        object.__setattr__(self, "metals", tuple(self.metals))
        object.__setattr__(self, "crystals", tuple(self.crystals))
        object.__setattr__(self, "gems", tuple(self.gems))
        seen = set()
        for m in self.all_materials():
            key = m.id.casefold()
            if key in seen:
                raise ConfigError(f"Duplicate material id {m.id!r} in catalog")
            seen.add(key)

    def all_materials(self) -> tuple:
        return self.metals + self.crystals + self.gems

    def __len__(self):
        return len(self.metals) + len(self.crystals) + len(self.gems)

    @property
    def is_empty(self) -> bool:
        return len(self) == 0

    def get(self, material_id):
        """Look up a material by id (case-insensitive); None if absent."""
        key = str(material_id).casefold()
        for m in self.all_materials():
            if m.id.casefold() == key:
                return m
        return None

    def in_group(self, group: str) -> list[int]:
        """Indices into all_materials() whose group matches (case-insensitive)."""
        g = group.casefold()
        return [i for i, m in enumerate(self.all_materials()) if m.group.casefold() == g]

    def validate(self):
        """Re-check every entry; raise ConfigError on an empty or invalid catalog."""
        if self.is_empty:
            raise ConfigError("Material catalog is empty")
        for m in self.all_materials():
            m.validate()

    @classmethod
    def from_dict(cls, data: dict) -> "MaterialCatalog":
        if not isinstance(data, dict):
            raise ConfigError("Catalog must be a JSON object with metals/crystals/gems")
        unknown = sorted(set(data) - set(SECTIONS))
        if unknown:
            raise ConfigError(f"Unknown catalog section(s): {', '.join(unknown)}")

        parts = {}
        for section, kind in SECTIONS.items():
            entries = data.get(section, [])
            if not isinstance(entries, list):
                raise ConfigError(f"Catalog section '{section}' must be a list")
            parts[section] = tuple(MaterialDefinition.from_dict(e, kind) for e in entries)
        return cls(**parts)

    def to_dict(self) -> dict:
        return {
            "metals": [m.to_dict() for m in self.metals],
            "crystals": [m.to_dict() for m in self.crystals],
            "gems": [m.to_dict() for m in self.gems],
        }


def load_catalog(path) -> MaterialCatalog:
    """
    Load and validate a material catalog JSON file.

    Raises
    ------
    ConfigError
        If the file cannot be read or any entry is malformed.
    """
    p = Path(path)
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Could not read catalog {p}: {e}")
        raise ConfigError(f"Could not read catalog {p}: {e}") from e

    try:
        catalog = MaterialCatalog.from_dict(data)
    except ConfigError as e:
        logger.error(f"Rejected catalog {p}: {e}")
        raise

    logger.info(f"Loaded catalog {p.name}: {len(catalog.metals)} metals, "
                f"{len(catalog.crystals)} crystals, {len(catalog.gems)} gems")
    return catalog
