"""
Rule-based sanity checks on a finished analysis.

The checks look at the diagnostics (focus, clipping, sample coverage) and at
implausibly high gold or platinum shares, and suggest a quality status for
the report:

- ``"Invalid"`` when any alert is critical,
- ``"Preliminary"`` when any alert is an error,
- ``"Official"`` otherwise (warnings do not downgrade).
"""
from dataclasses import dataclass

from ..models.results import AnalysisResult

SEVERITIES = ("info", "warning", "error", "critical")

thresholds = {
    "focus_good": 0.5,
    "focus_acceptable": 0.3,
    "clipping_good": 0.05,
    "clipping_acceptable": 0.15,
    "foreground_min_good": 0.10,
    "foreground_max_good": 0.90,
    "foreground_min_acceptable": 0.03,
    "foreground_max_acceptable": 0.97,
    "gold_pct_max": 0.10,
    "platinum_pct_max": 0.05,
}


@dataclass(frozen=True)
class ConsistencyAlert:
    severity: str
    code: str
    message: str
    recommendation: str = ""


@dataclass(frozen=True)
class ConsistencyReport:
    alerts: tuple = ()
    status: str = "Official"

    def has(self, severity: str) -> bool:
        return any(a.severity == severity for a in self.alerts)

    @property
    def is_consistent(self) -> bool:
        return not (self.has("critical") or self.has("error"))

    def summary(self) -> str:
        if not self.alerts:
            return "No consistency problems detected."
        lines = [f"Consistency check: {len(self.alerts)} alert(s)"]
        for sev in reversed(SEVERITIES):
            n = sum(1 for a in self.alerts if a.severity == sev)
            if n:
                lines.append(f"  - {sev}: {n}")
        lines.append(f"Suggested status: {self.status}")
        return "\n".join(lines)


def _check_focus(d, alerts):
    if d.focus_score < thresholds["focus_acceptable"]:
        alerts.append(ConsistencyAlert(
            "error", "FOCUS_CRITICAL",
            f"Image is badly out of focus (focus={d.focus_score:.2f}).",
            "Refocus the microscope and capture a new image."))
    elif d.focus_score < thresholds["focus_good"]:
        alerts.append(ConsistencyAlert(
            "warning", "FOCUS_LOW",
            f"Focus below ideal (focus={d.focus_score:.2f}).",
            "Refocus for better precision."))


def _check_exposure(d, alerts):
    if d.clipping_fraction > thresholds["clipping_acceptable"]:
        alerts.append(ConsistencyAlert(
            "error", "CLIPPING_HIGH",
            f"Heavy channel clipping ({d.clipping_fraction:.1%}); colour information lost.",
            "Reduce exposure or adjust the illumination."))
    elif d.clipping_fraction > thresholds["clipping_good"]:
        alerts.append(ConsistencyAlert(
            "warning", "CLIPPING_MODERATE",
            f"Moderate channel clipping ({d.clipping_fraction:.1%}).",
            "Consider adjusting exposure."))


def _check_mask(d, alerts):
    fg = d.foreground_fraction
    if fg < thresholds["foreground_min_acceptable"]:
        alerts.append(ConsistencyAlert(
            "critical", "MASK_NO_SAMPLE",
            f"Almost no sample detected ({fg:.1%}).",
            "Check that a sample is in the field of view."))
    elif fg < thresholds["foreground_min_good"]:
        alerts.append(ConsistencyAlert(
            "warning", "MASK_LOW_SAMPLE",
            f"Little sample detected ({fg:.1%}).",
            "Place more sample in the field or change magnification."))
    elif fg > thresholds["foreground_max_acceptable"]:
        alerts.append(ConsistencyAlert(
            "error", "MASK_TOO_MUCH",
            f"Nearly the whole image is sample ({fg:.1%}); segmentation or background problem.",
            "Make sure the background is visible and evenly lit."))
    elif fg > thresholds["foreground_max_good"]:
        alerts.append(ConsistencyAlert(
            "warning", "MASK_HIGH_SAMPLE",
            f"Large sample coverage ({fg:.1%}); background may be inadequate.",
            "Keep the background bright and uniform."))


def _check_metals(result, gold_id, platinum_id, alerts):
    for metal in result.metals:
        key = metal.id.casefold()
        if key == gold_id.casefold() and metal.pct_of_sample > thresholds["gold_pct_max"]:
            alerts.append(ConsistencyAlert(
                "warning", "AU_HIGH",
                f"Very high {metal.id} share ({metal.pct_of_sample:.2%}).",
                "High gold contents are rare; check for colour interference."))
        elif key == platinum_id.casefold() and metal.pct_of_sample > thresholds["platinum_pct_max"]:
            alerts.append(ConsistencyAlert(
                "warning", "PT_HIGH",
                f"Very high {metal.id} share ({metal.pct_of_sample:.2%}).",
                "High PGM contents are rare; check the illumination."))


def check_consistency(result: AnalysisResult, gold_id: str = "Au",
                      platinum_id: str = "Pt") -> ConsistencyReport:
    """Run every rule against ``result`` and return the alerts and suggested status."""
    alerts = []
    d = result.diagnostics
    _check_focus(d, alerts)
    _check_exposure(d, alerts)
    _check_mask(d, alerts)
    _check_metals(result, gold_id, platinum_id, alerts)

    severities = {a.severity for a in alerts}
    if "critical" in severities:
        status = "Invalid"
    elif "error" in severities:
        status = "Preliminary"
    else:
        status = "Official"
    return ConsistencyReport(alerts=tuple(alerts), status=status)
