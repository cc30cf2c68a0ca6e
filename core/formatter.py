"""
formatter.py -- Renders UpdateResponse to terminal output or the batch wire shape.
"""

import json
import os
import sys
from typing import Any, Optional

from .models import AffectedFeature, Severity, UpdateResponse, VulnerabilityWithAffected

W = 68  # output width

# ---------------------------------------------------------------------------
# ANSI color control
# ---------------------------------------------------------------------------


def _use_color() -> bool:
    """Return True if stdout is a TTY and color has not been disabled.

    Respects NO_COLOR env var (https://no-color.org) and checks sys.stdout.isatty().
    """
    if os.environ.get("NO_COLOR"):
        return False
    if os.environ.get("FORCE_COLOR"):
        return True
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


_color_enabled: Optional[bool] = None  # None = auto-detect


def disable_color() -> None:
    """Force-disable color output (called when --no-color flag is set)."""
    global _color_enabled
    _color_enabled = False


def _color_active() -> bool:
    if _color_enabled is not None:
        return _color_enabled
    return _use_color()


SEVERITY_COLORS = {
    Severity.CRITICAL: "\033[91m",  # red
    Severity.HIGH: "\033[93m",  # yellow
    Severity.MEDIUM: "\033[94m",  # blue
    Severity.LOW: "\033[92m",  # green
}


def _reset() -> str:
    return "\033[0m" if _color_active() else ""


def _bold() -> str:
    return "\033[1m" if _color_active() else ""


def _s_color(severity: Severity) -> str:
    return SEVERITY_COLORS.get(severity, "") if _color_active() else ""


def _bar(char: str = "═") -> str:
    return char * W


# ---------------------------------------------------------------------------
# Wire shape
# ---------------------------------------------------------------------------


def _feature_to_dict(feature: AffectedFeature) -> dict[str, Any]:
    return {
        "Namespace": {
            "Name": feature.namespace.name,
            "VersionFormat": feature.namespace.version_format,
        },
        "FeatureName": feature.feature_name,
        "FeatureType": feature.feature_type.value,
        "AffectedVersion": feature.affected_version,
        "FixedInVersion": feature.fixed_in_version,
    }


def _vulnerability_to_dict(vwa: VulnerabilityWithAffected) -> dict[str, Any]:
    vuln = vwa.vulnerability
    return {
        "Name": vuln.name,
        "Link": vuln.link,
        "Severity": vuln.severity.value,
        "Description": vuln.description,
        "Affected": [_feature_to_dict(f) for f in vwa.affected],
    }


def to_dict(response: UpdateResponse) -> dict[str, Any]:
    """The produced batch as consumed downstream. Empty flag fields mean "no progress"."""
    return {
        "Vulnerabilities": [_vulnerability_to_dict(v) for v in response.vulnerabilities],
        "FlagName": response.flag_name or "",
        "FlagValue": response.flag_value or "",
        "Notes": list(response.notes),
    }


def to_json(response: UpdateResponse) -> str:
    return json.dumps(to_dict(response), indent=2)


# ---------------------------------------------------------------------------
# Terminal renderer
# ---------------------------------------------------------------------------


def print_summary(name: str, response: UpdateResponse) -> None:
    """Print a per-severity count for one updater run, highest severity first."""
    bold = _bold()
    reset = _reset()

    counts: dict[Severity, int] = {}
    features = 0
    for vwa in response.vulnerabilities:
        counts[vwa.vulnerability.severity] = counts.get(vwa.vulnerability.severity, 0) + 1
        features += len(vwa.affected)

    print(f"\n{bold}{_bar()}{reset}")
    print(f"  {bold}{name} — {len(response.vulnerabilities)} vulnerabilities, {features} affected features{reset}")
    print(f"{bold}{_bar()}{reset}")

    for severity in sorted(counts, key=lambda s: s.rank, reverse=True):
        print(f"  {_s_color(severity)}{severity.value:<12}{reset} {counts[severity]:>6}")

    watermark = response.flag_value if response.has_flag else "unchanged"
    print(f"\n  Watermark: {watermark}")
    for note in response.notes:
        print(f"  [!] {note}")
    print(f"\n{_bar()}\n")
