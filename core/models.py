"""
core/models.py -- Canonical vulnerability model shared by every updater.

These are plain data containers. Vendor-specific shapes (ALAS records, the
Debian tracker JSON) never leave vulnsrc/; by the time data reaches this
module it has been normalized to the types below.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

# ---------------------------------------------------------------------------
# Domain constants
# ---------------------------------------------------------------------------

# Advisory names the Debian tracker marks as real CVEs. Temporary tracker IDs
# ("TEMP-0000000-...") are skipped.
CVE_PREFIX = "CVE-"


class Severity(str, Enum):
    """Canonical severity scale, declared lowest to highest."""

    UNKNOWN = "Unknown"
    NEGLIGIBLE = "Negligible"
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_ORDER.index(self)

    def compare(self, other: "Severity") -> int:
        """Return -1, 0 or 1 depending on how self orders against other."""
        return (self.rank > other.rank) - (self.rank < other.rank)


_SEVERITY_ORDER: list[Severity] = list(Severity)


def max_severity(a: Severity, b: Severity) -> Severity:
    return a if a.compare(b) >= 0 else b


class FeatureType(str, Enum):
    BINARY = "Binary"
    SOURCE = "Source"


@dataclass(frozen=True)
class Namespace:
    name: str  # e.g. "amzn:2", "debian:10"
    version_format: str  # "rpm" | "dpkg"


@dataclass
class Vulnerability:
    name: str
    link: str = ""
    severity: Severity = Severity.UNKNOWN
    description: str = ""


@dataclass
class AffectedFeature:
    """One (namespace, package) pair a vulnerability applies to.

    affected_version is either a concrete version or versionfmt.MAX_VERSION.
    fixed_in_version is empty exactly when affected_version is MAX_VERSION.
    """

    namespace: Namespace
    feature_name: str
    feature_type: FeatureType
    affected_version: str
    fixed_in_version: str = ""


@dataclass
class VulnerabilityWithAffected:
    vulnerability: Vulnerability
    affected: list[AffectedFeature] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.vulnerability.name


@dataclass
class UpdateResponse:
    """Result of one Updater.update() call. Nothing here is persisted by the updater.

    flag_name / flag_value carry the new watermark. Both are None when the
    run made no forward progress and the stored watermark must stay as is.
    """

    vulnerabilities: list[VulnerabilityWithAffected] = field(default_factory=list)
    flag_name: Optional[str] = None
    flag_value: Optional[str] = None
    notes: list[str] = field(default_factory=list)

    @property
    def has_flag(self) -> bool:
        return bool(self.flag_name) and self.flag_value is not None
