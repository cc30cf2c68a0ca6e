"""
core/canonical.py -- Helpers that turn vendor version fields into canonical features.

Every AffectedFeature an updater emits goes through make_affected_feature(),
which is what guarantees that its affected_version validates under the
namespace's version format.
"""

import logging
import re
from typing import Optional

from core import versionfmt
from core.models import AffectedFeature, FeatureType, Namespace

logger = logging.getLogger("vulnsrc.canonical")

_WHITESPACE_RE = re.compile(r"\s+")


def evr_version(epoch: str, version: str, release: str) -> str:
    """Build an RPM-style version string; epoch "0" is left implicit.

    ("0", "1.2", "3") -> "1.2-3"
    ("2", "1.2", "3") -> "2:1.2-3"
    """
    if epoch == "0":
        return f"{version}-{release}"
    return f"{epoch}:{version}-{release}"


def fixed_in_version(affected_version: str) -> str:
    """The fix version implied by an affected version; empty while no fix exists."""
    if affected_version == versionfmt.MAX_VERSION:
        return ""
    return affected_version


def normalize_description(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text.strip())


def make_affected_feature(
    namespace: Namespace,
    feature_name: str,
    feature_type: FeatureType,
    version: str,
) -> Optional[AffectedFeature]:
    """Validate version under the namespace's format and build the feature.

    Returns None (after logging) when the version does not validate; callers
    drop the feature and carry on.
    """
    try:
        versionfmt.valid(namespace.version_format, version)
    except versionfmt.InvalidVersion as e:
        logger.warning("could not parse package version %r for %s: %s. skipping", version, feature_name, e)
        return None

    return AffectedFeature(
        namespace=namespace,
        feature_name=feature_name,
        feature_type=feature_type,
        affected_version=version,
        fixed_in_version=fixed_in_version(version),
    )
