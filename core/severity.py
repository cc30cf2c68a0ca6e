"""
core/severity.py -- Vendor severity vocabularies mapped onto core.models.Severity.

Unknown tokens never fail a run: they degrade to Severity.UNKNOWN with a
warning so an upstream vocabulary change shows up in the logs.
"""

import logging

from core.models import Severity

logger = logging.getLogger("vulnsrc.severity")

_ALAS_SEVERITIES: dict[str, Severity] = {
    "low": Severity.LOW,
    "medium": Severity.MEDIUM,
    "important": Severity.HIGH,
    "critical": Severity.CRITICAL,
}

# The Debian tracker appends "*" / "**" to mark urgencies it has not confirmed.
_DEBIAN_URGENCIES: dict[str, Severity] = {
    "not yet assigned": Severity.UNKNOWN,
    "end-of-life": Severity.NEGLIGIBLE,
    "unimportant": Severity.NEGLIGIBLE,
    "low": Severity.LOW,
    "low*": Severity.LOW,
    "low**": Severity.LOW,
    "medium": Severity.MEDIUM,
    "medium*": Severity.MEDIUM,
    "medium**": Severity.MEDIUM,
    "high": Severity.HIGH,
    "high*": Severity.HIGH,
    "high**": Severity.HIGH,
}


def from_alas_severity(severity: str) -> Severity:
    """Map an ALAS <severity> value to the canonical scale."""
    mapped = _ALAS_SEVERITIES.get(severity)
    if mapped is None:
        logger.warning("could not determine vulnerability severity: %r", severity)
        return Severity.UNKNOWN
    return mapped


def from_debian_urgency(urgency: str) -> Severity:
    """Map a Debian Security Tracker urgency to the canonical scale."""
    mapped = _DEBIAN_URGENCIES.get(urgency)
    if mapped is None:
        logger.warning("could not determine vulnerability severity from urgency: %r", urgency)
        return Severity.UNKNOWN
    return mapped
