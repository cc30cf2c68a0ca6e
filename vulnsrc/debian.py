"""
vulnsrc/debian.py -- Debian Security Tracker updater.

The tracker publishes one JSON document:

    {package: {advisory: {"description": str,
                          "releases": {release: {"fixed_version": str,
                                                 "status": str,
                                                 "urgency": str}}}}}

It carries no modification timestamps, so the watermark is the SHA-256 of
the whole document. The digest is computed while json.load() consumes the
body (HashingReader), so the document is read once. An unchanged hash means
no forward progress: the run returns an empty batch and no flag.

Each (package, advisory, release) triple becomes at most one AffectedFeature;
triples for the same advisory are merged into one vulnerability whose
severity is the highest urgency seen.
"""

import hashlib
import json
import logging
from collections.abc import Iterable, Iterator
from typing import Optional

import requests

from core import versionfmt
from core.canonical import make_affected_feature, normalize_description
from core.errors import CouldNotDownload, CouldNotParse
from core.fetcher import get_with_user_agent, status_2xx
from core.models import (
    CVE_PREFIX,
    FeatureType,
    Namespace,
    Severity,
    UpdateResponse,
    Vulnerability,
    VulnerabilityWithAffected,
    max_severity,
)
from core.severity import from_debian_urgency
from vulndb.state import Datastore, read_watermark

logger = logging.getLogger("vulnsrc.debian")

UPDATER_FLAG = "debianUpdater"
SOURCE_NAME = "Debian"

_CHUNK_SIZE = 64 * 1024

# Release codename -> number used in namespace names ("debian:10").
DEBIAN_RELEASES: dict[str, str] = {
    "squeeze": "6",
    "wheezy": "7",
    "jessie": "8",
    "stretch": "9",
    "buster": "10",
    "bullseye": "11",
    "bookworm": "12",
    "trixie": "13",
    "sid": "unstable",
}


class HashingReader:
    """Read-only file object over byte chunks; every byte handed out is also hashed."""

    def __init__(self, chunks: Iterable[bytes], digest=None) -> None:
        self._chunks: Iterator[bytes] = iter(chunks)
        self._buffer = b""
        self.digest = digest if digest is not None else hashlib.sha256()

    def read(self, size: Optional[int] = -1) -> bytes:
        if size is None or size < 0:
            data = self._buffer + b"".join(self._chunks)
            self._buffer = b""
        else:
            while len(self._buffer) < size:
                chunk = next(self._chunks, None)
                if chunk is None:
                    break
                self._buffer += chunk
            data, self._buffer = self._buffer[:size], self._buffer[size:]
        self.digest.update(data)
        return data

    def hexdigest(self) -> str:
        return self.digest.hexdigest()


def unknown_release_note(release: str) -> str:
    return f"Debian {release} is not mapped to any version number (eg. Jessie->8). Please update me."


def _release_version(release_node: dict) -> Optional[str]:
    """The affected version a release entry implies, or None when it implies nothing.

    open      vulnerable in the latest package of the release: MAX_VERSION
    resolved  fixed in fixed_version; "0" means the release was never affected
    anything else is skipped
    """
    status = release_node.get("status", "")
    if status == "open":
        return versionfmt.MAX_VERSION
    if status == "resolved":
        fixed_version = release_node.get("fixed_version") or ""
        if not isinstance(fixed_version, str):
            logger.warning("fixed_version %r is not a string, skipping", fixed_version)
            return None
        if fixed_version == "0":
            return None
        return fixed_version
    return None


def _str_field(node: dict, key: str) -> str:
    value = node.get(key) or ""
    return value if isinstance(value, str) else ""


def parse_tracker_json(data: dict, cve_url_prefix: str) -> tuple[list[VulnerabilityWithAffected], set[str]]:
    """Canonicalize the decoded tracker document.

    Returns the merged vulnerabilities and the release names that are not
    in DEBIAN_RELEASES.
    """
    vulnerabilities: dict[str, VulnerabilityWithAffected] = {}
    unknown_releases: set[str] = set()

    for pkg_name, pkg_node in data.items():
        if not isinstance(pkg_node, dict):
            logger.warning("unexpected entry for package %r in Debian JSON, skipping", pkg_name)
            continue
        for vuln_name, vuln_node in pkg_node.items():
            if not isinstance(vuln_node, dict):
                continue
            releases = vuln_node.get("releases") or {}
            if not isinstance(releases, dict):
                logger.warning("unexpected releases for %s in package %r, skipping", vuln_name, pkg_name)
                continue
            for release_name, release_node in releases.items():
                if not isinstance(release_node, dict):
                    continue
                release_number = DEBIAN_RELEASES.get(release_name)
                if release_number is None:
                    unknown_releases.add(release_name)
                    continue

                # Temporary tracker IDs and undetermined statuses are skipped.
                if not vuln_name.startswith(CVE_PREFIX) or release_node.get("status") == "undetermined":
                    continue

                # The entry only enters the batch once it has a feature, but a
                # stored one keeps every severity merged into it.
                vwa = vulnerabilities.get(vuln_name)
                if vwa is None:
                    vwa = VulnerabilityWithAffected(
                        vulnerability=Vulnerability(
                            name=vuln_name,
                            link=f"{cve_url_prefix}/{vuln_name}",
                            severity=Severity.UNKNOWN,
                            description=normalize_description(_str_field(vuln_node, "description")),
                        )
                    )
                vwa.vulnerability.severity = max_severity(
                    vwa.vulnerability.severity,
                    from_debian_urgency(_str_field(release_node, "urgency")),
                )

                version = _release_version(release_node)
                if version is None:
                    continue

                namespace = Namespace(name=f"debian:{release_number}", version_format=versionfmt.DPKG)
                feature = make_affected_feature(namespace, pkg_name, FeatureType.SOURCE, version)
                if feature is None:
                    continue

                vwa.affected.append(feature)
                vulnerabilities[vuln_name] = vwa

    return list(vulnerabilities.values()), unknown_releases


def build_response(chunks: Iterable[bytes], latest_known_hash: str, cve_url_prefix: str) -> UpdateResponse:
    """Decode the tracker document, hashing it on the way, and canonicalize it if it changed."""
    reader = HashingReader(chunks)
    try:
        data = json.load(reader)
    except ValueError as e:
        logger.error("could not unmarshal Debian's JSON: %s", e)
        raise CouldNotParse("could not decode Debian JSON", source=SOURCE_NAME) from e
    if not isinstance(data, dict):
        logger.error("could not unmarshal Debian's JSON: top level is %s", type(data).__name__)
        raise CouldNotParse("unexpected Debian JSON document", source=SOURCE_NAME)

    new_hash = reader.hexdigest()
    if new_hash == latest_known_hash:
        logger.debug("Debian: no update, skip")
        return UpdateResponse()

    vulnerabilities, unknown_releases = parse_tracker_json(data, cve_url_prefix)
    response = UpdateResponse(vulnerabilities=vulnerabilities, flag_name=UPDATER_FLAG, flag_value=new_hash)
    for release in sorted(unknown_releases):
        note = unknown_release_note(release)
        response.notes.append(note)
        logger.warning(note)
    return response


class DebianUpdater:
    def __init__(self, json_uri: str, cve_url_prefix: str) -> None:
        self.json_uri = json_uri
        self.cve_url_prefix = cve_url_prefix.rstrip("/")

    def update(self, datastore: Datastore) -> UpdateResponse:
        logger.info("Start fetching vulnerabilities for %s", SOURCE_NAME)
        latest_hash = read_watermark(datastore, UPDATER_FLAG)

        try:
            with get_with_user_agent(self.json_uri, stream=True) as resp:
                if not status_2xx(resp):
                    logger.error("could not download Debian's update: HTTP %d", resp.status_code)
                    raise CouldNotDownload(
                        "could not download Debian JSON",
                        source=SOURCE_NAME,
                        uri=self.json_uri,
                        status_code=resp.status_code,
                    )
                return build_response(resp.iter_content(chunk_size=_CHUNK_SIZE), latest_hash, self.cve_url_prefix)
        except requests.RequestException as e:
            logger.error("could not download Debian's update: %s", e)
            raise CouldNotDownload("could not download Debian JSON", source=SOURCE_NAME, uri=self.json_uri) from e

    def clean(self) -> None:
        pass
