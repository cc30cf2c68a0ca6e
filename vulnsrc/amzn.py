"""
vulnsrc/amzn.py -- Amazon Linux Security Advisories (ALAS) updater.

ALAS are published as the updateinfo document of each release's package
repository. Locating it takes three requests:

  mirror.list              plain text, one mirror base URI per line
  <mirror>/repodata/repomd.xml
                           lists the repository data files; the one with
                           type="updateinfo" points at the advisories
  <mirror>/<href>          updateinfo.xml, usually gzip-compressed

Advisories carry an "updated" timestamp in the fixed-width form
"YYYY-MM-DD hh:mm", so plain string comparison orders them. The watermark is
the newest timestamp accepted by the previous run.

Two instances are registered (see vulnsrc/__init__.py): Amazon Linux 2018.03
and Amazon Linux 2. They differ only in the AmazonLinuxRelease they carry.
"""

import gzip
import io
import logging
import re
import zlib
from dataclasses import dataclass, field
from typing import Optional

import requests
from lxml import etree

from core import versionfmt
from core.canonical import evr_version, make_affected_feature, normalize_description
from core.errors import CouldNotDownload, CouldNotParse
from core.fetcher import get_with_user_agent, status_2xx
from core.models import (
    AffectedFeature,
    FeatureType,
    Namespace,
    UpdateResponse,
    Vulnerability,
    VulnerabilityWithAffected,
)
from core.severity import from_alas_severity
from vulndb.state import Datastore, read_watermark

logger = logging.getLogger("vulnsrc.amzn")

_GZIP_MAGIC = b"\x1f\x8b"

# Repository metadata comes from mirrors we do not control: never expand
# entities or let the parser reach out to the network.
_XML_PARSER = etree.XMLParser(resolve_entities=False, no_network=True, huge_tree=True)


# ---------------------------------------------------------------------------
# Release configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AmazonLinuxRelease:
    """Everything that differs between the Amazon Linux updaters.

    link_id_pattern, when set, must match the advisory ID; its first group
    is prefixed with link_id_prefix before being substituted into
    link_format. Amazon Linux 2 IDs look like "ALAS2-2018-1097" while the
    advisory page is ".../AL2/ALAS-2018-1097.html".
    """

    flag: str
    name: str
    namespace: str
    link_format: str
    link_id_pattern: Optional[re.Pattern] = None
    link_id_prefix: str = ""


AMAZON_LINUX_1 = AmazonLinuxRelease(
    flag="amazonLinux1Updater",
    name="Amazon Linux 2018.03",
    namespace="amzn:2018.03",
    link_format="https://alas.aws.amazon.com/{}.html",
)

AMAZON_LINUX_2 = AmazonLinuxRelease(
    flag="amazonLinux2Updater",
    name="Amazon Linux 2",
    namespace="amzn:2",
    link_format="https://alas.aws.amazon.com/AL2/{}.html",
    link_id_pattern=re.compile(r"^ALAS2-(.+)$"),
    link_id_prefix="ALAS-",
)


# ---------------------------------------------------------------------------
# Raw ALAS records
# ---------------------------------------------------------------------------


@dataclass
class AlasPackage:
    name: str
    epoch: str
    version: str
    release: str
    arch: str = ""


@dataclass
class Alas:
    id: str
    updated: str  # "YYYY-MM-DD hh:mm"
    severity: str
    description: str
    issued: str = ""
    packages: list[AlasPackage] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Fetching
# ---------------------------------------------------------------------------


def _download(uri: str, what: str, source: str) -> bytes:
    """GET uri and return the body, or raise CouldNotDownload."""
    try:
        with get_with_user_agent(uri) as resp:
            if not status_2xx(resp):
                logger.error("could not download %s: HTTP %d from %s", what, resp.status_code, uri)
                raise CouldNotDownload(
                    f"could not download {what}", source=source, uri=uri, status_code=resp.status_code
                )
            return resp.content
    except requests.RequestException as e:
        logger.error("could not download %s from %s: %s", what, uri, e)
        raise CouldNotDownload(f"could not download {what}", source=source, uri=uri) from e


def parse_mirror_list(content: bytes) -> Optional[str]:
    """Return the first mirror listed, or None when the list is empty."""
    for line in content.decode("utf-8", errors="replace").splitlines():
        line = line.strip()
        if line:
            return line.rstrip("/")
    return None


def parse_repomd(content: bytes) -> Optional[str]:
    """Return the relative location of the updateinfo file listed in repomd.xml."""
    root = etree.fromstring(content, _XML_PARSER)
    hrefs = root.xpath(
        "//*[local-name()='data'][@type='updateinfo']/*[local-name()='location']/@href"
    )
    return str(hrefs[0]) if hrefs else None


def _child_text(el, name: str) -> str:
    return el.xpath("string(*[local-name()=$name])", name=name)


def _child_attr(el, name: str, attr: str) -> str:
    return el.xpath("string(*[local-name()=$name]/@*[local-name()=$attr])", name=name, attr=attr)


def parse_update_info(content: bytes) -> list[Alas]:
    """Decode updateinfo.xml, gzip-compressed or not, into ALAS records."""
    if content[:2] == _GZIP_MAGIC:
        with gzip.GzipFile(fileobj=io.BytesIO(content)) as stream:
            content = stream.read()

    root = etree.fromstring(content, _XML_PARSER)
    alas_list: list[Alas] = []
    for update in root.xpath("//*[local-name()='update']"):
        issued = _child_attr(update, "issued", "date")
        packages = [
            AlasPackage(
                name=pkg.get("name", ""),
                epoch=pkg.get("epoch", "0"),
                version=pkg.get("version", ""),
                release=pkg.get("release", ""),
                arch=pkg.get("arch", ""),
            )
            for pkg in update.xpath(
                "*[local-name()='pkglist']/*[local-name()='collection']/*[local-name()='package']"
            )
        ]
        alas_list.append(
            Alas(
                id=_child_text(update, "id").strip(),
                updated=_child_attr(update, "updated", "date") or issued,
                severity=_child_text(update, "severity").strip(),
                description=_child_text(update, "description"),
                issued=issued,
                packages=packages,
            )
        )
    return alas_list


def fetch_update_info_uri(mirror_list_uri: str, source: str) -> str:
    """Resolve mirror.list -> repomd.xml -> absolute URI of the updateinfo file."""
    mirror_list = _download(mirror_list_uri, "mirror list", source)
    mirror = parse_mirror_list(mirror_list)
    if mirror is None:
        logger.error("could not parse mirror list from %s: no mirrors listed", mirror_list_uri)
        raise CouldNotParse("mirror list is empty", source=source, uri=mirror_list_uri)

    repomd_uri = f"{mirror}/repodata/repomd.xml"
    repomd = _download(repomd_uri, "repomd.xml", source)
    try:
        href = parse_repomd(repomd)
    except etree.XMLSyntaxError as e:
        logger.error("could not decode repomd.xml from %s: %s", repomd_uri, e)
        raise CouldNotParse("could not decode repomd.xml", source=source, uri=repomd_uri) from e
    if href is None:
        logger.error("could not find updateinfo in %s", repomd_uri)
        raise CouldNotParse("no updateinfo entry in repomd.xml", source=source, uri=repomd_uri)

    return f"{mirror}/{href.lstrip('/')}"


def fetch_update_info(mirror_list_uri: str, source: str) -> list[Alas]:
    """Download and decode every ALAS the release's repository currently lists."""
    uri = fetch_update_info_uri(mirror_list_uri, source)
    content = _download(uri, "updateinfo", source)
    try:
        return parse_update_info(content)
    except (OSError, EOFError, zlib.error) as e:
        logger.error("could not decompress updateinfo from %s: %s", uri, e)
        raise CouldNotParse("could not decompress updateinfo", source=source, uri=uri) from e
    except etree.XMLSyntaxError as e:
        logger.error("could not decode updateinfo from %s: %s", uri, e)
        raise CouldNotParse("could not decode updateinfo", source=source, uri=uri) from e


# ---------------------------------------------------------------------------
# Updater
# ---------------------------------------------------------------------------


class AmazonLinuxUpdater:
    def __init__(self, release: AmazonLinuxRelease, mirror_list_uri: str) -> None:
        self.release = release
        self.mirror_list_uri = mirror_list_uri
        self.namespace = Namespace(name=release.namespace, version_format=versionfmt.RPM)

    def update(self, datastore: Datastore) -> UpdateResponse:
        logger.info("Start fetching vulnerabilities for %s", self.release.name)
        flag_value = read_watermark(datastore, self.release.flag)
        alas_list = fetch_update_info(self.mirror_list_uri, self.release.name)
        return self.build_response(alas_list, flag_value)

    def clean(self) -> None:
        pass

    def build_response(self, alas_list: list[Alas], flag_value: str) -> UpdateResponse:
        """Keep the ALAS newer than flag_value and canonicalize them.

        The new watermark is the newest timestamp that passed the filter; it
        is omitted entirely when nothing did, so the stored one stays put.
        """
        timestamp = ""
        vulnerabilities: list[VulnerabilityWithAffected] = []
        for alas in alas_list:
            if alas.updated <= flag_value:
                continue
            if alas.updated > timestamp:
                timestamp = alas.updated

            vulnerability = self.alas_to_vulnerability(alas)
            if vulnerability is not None:
                vulnerabilities.append(vulnerability)

        response = UpdateResponse(vulnerabilities=vulnerabilities)
        if timestamp:
            response.flag_name = self.release.flag
            response.flag_value = timestamp
        else:
            logger.debug("%s: no update", self.release.name)
        return response

    def alas_to_vulnerability(self, alas: Alas) -> Optional[VulnerabilityWithAffected]:
        affected = self.alas_to_affected(alas)
        if not affected:
            return None

        link = self.alas_to_link(alas)
        if link is None:
            logger.warning("%s: unexpected advisory ID %r, skipping", self.release.name, alas.id)
            return None

        return VulnerabilityWithAffected(
            vulnerability=Vulnerability(
                name=alas.id,
                link=link,
                severity=from_alas_severity(alas.severity),
                description=normalize_description(alas.description),
            ),
            affected=affected,
        )

    def alas_to_link(self, alas: Alas) -> Optional[str]:
        """Build the advisory URL; None when the ID does not have the expected shape."""
        pattern = self.release.link_id_pattern
        if pattern is None:
            return self.release.link_format.format(alas.id)
        match = pattern.match(alas.id)
        if match is None:
            return None
        return self.release.link_format.format(self.release.link_id_prefix + match.group(1))

    def alas_to_affected(self, alas: Alas) -> list[AffectedFeature]:
        # Every listed package is a fix target: updateinfo never says "no fix yet".
        # The same name/version appears once per architecture; keep one.
        affected: list[AffectedFeature] = []
        seen: set[tuple[str, str]] = set()
        for pkg in alas.packages:
            version = evr_version(pkg.epoch, pkg.version, pkg.release)
            if (pkg.name, version) in seen:
                continue
            seen.add((pkg.name, version))
            feature = make_affected_feature(self.namespace, pkg.name, FeatureType.BINARY, version)
            if feature is not None:
                affected.append(feature)
        return affected
