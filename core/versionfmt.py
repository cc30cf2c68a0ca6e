"""
core/versionfmt.py -- Package version oracle: validation and ordering per format.

Each namespace names a version format ("dpkg", "rpm"). Updaters only ask one
question of this module -- "is this string a valid version under format F" --
but ordering is implemented too so that a canonical AffectedFeature can be
compared against installed versions downstream.

Two sentinels are shared by every format:
  MIN_VERSION  sorts before any real version
  MAX_VERSION  sorts after any real version; an AffectedFeature whose
               affected_version is MAX_VERSION is vulnerable in every known
               version and has no fix yet.

Usage:
    valid("dpkg", "1:2.4-1")            # raises InvalidVersion when malformed
    is_valid("rpm", "1.0-1.amzn2")      # bool
    compare("dpkg", "1.0~rc1", "1.0")   # -1
"""

from typing import Protocol

from debian.debian_support import Version, version_compare

MIN_VERSION = "#MINV#"
MAX_VERSION = "#MAXV#"

DPKG = "dpkg"
RPM = "rpm"


class InvalidVersion(ValueError):
    pass


class UnknownVersionFormat(ValueError):
    pass


class VersionParser(Protocol):
    def parse(self, version: str) -> object: ...

    def compare(self, a: str, b: str) -> int: ...


def _isdigit(c: str) -> bool:
    return "0" <= c <= "9"


def _isalpha(c: str) -> bool:
    return ("a" <= c <= "z") or ("A" <= c <= "Z")


def _split_epoch(version: str) -> tuple[int, str]:
    """Split "E:rest" into (E, rest). No colon means epoch 0."""
    head, sep, rest = version.partition(":")
    if not sep:
        return 0, version
    if not head.isdigit():
        raise InvalidVersion(f"epoch in version is not a number: {version!r}")
    return int(head), rest


def _sign(n: int) -> int:
    return (n > 0) - (n < 0)


# ---------------------------------------------------------------------------
# dpkg
# ---------------------------------------------------------------------------


class DpkgParser:
    """Debian policy versions: [epoch:]upstream_version[-debian_revision].

    Parsing and ordering are python-debian's. Its syntax check lets an
    upstream version start with a letter; Debian policy does not, and
    neither do we.
    """

    def parse(self, version: str) -> Version:
        if not isinstance(version, str) or not version:
            raise InvalidVersion(f"version string is empty or not a string: {version!r}")
        try:
            parsed = Version(version)
        except ValueError as e:
            raise InvalidVersion(str(e)) from e
        if not _isdigit(parsed.upstream_version[0]):
            raise InvalidVersion(f"upstream version does not start with a digit: {version!r}")
        return parsed

    def compare(self, a: str, b: str) -> int:
        self.parse(a)
        self.parse(b)
        return _sign(version_compare(a, b))


# ---------------------------------------------------------------------------
# rpm
# ---------------------------------------------------------------------------


def _rpmvercmp(a: str, b: str) -> int:
    if a == b:
        return 0
    i = j = 0
    while i < len(a) or j < len(b):
        while i < len(a) and not (_isdigit(a[i]) or _isalpha(a[i])) and a[i] != "~":
            i += 1
        while j < len(b) and not (_isdigit(b[j]) or _isalpha(b[j])) and b[j] != "~":
            j += 1

        # A tilde sorts before everything, including the end of the string.
        a_tilde = i < len(a) and a[i] == "~"
        b_tilde = j < len(b) and b[j] == "~"
        if a_tilde or b_tilde:
            if not a_tilde:
                return 1
            if not b_tilde:
                return -1
            i += 1
            j += 1
            continue

        if i >= len(a) or j >= len(b):
            break

        segment_test = _isdigit if _isdigit(a[i]) else _isalpha
        is_num = segment_test is _isdigit
        si, sj = i, j
        while i < len(a) and segment_test(a[i]):
            i += 1
        while j < len(b) and segment_test(b[j]):
            j += 1
        seg_a, seg_b = a[si:i], b[sj:j]

        if not seg_b:
            return 1 if is_num else -1

        if is_num:
            seg_a = seg_a.lstrip("0")
            seg_b = seg_b.lstrip("0")
            if len(seg_a) != len(seg_b):
                return 1 if len(seg_a) > len(seg_b) else -1
        if seg_a != seg_b:
            return 1 if seg_a > seg_b else -1

    if i >= len(a) and j >= len(b):
        return 0
    return -1 if i >= len(a) else 1


class RpmParser:
    """RPM EVR versions: [epoch:]version[-release]."""

    _SYMBOLS = frozenset(".-+~:_^")

    def parse(self, version: str) -> tuple[int, str, str]:
        if not isinstance(version, str) or not version.strip():
            raise InvalidVersion(f"version string is empty or not a string: {version!r}")
        version = version.strip()

        epoch, rest = _split_epoch(version)
        ver, sep, release = rest.rpartition("-")
        if not sep:
            ver, release = rest, ""

        if not ver:
            raise InvalidVersion(f"no version: {version!r}")
        for part in (ver, release):
            for c in part:
                if not (_isdigit(c) or _isalpha(c) or c in self._SYMBOLS):
                    raise InvalidVersion(f"invalid character {c!r} in version: {version!r}")
        return epoch, ver, release

    def compare(self, a: str, b: str) -> int:
        ea, va, ra = self.parse(a)
        eb, vb, rb = self.parse(b)
        if ea != eb:
            return _sign(ea - eb)
        return _rpmvercmp(va, vb) or _rpmvercmp(ra, rb)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

_PARSERS: dict[str, VersionParser] = {}


def register_parser(name: str, parser: VersionParser) -> None:
    """Make a new version format available. Names are unique."""
    if name in _PARSERS:
        raise ValueError(f"version format {name!r} is already registered")
    _PARSERS[name] = parser


register_parser(DPKG, DpkgParser())
register_parser(RPM, RpmParser())


def get_parser(name: str) -> VersionParser:
    try:
        return _PARSERS[name]
    except KeyError:
        raise UnknownVersionFormat(f"unknown version format: {name!r}") from None


def valid(format_name: str, version: str) -> None:
    """Raise InvalidVersion unless version parses under format_name.

    The MIN_VERSION / MAX_VERSION sentinels are valid under every format.
    """
    parser = get_parser(format_name)
    if version in (MIN_VERSION, MAX_VERSION):
        return
    parser.parse(version)


def is_valid(format_name: str, version: str) -> bool:
    try:
        valid(format_name, version)
    except InvalidVersion:
        return False
    return True


def compare(format_name: str, a: str, b: str) -> int:
    """Order two versions under format_name: -1, 0 or 1."""
    parser = get_parser(format_name)
    if a == b:
        return 0
    if a == MIN_VERSION or b == MAX_VERSION:
        return -1
    if a == MAX_VERSION or b == MIN_VERSION:
        return 1
    return parser.compare(a, b)
