"""
core/errors.py -- Exceptions raised by updaters when talking to upstream feeds.

Only two conditions are fatal to an update run: the document could not be
downloaded, or it could not be decoded. Everything finer-grained (a bad
version string, an unknown urgency) is logged and skipped by the updater
and never surfaces as an exception.
"""

from typing import Optional


class VulnSrcError(Exception):
    """Base class for fatal updater errors."""

    def __init__(self, message: str, source: Optional[str] = None, uri: Optional[str] = None) -> None:
        self.source = source
        self.uri = uri
        super().__init__(message)

    def __str__(self) -> str:
        if self.source:
            return f"[{self.source}] {super().__str__()}"
        return super().__str__()


class CouldNotDownload(VulnSrcError):
    """Transport failure or non-2xx status while fetching an upstream document."""

    def __init__(
        self,
        message: str = "could not download requested resource",
        source: Optional[str] = None,
        uri: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        self.status_code = status_code
        super().__init__(message, source=source, uri=uri)


class CouldNotParse(VulnSrcError):
    """Decompression or structural decode failure of an upstream document."""

    def __init__(
        self,
        message: str = "could not parse requested resource",
        source: Optional[str] = None,
        uri: Optional[str] = None,
    ) -> None:
        super().__init__(message, source=source, uri=uri)
