"""
fetcher.py -- Shared HTTP access for all updaters.

Updaters never call requests directly. get_with_user_agent() returns the raw
response and lets transport errors propagate; the caller checks status_2xx()
itself so that "the server answered 404" and "the connection was refused"
can be logged differently while both end up as CouldNotDownload.

No retries here: a failed fetch aborts the updater run and the caller decides
whether to run it again.
"""

import logging

import requests

from core.config import get_settings

logger = logging.getLogger("vulnsrc.fetcher")

# Module-level session shared across all updaters for connection pooling.
# max_redirects=3 replaces the requests default of 30 -- mirrors and the
# tracker redirect at most once or twice.
_session = requests.Session()
_session.max_redirects = 3


def get_with_user_agent(uri: str, stream: bool = False) -> requests.Response:
    """GET uri with the configured User-Agent and timeout.

    Use the returned response as a context manager so the connection goes
    back to the pool on every exit path, including early error returns.
    """
    settings = get_settings()
    logger.debug("GET %s", uri)
    return _session.get(
        uri,
        headers={"User-Agent": settings.user_agent},
        timeout=settings.http_timeout,
        stream=stream,
    )


def status_2xx(resp: requests.Response) -> bool:
    return 200 <= resp.status_code < 300
