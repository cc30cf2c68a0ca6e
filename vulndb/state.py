"""
vulndb/state.py -- Incremental watermark access for updaters.

Each updater keeps one opaque string (a timestamp or a content hash) under a
well-known key in the datastore's key/value table. Updaters only ever read
it; the new value travels back in UpdateResponse.flag_name / flag_value and
the caller writes it together with the vulnerability batch.
"""

import logging
from typing import Optional, Protocol

from core.models import UpdateResponse, VulnerabilityWithAffected

logger = logging.getLogger("vulnsrc.state")


class Datastore(Protocol):
    """The narrow slice of the vulnerability database the engine depends on."""

    def find_key_value(self, key: str) -> Optional[str]: ...

    def set_key_value(self, key: str, value: str) -> None: ...

    def upsert_vulnerabilities(self, vulnerabilities: list[VulnerabilityWithAffected]) -> int: ...

    def commit_update(self, response: UpdateResponse) -> int: ...


def find_key_value_and_rollback(datastore: Datastore, key: str) -> Optional[str]:
    """Look a key up without leaving anything behind in the datastore.

    VulnStore.find_key_value() already runs in a connection that is rolled
    back on close; this wrapper exists so updaters depend on the Datastore
    protocol rather than a concrete store.
    """
    return datastore.find_key_value(key)


def read_watermark(datastore: Datastore, flag_name: str) -> str:
    """Return the stored watermark for an updater, or "" when it has never run."""
    value = find_key_value_and_rollback(datastore, flag_name)
    if value is None:
        logger.debug("no watermark stored under %s, starting from the beginning", flag_name)
        return ""
    return value
