"""
core/pipeline.py -- Run updaters and commit what they return.

This is the "caller" side of the updater contract: look the updater up,
call update(), persist the batch and the new watermark in one transaction,
and always call clean(). No print statements -- the CLI in main.py owns all
user-facing output.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from core.errors import VulnSrcError
from core.models import UpdateResponse
from vulndb.state import Datastore
from vulnsrc.registry import UpdaterRegistry

logger = logging.getLogger("vulnsrc.pipeline")


@dataclass
class UpdateSummary:
    """Outcome of run_updates(): per-updater responses and failures."""

    responses: dict[str, UpdateResponse] = field(default_factory=dict)
    errors: dict[str, Exception] = field(default_factory=dict)


def run_update(
    registry: UpdaterRegistry,
    name: str,
    datastore: Datastore,
    commit: bool = True,
) -> UpdateResponse:
    """Run one updater by name and, unless commit is False, persist its response.

    Raises KeyError for an unknown updater name. Errors raised by the updater
    propagate unchanged; nothing is committed in that case.
    """
    updater = registry.get(name)
    if updater is None:
        raise KeyError(f"unknown updater: {name}")

    try:
        response = updater.update(datastore)
        if commit:
            written = datastore.commit_update(response)
            logger.info(
                "%s: committed %d vulnerability rows, watermark %s",
                name,
                written,
                response.flag_value if response.has_flag else "unchanged",
            )
        return response
    finally:
        updater.clean()


def run_updates(
    registry: UpdaterRegistry,
    datastore: Datastore,
    names: Optional[list[str]] = None,
    commit: bool = True,
) -> UpdateSummary:
    """Run several updaters in turn. One failing updater does not stop the others.

    names defaults to every registered updater. Unknown names are recorded
    as KeyError failures.
    """
    summary = UpdateSummary()
    for name in names if names is not None else registry.names():
        try:
            summary.responses[name] = run_update(registry, name, datastore, commit=commit)
        except (VulnSrcError, KeyError) as e:
            logger.error("updater %s failed: %s", name, e)
            summary.errors[name] = e
        except Exception as e:
            # Datastore and programming errors: report them and move on.
            logger.exception("updater %s failed unexpectedly", name)
            summary.errors[name] = e
    return summary
