"""vulnsrc/ -- Vulnerability source updaters and the registry that names them.

build_registry() is the only place updaters are instantiated. Feed URIs are
read from Settings once, here, so an updater never looks at the environment.
"""

from typing import Optional

from core.config import Settings, get_settings
from vulnsrc.amzn import AMAZON_LINUX_1, AMAZON_LINUX_2, AmazonLinuxUpdater
from vulnsrc.debian import DebianUpdater
from vulnsrc.registry import Updater, UpdaterRegistry

__all__ = ["Updater", "UpdaterRegistry", "build_registry"]


def build_registry(settings: Optional[Settings] = None) -> UpdaterRegistry:
    """Construct and freeze the registry of every known updater."""
    settings = settings or get_settings()
    registry = UpdaterRegistry()
    registry.register("amzn1", AmazonLinuxUpdater(AMAZON_LINUX_1, settings.amzn1_mirror))
    registry.register("amzn2", AmazonLinuxUpdater(AMAZON_LINUX_2, settings.amzn2_mirror))
    registry.register("debian", DebianUpdater(settings.debian_json, settings.debian_cveprefix))
    registry.freeze()
    return registry
