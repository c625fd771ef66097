"""Pivotal Updater - git post-merge hook that moves Pivotal Tracker stories along."""

__version__ = "1.0.0"

from pivotal_updater.config import UpdaterConfig

__all__ = ["UpdaterConfig", "__version__"]
