"""Pivotal Tracker HTTP integration."""

from pivotal_updater.tracker.client import TOKEN_HEADER, TrackerClient

__all__ = ["TOKEN_HEADER", "TrackerClient"]
