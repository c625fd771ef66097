"""Pydantic data models for commit messages, merge sets, and tracker updates."""

from pivotal_updater.models.commit import BranchTarget, CommitMessage, MergeSet
from pivotal_updater.models.tracker import (
    StoryState,
    TrackerUpdateRequest,
    UpdateOutcome,
    UpdateResult,
)

__all__ = [
    "BranchTarget",
    "CommitMessage",
    "MergeSet",
    "StoryState",
    "TrackerUpdateRequest",
    "UpdateOutcome",
    "UpdateResult",
]
