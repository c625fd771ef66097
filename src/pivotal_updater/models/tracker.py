"""Models for story updates sent to Pivotal Tracker.

A :class:`TrackerUpdateRequest` describes one ``PUT`` on a story and an
:class:`UpdateResult` captures what came back.  Neither is ever persisted.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class StoryState(str, Enum):
    """Story states this hook moves stories into."""

    FINISHED = "finished"
    DELIVERED = "delivered"


class UpdateOutcome(str, Enum):
    """How a single tracker update ended."""

    SENT = "sent"
    REJECTED = "rejected"
    TRANSPORT_ERROR = "transport_error"
    SKIPPED = "skipped"


class TrackerUpdateRequest(BaseModel):
    """A single story update: ``PUT {base}/{project_id}/stories/{story_id}``."""

    story_id: int = Field(..., ge=1, description="Tracker story id.")
    project_id: int = Field(..., ge=1, description="Tracker project id.")
    fields: dict[str, str] = Field(
        default_factory=dict,
        description="Story fields to update, sent form-urlencoded.",
    )

    @classmethod
    def for_state(
        cls, story_id: int, project_id: int, state: StoryState
    ) -> "TrackerUpdateRequest":
        return cls(
            story_id=story_id,
            project_id=project_id,
            fields={"current_state": state.value},
        )

    def path(self) -> str:
        """Story path relative to the projects endpoint."""
        return f"{self.project_id}/stories/{self.story_id}"


class UpdateResult(BaseModel):
    """Outcome of one tracker update.

    ``body`` holds the raw response text for sent and rejected updates;
    ``error`` holds a description for transport errors and skips.
    """

    outcome: UpdateOutcome
    status_code: Optional[int] = None
    body: str = ""
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.outcome == UpdateOutcome.SENT

    @classmethod
    def skipped(cls, reason: str) -> "UpdateResult":
        return cls(outcome=UpdateOutcome.SKIPPED, error=reason)
