"""Models for the git data inspected after a merge.

A :class:`CommitMessage` is the full message body of one commit as an ordered
list of lines.  A :class:`MergeSet` is the list of abbreviated merge commit
hashes folded into a staging merge.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class BranchTarget(str, Enum):
    """Branch a merge commit was made into, as far as its message tells."""

    STAGING = "staging"
    DEVELOP = "develop"
    NONE = "none"


class CommitMessage(BaseModel):
    """The message body of one commit, split into lines."""

    ref: Optional[str] = Field(
        default=None,
        description="Commit reference the message was read for (None for the last commit).",
    )
    lines: list[str] = Field(
        default_factory=list,
        description="Message lines in order, trailing whitespace stripped.",
    )

    @classmethod
    def from_text(cls, text: str, ref: Optional[str] = None) -> "CommitMessage":
        """Build a message from raw ``git`` output."""
        return cls(ref=ref, lines=[line.rstrip() for line in text.splitlines()])

    @property
    def is_empty(self) -> bool:
        return not self.lines

    @property
    def first_line(self) -> str:
        return self.lines[0] if self.lines else ""

    @property
    def text(self) -> str:
        return "\n".join(self.lines)


class MergeSet(BaseModel):
    """Merge commits between ``HEAD~1`` and the tip of the source branch."""

    source_branch: str = Field(
        ...,
        min_length=1,
        description="Branch whose merge commits were listed.",
    )
    refs: list[str] = Field(
        default_factory=list,
        description="Abbreviated commit hashes, newest first.",
    )

    @property
    def is_empty(self) -> bool:
        return not self.refs
