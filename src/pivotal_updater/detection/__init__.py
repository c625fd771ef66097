"""Text analysis of merge commit messages.

This package provides:

- :func:`classify_target` / :func:`to_develop` / :func:`to_staging` -- which
  branch a merge went into.
- :func:`get_story_id` -- the story named by the merged branch.
- :func:`is_complete_in_lines` / :func:`is_complete_in_text` -- whether the
  story was flagged as complete.

All functions are pure and never raise on malformed input.
"""

from pivotal_updater.detection.branch_target import (
    classify_target,
    to_develop,
    to_staging,
)
from pivotal_updater.detection.completion import (
    is_complete_in_lines,
    is_complete_in_text,
)
from pivotal_updater.detection.story import find_story_tokens, get_story_id

__all__ = [
    "classify_target",
    "find_story_tokens",
    "get_story_id",
    "is_complete_in_lines",
    "is_complete_in_text",
    "to_develop",
    "to_staging",
]
