"""Branch-target classification for merge commit messages.

Merge commits made by GitLab/GitHub carry a first line such as::

    Merge branch '123-add-login' into 'develop'

Only that first line is inspected, and only for a literal substring.  There is
no stricter grammar check, so a first line that merely mentions the word (for
example ``Revert backstaging changes``) classifies as a staging merge too.
"""

from __future__ import annotations

from typing import Sequence

from pivotal_updater.models.commit import BranchTarget

DEVELOP_MARKER = "develop"
STAGING_MARKER = "staging"


def _first_line_contains(lines: Sequence[str], marker: str) -> bool:
    if not lines:
        return False
    return marker in lines[0]


def to_develop(lines: Sequence[str]) -> bool:
    """Return True if the first message line mentions ``develop``."""
    return _first_line_contains(lines, DEVELOP_MARKER)


def to_staging(lines: Sequence[str]) -> bool:
    """Return True if the first message line mentions ``staging``."""
    return _first_line_contains(lines, STAGING_MARKER)


def classify_target(lines: Sequence[str]) -> BranchTarget:
    """Classify a message; staging takes precedence when both markers appear."""
    if to_staging(lines):
        return BranchTarget.STAGING
    if to_develop(lines):
        return BranchTarget.DEVELOP
    return BranchTarget.NONE
