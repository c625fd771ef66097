"""Completion marker detection.

Developers flag a finished story by writing ``@Complete`` in the merge request
description, which lands in the merge commit body.  Two checks exist because
callers hold the message in two shapes:

- a list of lines (the full body read from git): exactly one line must carry
  ``@Complete``;
- a single string (a message passed on the command line): the bare word
  ``Complete`` is enough.
"""

from __future__ import annotations

from typing import Sequence

LINE_MARKER = "@Complete"
TEXT_MARKER = "Complete"


def is_complete_in_lines(lines: Sequence[str]) -> bool:
    """Return True if exactly one line contains ``@Complete``."""
    return sum(1 for line in lines if LINE_MARKER in line) == 1


def is_complete_in_text(text: str) -> bool:
    """Return True if *text* contains ``Complete``."""
    return TEXT_MARKER in text
