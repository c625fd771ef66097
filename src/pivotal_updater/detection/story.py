"""Story id extraction from commit messages.

Feature branches are named ``<story id>-<slug>``, e.g. ``123-add-feature``,
and that name ends up in the merge commit message.  The story id is recovered
by finding the branch token in the message:

1. Keep the lines that contain a token.
2. Require exactly one such line.
3. Require exactly one distinct token on that line.
4. Return the leading digit run of the token.

Anything else (no token, tokens on several lines, several tokens on one line)
is ambiguous and yields ``None``.  Hotfix branches without a story number fall
into the first case.
"""

from __future__ import annotations

import re
from typing import Optional, Sequence

# Digits, a hyphen, a slug of letters/hyphens, then one more character that
# is neither whitespace nor a quote.
STORY_TOKEN_PATTERN = re.compile(r"[0-9]+-[a-zA-Z-]+[^\s']")

_LEADING_DIGITS = re.compile(r"[0-9]+")


def find_story_tokens(line: str) -> list[str]:
    """Return the distinct branch tokens in *line*, in order of appearance."""
    tokens: list[str] = []
    for match in STORY_TOKEN_PATTERN.finditer(line):
        token = match.group(0)
        if token not in tokens:
            tokens.append(token)
    return tokens


def get_story_id(lines: Sequence[str]) -> Optional[int]:
    """Return the story id named in a commit message, or None if unresolvable."""
    matching = [line for line in lines if STORY_TOKEN_PATTERN.search(line)]
    if len(matching) != 1:
        return None

    tokens = find_story_tokens(matching[0])
    if len(tokens) != 1:
        return None

    digits = _LEADING_DIGITS.match(tokens[0])
    if digits is None:
        return None
    return int(digits.group(0))
