"""Read-only access to commit history.

The inspector only needs three queries from version control:

- the message of the last commit,
- the message of a given commit,
- the merge commits between ``HEAD~1`` and the tip of the source branch.

:class:`CommitSource` is that narrow interface and :class:`GitCommitSource`
answers it by running the ``git`` executable.  Every query degrades to an
empty result when git fails, so a broken repository turns the hook into a
no-op instead of an error.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Optional, Protocol, runtime_checkable

from pivotal_updater.config import DEFAULT_GIT_TIMEOUT, DEFAULT_SOURCE_BRANCH
from pivotal_updater.models.commit import CommitMessage, MergeSet

logger = logging.getLogger(__name__)

# ``%B`` is the raw body (subject + message); ``-s`` suppresses the diff.
_MESSAGE_FORMAT = "--format=%B"
_ABBREV_HASH_FORMAT = "--format=%h"


@runtime_checkable
class CommitSource(Protocol):
    """The three read-only history queries used by the inspector."""

    def last_commit_message(self) -> CommitMessage:
        ...

    def commit_message(self, ref: str) -> CommitMessage:
        ...

    def merge_refs(self) -> MergeSet:
        ...


class GitCommitSource:
    """:class:`CommitSource` backed by the ``git`` command line.

    Parameters
    ----------
    repo_root:
        Working directory for every git invocation.
    source_branch:
        Branch whose merge commits are listed by :meth:`merge_refs`.
    timeout:
        Timeout in seconds for each git invocation.
    git_executable:
        Name or path of the git binary.
    """

    def __init__(
        self,
        repo_root: str | Path,
        source_branch: str = DEFAULT_SOURCE_BRANCH,
        timeout: int = DEFAULT_GIT_TIMEOUT,
        git_executable: str = "git",
    ) -> None:
        self._repo_root = Path(repo_root)
        self._source_branch = source_branch
        self._timeout = timeout
        self._git = git_executable

    @property
    def repo_root(self) -> Path:
        return self._repo_root

    @property
    def source_branch(self) -> str:
        return self._source_branch

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def last_commit_message(self) -> CommitMessage:
        """Return the message of ``HEAD``; empty if git fails."""
        output = self._run(["show", "-s", _MESSAGE_FORMAT])
        return CommitMessage.from_text(output or "")

    def commit_message(self, ref: str) -> CommitMessage:
        """Return the message of *ref*; empty if git fails."""
        output = self._run(["show", "-s", _MESSAGE_FORMAT, ref, "--"])
        return CommitMessage.from_text(output or "", ref=ref)

    def merge_refs(self) -> MergeSet:
        """Return the merge commits in ``HEAD~1..<source_branch>``."""
        output = self._run(
            [
                "log",
                f"HEAD~1..{self._source_branch}",
                "--merges",
                _ABBREV_HASH_FORMAT,
                "--",
            ]
        )
        refs = [line.strip() for line in (output or "").splitlines() if line.strip()]
        return MergeSet(source_branch=self._source_branch, refs=refs)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _run(self, args: list[str]) -> Optional[str]:
        """Run git with *args* and return stdout, or None on any failure."""
        cmd = [self._git] + args
        logger.debug("Running %s in %s", " ".join(cmd), self._repo_root)
        try:
            result = subprocess.run(
                cmd,
                cwd=str(self._repo_root),
                capture_output=True,
                text=True,
                timeout=self._timeout,
            )
        except subprocess.TimeoutExpired:
            logger.warning(
                "git %s timed out after %ds.", " ".join(args), self._timeout
            )
            return None
        except (FileNotFoundError, OSError):
            logger.warning(
                "Could not run git in %s.", self._repo_root, exc_info=True
            )
            return None

        if result.returncode != 0:
            logger.debug(
                "git %s exited with %d: %s",
                " ".join(args),
                result.returncode,
                result.stderr.strip(),
            )
            return None

        return result.stdout
