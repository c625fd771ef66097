"""Version-control access for the post-merge hook."""

from pivotal_updater.vcs.source import CommitSource, GitCommitSource

__all__ = ["CommitSource", "GitCommitSource"]
