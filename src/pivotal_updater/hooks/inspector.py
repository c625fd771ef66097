"""Post-merge inspection: the work done by the git ``post-merge`` hook.

After every merge the inspector reads the last commit message and decides:

- **staging merge** -- every merge commit folded in from the source branch
  (``develop``) whose message carries ``@Complete`` has its story marked
  ``delivered``;
- **develop merge** -- if the merge message itself carries ``@Complete``, the
  story named by the merged branch is marked ``finished``;
- anything else -- nothing happens.

Hook contract:
- :meth:`MergeInspector.run` NEVER raises.  Unexpected errors are logged and
  returned in :attr:`InspectionReport.error`, so the merge is never disturbed.
- On a staging merge each merge commit is handled on its own; a failure on
  one is recorded as a ``transport_error`` action and the rest still run.
- A complete commit without a resolvable story id is skipped with a warning;
  no request is sent with an empty id.
- With ``dry_run`` every update is planned and reported but nothing is sent.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from pydantic import BaseModel, Field

from pivotal_updater.config import UpdaterConfig
from pivotal_updater.detection.branch_target import classify_target
from pivotal_updater.detection.completion import is_complete_in_lines
from pivotal_updater.detection.story import get_story_id
from pivotal_updater.models.commit import BranchTarget, CommitMessage
from pivotal_updater.models.tracker import StoryState, UpdateOutcome, UpdateResult
from pivotal_updater.tracker.client import TrackerClient
from pivotal_updater.vcs.source import CommitSource, GitCommitSource

logger = logging.getLogger(__name__)


class StoryUpdater(Protocol):
    """Anything that can update a story; :class:`TrackerClient` in production."""

    def update_story(
        self, story_id: int, project_id: int, fields: dict[str, str]
    ) -> UpdateResult:
        ...


# ---------------------------------------------------------------------------
# Report models
# ---------------------------------------------------------------------------


class StoryAction(BaseModel):
    """One story update decided during a run."""

    ref: Optional[str] = Field(
        default=None,
        description="Commit the decision was made from (None for the last commit).",
    )
    story_id: Optional[int] = Field(
        default=None,
        description="Story id extracted from the commit message, if any.",
    )
    state: StoryState
    result: UpdateResult

    @property
    def sent(self) -> bool:
        return self.result.ok


class InspectionReport(BaseModel):
    """Everything one run of the inspector looked at and did."""

    target: BranchTarget = BranchTarget.NONE
    first_line: str = ""
    merge_refs: list[str] = Field(default_factory=list)
    actions: list[StoryAction] = Field(default_factory=list)
    dry_run: bool = False
    error: Optional[str] = None

    @property
    def updates_sent(self) -> int:
        return sum(1 for action in self.actions if action.sent)


# ---------------------------------------------------------------------------
# Inspector
# ---------------------------------------------------------------------------


class MergeInspector:
    """Decides and applies story updates for the merge that just happened.

    Parameters
    ----------
    config:
        Resolved configuration; supplies the project id and git settings.
    source:
        Commit history access.  Defaults to :class:`GitCommitSource` rooted at
        ``config.repo_root``.
    updater:
        Story updater.  Defaults to a :class:`TrackerClient` for ``config``.
    dry_run:
        Plan updates without sending them.
    """

    def __init__(
        self,
        config: UpdaterConfig,
        source: Optional[CommitSource] = None,
        updater: Optional[StoryUpdater] = None,
        dry_run: bool = False,
    ) -> None:
        self._config = config
        self._source = source or GitCommitSource(
            repo_root=config.repo_root,
            source_branch=config.source_branch,
            timeout=config.git_timeout,
        )
        self._updater = updater or TrackerClient(config)
        self._dry_run = dry_run

    def run(self) -> InspectionReport:
        """Inspect the last merge and update stories.  Never raises."""
        report = InspectionReport(dry_run=self._dry_run)
        try:
            self._inspect(report)
        except Exception as exc:
            logger.error(
                "Post-merge inspection failed; no further updates sent.",
                exc_info=True,
            )
            report.error = f"{exc.__class__.__name__}: {exc}"
        return report

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _inspect(self, report: InspectionReport) -> None:
        logger.info("Inspecting last commit message...")
        message = self._source.last_commit_message()
        if message.is_empty:
            logger.info("No commit message available; nothing to do.")
            return

        report.first_line = message.first_line
        report.target = classify_target(message.lines)

        if report.target == BranchTarget.STAGING:
            self._deliver_merged_stories(report)
        elif report.target == BranchTarget.DEVELOP:
            self._finish_story(message, report)
        else:
            logger.info("Merge is not into staging or develop; nothing to do.")

    def _deliver_merged_stories(self, report: InspectionReport) -> None:
        logger.info("Inspecting merge requests in merge...")
        merges = self._source.merge_refs()
        report.merge_refs = list(merges.refs)

        for ref in merges.refs:
            try:
                message = self._source.commit_message(ref)
                if not is_complete_in_lines(message.lines):
                    logger.debug("Merge %s is not marked complete.", ref)
                    continue
                self._update(message, StoryState.DELIVERED, report)
            except Exception as exc:
                logger.error(
                    "Could not deliver story for merge %s; continuing.",
                    ref,
                    exc_info=True,
                )
                report.actions.append(
                    StoryAction(
                        ref=ref,
                        state=StoryState.DELIVERED,
                        result=UpdateResult(
                            outcome=UpdateOutcome.TRANSPORT_ERROR,
                            error=f"{exc.__class__.__name__}: {exc}",
                        ),
                    )
                )

        logger.info("Done inspecting %d merge(s).", len(merges.refs))

    def _finish_story(self, message: CommitMessage, report: InspectionReport) -> None:
        if not is_complete_in_lines(message.lines):
            logger.info("Merge into develop is not marked complete.")
            return
        self._update(message, StoryState.FINISHED, report)

    def _update(
        self,
        message: CommitMessage,
        state: StoryState,
        report: InspectionReport,
    ) -> None:
        story_id = get_story_id(message.lines)
        label = message.ref or "HEAD"

        if story_id is None:
            logger.warning(
                "Commit %s is marked complete but names no single story; skipping.",
                label,
            )
            result = UpdateResult.skipped("no story id in commit message")
        else:
            result = self._send(story_id, state)

        report.actions.append(
            StoryAction(ref=message.ref, story_id=story_id, state=state, result=result)
        )

    def _send(self, story_id: int, state: StoryState) -> UpdateResult:
        project_id = self._config.resolve_project_id()
        if project_id is None:
            logger.error(
                "No tracker project configured; cannot mark story %d %s.",
                story_id,
                state.value,
            )
            return UpdateResult.skipped("no tracker project configured")

        if self._dry_run:
            logger.info(
                "Dry run: would mark story %d %s in project %d.",
                story_id,
                state.value,
                project_id,
            )
            return UpdateResult.skipped("dry run")

        logger.info("Marking story %d %s...", story_id, state.value)
        return self._updater.update_story(
            story_id, project_id, {"current_state": state.value}
        )
