"""Pivotal Tracker story updates over HTTP.

One endpoint is used::

    PUT {base_url}/{project_id}/stories/{story_id}
    X-TrackerToken: <token>
    Content-Type: application/x-www-form-urlencoded

    current_state=finished

Each update is a single best-effort request: no retries and the HTTP client's
default timeout.  Failures are returned as an :class:`UpdateResult` rather
than raised, because a failing post-merge hook must never disturb the merge.
Ids below 1 are skipped without a request; header or URL encoding errors are
reported as transport errors.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx
from pydantic import ValidationError

from pivotal_updater.config import UpdaterConfig
from pivotal_updater.models.tracker import (
    TrackerUpdateRequest,
    UpdateOutcome,
    UpdateResult,
)

logger = logging.getLogger(__name__)

TOKEN_HEADER = "X-TrackerToken"


class TrackerClient:
    """Sends story updates to the tracker configured in :class:`UpdaterConfig`.

    Parameters
    ----------
    config:
        Supplies ``base_url`` and ``api_token``.
    transport:
        Optional httpx transport, e.g. ``httpx.MockTransport`` in tests.
    """

    def __init__(
        self,
        config: UpdaterConfig,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._base_url = config.base_url.rstrip("/")
        self._api_token = config.api_token
        self._transport = transport

    def story_url(self, request: TrackerUpdateRequest) -> str:
        return f"{self._base_url}/{request.path()}"

    def update_story(
        self,
        story_id: int,
        project_id: int,
        fields: dict[str, str],
    ) -> UpdateResult:
        """Update *fields* on a story and report how it went."""
        try:
            request = TrackerUpdateRequest(
                story_id=story_id, project_id=project_id, fields=fields
            )
        except ValidationError:
            logger.warning(
                "Not updating story %r in project %r: invalid ids.",
                story_id,
                project_id,
            )
            return UpdateResult.skipped(
                f"invalid story or project id ({story_id!r}, {project_id!r})"
            )
        return self.send(request)

    def send(self, request: TrackerUpdateRequest) -> UpdateResult:
        """Send one prepared update request."""
        if not self._api_token:
            logger.warning(
                "No tracker API token configured; not updating story %d.",
                request.story_id,
            )
            return UpdateResult.skipped("no API token configured")

        url = self.story_url(request)
        headers = {TOKEN_HEADER: self._api_token}

        try:
            with httpx.Client(transport=self._transport) as client:
                response = client.put(url, data=request.fields, headers=headers)
        except (httpx.HTTPError, httpx.InvalidURL, UnicodeError) as exc:
            logger.warning("Tracker request to %s failed: %s", url, exc)
            return UpdateResult(
                outcome=UpdateOutcome.TRANSPORT_ERROR,
                error=str(exc) or exc.__class__.__name__,
            )

        if response.is_success:
            logger.info(
                "Story %d updated (%s).",
                request.story_id,
                ", ".join(f"{k}={v}" for k, v in request.fields.items()),
            )
            return UpdateResult(
                outcome=UpdateOutcome.SENT,
                status_code=response.status_code,
                body=response.text,
            )

        logger.warning(
            "Tracker rejected update of story %d with HTTP %d.",
            request.story_id,
            response.status_code,
        )
        return UpdateResult(
            outcome=UpdateOutcome.REJECTED,
            status_code=response.status_code,
            body=response.text,
            error=f"HTTP {response.status_code}",
        )
