"""Git post-merge hook integration.

Inspector:

- :class:`MergeInspector` -- reads the last merge, decides which stories move
  to ``finished``/``delivered``, and sends the updates.
- :class:`InspectionReport` / :class:`StoryAction` -- what a run saw and did.

Installer:

- :func:`install_post_merge_hook` / :func:`remove_post_merge_hook` -- manage
  the ``.git/hooks/post-merge`` shim that invokes the CLI.

The inspector is failure-tolerant: if git or the tracker is unavailable it
logs a warning and returns without raising.
"""

from pivotal_updater.hooks.inspector import (
    InspectionReport,
    MergeInspector,
    StoryAction,
)
from pivotal_updater.hooks.installer import (
    HookInstallResult,
    install_post_merge_hook,
    is_managed_hook,
    remove_post_merge_hook,
)

__all__ = [
    "HookInstallResult",
    "InspectionReport",
    "MergeInspector",
    "StoryAction",
    "install_post_merge_hook",
    "is_managed_hook",
    "remove_post_merge_hook",
]
