"""Installation of the git ``post-merge`` hook shim.

The shim written to ``.git/hooks/post-merge`` is a few lines of shell that run
``pivotal-updater run`` and always exit 0, so a missing or failing updater can
never turn a merge into an error.  A marker line identifies shims written by
this module; hooks without it belong to the user and are left alone unless
``force`` is given.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

HOOK_NAME = "post-merge"
MANAGED_HOOK_MARKER = "PIVOTAL_UPDATER_MANAGED_HOOK=1"

# Outcomes of an install attempt.
INSTALL_CREATED = "created"
INSTALL_UPDATED = "updated"
INSTALL_UNCHANGED = "unchanged"
INSTALL_SKIPPED_CUSTOM = "skipped_custom"


@dataclass(frozen=True)
class HookInstallResult:
    """Result of writing the post-merge shim."""

    path: Path
    status: str

    @property
    def written(self) -> bool:
        return self.status in (INSTALL_CREATED, INSTALL_UPDATED)


def render_hook_shim(command: str = "pivotal-updater") -> str:
    """Return the shell script installed as the post-merge hook."""
    return (
        "#!/bin/sh\n"
        f"# {MANAGED_HOOK_MARKER}\n"
        "# Moves Pivotal Tracker stories along after merges into develop/staging.\n"
        f'if command -v {command} >/dev/null 2>&1; then\n'
        f"  {command} run || true\n"
        "fi\n"
        "exit 0\n"
    )


def hooks_dir(repo_root: str | Path) -> Path:
    return Path(repo_root) / ".git" / "hooks"


def is_managed_hook(path: Path) -> bool:
    """Return True when *path* is a shim written by this module."""
    if not path.is_file():
        return False
    try:
        content = path.read_text(encoding="utf-8", errors="ignore")
    except OSError:
        return False
    return MANAGED_HOOK_MARKER in content


def install_post_merge_hook(
    repo_root: str | Path,
    *,
    force: bool = False,
    command: str = "pivotal-updater",
) -> HookInstallResult:
    """Write the post-merge shim into ``.git/hooks``.

    Raises
    ------
    FileNotFoundError
        If the repository has no ``.git/hooks`` directory.
    """
    directory = hooks_dir(repo_root)
    if not directory.is_dir():
        raise FileNotFoundError(f"{directory} not found; is this a git repository?")

    dest = directory / HOOK_NAME
    content = render_hook_shim(command)

    if dest.exists():
        if is_managed_hook(dest):
            if dest.read_text(encoding="utf-8", errors="ignore") == content:
                return HookInstallResult(path=dest, status=INSTALL_UNCHANGED)
            status = INSTALL_UPDATED
        elif not force:
            logger.warning(
                "%s exists and was not written by pivotal-updater; leaving it.",
                dest,
            )
            return HookInstallResult(path=dest, status=INSTALL_SKIPPED_CUSTOM)
        else:
            status = INSTALL_UPDATED
    else:
        status = INSTALL_CREATED

    dest.write_text(content, encoding="utf-8")
    if os.name != "nt":
        dest.chmod(0o755)

    logger.info("Post-merge hook %s at %s", status, dest)
    return HookInstallResult(path=dest, status=status)


def remove_post_merge_hook(repo_root: str | Path) -> bool:
    """Delete the post-merge shim if this module wrote it.

    Returns True when a file was removed.
    """
    dest = hooks_dir(repo_root) / HOOK_NAME
    if not is_managed_hook(dest):
        return False
    dest.unlink()
    logger.info("Removed post-merge hook %s", dest)
    return True
