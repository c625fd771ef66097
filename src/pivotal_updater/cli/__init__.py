"""Click CLI commands for the post-merge hook and its setup.

Provides the ``pivotal-updater`` CLI entry point with subcommands:
- ``pivotal-updater run``             -- Inspect the last merge and update stories (default).
- ``pivotal-updater inspect-message`` -- Show how a message would be interpreted.
- ``pivotal-updater init``            -- Write the repository config file.
- ``pivotal-updater install-hook``    -- Install the git post-merge hook.
- ``pivotal-updater uninstall-hook``  -- Remove the git post-merge hook.
- ``pivotal-updater config``          -- Show the resolved configuration.
"""

from pivotal_updater.cli.main import (
    cli,
    init,
    inspect_message,
    install_hook,
    run,
    show_config,
    uninstall_hook,
)

__all__ = [
    "cli",
    "init",
    "inspect_message",
    "install_hook",
    "run",
    "show_config",
    "uninstall_hook",
]
