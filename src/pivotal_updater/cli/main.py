"""Main Click CLI entry point for the ``pivotal-updater`` command.

Run with no subcommand (as the post-merge hook does) it inspects the last
merge and updates Pivotal Tracker.  The other subcommands help set the hook up.

Entry point registered in pyproject.toml::

    [project.scripts]
    pivotal-updater = "pivotal_updater.cli.main:cli"

Usage examples::

    pivotal-updater
    pivotal-updater run --dry-run
    pivotal-updater inspect-message "Merge branch '42-login' into 'develop'"
    pivotal-updater init --project web=1234567
    pivotal-updater install-hook
    pivotal-updater config --json-output
"""

from __future__ import annotations

import json
import sys
from typing import Optional

import click
from pydantic import ValidationError

from pivotal_updater import __version__
from pivotal_updater.config import UpdaterConfig
from pivotal_updater.detection.branch_target import classify_target
from pivotal_updater.detection.completion import is_complete_in_text
from pivotal_updater.detection.story import get_story_id
from pivotal_updater.hooks.inspector import InspectionReport, MergeInspector
from pivotal_updater.hooks.installer import (
    INSTALL_SKIPPED_CUSTOM,
    install_post_merge_hook,
    remove_post_merge_hook,
)
from pivotal_updater.models.tracker import StoryState


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="pivotal-updater")
@click.option(
    "--repo",
    "repo_root",
    type=click.Path(exists=False, file_okay=False),
    default=None,
    envvar="PIVOTAL_UPDATER_REPO_ROOT",
    help="Repository root. Auto-detected from the working directory if not set.",
)
@click.pass_context
def cli(ctx: click.Context, repo_root: Optional[str]) -> None:
    """Pivotal Updater -- move Pivotal Tracker stories along after git merges."""
    ctx.ensure_object(dict)
    ctx.obj["repo_root"] = repo_root
    if ctx.invoked_subcommand is None:
        ctx.invoke(run)


@cli.command()
@click.option(
    "--dry-run",
    is_flag=True,
    default=False,
    help="Decide which stories to update but send nothing.",
)
@click.option(
    "--json-output",
    "output_json",
    is_flag=True,
    default=False,
    help="Print the inspection report as JSON.",
)
@click.pass_context
def run(ctx: click.Context, dry_run: bool = False, output_json: bool = False) -> None:
    """Inspect the last merge and update stories (the post-merge hook).

    Always exits 0 so that a tracker or configuration problem never fails
    the merge that triggered the hook.
    """
    if not output_json:
        click.secho("Pivotal Updater Tool", bold=True, reverse=True)

    config = _load_config(ctx)
    if config is None:
        return

    config.configure_logging()
    report = MergeInspector(config, dry_run=dry_run).run()

    if output_json:
        click.echo(json.dumps(_report_to_dict(report), indent=2, default=str))
    else:
        _render_report_text(report)


@cli.command("inspect-message")
@click.argument("message")
@click.option(
    "--json-output",
    "output_json",
    is_flag=True,
    default=False,
    help="Print the result as JSON.",
)
def inspect_message(message: str, output_json: bool) -> None:
    """Show how a commit MESSAGE would be interpreted.

    The message is treated as one string, so the completion check only looks
    for the word "Complete".
    """
    lines = message.splitlines()
    data = {
        "target": classify_target(lines).value,
        "story_id": get_story_id(lines),
        "complete": is_complete_in_text(message),
    }

    if output_json:
        click.echo(json.dumps(data, indent=2))
        return

    click.echo(f"Target:   {data['target']}")
    story = data["story_id"]
    click.echo(f"Story:    {story if story is not None else '(none)'}")
    click.echo(f"Complete: {'yes' if data['complete'] else 'no'}")


@cli.command()
@click.option(
    "--project",
    "projects",
    multiple=True,
    metavar="NAME=ID",
    help="Tracker project as name=id. Repeatable.",
)
@click.option("--default", "default_project", default=None, help="Project name used for updates.")
@click.option("--base-url", default=None, help="Tracker projects endpoint.")
@click.option("--source-branch", default=None, help="Branch delivered on staging merges.")
@click.pass_context
def init(
    ctx: click.Context,
    projects: tuple[str, ...],
    default_project: Optional[str],
    base_url: Optional[str],
    source_branch: Optional[str],
) -> None:
    """Write .pivotal-updater/config.json for this repository.

    The API token is not stored; export PIVOTAL_UPDATER_API_TOKEN instead.
    """
    config = _load_config(ctx)
    if config is None:
        sys.exit(1)

    try:
        parsed = _parse_projects(projects)
    except click.BadParameter as exc:
        click.secho(f"ERROR: {exc.message}", fg="red", err=True)
        sys.exit(1)

    values = config.model_dump()
    values["projects"] = {**config.projects, **parsed}
    if default_project is not None:
        values["project"] = default_project
    if base_url is not None:
        values["base_url"] = base_url
    if source_branch is not None:
        values["source_branch"] = source_branch

    try:
        updated = UpdaterConfig.model_validate(values)
    except ValidationError as exc:
        click.secho(f"ERROR: Invalid configuration: {exc}", fg="red", err=True)
        sys.exit(1)

    path = updated.save()
    click.secho(f"Configuration written to {path}", fg="green")
    if not updated.api_token:
        click.secho(
            "No API token set. Export PIVOTAL_UPDATER_API_TOKEN before merging.",
            fg="yellow",
        )


@cli.command("install-hook")
@click.option(
    "--force",
    is_flag=True,
    default=False,
    help="Overwrite an existing post-merge hook not written by pivotal-updater.",
)
@click.pass_context
def install_hook(ctx: click.Context, force: bool) -> None:
    """Install the git post-merge hook in this repository."""
    config = _load_config(ctx)
    if config is None:
        sys.exit(1)

    try:
        result = install_post_merge_hook(config.repo_root, force=force)
    except FileNotFoundError as exc:
        click.secho(f"ERROR: {exc}", fg="red", err=True)
        sys.exit(1)

    if result.status == INSTALL_SKIPPED_CUSTOM:
        click.secho(
            f"{result.path} already exists and was not written by pivotal-updater. "
            "Use --force to replace it.",
            fg="yellow",
        )
        return

    click.secho(f"Post-merge hook {result.status}: {result.path}", fg="green")


@cli.command("uninstall-hook")
@click.pass_context
def uninstall_hook(ctx: click.Context) -> None:
    """Remove the post-merge hook if pivotal-updater installed it."""
    config = _load_config(ctx)
    if config is None:
        sys.exit(1)

    if remove_post_merge_hook(config.repo_root):
        click.secho("Post-merge hook removed.", fg="green")
    else:
        click.echo("No pivotal-updater post-merge hook installed.")


@cli.command("config")
@click.option(
    "--json-output",
    "output_json",
    is_flag=True,
    default=False,
    help="Print the configuration as JSON.",
)
@click.pass_context
def show_config(ctx: click.Context, output_json: bool) -> None:
    """Show the resolved configuration (API token masked)."""
    config = _load_config(ctx)
    if config is None:
        sys.exit(1)

    data = config.to_dict()
    data["resolved_project_id"] = config.resolve_project_id()

    if output_json:
        click.echo(json.dumps(data, indent=2, default=str))
        return

    click.secho("Configuration", bold=True)
    click.secho("-" * 20)
    click.echo(f"  Repository:     {data['repo_root']}")
    click.echo(f"  Base URL:       {data['base_url']}")
    click.echo(f"  API token:      {data['api_token'] or '(not set)'}")
    click.echo(f"  Source branch:  {data['source_branch']}")
    click.echo(f"  Log level:      {data['log_level']}")
    if data["projects"]:
        click.echo("  Projects:")
        for name, project_id in sorted(data["projects"].items()):
            marker = " *" if project_id == data["resolved_project_id"] else ""
            click.echo(f"    {name}: {project_id}{marker}")
    else:
        click.echo("  Projects:       (none)")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _load_config(ctx: click.Context) -> Optional[UpdaterConfig]:
    """Load configuration for the command, reporting failures on stderr."""
    repo_root = (ctx.obj or {}).get("repo_root")
    try:
        return UpdaterConfig.load(repo_root=repo_root)
    except (ValidationError, ValueError) as exc:
        click.secho(f"ERROR: Failed to load configuration: {exc}", fg="red", err=True)
        return None


def _parse_projects(entries: tuple[str, ...]) -> dict[str, int]:
    """Parse repeated ``name=id`` options into a mapping."""
    parsed: dict[str, int] = {}
    for entry in entries:
        name, sep, value = entry.partition("=")
        name = name.strip()
        value = value.strip()
        if not sep or not name or not value.isdigit():
            raise click.BadParameter(
                f"Invalid --project value '{entry}'. Expected name=numeric-id."
            )
        parsed[name] = int(value)
    return parsed


def _report_to_dict(report: InspectionReport) -> dict:
    data = report.model_dump(mode="json")
    data["updates_sent"] = report.updates_sent
    return data


def _render_report_text(report: InspectionReport) -> None:
    """Render an inspection report as human-readable progress lines."""
    if report.error:
        click.secho(f"ERROR: {report.error}", fg="red", err=True)

    if not report.first_line:
        click.echo("No commit message to inspect.")
        return

    click.secho(f"Last commit: {report.first_line}", fg="cyan")
    click.echo(f"Target: {report.target.value}")

    for ref in report.merge_refs:
        click.echo(f"  merge {ref}")

    if not report.actions:
        click.echo("No stories to update.")
        return

    for action in report.actions:
        story = action.story_id if action.story_id is not None else "(unknown)"
        source = action.ref or "HEAD"
        verb = "Delivering" if action.state == StoryState.DELIVERED else "Finishing"
        if action.result.ok:
            click.secho(f"{verb} story {story} ({source})... done", fg="green")
        else:
            reason = action.result.error or action.result.outcome.value
            click.secho(
                f"{verb} story {story} ({source})... {action.result.outcome.value}: {reason}",
                fg="yellow",
            )

    click.secho("Done...", fg="green")


if __name__ == "__main__":
    cli()
