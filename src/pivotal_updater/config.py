"""Configuration and settings module for Pivotal Updater.

Provides the :class:`UpdaterConfig` class which centralises all configuration
for the post-merge hook.  Configuration is resolved in priority order:

1. **Environment variables** (highest priority) -- ``PIVOTAL_UPDATER_*``
2. **Config file** -- ``<repo_root>/.pivotal-updater/config.json``
3. **Defaults** (lowest priority) -- sensible built-in values

Typical usage::

    config = UpdaterConfig.load()                        # auto-detect repo root
    config = UpdaterConfig.load("/path/to/repo")         # explicit repo root
    config = UpdaterConfig(api_token="...", projects={"web": 123})

    print(config.base_url)             # tracker projects endpoint
    print(config.resolve_project_id()) # 123
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, model_validator

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# Pivotal Tracker v5 projects endpoint.  Story URLs are built beneath it.
DEFAULT_BASE_URL = "https://www.pivotaltracker.com/services/v5/projects/"

# Config directory name, placed at the repository root.
DEFAULT_CONFIG_DIR_NAME = ".pivotal-updater"

# Config file name inside the config directory.
CONFIG_FILE_NAME = "config.json"

# Environment variable prefix.  For example, ``PIVOTAL_UPDATER_API_TOKEN``.
ENV_PREFIX = "PIVOTAL_UPDATER_"

# Branch whose merges are folded into a staging merge.
DEFAULT_SOURCE_BRANCH = "develop"

# Seconds to wait for a single git invocation.
DEFAULT_GIT_TIMEOUT = 30

# The repository root is the nearest directory above the working directory
# that holds this entry (a directory, or a file in worktrees).
GIT_DIR_NAME = ".git"

_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

# ---------------------------------------------------------------------------
# Configuration model
# ---------------------------------------------------------------------------


class UpdaterConfig(BaseModel):
    """Centralised configuration for the Pivotal Updater hook.

    Attributes
    ----------
    base_url:
        Tracker projects endpoint.  Story updates go to
        ``{base_url}/{project_id}/stories/{story_id}``.
    api_token:
        Static token sent in the ``X-TrackerToken`` header.  Updates are
        skipped when it is empty.
    projects:
        Mapping of logical project name to the tracker's numeric project id.
    project:
        Logical name of the project this repository belongs to.  When unset
        and ``projects`` holds exactly one entry, that entry is used.
    source_branch:
        Branch whose merge commits are collected when a merge targets staging.
    git_timeout:
        Timeout in seconds for each git invocation.
    log_level:
        Python logging level name.
    repo_root:
        Detected or configured repository root.  Read-only after construction.
    """

    base_url: str = Field(
        default=DEFAULT_BASE_URL,
        description="Tracker projects endpoint.",
    )
    api_token: str = Field(
        default="",
        description="Static tracker API token (X-TrackerToken).",
    )
    projects: dict[str, int] = Field(
        default_factory=dict,
        description="Logical project name -> tracker project id.",
    )
    project: Optional[str] = Field(
        default=None,
        description="Logical project name used for updates.",
    )
    source_branch: str = Field(
        default=DEFAULT_SOURCE_BRANCH,
        min_length=1,
        description="Branch whose merges are delivered on a staging merge.",
    )
    git_timeout: int = Field(
        default=DEFAULT_GIT_TIMEOUT,
        ge=1,
        le=600,
        description="Timeout for each git invocation (seconds).",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level: DEBUG, INFO, WARNING, ERROR, CRITICAL.",
    )
    repo_root: Optional[str] = Field(
        default=None,
        description="Detected or configured repository root path.",
    )

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def resolve_repo_root(self) -> "UpdaterConfig":
        """Resolve ``repo_root`` to an absolute path, detecting it if unset."""
        if self.repo_root is not None:
            self.repo_root = str(Path(self.repo_root).resolve())
        else:
            detected = _detect_repo_root()
            self.repo_root = str(detected if detected is not None else Path.cwd())
        return self

    @model_validator(mode="after")
    def validate_log_level(self) -> "UpdaterConfig":
        """Normalise and validate the log level string."""
        normalised = self.log_level.upper().strip()
        if normalised not in _VALID_LOG_LEVELS:
            raise ValueError(
                f"Invalid log_level '{self.log_level}'. "
                f"Must be one of: {', '.join(sorted(_VALID_LOG_LEVELS))}."
            )
        self.log_level = normalised
        return self

    @model_validator(mode="after")
    def validate_base_url(self) -> "UpdaterConfig":
        """Require an http(s) base URL."""
        if not self.base_url.startswith(("http://", "https://")):
            raise ValueError(
                f"Invalid base_url '{self.base_url}'. Must start with http:// or https://."
            )
        return self

    # ------------------------------------------------------------------
    # Factory: load from file + environment
    # ------------------------------------------------------------------

    @classmethod
    def load(
        cls,
        repo_root: Optional[str] = None,
        config_path: Optional[str] = None,
    ) -> "UpdaterConfig":
        """Load configuration with full resolution: env -> file -> defaults.

        Parameters
        ----------
        repo_root:
            Explicit repository root.  When *None*, the
            ``PIVOTAL_UPDATER_REPO_ROOT`` variable is consulted, then
            auto-detection is used.
        config_path:
            Explicit path to a ``config.json`` file.  When *None*, the file is
            looked up at ``<repo_root>/.pivotal-updater/config.json``.
        """
        if repo_root is None:
            repo_root = os.environ.get(f"{ENV_PREFIX}REPO_ROOT")

        if repo_root is not None:
            resolved_root = str(Path(repo_root).resolve())
        else:
            detected = _detect_repo_root()
            resolved_root = str(detected if detected is not None else Path.cwd())

        file_values = _load_config_file(resolved_root, config_path)
        env_values = _load_env_overrides()

        merged: dict = {}
        if file_values:
            merged.update(file_values)
        if env_values:
            merged.update(env_values)
        # The resolved root always wins over anything in the file.
        merged["repo_root"] = resolved_root

        return cls.model_validate(merged)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, config_path: Optional[str] = None) -> Path:
        """Write the configuration to a JSON file and return its path.

        The API token is never written; supply it through
        ``PIVOTAL_UPDATER_API_TOKEN`` instead.
        """
        if config_path is not None:
            target = Path(config_path).resolve()
        else:
            target = Path(self.repo_root) / DEFAULT_CONFIG_DIR_NAME / CONFIG_FILE_NAME

        target.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "base_url": self.base_url,
            "projects": dict(self.projects),
            "source_branch": self.source_branch,
            "git_timeout": self.git_timeout,
            "log_level": self.log_level,
        }
        if self.project is not None:
            data["project"] = self.project

        with open(target, "w", encoding="utf-8") as fp:
            json.dump(data, fp, indent=2, ensure_ascii=False)
            fp.write("\n")

        logger.info("Saved configuration to %s", target)
        return target

    # ------------------------------------------------------------------
    # Utility
    # ------------------------------------------------------------------

    def resolve_project_id(self) -> Optional[int]:
        """Return the tracker id of the configured project, or None.

        Uses ``project`` when set.  Otherwise falls back to the only entry
        of ``projects``; with zero or several entries there is no default.
        """
        if self.project is not None:
            project_id = self.projects.get(self.project)
            if project_id is None:
                logger.warning(
                    "Project %r is not in the configured projects (%s).",
                    self.project,
                    ", ".join(sorted(self.projects)) or "none",
                )
            return project_id

        if len(self.projects) == 1:
            return next(iter(self.projects.values()))

        return None

    def configure_logging(self) -> None:
        """Apply the configured log level to the ``pivotal_updater`` logger.

        Idempotent: a stream handler is only added once.
        """
        pkg_logger = logging.getLogger("pivotal_updater")
        pkg_logger.setLevel(self.log_level)

        if not pkg_logger.handlers:
            handler = logging.StreamHandler()
            handler.setLevel(self.log_level)
            formatter = logging.Formatter(
                "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
            handler.setFormatter(formatter)
            pkg_logger.addHandler(handler)

    def to_dict(self, mask_token: bool = True) -> dict:
        """Return all configuration values as a plain dictionary."""
        data = self.model_dump()
        if mask_token:
            data["api_token"] = _mask(self.api_token)
        return data

    def __repr__(self) -> str:
        return (
            f"UpdaterConfig("
            f"base_url={self.base_url!r}, "
            f"api_token={_mask(self.api_token)!r}, "
            f"projects={self.projects!r}, "
            f"project={self.project!r}, "
            f"source_branch={self.source_branch!r}, "
            f"repo_root={self.repo_root!r}"
            f")"
        )


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------


def _mask(token: str) -> str:
    if not token:
        return ""
    if len(token) <= 4:
        return "*" * len(token)
    return "*" * (len(token) - 4) + token[-4:]


def _detect_repo_root(start_path: Optional[Path] = None) -> Optional[Path]:
    """Return the nearest directory at or above *start_path* holding ``.git``."""
    start = (start_path or Path.cwd()).resolve()
    for candidate in (start, *start.parents):
        if (candidate / GIT_DIR_NAME).exists():
            return candidate
    return None


def _load_config_file(repo_root: str, config_path: Optional[str] = None) -> dict:
    """Return the JSON object stored in the hook's config file.

    A missing, unreadable or non-object file yields ``{}`` so the hook still
    runs on defaults and environment variables.
    """
    path = (
        Path(config_path).resolve()
        if config_path is not None
        else Path(repo_root) / DEFAULT_CONFIG_DIR_NAME / CONFIG_FILE_NAME
    )
    if not path.is_file():
        logger.debug("No config file at %s.", path)
        return {}

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("Ignoring config file %s: %s", path, exc)
        return {}

    if not isinstance(data, dict):
        logger.warning("Ignoring config file %s: not a JSON object.", path)
        return {}
    return data


def _load_env_overrides() -> dict:
    """Read ``PIVOTAL_UPDATER_*`` environment variables and return overrides.

    Supported variables:

    - ``PIVOTAL_UPDATER_BASE_URL`` -- override base_url
    - ``PIVOTAL_UPDATER_API_TOKEN`` -- override api_token
    - ``PIVOTAL_UPDATER_PROJECTS`` -- JSON object of name -> id
    - ``PIVOTAL_UPDATER_PROJECT`` -- override project
    - ``PIVOTAL_UPDATER_SOURCE_BRANCH`` -- override source_branch
    - ``PIVOTAL_UPDATER_GIT_TIMEOUT`` -- override git_timeout (integer)
    - ``PIVOTAL_UPDATER_LOG_LEVEL`` -- override log_level

    Malformed values are logged and ignored.
    """
    overrides: dict = {}

    for env_key, field_name in (
        ("BASE_URL", "base_url"),
        ("API_TOKEN", "api_token"),
        ("PROJECT", "project"),
        ("SOURCE_BRANCH", "source_branch"),
        ("LOG_LEVEL", "log_level"),
    ):
        val = os.environ.get(f"{ENV_PREFIX}{env_key}")
        if val is not None:
            overrides[field_name] = val

    projects = os.environ.get(f"{ENV_PREFIX}PROJECTS")
    if projects is not None:
        try:
            parsed = json.loads(projects)
        except json.JSONDecodeError:
            parsed = None
        if isinstance(parsed, dict):
            overrides["projects"] = parsed
        else:
            logger.warning(
                "Invalid %sPROJECTS value: %r. Must be a JSON object. Ignoring.",
                ENV_PREFIX,
                projects,
            )

    git_timeout = os.environ.get(f"{ENV_PREFIX}GIT_TIMEOUT")
    if git_timeout is not None:
        try:
            overrides["git_timeout"] = int(git_timeout)
        except ValueError:
            logger.warning(
                "Invalid %sGIT_TIMEOUT value: %r. Must be an integer. Ignoring.",
                ENV_PREFIX,
                git_timeout,
            )

    if overrides:
        logger.debug(
            "Environment overrides applied: %s",
            ", ".join(overrides.keys()),
        )

    return overrides
