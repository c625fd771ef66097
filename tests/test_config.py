"""Tests for UpdaterConfig -- configuration and settings module.

All tests use real files in temporary directories, real environment variables,
and real config.json files.
"""

import json
import logging
import os
from pathlib import Path

import pytest

from pivotal_updater.config import (
    CONFIG_FILE_NAME,
    DEFAULT_BASE_URL,
    DEFAULT_CONFIG_DIR_NAME,
    ENV_PREFIX,
    UpdaterConfig,
    _detect_repo_root,
    _load_config_file,
    _load_env_overrides,
)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def repo_dir(tmp_path: Path) -> Path:
    """Create a temporary repository directory with a .git marker."""
    (tmp_path / ".git").mkdir()
    return tmp_path


@pytest.fixture()
def config_file(repo_dir: Path) -> Path:
    """Create a config.json inside the repository's .pivotal-updater/ directory."""
    config_dir = repo_dir / DEFAULT_CONFIG_DIR_NAME
    config_dir.mkdir()
    config_path = config_dir / CONFIG_FILE_NAME
    config_path.write_text(
        json.dumps(
            {
                "projects": {"web": 1234567, "api": 7654321},
                "project": "web",
                "source_branch": "dev",
                "log_level": "DEBUG",
            },
            indent=2,
        ),
        encoding="utf-8",
    )
    return config_path


# ---------------------------------------------------------------------------
# Defaults and validation
# ---------------------------------------------------------------------------


class TestDefaults:
    """UpdaterConfig with no arguments uses sensible defaults."""

    def test_default_base_url(self, repo_dir: Path) -> None:
        config = UpdaterConfig(repo_root=str(repo_dir))
        assert config.base_url == DEFAULT_BASE_URL

    def test_default_token_is_empty(self, repo_dir: Path) -> None:
        assert UpdaterConfig(repo_root=str(repo_dir)).api_token == ""

    def test_default_source_branch(self, repo_dir: Path) -> None:
        assert UpdaterConfig(repo_root=str(repo_dir)).source_branch == "develop"

    def test_repo_root_is_resolved_to_absolute(self, repo_dir: Path) -> None:
        config = UpdaterConfig(repo_root=str(repo_dir))
        assert Path(config.repo_root).is_absolute()


class TestValidation:
    def test_log_level_is_normalised(self, repo_dir: Path) -> None:
        config = UpdaterConfig(repo_root=str(repo_dir), log_level=" warning ")
        assert config.log_level == "WARNING"

    def test_invalid_log_level(self, repo_dir: Path) -> None:
        with pytest.raises(ValueError):
            UpdaterConfig(repo_root=str(repo_dir), log_level="LOUD")

    def test_base_url_must_be_http(self, repo_dir: Path) -> None:
        with pytest.raises(ValueError):
            UpdaterConfig(repo_root=str(repo_dir), base_url="ftp://tracker")

    def test_project_ids_must_be_numeric(self, repo_dir: Path) -> None:
        with pytest.raises(ValueError):
            UpdaterConfig(repo_root=str(repo_dir), projects={"web": "YOUR_PROJECT_ID"})

    def test_git_timeout_bounds(self, repo_dir: Path) -> None:
        with pytest.raises(ValueError):
            UpdaterConfig(repo_root=str(repo_dir), git_timeout=0)


# ---------------------------------------------------------------------------
# Project resolution
# ---------------------------------------------------------------------------


class TestResolveProjectId:
    def test_named_project(self, repo_dir: Path) -> None:
        config = UpdaterConfig(
            repo_root=str(repo_dir),
            projects={"web": 1, "api": 2},
            project="api",
        )
        assert config.resolve_project_id() == 2

    def test_single_project_is_default(self, repo_dir: Path) -> None:
        config = UpdaterConfig(repo_root=str(repo_dir), projects={"web": 1234})
        assert config.resolve_project_id() == 1234

    def test_several_projects_without_name(self, repo_dir: Path) -> None:
        config = UpdaterConfig(repo_root=str(repo_dir), projects={"web": 1, "api": 2})
        assert config.resolve_project_id() is None

    def test_unknown_project_name(self, repo_dir: Path) -> None:
        config = UpdaterConfig(
            repo_root=str(repo_dir), projects={"web": 1}, project="mobile"
        )
        assert config.resolve_project_id() is None

    def test_no_projects(self, repo_dir: Path) -> None:
        assert UpdaterConfig(repo_root=str(repo_dir)).resolve_project_id() is None


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


class TestLoad:
    """UpdaterConfig.load merges env > file > defaults."""

    def test_load_from_file(self, repo_dir: Path, config_file: Path) -> None:
        config = UpdaterConfig.load(repo_root=str(repo_dir))
        assert config.projects == {"web": 1234567, "api": 7654321}
        assert config.project == "web"
        assert config.source_branch == "dev"
        assert config.log_level == "DEBUG"

    def test_load_without_file_uses_defaults(self, repo_dir: Path) -> None:
        config = UpdaterConfig.load(repo_root=str(repo_dir))
        assert config.projects == {}
        assert config.base_url == DEFAULT_BASE_URL

    def test_env_overrides_file(self, repo_dir: Path, config_file: Path) -> None:
        os.environ[f"{ENV_PREFIX}PROJECT"] = "api"
        os.environ[f"{ENV_PREFIX}API_TOKEN"] = "secret-token"
        config = UpdaterConfig.load(repo_root=str(repo_dir))
        assert config.project == "api"
        assert config.api_token == "secret-token"
        assert config.resolve_project_id() == 7654321

    def test_repo_root_from_env(self, repo_dir: Path, config_file: Path) -> None:
        os.environ[f"{ENV_PREFIX}REPO_ROOT"] = str(repo_dir)
        config = UpdaterConfig.load()
        assert config.repo_root == str(repo_dir.resolve())
        assert config.project == "web"

    def test_repo_root_in_file_is_ignored(self, repo_dir: Path, config_file: Path) -> None:
        data = json.loads(config_file.read_text(encoding="utf-8"))
        data["repo_root"] = "/somewhere/else"
        config_file.write_text(json.dumps(data), encoding="utf-8")
        config = UpdaterConfig.load(repo_root=str(repo_dir))
        assert config.repo_root == str(repo_dir.resolve())

    def test_explicit_config_path(self, repo_dir: Path, tmp_path: Path) -> None:
        other = tmp_path / "other.json"
        other.write_text(json.dumps({"source_branch": "main"}), encoding="utf-8")
        config = UpdaterConfig.load(repo_root=str(repo_dir), config_path=str(other))
        assert config.source_branch == "main"


class TestLoadConfigFile:
    def test_missing_file(self, repo_dir: Path) -> None:
        assert _load_config_file(str(repo_dir)) == {}

    def test_invalid_json(self, repo_dir: Path) -> None:
        config_dir = repo_dir / DEFAULT_CONFIG_DIR_NAME
        config_dir.mkdir()
        (config_dir / CONFIG_FILE_NAME).write_text("{not json", encoding="utf-8")
        assert _load_config_file(str(repo_dir)) == {}

    def test_non_object_json(self, repo_dir: Path) -> None:
        config_dir = repo_dir / DEFAULT_CONFIG_DIR_NAME
        config_dir.mkdir()
        (config_dir / CONFIG_FILE_NAME).write_text("[1, 2]", encoding="utf-8")
        assert _load_config_file(str(repo_dir)) == {}


class TestEnvOverrides:
    def test_no_variables(self) -> None:
        assert _load_env_overrides() == {}

    def test_string_fields(self) -> None:
        os.environ[f"{ENV_PREFIX}BASE_URL"] = "https://tracker.example.com/projects"
        os.environ[f"{ENV_PREFIX}SOURCE_BRANCH"] = "dev"
        overrides = _load_env_overrides()
        assert overrides["base_url"] == "https://tracker.example.com/projects"
        assert overrides["source_branch"] == "dev"

    def test_projects_json(self) -> None:
        os.environ[f"{ENV_PREFIX}PROJECTS"] = '{"web": 99}'
        assert _load_env_overrides()["projects"] == {"web": 99}

    def test_invalid_projects_ignored(self) -> None:
        os.environ[f"{ENV_PREFIX}PROJECTS"] = "web=99"
        assert "projects" not in _load_env_overrides()

    def test_git_timeout(self) -> None:
        os.environ[f"{ENV_PREFIX}GIT_TIMEOUT"] = "5"
        assert _load_env_overrides()["git_timeout"] == 5

    def test_invalid_git_timeout_ignored(self) -> None:
        os.environ[f"{ENV_PREFIX}GIT_TIMEOUT"] = "soon"
        assert "git_timeout" not in _load_env_overrides()


class TestDetectRepoRoot:
    def test_finds_marker_in_parent(self, repo_dir: Path) -> None:
        nested = repo_dir / "a" / "b"
        nested.mkdir(parents=True)
        assert _detect_repo_root(nested) == repo_dir.resolve()

    def test_config_dir_alone_is_not_a_root(self, repo_dir: Path) -> None:
        nested = repo_dir / "sub"
        (nested / DEFAULT_CONFIG_DIR_NAME).mkdir(parents=True)
        assert _detect_repo_root(nested) == repo_dir.resolve()

    def test_git_file_marks_a_worktree(self, tmp_path: Path) -> None:
        worktree = tmp_path / "wt"
        worktree.mkdir()
        (worktree / ".git").write_text("gitdir: /elsewhere\n", encoding="utf-8")
        assert _detect_repo_root(worktree) == worktree.resolve()


# ---------------------------------------------------------------------------
# Persistence and utilities
# ---------------------------------------------------------------------------


class TestSave:
    def test_save_round_trip_without_token(self, repo_dir: Path) -> None:
        config = UpdaterConfig(
            repo_root=str(repo_dir),
            api_token="secret-token",
            projects={"web": 42},
            project="web",
        )
        path = config.save()

        assert path == repo_dir.resolve() / DEFAULT_CONFIG_DIR_NAME / CONFIG_FILE_NAME
        data = json.loads(path.read_text(encoding="utf-8"))
        assert "api_token" not in data
        assert data["projects"] == {"web": 42}

        reloaded = UpdaterConfig.load(repo_root=str(repo_dir))
        assert reloaded.projects == {"web": 42}
        assert reloaded.project == "web"
        assert reloaded.api_token == ""


class TestUtilities:
    def test_to_dict_masks_token(self, repo_dir: Path) -> None:
        config = UpdaterConfig(repo_root=str(repo_dir), api_token="abcdef123456")
        assert config.to_dict()["api_token"] == "********3456"
        assert config.to_dict(mask_token=False)["api_token"] == "abcdef123456"

    def test_repr_masks_token(self, repo_dir: Path) -> None:
        config = UpdaterConfig(repo_root=str(repo_dir), api_token="abcdef123456")
        assert "abcdef123456" not in repr(config)

    def test_configure_logging_is_idempotent(self, repo_dir: Path) -> None:
        pkg_logger = logging.getLogger("pivotal_updater")
        saved = list(pkg_logger.handlers)
        saved_level = pkg_logger.level
        pkg_logger.handlers.clear()
        try:
            config = UpdaterConfig(repo_root=str(repo_dir), log_level="DEBUG")
            config.configure_logging()
            config.configure_logging()
            assert len(pkg_logger.handlers) == 1
            assert pkg_logger.level == logging.DEBUG
        finally:
            pkg_logger.handlers[:] = saved
            pkg_logger.setLevel(saved_level)
