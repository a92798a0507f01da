"""Unit tests for configuration loading."""

import pytest

from texsync.config import DEFAULT_REPO_OWNER, DEFAULT_SPARSE_PATH, Config
from texsync.exceptions import ConfigError


@pytest.fixture
def clean_env(monkeypatch):
    for key in (
        "TEXSYNC_REPO_OWNER",
        "TEXSYNC_BRANCH",
        "TEXSYNC_SPARSE_PATH",
        "TEXSYNC_TARGET_FOLDER",
        "TEXSYNC_TIMEOUT",
        "TEXSYNC_GITHUB_TOKEN",
    ):
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


class TestConfig:
    """Tests for Config lookups."""

    def test_defaults(self, clean_env, tmp_path):
        config = Config(config_dir=tmp_path)

        assert config.repo_owner == DEFAULT_REPO_OWNER
        assert config.sparse_path == DEFAULT_SPARSE_PATH
        assert config.branch == "main"
        assert config.github_token is None
        assert config.state_file == tmp_path / "state.json"
        config.validate()

    def test_config_file(self, clean_env, tmp_path):
        (tmp_path / "config").write_text(
            "TEXSYNC_BRANCH=develop\nTEXSYNC_SPARSE_PATH=/textures/OTHER/\n"
        )
        config = Config(config_dir=tmp_path)

        assert config.branch == "develop"
        assert config.sparse_path == "textures/OTHER"

    def test_environment_overrides_file(self, clean_env, tmp_path):
        (tmp_path / "config").write_text("TEXSYNC_BRANCH=develop\n")
        clean_env.setenv("TEXSYNC_BRANCH", "release")

        assert Config(config_dir=tmp_path).branch == "release"

    def test_numeric_setting(self, clean_env, tmp_path):
        clean_env.setenv("TEXSYNC_TIMEOUT", "12.5")
        assert Config(config_dir=tmp_path).timeout == 12.5

    def test_invalid_number(self, clean_env, tmp_path):
        clean_env.setenv("TEXSYNC_TIMEOUT", "soon")
        with pytest.raises(ConfigError):
            Config(config_dir=tmp_path).timeout

    def test_invalid_target_folder(self, clean_env, tmp_path):
        clean_env.setenv("TEXSYNC_TARGET_FOLDER", "a/b")
        with pytest.raises(ConfigError):
            Config(config_dir=tmp_path).validate()
