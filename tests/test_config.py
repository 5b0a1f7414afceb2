import subprocess

import pytest

import effective_workflow.config
from effective_workflow.config import Settings, current_repository
from effective_workflow.core.errors import ConfigurationError
from effective_workflow.core.models import Repository


def test_defaults_from_empty_environment():
    settings = Settings.from_env({})

    assert settings.token is None
    assert settings.host == "github.com"
    assert settings.repository is None
    assert settings.timeout == 30.0
    assert settings.log_level == "WARNING"


def test_environment_overrides():
    settings = Settings.from_env({
        "GH_TOKEN": "gh-token",
        "GITHUB_TOKEN": "actions-token",
        "GH_HOST": "GHE.example.com",
        "GH_REPO": "octocat/Hello-World",
        "EFFECTIVE_WORKFLOW_TIMEOUT": "2.5",
        "EFFECTIVE_WORKFLOW_LOG_LEVEL": "debug",
    })

    assert settings.token == "gh-token"
    assert settings.host == "ghe.example.com"
    assert settings.repository == "octocat/Hello-World"
    assert settings.timeout == 2.5
    assert settings.log_level == "DEBUG"


def test_github_token_is_fallback():
    assert Settings.from_env({"GITHUB_TOKEN": "actions-token"}).token == "actions-token"


@pytest.mark.parametrize("env", [
    {"EFFECTIVE_WORKFLOW_TIMEOUT": "soon"},
    {"EFFECTIVE_WORKFLOW_TIMEOUT": "0"},
    {"EFFECTIVE_WORKFLOW_LOG_LEVEL": "LOUD"},
])
def test_invalid_settings(env):
    with pytest.raises(ConfigurationError):
        Settings.from_env(env)


def test_repo_flag_wins_over_environment():
    settings = Settings(repository="octocat/from-env")

    assert current_repository(settings, override="octocat/from-flag") == Repository("octocat", "from-flag")


def test_gh_repo_uses_configured_host():
    settings = Settings(host="ghe.example.com", repository="octocat/Hello-World")

    assert current_repository(settings) == Repository("octocat", "Hello-World", "ghe.example.com")


def test_falls_back_to_git_origin(monkeypatch):
    monkeypatch.setattr(effective_workflow.config, "_git_origin_url",
                        lambda cwd=None: "git@github.com:octocat/Hello-World.git")

    assert current_repository(Settings()) == Repository("octocat", "Hello-World")


def test_no_repository_anywhere(monkeypatch):
    def no_remote(cwd=None):
        raise subprocess.CalledProcessError(2, ["git", "remote", "get-url", "origin"])

    monkeypatch.setattr(effective_workflow.config, "_git_origin_url", no_remote)

    with pytest.raises(ConfigurationError) as exc:
        current_repository(Settings())
    assert "--repo" in str(exc.value)
