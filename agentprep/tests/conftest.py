"""
Shared fixtures.

Every test gets its own HOME and global git config file, so global-scope
writes never touch the developer's real ~/.gitconfig.
"""

import pytest

from agentprep.tests.mocks import init_repo, make_config


GITHUB_VARIABLES = [
    "GITHUB_ACTIONS",
    "GITHUB_STATE",
    "GITHUB_OUTPUT",
    "GITHUB_TOKEN",
    "GITHUB_REPOSITORY",
    "GITHUB_ACTOR",
    "GITHUB_WORKFLOW",
    "STATE_isPost",
    "AGENTPREP_DEBUG",
]


@pytest.fixture(autouse=True)
def isolated_git(tmp_path_factory, monkeypatch):
    home = tmp_path_factory.mktemp("home")
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(home / ".gitconfig"))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_CEILING_DIRECTORIES", str(tmp_path_factory.getbasetemp()))
    for name in GITHUB_VARIABLES:
        monkeypatch.delenv(name, raising=False)
    return home


@pytest.fixture
def repo(tmp_path):
    return init_repo(tmp_path / "repo")


@pytest.fixture
def handoff_path(tmp_path):
    return tmp_path / "state" / "handoff.json"


@pytest.fixture
def config(repo, handoff_path):
    return make_config(repo, handoff_path)
