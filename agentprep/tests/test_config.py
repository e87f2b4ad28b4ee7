"""Tests for configuration loading, overrides and validation."""

import argparse

import pytest

from agentprep.config import Config


SAMPLE_TOML = """
[workspace]
directory = "/srv/app"

[hooks]
create_noop = true
directory = ".githooks"
backup_directory = ".githooks.backup"

[identity]
user_name = "release-bot"
user_email = "release-bot@example.com"

[auth]
repository = "acme/app"
host = "github.example.com"

[dependencies]
install = false

[backup]
max_age_hours = 6

[handoff]
backend = "file"
path = "~/state/handoff.json"

[output]
quiet = true
"""


@pytest.fixture(autouse=True)
def no_local_config(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)


def _args(**kwargs):
    defaults = {"directory": None, "debug": None, "quiet": None, "json": None}
    defaults.update(kwargs)
    return argparse.Namespace(**defaults)


class TestConfigLoading:

    def test_defaults(self):
        config = Config.load(environ={})
        assert config.hooks.disable
        assert config.hooks.directory == ".husky"
        assert config.handoff.backend == "auto"
        assert config.dependencies.install
        assert config.validate() == []

    def test_explicit_file(self, tmp_path):
        path = tmp_path / "agentprep.toml"
        path.write_text(SAMPLE_TOML)

        config = Config.load(str(path), environ={})

        assert config.workspace.directory == "/srv/app"
        assert config.hooks.create_noop
        assert config.hooks.directory == ".githooks"
        assert config.hooks.disable
        assert config.identity.user_name == "release-bot"
        assert config.auth.remote_url() == "https://x-access-token:@github.example.com/acme/app.git"
        assert not config.dependencies.install
        assert config.backup.max_age_hours == 6
        assert config.handoff.path == "~/state/handoff.json"
        assert config.output.quiet
        assert "Config: " + str(path) in config.summary()

    def test_missing_explicit_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            Config.load(str(tmp_path / "nope.toml"))

    def test_found_in_working_directory(self, tmp_path, monkeypatch):
        (tmp_path / ".agentprep.toml").write_text('[lint]\ndisable = false\n')
        monkeypatch.chdir(tmp_path)
        assert not Config.load(environ={}).lint.disable

    def test_environment_overrides_file(self, tmp_path):
        path = tmp_path / "agentprep.toml"
        path.write_text(SAMPLE_TOML)
        config = Config.load(str(path), environ={
            "GITHUB_TOKEN": "ghs_abc",
            "GITHUB_REPOSITORY": "acme/other",
            "AGENTPREP_DEBUG": "yes",
        })
        assert config.auth.token == "ghs_abc"
        assert config.auth.repository == "acme/other"
        assert config.output.debug
        assert "token set" in config.summary()
        assert "ghs_abc" not in config.summary()

    def test_empty_environment_values_are_ignored(self):
        config = Config.load(environ={"GITHUB_TOKEN": "", "AGENTPREP_DEBUG": ""})
        assert config.auth.token == ""
        assert not config.output.debug

    def test_arguments_override_everything(self, tmp_path):
        config = Config.load(environ={}).override_from_args(_args(directory=str(tmp_path), json=True))
        assert config.workspace.path == tmp_path
        assert config.output.json
        assert not config.output.quiet


class TestConfigValidation:

    def test_unknown_backend(self):
        config = Config()
        config.handoff.backend = "s3"
        assert any("s3" in e for e in config.validate())

    def test_required_auth_without_token(self):
        config = Config()
        config.auth.required = True
        assert any("token" in e for e in config.validate())

    def test_negative_age_and_bad_timeout(self):
        config = Config()
        config.backup.max_age_hours = -1
        config.verify.timeout = 0
        assert len(config.validate()) == 2

    def test_hooks_directory_must_differ_from_backup(self):
        config = Config()
        config.hooks.backup_directory = config.hooks.directory
        assert config.validate()
