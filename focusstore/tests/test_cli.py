"""Tests for the focusstore command line."""

import pytest

from focusstore.__main__ import main
from focusstore.storage.config import get_config_path, read_global_config, save_global_config


def _run(*argv: str) -> int:
    with pytest.raises(SystemExit) as exc_info:
        main(list(argv))
    return exc_info.value.code


def _feed_prompts(monkeypatch, answers, secret="SK"):
    replies = iter(answers)
    monkeypatch.setattr("builtins.input", lambda prompt="": next(replies))
    monkeypatch.setattr("getpass.getpass", lambda prompt="": secret)


class TestStatus:
    def test_unconfigured(self, config_dir, capsys):
        assert _run("status") == 1

        out = capsys.readouterr().out
        assert str(config_dir / "r2.env") in out
        assert "Exists: no" in out
        assert "No R2 config found" in out

    def test_configured(self, config_dir, capsys):
        save_global_config("r2://AKIDLONGVALUE:SK@acct/bucket?publicUrl=https%3A%2F%2Fpub.example")

        assert _run("status") == 0

        out = capsys.readouterr().out
        assert "Exists: yes" in out
        assert "Bucket: bucket" in out
        assert "Public URL: https://pub.example" in out
        assert "AKIDLONG..." in out
        assert "AKIDLONGVALUE" not in out


class TestUrl:
    def test_prints_connection_string(self, config_dir, capsys):
        save_global_config("r2://AK:SK@acct/bucket")

        assert _run("url") == 0
        assert capsys.readouterr().out.strip() == "r2://AK:SK@acct/bucket"

    def test_unconfigured(self, config_dir, capsys):
        assert _run("url") == 1
        assert "No R2 config found" in capsys.readouterr().err


class TestInit:
    def test_writes_config(self, config_dir, monkeypatch, capsys):
        _feed_prompts(monkeypatch, ["acct", "AK", "bucket", "https://pub.example"], secret="s/k")

        assert _run("init") == 0

        config = read_global_config().unwrap()
        assert config.account_id == "acct"
        assert config.secret_access_key == "s/k"
        assert config.public_url == "https://pub.example"
        assert f"Saved to {get_config_path()}" in capsys.readouterr().out

    def test_setup_alias(self, config_dir, monkeypatch):
        _feed_prompts(monkeypatch, ["acct", "AK", "bucket", ""])

        assert _run("setup") == 0
        assert read_global_config().unwrap().public_url is None

    def test_missing_fields(self, config_dir, monkeypatch, capsys):
        _feed_prompts(monkeypatch, ["acct", "", "bucket", ""], secret="")

        assert _run("init") == 1
        assert "Access Key ID, Secret Access Key" in capsys.readouterr().out
        assert not get_config_path().exists()

    def test_keeps_existing_when_declined(self, config_dir, monkeypatch, capsys):
        save_global_config("r2://AK:SK@old/bucket")
        _feed_prompts(monkeypatch, ["n"])

        assert _run("init") == 0
        assert read_global_config().unwrap().account_id == "old"
        assert "Keeping existing config." in capsys.readouterr().out

    def test_existing_summary_shows_file_not_environment(self, config_dir, monkeypatch, capsys):
        save_global_config("r2://AK:SK@file-acct/file-bucket")
        monkeypatch.setenv("R2_URL", "r2://AK:SK@env-acct/env-bucket")
        _feed_prompts(monkeypatch, ["n"])

        assert _run("init") == 0
        out = capsys.readouterr().out
        assert "Bucket: file-bucket" in out
        assert "env-bucket" not in out

    def test_force_overwrites(self, config_dir, monkeypatch):
        save_global_config("r2://AK:SK@old/bucket")
        _feed_prompts(monkeypatch, ["new", "AK", "bucket", ""])

        assert _run("init", "--force") == 0
        assert read_global_config().unwrap().account_id == "new"


class TestArguments:
    def test_no_command_prints_help(self, config_dir, capsys):
        assert _run() == 0
        assert "usage: focusstore" in capsys.readouterr().out

    def test_bad_log_level(self, config_dir):
        assert _run("--log-level", "chatty", "status") == 2

    def test_version(self, capsys):
        assert _run("--version") == 0
        assert "focusstore 0.1.0" in capsys.readouterr().out
