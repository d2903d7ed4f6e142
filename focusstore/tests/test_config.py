"""Tests for connection strings, settings and the global config file."""

import stat

import pytest

from focusstore.core.errors import ConfigurationError, ErrorCode
from focusstore.storage.config import (
    R2Config,
    StoreSettings,
    get_config_path,
    has_global_config,
    load_r2_config,
    read_global_config,
    save_global_config,
)

FULL_ENV = {
    "R2_ACCOUNT_ID": "acct",
    "R2_ACCESS_KEY_ID": "AK",
    "R2_SECRET_ACCESS_KEY": "SK",
    "R2_BUCKET": "bucket",
}


class TestConnectionString:
    def test_parse_with_public_url(self):
        config = R2Config.from_url(
            "r2://AK:SK@acct/bucket?publicUrl=https://pub.example/"
        ).unwrap()

        assert config.access_key_id == "AK"
        assert config.secret_access_key == "SK"
        assert config.account_id == "acct"
        assert config.bucket == "bucket"
        assert config.public_url == "https://pub.example/"

    def test_parse_without_public_url(self):
        config = R2Config.from_url("r2://AK:SK@acct/bucket").unwrap()
        assert config.public_url is None

    def test_percent_encoded_credentials(self):
        config = R2Config.from_url("r2://A%2FK:S%40K%3Ax@acct/bucket").unwrap()
        assert config.access_key_id == "A/K"
        assert config.secret_access_key == "S@K:x"

    @pytest.mark.parametrize("public_url", [None, "https://pub.example/", "https://cdn.example/a?b=c&d=e"])
    def test_round_trip(self, public_url):
        config = R2Config(
            account_id="acct",
            access_key_id="AK/+=",
            secret_access_key="s3cr3t/with@odd:chars",
            bucket="my-bucket",
            public_url=public_url,
        )
        assert R2Config.from_url(config.to_url()).unwrap() == config

    def test_wrong_scheme(self):
        result = R2Config.from_url("s3://AK:SK@acct/bucket")

        assert result.is_err()
        assert isinstance(result.error, ConfigurationError)
        assert result.error.code == ErrorCode.CONFIG_INVALID

    @pytest.mark.parametrize("url, field", [
        ("r2://AK:SK@acct/", "bucket"),
        ("r2://AK@acct/bucket", "secret_access_key"),
        ("r2://acct/bucket", "access_key_id"),
        ("r2://AK:SK@/bucket", "account_id"),
    ])
    def test_missing_parts(self, url, field):
        result = R2Config.from_url(url)

        assert result.is_err()
        assert result.error.code == ErrorCode.CONFIG_MISSING_FIELD
        assert field in result.error.context["fields"]

    def test_constructor_rejects_empty_fields(self):
        with pytest.raises(ConfigurationError) as exc_info:
            R2Config(account_id="", access_key_id="AK", secret_access_key="SK", bucket="b")
        assert exc_info.value.context["fields"] == ["account_id"]

    def test_secret_hidden_from_repr(self):
        config = R2Config(account_id="acct", access_key_id="AK", secret_access_key="topsecret", bucket="b")
        assert "topsecret" not in repr(config)

    def test_endpoint(self):
        config = R2Config(account_id="acct", access_key_id="AK", secret_access_key="SK", bucket="b")
        assert config.endpoint == "https://acct.r2.cloudflarestorage.com"


class TestFromEnv:
    def test_individual_variables(self):
        config = R2Config.from_env({**FULL_ENV, "R2_PUBLIC_URL": "https://pub.example"}).unwrap()
        assert config.bucket == "bucket"
        assert config.public_url == "https://pub.example"

    def test_url_takes_precedence(self):
        env = {**FULL_ENV, "R2_URL": "r2://K2:S2@other/b2"}
        config = R2Config.from_env(env).unwrap()
        assert config.account_id == "other"
        assert config.bucket == "b2"

    def test_invalid_url_reported(self):
        result = R2Config.from_env({"R2_URL": "https://nope"})
        assert result.is_err()
        assert "R2_URL" in result.error.message

    def test_missing_variables_named(self):
        result = R2Config.from_env({"R2_ACCOUNT_ID": "acct"})

        assert result.is_err()
        assert result.error.context["fields"] == [
            "R2_ACCESS_KEY_ID", "R2_SECRET_ACCESS_KEY", "R2_BUCKET",
        ]

    def test_custom_prefix(self):
        env = {key.replace("R2_", "ASSETS_"): value for key, value in FULL_ENV.items()}
        assert R2Config.from_env(env, prefix="ASSETS").unwrap().account_id == "acct"


class TestStoreSettings:
    def test_defaults(self):
        settings = StoreSettings()
        assert settings.region == "auto"
        assert settings.endpoint_url is None
        assert settings.max_concurrency == 10
        assert settings.list_page_size == 1000

    @pytest.mark.parametrize("kwargs", [
        {"region": ""},
        {"timeout_seconds": 0},
        {"max_concurrency": 0},
        {"list_page_size": 0},
        {"list_page_size": 1001},
        {"endpoint_url": "ftp://host"},
    ])
    def test_invalid(self, kwargs):
        with pytest.raises(ValueError):
            StoreSettings(**kwargs)


class TestGlobalConfig:
    def test_path_honours_override(self, config_dir):
        assert get_config_path() == config_dir / "r2.env"
        assert not has_global_config()

    def test_save_and_read(self, config_dir):
        path = save_global_config("r2://AK:SK@acct/bucket")

        assert path.read_text() == "R2_URL=r2://AK:SK@acct/bucket\n"
        assert stat.S_IMODE(path.stat().st_mode) == 0o600
        assert has_global_config()
        assert read_global_config().unwrap().bucket == "bucket"

    def test_file_without_url_line(self, config_dir):
        get_config_path().write_text("# empty\n")
        result = read_global_config()
        assert result.is_err()
        assert result.error.code == ErrorCode.CONFIG_INVALID

    def test_quoted_export_value(self, config_dir):
        get_config_path().write_text('# 1focus\nexport R2_URL="r2://AK:SK@acct/bucket"\n')

        config = load_r2_config({}).unwrap()

        assert config.account_id == "acct"
        assert config.bucket == "bucket"

    def test_inline_comment_and_other_keys(self, config_dir):
        get_config_path().write_text(
            "OTHER=1\nR2_URL=r2://AK:S%24K@acct/bucket  # written by init\n"
        )

        config = read_global_config().unwrap()

        assert config.secret_access_key == "S$K"
        assert config.bucket == "bucket"

    def test_missing_file(self, config_dir):
        result = read_global_config()
        assert result.is_err()
        assert result.error.code == ErrorCode.CONFIG_INVALID


class TestLoadR2Config:
    def test_nothing_configured(self, config_dir):
        result = load_r2_config({})

        assert result.is_err()
        assert result.error.code == ErrorCode.CONFIG_NOT_FOUND
        assert str(config_dir) in result.error.message

    def test_env_url_first(self, config_dir):
        save_global_config("r2://AK:SK@file-acct/bucket")
        config = load_r2_config({"R2_URL": "r2://AK:SK@env-acct/bucket"}).unwrap()
        assert config.account_id == "env-acct"

    def test_env_variables_before_file(self, config_dir):
        save_global_config("r2://AK:SK@file-acct/bucket")
        assert load_r2_config(FULL_ENV).unwrap().account_id == "acct"

    def test_falls_back_to_file(self, config_dir):
        save_global_config("r2://AK:SK@file-acct/bucket")
        assert load_r2_config({"R2_BUCKET": "partial"}).unwrap().account_id == "file-acct"

    def test_bad_env_url_not_skipped(self, config_dir):
        save_global_config("r2://AK:SK@file-acct/bucket")
        assert load_r2_config({"R2_URL": "bogus"}).is_err()
