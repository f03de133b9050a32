import pytest

from batchdb.config import DbConfig, make_table_name


def test_offline_defaults():
    config = DbConfig.from_env({"IS_OFFLINE": "true", "DB_PREFIX": "ignored"})

    assert config.offline
    assert config.endpoint_url == "http://localhost:8000"
    assert config.region_name == "localhost"
    assert config.table_prefix == "dev"


def test_remote_uses_prefix_and_region_from_env():
    config = DbConfig.from_env({"DB_PREFIX": "prod", "AWS_REGION": "eu-west-1"})

    assert not config.offline
    assert config.endpoint_url is None
    assert config.region_name == "eu-west-1"
    assert config.table_name("users") == "prod-users"


@pytest.mark.parametrize("value", ["", "0", "false", "False", "no", "off"])
def test_falsy_offline_values(value):
    assert not DbConfig.from_env({"IS_OFFLINE": value}).offline


def test_retry_settings_from_env():
    config = DbConfig.from_env({
        "DB_MAX_BATCH_ATTEMPTS": "3",
        "DB_BACKOFF_BASE": "0.5",
        "DB_BACKOFF_CAP": "2",
    })

    assert (config.max_batch_attempts, config.backoff_base, config.backoff_cap) == (3, 0.5, 2.0)


def test_invalid_retry_settings():
    with pytest.raises(ValueError):
        DbConfig(max_batch_attempts=0)
    with pytest.raises(ValueError):
        DbConfig(backoff_base=-1)


def test_make_table_name_without_prefix():
    assert make_table_name("", "users") == "users"
    assert make_table_name("dev", "users") == "dev-users"
