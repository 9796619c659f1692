"""Tests for navfolio.core.config."""

import json
import os
from datetime import timedelta

import pytest
import yaml

from navfolio.core.config import DEFAULT_AMFI_URL, DEFAULT_YAHOO_URL, Config, parse_duration
from navfolio.core.exceptions import ConfigurationError


class TestConfig:
    def test_defaults(self, tmp_dir):
        config = Config(data_dir=tmp_dir)
        assert config.get("currency") == "USD"
        assert config.get("portfolios") == []
        assert config.get("providers.yahoo.base_url") == DEFAULT_YAHOO_URL
        assert config.get("providers.amfi.base_url") == DEFAULT_AMFI_URL
        assert config.get("cache.ttl.quote") == "1h"
        assert config.get("fetch.max_workers") == 8

    def test_default_data_dir(self):
        config = Config()
        assert config.get("paths.data_dir").endswith(".navfolio")

    def test_custom_data_dir(self, tmp_dir):
        config = Config(data_dir=tmp_dir)
        assert config.get("paths.data_dir") == tmp_dir
        assert config.get("paths.cache_dir") == os.path.join(tmp_dir, "cache")
        assert config.get("paths.log_dir") == os.path.join(tmp_dir, "logs")

    def test_yaml_config_file(self, tmp_dir):
        config_path = os.path.join(tmp_dir, "config.yaml")
        with open(config_path, "w") as f:
            yaml.dump({"currency": "INR", "cache": {"ttl": {"quote": "15m"}}}, f)

        config = Config(config_file=config_path, data_dir=tmp_dir)
        assert config.get("currency") == "INR"
        assert config.get("cache.ttl.quote") == "15m"
        # Sibling defaults survive the merge
        assert config.get("cache.ttl.history") == "12h"

    def test_json_config_file(self, tmp_dir):
        config_path = os.path.join(tmp_dir, "config.json")
        with open(config_path, "w") as f:
            json.dump({"fetch": {"timeout": 5}}, f)

        config = Config(config_file=config_path, data_dir=tmp_dir)
        assert config.get("fetch.timeout") == 5

    def test_env_overrides_file(self, tmp_dir, monkeypatch):
        config_path = os.path.join(tmp_dir, "config.yaml")
        with open(config_path, "w") as f:
            yaml.dump({"cache": {"ttl": {"quote": "2h"}}}, f)

        monkeypatch.setenv("NAVFOLIO_CACHE__TTL__QUOTE", "10m")
        config = Config(config_file=config_path, data_dir=tmp_dir)
        assert config.get_duration("cache.ttl.quote") == timedelta(minutes=10)

    def test_custom_env_prefix(self, monkeypatch, tmp_dir):
        monkeypatch.setenv("MYAPP_FETCH__RETRIES", "5")
        config = Config(env_prefix="MYAPP_", data_dir=tmp_dir)
        assert config.get_int("fetch.retries", 2) == 5

    def test_missing_file(self, tmp_dir):
        with pytest.raises(ConfigurationError, match="not found"):
            Config(config_file=os.path.join(tmp_dir, "nope.yaml"), data_dir=tmp_dir)

    def test_invalid_yaml(self, tmp_dir):
        config_path = os.path.join(tmp_dir, "config.yaml")
        with open(config_path, "w") as f:
            f.write("portfolios: [unclosed\n")
        with pytest.raises(ConfigurationError, match="Failed to parse"):
            Config(config_file=config_path, data_dir=tmp_dir)

    def test_non_mapping_file(self, tmp_dir):
        config_path = os.path.join(tmp_dir, "config.yaml")
        with open(config_path, "w") as f:
            yaml.dump(["a", "b"], f)
        with pytest.raises(ConfigurationError, match="mapping"):
            Config(config_file=config_path, data_dir=tmp_dir)

    def test_unsupported_extension(self, tmp_dir):
        config_path = os.path.join(tmp_dir, "config.toml")
        with open(config_path, "w") as f:
            f.write("a = 1\n")
        with pytest.raises(ConfigurationError, match="Unsupported"):
            Config(config_file=config_path, data_dir=tmp_dir)

    def test_get_missing_key(self, tmp_dir):
        config = Config(data_dir=tmp_dir)
        assert config.get("nonexistent.key") is None
        assert config.get("nonexistent.key", "fallback") == "fallback"

    def test_set(self, tmp_dir):
        config = Config(data_dir=tmp_dir)
        config.set("custom.nested.value", 42)
        assert config.get("custom.nested.value") == 42

    def test_typed_getters_reject_garbage(self, tmp_dir):
        config = Config(data_dir=tmp_dir, defaults={"fetch": {"max_workers": "lots", "timeout": "soon"}})
        with pytest.raises(ConfigurationError):
            config.get_int("fetch.max_workers", 8)
        with pytest.raises(ConfigurationError):
            config.get_float("fetch.timeout", 60)

    def test_ensure_directories(self, tmp_dir):
        config = Config(data_dir=tmp_dir)
        config.ensure_directories()
        assert os.path.isdir(os.path.join(tmp_dir, "cache"))
        assert os.path.isdir(os.path.join(tmp_dir, "logs"))


class TestParseDuration:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("90s", timedelta(seconds=90)),
            ("30m", timedelta(minutes=30)),
            ("4h", timedelta(hours=4)),
            ("7d", timedelta(days=7)),
            ("2w", timedelta(weeks=2)),
            ("1.5h", timedelta(minutes=90)),
            (3600, timedelta(hours=1)),
            ("120", timedelta(minutes=2)),
        ],
    )
    def test_valid(self, raw, expected):
        assert parse_duration(raw) == expected

    def test_timedelta_passthrough(self):
        assert parse_duration(timedelta(days=1)) == timedelta(days=1)

    @pytest.mark.parametrize("raw", ["soon", "4x", "", True, "-1h"])
    def test_invalid(self, raw):
        with pytest.raises(ConfigurationError):
            parse_duration(raw)

    def test_missing_duration_setting(self, tmp_dir):
        config = Config(data_dir=tmp_dir)
        with pytest.raises(ConfigurationError, match="Missing"):
            config.get_duration("cache.ttl.unknown")
