"""Tests for the configuration model and the INI config manager."""

import logging

import pytest
from pydantic import ValidationError

from mdown.exceptions import ConfigurationError
from mdown.models.config import DownloadConfig
from mdown.storage.config_manager import ConfigManager


class TestDownloadConfig:
    def test_defaults(self):
        config = DownloadConfig()
        assert config.num_connections == 4
        assert config.split_threshold == 8192
        assert config.sample_interval == 3.0
        assert config.staging_suffix == ".mdown-intermediate"
        assert config.output_dir == "."

    @pytest.mark.parametrize(
        "field, value",
        [
            ("num_connections", 0),
            ("num_connections", 65),
            ("split_threshold", 0),
            ("chunk_size", 512),
            ("max_retries", -1),
            ("retry_base_delay", -0.5),
            ("read_timeout", 0),
            ("sample_interval", -1),
            ("staging_suffix", "part"),
            ("staging_suffix", "."),
            ("staging_suffix", "./x"),
        ],
    )
    def test_rejects_invalid_values(self, field, value):
        with pytest.raises(ValidationError):
            DownloadConfig(**{field: value})

    def test_validates_assignment(self):
        config = DownloadConfig()
        with pytest.raises(ValidationError):
            config.num_connections = 0

    def test_ini_keys_exclude_internal_fields(self):
        keys = DownloadConfig.get_ini_keys()
        assert "config_path" not in keys
        assert {"num_connections", "split_threshold", "staging_suffix"} <= keys


class TestConfigManager:
    def test_missing_file_uses_defaults(self, tmp_path):
        config_file = tmp_path / "config.ini"
        config = ConfigManager(config_file).load_config()

        assert config == DownloadConfig(config_path=str(tmp_path))
        assert not config_file.exists()

    def test_cli_options_override_file(self, tmp_path):
        config_file = tmp_path / "config.ini"
        ConfigManager(config_file).save_new_config({"num_connections": 8})

        config = ConfigManager(config_file).load_config({"num_connections": 2})

        assert config.num_connections == 2

    def test_save_and_load(self, tmp_path):
        config_file = tmp_path / "mdown" / "config.ini"
        ConfigManager(config_file).save_new_config(
            {"num_connections": 12, "log_json": True, "retry_base_delay": 0.25}
        )

        config = ConfigManager(config_file).load_config()

        assert config.num_connections == 12
        assert config.log_json is True
        assert config.retry_base_delay == 0.25
        assert config.split_threshold == 8192

    def test_invalid_override(self, tmp_path):
        with pytest.raises(ConfigurationError):
            ConfigManager(tmp_path / "config.ini").load_config({"num_connections": 0})

    def test_non_numeric_value(self, tmp_path):
        config_file = tmp_path / "config.ini"
        config_file.write_text("[DEFAULT]\nnum_connections = many\n", encoding="utf-8")

        with pytest.raises(ConfigurationError):
            ConfigManager(config_file).load_config()

    def test_malformed_file(self, tmp_path):
        config_file = tmp_path / "config.ini"
        config_file.write_text("num_connections = 4\n", encoding="utf-8")

        with pytest.raises(ConfigurationError):
            ConfigManager(config_file).load_config()

    def test_adds_missing_keys(self, tmp_path):
        config_file = tmp_path / "config.ini"
        config_file.write_text("[DEFAULT]\nnum_connections = 6\n", encoding="utf-8")

        config = ConfigManager(config_file).load_config()

        assert config.num_connections == 6
        content = config_file.read_text(encoding="utf-8")
        assert "num_connections = 6" in content
        for key in DownloadConfig.get_ini_keys():
            assert f"{key} = " in content

    def test_unknown_key_is_ignored(self, tmp_path, caplog):
        config_file = tmp_path / "config.ini"
        ConfigManager(config_file).save_new_config()
        with open(config_file, "a", encoding="utf-8") as f:
            f.write("download_quality = 27\n")

        with caplog.at_level(logging.WARNING):
            config = ConfigManager(config_file).load_config()

        assert config.num_connections == 4
        assert "download_quality" in caplog.text

    def test_config_as_dict(self, tmp_path):
        data = ConfigManager(tmp_path / "config.ini").get_config_as_dict()
        assert data["num_connections"] == 4
        assert "config_path" not in data
