"""
Unit tests for logging setup in dotbit.avatar.app.cli
"""

import json
import logging
from unittest.mock import patch

import pytest

from dotbit.avatar.app.cli import configure_logging


@pytest.fixture
def restore_levels():
    names = ("", "aiohttp.access")
    levels = {name: logging.getLogger(name).level for name in names}
    yield
    for name, level in levels.items():
        logging.getLogger(name).setLevel(level)


class TestConfigureLogging:
    @patch("dotbit.avatar.app.cli.dictConfig")
    def test_config_file(self, mock_dict_config, monkeypatch, tmp_path):
        config = {"version": 1, "root": {"level": "WARNING"}}
        config_file = tmp_path / "logging.json"
        config_file.write_text(json.dumps(config))
        monkeypatch.setenv("LOGGING_CONFIG_FILE", str(config_file))

        configure_logging(debug=True)

        mock_dict_config.assert_called_once_with(config)

    def test_debug_levels(self, monkeypatch, restore_levels):
        monkeypatch.delenv("LOGGING_CONFIG_FILE", raising=False)

        configure_logging(debug=True)

        assert logging.getLogger().level == logging.DEBUG
        assert logging.getLogger("aiohttp.access").level == logging.INFO

    def test_default_levels(self, monkeypatch, restore_levels):
        monkeypatch.delenv("LOGGING_CONFIG_FILE", raising=False)

        configure_logging()

        assert logging.getLogger().level == logging.INFO
        assert logging.getLogger("aiohttp.access").level == logging.WARNING
