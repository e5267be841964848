"""Tests for service configuration.

These tests demonstrate:
1. Default value behavior
2. Environment variable loading
3. Field validation
4. The global configuration accessors
"""

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from library_lending.config import LendingConfig, get_config, reset_config, set_config


@pytest.mark.usefixtures("clean_env")
class TestLendingConfig:
    """Test lending service configuration behavior."""

    def test_default_configuration(self):
        config = LendingConfig()

        assert config.server_name == "library-lending"
        assert config.transport == "stdio"
        assert config.database_path == Path("data/library.db").absolute()
        assert config.borrow_requires_approval is False
        assert config.booking_grace_days == 7

        # Seeds for the settings row
        assert config.default_max_borrow_duration == 30
        assert config.default_max_borrow_limit == 3
        assert config.default_max_extension_limit == 2
        assert config.default_max_booking_duration == 7
        assert config.default_max_booking_limit == 3

    def test_environment_variable_loading(self):
        env_vars = {
            "LIBRARY_LENDING_SERVER_NAME": "branch-library",
            "LIBRARY_LENDING_DATABASE_PATH": "/tmp/lending.db",
            "LIBRARY_LENDING_BORROW_REQUIRES_APPROVAL": "true",
            "LIBRARY_LENDING_BOOKING_GRACE_DAYS": "3",
            "LIBRARY_LENDING_LOG_LEVEL": "DEBUG",
        }

        with patch.dict(os.environ, env_vars):
            config = LendingConfig()

        assert config.server_name == "branch-library"
        assert config.database_path == Path("/tmp/lending.db")
        assert config.borrow_requires_approval is True
        assert config.booking_grace_days == 3
        assert config.is_development

    def test_database_url(self):
        config = LendingConfig(database_path=Path("/tmp/lending.db"))
        assert config.get_database_url() == "sqlite:////tmp/lending.db"

        override = LendingConfig(database_url="postgresql://localhost/lending")
        assert override.get_database_url() == "postgresql://localhost/lending"

    def test_invalid_values(self):
        with pytest.raises(ValidationError):
            LendingConfig(transport="websocket")

        with pytest.raises(ValidationError):
            LendingConfig(log_level="TRACE")

        with pytest.raises(ValidationError):
            LendingConfig(booking_grace_days=0)

        with pytest.raises(ValidationError):
            LendingConfig(default_max_borrow_limit=0)

    def test_reserved_port_rejected(self):
        with pytest.raises(ValidationError, match="commonly reserved"):
            LendingConfig(http_port=5432)

    def test_server_info(self):
        config = LendingConfig(server_version="1.2.3")

        assert config.server_info == {
            "name": "library-lending",
            "version": "1.2.3",
            "transport": "stdio",
        }


@pytest.mark.usefixtures("clean_env")
class TestConfigSingleton:
    def test_get_config_is_cached(self):
        reset_config()

        assert get_config() is get_config()

    def test_set_and_reset(self):
        config = LendingConfig(server_name="custom-name")
        set_config(config)

        assert get_config() is config

        reset_config()
        assert get_config() is not config
