"""Shared fixtures for the trip ledger tests."""

from pathlib import Path

import pytest

from tripledger.core.config import ConfigManager, reset_config

CONFIG_DIR = Path(__file__).parent.parent / "config"


@pytest.fixture
def config_manager():
    """Config manager on the repository's config/config.yaml."""
    return ConfigManager(config_dir=CONFIG_DIR)


@pytest.fixture(autouse=True)
def _global_config(config_manager):
    """Engines built without a config manager use the repository config."""
    reset_config(config_manager)
    yield
    reset_config()


@pytest.fixture
def make_config():
    """Build a config manager with business config overrides."""
    def _make(**overrides):
        return ConfigManager(config_dir=CONFIG_DIR, overrides=overrides)
    return _make
