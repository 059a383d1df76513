import pytest

from history_importer.config import ImporterConfig
from history_importer.importer import MemoryNodestore


@pytest.fixture
def latlng_config() -> ImporterConfig:
    """Importer config that keeps lon/lat so coordinates can be compared directly"""
    config = ImporterConfig()
    config.geometry.keep_latlng = True
    return config


@pytest.fixture
def nodestore() -> MemoryNodestore:
    return MemoryNodestore()
