"""Shared fixtures for the Chefify API tests."""

import pytest
from fastapi.testclient import TestClient

from src.main import create_application
from src.service import config
from tests.oidc_provider import use_fake_oidc_provider


@pytest.fixture(autouse=True)
def clear_config_cache(monkeypatch):
    """Load the project settings files for the production environment in every test."""
    monkeypatch.delenv(config.ENV_SETTINGS_DIR, raising=False)
    monkeypatch.setenv(config.ENV_ENVIRONMENT, "Production")
    config.get_configuration.cache_clear()
    config.get_settings.cache_clear()
    yield
    config.get_configuration.cache_clear()
    config.get_settings.cache_clear()


@pytest.fixture
def app():
    return create_application(configure_services=use_fake_oidc_provider)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client
