"""Pytest configuration and fixtures."""

from typing import Any

import pytest
from fastapi.testclient import TestClient

from catalog_service.config import Settings, get_settings
from catalog_service.main import create_app
from fakes import FakeCategoryStore, FakeProductStore, FakeRedis


@pytest.fixture
def test_settings() -> Settings:
    """Get test settings with overrides."""
    return Settings(
        app_env="test",
        debug=True,
        postgres_host="localhost",
        postgres_port=5432,
        postgres_user="test",
        postgres_password="test",
        postgres_db="test_db",
        redis_host="localhost",
        redis_port=6379,
        magento_base_url="http://magento.test",
        magento_access_token="test-token",
        magento_page_size=2,
        magento_custom_fields=["color", "size"],
        default_store_id="store_default",
    )


@pytest.fixture
def app(test_settings: Settings) -> Any:
    """Create test application."""
    # Override settings
    def get_test_settings() -> Settings:
        return test_settings

    app = create_app()
    app.dependency_overrides[get_settings] = get_test_settings
    return app


@pytest.fixture
def client(app: Any) -> TestClient:
    """Create synchronous test client."""
    return TestClient(app)


@pytest.fixture
def category_store() -> FakeCategoryStore:
    return FakeCategoryStore()


@pytest.fixture
def product_store() -> FakeProductStore:
    return FakeProductStore()


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()
