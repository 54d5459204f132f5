"""
Pytest configuration and shared fixtures for facility feature tests.
"""
import pytest

from facility_features import create_app
from facility_features.services.feature_toggles import build_toggle_service


def catalog_entry(key, *, category="core", dependencies=(), default_enabled=False, **extra):
    entry = {
        "key": key,
        "label": key,
        "description": f"{key} capability",
        "category": category,
        "dependencies": list(dependencies),
        "default_enabled": default_enabled,
    }
    entry.update(extra)
    return entry


# A -> nothing, B -> A, D -> E, F -> S (S is system-only and on by default).
TOY_SECTIONS = [
    {
        "title": "Toy",
        "description": "Small catalog used to exercise dependency rules",
        "features": [
            catalog_entry("A"),
            catalog_entry("B", dependencies=["A"]),
            catalog_entry("C", category="inventory"),
            catalog_entry("D", category="inventory", dependencies=["E"]),
            catalog_entry("E", category="warehouse"),
            catalog_entry("S", category="security", default_enabled=True, facility_level=False),
            catalog_entry("F", category="security", dependencies=["S"]),
        ],
    }
]


@pytest.fixture
def toy_service():
    """Toggle service over the toy catalog, seeded with defaults."""
    return build_toggle_service(TOY_SECTIONS)


@pytest.fixture
def catalog_service():
    """Toggle service over the shipped feature catalog."""
    return build_toggle_service()


@pytest.fixture
def app_config(tmp_path):
    return {
        "TESTING": True,
        "SECRET_KEY": "test-secret-key",
        "RATELIMIT_ENABLED": False,
        "FEATURE_SNAPSHOT_AUTOLOAD": False,
        "FEATURE_SNAPSHOT_AUTOSAVE": False,
        "FEATURE_SNAPSHOT_PATH": str(tmp_path / "feature_snapshot.json"),
    }


@pytest.fixture(scope='function')
def app(app_config):
    """Create and configure a new app instance for each test."""
    app = create_app(app_config)
    yield app


@pytest.fixture
def client(app):
    """A test client for the app."""
    return app.test_client()


@pytest.fixture
def runner(app):
    """A test runner for the app's Click commands."""
    return app.test_cli_runner()


@pytest.fixture
def toggle_service(app):
    return app.extensions["feature_toggles"]
