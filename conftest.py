"""
Global pytest configuration and fixtures.
"""
import datetime as dt
import json
from decimal import Decimal
from typing import Any, Dict

import pytest

from src.config import BillingEngineConfig, reload_config
from src.config.logging_config import reset_logging
from src.models.billing_config import BillingConfig
from src.models.entry import CanonicalEntry, SourceSystem

# Milliseconds since epoch for 2026-01-15T10:00:00Z
JAN_15_2026_MS = 1768471200000


@pytest.fixture(scope="session")
def test_env_vars() -> Dict[str, str]:
    """Test environment variables for configuration."""
    return {
        'ENVIRONMENT': 'testing',
        'DEBUG': 'true',
        'LOG_LEVEL': 'DEBUG',
        'DEFAULT_RATE': '0',
        'DEFAULT_ROUNDING_INCREMENT': '15',
        'CURRENCY': 'USD',
    }


@pytest.fixture
def mock_env(test_env_vars, monkeypatch):
    """Mock environment variables for testing."""
    for key, value in test_env_vars.items():
        monkeypatch.setenv(key, value)
    monkeypatch.delenv('BILLING_CONFIG_FILE', raising=False)

    # Clear the global config to force reload with test values
    import src.config.settings
    src.config.settings._config = None

    yield test_env_vars

    # Clean up
    src.config.settings._config = None


@pytest.fixture
def test_config(mock_env) -> BillingEngineConfig:
    """Test configuration instance."""
    return reload_config()


@pytest.fixture
def make_entry():
    """Factory for canonical entries with sensible defaults."""

    def _make(**overrides: Any) -> CanonicalEntry:
        values: Dict[str, Any] = {
            'source_system': SourceSystem.CLOCKIFY,
            'entry_id': 'e-1',
            'project_id': 'p-1',
            'project_name': 'Website',
            'client_id': 'c-1',
            'client_name': 'Acme',
            'task_name': 'Development',
            'user_name': 'Jane Doe',
            'minutes': 60,
            'date': dt.date(2026, 1, 15),
        }
        values.update(overrides)
        return CanonicalEntry(**values)

    return _make


@pytest.fixture
def standard_config() -> BillingConfig:
    """15-minute rounding at 50/hour, no limits."""
    return BillingConfig(rate=Decimal('50'), rounding_increment_minutes=15)


@pytest.fixture
def sample_clockify_export() -> Dict[str, Any]:
    """Clockify export with two valid entries and one negative duration."""
    return {
        'timeentries': [
            {
                '_id': 'ck-1',
                'projectId': 'p-1',
                'projectName': 'Website',
                'clientId': 'c-1',
                'clientName': 'Acme',
                'description': 'Development',
                'userName': 'Jane Doe',
                'timeInterval': {
                    'start': '2026-01-15T09:00:00Z',
                    'end': '2026-01-15T10:01:00Z',
                    'duration': 3660,
                },
            },
            {
                '_id': 'ck-2',
                'projectId': 'p-1',
                'projectName': 'Website',
                'clientId': 'c-1',
                'clientName': 'Acme',
                'description': 'Review',
                'userName': 'Jane Doe',
                'timeInterval': {
                    'start': '2026-01-16T09:00:00Z',
                    'end': '2026-01-16T09:16:00Z',
                    'duration': 'PT16M',
                },
            },
            {
                '_id': 'ck-3',
                'projectId': 'p-1',
                'projectName': 'Website',
                'clientId': 'c-1',
                'clientName': 'Acme',
                'timeInterval': {
                    'start': '2026-01-17T09:00:00Z',
                    'duration': -60,
                },
            },
        ]
    }


@pytest.fixture
def sample_clickup_export() -> Dict[str, Any]:
    """ClickUp export with one entry in space s-1."""
    return {
        'spaceLookup': {'s-1': 'Mobile App'},
        'timeentries': [
            {
                'id': 'cu-1',
                'task_location': {'space_id': 's-1'},
                'task': {'id': 't-1', 'name': 'Design'},
                'user': {'id': 7, 'username': 'sam'},
                'duration': '2700000',
                'start': str(JAN_15_2026_MS),
            }
        ],
    }


@pytest.fixture
def sample_billing_config_document() -> Dict[str, Any]:
    """Billing config document with limits and carryover."""
    return {
        'companies': [{'client_id': 'c-1', 'name': 'Acme Corp'}],
        'projects': [
            {
                'project_id': 'p-1',
                'project_name': 'Website',
                'client_id': 'c-1',
                'effective_month': '2026-01',
                'rate': '50.00',
                'rounding_increment_minutes': 15,
                'maximum_hours': '1',
                'carryover_enabled': True,
            }
        ],
        'carryover': [],
    }


@pytest.fixture
def write_json(tmp_path):
    """Write a JSON document to a temporary file and return its path."""

    def _write(name: str, data: Any):
        path = tmp_path / name
        path.write_text(json.dumps(data), encoding='utf-8')
        return path

    return _write


@pytest.fixture(autouse=True)
def clean_logging():
    """Remove handlers installed by CLI commands between tests."""
    yield
    reset_logging()


# Pytest configuration for different test types
def pytest_configure(config):
    """Configure pytest with custom markers and settings."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers based on location."""
    for item in items:
        # Add unit marker for tests in tests/unit/
        if "tests/unit/" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
