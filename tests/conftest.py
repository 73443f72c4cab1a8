# ===============================================================================
# PYTEST CONFIGURATION FOR ADLEDGER
# ===============================================================================
"""
Global test configuration for AdLedger.

Test Structure:
- tests/ mirrors apps/ structure for app-specific tests
- Naming convention: test_{app}_{feature}.py
- Shared model builders live in tests/factories/

Run specific app tests: pytest tests/accounts/
Run all tests: pytest tests/
"""

import os

import django


def pytest_configure():
    """Configure Django settings for pytest"""
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings.test')

    # Configure Django
    django.setup()

# ===============================================================================
# PYTEST FIXTURES
# ===============================================================================

import pytest  # noqa: E402
from django.contrib.auth import get_user_model  # noqa: E402

User = get_user_model()


@pytest.fixture
def operator():
    """Staff user performing ledger operations"""
    return User.objects.create_user(username='operator', email='operator@example.com', password='testpass123')


@pytest.fixture
def batch():
    from tests.factories.ledger_factories import create_batch  # noqa: PLC0415

    return create_batch()


@pytest.fixture
def billing_entity():
    from tests.factories.ledger_factories import create_billing_entity  # noqa: PLC0415

    return create_billing_entity()


@pytest.fixture
def customer():
    from tests.factories.ledger_factories import create_customer  # noqa: PLC0415

    return create_customer()
