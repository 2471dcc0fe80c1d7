"""
Pytest configuration and shared fixtures for the document ledger test suite.
"""
import os
import shutil
import tempfile
from pathlib import Path
from typing import Generator

import pytest

PROJECT_ROOT = Path(__file__).parent.parent
os.chdir(PROJECT_ROOT)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory for test files."""
    tmp_path = tempfile.mkdtemp(prefix="ledger_test_")
    yield Path(tmp_path)
    shutil.rmtree(tmp_path, ignore_errors=True)


@pytest.fixture
def test_config(temp_dir: Path) -> "Config":
    """Provide a test configuration with isolated directories."""
    from config import Config

    config = Config()
    # Override paths to use temp directory
    config.db_path = temp_dir / "output" / "ledger.db"
    config.config_dir = temp_dir / "config"
    config.config_dir.mkdir(parents=True, exist_ok=True)
    config.environment = "development"
    config.default_currency = "INR"
    config.default_payment_terms = "30"
    config.ensure_output_dir()
    return config


@pytest.fixture
def test_db(test_config) -> "Database":
    """Provide a test database instance."""
    from ledger.database import Database
    return Database(test_config.db_path, timeout=5.0, statement_timeout=30.0)


@pytest.fixture
def sample_client_payload() -> dict:
    """A valid client body in API (camelCase) form."""
    return {
        "company": "Acme Traders Pvt Ltd",
        "contactPerson": "R. Kumar",
        "email": "accounts@acme.example",
        "phone": "+91 98400 12345",
        "status": "active",
        "gstNumber": "33ABCDE1234F1Z5",
        "panNumber": "ABCDE1234F",
        "billingAddress": {
            "street": "12 Mount Road",
            "city": "Chennai",
            "state": "Tamil Nadu",
            "postalCode": "600002",
            "country": "India",
        },
        "shippingAddress": {
            "street": "Plot 4, SIPCOT",
            "city": "Hosur",
            "state": "Tamil Nadu",
            "postalCode": "635126",
            "country": "India",
        },
        "baseCurrency": "INR",
    }


@pytest.fixture
def client_repo(test_db):
    from ledger.clients import ClientRepository
    return ClientRepository(test_db)


@pytest.fixture
def sample_client(client_repo, sample_client_payload):
    """A stored client that documents can reference."""
    from models.client import ClientInput
    return client_repo.create(ClientInput.model_validate(sample_client_payload))


@pytest.fixture
def purchase_repo(test_db):
    from ledger.purchases import PurchaseRepository
    return PurchaseRepository(test_db)


@pytest.fixture
def invoice_repo(test_db):
    from ledger.invoices import InvoiceRepository
    return InvoiceRepository(test_db)


@pytest.fixture
def finance_repo(test_db):
    from ledger.finance import FinanceRepository
    return FinanceRepository(test_db)


@pytest.fixture
def api_client(test_config):
    """FastAPI TestClient bound to an isolated database."""
    from fastapi.testclient import TestClient

    from api.app import create_app

    with TestClient(create_app(test_config)) as client:
        yield client


# Configure pytest markers
def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "api: API tests")
    config.addinivalue_line("markers", "slow: Slow tests")
