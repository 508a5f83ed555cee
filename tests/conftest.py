"""
Pytest configuration and shared fixtures for the clearance core.
"""
import pytest

from singlewindow.config.clearance_config import ClearanceConfig, reset_clearance_config
from singlewindow.customs.guarantee.ledger import GuaranteeLedger
from singlewindow.services.clearance_service import ClearanceService

from tests.factories import NOW
from tests.fakes.fake_document_store import FakeDocumentStore
from tests.fakes.fake_notification_dispatcher import FakeNotificationDispatcher
from tests.fakes.fake_reference_data import FakeReferenceData
from tests.fakes.fake_trader_compliance import FakeTraderCompliance


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch, tmp_path):
    """No stray .env file or CLEARANCE_* variable leaks into a test."""
    monkeypatch.chdir(tmp_path)
    reset_clearance_config()
    yield
    reset_clearance_config()


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def config():
    return ClearanceConfig()


@pytest.fixture
def ledger():
    return GuaranteeLedger(lock_timeout=2.0)


@pytest.fixture
def reference_data():
    return FakeReferenceData()


@pytest.fixture
def document_store():
    return FakeDocumentStore()


@pytest.fixture
def notifier():
    return FakeNotificationDispatcher()


@pytest.fixture
def trader_compliance():
    return FakeTraderCompliance()


@pytest.fixture
def service(ledger, document_store, notifier, reference_data, trader_compliance, config):
    return ClearanceService(
        ledger=ledger,
        document_store=document_store,
        notifier=notifier,
        reference_data=reference_data,
        trader_compliance=trader_compliance,
        config=config,
    )
