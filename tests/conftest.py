"""
Shared fixtures: an in-memory ERP and a container wired against it.
"""

import pytest
import pytest_asyncio

from clinicdesk.core.config import Settings, reset_settings
from clinicdesk.core.container import ServiceNames, build_container

from fakes import FakeAuthService, InMemoryRecordStore, MemorySessionStore

DOCTOR_ID = 501
PATIENT_ID = 601
PRODUCT_ID = 701
SECOND_PRODUCT_ID = 702
LOCATOR_ID = 801
WAREHOUSE_ID = 41
ORG_ID = 31


def seed_clinic(store: InMemoryRecordStore) -> None:
    """Reference data a freshly installed clinic tenant would have."""
    store.seed("S_Resource", id=DOCTOR_ID, Name="Dr. Lin", Value="Dr. Lin")
    store.seed(
        "C_BPartner",
        id=PATIENT_ID,
        Name="Wang Xiao",
        Value="P20260101001",
        TaxID="A123456789",
        Phone="0912345678",
        IsCustomer=True,
    )
    store.seed("M_Product", id=PRODUCT_ID, Name="Ginseng Powder", Value="GP-01", UPC="")
    store.seed("M_Product", id=SECOND_PRODUCT_ID, Name="Licorice Root", Value="LR-02", UPC="")
    store.seed("M_Warehouse", id=WAREHOUSE_ID, Name="Pharmacy")
    store.seed("M_Locator", id=LOCATOR_ID, Value="Shelf A", M_Warehouse_ID=WAREHOUSE_ID, IsDefault=True)
    store.seed("C_DocType", id=901, Name="Internal Use Inventory", DocBaseType="MMI")
    store.seed("C_BP_Group", id=1001, Name="Patients", IsDefault=True)
    store.seed("M_StorageOnHand", M_Product_ID=PRODUCT_ID, M_Locator_ID=LOCATOR_ID, QtyOnHand=120)


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch):
    """Keep cached settings from leaking between tests."""
    monkeypatch.delenv("CLINIC_COPAYMENT", raising=False)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def store():
    store = InMemoryRecordStore()
    seed_clinic(store)
    return store


@pytest.fixture
def auth():
    return FakeAuthService()


@pytest.fixture
def session_store():
    return MemorySessionStore()


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def container(settings, store, auth, session_store):
    return build_container(settings, record_store=store, auth_service=auth, session_store=session_store)


@pytest.fixture
def session(container):
    return container.get(ServiceNames.SESSION)


@pytest.fixture
def ledger(container):
    return container.get(ServiceNames.STATUS_LEDGER)


@pytest.fixture
def lookup_cache(container):
    return container.get(ServiceNames.LOOKUP_CACHE)


@pytest.fixture
def workflow(container):
    return container.get(ServiceNames.REGISTRATION)


@pytest.fixture
def consultation(container):
    return container.get(ServiceNames.CONSULTATION)


@pytest.fixture
def pipeline(container):
    return container.get(ServiceNames.DISPENSE)


@pytest.fixture
def checkout(container):
    return container.get(ServiceNames.CHECKOUT)


@pytest_asyncio.fixture
async def logged_in(session):
    """Session negotiated down to org 31 / warehouse 41."""
    state = await session.authenticate("nurse", "secret")
    assert state.step == "done"
    return session
