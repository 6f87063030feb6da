"""
Lookup cache tests.
"""

import asyncio

import pytest

from clinicdesk.application.services import LookupCache

from fakes import InMemoryRecordStore


@pytest.fixture
def store():
    store = InMemoryRecordStore()
    store.seed("C_UOM", id=100, Name="Each", X12DE355="EA")
    store.seed("C_TaxCategory", id=110, Name="Standard", IsDefault=True)
    store.seed("M_Product_Category", id=120, Name="Herbs", IsDefault=False)
    store.seed("M_Locator", id=801, Value="Shelf A", M_Warehouse_ID=41, IsDefault=True)
    store.seed("C_BP_Group", id=2, Name="Alpha", IsDefault=False)
    store.seed("C_BP_Group", id=3, Name="Patients", IsDefault=True)
    return store


@pytest.fixture
def cache(store):
    return LookupCache(store)


@pytest.mark.asyncio
async def test_hits_are_memoized(store, cache):
    assert await cache.default_locator_id(41) == 801
    assert await cache.default_locator_id(41) == 801
    assert len(store.calls_to("list", "M_Locator")) == 1
    assert cache.cached("M_Locator_Default_41") == 801


@pytest.mark.asyncio
async def test_misses_are_not_memoized(store, cache):
    assert await cache.default_locator_id(99) == 0
    store.seed("M_Locator", id=802, Value="Shelf B", M_Warehouse_ID=99, IsDefault=True)
    assert await cache.default_locator_id(99) == 802


@pytest.mark.asyncio
async def test_customer_group_prefers_default(cache):
    assert await cache.customer_group_id() == 3


@pytest.mark.asyncio
async def test_clear_forgets_everything(store, cache):
    await cache.each_uom_id()
    assert len(cache) == 1
    cache.clear()
    assert len(cache) == 0
    await cache.each_uom_id()
    assert len(store.calls_to("list", "C_UOM")) == 2


@pytest.mark.asyncio
async def test_dispense_charge_created_once(store, cache):
    first = await cache.dispense_charge_id(31)
    cache.clear()
    second = await cache.dispense_charge_id(31)

    assert first == second
    assert len(store.rows("C_Charge")) == 1
    charge = store.rows("C_Charge")[0]
    assert charge["Name"] == "Clinic Dispense"
    assert charge["IsSameCurrency"] is True


@pytest.mark.asyncio
async def test_concurrent_ensure_creates_once(store, cache):
    ids = await asyncio.gather(*(cache.doctor_resource_type_id(31) for _ in range(5)))

    assert len(set(ids)) == 1
    rows = store.rows("S_ResourceType")
    assert len(rows) == 1
    created = rows[0]
    assert created["C_UOM_ID"] == 100
    assert created["C_TaxCategory_ID"] == 110
    assert created["M_Product_Category_ID"] == 120
    assert created["OnMonday"] is True and created["OnSaturday"] is True
    assert created["OnSunday"] is False


@pytest.mark.asyncio
async def test_lookup_in_flight_during_clear_is_not_cached(monkeypatch, store, cache):
    gate = asyncio.Event()
    original_list = store.list

    async def gated_list(collection, **kwargs):
        if collection == "M_Locator":
            await gate.wait()
        return await original_list(collection, **kwargs)

    monkeypatch.setattr(store, "list", gated_list)

    pending = asyncio.create_task(cache.default_locator_id(41))
    await asyncio.sleep(0)
    cache.clear()
    gate.set()

    assert await pending == 801
    assert cache.cached("M_Locator_Default_41") is None
    assert await cache.default_locator_id(41) == 801
    assert cache.cached("M_Locator_Default_41") == 801


@pytest.mark.asyncio
async def test_ensure_in_flight_during_clear_is_not_cached(monkeypatch, store, cache):
    gate = asyncio.Event()
    original_list = store.list

    async def gated_list(collection, **kwargs):
        if collection == "C_Charge":
            await gate.wait()
        return await original_list(collection, **kwargs)

    monkeypatch.setattr(store, "list", gated_list)

    pending = asyncio.create_task(cache.dispense_charge_id(31))
    await asyncio.sleep(0)
    cache.clear()
    gate.set()

    assert await pending > 0
    assert cache.cached("C_Charge_Dispense") is None
