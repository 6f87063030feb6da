"""
ERP gateway tests against a local aiohttp server.
"""

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from clinicdesk.adapters.erp import ErpAuthGateway, ErpGateway
from clinicdesk.core.exceptions import AuthenticationError, RecordStoreError


async def list_records(request: web.Request) -> web.Response:
    request.app["seen"].append(
        {
            "path": request.path,
            "query": dict(request.query),
            "authorization": request.headers.get("Authorization"),
        }
    )
    return web.json_response({"records": [{"id": 1, "Name": "Dr. Lin"}]})


async def create_record(request: web.Request) -> web.Response:
    body = await request.json()
    return web.json_response({"id": 77, **body}, status=201)


async def expired(request: web.Request) -> web.Response:
    return web.json_response({"title": "Token expired"}, status=401)


async def broken(request: web.Request) -> web.Response:
    return web.json_response({"detail": "Period is closed"}, status=500)


async def plain_error(request: web.Request) -> web.Response:
    return web.Response(text="Bad gateway upstream", status=502)


async def delete_record(request: web.Request) -> web.Response:
    return web.Response(status=204)


async def login(request: web.Request) -> web.Response:
    body = await request.json()
    if body.get("password") != "secret":
        return web.json_response({"title": "Invalid user name or password"}, status=401)
    return web.json_response({"token": "provisional", "clients": [{"id": 11, "name": "Clinic"}]})


async def roles(request: web.Request) -> web.Response:
    request.app["seen"].append({"path": request.path, "authorization": request.headers.get("Authorization")})
    return web.json_response({"roles": [{"id": 21, "name": "Front Desk"}]})


async def finalize(request: web.Request) -> web.Response:
    body = await request.json()
    return web.json_response({"token": f"final-{body['clientId']}-{body['warehouseId']}"})


@pytest_asyncio.fixture
async def erp():
    app = web.Application()
    app["seen"] = []
    app.router.add_get("/api/v1/models/S_Resource", list_records)
    app.router.add_post("/api/v1/models/S_Resource", create_record)
    app.router.add_delete("/api/v1/models/S_Resource/{id}", delete_record)
    app.router.add_get("/api/v1/models/C_Order", expired)
    app.router.add_put("/api/v1/models/M_Inventory/{id}", broken)
    app.router.add_get("/api/v1/models/M_Product", plain_error)
    app.router.add_post("/api/v1/auth/tokens", login)
    app.router.add_put("/api/v1/auth/tokens", finalize)
    app.router.add_get("/api/v1/auth/roles", roles)
    server = TestServer(app)
    await server.start_server()
    yield server
    await server.close()


@pytest_asyncio.fixture
async def gateway(erp):
    gateway = ErpGateway(str(erp.make_url("")))
    yield gateway
    await gateway.close()


@pytest.mark.asyncio
async def test_list_sends_query_and_token(erp, gateway):
    gateway.set_token("abc")

    records = await gateway.list("S_Resource", filter="IsActive eq true", order_by="Name", top=5)

    assert records == [{"id": 1, "Name": "Dr. Lin"}]
    seen = erp.app["seen"][0]
    assert seen["query"] == {"$filter": "IsActive eq true", "$orderby": "Name", "$top": "5"}
    assert seen["authorization"] == "Bearer abc"


@pytest.mark.asyncio
async def test_create_and_delete(gateway):
    created = await gateway.create("S_Resource", {"Name": "Dr. Chen"})
    assert created == {"id": 77, "Name": "Dr. Chen"}
    assert await gateway.delete("S_Resource", 77) is None


@pytest.mark.asyncio
async def test_unauthorized_tears_down_session(gateway):
    reasons = []

    async def on_unauthorized(reason):
        reasons.append(reason)

    gateway.set_token("stale")
    gateway.set_unauthorized_handler(on_unauthorized)

    with pytest.raises(AuthenticationError) as exc_info:
        await gateway.list("C_Order")

    assert exc_info.value.message == "Token expired"
    assert reasons == ["Token expired"]
    assert gateway.token is None


@pytest.mark.asyncio
async def test_server_detail_is_surfaced(gateway):
    with pytest.raises(RecordStoreError) as exc_info:
        await gateway.update("M_Inventory", 5, {"doc-action": "CO"})
    assert exc_info.value.status == 500
    assert exc_info.value.detail == "Period is closed"

    with pytest.raises(RecordStoreError) as exc_info:
        await gateway.list("M_Product")
    assert exc_info.value.status == 502
    assert exc_info.value.detail == "Bad gateway upstream"


@pytest.mark.asyncio
async def test_transport_failure():
    gateway = ErpGateway("http://127.0.0.1:9", timeout=2)
    try:
        with pytest.raises(RecordStoreError):
            await gateway.list("S_Resource")
    finally:
        await gateway.close()


@pytest.mark.asyncio
async def test_auth_gateway_negotiation(erp, gateway):
    auth = ErpAuthGateway(gateway)
    calls = []
    gateway.set_unauthorized_handler(calls.append)

    token, tenants = await auth.login("nurse", "secret")
    assert token == "provisional"
    assert [(t.id, t.name) for t in tenants] == [(11, "Clinic")]

    roles = await auth.list_roles(token, 11)
    assert [r.id for r in roles] == [21]
    assert erp.app["seen"][-1]["authorization"] == "Bearer provisional"

    assert await auth.finalize(token, 11, 21, 31, 41) == "final-11-41"

    with pytest.raises(AuthenticationError):
        await auth.login("nurse", "wrong")
    assert calls == []
