import asyncio
import json
from decimal import Decimal

import httpx
import pytest

from gymdesk.client import (
    ApiError,
    AuthContext,
    AuthenticationRequired,
    ClientValidationError,
    GymDeskClient,
    HttpClient,
    OrganizationRequired,
    QueryCache,
    TransportError,
    make_key,
)
from gymdesk.main import app
from tests.conftest import ADMIN_SUBJECT, ORG_ID, make_token

BASE_URL = "http://testserver/api/v1"


def envelope(data=None, status_code=200, **extra):
    return httpx.Response(status_code, json={"success": True, "data": data, **extra})


def failure(status_code, message, code="error"):
    return httpx.Response(status_code, json={"success": False, "error": code, "message": message})


def auth_for(subject=ADMIN_SUBJECT, org_id=ORG_ID):
    token = make_token(subject, org_id=org_id)

    async def supplier(organization_id):
        return token

    return AuthContext(token_supplier=supplier, organization_id=org_id)


class Recorder:
    def __init__(self):
        self.delays = []

    async def sleep(self, seconds):
        self.delays.append(seconds)


def make_http(handler, recorder=None, **kwargs):
    recorder = recorder or Recorder()
    return HttpClient(
        auth_for(),
        base_url=BASE_URL,
        transport=httpx.MockTransport(handler),
        sleep=recorder.sleep,
        **kwargs,
    )


# -- request pipeline --------------------------------------------------------

async def test_sends_bearer_token_and_unwraps_envelope():
    seen = {}

    def handler(request):
        seen["auth"] = request.headers["Authorization"]
        seen["params"] = dict(request.url.params)
        return envelope([{"id": 1}], message="ok", warnings=["careful"])

    async with make_http(handler) as http:
        response = await http.get("/plans/types", params={"category": "membership", "skip": None})

    assert seen["auth"].startswith("Bearer ")
    assert seen["params"] == {"category": "membership"}
    assert response.data == [{"id": 1}]
    assert response.message == "ok"
    assert response.warnings == ["careful"]


async def test_retries_server_errors_with_linear_backoff():
    calls = []
    recorder = Recorder()

    def handler(request):
        calls.append(request)
        if len(calls) < 3:
            return failure(503, "Service unavailable")
        return envelope({"ok": True})

    async with make_http(handler, recorder) as http:
        response = await http.get("/users/me")

    assert len(calls) == 3
    assert recorder.delays == [1.0, 2.0]
    assert response.data == {"ok": True}


async def test_gives_up_after_three_retries_on_network_errors():
    calls = []
    recorder = Recorder()

    def handler(request):
        calls.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    async with make_http(handler, recorder) as http:
        with pytest.raises(TransportError):
            await http.get("/users/me")

    assert len(calls) == 4
    assert recorder.delays == [1.0, 2.0, 3.0]


async def test_last_server_error_is_surfaced():
    def handler(request):
        return failure(500, "Internal server error", "internal_error")

    async with make_http(handler) as http:
        with pytest.raises(ApiError) as exc_info:
            await http.get("/users/me")
    assert exc_info.value.status_code == 500
    assert exc_info.value.code == "internal_error"


async def test_unauthorized_redirects_to_sign_in():
    def handler(request):
        return failure(401, "Invalid or expired token", "unauthorized")

    async with make_http(handler) as http:
        with pytest.raises(AuthenticationRequired) as exc_info:
            await http.get("/users/me")
    assert exc_info.value.redirect_to == "/admin"


async def test_missing_organization_is_reported():
    def handler(request):
        return failure(403, "Organization context required", "forbidden")

    async with make_http(handler) as http:
        with pytest.raises(OrganizationRequired):
            await http.get("/users/me")


async def test_other_errors_keep_server_message():
    def handler(request):
        return failure(409, "Cannot freeze a subscription that is cancelled", "invalid_transition")

    async with make_http(handler) as http:
        with pytest.raises(ApiError) as exc_info:
            await http.put("/memberships/1/freeze")
    assert exc_info.value.message == "Cannot freeze a subscription that is cancelled"
    assert not isinstance(exc_info.value, OrganizationRequired)


async def test_plain_not_found_does_not_trigger_sync():
    paths = []

    def handler(request):
        paths.append(request.url.path)
        return failure(404, "Membership 9 not found", "not_found")

    async with make_http(handler) as http:
        with pytest.raises(ApiError):
            await http.get("/memberships/9")
    assert paths == ["/api/v1/memberships/9"]


async def test_missing_profile_syncs_once_for_concurrent_requests():
    state = {"synced": False, "syncs": 0}

    async def handler(request):
        if request.url.path.endswith("/users/sync"):
            state["syncs"] += 1
            await asyncio.sleep(0.01)
            state["synced"] = True
            return envelope({"id": 1}, status_code=201)
        if not state["synced"]:
            return failure(404, "User profile not found", "not_found")
        return envelope({"path": request.url.path})

    async with make_http(handler) as http:
        first, second = await asyncio.gather(http.get("/users/me"), http.get("/plans/types"))

    assert state["syncs"] == 1
    assert first.data == {"path": "/api/v1/users/me"}
    assert second.data == {"path": "/api/v1/plans/types"}


# -- query cache -------------------------------------------------------------

async def test_cache_serves_repeat_reads():
    cache = QueryCache()
    loads = []

    async def loader():
        loads.append(1)
        return "value"

    key = make_key("plan", "/plans/types", category="membership", page=None)
    assert await cache.fetch(key, loader) == "value"
    assert await cache.fetch(key, loader) == "value"
    assert len(loads) == 1
    assert key == make_key("plan", "/plans/types", category="membership")


def test_payment_invalidates_dependent_entities():
    cache = QueryCache()
    for entity in ("membership", "training", "dues_report", "plan", "trainer"):
        cache._entries[make_key(entity, "x")] = object()
    dropped = cache.invalidate_after("payment")
    assert dropped == 3
    assert make_key("plan", "x") in cache
    assert make_key("trainer", "x") in cache
    assert make_key("membership", "x") not in cache


async def test_client_invalidates_after_mutation():
    calls = []

    def handler(request):
        calls.append((request.method, request.url.path))
        if request.method == "POST":
            return envelope({"id": 2}, status_code=201)
        return envelope([])

    client = GymDeskClient(auth_for(), base_url=BASE_URL, transport=httpx.MockTransport(handler))
    async with client:
        await client.list_plan_types(category="membership")
        await client.list_plan_types(category="membership")
        assert len(calls) == 1

        await client.create_plan_type("Yoga", "membership")
        await client.list_plan_types(category="membership")

    assert calls == [
        ("GET", "/api/v1/plans/types"),
        ("POST", "/api/v1/plans/types"),
        ("GET", "/api/v1/plans/types"),
    ]


async def test_client_validates_payments_before_sending():
    def handler(request):
        raise AssertionError("no request expected")

    client = GymDeskClient(auth_for(), base_url=BASE_URL, transport=httpx.MockTransport(handler))
    async with client:
        with pytest.raises(ClientValidationError) as exc_info:
            await client.record_payment("membership", 1, 2, amount=0, method=None)
    assert set(exc_info.value.errors) == {"amount", "method"}


async def test_client_sends_camel_case_bodies():
    bodies = []

    def handler(request):
        bodies.append(json.loads(request.content))
        return envelope({"id": 1}, status_code=201)

    client = GymDeskClient(auth_for(), base_url=BASE_URL, transport=httpx.MockTransport(handler))
    async with client:
        await client.record_payment("training", 7, 3, amount=250, method="upi", reference="R-1")
    assert bodies == [{"trainingId": 7, "memberId": 3, "amount": 250, "method": "upi", "reference": "R-1"}]


# -- against the application -------------------------------------------------

async def test_client_bootstraps_profile_against_app(api):
    client = GymDeskClient(
        auth_for(), base_url=BASE_URL, transport=httpx.ASGITransport(app=app)
    )
    async with client:
        me = await client.me()
        assert me.data["externalId"] == ADMIN_SUBJECT
        assert me.data["role"] == "admin"

        created = await client.create_plan_type("Gym Access", "membership")
        assert created.message == "Plan type created"
        listed = await client.list_plan_types()
        assert [p["name"] for p in listed.data] == ["Gym Access"]


async def test_client_sends_money_as_decimal_strings():
    bodies = []

    def handler(request):
        bodies.append(json.loads(request.content))
        return envelope({"id": 1}, status_code=201)

    client = GymDeskClient(auth_for(), base_url=BASE_URL, transport=httpx.MockTransport(handler))
    async with client:
        await client.create_subscription(
            "membership", 3, 11, discount_amount=Decimal("0.10"), payment_amount=Decimal("999.90"), payment_method="card"
        )
    assert bodies[0]["discountAmount"] == "0.10"
    assert bodies[0]["paymentAmount"] == "999.90"
