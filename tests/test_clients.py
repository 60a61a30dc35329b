"""RPC, object store and upload clients against mocked HTTP transports."""

import asyncio
import json

import httpx
import pytest

from sinag_admin.clients.object_store import ObjectStoreClient
from sinag_admin.clients.pinata_client import PinataClient, UploadError
from sinag_admin.clients.sui_rpc_client import SuiRpcClient, SuiRpcError
from sinag_admin.config import MAX_UPLOAD_BYTES, UploadConfig
from sinag_admin.errors import QueryError

from conftest import campaign_id, campaign_object, registry_object

RPC_URL = "https://rpc.test"


def rpc_transport(handler):
    def respond(request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        return handler(payload)
    return httpx.MockTransport(respond)


def test_call_sends_json_rpc_envelope():
    seen = []

    def handler(payload):
        seen.append(payload)
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": payload["id"], "result": {"data": []}})

    async def run():
        async with SuiRpcClient(RPC_URL, transport=rpc_transport(handler)) as rpc:
            await rpc.query_events("0x1::campaign::CampaignCreated")
            await rpc.query_events("0x1::campaign::CampaignCreated", descending=False)

    asyncio.run(run())

    assert seen[0]["method"] == "suix_queryEvents"
    assert seen[0]["params"] == [{"MoveEventType": "0x1::campaign::CampaignCreated"}, None, None, True]
    assert seen[1]["params"][3] is False
    assert seen[0]["id"] != seen[1]["id"]


def test_rpc_error_body_raises_query_error():
    def handler(payload):
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "error": {"code": -32602, "message": "bad"}})

    rpc = SuiRpcClient(RPC_URL, transport=rpc_transport(handler))

    with pytest.raises(SuiRpcError) as exc:
        asyncio.run(rpc.get_object("0x1"))
    assert exc.value.code == -32602
    assert isinstance(exc.value, QueryError)


def test_http_failure_raises_query_error():
    def handler(payload):
        return httpx.Response(503, text="unavailable")

    rpc = SuiRpcClient(RPC_URL, transport=rpc_transport(handler))

    with pytest.raises(QueryError):
        asyncio.run(rpc.multi_get_objects(["0x1"]))
    assert asyncio.run(rpc.health_check()) is False


def test_empty_batch_skips_the_network():
    def handler(payload):
        raise AssertionError("no request expected")

    rpc = SuiRpcClient(RPC_URL, transport=rpc_transport(handler))

    assert asyncio.run(rpc.multi_get_objects([])) == []


def test_object_store_reads_registry_and_skips_foreign_types(ledger):
    a, b = campaign_id("A"), campaign_id("B")
    ledger.objects[a] = campaign_object(a, due_diligence_url={"vec": ["https://example.com/dd"]})
    foreign = campaign_object(b)
    foreign["data"]["type"] = "0x2::coin::Coin<0x2::sui::SUI>"
    ledger.objects[b] = foreign
    ledger.objects["0xreg"] = registry_object("0xreg", is_paused="true")

    store = ObjectStoreClient(ledger)
    campaigns = asyncio.run(store.get_campaigns([a, b, "0xmissing"]))
    registry = asyncio.run(store.get_registry("0xreg"))

    assert [c.object_id for c in campaigns] == [a]
    assert campaigns[0].due_diligence_url == "https://example.com/dd"
    assert campaigns[0].yield_enabled is False
    assert registry.is_paused is True
    assert registry.to_dict()["campaign_count"] == "4"


def test_campaign_record_carries_display_values(ledger):
    a = campaign_id("A")
    ledger.objects[a] = campaign_object(a, coin="USDC", balance=2_500_000, shares_sold=2_500, closed_at="1735693200000")

    record = asyncio.run(ObjectStoreClient(ledger).get_campaigns([a]))[0]
    display = record.to_dict()["display"]

    assert display["status"] == "Active"
    assert display["target_apy"] == "12.00%"
    assert display["price_per_share"] == "1,000.00 USDC"
    assert display["balance"] == "2.50 USDC"
    assert display["progress"] == 25
    assert display["created"] == "November 14, 2023"
    assert display["maturity"] == "January 1, 2025"
    assert display["closed"] == "January 1, 2025 01:00 UTC"


def pinata(handler=None, jwt="token"):
    transport = httpx.MockTransport(handler or (lambda request: httpx.Response(500)))
    return PinataClient(UploadConfig(jwt=jwt), transport=transport)


def test_upload_forwards_multipart_with_bearer_token():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"IpfsHash": "QmHash", "PinSize": 3})

    result = asyncio.run(pinata(handler).upload_image("a.png", b"png", "image/png"))

    assert result == {
        "success": True,
        "ipfsHash": "QmHash",
        "ipfsUrl": "https://gateway.pinata.cloud/ipfs/QmHash",
    }
    assert seen[0].headers["Authorization"] == "Bearer token"
    assert b'"cidVersion": 0' in seen[0].content
    assert b'filename="a.png"' in seen[0].content


def test_upload_rejections():
    client = pinata()

    cases = [
        (pinata(jwt=None), ("a.png", b"x", "image/png"), 500),
        (client, (None, None, None), 400),
        (client, ("a.txt", b"x", "text/plain"), 400),
        (client, ("a.png", b"x" * (MAX_UPLOAD_BYTES + 1), "image/png"), 400),
    ]
    for uploader, args, status in cases:
        with pytest.raises(UploadError) as exc:
            asyncio.run(uploader.upload_image(*args))
        assert exc.value.status_code == status


def test_upload_relays_pinning_service_errors():
    def handler(request):
        return httpx.Response(401, json={"error": {"reason": "INVALID_CREDENTIALS", "details": "Invalid JWT"}})

    with pytest.raises(UploadError) as exc:
        asyncio.run(pinata(handler).upload_image("a.png", b"png", "image/png"))

    assert exc.value.status_code == 401
    assert exc.value.message == "Invalid JWT"
