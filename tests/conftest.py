"""Shared fixtures: an in-process fake of the full node JSON-RPC surface."""

from typing import Any, Dict, List, Optional

import pytest

from sinag_admin.config import ProtocolConfig, SUI_COIN_TYPE
from sinag_admin.errors import QueryError

PACKAGE = "0x" + "a" * 64
LEGACY = "0x" + "b" * 64
ADMIN = "0x" + "c" * 64
ADMIN_CAP_ID = "0x" + "d" * 64
USDC_TYPE = "0x" + "e" * 64 + "::usdc::USDC"

IPFS_IMAGE = "https://gateway.pinata.cloud/ipfs/QmYwAPJzv5CZsnA625s3Xf2nemtYgPpHdWEz79ojWnPbdG"


def campaign_id(label: str) -> str:
    return "0x" + label.lower().encode().hex().ljust(64, "0")[:64]


def rpc_event(package_id: str, name: str, /, timestamp_ms: int = 1_700_000_000_000, **payload) -> Dict[str, Any]:
    return {
        "type": f"{package_id}::campaign::{name}",
        "packageId": package_id,
        "parsedJson": payload,
        "timestampMs": str(timestamp_ms),
    }


def campaign_object(
    object_id: str,
    package_id: str = PACKAGE,
    coin: str = "SUI",
    status: int = 0,
    is_finalized: bool = False,
    balance: int = 0,
    total_supply: int = 10_000,
    shares_sold: int = 0,
    current_round: Optional[int] = None,
    **extra
) -> Dict[str, Any]:
    coin_type = SUI_COIN_TYPE if coin == "SUI" else USDC_TYPE
    fields = {
        "name": f"Resort {object_id[-4:]}",
        "location": "Siargao",
        "description": "Beachfront villas",
        "target_apy": "1200",
        "maturity_days": "365",
        "maturity_date": "1735689600000",
        "price_per_share": "1000000000",
        "total_supply": str(total_supply),
        "shares_sold": str(shares_sold),
        "balance": str(balance),
        "status": status,
        "is_finalized": is_finalized,
        "created_at": "1700000000000",
        "closed_at": None,
        "resort_images": [IPFS_IMAGE],
        "nft_image": IPFS_IMAGE,
    }
    if current_round is not None:
        fields.update({
            "current_round": str(current_round),
            "unique_investors": "3",
            "total_yield_distributed": "0",
        })
    fields.update(extra)
    object_type = f"{package_id}::campaign::Campaign<{coin_type}>"
    return {
        "data": {
            "objectId": object_id,
            "type": object_type,
            "content": {"dataType": "moveObject", "type": object_type, "fields": fields},
        }
    }


def registry_object(object_id: str, is_paused: Any = False) -> Dict[str, Any]:
    object_type = f"{PACKAGE}::campaign::CampaignRegistry"
    return {
        "data": {
            "objectId": object_id,
            "type": object_type,
            "content": {
                "dataType": "moveObject",
                "type": object_type,
                "fields": {
                    "campaign_count": "4",
                    "total_campaigns_created": "4",
                    "treasury_address": ADMIN,
                    "is_paused": is_paused,
                },
            },
        }
    }


class FakeLedger:
    """Answers the RPC client methods the adapters call, from in-memory state."""

    def __init__(self):
        self.events: Dict[str, List[Dict[str, Any]]] = {}
        self.objects: Dict[str, Dict[str, Any]] = {}
        self.owned: Dict[str, List[str]] = {}
        self.transactions: Dict[str, List[Optional[Dict[str, Any]]]] = {}
        self.failing_methods: set = set()
        self.calls: List[str] = []

    def emit(self, package_id: str, name: str, **payload) -> None:
        event = rpc_event(package_id, name, **payload)
        # stored newest first, as a descending query returns them
        self.events.setdefault(event["type"], []).insert(0, event)

    def _check(self, method: str) -> None:
        self.calls.append(method)
        if method in self.failing_methods:
            raise QueryError(f"{method} failed: node unavailable")

    async def health_check(self) -> bool:
        return "health_check" not in self.failing_methods

    async def query_events(self, move_event_type, cursor=None, limit=None, descending=True):
        self._check("query_events")
        data = list(self.events.get(move_event_type, []))
        if not descending:
            data.reverse()
        return {"data": data, "nextCursor": None, "hasNextPage": False}

    async def get_object(self, object_id):
        self._check("get_object")
        return self.objects.get(object_id, {"error": {"code": "notExists"}})

    async def multi_get_objects(self, object_ids):
        self._check("multi_get_objects")
        return [self.objects.get(oid, {"error": {"code": "notExists"}}) for oid in object_ids]

    async def get_owned_objects(self, owner, struct_type, cursor=None, limit=None):
        self._check("get_owned_objects")
        ids = self.owned.get(owner, [])
        return {
            "data": [{"data": {"objectId": oid}} for oid in ids],
            "nextCursor": None,
            "hasNextPage": False,
        }

    async def get_transaction_block(self, digest):
        self._check("get_transaction_block")
        responses = self.transactions.get(digest)
        if not responses:
            raise QueryError(f"Could not find the referenced transaction {digest}")
        response = responses.pop(0) if len(responses) > 1 else responses[0]
        if response is None:
            raise QueryError(f"Could not find the referenced transaction {digest}")
        return response

    async def execute_transaction_block(self, tx_bytes, signatures):
        self._check("execute_transaction_block")
        return {"digest": "DIGEST" + tx_bytes[-4:]}

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return None


def tx_effects(status: str, error: str = "") -> Dict[str, Any]:
    effects = {"status": {"status": status}}
    if error:
        effects["status"]["error"] = error
    return {"digest": "d", "effects": effects}


@pytest.fixture
def config():
    return ProtocolConfig(
        package_id=PACKAGE,
        legacy_package_id=LEGACY,
        usdc_coin_type=USDC_TYPE,
        confirm_timeout=0.05,
        poll_interval=0.01,
    )


@pytest.fixture
def ledger():
    return FakeLedger()
