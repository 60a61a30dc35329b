"""Client for the Sui full node JSON-RPC API"""

import itertools
import logging
import httpx
from typing import Optional, Dict, Any, List

from sinag_admin.errors import QueryError

logger = logging.getLogger(__name__)

OBJECT_OPTIONS = {"showContent": True, "showType": True}


class SuiRpcError(QueryError):
    """JSON-RPC level error returned by the node."""

    def __init__(self, method: str, message: str, code: Optional[int] = None):
        super().__init__(f"{method} failed: {message}")
        self.method = method
        self.code = code


class SuiRpcClient:
    """Async JSON-RPC client for a Sui full node"""

    def __init__(
        self,
        rpc_url: str = "https://fullnode.testnet.sui.io:443",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.rpc_url = rpc_url
        self.timeout = timeout
        self.transport = transport
        self.client = None
        self._ids = itertools.count(1)

    def _new_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    async def __aenter__(self):
        """Async context manager entry"""
        self.client = self._new_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit"""
        if self.client:
            await self.client.aclose()
            self.client = None

    async def call(self, method: str, params: List[Any]) -> Any:
        """Issue one JSON-RPC request and return its ``result``."""
        if not self.client:
            self.client = self._new_client()

        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }

        try:
            response = await self.client.post(self.rpc_url, json=payload)
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPError as e:
            logger.error(f"RPC transport error on {method}: {e}")
            raise QueryError(f"{method} failed: {e}") from e
        except ValueError as e:
            logger.error(f"RPC returned invalid JSON on {method}: {e}")
            raise QueryError(f"{method} returned invalid JSON") from e

        if "error" in body and body["error"]:
            error = body["error"]
            logger.error(f"RPC error on {method}: {error}")
            raise SuiRpcError(method, error.get("message", str(error)), error.get("code"))

        return body.get("result")

    async def health_check(self) -> bool:
        """Check node reachability"""
        try:
            await self.call("sui_getLatestCheckpointSequenceNumber", [])
            return True
        except QueryError as e:
            logger.error(f"Health check failed: {e}")
            return False

    async def query_events(
        self,
        move_event_type: str,
        cursor: Optional[Dict[str, Any]] = None,
        limit: Optional[int] = None,
        descending: bool = True
    ) -> Dict[str, Any]:
        """Query one page of events of a Move event type"""
        return await self.call(
            "suix_queryEvents",
            [{"MoveEventType": move_event_type}, cursor, limit, descending],
        )

    async def get_object(self, object_id: str) -> Dict[str, Any]:
        """Read one object with content and type"""
        return await self.call("sui_getObject", [object_id, OBJECT_OPTIONS])

    async def multi_get_objects(self, object_ids: List[str]) -> List[Dict[str, Any]]:
        """Read several objects in one request"""
        if not object_ids:
            return []
        return await self.call("sui_multiGetObjects", [object_ids, OBJECT_OPTIONS])

    async def get_owned_objects(
        self,
        owner: str,
        struct_type: str,
        cursor: Optional[str] = None,
        limit: Optional[int] = None
    ) -> Dict[str, Any]:
        """List objects of a struct type owned by an address"""
        query = {
            "filter": {"StructType": struct_type},
            "options": {"showContent": False},
        }
        return await self.call("suix_getOwnedObjects", [owner, query, cursor, limit])

    async def get_transaction_block(self, digest: str) -> Dict[str, Any]:
        """Look up a transaction and its effects"""
        return await self.call("sui_getTransactionBlock", [digest, {"showEffects": True}])

    async def execute_transaction_block(
        self,
        tx_bytes: str,
        signatures: List[str]
    ) -> Dict[str, Any]:
        """Relay a transaction already signed by the admin wallet"""
        return await self.call(
            "sui_executeTransactionBlock",
            [tx_bytes, signatures, {"showEffects": True}, "WaitForLocalExecution"],
        )
