"""AdminCap ownership checks."""

import logging
from typing import List

from sinag_admin.clients.sui_rpc_client import SuiRpcClient
from sinag_admin.config import ERROR_MESSAGES, ProtocolConfig
from sinag_admin.errors import AuthorizationError

logger = logging.getLogger(__name__)


async def get_admin_caps(rpc: SuiRpcClient, config: ProtocolConfig, address: str) -> List[str]:
    """Return ids of every AdminCap owned by ``address``."""
    caps: List[str] = []
    cursor = None
    while True:
        page = await rpc.get_owned_objects(address, config.admin_cap_type, cursor=cursor) or {}
        for item in page.get("data", []):
            object_id = (item.get("data") or {}).get("objectId")
            if object_id:
                caps.append(object_id)
        cursor = page.get("nextCursor")
        if not page.get("hasNextPage") or cursor is None:
            break
    return caps


async def is_admin(rpc: SuiRpcClient, config: ProtocolConfig, address: str) -> bool:
    if not address:
        return False
    return len(await get_admin_caps(rpc, config, address)) > 0


async def require_admin(rpc: SuiRpcClient, config: ProtocolConfig, address: str) -> List[str]:
    """Return the caller's caps, or raise if it holds none."""
    if not address:
        raise AuthorizationError(ERROR_MESSAGES["NO_WALLET"])
    caps = await get_admin_caps(rpc, config, address)
    if not caps:
        logger.warning(f"Rejected admin action from {address}: no AdminCap")
        raise AuthorizationError(ERROR_MESSAGES["NOT_ADMIN"])
    return caps
