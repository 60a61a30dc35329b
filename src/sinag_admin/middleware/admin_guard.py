import logging
from typing import Callable

from fastapi import Request
from fastapi.responses import JSONResponse

from sinag_admin.agents.authorization import get_admin_caps
from sinag_admin.config import ERROR_MESSAGES
from sinag_admin.errors import QueryError

logger = logging.getLogger(__name__)

ADMIN_HEADER = "X-Admin-Address"
GUARDED_PREFIXES = ("/intents/",)


async def require_admin_cap(request: Request, call_next: Callable):
    """
    Middleware gating intent routes on AdminCap ownership.

    Checks:
    - X-Admin-Address header is present
    - The address owns at least one AdminCap

    The owned cap ids are left on ``request.state.admin_caps``.
    """
    if not request.url.path.startswith(GUARDED_PREFIXES):
        return await call_next(request)

    address = request.headers.get(ADMIN_HEADER, "").strip()
    if not address:
        return JSONResponse(
            status_code=403,
            content={"kind": "authorization", "message": ERROR_MESSAGES["NO_WALLET"]},
        )

    agent = request.app.state.agent
    try:
        caps = await get_admin_caps(agent.rpc, agent.config, address)
    except QueryError as e:
        logger.error(f"AdminCap lookup failed for {address}: {e.message}")
        return JSONResponse(status_code=502, content=e.to_dict())

    if not caps:
        logger.warning(f"Rejected {request.url.path} from {address}: no AdminCap")
        return JSONResponse(
            status_code=403,
            content={"kind": "authorization", "message": ERROR_MESSAGES["NOT_ADMIN"]},
        )

    request.state.admin_caps = caps
    return await call_next(request)
