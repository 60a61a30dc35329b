"""Transaction submission and bounded confirmation polling."""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, List, Tuple

from sinag_admin.clients.sui_rpc_client import SuiRpcClient
from sinag_admin.errors import ConfirmationTimeout, ExecutionFailed, QueryError, SubmissionError
from sinag_admin.intents.builder import ProtocolCall

logger = logging.getLogger(__name__)

# Signs a protocol call with the admin wallet: returns (tx bytes, signatures)
Signer = Callable[[ProtocolCall], Awaitable[Tuple[str, List[str]]]]


class TransactionSubmitter(ABC):
    """Abstract base class for anything that can put a protocol call on chain."""

    @abstractmethod
    async def submit(self, call: ProtocolCall) -> str:
        """Submit the call and return its transaction digest."""
        pass


class RpcRelaySubmitter(TransactionSubmitter):
    """Signs through the wallet callback and relays to the full node."""

    def __init__(self, rpc: SuiRpcClient, signer: Signer):
        self.rpc = rpc
        self.signer = signer

    async def submit(self, call: ProtocolCall) -> str:
        try:
            tx_bytes, signatures = await self.signer(call)
        except Exception as e:
            logger.error(f"Signer rejected {call.action}: {e}")
            raise SubmissionError(f"Signing failed: {e}") from e

        try:
            result = await self.rpc.execute_transaction_block(tx_bytes, signatures)
        except QueryError as e:
            logger.error(f"Network rejected {call.action}: {e.message}")
            raise SubmissionError(e.message) from e

        digest = (result or {}).get("digest")
        if not digest:
            raise SubmissionError(f"No digest returned for {call.action}")
        logger.info(f"Submitted {call.action}: {digest}")
        return digest


def execution_status(tx: Dict[str, Any]) -> Tuple[str, str]:
    """Return ``(status, error)`` from a transaction block's effects."""
    status = ((tx or {}).get("effects") or {}).get("status") or {}
    return status.get("status", ""), status.get("error", "")


async def wait_for_transaction(
    rpc: SuiRpcClient,
    digest: str,
    timeout: float = 30.0,
    poll_interval: float = 1.0
) -> Dict[str, Any]:
    """Poll until the transaction's effects are known or ``timeout`` elapses.

    Args:
        rpc: Full node client
        digest: Transaction digest to look up
        timeout: Total seconds to keep polling
        poll_interval: Seconds between lookups

    Returns:
        The transaction block once its effects report success

    Raises:
        ExecutionFailed: effects report failure
        ConfirmationTimeout: effects were not available in time
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout

    while True:
        try:
            tx = await rpc.get_transaction_block(digest)
        except QueryError as e:
            # not indexed yet
            logger.debug(f"{digest} not available yet: {e.message}")
            tx = None

        if tx:
            status, error = execution_status(tx)
            if status == "success":
                logger.info(f"Transaction {digest} confirmed")
                return tx
            if status == "failure":
                logger.error(f"Transaction {digest} failed: {error}")
                raise ExecutionFailed(digest, error or "Transaction failed")

        if loop.time() + poll_interval > deadline:
            logger.warning(f"Transaction {digest} not confirmed within {timeout:g}s")
            raise ConfirmationTimeout(digest, timeout)
        await asyncio.sleep(poll_interval)
