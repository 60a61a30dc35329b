"""Admin Agent - runs admin actions against the campaign protocol.

An action goes through four steps: build the protocol call (all validation
happens here), submit it through the wallet-backed submitter, wait for
confirmation, then reload the reconciled lists the action affects.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from sinag_admin.agents.action_trace import ActionStatus, ActionTrace, TraceStore, get_trace_store
from sinag_admin.agents.authorization import get_admin_caps, require_admin
from sinag_admin.agents.transactions import TransactionSubmitter, wait_for_transaction
from sinag_admin.clients.event_log import EventLogClient
from sinag_admin.clients.object_store import ObjectStoreClient
from sinag_admin.clients.sui_rpc_client import SuiRpcClient
from sinag_admin.config import ERROR_MESSAGES, ProtocolConfig
from sinag_admin.errors import (
    AuthorizationError,
    ConfigurationError,
    ConfirmationTimeout,
    ExecutionFailed,
    QueryError,
    SinagError,
    SubmissionError,
    ValidationError,
)
from sinag_admin.intents.builder import (
    ACTION_SURFACES,
    REFRESH_AFTER,
    CreateCampaignForm,
    ProtocolCall,
    build_add_admin,
    build_close_campaign,
    build_close_yield_round,
    build_create_campaign,
    build_finalize_campaign,
    build_open_yield_round,
    build_toggle_pause,
    build_update_treasury,
    build_withdraw_funds,
)
from sinag_admin.reconciliation.lifecycle import SURFACES, CampaignView, LifecycleEngine
from sinag_admin.reconciliation.views import BucketView, ViewState
from sinag_admin.units import calculate_progress

logger = logging.getLogger(__name__)

ACTIONS = (
    "create-campaign",
    "close-campaign",
    "finalize-campaign",
    "withdraw-funds",
    "open-yield-round",
    "close-yield-round",
    "toggle-pause",
    "update-treasury",
    "add-admin",
)


class AdminAgent:
    """Entry point for every admin read and write."""

    def __init__(
        self,
        rpc: SuiRpcClient,
        config: ProtocolConfig,
        submitter: Optional[TransactionSubmitter] = None,
        trace_store: Optional[TraceStore] = None
    ):
        self.rpc = rpc
        self.config = config
        self.submitter = submitter
        self.trace_store = trace_store or get_trace_store()
        self.object_store = ObjectStoreClient(rpc)
        self.engine = LifecycleEngine(EventLogClient(rpc, config), self.object_store)
        self.views: Dict[str, BucketView[CampaignView]] = {
            name: BucketView(name, self._loader(name)) for name in SURFACES
        }

    def _loader(self, surface: str):
        async def load():
            return await self.engine.surface(surface)
        return load

    async def load_surface(self, surface: str) -> ViewState[CampaignView]:
        """Refresh one reconciled list; a failed refresh keeps the last good items."""
        if surface not in self.views:
            raise KeyError(surface)
        return await self.views[surface].refresh()

    async def build_intent(
        self,
        action: str,
        params: Dict[str, Any],
        admin_caps: List[str]
    ) -> ProtocolCall:
        """Validate input for ``action`` and return the call for the wallet to sign.

        Campaign actions run their own reconciliation first, so the selected
        campaign is checked against the current bucket and never against a
        list another request loaded.
        """
        if action not in ACTIONS:
            raise ValidationError("action", f"Unknown action: {action}")
        if not admin_caps:
            raise AuthorizationError(ERROR_MESSAGES["NOT_ADMIN"])

        if action == "create-campaign":
            return build_create_campaign(self._create_form(params), self.config)
        if action == "toggle-pause":
            return build_toggle_pause(self.config)
        if action == "update-treasury":
            return build_update_treasury(params.get("address", ""), self.config)
        if action == "add-admin":
            return build_add_admin(params.get("address", ""), admin_caps, self.config)

        # query failures propagate; membership is never checked against a stored list
        bucket = await self.engine.surface(ACTION_SURFACES[action])
        campaign_id = params.get("campaign_id")
        if action == "close-campaign":
            return build_close_campaign(campaign_id, bucket, self.config)
        if action == "finalize-campaign":
            return build_finalize_campaign(campaign_id, bucket, self.config)
        if action == "withdraw-funds":
            return build_withdraw_funds(campaign_id, bucket, self.config)
        if action == "open-yield-round":
            return build_open_yield_round(campaign_id, params.get("yield_per_share", ""), bucket, self.config)
        return build_close_yield_round(campaign_id, bucket, self.config)

    @staticmethod
    def _create_form(params: Dict[str, Any]) -> CreateCampaignForm:
        return CreateCampaignForm(
            name=params.get("name", ""),
            description=params.get("description", ""),
            location=params.get("location", ""),
            target_apy=params.get("target_apy", ""),
            maturity_days=params.get("maturity_days", ""),
            price_per_share=params.get("price_per_share", ""),
            total_supply=params.get("total_supply", ""),
            resort_images=list(params.get("resort_images") or []),
            nft_image=params.get("nft_image", ""),
            structure=params.get("structure", ""),
            due_diligence_url=params.get("due_diligence_url", ""),
            coin_type=params.get("coin_type", "SUI"),
        )

    async def refresh_after(self, action: str) -> None:
        surfaces = REFRESH_AFTER.get(action, ())
        if surfaces:
            await asyncio.gather(*(self.views[name].refresh() for name in surfaces))

    async def execute(
        self,
        action: str,
        params: Dict[str, Any],
        admin_address: str
    ) -> ActionTrace:
        """Run an action end to end and return its trace.

        Errors are recorded on the trace and then re-raised. A confirmation
        timeout leaves the action UNCONFIRMED, never FAILED. A trace is never
        left RUNNING once this returns or raises.
        """
        trace = ActionTrace.start(action, admin_address)
        self.trace_store.store(trace)

        step = trace.add_step("validate")
        try:
            try:
                caps = await require_admin(self.rpc, self.config, admin_address)
                call = await self.build_intent(action, params, caps)
            except SinagError as e:
                trace.finish_step(step, e.message)
                trace.complete(ActionStatus.REJECTED, e.to_dict())
                raise
            trace.finish_step(step)

            if self.submitter is None:
                error = ConfigurationError("No transaction submitter configured")
                trace.complete(ActionStatus.REJECTED, error.to_dict())
                raise error

            step = trace.add_step("submit")
            try:
                trace.digest = await self.submitter.submit(call)
            except SubmissionError as e:
                trace.finish_step(step, e.message)
                trace.complete(ActionStatus.FAILED, e.to_dict())
                raise
            trace.finish_step(step)

            step = trace.add_step("confirm")
            try:
                await wait_for_transaction(
                    self.rpc, trace.digest, self.config.confirm_timeout, self.config.poll_interval
                )
            except ConfirmationTimeout as e:
                trace.finish_step(step, e.message)
                trace.complete(ActionStatus.UNCONFIRMED, e.to_dict())
                raise
            except ExecutionFailed as e:
                trace.finish_step(step, e.message)
                trace.complete(ActionStatus.FAILED, e.to_dict())
                raise
            trace.finish_step(step)

            step = trace.add_step("refresh")
            await self.refresh_after(action)
            trace.finish_step(step)

            trace.complete(ActionStatus.CONFIRMED)
            logger.info(f"{action} confirmed: {trace.digest}")
            return trace
        finally:
            if trace.status == ActionStatus.RUNNING:
                message = f"{action} stopped unexpectedly during {step.name}"
                logger.error(message)
                if step.completed_at is None:
                    trace.finish_step(step, message)
                trace.complete(ActionStatus.FAILED, {"kind": "error", "message": message})

    async def confirm(self, digest: str, action: Optional[str] = None) -> Dict[str, Any]:
        """Confirm a transaction the browser wallet submitted itself."""
        await wait_for_transaction(self.rpc, digest, self.config.confirm_timeout, self.config.poll_interval)
        if action:
            await self.refresh_after(action)
        return {"digest": digest, "status": "success"}

    async def _registry(self) -> Dict[str, Any]:
        registry = await self.object_store.get_registry(self.config.registry)
        if registry is None:
            raise QueryError(f"Registry {self.config.registry} not found")
        return registry.to_dict()

    async def dashboard(self, admin_address: Optional[str] = None) -> Dict[str, Any]:
        """Registry state plus open campaigns and the caller's admin flag."""
        registry_task = self._registry()
        caps_task = get_admin_caps(self.rpc, self.config, admin_address) if admin_address else _no_caps()
        registry, caps = await asyncio.gather(registry_task, caps_task)

        state = await self.load_surface("closeable")
        campaigns = []
        for view in state.items:
            data = view.to_dict()
            data["progress"] = calculate_progress(view.campaign.shares_sold, view.campaign.total_supply)
            campaigns.append(data)

        return {
            "registry": registry,
            "is_admin": bool(caps),
            "active_campaigns": campaigns,
            "error": state.error,
        }

    async def settings(self, admin_address: Optional[str] = None) -> Dict[str, Any]:
        """Registry settings and the caller's AdminCaps."""
        registry_task = self._registry()
        caps_task = get_admin_caps(self.rpc, self.config, admin_address) if admin_address else _no_caps()
        registry, caps = await asyncio.gather(registry_task, caps_task)
        return {
            "registry": registry,
            "admin_caps": caps,
            "is_admin": bool(caps),
            "package_id": self.config.package_id,
        }


async def _no_caps() -> List[str]:
    return []
