"""Sinag Admin Service - FastAPI Application"""

import os
import logging
from contextlib import asynccontextmanager
from typing import List, Optional, Union

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, File, Header, HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.middleware.base import BaseHTTPMiddleware

from sinag_admin.agents.admin_agent import ACTIONS, AdminAgent
from sinag_admin.clients.pinata_client import PinataClient, UploadError
from sinag_admin.clients.sui_rpc_client import SuiRpcClient
from sinag_admin.config import ProtocolConfig, UploadConfig
from sinag_admin.errors import SinagError
from sinag_admin.middleware.admin_guard import ADMIN_HEADER, require_admin_cap
from sinag_admin.reconciliation.lifecycle import SURFACES, summarize_yield
from sinag_admin.units import shorten_address

# Load environment variables
load_dotenv()

# Configure logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

ERROR_STATUS = {
    "validation": 400,
    "authorization": 403,
    "configuration": 503,
    "query": 502,
    "decode": 502,
    "submission": 502,
    "execution": 422,
    "confirmation_timeout": 504,
}


# Pydantic models
class CampaignForm(BaseModel):
    """New campaign form as entered by the admin"""
    name: str = ""
    description: str = ""
    location: str = ""
    target_apy: Union[str, int, float] = ""
    maturity_days: Union[str, int] = ""
    price_per_share: Union[str, int, float] = ""
    total_supply: Union[str, int] = ""
    resort_images: List[str] = []
    nft_image: str = ""
    structure: str = ""
    due_diligence_url: str = ""
    coin_type: str = "SUI"


class IntentRequest(BaseModel):
    """Input for building one admin transaction"""
    campaign_id: Optional[str] = None
    yield_per_share: Optional[Union[str, int, float]] = None
    address: Optional[str] = None
    campaign: Optional[CampaignForm] = None


class ConfirmRequest(BaseModel):
    """Action the digest belongs to, so affected lists can be reloaded"""
    action: Optional[str] = None


def create_app(
    agent: Optional[AdminAgent] = None,
    uploader: Optional[PinataClient] = None
) -> FastAPI:
    """Build the service; collaborators default to environment configuration."""
    if agent is None:
        config = ProtocolConfig.from_env()
        agent = AdminAgent(SuiRpcClient(config.rpc_url, timeout=config.rpc_timeout), config)
    if uploader is None:
        uploader = PinataClient(UploadConfig.from_env())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup and shutdown events"""
        logger.info(f"Sinag Admin Service started (package {agent.config.package_id})")
        yield
        await agent.rpc.__aexit__(None, None, None)
        await uploader.__aexit__(None, None, None)
        logger.info("Sinag Admin Service stopped")

    app = FastAPI(
        title="Sinag Admin Service",
        description="Campaign lifecycle reconciliation and admin transaction building",
        version="1.0.0",
        lifespan=lifespan
    )
    app.state.agent = agent
    app.state.uploader = uploader

    # Admin capability check for intent routes
    app.add_middleware(BaseHTTPMiddleware, dispatch=require_admin_cap)

    @app.exception_handler(SinagError)
    async def sinag_error_handler(request: Request, exc: SinagError):
        status = ERROR_STATUS.get(exc.kind, 500)
        if status >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=status, content=exc.to_dict())

    @app.exception_handler(UploadError)
    async def upload_error_handler(request: Request, exc: UploadError):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        rpc_health = await agent.rpc.health_check()
        return {
            "status": "healthy",
            "rpc": "healthy" if rpc_health else "unavailable",
            "uploads": "configured" if uploader.config.configured else "unconfigured",
        }

    @app.get("/api/upload")
    async def upload_status():
        """Report whether image uploads are available"""
        return uploader.status()

    @app.post("/api/upload")
    async def upload_image(file: Optional[UploadFile] = File(None)):
        """
        Pin an image to IPFS

        Accepts image/* files up to 10MB.
        """
        if file is None:
            return await uploader.upload_image(None, None, None)
        content = await file.read()
        return await uploader.upload_image(file.filename, content, file.content_type)

    @app.get("/campaigns/{surface}")
    async def list_campaigns(surface: str):
        """Reconciled campaigns for one admin workflow"""
        if surface not in SURFACES:
            raise HTTPException(status_code=404, detail=f"Unknown surface: {surface}")

        state = await agent.load_surface(surface)
        if state.error and not state.loaded:
            return JSONResponse(status_code=502, content={"kind": "query", "message": state.error})

        response = {
            "surface": surface,
            "campaigns": [view.to_dict() for view in state.items],
            "error": state.error,
        }
        if surface == "yield-statistics":
            response["summary"] = summarize_yield(state.items)
        return response

    @app.get("/dashboard")
    async def dashboard(x_admin_address: Optional[str] = Header(None)):
        """Registry overview and open campaigns"""
        return await agent.dashboard(x_admin_address)

    @app.get("/settings")
    async def settings(x_admin_address: Optional[str] = Header(None)):
        """Registry settings and the caller's AdminCaps"""
        return await agent.settings(x_admin_address)

    @app.post("/intents/{action}")
    async def build_intent(action: str, body: IntentRequest, request: Request):
        """
        Build a protocol call for the admin wallet to sign

        Campaign actions are checked against a fresh reconciliation.
        """
        if action not in ACTIONS:
            raise HTTPException(status_code=404, detail=f"Unknown action: {action}")

        if action == "create-campaign":
            params = (body.campaign or CampaignForm()).model_dump()
        else:
            params = body.model_dump(exclude={"campaign"})

        call = await agent.build_intent(action, params, request.state.admin_caps)
        logger.info(f"Built {action} for {shorten_address(request.headers.get(ADMIN_HEADER, ''))}")
        return call.to_dict()

    @app.post("/transactions/{digest}/confirm")
    async def confirm_transaction(digest: str, body: Optional[ConfirmRequest] = None):
        """Wait for a submitted transaction, bounded by TX_CONFIRM_TIMEOUT"""
        action = body.action if body else None
        return await agent.confirm(digest, action)

    @app.get("/actions")
    async def recent_actions(limit: int = 10):
        """Recently executed admin actions"""
        return {"actions": [t.to_dict() for t in agent.trace_store.get_recent(limit)]}

    @app.get("/actions/{trace_id}")
    async def get_action(trace_id: str):
        """One admin action trace with its steps"""
        trace = agent.trace_store.get(trace_id)
        if trace is None:
            raise HTTPException(status_code=404, detail=f"Unknown action trace: {trace_id}")
        return trace.to_dict()

    return app


app = create_app()


def main():
    uvicorn.run(
        "sinag_admin.admin_server:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
    )


if __name__ == "__main__":
    main()
