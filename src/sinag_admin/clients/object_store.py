"""Object Store adapter and typed readers for protocol objects."""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from sinag_admin.clients.sui_rpc_client import SuiRpcClient
from sinag_admin.config import STATUS_ACTIVE
from sinag_admin.units import (
    bps_to_percent,
    calculate_progress,
    days_until_maturity,
    format_amount,
    format_date,
    format_datetime,
    status_label,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerObject:
    """Current state of one on-chain Move object."""

    object_id: str
    type_signature: str
    fields: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_rpc(cls, response: Optional[Dict[str, Any]]) -> Optional["LedgerObject"]:
        """Parse a ``sui_getObject`` response; ``None`` if it is not a Move object."""
        data = (response or {}).get("data")
        if not data:
            return None
        content = data.get("content") or {}
        if content.get("dataType") != "moveObject":
            return None
        return cls(
            object_id=data.get("objectId", ""),
            type_signature=data.get("type") or content.get("type") or "",
            fields=content.get("fields") or {},
        )


def coin_type_from_signature(type_signature: str) -> str:
    """Campaign<T> objects carry their denomination in the type parameter."""
    return "SUI" if "sui::SUI" in type_signature else "USDC"


def _int_field(fields: Dict[str, Any], name: str, default: int = 0) -> int:
    value = fields.get(name)
    if value is None or value == "":
        return default
    if isinstance(value, dict):
        # Balance<T> may come back wrapped as {"value": "..."}
        value = value.get("value", default)
    return int(value)


def _optional_int(fields: Dict[str, Any], name: str) -> Optional[int]:
    if fields.get(name) is None:
        return None
    return _int_field(fields, name)


def _bool_field(value: Any) -> bool:
    return value is True or value == "true" or value == 1


@dataclass
class CampaignRecord:
    """Authoritative campaign fields read from the object store."""

    object_id: str
    coin_type: str
    name: str
    location: str
    description: str
    structure: str
    target_apy: int
    maturity_days: int
    maturity_date: int
    price_per_share: int
    total_supply: int
    shares_sold: int
    balance: int
    status: int
    is_finalized: bool
    created_at: int
    closed_at: Optional[int]
    campaign_number: Optional[int] = None
    resort_images: List[str] = field(default_factory=list)
    nft_image: str = ""
    due_diligence_url: Optional[str] = None
    # absent on campaigns created by the legacy package
    current_round: Optional[int] = None
    unique_investors: Optional[int] = None
    total_yield_distributed: Optional[int] = None

    @property
    def is_active(self) -> bool:
        return self.status == STATUS_ACTIVE

    @property
    def yield_enabled(self) -> bool:
        return (
            self.current_round is not None
            and self.unique_investors is not None
            and self.total_yield_distributed is not None
        )

    @classmethod
    def from_object(cls, obj: LedgerObject) -> "CampaignRecord":
        fields = obj.fields
        due_diligence = fields.get("due_diligence_url")
        if isinstance(due_diligence, dict):
            # Option<String> rendered as {"vec": [...]} by some node versions
            values = due_diligence.get("vec") or []
            due_diligence = values[0] if values else None
        return cls(
            object_id=obj.object_id,
            coin_type=coin_type_from_signature(obj.type_signature),
            name=fields.get("name") or "Unknown Campaign",
            location=fields.get("location") or "Unknown",
            description=fields.get("description") or "",
            structure=fields.get("structure") or "",
            target_apy=_int_field(fields, "target_apy"),
            maturity_days=_int_field(fields, "maturity_days"),
            maturity_date=_int_field(fields, "maturity_date"),
            price_per_share=_int_field(fields, "price_per_share"),
            total_supply=_int_field(fields, "total_supply"),
            shares_sold=_int_field(fields, "shares_sold"),
            balance=_int_field(fields, "balance"),
            status=_int_field(fields, "status"),
            is_finalized=_bool_field(fields.get("is_finalized")),
            created_at=_int_field(fields, "created_at"),
            closed_at=_optional_int(fields, "closed_at"),
            campaign_number=_optional_int(fields, "campaign_number"),
            resort_images=list(fields.get("resort_images") or []),
            nft_image=fields.get("nft_image") or "",
            due_diligence_url=due_diligence or None,
            current_round=_optional_int(fields, "current_round"),
            unique_investors=_optional_int(fields, "unique_investors"),
            total_yield_distributed=_optional_int(fields, "total_yield_distributed"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "object_id": self.object_id,
            "coin_type": self.coin_type,
            "name": self.name,
            "location": self.location,
            "status": self.status,
            "is_finalized": self.is_finalized,
            "price_per_share": str(self.price_per_share),
            "total_supply": str(self.total_supply),
            "shares_sold": str(self.shares_sold),
            "balance": str(self.balance),
            "created_at": str(self.created_at),
            "closed_at": str(self.closed_at) if self.closed_at is not None else None,
            "current_round": str(self.current_round) if self.current_round is not None else None,
            "unique_investors": str(self.unique_investors) if self.unique_investors is not None else None,
            "total_yield_distributed": (
                str(self.total_yield_distributed) if self.total_yield_distributed is not None else None
            ),
            "display": self.display(),
        }

    def display(self) -> Dict[str, Any]:
        """Formatted values for the console cards."""
        return {
            "status": status_label(self.status),
            "target_apy": f"{bps_to_percent(self.target_apy)}%",
            "price_per_share": format_amount(self.price_per_share, self.coin_type),
            "balance": format_amount(self.balance, self.coin_type),
            "progress": calculate_progress(self.shares_sold, self.total_supply),
            "created": format_date(self.created_at),
            "maturity": format_date(self.maturity_date),
            "days_to_maturity": days_until_maturity(self.maturity_date),
            "closed": format_datetime(self.closed_at) if self.closed_at is not None else None,
        }


@dataclass
class RegistryRecord:
    """Singleton protocol configuration object."""

    object_id: str
    campaign_count: int
    total_campaigns_created: int
    treasury_address: str
    is_paused: bool

    @classmethod
    def from_object(cls, obj: LedgerObject) -> "RegistryRecord":
        fields = obj.fields
        return cls(
            object_id=obj.object_id,
            campaign_count=_int_field(fields, "campaign_count"),
            total_campaigns_created=_int_field(fields, "total_campaigns_created"),
            treasury_address=fields.get("treasury_address") or "",
            is_paused=_bool_field(fields.get("is_paused")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.object_id,
            "campaign_count": str(self.campaign_count),
            "total_campaigns_created": str(self.total_campaigns_created),
            "treasury_address": self.treasury_address,
            "is_paused": self.is_paused,
        }


class ObjectStoreClient:
    """Point and batch reads of protocol objects."""

    def __init__(self, rpc: SuiRpcClient):
        self.rpc = rpc

    async def get(self, object_id: str) -> Optional[LedgerObject]:
        response = await self.rpc.get_object(object_id)
        obj = LedgerObject.from_rpc(response)
        if obj is None:
            logger.warning(f"Object {object_id} did not resolve to a Move object")
        return obj

    async def multi_get(self, object_ids: List[str]) -> List[LedgerObject]:
        """Batch read; entries that do not resolve are skipped, not fatal."""
        if not object_ids:
            return []
        responses = await self.rpc.multi_get_objects(list(object_ids)) or []
        objects = []
        for object_id, response in zip(object_ids, responses):
            obj = LedgerObject.from_rpc(response)
            if obj is None:
                logger.warning(f"Skipping {object_id}: not a readable Move object")
                continue
            objects.append(obj)
        return objects

    async def get_campaigns(self, object_ids: List[str], type_marker: str = "::campaign::Campaign<") -> List[CampaignRecord]:
        """Batch read campaigns, dropping objects of any other type."""
        campaigns = []
        for obj in await self.multi_get(object_ids):
            if type_marker not in obj.type_signature:
                logger.warning(f"Skipping {obj.object_id}: unexpected type {obj.type_signature}")
                continue
            try:
                campaigns.append(CampaignRecord.from_object(obj))
            except (TypeError, ValueError) as e:
                logger.warning(f"Skipping {obj.object_id}: malformed campaign fields ({e})")
        return campaigns

    async def get_registry(self, registry_id: str) -> Optional[RegistryRecord]:
        obj = await self.get(registry_id)
        if obj is None:
            return None
        return RegistryRecord.from_object(obj)
