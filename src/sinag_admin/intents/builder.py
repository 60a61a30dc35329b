"""Transaction intent builder.

Turns validated admin input into a ``ProtocolCall``: the Move function to
call, its ordered typed arguments and its type arguments. Nothing here talks
to the network; the call is handed to the admin wallet for signing.
"""

import re
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Union
from urllib.parse import urlparse

from sinag_admin.config import ERROR_MESSAGES, MAX_IMAGES, MIN_APY_BPS, MIN_MATURITY_DAYS, ProtocolConfig
from sinag_admin.errors import AuthorizationError, ValidationError
from sinag_admin.reconciliation.lifecycle import CampaignView
from sinag_admin.units import Amount, percent_to_bps, to_decimal, to_smallest_unit

U64_MAX = 2 ** 64 - 1

ADDRESS_PATTERN = re.compile(r"^0x[0-9a-fA-F]{64}$")


@dataclass(frozen=True)
class ObjectArg:
    """Reference to an on-chain object passed by id."""

    object_id: str

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": "object", "objectId": self.object_id}


@dataclass(frozen=True)
class PureArg:
    """Plain value with its Move type, e.g. ``u64`` or ``vector<string>``."""

    move_type: str
    value: Any

    def to_dict(self) -> Dict[str, Any]:
        value = str(self.value) if isinstance(self.value, int) and not isinstance(self.value, bool) else self.value
        return {"kind": "pure", "type": self.move_type, "value": value}


@dataclass(frozen=True)
class CoinSplitArg:
    """Coin split from the caller's own balance when the wallet submits."""

    amount: int
    coin_type: str

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": "splitCoin", "amount": str(self.amount), "coinType": self.coin_type}


CallArg = Union[ObjectArg, PureArg, CoinSplitArg]


@dataclass
class ProtocolCall:
    action: str
    target: str
    arguments: List[CallArg]
    type_arguments: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action": self.action,
            "target": self.target,
            "arguments": [arg.to_dict() for arg in self.arguments],
            "typeArguments": list(self.type_arguments),
        }


@dataclass
class CreateCampaignForm:
    name: str
    description: str
    location: str
    target_apy: Amount
    maturity_days: Union[int, str]
    price_per_share: Amount
    total_supply: Union[int, str]
    resort_images: List[str]
    nft_image: str
    structure: str = ""
    due_diligence_url: str = ""
    coin_type: str = "SUI"


def is_valid_url(url: str) -> bool:
    """Well-formed absolute URL with a scheme and a host or path."""
    if not url:
        return False
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    if parsed.scheme in ("http", "https"):
        return bool(parsed.netloc)
    if parsed.scheme == "ipfs":
        return bool(parsed.netloc or parsed.path.strip("/"))
    return False


def is_media_url(url: str) -> bool:
    """Content-addressed media reference: ipfs:// or a gateway path containing ipfs."""
    if not is_valid_url(url):
        return False
    return urlparse(url).scheme == "ipfs" or "ipfs" in url.lower()


def _parse_amount(value: Amount, field_name: str, message: str) -> Decimal:
    try:
        return to_decimal(value)
    except ValueError:
        raise ValidationError(field_name, message)


def _parse_whole(value: Union[int, str], field_name: str, message: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(field_name, message)
    if isinstance(value, int):
        return value
    try:
        parsed = to_decimal(value)
    except ValueError:
        raise ValidationError(field_name, message)
    if parsed != parsed.to_integral_value():
        raise ValidationError(field_name, message)
    return int(parsed)


def validate_address(address: str, field_name: str) -> str:
    address = (address or "").strip()
    if not address:
        raise ValidationError(field_name, "Please enter a valid address")
    if not ADDRESS_PATTERN.match(address):
        raise ValidationError(
            field_name,
            "Invalid Sui address format. Must start with 0x and be 66 characters long.",
        )
    return address


def _campaign_target(config: ProtocolConfig, function_name: str) -> str:
    return config.function_target(function_name)


def _select(
    campaign_id: Optional[str],
    bucket: Sequence[CampaignView],
    missing_message: str,
    not_member_message: str
) -> CampaignView:
    if not campaign_id:
        raise ValidationError("campaign_id", missing_message)
    for view in bucket:
        if view.object_id == campaign_id:
            return view
    raise ValidationError("campaign_id", not_member_message)


def build_create_campaign(form: CreateCampaignForm, config: ProtocolConfig) -> ProtocolCall:
    """Validate the campaign form and build the create call.

    Constraints are checked in form order and the first violation is raised.
    """
    if not (form.name or "").strip() or not (form.description or "").strip() or not (form.location or "").strip():
        missing = next(
            name for name in ("name", "description", "location")
            if not (getattr(form, name) or "").strip()
        )
        raise ValidationError(missing, "Please fill in all required fields")

    if form.coin_type not in config.coin_types:
        raise ValidationError("coin_type", f"Unsupported denomination: {form.coin_type}")

    apy = _parse_amount(form.target_apy, "target_apy", ERROR_MESSAGES["INVALID_APY"])
    if apy <= 0 or apy > 100:
        raise ValidationError("target_apy", ERROR_MESSAGES["INVALID_APY"])
    apy_bps = percent_to_bps(apy)
    if apy_bps < MIN_APY_BPS:
        raise ValidationError("target_apy", "APY must be at least 0.01%")

    maturity_days = _parse_whole(form.maturity_days, "maturity_days", ERROR_MESSAGES["INVALID_MATURITY"])
    if maturity_days < MIN_MATURITY_DAYS:
        raise ValidationError("maturity_days", ERROR_MESSAGES["INVALID_MATURITY"])

    price = _parse_amount(form.price_per_share, "price_per_share", "Price per share must be greater than 0")
    if price <= 0:
        raise ValidationError("price_per_share", "Price per share must be greater than 0")
    price_smallest = to_smallest_unit(price, form.coin_type)
    if price_smallest == 0:
        raise ValidationError("price_per_share", f"Price per share is below the smallest {form.coin_type} unit")

    total_supply = _parse_whole(form.total_supply, "total_supply", "Total supply must be at least 1")
    if total_supply < 1:
        raise ValidationError("total_supply", "Total supply must be at least 1")

    images = [img.strip() for img in form.resort_images or [] if img and img.strip()]
    if not images:
        raise ValidationError("resort_images", ERROR_MESSAGES["INVALID_IMAGES"])
    if len(images) > MAX_IMAGES:
        raise ValidationError("resort_images", f"Maximum {MAX_IMAGES} images allowed")

    nft_image = (form.nft_image or "").strip()
    if not nft_image:
        raise ValidationError("nft_image", "Please provide an NFT image")

    for img in images:
        if not is_media_url(img):
            raise ValidationError("resort_images", "All resort images must be valid IPFS URLs")

    if not is_media_url(nft_image):
        raise ValidationError("nft_image", "NFT image must be a valid IPFS URL")

    due_diligence = (form.due_diligence_url or "").strip()
    if due_diligence and not is_valid_url(due_diligence):
        raise ValidationError("due_diligence_url", "Invalid due diligence URL format")

    arguments: List[CallArg] = [
        ObjectArg(config.admin_cap),
        ObjectArg(config.registry),
        PureArg("string", form.name.strip()),
        PureArg("string", form.description.strip()),
        PureArg("string", form.location.strip()),
        PureArg("u64", apy_bps),
        PureArg("u64", maturity_days),
        PureArg("string", (form.structure or "").strip()),
        PureArg("u64", price_smallest),
        PureArg("u64", total_supply),
        PureArg("vector<string>", images),
        PureArg("string", nft_image),
        PureArg("option<string>", due_diligence or None),
        ObjectArg(config.clock),
    ]

    if form.coin_type == "SUI":
        return ProtocolCall("create-campaign", _campaign_target(config, "create_campaign_sui"), arguments)
    return ProtocolCall(
        "create-campaign",
        _campaign_target(config, "create_campaign_usdc"),
        arguments,
        [config.coin_type_for("USDC")],
    )


def build_close_campaign(
    campaign_id: Optional[str],
    closeable: Sequence[CampaignView],
    config: ProtocolConfig
) -> ProtocolCall:
    view = _select(
        campaign_id, closeable,
        "Please select a campaign to close",
        "Campaign is not open for closing",
    )
    return ProtocolCall(
        "close-campaign",
        _campaign_target(config, "close_campaign_manually"),
        [ObjectArg(config.admin_cap), ObjectArg(config.registry), ObjectArg(view.object_id), ObjectArg(config.clock)],
        [config.coin_type_for(view.campaign.coin_type)],
    )


def build_finalize_campaign(
    campaign_id: Optional[str],
    finalizable: Sequence[CampaignView],
    config: ProtocolConfig
) -> ProtocolCall:
    view = _select(
        campaign_id, finalizable,
        "Please select a campaign to finalize",
        "Campaign is not ready to finalize",
    )
    return ProtocolCall(
        "finalize-campaign",
        _campaign_target(config, "finalize_campaign"),
        [ObjectArg(config.admin_cap), ObjectArg(config.registry), ObjectArg(view.object_id), ObjectArg(config.clock)],
        [config.coin_type_for(view.campaign.coin_type)],
    )


def build_withdraw_funds(
    campaign_id: Optional[str],
    withdrawable: Sequence[CampaignView],
    config: ProtocolConfig
) -> ProtocolCall:
    view = _select(
        campaign_id, withdrawable,
        "Please select a campaign to withdraw from",
        "Campaign has no withdrawable balance",
    )
    return ProtocolCall(
        "withdraw-funds",
        _campaign_target(config, "withdraw_funds"),
        [ObjectArg(config.admin_cap), ObjectArg(config.registry), ObjectArg(view.object_id), ObjectArg(config.clock)],
        [config.coin_type_for(view.campaign.coin_type)],
    )


def compute_yield_deposit(yield_per_share: Amount, total_supply: int, coin_type: str) -> tuple:
    """Return ``(yield per share, total deposit)`` in smallest units.

    The per-share amount is floored once, then multiplied by the supply in
    integer arithmetic.
    """
    per_share = to_smallest_unit(yield_per_share, coin_type)
    return per_share, per_share * int(total_supply)


def build_open_yield_round(
    campaign_id: Optional[str],
    yield_per_share: Amount,
    yield_openable: Sequence[CampaignView],
    config: ProtocolConfig
) -> ProtocolCall:
    view = _select(
        campaign_id, yield_openable,
        "Please select a campaign",
        "Campaign is not ready for a yield round",
    )
    amount = _parse_amount(yield_per_share, "yield_per_share", "Please enter a valid yield per share amount")
    if amount <= 0:
        raise ValidationError("yield_per_share", "Please enter a valid yield per share amount")

    coin = view.campaign.coin_type
    per_share, deposit = compute_yield_deposit(amount, view.campaign.total_supply, coin)
    if per_share == 0:
        raise ValidationError("yield_per_share", f"Yield per share is below the smallest {coin} unit")
    if deposit > U64_MAX:
        raise ValidationError("yield_per_share", "Total deposit exceeds the u64 range")

    coin_type = config.coin_type_for(coin)
    return ProtocolCall(
        "open-yield-round",
        _campaign_target(config, "open_yield_round"),
        [
            ObjectArg(config.admin_cap),
            ObjectArg(view.object_id),
            PureArg("u64", per_share),
            CoinSplitArg(deposit, coin_type),
            ObjectArg(config.clock),
        ],
        [coin_type],
    )


def build_close_yield_round(
    campaign_id: Optional[str],
    active_rounds: Sequence[CampaignView],
    config: ProtocolConfig
) -> ProtocolCall:
    view = _select(
        campaign_id, active_rounds,
        "Please select a campaign",
        "Campaign has no active yield round",
    )
    if view.active_round is None or not view.active_round.is_active:
        raise ValidationError("campaign_id", "Campaign has no active yield round")
    return ProtocolCall(
        "close-yield-round",
        _campaign_target(config, "close_yield_round"),
        [
            ObjectArg(config.admin_cap),
            ObjectArg(view.object_id),
            PureArg("u64", view.active_round.round_number),
            ObjectArg(config.clock),
        ],
        [config.coin_type_for(view.campaign.coin_type)],
    )


def build_toggle_pause(config: ProtocolConfig) -> ProtocolCall:
    return ProtocolCall(
        "toggle-pause",
        _campaign_target(config, "toggle_pause"),
        [ObjectArg(config.admin_cap), ObjectArg(config.registry)],
    )


def build_update_treasury(address: str, config: ProtocolConfig) -> ProtocolCall:
    treasury = validate_address(address, "treasury_address")
    return ProtocolCall(
        "update-treasury",
        _campaign_target(config, "update_treasury_address"),
        [ObjectArg(config.admin_cap), ObjectArg(config.registry), PureArg("address", treasury)],
    )


def build_add_admin(address: str, admin_caps: Sequence[str], config: ProtocolConfig) -> ProtocolCall:
    new_admin = validate_address(address, "admin_address")
    if not admin_caps:
        raise AuthorizationError("You don't have an AdminCap. Cannot add new admins.")
    return ProtocolCall(
        "add-admin",
        _campaign_target(config, "add_admin"),
        [ObjectArg(admin_caps[0]), PureArg("address", new_admin)],
    )


# Campaign actions and the reconciled surface their selection must belong to
ACTION_SURFACES = {
    "close-campaign": "closeable",
    "finalize-campaign": "finalizable",
    "withdraw-funds": "withdrawable",
    "open-yield-round": "yield-openable",
    "close-yield-round": "active-yield-rounds",
}

# Which surfaces to reload once an action's transaction confirms
REFRESH_AFTER = {
    "create-campaign": ("closeable",),
    "close-campaign": ("closeable", "finalizable"),
    "finalize-campaign": ("finalizable", "withdrawable", "yield-openable"),
    "withdraw-funds": ("withdrawable",),
    "open-yield-round": ("yield-openable", "active-yield-rounds"),
    "close-yield-round": ("active-yield-rounds", "yield-openable"),
    "toggle-pause": (),
    "update-treasury": (),
    "add-admin": (),
}
