"""Protocol constants and environment configuration.

Object ids, package ids and coin types default to the testnet deployment and
can be overridden through the environment (or a `.env` file loaded by the
server entry point).
"""

import os
from dataclasses import dataclass, field
from typing import Dict, Optional

from sinag_admin.errors import ConfigurationError


# Package deployed with yield support
DEFAULT_PACKAGE_ID = "0x745d9b84dd990aed04c0a2202b8d34fa3c74f7e2ca708543425bfe66d4160fbf"
# Original package, campaigns created there are still live
DEFAULT_LEGACY_PACKAGE_ID = "0x6d9a0ac9f9741f5e578a4e874010760ab2da7d558b7c4115174c631ee694b48e"

DEFAULT_ADMIN_CAP = "0xaeab2fea6294dfe40b49ea495f6b8a68437a30a14e4bc294360698aaaf54e223"
DEFAULT_REGISTRY = "0x13f96f72dc265e5866face23d415fac6beb9c9703e0d2a35c22f668b93c97673"
DEFAULT_CLOCK = "0x0000000000000000000000000000000000000000000000000000000000000006"

SUI_COIN_TYPE = "0x0000000000000000000000000000000000000000000000000000000000000002::sui::SUI"
DEFAULT_USDC_COIN_TYPE = "0xa1ec7fc00a6f40db9693ad1415d0c193ad3906494428cf252621037bd7117e29::usdc::USDC"

DEFAULT_RPC_URL = "https://fullnode.testnet.sui.io:443"
DEFAULT_PINATA_GATEWAY = "https://gateway.pinata.cloud/ipfs/"
PINATA_PIN_FILE_URL = "https://api.pinata.cloud/pinning/pinFileToIPFS"

MODULE_NAME = "campaign"

# Campaign.status values as stored on-chain
STATUS_ACTIVE = 0
STATUS_COMPLETED = 1
STATUS_MANUALLY_CLOSED = 2

MIN_APY_BPS = 1
MIN_MATURITY_DAYS = 1
MAX_IMAGES = 10
MAX_UPLOAD_BYTES = 10 * 1024 * 1024

ERROR_MESSAGES = {
    "NO_WALLET": "Please connect your wallet first",
    "NOT_ADMIN": "You don't have admin privileges",
    "INVALID_APY": "APY must be between 0 and 100%",
    "INVALID_MATURITY": f"Maturity must be at least {MIN_MATURITY_DAYS} days",
    "INVALID_IMAGES": f"Please provide at least 1 and at most {MAX_IMAGES} images",
    "TRANSACTION_FAILED": "Transaction failed. Please try again.",
}


@dataclass
class ProtocolConfig:
    """Addresses and tuning knobs the adapters and builders need."""

    rpc_url: str = DEFAULT_RPC_URL
    package_id: str = DEFAULT_PACKAGE_ID
    legacy_package_id: str = DEFAULT_LEGACY_PACKAGE_ID
    admin_cap: str = DEFAULT_ADMIN_CAP
    registry: str = DEFAULT_REGISTRY
    clock: str = DEFAULT_CLOCK
    usdc_coin_type: str = DEFAULT_USDC_COIN_TYPE
    rpc_timeout: float = 30.0
    event_query_max_pages: int = 1
    confirm_timeout: float = 30.0
    poll_interval: float = 1.0
    coin_types: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        if self.event_query_max_pages < 1:
            raise ConfigurationError("EVENT_QUERY_MAX_PAGES must be at least 1")
        self.coin_types = {"SUI": SUI_COIN_TYPE, "USDC": self.usdc_coin_type}

    @classmethod
    def from_env(cls) -> "ProtocolConfig":
        """Build configuration from environment variables."""
        try:
            return cls(
                rpc_url=os.getenv("SUI_RPC_URL", DEFAULT_RPC_URL),
                package_id=os.getenv("SINAG_PACKAGE_ID", DEFAULT_PACKAGE_ID),
                legacy_package_id=os.getenv("SINAG_LEGACY_PACKAGE_ID", DEFAULT_LEGACY_PACKAGE_ID),
                admin_cap=os.getenv("SINAG_ADMIN_CAP", DEFAULT_ADMIN_CAP),
                registry=os.getenv("SINAG_REGISTRY", DEFAULT_REGISTRY),
                clock=os.getenv("SUI_CLOCK", DEFAULT_CLOCK),
                usdc_coin_type=os.getenv("USDC_COIN_TYPE", DEFAULT_USDC_COIN_TYPE),
                rpc_timeout=float(os.getenv("RPC_TIMEOUT", "30")),
                event_query_max_pages=int(os.getenv("EVENT_QUERY_MAX_PAGES", "1")),
                confirm_timeout=float(os.getenv("TX_CONFIRM_TIMEOUT", "30")),
                poll_interval=float(os.getenv("TX_POLL_INTERVAL", "1")),
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid numeric setting: {e}") from e

    @property
    def package_ids(self) -> tuple:
        """Legacy first, then current: the order merged event queries concatenate in."""
        if not self.legacy_package_id or self.legacy_package_id == self.package_id:
            return (self.package_id,)
        return (self.legacy_package_id, self.package_id)

    def event_type(self, event_name: str, package_id: Optional[str] = None) -> str:
        return f"{package_id or self.package_id}::{MODULE_NAME}::{event_name}"

    def function_target(self, function_name: str) -> str:
        return f"{self.package_id}::{MODULE_NAME}::{function_name}"

    @property
    def admin_cap_type(self) -> str:
        return f"{self.package_id}::{MODULE_NAME}::AdminCap"

    def coin_type_for(self, denomination: str) -> str:
        try:
            return self.coin_types[denomination]
        except KeyError:
            raise ConfigurationError(f"Unsupported denomination: {denomination}")


@dataclass
class UploadConfig:
    """Settings for the media pinning proxy."""

    jwt: Optional[str] = None
    gateway: str = DEFAULT_PINATA_GATEWAY
    pin_url: str = PINATA_PIN_FILE_URL
    timeout: float = 60.0

    @classmethod
    def from_env(cls) -> "UploadConfig":
        return cls(
            jwt=os.getenv("PINATA_JWT") or None,
            gateway=os.getenv("PINATA_GATEWAY", DEFAULT_PINATA_GATEWAY),
        )

    @property
    def configured(self) -> bool:
        return bool(self.jwt)
