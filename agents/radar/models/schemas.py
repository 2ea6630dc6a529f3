from enum import Enum
from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import Optional
from web3 import Web3
from agents.radar.config import DEFAULT_THRESHOLD_TX_COUNT, DEFAULT_THRESHOLD_USD


class ActivityType(str, Enum):
    SWAP = "swap"
    MINT = "mint"
    BRIDGE = "bridge"
    TRANSFER = "transfer"


class NotificationStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


# --- Pipeline types ---

class ChainTransaction(BaseModel):
    """One provider transaction, newest-first within a page."""

    tx_hash: str = Field(..., min_length=1)
    block_height: Optional[int] = None
    block_signed_at: datetime
    from_address: Optional[str] = None
    to_address: Optional[str] = None
    value_usd: float = 0.0
    decoded_logs: list[str] = Field(default_factory=list)

    model_config = {"frozen": True}


class Classification(BaseModel):
    type: ActivityType
    significant: bool
    description: str

    model_config = {"frozen": True}


class NotificationContext(BaseModel):
    target_address: str
    target_name: Optional[str] = None
    tx_type: ActivityType
    amount_usd: float
    chain: str


class DeliveryReceipt(BaseModel):
    receipt_id: Optional[str] = None
    success: bool


class SweepResult(BaseModel):
    checked: int = 0
    new_activities: int = Field(0, serialization_alias="newActivities")
    errors: int = 0
    skipped: int = 0


# --- API ---

def _validate_address(value: str) -> str:
    if not Web3.is_address(value):
        raise ValueError("Invalid wallet address")
    return value.lower()


class WatchRequest(BaseModel):
    follower_fid: str = Field(..., min_length=1)
    follower_address: str
    target_address: str
    target_name: Optional[str] = None
    threshold_usd: float = Field(DEFAULT_THRESHOLD_USD, ge=0)
    threshold_tx_count: int = Field(DEFAULT_THRESHOLD_TX_COUNT, ge=1)

    @field_validator("follower_address", "target_address")
    @classmethod
    def _address(cls, v: str) -> str:
        return _validate_address(v)


class SubscriptionResponse(BaseModel):
    id: int
    follower_fid: str
    follower_address: str
    target_address: str
    target_name: Optional[str]
    threshold_usd: float
    threshold_tx_count: int
    is_active: bool
    created_at: Optional[datetime]
    last_checked: Optional[datetime]

    model_config = {"from_attributes": True}


class ActivityResponse(BaseModel):
    id: int
    wallet_address: str
    tx_hash: str
    block_number: Optional[int]
    timestamp: datetime
    tx_type: str
    amount_usd: float
    chain: str
    metadata: dict = Field(default_factory=dict, validation_alias="metadata_")

    model_config = {"from_attributes": True}


class NotifyRequest(BaseModel):
    subscription_id: int
    activity_id: int
    frame_url: Optional[str] = None


class NotificationResponse(BaseModel):
    id: int
    subscription_id: int
    activity_id: int
    status: NotificationStatus
    cast_hash: Optional[str]
    sent_at: Optional[datetime]
    created_at: Optional[datetime]

    model_config = {"from_attributes": True}


class NotifyResponse(BaseModel):
    success: bool
    status: NotificationStatus
    cast_hash: Optional[str] = None


class SweepResponse(BaseModel):
    success: bool = True
    results: SweepResult


class HealthResponse(BaseModel):
    status: str = "ok"
    agent: str = "radar"
    version: str = "1.0.0"
    active_subscriptions: int = 0
    activities_today: int = 0
