"""
Data models for the caller whitelist licensing hook.
"""

from typing import Any, Dict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
import re

from pydantic import BaseModel, Field, field_validator

from shared.errors import ValidationError

MAX_UINT256 = 2 ** 256 - 1

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


def parse_address(value: Any) -> str:
    """Return the canonical lower-case form of a 20-byte hex address.

    Raises ValueError for anything that is not ``0x`` followed by 40 hex digits.
    """
    if not isinstance(value, str) or not _ADDRESS_RE.match(value):
        raise ValueError(f"invalid address: {value!r}")
    return value.lower()


def parse_uint256(value: Any) -> int:
    """Parse an unsigned 256-bit integer from an int or a decimal string."""
    if isinstance(value, bool):
        raise ValueError("booleans are not integers here")
    if isinstance(value, str):
        if not re.fullmatch(r"[0-9]+", value):
            raise ValueError(f"invalid unsigned integer: {value!r}")
        value = int(value)
    if not isinstance(value, int):
        raise ValueError(f"invalid unsigned integer: {value!r}")
    if value < 0 or value > MAX_UINT256:
        raise ValueError(f"value out of uint256 range: {value}")
    return value


def parse_hook_data(value: Any) -> bytes:
    """Decode opaque hook data supplied as a ``0x`` hex string."""
    if isinstance(value, bytes):
        return value
    if not isinstance(value, str) or not value.startswith("0x"):
        raise ValueError("hook data must be a 0x-prefixed hex string")
    return bytes.fromhex(value[2:])


def require_address(value: Any, field_name: str) -> str:
    try:
        return parse_address(value)
    except ValueError as e:
        raise ValidationError(str(e), details={"field": field_name})


def require_uint256(value: Any, field_name: str) -> int:
    try:
        return parse_uint256(value)
    except ValueError as e:
        raise ValidationError(str(e), details={"field": field_name})


@dataclass(frozen=True)
class WhitelistTarget:
    """The four fields identifying one allow-list slot."""
    asset_id: str
    template_id: str
    terms_id: int
    minter_id: str

    @classmethod
    def create(cls, asset_id: str, template_id: str, terms_id: int, minter_id: str) -> "WhitelistTarget":
        """Validate and normalise raw identifiers."""
        return cls(
            asset_id=require_address(asset_id, "asset_id"),
            template_id=require_address(template_id, "template_id"),
            terms_id=require_uint256(terms_id, "terms_id"),
            minter_id=require_address(minter_id, "minter_id"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "asset_id": self.asset_id,
            "template_id": self.template_id,
            "terms_id": str(self.terms_id),
            "minter_id": self.minter_id,
        }


class WhitelistEventKind(str, Enum):
    """Notification kinds emitted on whitelist mutations."""
    WHITELISTED = "whitelisted"
    REMOVED = "removed"


@dataclass
class WhitelistEvent:
    """Notification emitted after a successful whitelist mutation."""
    kind: WhitelistEventKind
    target: WhitelistTarget
    authorization_key: str
    emitted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            **self.target.to_dict(),
            "authorization_key": self.authorization_key,
            "emitted_at": self.emitted_at.isoformat(),
        }


class WhitelistMutationRequest(BaseModel):
    """Request model for adding or removing a whitelisted minter."""
    caller: str = Field(..., description="Identity requesting the mutation")
    asset_id: str = Field(..., description="Licensor IP asset")
    template_id: str = Field(..., description="License template")
    terms_id: int = Field(..., description="License terms id within the template")
    minter_id: str = Field(..., description="Minter being whitelisted or removed")

    @field_validator("caller", "asset_id", "template_id", "minter_id", mode="before")
    @classmethod
    def _check_address(cls, value):
        return parse_address(value)

    @field_validator("terms_id", mode="before")
    @classmethod
    def _check_terms_id(cls, value):
        return parse_uint256(value)


class BeforeMintRequest(BaseModel):
    """Request model for the before-mint and fee-prediction entry points."""
    caller: str = Field(..., description="Identity invoking the mint")
    asset_id: str = Field(..., description="Licensor IP asset")
    template_id: str = Field(..., description="License template")
    terms_id: int = Field(..., description="License terms id")
    amount: int = Field(..., description="Number of license tokens to mint")
    receiver: str = Field(..., description="Recipient of the minted tokens")
    hook_data: bytes = Field(default=b"", description="Opaque 0x-hex data, unused")

    @field_validator("caller", "asset_id", "template_id", "receiver", mode="before")
    @classmethod
    def _check_address(cls, value):
        return parse_address(value)

    @field_validator("terms_id", "amount", mode="before")
    @classmethod
    def _check_uint(cls, value):
        return parse_uint256(value)

    @field_validator("hook_data", mode="before")
    @classmethod
    def _check_hook_data(cls, value):
        return parse_hook_data(value)


class BeforeRegisterDerivativeRequest(BaseModel):
    """Request model for the before-register-derivative entry point."""
    caller: str = Field(..., description="Identity registering the derivative")
    child_id: str = Field(..., description="Child IP asset")
    parent_asset_id: str = Field(..., description="Parent (licensor) IP asset")
    template_id: str = Field(..., description="License template")
    terms_id: int = Field(..., description="License terms id")
    hook_data: bytes = Field(default=b"", description="Opaque 0x-hex data, unused")

    @field_validator("caller", "child_id", "parent_asset_id", "template_id", mode="before")
    @classmethod
    def _check_address(cls, value):
        return parse_address(value)

    @field_validator("terms_id", mode="before")
    @classmethod
    def _check_terms_id(cls, value):
        return parse_uint256(value)

    @field_validator("hook_data", mode="before")
    @classmethod
    def _check_hook_data(cls, value):
        return parse_hook_data(value)


class WhitelistMutationResponse(BaseModel):
    """Response model for whitelist mutations."""
    success: bool
    authorization_key: str


class WhitelistStatusResponse(BaseModel):
    """Response model for whitelist queries."""
    whitelisted: bool
    authorization_key: str


class MintingFeeResponse(BaseModel):
    """Fee owed, as a decimal string so uint256 values survive JSON clients."""
    total_minting_fee: str

    @classmethod
    def from_fee(cls, fee: int) -> "MintingFeeResponse":
        return cls(total_minting_fee=str(fee))
