"""Asset descriptors and subsidy criteria.

Descriptors are supplied fresh by the settlement ledger on every call. The
adapter never keeps a copy once the call returns.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from dexbridge.swap.hardening import Validators


ZERO_ADDRESS = "0x" + "0" * 40


class AssetKind(Enum):
    """Kind tag carried by every asset descriptor."""
    NOT_USED = "not_used"
    NATIVE = "native"
    FUNGIBLE_TOKEN = "fungible_token"
    VIRTUAL = "virtual"


@dataclass(frozen=True)
class AssetDescriptor:
    """
    Tagged identifier for the native currency or a fungible token.

    Only FUNGIBLE_TOKEN descriptors carry an address. The address is
    normalised to lowercase on construction.
    """
    id: int
    address: Optional[str] = None
    kind: AssetKind = AssetKind.FUNGIBLE_TOKEN

    def __post_init__(self):
        if self.kind == AssetKind.FUNGIBLE_TOKEN:
            result = Validators.validate_address(self.address, "address")
            result.raise_if_invalid()
            object.__setattr__(self, "address", result.sanitized_value)
        elif self.address is not None:
            raise ValueError(f"{self.kind.value} asset must not carry an address")

    @classmethod
    def native(cls, asset_id: int = 0) -> "AssetDescriptor":
        return cls(id=asset_id, address=None, kind=AssetKind.NATIVE)

    @classmethod
    def token(cls, asset_id: int, address: str) -> "AssetDescriptor":
        return cls(id=asset_id, address=address, kind=AssetKind.FUNGIBLE_TOKEN)

    @classmethod
    def virtual(cls, asset_id: int) -> "AssetDescriptor":
        return cls(id=asset_id, address=None, kind=AssetKind.VIRTUAL)

    @classmethod
    def not_used(cls) -> "AssetDescriptor":
        return cls(id=0, address=None, kind=AssetKind.NOT_USED)

    @property
    def is_native(self) -> bool:
        return self.kind == AssetKind.NATIVE

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "address": self.address, "kind": self.kind.value}


def _packed_address(asset: AssetDescriptor) -> bytes:
    return bytes.fromhex((asset.address or ZERO_ADDRESS)[2:])


def subsidy_criteria(input_asset: AssetDescriptor, output_asset: AssetDescriptor) -> int:
    """
    Compute the 256-bit subsidy bucket key for an ordered asset pair.

    SHA-256 over the two 20-byte addresses packed back to back. Assets
    without an address pack as the zero address, so every native pair
    shares a bucket per counter-asset.
    """
    digest = hashlib.sha256(_packed_address(input_asset) + _packed_address(output_asset)).digest()
    return int.from_bytes(digest, "big")
