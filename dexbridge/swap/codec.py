"""
Trade Parameter Codec

Packs a minimum-acceptable-return and a deadline into the single 64-bit
auxiliary field that the settlement ledger forwards with every interaction.

Layout:

    63                              32 31                               0
    ┌─────────────────────────────────┬─────────────────────────────────┐
    │  scaled minimum return (uint32) │     deadline, Unix seconds      │
    └─────────────────────────────────┴─────────────────────────────────┘

The scaling factor is not part of the encoding. It is chosen at decode time
from the output asset:

    STANDARD     18-decimal assets   minimum = high32 * 10**14
    SIX_DECIMAL   6-decimal assets   minimum = high32 * 10**6

so the same packed value decodes to different magnitudes depending on the
asset being received. Callers must know the output asset's policy before
encoding. A 32-bit deadline stops being representable in 2106.

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, localcontext
from enum import Enum
from typing import Dict, Iterable, Mapping, Optional, Tuple, Union

from dexbridge.swap.assets import AssetDescriptor


UINT32_MAX = 0xFFFFFFFF
UINT64_MAX = 0xFFFFFFFFFFFFFFFF

# Largest magnitude a caller should pack: nine decimal digits.
MAX_PRICE_DATA = 999_999_999


class TradeDataError(ValueError):
    """Auxiliary trade data cannot be encoded or decoded."""
    pass


class AmountOutOfRange(TradeDataError):
    """Unscaled minimum-return magnitude does not fit in 32 bits."""

    def __init__(self, amount: int):
        self.amount = amount
        super().__init__(f"amount {amount} is outside 0..{UINT32_MAX}")


class DeadlineOutOfRange(TradeDataError):
    """Deadline does not fit in an unsigned 32-bit timestamp."""

    def __init__(self, deadline: int):
        self.deadline = deadline
        super().__init__(f"deadline {deadline} is outside 0..{UINT32_MAX}")


class ScalingPolicy(Enum):
    """Decimal-scaling policy applied to the packed minimum-return magnitude."""
    STANDARD = "standard"
    SIX_DECIMAL = "six_decimal"

    @property
    def multiplier(self) -> int:
        return _MULTIPLIERS[self]

    @property
    def decimals(self) -> int:
        return _DECIMALS[self]


_MULTIPLIERS: Dict[ScalingPolicy, int] = {
    ScalingPolicy.STANDARD: 10 ** 14,
    ScalingPolicy.SIX_DECIMAL: 10 ** 6,
}

_DECIMALS: Dict[ScalingPolicy, int] = {
    ScalingPolicy.STANDARD: 18,
    ScalingPolicy.SIX_DECIMAL: 6,
}


@dataclass(frozen=True)
class TradeParameters:
    """Decoded swap constraints. Recomputed on every call, never stored."""
    minimum_return_amount: int
    deadline: int

    def to_dict(self) -> Dict[str, int]:
        return {
            "minimum_return_amount": self.minimum_return_amount,
            "deadline": self.deadline,
        }


def _require_int(value: object, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TradeDataError(f"{name} must be an integer, got {type(value).__name__}")
    return value


def encode_trade_data(token_amount_unscaled: int, unix_timestamp: int) -> int:
    """
    Pack an unscaled minimum-return magnitude and a deadline into 64 bits.

    Args:
        token_amount_unscaled: Magnitude before policy scaling (0..2**32-1).
        unix_timestamp: Deadline in Unix seconds (0..2**32-1).

    Returns:
        The packed auxiliary value.

    Raises:
        AmountOutOfRange: If the magnitude does not fit in 32 bits.
        DeadlineOutOfRange: If the timestamp does not fit in 32 bits.
    """
    amount = _require_int(token_amount_unscaled, "token_amount_unscaled")
    timestamp = _require_int(unix_timestamp, "unix_timestamp")
    if amount < 0 or amount > UINT32_MAX:
        raise AmountOutOfRange(amount)
    if timestamp < 0 or timestamp > UINT32_MAX:
        raise DeadlineOutOfRange(timestamp)
    return (amount << 32) | timestamp


def split_trade_data(encoded: int) -> Tuple[int, int]:
    """Return the raw ``(magnitude, deadline)`` bit-fields of a packed value."""
    value = _require_int(encoded, "encoded")
    if value < 0 or value > UINT64_MAX:
        raise TradeDataError(f"encoded trade data {value} is not a uint64")
    return value >> 32, value & UINT32_MAX


def decode_trade_data(
    encoded: int,
    policy: ScalingPolicy = ScalingPolicy.STANDARD,
) -> TradeParameters:
    """Decode packed trade data, scaling the magnitude for 18-decimal assets by default."""
    magnitude, deadline = split_trade_data(encoded)
    return TradeParameters(
        minimum_return_amount=magnitude * policy.multiplier,
        deadline=deadline,
    )


def decode_trade_data_usdc(encoded: int) -> TradeParameters:
    """Decode packed trade data for a 6-decimal output asset (whole units only)."""
    return decode_trade_data(encoded, ScalingPolicy.SIX_DECIMAL)


def price_data_from_amount(
    amount: Union[str, int, Decimal],
    policy: ScalingPolicy = ScalingPolicy.STANDARD,
) -> int:
    """
    Convert a human-readable token amount into the unscaled magnitude.

    ``Decimal("0.0009")`` under STANDARD becomes ``9``; ``Decimal("5")``
    under SIX_DECIMAL becomes ``5``. Amounts finer than the policy
    granularity are rejected rather than rounded.
    """
    try:
        dec_amount = Decimal(str(amount))
    except InvalidOperation:
        raise TradeDataError(f"amount is not a valid decimal number: {amount!r}")
    if not dec_amount.is_finite() or dec_amount < 0:
        raise TradeDataError(f"amount must be a finite non-negative number, got {amount!r}")

    with localcontext() as ctx:
        ctx.prec = 100
        raw = dec_amount.scaleb(policy.decimals)
        magnitude, remainder = divmod(raw, policy.multiplier)
    if remainder != 0:
        granularity = Decimal(policy.multiplier).scaleb(-policy.decimals)
        raise TradeDataError(
            f"amount {amount!r} is finer than the {policy.value} granularity of {granularity}"
        )
    magnitude = int(magnitude)
    if magnitude > UINT32_MAX:
        raise AmountOutOfRange(magnitude)
    return magnitude


class ScalingRegistry:
    """
    Maps output-asset addresses to the scaling policy used at decode time.

    Assets without an entry (including the native currency, which has no
    address) decode with the default policy.
    """

    def __init__(
        self,
        policies: Optional[Mapping[str, ScalingPolicy]] = None,
        default: ScalingPolicy = ScalingPolicy.STANDARD,
    ):
        self._default = default
        self._policies: Dict[str, ScalingPolicy] = {}
        for address, policy in (policies or {}).items():
            self.register(address, policy)

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, str]) -> "ScalingRegistry":
        """Build a registry from ``{address: policy_name}`` configuration data."""
        try:
            policies = {addr: ScalingPolicy(name) for addr, name in mapping.items()}
        except ValueError as e:
            raise TradeDataError(f"unknown scaling policy: {e}")
        return cls(policies)

    @property
    def default(self) -> ScalingPolicy:
        return self._default

    def register(self, address: str, policy: ScalingPolicy) -> None:
        self._policies[address.lower()] = policy

    def unregister(self, address: str) -> None:
        self._policies.pop(address.lower(), None)

    def items(self) -> Iterable[Tuple[str, ScalingPolicy]]:
        return sorted(self._policies.items())

    def policy_for(self, asset: AssetDescriptor) -> ScalingPolicy:
        if asset.address is None:
            return self._default
        return self._policies.get(asset.address.lower(), self._default)

    def decode_for(self, asset: AssetDescriptor, encoded: int) -> TradeParameters:
        return decode_trade_data(encoded, self.policy_for(asset))
