"""
dexbridge.swap: single-call asset-swap adapter

Receives an input and an output asset descriptor, an amount and a packed
64-bit auxiliary value, swaps on an external venue and returns the settled
output amount to the settlement ledger within the same call.

Architecture
────────────

    ┌─────────────────────────────────────────────────────────────────────────┐
    │                          SWAP ADAPTER                                    │
    │                                                                          │
    │  ENTRY POINT                                                            │
    │    coordinator.py  Validation, subsidy claim, swap, native unwrap       │
    │    approvals.py    Zero-then-max allowance grants                       │
    │                                                                          │
    │  PURE LOGIC                                                             │
    │    codec.py        64-bit (minimum return, deadline) packing            │
    │    assets.py       Asset descriptors and subsidy criteria               │
    │    hardening.py    Input validation and custody invariants              │
    │                                                                          │
    │  HOST AND COLLABORATORS (reference implementations)                     │
    │    chain.py        Balances, tokens, journaled atomic execution         │
    │    venue.py        Fixed-rate swap venue                                │
    │    subsidy.py      Per-criteria subsidy pools                           │
    │    settlement.py   Settlement ledger driving interactions               │
    │                                                                          │
    │  OPERATIONS                                                             │
    │    config.py       YAML + environment configuration                     │
    │    cli.py          Trade data encoding and config tooling               │
    │                                                                          │
    └─────────────────────────────────────────────────────────────────────────┘

Design Principles
─────────────────

    All or Nothing: a convert call either completes every effect (subsidy
    claim, swap, delivery) or none of them.

    Zero Custody: the adapter holds no balance between calls, which is what
    makes the unlimited allowances it grants safe to share.

    Explicit Scaling: the decimal scaling applied to the packed minimum
    return is looked up per output asset, never inferred from the bits.
"""

from dexbridge.swap.assets import ZERO_ADDRESS, AssetDescriptor, AssetKind, subsidy_criteria
from dexbridge.swap.codec import (
    AmountOutOfRange,
    DeadlineOutOfRange,
    ScalingPolicy,
    ScalingRegistry,
    TradeDataError,
    TradeParameters,
    decode_trade_data,
    decode_trade_data_usdc,
    encode_trade_data,
    price_data_from_amount,
)
from dexbridge.swap.coordinator import (
    ConversionResult,
    InvalidCaller,
    InvalidInputA,
    InvalidOutputA,
    SwapCoordinator,
    SwapError,
    SwapPhase,
)

__all__ = [
    "ZERO_ADDRESS",
    "AssetDescriptor",
    "AssetKind",
    "subsidy_criteria",
    "AmountOutOfRange",
    "DeadlineOutOfRange",
    "ScalingPolicy",
    "ScalingRegistry",
    "TradeDataError",
    "TradeParameters",
    "decode_trade_data",
    "decode_trade_data_usdc",
    "encode_trade_data",
    "price_data_from_amount",
    "ConversionResult",
    "InvalidCaller",
    "InvalidInputA",
    "InvalidOutputA",
    "SwapCoordinator",
    "SwapError",
    "SwapPhase",
]
