"""
Settlement Ledger

The settlement ledger custodies funds before and after every adapter call.
For one interaction it:

    1. moves the input into the adapter (token transfer, or native value)
    2. calls ``convert`` as the registered caller
    3. pulls the output back (token allowance, or native delivery hook)
    4. checks the adapter is left holding nothing

all inside a single atomic block, so a failure at any step leaves no trace.

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Protocol

from dexbridge.swap.assets import AssetDescriptor
from dexbridge.swap.chain import Chain
from dexbridge.swap.hardening import InvariantViolation, normalize_address

if TYPE_CHECKING:
    from dexbridge.swap.coordinator import SwapCoordinator

logger = logging.getLogger(__name__)


class SettlementError(Exception):
    """The ledger could not settle an interaction."""
    pass


class SettlementLedger(Protocol):
    """Host ledger that invokes the adapter and receives its output."""

    address: str

    def receive_native_from_bridge(self, sender: str, interaction_nonce: int, amount: int) -> None:
        ...


@dataclass(frozen=True)
class InteractionResult:
    interaction_nonce: int
    output_value_a: int
    output_value_b: int
    is_async: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "interaction_nonce": self.interaction_nonce,
            "output_value_a": self.output_value_a,
            "output_value_b": self.output_value_b,
            "is_async": self.is_async,
        }


class ReferenceSettlementLedger:
    """In-memory settlement ledger that drives adapter interactions."""

    def __init__(self, chain: Chain, address: str):
        self.chain = chain
        self.address = normalize_address(address)
        self._native_deliveries: Dict[int, int] = {}
        self.results: List[InteractionResult] = []

    def native_delivered(self, interaction_nonce: int) -> int:
        """Total native currency received for a nonce across all interactions."""
        return self._native_deliveries.get(interaction_nonce, 0)

    def receive_native_from_bridge(self, sender: str, interaction_nonce: int, amount: int) -> None:
        """Hook through which an adapter hands back native currency."""
        self.chain.send_native(sender, self.address, amount)
        self.chain.journal.set_entry(
            self._native_deliveries,
            interaction_nonce,
            self.native_delivered(interaction_nonce) + amount,
        )

    def process_interaction(
        self,
        adapter: "SwapCoordinator",
        input_asset_a: AssetDescriptor,
        output_asset_a: AssetDescriptor,
        total_input_value: int,
        interaction_nonce: int,
        aux_data: int,
        rollup_beneficiary: str,
        input_asset_b: Optional[AssetDescriptor] = None,
        output_asset_b: Optional[AssetDescriptor] = None,
    ) -> InteractionResult:
        """Run one adapter interaction end to end."""
        input_asset_b = input_asset_b or AssetDescriptor.not_used()
        output_asset_b = output_asset_b or AssetDescriptor.not_used()
        tracked = [a.address for a in (input_asset_a, output_asset_a) if a.address]
        if adapter.wrapped_native.address not in tracked:
            tracked.append(adapter.wrapped_native.address)

        delivered_before = self.native_delivered(interaction_nonce)

        with self.chain.journal.atomic():
            if input_asset_a.is_native:
                self.chain.send_native(self.address, adapter.address, total_input_value)
            elif input_asset_a.address:
                self.chain.token(input_asset_a.address).transfer(
                    self.address, adapter.address, total_input_value
                )

            output_value_a, output_value_b, is_async = adapter.convert(
                input_asset_a,
                input_asset_b,
                output_asset_a,
                output_asset_b,
                total_input_value,
                interaction_nonce,
                aux_data,
                rollup_beneficiary,
                caller=self.address,
            )

            if output_asset_a.is_native:
                delivered = self.native_delivered(interaction_nonce) - delivered_before
                if delivered != output_value_a:
                    raise SettlementError(
                        f"interaction {interaction_nonce}: adapter reported {output_value_a} "
                        f"but delivered {delivered}"
                    )
            elif output_asset_a.address:
                self.chain.token(output_asset_a.address).transfer_from(
                    self.address, adapter.address, self.address, output_value_a
                )

            leftover = {k: v for k, v in self.chain.balances_of(adapter.address, tracked).items() if v}
            if leftover:
                raise InvariantViolation(
                    f"adapter {adapter.address} still holds funds after interaction "
                    f"{interaction_nonce}: {leftover}"
                )

            result = InteractionResult(
                interaction_nonce=interaction_nonce,
                output_value_a=output_value_a,
                output_value_b=output_value_b,
                is_async=is_async,
            )
            self.results.append(result)
            self.chain.journal.record(lambda: self.results.remove(result))

        logger.info(f"Interaction settled: {result.to_dict()}")
        return result
