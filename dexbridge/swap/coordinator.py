"""
Swap Coordinator

Single entry point of the asset-swap adapter. One ``convert`` call validates
its inputs, claims the gas subsidy for the asset pair, decodes the packed
trade constraints, trades on the venue and hands the proceeds back to the
settlement ledger.

State Machine:

    IDLE ──▶ VALIDATING ──▶ SWAPPING ──▶ SETTLING ──▶ IDLE
               │               │            │
               └───────────────┴────────────┴──▶ IDLE (call aborted, rolled back)

Nothing persists between calls apart from token allowances granted through
``pre_approve_tokens``. Every call starts and ends with the adapter holding
no funds it was not asked to hand back.

Failure Handling:

    - Validation fails: nothing has happened yet, the error propagates
    - Venue or hook fails: every effect of the call, the subsidy claim
      included, is rolled back and the error propagates unmodified
    - No retries, no partial fills, never asynchronous

Copyright (c) 2026 Momentum. All rights reserved.
Contact: engineering@momentum.inc
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, List, NamedTuple, Optional, Sequence

from dexbridge.swap import codec
from dexbridge.swap.approvals import pre_approve_tokens
from dexbridge.swap.assets import ZERO_ADDRESS, AssetDescriptor, AssetKind, subsidy_criteria
from dexbridge.swap.chain import Chain, FungibleToken, WrappedNativeToken
from dexbridge.swap.codec import ScalingRegistry, TradeParameters
from dexbridge.swap.config import AdapterConfig, ConfigError
from dexbridge.swap.hardening import InvariantChecker, Validators, normalize_address
from dexbridge.swap.settlement import SettlementLedger
from dexbridge.swap.subsidy import SubsidyLedger
from dexbridge.swap.venue import SwapVenue

logger = logging.getLogger(__name__)


# =============================================================================
# ERRORS
# =============================================================================

class SwapError(Exception):
    """A convert call was rejected before any effect took place."""
    pass


class InvalidCaller(SwapError):
    """Caller is not the registered settlement ledger."""
    pass


class InvalidInputA(SwapError):
    """Input asset kind cannot be swapped."""
    pass


class InvalidOutputA(SwapError):
    """Output asset kind cannot be received."""
    pass


# =============================================================================
# RESULT AND STATE
# =============================================================================

class ConversionResult(NamedTuple):
    output_value_a: int
    output_value_b: int
    is_async: bool


class SwapPhase(Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    SWAPPING = "swapping"
    SETTLING = "settling"


SUPPORTED_KINDS = frozenset({AssetKind.NATIVE, AssetKind.FUNGIBLE_TOKEN})


# =============================================================================
# COORDINATOR
# =============================================================================

class SwapCoordinator:
    """
    Orchestrates a single swap from validated inputs to a settled output.

    Example:
        coordinator = SwapCoordinator(
            chain, adapter_address,
            settlement=ledger, venue=venue, subsidy=subsidy,
            wrapped_native=weth,
            scaling=ScalingRegistry({usdc.address: ScalingPolicy.SIX_DECIMAL}),
        )
        coordinator.pre_approve_tokens([usdc.address], [dai.address])
        result = ledger.process_interaction(coordinator, usdc_asset, dai_asset, ...)
    """

    def __init__(
        self,
        chain: Chain,
        address: str,
        *,
        settlement: SettlementLedger,
        venue: SwapVenue,
        subsidy: SubsidyLedger,
        wrapped_native: WrappedNativeToken,
        scaling: Optional[ScalingRegistry] = None,
        fee_beneficiary: str = ZERO_ADDRESS,
    ):
        self.chain = chain
        self.address = normalize_address(address)
        self.settlement = settlement
        self.venue = venue
        self.subsidy = subsidy
        self.wrapped_native = wrapped_native
        self.scaling = scaling or ScalingRegistry()
        self.fee_beneficiary = normalize_address(fee_beneficiary, "fee_beneficiary")
        self._phase = SwapPhase.IDLE

    @classmethod
    def from_config(
        cls,
        config: AdapterConfig,
        chain: Chain,
        address: str,
        *,
        settlement: SettlementLedger,
        venue: SwapVenue,
        subsidy: SubsidyLedger,
    ) -> "SwapCoordinator":
        """Wire a coordinator whose collaborators must match the configured addresses."""
        errors = config.validate()
        if errors:
            raise ConfigError("; ".join(errors))

        expected = {
            "settlement_ledger_address": settlement.address,
            "venue_address": venue.address,
        }
        for key, actual in expected.items():
            configured = config.to_dict()[key].lower()
            if configured != actual.lower():
                raise ConfigError(f"{key} is {configured} but collaborator is at {actual}")

        wrapped = chain.token(config.wrapped_native_address.get())
        if not isinstance(wrapped, WrappedNativeToken):
            raise ConfigError(f"{wrapped.address} is not a wrapped native token")

        return cls(
            chain,
            address,
            settlement=settlement,
            venue=venue,
            subsidy=subsidy,
            wrapped_native=wrapped,
            scaling=config.scaling_registry(),
            fee_beneficiary=config.fee_beneficiary.get(),
        )

    @property
    def phase(self) -> SwapPhase:
        return self._phase

    def _enter(self, phase: SwapPhase) -> None:
        logger.debug(f"Adapter {self.address}: {self._phase.value} -> {phase.value}")
        self._phase = phase

    # -------------------------------------------------------------------------
    # Pure helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def encode_trade_data(token_amount_unscaled: int, unix_timestamp: int) -> int:
        return codec.encode_trade_data(token_amount_unscaled, unix_timestamp)

    @staticmethod
    def decode_trade_data(encoded: int) -> TradeParameters:
        return codec.decode_trade_data(encoded)

    @staticmethod
    def decode_trade_data_usdc(encoded: int) -> TradeParameters:
        return codec.decode_trade_data_usdc(encoded)

    @staticmethod
    def compute_criteria(input_asset_a: AssetDescriptor, output_asset_a: AssetDescriptor) -> int:
        return subsidy_criteria(input_asset_a, output_asset_a)

    # -------------------------------------------------------------------------
    # Allowances
    # -------------------------------------------------------------------------

    def pre_approve_tokens(self, tokens_in: Sequence[str], tokens_out: Sequence[str]) -> Dict[str, List[str]]:
        """Grant the venue and the settlement ledger unlimited pull-rights. Open to any caller."""
        return pre_approve_tokens(
            self.chain.token,
            self.address,
            self.venue.address,
            self.settlement.address,
            tokens_in,
            tokens_out,
        )

    # -------------------------------------------------------------------------
    # Convert
    # -------------------------------------------------------------------------

    def _token_for(self, asset: AssetDescriptor) -> FungibleToken:
        if asset.is_native:
            return self.wrapped_native
        return self.chain.token(asset.address)

    def _validate(
        self,
        caller: str,
        input_asset_a: AssetDescriptor,
        output_asset_a: AssetDescriptor,
        total_input_value: int,
        aux_data: int,
    ) -> None:
        if not isinstance(caller, str) or caller.lower() != self.settlement.address.lower():
            raise InvalidCaller(f"caller {caller} is not the settlement ledger")
        if input_asset_a.kind not in SUPPORTED_KINDS:
            raise InvalidInputA(f"input asset kind {input_asset_a.kind.value} is not supported")
        if output_asset_a.kind not in SUPPORTED_KINDS:
            raise InvalidOutputA(f"output asset kind {output_asset_a.kind.value} is not supported")
        Validators.validate_uint(total_input_value, "total_input_value").raise_if_invalid()
        Validators.validate_uint(aux_data, "aux_data", bits=64).raise_if_invalid()

    def convert(
        self,
        input_asset_a: AssetDescriptor,
        input_asset_b: AssetDescriptor,
        output_asset_a: AssetDescriptor,
        output_asset_b: AssetDescriptor,
        total_input_value: int,
        interaction_nonce: int,
        aux_data: int,
        rollup_beneficiary: str,
        *,
        caller: str,
    ) -> ConversionResult:
        """
        Swap ``total_input_value`` of input asset A into output asset A.

        The "B" assets are accepted and ignored. ``caller`` is the identity
        invoking the adapter and must be the settlement ledger.

        Returns:
            ``(amount received, 0, False)``.

        Raises:
            InvalidCaller, InvalidInputA, InvalidOutputA: Before any effect.
            VenueError, ChainError, InvariantViolation: After rollback.
        """
        self._enter(SwapPhase.VALIDATING)
        try:
            try:
                self._validate(caller, input_asset_a, output_asset_a, total_input_value, aux_data)
            except SwapError as e:
                logger.warning(f"Rejected convert for interaction {interaction_nonce}: {e}")
                raise

            with self.chain.journal.atomic():
                output_value_a = self._swap(
                    input_asset_a,
                    output_asset_a,
                    total_input_value,
                    interaction_nonce,
                    aux_data,
                    rollup_beneficiary,
                )
        finally:
            self._enter(SwapPhase.IDLE)

        logger.info(
            f"Interaction {interaction_nonce}: swapped {total_input_value} -> {output_value_a}"
        )
        return ConversionResult(output_value_a, 0, False)

    def _swap(
        self,
        input_asset_a: AssetDescriptor,
        output_asset_a: AssetDescriptor,
        total_input_value: int,
        interaction_nonce: int,
        aux_data: int,
        rollup_beneficiary: str,
    ) -> int:
        input_token = self._token_for(input_asset_a)
        output_token = self._token_for(output_asset_a)
        tracked = sorted({input_token.address, output_token.address})
        before = self.chain.balances_of(self.address, tracked)

        self.subsidy.claim_subsidy(
            self.address,
            self.compute_criteria(input_asset_a, output_asset_a),
            rollup_beneficiary,
        )

        params = self.scaling.decode_for(output_asset_a, aux_data)

        self._enter(SwapPhase.SWAPPING)
        if input_asset_a.is_native:
            self.wrapped_native.deposit(self.address, total_input_value)

        output_amount = self.venue.trade_by_source_amount(
            self.address,
            input_token.address,
            output_token.address,
            total_input_value,
            params.minimum_return_amount,
            params.deadline,
            self.fee_beneficiary,
        )

        self._enter(SwapPhase.SETTLING)
        if output_asset_a.is_native:
            self.wrapped_native.withdraw(self.address, output_amount)
            self.settlement.receive_native_from_bridge(self.address, interaction_nonce, output_amount)

        self._check_custody(before, input_asset_a, output_asset_a, total_input_value, output_amount)
        return output_amount

    def _check_custody(
        self,
        before: Dict[str, int],
        input_asset_a: AssetDescriptor,
        output_asset_a: AssetDescriptor,
        total_input_value: int,
        output_amount: int,
    ) -> None:
        """Every unit that entered the adapter left it, except the output the ledger will pull."""
        expected: Dict[str, int] = {}

        def add(key: str, delta: int) -> None:
            expected[key] = expected.get(key, 0) + delta

        # Input arrived ahead of the call and was sold in full.
        add("native" if input_asset_a.is_native else input_asset_a.address, -total_input_value)
        if not output_asset_a.is_native:
            add(output_asset_a.address, output_amount)

        after = self.chain.balances_of(self.address, [k for k in before if k != "native"])
        InvariantChecker.check_balance_delta(before, after, expected)
