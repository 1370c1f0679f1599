"""Swap venue interface and a fixed-rate reference venue.

The adapter treats the venue as a synchronous library call: it either
returns the output amount it credited to the caller or raises, and the raise
aborts the whole adapter call.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import ROUND_DOWN, Decimal, localcontext
from typing import Any, Dict, List, Protocol, Tuple, Union

from dexbridge.swap.chain import Chain, InsufficientBalance
from dexbridge.swap.hardening import normalize_address

logger = logging.getLogger(__name__)


class VenueError(Exception):
    """The venue rejected a trade."""
    pass


class DeadlineExpired(VenueError):
    """Trade submitted after its deadline."""

    def __init__(self, deadline: int, now: int):
        self.deadline = deadline
        self.now = now
        super().__init__(f"deadline {deadline} has passed (now {now})")


class InsufficientReturn(VenueError):
    """Trade would return less than the caller's minimum."""

    def __init__(self, output_amount: int, minimum_return_amount: int):
        self.output_amount = output_amount
        self.minimum_return_amount = minimum_return_amount
        super().__init__(
            f"return {output_amount} is below minimum {minimum_return_amount}"
        )


class UnsupportedPair(VenueError):
    """No pool exists for the token pair."""
    pass


class SwapVenue(Protocol):
    """External liquidity venue the adapter trades against."""

    address: str

    def trade_by_source_amount(
        self,
        caller: str,
        input_token: str,
        output_token: str,
        source_amount: int,
        minimum_return_amount: int,
        deadline: int,
        fee_beneficiary: str,
    ) -> int:
        ...


@dataclass(frozen=True)
class TradeRecord:
    caller: str
    input_token: str
    output_token: str
    source_amount: int
    minimum_return_amount: int
    deadline: int
    fee_beneficiary: str
    output_amount: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "caller": self.caller,
            "input_token": self.input_token,
            "output_token": self.output_token,
            "source_amount": self.source_amount,
            "minimum_return_amount": self.minimum_return_amount,
            "deadline": self.deadline,
            "fee_beneficiary": self.fee_beneficiary,
            "output_amount": self.output_amount,
        }


class ReferenceVenue:
    """
    Fixed-rate venue backed by its own token reserves.

    Rates are expressed in raw token units: a rate of ``1`` returns one
    smallest output unit per smallest input unit. The venue pulls the input
    through the caller's allowance and pays the output from its reserves.

    Example:
        venue = ReferenceVenue(chain, "0x" + "5" * 40)
        venue.set_rate(usdc.address, dai.address, Decimal(10) ** 12)
        dai.mint(venue.address, 10 ** 24)
    """

    def __init__(self, chain: Chain, address: str):
        self.chain = chain
        self.address = normalize_address(address)
        self._rates: Dict[Tuple[str, str], Decimal] = {}
        self.trades: List[TradeRecord] = []

    def set_rate(self, input_token: str, output_token: str, rate: Union[int, str, Decimal]) -> None:
        rate = Decimal(str(rate))
        if not rate.is_finite() or rate < 0:
            raise ValueError(f"rate must be a finite non-negative number, got {rate}")
        self._rates[(input_token.lower(), output_token.lower())] = rate

    def quote(self, input_token: str, output_token: str, source_amount: int) -> int:
        key = (input_token.lower(), output_token.lower())
        if key not in self._rates:
            raise UnsupportedPair(f"no pool for {key[0]} -> {key[1]}")
        with localcontext() as ctx:
            ctx.prec = 100
            out = (Decimal(source_amount) * self._rates[key]).to_integral_value(rounding=ROUND_DOWN)
        return int(out)

    def trade_by_source_amount(
        self,
        caller: str,
        input_token: str,
        output_token: str,
        source_amount: int,
        minimum_return_amount: int,
        deadline: int,
        fee_beneficiary: str,
    ) -> int:
        if self.chain.now > deadline:
            raise DeadlineExpired(deadline, self.chain.now)

        output_amount = self.quote(input_token, output_token, source_amount)
        if output_amount < minimum_return_amount:
            raise InsufficientReturn(output_amount, minimum_return_amount)

        source = self.chain.token(input_token)
        target = self.chain.token(output_token)
        if target.balance_of(self.address) < output_amount:
            raise InsufficientBalance(
                f"venue reserves of {target.symbol} cannot cover {output_amount}"
            )

        source.transfer_from(self.address, caller, self.address, source_amount)
        target.transfer(self.address, caller, output_amount)

        record = TradeRecord(
            caller=caller.lower(),
            input_token=source.address,
            output_token=target.address,
            source_amount=source_amount,
            minimum_return_amount=minimum_return_amount,
            deadline=deadline,
            fee_beneficiary=fee_beneficiary.lower(),
            output_amount=output_amount,
        )
        self.trades.append(record)
        self.chain.journal.record(lambda: self.trades.remove(record))
        logger.debug(
            f"Venue trade {source.symbol}->{target.symbol}: {source_amount} -> {output_amount}"
        )
        return output_amount
