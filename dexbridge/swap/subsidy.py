"""Subsidy ledger interface and an in-memory reference ledger.

The subsidy ledger keeps per-adapter, per-criteria reimbursement pools. An
adapter reports the criteria of each swap it performs together with the
beneficiary who should accrue the pool.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Protocol, Tuple

from dexbridge.swap.assets import ZERO_ADDRESS
from dexbridge.swap.chain import Chain
from dexbridge.swap.hardening import Validators, normalize_address

logger = logging.getLogger(__name__)


class SubsidyLedger(Protocol):
    """Gas-subsidy ledger the adapter claims against."""

    def claim_subsidy(self, caller: str, criteria: int, beneficiary: str) -> int:
        ...


@dataclass(frozen=True)
class SubsidyClaim:
    adapter: str
    criteria: int
    beneficiary: str
    amount: int


class ReferenceSubsidy:
    """
    Pools keyed by ``(adapter, criteria)``.

    A claim drains the pool into the beneficiary's accrued balance. Claims
    for the zero beneficiary are ignored and return ``0``. All mutations go
    through the chain journal, so a claim made inside a failing adapter call
    is rolled back with it.
    """

    def __init__(self, chain: Chain):
        self.chain = chain
        self._pools: Dict[Tuple[str, int], int] = {}
        self._accrued: Dict[str, int] = {}
        self.claims: List[SubsidyClaim] = []

    def fund(self, adapter: str, criteria: int, amount: int) -> None:
        Validators.validate_uint(criteria, "criteria").raise_if_invalid()
        Validators.validate_uint(amount, "amount").raise_if_invalid()
        key = (normalize_address(adapter, "adapter"), criteria)
        self.chain.journal.set_entry(self._pools, key, self._pools.get(key, 0) + amount)

    def available(self, adapter: str, criteria: int) -> int:
        return self._pools.get((adapter.lower(), criteria), 0)

    def accrued(self, beneficiary: str) -> int:
        return self._accrued.get(beneficiary.lower(), 0)

    def claim_subsidy(self, caller: str, criteria: int, beneficiary: str) -> int:
        adapter = normalize_address(caller, "caller")
        beneficiary = normalize_address(beneficiary, "beneficiary")
        if beneficiary == ZERO_ADDRESS:
            return 0

        key = (adapter, criteria)
        amount = self._pools.get(key, 0)
        if amount == 0:
            return 0

        journal = self.chain.journal
        journal.set_entry(self._pools, key, 0)
        journal.set_entry(self._accrued, beneficiary, self.accrued(beneficiary) + amount)
        claim = SubsidyClaim(adapter=adapter, criteria=criteria, beneficiary=beneficiary, amount=amount)
        self.claims.append(claim)
        journal.record(lambda: self.claims.remove(claim))
        logger.info(f"Subsidy of {amount} claimed by {beneficiary} via {adapter}")
        return amount
